"""Conversion of charge amounts between monthly and yearly frequency."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from roomledger.errors import InvalidFrequencyError
from roomledger.models.charge import ChargeFrequency

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class ChargeTerms:
    """Amount and native frequency of a charge, detached from the database."""

    amount: int
    frequency: ChargeFrequency


def parse_frequency(value: Any) -> ChargeFrequency:
    """Coerce "monthly"/"yearly" (or a ChargeFrequency) to ChargeFrequency.

    Raises:
        InvalidFrequencyError: For any other value
    """
    if isinstance(value, ChargeFrequency):
        return value
    try:
        return ChargeFrequency(value)
    except ValueError as e:
        raise InvalidFrequencyError(value) from e


def calculate_payment_amount(charge: Any, requested_frequency: Any) -> int:
    """Amount owed for one period of ``requested_frequency``.

    Yearly to monthly rounds half-up to whole Naira, so converting back
    (monthly * 12) can differ from the original yearly amount by up to 6.

    Args:
        charge: Object with ``amount`` and ``frequency`` (Charge or ChargeTerms)
        requested_frequency: Frequency the tenant pays at

    Returns:
        Amount in Naira
    """
    native = parse_frequency(charge.frequency)
    requested = parse_frequency(requested_frequency)

    if requested is native:
        return charge.amount
    if requested is ChargeFrequency.YEARLY:
        return charge.amount * MONTHS_PER_YEAR
    monthly = (Decimal(charge.amount) / MONTHS_PER_YEAR).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(monthly)


__all__ = ["ChargeTerms", "MONTHS_PER_YEAR", "calculate_payment_amount", "parse_frequency"]
