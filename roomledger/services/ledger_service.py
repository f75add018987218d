"""Payment ledger reads: which calendar months a tenant's payments cover."""

import logging
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roomledger.errors import LedgerReadError
from roomledger.models import Payment, PaymentStatus
from roomledger.services.period_service import Period, month_index

logger = logging.getLogger(__name__)


def payment_covers(payment: Any, month: int, year: int) -> bool:
    """Check whether a successful payment covers month/year.

    A payment with period_month_end covers the inclusive span from
    period_month/period_year to period_month_end, rolling into the next
    year when the end month is lower than the start month. Otherwise it
    covers exactly period_month/period_year.
    """
    if payment.status != PaymentStatus.SUCCESS:
        return False
    if payment.period_year is None or payment.period_month is None:
        return False

    if payment.period_month_end is not None:
        start_year = payment.period_year
        end_year = start_year + 1 if payment.period_month_end < payment.period_month else start_year
        target = month_index(month, year)
        return (
            month_index(payment.period_month, start_year)
            <= target
            <= month_index(payment.period_month_end, end_year)
        )
    return payment.period_month == month and payment.period_year == year


def is_month_covered(month: int, year: int, payments: Iterable[Any]) -> Any | None:
    """Return the first successful payment covering month/year, or None."""
    for payment in payments:
        if payment_covers(payment, month, year):
            return payment
    return None


def find_cycle_payment(cycle: Period, payments: Iterable[Any]) -> Any | None:
    """Return the successful yearly payment recorded for exactly this cycle."""
    for payment in payments:
        if (
            payment.status == PaymentStatus.SUCCESS
            and payment.period_year == cycle.year
            and payment.period_month == cycle.month
            and payment.period_month_end == cycle.month_end
        ):
            return payment
    return None


class PaymentLedgerService:
    """Read-only access to a tenant's payments for one charge."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def fetch_successful_payments(self, user_id: int, charge_id: int) -> list[Payment]:
        """Successful payments for the pair, ordered by (period_year, period_month).

        Raises:
            LedgerReadError: If the store cannot be read; callers must treat the
                charge as indeterminate
        """
        try:
            return (
                self.db.query(Payment)
                .filter(
                    Payment.user_id == user_id,
                    Payment.charge_id == charge_id,
                    Payment.status == PaymentStatus.SUCCESS,
                )
                .order_by(Payment.period_year.asc(), Payment.period_month.asc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(
                "Failed to read payments for user_id=%s charge_id=%s: %s", user_id, charge_id, e
            )
            raise LedgerReadError() from e

    def is_period_paid(self, user_id: int, charge_id: int, month: int, year: int) -> bool:
        """Check whether month/year is covered by any successful payment.

        All successful payments are fetched (not only those of ``year``)
        because yearly spans can start in the previous calendar year.
        """
        payments = self.fetch_successful_payments(user_id, charge_id)
        return is_month_covered(month, year, payments) is not None

    def find_paid_month(self, user_id: int, charge_id: int, period: Period) -> tuple[int, int] | None:
        """First (month, year) of ``period`` already covered by a successful payment."""
        payments = self.fetch_successful_payments(user_id, charge_id)
        for month, year in period.months():
            if is_month_covered(month, year, payments) is not None:
                return month, year
        return None

    def get_existing_pending_payment(
        self,
        user_id: int,
        charge_id: int,
        month: int | None,
        year: int,
        month_end: int | None = None,
    ) -> Payment | None:
        """Oldest pending payment for the same period, if any.

        A single month (month_end None) never matches a pending yearly span
        starting in that month, and vice versa. When month is None the lookup
        matches on year alone.
        """
        try:
            query = self.db.query(Payment).filter(
                Payment.user_id == user_id,
                Payment.charge_id == charge_id,
                Payment.period_year == year,
                Payment.status == PaymentStatus.PENDING,
            )
            if month is not None:
                query = query.filter(Payment.period_month == month)
                if month_end is None:
                    query = query.filter(Payment.period_month_end.is_(None))
                else:
                    query = query.filter(Payment.period_month_end == month_end)
            return query.order_by(Payment.created_at.asc(), Payment.id.asc()).first()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to read pending payments for user_id=%s charge_id=%s: %s",
                user_id,
                charge_id,
                e,
            )
            raise LedgerReadError() from e

    def get_by_reference(self, reference: str) -> Payment | None:
        return self.db.query(Payment).filter(Payment.reference == reference).first()

    def get_by_id(self, payment_id: int) -> Payment | None:
        return self.db.query(Payment).filter(Payment.id == payment_id).first()


__all__ = [
    "PaymentLedgerService",
    "find_cycle_payment",
    "is_month_covered",
    "payment_covers",
]
