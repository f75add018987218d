"""Creation of pending payment rows for charge periods."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from roomledger.errors import AlreadyPaidError, DuplicatePaymentError, FinalizationError
from roomledger.models import Payment, PaymentStatus, PaymentType
from roomledger.services.audit_service import AuditService
from roomledger.services.config import get_settings
from roomledger.services.frequency_service import calculate_payment_amount, parse_frequency
from roomledger.services.ledger_service import PaymentLedgerService
from roomledger.services.period_service import Period, current_period, monthly_period

logger = logging.getLogger(__name__)


@dataclass
class PaymentRecordResult:
    """Outcome of create_payment_record.

    ``existing_reference`` is set when a pending payment for the same period
    was reused; the gateway should be reopened with that reference.
    """

    success: bool
    amount: int
    period: Period
    reference: str | None = None
    existing_reference: str | None = None
    payment_id: int | None = None

    @property
    def gateway_reference(self) -> str | None:
        return self.existing_reference or self.reference


class PaymentRecordService:
    """Opens pending payments with duplicate-period and pending-reuse guards."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.ledger = PaymentLedgerService(db)

    def create_payment_record(
        self,
        user_id: int,
        charge: Any,
        requested_frequency: Any,
        reference: str,
        period: Period | None = None,
        tenancy_start: date | None = None,
        today: date | None = None,
    ) -> PaymentRecordResult:
        """Create a pending payment for one period of ``charge``.

        Args:
            user_id: Tenant ID
            charge: Charge (id, amount, frequency)
            requested_frequency: Frequency the tenant pays at
            reference: Fresh gateway reference for this attempt
            period: Specific period picked from the arrears list (default: current period)
            tenancy_start: Anchors yearly periods on the tenancy anniversary
            today: Reference date for the current period (default: today)

        Returns:
            PaymentRecordResult, with existing_reference set when reused

        Raises:
            InvalidFrequencyError: Unknown frequency, before any I/O
            AlreadyPaidError: A month of the period is already paid
            DuplicatePaymentError: Reference already stored
            LedgerReadError: Payments cannot be read
        """
        frequency = parse_frequency(requested_frequency)
        amount = calculate_payment_amount(charge, frequency)
        period = period or current_period(frequency, today=today, tenancy_start=tenancy_start)

        if period.month is not None:
            paid_month = self.ledger.find_paid_month(user_id, charge.id, period)
            if paid_month is not None:
                logger.info(
                    "Refusing payment for user_id=%s charge_id=%s: %s already paid",
                    user_id,
                    charge.id,
                    period.label,
                )
                raise AlreadyPaidError(monthly_period(*paid_month).label)

        pending = self.ledger.get_existing_pending_payment(
            user_id, charge.id, period.month, period.year, month_end=period.month_end
        )
        if pending is not None:
            logger.info(
                "Reusing pending payment id=%d reference=%s for user_id=%s charge_id=%s period=%s",
                pending.id,
                pending.reference,
                user_id,
                charge.id,
                period.label,
            )
            return PaymentRecordResult(
                success=True,
                amount=pending.amount,
                period=period,
                existing_reference=pending.reference,
                payment_id=pending.id,
            )

        payment = Payment(
            user_id=user_id,
            charge_id=charge.id,
            amount=amount,
            currency=get_settings().currency,
            status=PaymentStatus.PENDING,
            payment_type=PaymentType.CHARGE,
            reference=reference,
            period_month=period.month,
            period_month_end=period.month_end,
            period_year=period.year,
            period_label=period.label,
        )
        try:
            self.db.add(payment)
            self.db.flush()
            AuditService.log_payment(self.db, payment, "create", amount=amount, period=period.label)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Duplicate payment reference %s: %s", reference, e)
            raise DuplicatePaymentError(reference) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to create payment record %s: %s", reference, e)
            raise FinalizationError("Failed to create payment record") from e

        logger.info(
            "Created pending payment id=%d reference=%s user_id=%s charge_id=%s amount=%d period=%s",
            payment.id,
            reference,
            user_id,
            charge.id,
            amount,
            period.label,
        )
        return PaymentRecordResult(
            success=True,
            amount=amount,
            period=period,
            reference=reference,
            payment_id=payment.id,
        )


__all__ = ["PaymentRecordResult", "PaymentRecordService"]
