"""Tenant frequency preferences and payment finalization.

Finalizing a payment is two writes: the payment row is marked successful,
then the tenant's chosen frequency is locked. They commit separately; a
failure of the second write after the first committed is reported as a
PartialFinalizationError so the tenant is never asked to pay again.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roomledger.errors import (
    FinalizationError,
    LedgerReadError,
    PartialFinalizationError,
    PaymentNotFoundError,
    ValidationError,
)
from roomledger.models import ChargeFrequency, Payment, PaymentStatus, TenantChargePreference
from roomledger.services.audit_service import AuditService
from roomledger.services.frequency_service import parse_frequency

logger = logging.getLogger(__name__)


@dataclass
class FinalizationResult:
    """Outcome of a fully finalized payment."""

    success: bool
    payment_id: int
    reference: str
    chosen_frequency: ChargeFrequency | None = None
    locked_at: datetime | None = None


def implied_frequency(payment: Any) -> ChargeFrequency:
    """Frequency a payment was made at: spans are yearly, single months monthly."""
    if payment.period_month_end is not None or payment.period_month is None:
        return ChargeFrequency.YEARLY
    return ChargeFrequency.MONTHLY


class PreferenceService:
    """Reads and writes TenantChargePreference rows and finalizes payments."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def get_preference(self, user_id: int, charge_id: int) -> TenantChargePreference | None:
        """Stored preference for the pair, or None if the tenant never chose.

        Raises:
            LedgerReadError: If the store cannot be read
        """
        try:
            return (
                self.db.query(TenantChargePreference)
                .filter(
                    TenantChargePreference.tenant_id == user_id,
                    TenantChargePreference.charge_id == charge_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(
                "Failed to read preference for user_id=%s charge_id=%s: %s", user_id, charge_id, e
            )
            raise LedgerReadError() from e

    def upsert_preference(
        self,
        user_id: int,
        charge_id: int,
        chosen_frequency: Any,
        locked_at: datetime | None = None,
    ) -> TenantChargePreference:
        """Write (chosen_frequency, locked_at) for the pair and commit.

        The existing lock is not consulted: a different frequency overwrites a
        locked preference. A warning is logged when that happens.
        """
        frequency = parse_frequency(chosen_frequency)
        locked_at = locked_at or datetime.now(timezone.utc)

        preference = self.get_preference(user_id, charge_id)
        if preference is None:
            preference = TenantChargePreference(tenant_id=user_id, charge_id=charge_id)
            self.db.add(preference)
        elif preference.locked_at is not None and preference.chosen_frequency not in (None, frequency):
            # TODO: reject once product confirms locks are immutable after the first payment
            logger.warning(
                "Overwriting locked preference user_id=%s charge_id=%s: %s -> %s",
                user_id,
                charge_id,
                preference.chosen_frequency.value,
                frequency.value,
            )

        preference.chosen_frequency = frequency
        preference.locked_at = locked_at
        self.db.flush()
        AuditService.log_lock(self.db, preference)
        self.db.commit()
        return preference

    def mark_payment_successful(
        self,
        reference: str,
        paid_at: datetime | None = None,
        payment_method: str = "paystack",
        confirmed_by: int | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Mark the payment with ``reference`` successful and commit.

        A payment that is already successful keeps its original paid_at.

        Raises:
            PaymentNotFoundError: No payment has this reference
            FinalizationError: The update could not be committed
        """
        payment = self.db.query(Payment).filter(Payment.reference == reference).first()
        if payment is None:
            raise PaymentNotFoundError(reference)

        now = datetime.now(timezone.utc)
        try:
            if payment.status != PaymentStatus.SUCCESS:
                payment.status = PaymentStatus.SUCCESS
                payment.paid_at = paid_at or now
            payment.verified_at = now
            payment.payment_method = payment_method
            if confirmed_by is not None:
                payment.manual_confirmation_by = confirmed_by
            if notes is not None:
                payment.notes = notes
            AuditService.log_payment(
                self.db,
                payment,
                "manual_confirm" if confirmed_by is not None else "finalize",
                actor_id=confirmed_by,
                payment_method=payment_method,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to mark payment %s successful: %s", reference, e)
            raise FinalizationError() from e

        logger.info("Payment %s (id=%d) marked successful via %s", reference, payment.id, payment_method)
        return payment

    def mark_payment_failed(self, reference: str) -> Payment:
        """Mark a pending payment failed so its period can be paid afresh.

        Only pending payments move to failed; a successful payment is left
        untouched.

        Raises:
            PaymentNotFoundError: No payment has this reference
            FinalizationError: The update could not be committed
        """
        payment = self.db.query(Payment).filter(Payment.reference == reference).first()
        if payment is None:
            raise PaymentNotFoundError(reference)
        if payment.status != PaymentStatus.PENDING:
            logger.info("Payment %s is %s, not marking failed", reference, payment.status.value)
            return payment

        try:
            payment.status = PaymentStatus.FAILED
            AuditService.log_payment(self.db, payment, "fail")
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to mark payment %s failed: %s", reference, e)
            raise FinalizationError() from e

        logger.info("Payment %s (id=%d) marked failed", reference, payment.id)
        return payment

    def lock_after_payment(self, payment: Payment, chosen_frequency: Any) -> TenantChargePreference:
        """Lock the tenant's frequency after ``payment`` succeeded.

        Raises:
            PartialFinalizationError: If the preference cannot be saved
        """
        try:
            return self.upsert_preference(payment.user_id, payment.charge_id, chosen_frequency)
        except (SQLAlchemyError, LedgerReadError) as e:
            self.db.rollback()
            logger.error(
                "Payment %s (id=%d) succeeded but preference lock failed for user_id=%s "
                "charge_id=%s; manual reconciliation required: %s",
                payment.reference,
                payment.id,
                payment.user_id,
                payment.charge_id,
                e,
            )
            raise PartialFinalizationError(payment.id, payment.reference) from e

    def finalize_successful_payment(
        self,
        user_id: int,
        charge_id: int,
        chosen_frequency: Any,
        reference: str,
        paid_at: datetime | None = None,
        payment_method: str = "paystack",
        confirmed_by: int | None = None,
        notes: str | None = None,
    ) -> FinalizationResult:
        """Mark the payment successful, then lock the chosen frequency.

        Args:
            user_id: Tenant ID
            charge_id: Charge ID
            chosen_frequency: Frequency the tenant paid at
            reference: Gateway reference of the payment
            paid_at: Settlement time (default: now)
            payment_method: Gateway channel or "manual"
            confirmed_by: Landlord ID for manual confirmations
            notes: Optional payment notes

        Returns:
            FinalizationResult

        Raises:
            InvalidFrequencyError: Before any write, for a bad frequency
            PaymentNotFoundError: No payment has this reference
            ValidationError: Before any write, if the payment belongs to another tenant or charge
            FinalizationError: The payment could not be marked successful
            PartialFinalizationError: Payment succeeded, preference not saved
        """
        frequency = parse_frequency(chosen_frequency)
        existing = self.db.query(Payment).filter(Payment.reference == reference).first()
        if existing is None:
            raise PaymentNotFoundError(reference)
        if existing.user_id != user_id or existing.charge_id != charge_id:
            logger.warning(
                "Payment %s belongs to user_id=%s charge_id=%s, finalize called with user_id=%s charge_id=%s",
                reference,
                existing.user_id,
                existing.charge_id,
                user_id,
                charge_id,
            )
            raise ValidationError(f"Payment {reference} does not belong to this tenant and charge")

        payment = self.mark_payment_successful(
            reference,
            paid_at=paid_at,
            payment_method=payment_method,
            confirmed_by=confirmed_by,
            notes=notes,
        )
        preference = self.lock_after_payment(payment, frequency)

        return FinalizationResult(
            success=True,
            payment_id=payment.id,
            reference=reference,
            chosen_frequency=preference.chosen_frequency,
            locked_at=preference.locked_at,
        )


__all__ = ["FinalizationResult", "PreferenceService", "implied_frequency"]
