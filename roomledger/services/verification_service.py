"""Gateway verification and landlord confirmation of payments."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from roomledger.errors import (
    AlreadyPaidError,
    DuplicatePaymentError,
    FinalizationError,
    PaymentNotFoundError,
    ValidationError,
)
from roomledger.models import Payment, PaymentStatus, PaymentType
from roomledger.services.audit_service import AuditService
from roomledger.services.config import get_settings
from roomledger.services.gateway import PaymentGateway, generate_reference
from roomledger.services.ledger_service import PaymentLedgerService
from roomledger.services.period_service import Period, monthly_period
from roomledger.services.preference_service import (
    FinalizationResult,
    PreferenceService,
    implied_frequency,
)

logger = logging.getLogger(__name__)

CHARGE_SUCCESS_EVENT = "charge.success"
CHARGE_FAILED_EVENT = "charge.failed"

# Gateway transaction statuses after which the reference can never be paid
FAILED_GATEWAY_STATUSES = ("failed",)


@dataclass
class VerificationResult:
    """Outcome of verify_and_finalize or handle_gateway_event."""

    success: bool
    message: str
    payment_type: PaymentType | None = None
    finalization: FinalizationResult | None = None


class VerificationService:
    """Confirms payments with the gateway or on a landlord's word."""

    def __init__(self, db: Session, gateway: PaymentGateway | None = None):
        """Initialize with database session and gateway client."""
        self.db = db
        self.gateway = gateway
        self.ledger = PaymentLedgerService(db)
        self.preferences = PreferenceService(db)

    def verify_and_finalize(self, reference: str, chosen_frequency: Any = None) -> VerificationResult:
        """Verify ``reference`` with the gateway and finalize the payment.

        Charge payments also lock the tenant's frequency: ``chosen_frequency``
        when given, else the frequency implied by the payment's period.

        A reference the gateway reports as failed is marked failed, so the
        next attempt for the period opens a fresh payment.

        Raises:
            ValidationError: Missing reference
            GatewayError: Gateway unreachable
            PaymentNotFoundError: Gateway confirmed an unknown reference
            FinalizationError / PartialFinalizationError: See PreferenceService
        """
        if not reference:
            raise ValidationError("Missing payment reference")
        if self.gateway is None:
            raise ValidationError("No payment gateway configured")

        logger.info("Verifying payment with reference %s", reference)
        verification = self.gateway.verify_transaction(reference)
        if not verification.success:
            logger.warning("Gateway rejected payment %s: %s", reference, verification.message)
            if (
                verification.status in FAILED_GATEWAY_STATUSES
                and self.ledger.get_by_reference(reference) is not None
            ):
                self.preferences.mark_payment_failed(reference)
            return VerificationResult(success=False, message=verification.message)

        payment = self.ledger.get_by_reference(reference)
        if payment is None:
            logger.error("Gateway confirmed %s but no payment record exists", reference)
            raise PaymentNotFoundError(reference)
        if verification.amount is not None and verification.amount != payment.amount:
            logger.warning(
                "Amount mismatch for %s: gateway=%d recorded=%d", reference, verification.amount, payment.amount
            )

        return self._finalize(payment, verification.channel or "paystack", chosen_frequency)

    def handle_gateway_event(self, event: str, data: dict | None) -> VerificationResult:
        """Apply a gateway webhook event ("charge.success" or "charge.failed").

        The caller is responsible for authenticating the event. A success for
        a payment that was already verified is skipped. Other events are
        acknowledged and ignored.

        Raises:
            ValidationError: Event without a reference
            PaymentNotFoundError: Unknown reference
            FinalizationError / PartialFinalizationError: See PreferenceService
        """
        reference = (data or {}).get("reference")
        if event not in (CHARGE_SUCCESS_EVENT, CHARGE_FAILED_EVENT):
            logger.info("Ignoring gateway event %s for %s", event, reference)
            return VerificationResult(success=False, message=f"Event {event} ignored")
        if not reference:
            raise ValidationError("Missing payment reference")

        logger.info("Processing gateway event %s for %s", event, reference)
        if event == CHARGE_FAILED_EVENT:
            payment = self.preferences.mark_payment_failed(reference)
            return VerificationResult(
                success=False,
                message="Payment failed",
                payment_type=payment.payment_type,
            )

        payment = self.ledger.get_by_reference(reference)
        if payment is None:
            logger.error("Gateway event %s for unknown reference %s", event, reference)
            raise PaymentNotFoundError(reference)
        if payment.status == PaymentStatus.SUCCESS and payment.verified_at is not None:
            logger.info("Payment %s already verified, skipping", reference)
            return VerificationResult(
                success=True,
                message="Payment already processed",
                payment_type=payment.payment_type,
            )
        return self._finalize(payment, data.get("channel") or "paystack")

    def _finalize(self, payment: Payment, method: str, chosen_frequency: Any = None) -> VerificationResult:
        if payment.charge_id is None:
            self.preferences.mark_payment_successful(payment.reference, payment_method=method)
            return VerificationResult(
                success=True,
                message="Payment verified successfully",
                payment_type=payment.payment_type,
            )

        finalization = self.preferences.finalize_successful_payment(
            user_id=payment.user_id,
            charge_id=payment.charge_id,
            chosen_frequency=chosen_frequency or implied_frequency(payment),
            reference=payment.reference,
            payment_method=method,
        )
        return VerificationResult(
            success=True,
            message="Payment verified successfully",
            payment_type=payment.payment_type,
            finalization=finalization,
        )

    def confirm_manual_payment(
        self,
        payment_id: int,
        landlord_id: int,
        notes: str | None = None,
    ) -> FinalizationResult:
        """Mark an existing payment paid on the landlord's confirmation.

        Raises:
            PaymentNotFoundError: Unknown payment
            FinalizationError / PartialFinalizationError: See PreferenceService
        """
        payment = self.ledger.get_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)

        notes = notes or "Manually confirmed by landlord"
        logger.info("Landlord %s confirming payment id=%d", landlord_id, payment_id)
        if payment.charge_id is None:
            self.preferences.mark_payment_successful(
                payment.reference, payment_method="manual", confirmed_by=landlord_id, notes=notes
            )
            return FinalizationResult(success=True, payment_id=payment.id, reference=payment.reference)

        return self.preferences.finalize_successful_payment(
            user_id=payment.user_id,
            charge_id=payment.charge_id,
            chosen_frequency=implied_frequency(payment),
            reference=payment.reference,
            payment_method="manual",
            confirmed_by=landlord_id,
            notes=notes,
        )

    def record_manual_payment(
        self,
        landlord_id: int,
        user_id: int,
        amount: int,
        charge_id: int | None = None,
        period: Period | None = None,
        payment_type: PaymentType | None = None,
        notes: str | None = None,
    ) -> FinalizationResult:
        """Record a payment received outside the gateway (cash, transfer).

        A charge payment for a period is refused when any month of the
        period is already paid, and locks the tenant's frequency.

        Raises:
            ValidationError: Non-positive amount
            AlreadyPaidError: Period already covered
            PartialFinalizationError: Payment saved, preference not saved
        """
        if amount <= 0:
            raise ValidationError("Amount must be positive")
        if charge_id is not None and period is not None and period.month is not None:
            paid_month = self.ledger.find_paid_month(user_id, charge_id, period)
            if paid_month is not None:
                raise AlreadyPaidError(monthly_period(*paid_month).label)

        now = datetime.now(timezone.utc)
        reference = generate_reference("MANUAL")
        payment = Payment(
            user_id=user_id,
            charge_id=charge_id,
            amount=amount,
            currency=get_settings().currency,
            status=PaymentStatus.SUCCESS,
            payment_type=payment_type or (PaymentType.CHARGE if charge_id else PaymentType.MANUAL),
            reference=reference,
            period_month=period.month if period else None,
            period_month_end=period.month_end if period else None,
            period_year=period.year if period else None,
            period_label=period.label if period else None,
            paid_at=now,
            verified_at=now,
            payment_method="manual",
            manual_confirmation_by=landlord_id,
            notes=notes or "Manual payment recorded",
        )
        try:
            self.db.add(payment)
            self.db.flush()
            AuditService.log_payment(self.db, payment, "manual_record", actor_id=landlord_id, amount=amount)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicatePaymentError(reference) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to record manual payment for user_id=%s: %s", user_id, e)
            raise FinalizationError("Failed to create payment") from e

        logger.info("Manual payment id=%d recorded by landlord %s for user_id=%s", payment.id, landlord_id, user_id)
        if charge_id is None or period is None:
            return FinalizationResult(success=True, payment_id=payment.id, reference=reference)

        preference = self.preferences.lock_after_payment(payment, implied_frequency(payment))
        return FinalizationResult(
            success=True,
            payment_id=payment.id,
            reference=reference,
            chosen_frequency=preference.chosen_frequency,
            locked_at=preference.locked_at,
        )


__all__ = ["VerificationResult", "VerificationService"]
