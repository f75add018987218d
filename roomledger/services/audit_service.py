"""Audit trail for payment state changes and frequency locks.

Operators read it to reconcile a payment whose preference lock was not
saved: the payment carries "finalize" but the tenant has no "lock" entry.
"""

from typing import Any

from sqlalchemy.orm import Session

from roomledger.models import Payment, TenantChargePreference
from roomledger.models.audit_log import AuditLog

PAYMENT_ENTITY = "payment"
PREFERENCE_ENTITY = "preference"


class AuditService:
    """Service for audit log operations.

    Entries are added to the caller's session and committed with the
    caller's transaction, so a rolled-back write leaves no entry behind.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        actor_id: int | None = None,
        changes: dict | None = None,
    ) -> AuditLog:
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=changes,
        )
        db.add(audit)
        return audit

    @staticmethod
    def log_payment(
        db: Session,
        payment: Payment,
        action: str,
        actor_id: int | None = None,
        **changes: Any,
    ) -> AuditLog:
        """Record a payment transition ("create", "finalize", "fail", "manual_confirm", "manual_record").

        The snapshot always carries the payment's reference and its status
        after the transition. The payment must already be flushed.
        """
        snapshot = {"reference": payment.reference, "status": payment.status.value, **changes}
        return AuditService.log(db, PAYMENT_ENTITY, payment.id, action, actor_id=actor_id, changes=snapshot)

    @staticmethod
    def log_lock(db: Session, preference: TenantChargePreference) -> AuditLog:
        """Record the frequency a tenant is locked to for one charge."""
        return AuditService.log(
            db,
            PREFERENCE_ENTITY,
            preference.id,
            "lock",
            changes={
                "tenant_id": preference.tenant_id,
                "charge_id": preference.charge_id,
                "chosen_frequency": preference.chosen_frequency.value,
            },
        )

    @staticmethod
    def payment_history(db: Session, payment_id: int) -> list[AuditLog]:
        """Audit entries of one payment, oldest first."""
        return (
            db.query(AuditLog)
            .filter(AuditLog.entity_type == PAYMENT_ENTITY, AuditLog.entity_id == payment_id)
            .order_by(AuditLog.id.asc())
            .all()
        )


__all__ = ["AuditService", "PAYMENT_ENTITY", "PREFERENCE_ENTITY"]
