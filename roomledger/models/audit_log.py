"""Audit log model for tracking payment and preference lifecycle events."""

from typing import Any

from sqlalchemy import JSON
from sqlalchemy.orm import Mapped, mapped_column

from roomledger.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """Audit log entry for tracking changes to payments and preferences.

    Records who (actor_id) did what (action) to which entity (entity_type, entity_id)
    and optional field snapshots (changes). Operators use it to reconcile
    payments whose preference lock could not be saved.
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(index=False)
    """Entity type being audited: "payment", "preference"."""

    entity_id: Mapped[int] = mapped_column(index=False)
    """Primary key of the entity being audited."""

    action: Mapped[str] = mapped_column(index=False)
    """Action performed: "create", "finalize", "fail", "lock", "manual_confirm", "manual_record"."""

    actor_id: Mapped[int | None] = mapped_column(nullable=True, index=False)
    """Landlord who performed the action. None for tenant and system actions."""

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True, index=False)
    """Optional JSON snapshot of changed fields: {"status": "success", "reference": "..."}."""

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, entity_type={self.entity_type}, entity_id={self.entity_id}, "
            f"action={self.action}, actor_id={self.actor_id}, created_at={self.created_at})>"
        )


__all__ = ["AuditLog"]
