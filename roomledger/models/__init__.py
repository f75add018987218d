"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


def enum_type(enum_cls: type[Enum], name: str) -> SQLEnum:
    """Enum column type persisting member values ("monthly") instead of names."""
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from roomledger.models.audit_log import AuditLog  # noqa: E402
from roomledger.models.charge import Charge, ChargeFrequency, ChargeStatus  # noqa: E402
from roomledger.models.payment import Payment, PaymentStatus, PaymentType  # noqa: E402
from roomledger.models.tenancy import Tenancy, TenancyStatus  # noqa: E402
from roomledger.models.tenant_charge_preference import TenantChargePreference  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "enum_type",
    "AuditLog",
    "Charge",
    "ChargeFrequency",
    "ChargeStatus",
    "Payment",
    "PaymentStatus",
    "PaymentType",
    "Tenancy",
    "TenancyStatus",
    "TenantChargePreference",
]
