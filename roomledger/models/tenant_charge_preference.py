"""Tenant charge preference model - chosen payment frequency and its lock."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from roomledger.models import Base, BaseModel, enum_type
from roomledger.models.charge import ChargeFrequency


class TenantChargePreference(Base, BaseModel):
    """Per (tenant, charge) frequency choice.

    locked_at is stamped on the first successful payment; from then on the
    chosen frequency is meant to stay fixed for the pair.
    """

    __tablename__ = "tenant_charge_preferences"

    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    charge_id: Mapped[int] = mapped_column(ForeignKey("charges.id"), nullable=False, index=True)
    chosen_frequency: Mapped[ChargeFrequency | None] = mapped_column(
        enum_type(ChargeFrequency, "charge_frequency"),
        nullable=True,
    )
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("tenant_id", "charge_id", name="uq_tenant_charge"),)

    @property
    def is_locked(self) -> bool:
        """Check whether the frequency has been locked by a successful payment."""
        return self.locked_at is not None

    def __repr__(self) -> str:
        frequency = self.chosen_frequency.value if self.chosen_frequency else None
        return (
            f"<TenantChargePreference(tenant_id={self.tenant_id}, charge_id={self.charge_id}, "
            f"chosen_frequency={frequency}, locked_at={self.locked_at})>"
        )


__all__ = ["TenantChargePreference"]
