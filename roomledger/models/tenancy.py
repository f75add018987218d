"""Tenancy ORM model - the tenant's occupancy of a building."""

from datetime import date
from enum import Enum

from sqlalchemy import Date, Integer
from sqlalchemy.orm import Mapped, mapped_column

from roomledger.models import Base, BaseModel, enum_type


class TenancyStatus(str, Enum):
    """Tenancy status enumeration."""

    ACTIVE = "active"
    ENDED = "ended"


class Tenancy(Base, BaseModel):
    """Occupancy record maintained by the tenancy workflow.

    Reconciliation only reads start_date (the anchor for period enumeration)
    and building_id (which charges apply).
    """

    __tablename__ = "tenancies"

    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    building_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[TenancyStatus] = mapped_column(
        enum_type(TenancyStatus, "tenancy_status"),
        nullable=False,
        default=TenancyStatus.ACTIVE,
    )

    def __repr__(self) -> str:
        return (
            f"<Tenancy(id={self.id}, tenant_id={self.tenant_id}, building_id={self.building_id}, "
            f"start_date={self.start_date}, status={self.status.value})>"
        )


__all__ = ["Tenancy", "TenancyStatus"]
