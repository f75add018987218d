"""Charge ORM model - recurring fees defined by a landlord for a building."""

from enum import Enum

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from roomledger.models import Base, BaseModel, enum_type


class ChargeFrequency(str, Enum):
    """Billing cadence of a charge."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


class ChargeStatus(str, Enum):
    """Whether a charge is currently billed to tenants."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Charge(Base, BaseModel):
    """Recurring obligation scoped to a building.

    Amounts are whole Naira. Tenants can only read charges; the landlord
    owns name, amount and frequency.
    """

    __tablename__ = "charges"

    building_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Building the charge applies to",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Display name, e.g. 'Service Charge'")
    amount: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Amount per native period in Naira",
    )
    frequency: Mapped[ChargeFrequency] = mapped_column(
        enum_type(ChargeFrequency, "charge_frequency"),
        nullable=False,
        default=ChargeFrequency.MONTHLY,
    )
    status: Mapped[ChargeStatus] = mapped_column(
        enum_type(ChargeStatus, "charge_status"),
        nullable=False,
        default=ChargeStatus.ACTIVE,
    )

    __table_args__ = (Index("idx_charge_building_status", "building_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<Charge(id={self.id}, name='{self.name}', amount={self.amount}, "
            f"frequency={self.frequency.value})>"
        )


__all__ = ["Charge", "ChargeFrequency", "ChargeStatus"]
