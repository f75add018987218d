"""Payment ORM model - one attempt to settle a charge period."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from roomledger.models import Base, BaseModel, enum_type


class PaymentStatus(str, Enum):
    """Payment lifecycle status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    EXPIRED = "expired"


class PaymentType(str, Enum):
    """What the payment settles."""

    CHARGE = "charge"
    RENT = "rent"
    MANUAL = "manual"


class Payment(Base, BaseModel):
    """Model representing a payment for one period (or yearly span) of a charge.

    A monthly payment sets only period_month. A yearly payment sets
    period_month and period_month_end; an end month lower than the start month
    means the span ends in the calendar year after period_year.
    """

    __tablename__ = "payments"

    user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="Tenant who owes the payment",
    )
    charge_id: Mapped[int | None] = mapped_column(
        ForeignKey("charges.id"),
        nullable=True,
        index=True,
        comment="Charge being settled (None for rent and ad-hoc payments)",
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False, comment="Amount in Naira")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NGN")
    status: Mapped[PaymentStatus] = mapped_column(
        enum_type(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    payment_type: Mapped[PaymentType] = mapped_column(
        enum_type(PaymentType, "payment_type"),
        nullable=False,
        default=PaymentType.CHARGE,
    )
    reference: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Gateway reference, unique per payment attempt",
    )

    # Covered period
    period_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period_month_end: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Inclusive end month, set only for yearly payments",
    )
    period_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    period_label: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Settlement
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    manual_confirmation_by: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Landlord who confirmed a manual payment",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_payment_user_charge_status", "user_id", "charge_id", "status"),
        Index("idx_payment_period", "charge_id", "period_year", "period_month"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, user_id={self.user_id}, charge_id={self.charge_id}, "
            f"amount={self.amount}, status={self.status.value}, period='{self.period_label}')>"
        )


__all__ = ["Payment", "PaymentStatus", "PaymentType"]
