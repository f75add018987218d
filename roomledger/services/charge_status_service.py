"""Charge payment status: reconciles the calendar against the payment ledger.

Periods come from walking the calendar forward from the tenancy start, not
from the payment rows, so a skipped month stays unpaid even when later
months were paid.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from roomledger.errors import ChargeNotFoundError, TenancyNotFoundError, ValidationError
from roomledger.models import Charge, ChargeFrequency, ChargeStatus, Tenancy, TenancyStatus
from roomledger.services.frequency_service import (
    ChargeTerms,
    calculate_payment_amount,
    parse_frequency,
)
from roomledger.services.ledger_service import (
    PaymentLedgerService,
    find_cycle_payment,
    is_month_covered,
)
from roomledger.services.period_service import (
    cycle_containing,
    enumerate_periods,
    yearly_cycles,
)
from roomledger.services.preference_service import PreferenceService

logger = logging.getLogger(__name__)


@dataclass
class PaidPeriod:
    """Period settled by a successful payment."""

    month: int
    year: int
    label: str
    payment_id: int
    paid_at: datetime | None
    month_end: int | None = None


@dataclass
class UnpaidPeriod:
    """Period still owed, priced at the effective frequency."""

    month: int
    year: int
    label: str
    amount: int
    month_end: int | None = None


@dataclass
class ChargePaymentStatus:
    """Derived payment status of one charge for one tenant (never persisted)."""

    charge_id: int
    charge_name: str
    charge_amount: int
    charge_frequency: ChargeFrequency
    chosen_frequency: ChargeFrequency | None
    effective_frequency: ChargeFrequency
    is_locked: bool
    locked_at: datetime | None
    current_period_paid: bool
    paid_periods: list[PaidPeriod] = field(default_factory=list)
    unpaid_periods: list[UnpaidPeriod] = field(default_factory=list)
    next_payment_due: UnpaidPeriod | None = None
    total_arrears: int = 0
    is_up_to_date: bool = True


@dataclass
class TenantChargeSummary:
    """Status of every active charge in the tenant's building."""

    user_id: int
    tenancy_start_date: date
    statuses: list[ChargePaymentStatus]
    total_arrears: int


class ChargeStatusService:
    """Computes ChargePaymentStatus fresh on every call."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.ledger = PaymentLedgerService(db)
        self.preferences = PreferenceService(db)

    def get_charge_payment_status(
        self,
        user_id: int,
        charge_id: int,
        charge_name: str,
        charge_amount: int,
        charge_frequency: Any,
        tenancy_start_date: date | None,
        override_frequency: Any = None,
        today: date | None = None,
    ) -> ChargePaymentStatus:
        """Classify every period from tenancy start to today as paid or unpaid.

        Args:
            user_id: Tenant ID
            charge_id: Charge ID
            charge_name: Charge display name
            charge_amount: Charge amount at its native frequency
            charge_frequency: Native frequency of the charge
            tenancy_start_date: Anchor of the period timeline
            override_frequency: Frequency the tenant is previewing before it locks
            today: Reference date (default: today)

        Returns:
            ChargePaymentStatus

        Raises:
            ValidationError: If tenancy start is missing or a frequency is invalid
            LedgerReadError: If payments cannot be read
        """
        if tenancy_start_date is None:
            raise ValidationError("Tenancy start date is required")
        native = parse_frequency(charge_frequency)
        override = parse_frequency(override_frequency) if override_frequency is not None else None
        today = today or date.today()

        preference = self.preferences.get_preference(user_id, charge_id)
        chosen = preference.chosen_frequency if preference else None
        effective = override or chosen or native

        payments = self.ledger.fetch_successful_payments(user_id, charge_id)
        terms = ChargeTerms(amount=charge_amount, frequency=native)
        period_amount = calculate_payment_amount(terms, effective)

        paid_periods: list[PaidPeriod] = []
        unpaid_periods: list[UnpaidPeriod] = []

        if effective is ChargeFrequency.YEARLY:
            for cycle in yearly_cycles(tenancy_start_date, today):
                payment = find_cycle_payment(cycle, payments)
                if payment is not None:
                    paid_periods.append(
                        PaidPeriod(
                            month=cycle.month,
                            month_end=cycle.month_end,
                            year=cycle.year,
                            label=cycle.label,
                            payment_id=payment.id,
                            paid_at=payment.paid_at,
                        )
                    )
                else:
                    unpaid_periods.append(
                        UnpaidPeriod(
                            month=cycle.month,
                            month_end=cycle.month_end,
                            year=cycle.year,
                            label=cycle.label,
                            amount=period_amount,
                        )
                    )
            current = cycle_containing(tenancy_start_date, today)
            current_period_paid = any(
                p.month == current.month and p.year == current.year for p in paid_periods
            )
        else:
            for period in enumerate_periods(
                tenancy_start_date.month,
                tenancy_start_date.year,
                today.month,
                today.year,
                ChargeFrequency.MONTHLY,
            ):
                payment = is_month_covered(period.month, period.year, payments)
                if payment is not None:
                    paid_periods.append(
                        PaidPeriod(
                            month=period.month,
                            year=period.year,
                            label=period.label,
                            payment_id=payment.id,
                            paid_at=payment.paid_at,
                        )
                    )
                else:
                    unpaid_periods.append(
                        UnpaidPeriod(
                            month=period.month,
                            year=period.year,
                            label=period.label,
                            amount=period_amount,
                        )
                    )
            current_period_paid = any(
                p.month == today.month and p.year == today.year for p in paid_periods
            )

        total_arrears = sum(p.amount for p in unpaid_periods)
        logger.debug(
            "charge_status: user_id=%s charge_id=%s frequency=%s paid=%d unpaid=%d arrears=%d",
            user_id,
            charge_id,
            effective.value,
            len(paid_periods),
            len(unpaid_periods),
            total_arrears,
        )

        return ChargePaymentStatus(
            charge_id=charge_id,
            charge_name=charge_name,
            charge_amount=charge_amount,
            charge_frequency=native,
            chosen_frequency=chosen,
            effective_frequency=effective,
            is_locked=bool(preference and preference.locked_at is not None),
            locked_at=preference.locked_at if preference else None,
            current_period_paid=current_period_paid,
            paid_periods=paid_periods,
            unpaid_periods=unpaid_periods,
            next_payment_due=unpaid_periods[0] if unpaid_periods else None,
            total_arrears=total_arrears,
            is_up_to_date=not unpaid_periods,
        )

    def get_status_for_charge(
        self,
        user_id: int,
        charge_id: int,
        override_frequency: Any = None,
        today: date | None = None,
    ) -> ChargePaymentStatus:
        """Load the charge and the tenant's active tenancy, then compute status.

        Raises:
            ChargeNotFoundError: Unknown charge
            TenancyNotFoundError: Tenant has no active tenancy
        """
        charge = self.db.query(Charge).filter(Charge.id == charge_id).first()
        if charge is None:
            raise ChargeNotFoundError(charge_id)
        tenancy = self.get_active_tenancy(user_id)
        return self.get_charge_payment_status(
            user_id=user_id,
            charge_id=charge.id,
            charge_name=charge.name,
            charge_amount=charge.amount,
            charge_frequency=charge.frequency,
            tenancy_start_date=tenancy.start_date,
            override_frequency=override_frequency,
            today=today,
        )

    def get_tenant_charge_statuses(self, user_id: int, today: date | None = None) -> TenantChargeSummary:
        """Status of every active charge of the tenant's building.

        Raises:
            TenancyNotFoundError: Tenant has no active tenancy
            LedgerReadError: If any charge's payments cannot be read
        """
        tenancy = self.get_active_tenancy(user_id)
        charges = (
            self.db.query(Charge)
            .filter(Charge.building_id == tenancy.building_id, Charge.status == ChargeStatus.ACTIVE)
            .order_by(Charge.name.asc())
            .all()
        )
        statuses = [
            self.get_charge_payment_status(
                user_id=user_id,
                charge_id=charge.id,
                charge_name=charge.name,
                charge_amount=charge.amount,
                charge_frequency=charge.frequency,
                tenancy_start_date=tenancy.start_date,
                today=today,
            )
            for charge in charges
        ]
        return TenantChargeSummary(
            user_id=user_id,
            tenancy_start_date=tenancy.start_date,
            statuses=statuses,
            total_arrears=sum(status.total_arrears for status in statuses),
        )

    def get_active_tenancy(self, user_id: int) -> Tenancy:
        """Most recent active tenancy of the tenant."""
        tenancy = (
            self.db.query(Tenancy)
            .filter(Tenancy.tenant_id == user_id, Tenancy.status == TenancyStatus.ACTIVE)
            .order_by(Tenancy.start_date.desc())
            .first()
        )
        if tenancy is None:
            raise TenancyNotFoundError(user_id)
        return tenancy


__all__ = [
    "ChargePaymentStatus",
    "ChargeStatusService",
    "PaidPeriod",
    "TenantChargeSummary",
    "UnpaidPeriod",
]
