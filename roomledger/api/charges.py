"""Charge payment API endpoints used by the tenant and landlord dashboards."""

import logging
import time
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from roomledger.errors import (
    AppError,
    ChargeNotFoundError,
    PartialFinalizationError,
    ValidationError,
    raise_app_error,
)
from roomledger.models import Charge, ChargeFrequency, PaymentType
from roomledger.services.charge_status_service import ChargeStatusService
from roomledger.services.db import get_db
from roomledger.services.gateway import PaymentGateway, get_gateway
from roomledger.services.payment_record_service import PaymentRecordService
from roomledger.services.period_service import Period, monthly_period, yearly_period
from roomledger.services.verification_service import VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/charges", tags=["charges"])


# Response schemas
class PaidPeriodResponse(BaseModel):
    month: int
    month_end: int | None = None
    year: int
    label: str
    payment_id: int
    paid_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UnpaidPeriodResponse(BaseModel):
    month: int
    month_end: int | None = None
    year: int
    label: str
    amount: int

    model_config = ConfigDict(from_attributes=True)


class ChargeStatusResponse(BaseModel):
    """Response schema for a charge's payment status."""

    charge_id: int
    charge_name: str
    charge_amount: int
    charge_frequency: ChargeFrequency
    chosen_frequency: ChargeFrequency | None = None
    effective_frequency: ChargeFrequency
    is_locked: bool
    locked_at: datetime | None = None
    current_period_paid: bool
    paid_periods: list[PaidPeriodResponse]
    unpaid_periods: list[UnpaidPeriodResponse]
    next_payment_due: UnpaidPeriodResponse | None = None
    total_arrears: int
    is_up_to_date: bool

    model_config = ConfigDict(from_attributes=True)


class TenantChargesResponse(BaseModel):
    user_id: int
    tenancy_start_date: date
    statuses: list[ChargeStatusResponse]
    total_arrears: int

    model_config = ConfigDict(from_attributes=True)


# Request schemas
class PeriodRequest(BaseModel):
    """A period picked from the arrears list; month_end marks a yearly span."""

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    month_end: int | None = Field(default=None, ge=1, le=12)

    def to_period(self) -> Period:
        if self.month_end is None:
            return monthly_period(self.month, self.year)
        return yearly_period(self.month, self.year)


class CreatePaymentRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    frequency: ChargeFrequency
    period: PeriodRequest | None = None


class CreatePaymentResponse(BaseModel):
    success: bool
    reference: str
    reused: bool
    payment_id: int | None = None
    amount: int
    period_label: str


class VerifyPaymentRequest(BaseModel):
    reference: str = Field(..., min_length=1, max_length=100)
    frequency: ChargeFrequency | None = None


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str
    payment_type: PaymentType | None = None
    preference_saved: bool = True
    chosen_frequency: ChargeFrequency | None = None


class GatewayEventRequest(BaseModel):
    """Webhook body as posted by the gateway; only event and data.reference are read."""

    event: str = Field(..., min_length=1, max_length=100)
    data: dict = Field(default_factory=dict)


class ManualPaymentRequest(BaseModel):
    """Either payment_id (confirm existing) or user_id + amount (record new)."""

    landlord_id: int = Field(..., gt=0)
    payment_id: int | None = Field(default=None, gt=0)
    user_id: int | None = Field(default=None, gt=0)
    amount: int | None = Field(default=None, gt=0)
    charge_id: int | None = Field(default=None, gt=0)
    period: PeriodRequest | None = None
    payment_type: PaymentType | None = None
    notes: str | None = Field(default=None, max_length=1000)


class ManualPaymentResponse(BaseModel):
    success: bool
    payment_id: int
    reference: str
    chosen_frequency: ChargeFrequency | None = None


@router.get("/tenant/{user_id}", response_model=TenantChargesResponse)
def get_tenant_charges(user_id: int, db: Session = Depends(get_db)) -> TenantChargesResponse:
    """Status of every active charge in the tenant's building."""
    start_time = time.time()
    try:
        summary = ChargeStatusService(db).get_tenant_charge_statuses(user_id)
    except AppError as e:
        raise_app_error(e)
    logger.debug(
        "charges.tenant: user_id=%d charges=%d duration_ms=%d",
        user_id,
        len(summary.statuses),
        int((time.time() - start_time) * 1000),
    )
    return TenantChargesResponse.model_validate(summary)


@router.get("/{charge_id}/status", response_model=ChargeStatusResponse)
def get_charge_status(
    charge_id: int,
    user_id: int = Query(..., gt=0),
    frequency: ChargeFrequency | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ChargeStatusResponse:
    """Payment status of one charge, optionally previewed at another frequency."""
    try:
        status = ChargeStatusService(db).get_status_for_charge(
            user_id, charge_id, override_frequency=frequency
        )
    except AppError as e:
        raise_app_error(e)
    return ChargeStatusResponse.model_validate(status)


@router.post("/{charge_id}/payments", response_model=CreatePaymentResponse, status_code=201)
def create_payment(
    charge_id: int,
    body: CreatePaymentRequest,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
) -> CreatePaymentResponse:
    """Open a pending payment, or reuse the pending one for the same period."""
    try:
        charge = db.query(Charge).filter(Charge.id == charge_id).first()
        if charge is None:
            raise ChargeNotFoundError(charge_id)
        tenancy = ChargeStatusService(db).get_active_tenancy(body.user_id)
        result = PaymentRecordService(db).create_payment_record(
            user_id=body.user_id,
            charge=charge,
            requested_frequency=body.frequency,
            reference=gateway.generate_reference(),
            period=body.period.to_period() if body.period else None,
            tenancy_start=tenancy.start_date,
        )
    except AppError as e:
        raise_app_error(e)

    return CreatePaymentResponse(
        success=result.success,
        reference=result.gateway_reference,
        reused=result.existing_reference is not None,
        payment_id=result.payment_id,
        amount=result.amount,
        period_label=result.period.label,
    )


@router.post("/payments/verify", response_model=VerifyPaymentResponse)
def verify_payment(
    body: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
) -> VerifyPaymentResponse:
    """Verify a gateway reference and finalize the payment.

    A payment that succeeded but whose preference could not be saved is
    reported with success=True and preference_saved=False.
    """
    try:
        result = VerificationService(db, gateway).verify_and_finalize(body.reference, body.frequency)
    except PartialFinalizationError as e:
        return VerifyPaymentResponse(success=True, message=e.message, preference_saved=False)
    except AppError as e:
        raise_app_error(e)

    return VerifyPaymentResponse(
        success=result.success,
        message=result.message,
        payment_type=result.payment_type,
        chosen_frequency=result.finalization.chosen_frequency if result.finalization else None,
    )


@router.post("/payments/webhook", response_model=VerifyPaymentResponse)
def gateway_webhook(body: GatewayEventRequest, db: Session = Depends(get_db)) -> VerifyPaymentResponse:
    """Apply a charge.success or charge.failed event pushed by the gateway."""
    try:
        result = VerificationService(db).handle_gateway_event(body.event, body.data)
    except PartialFinalizationError as e:
        return VerifyPaymentResponse(success=True, message=e.message, preference_saved=False)
    except AppError as e:
        raise_app_error(e)

    return VerifyPaymentResponse(
        success=result.success,
        message=result.message,
        payment_type=result.payment_type,
        chosen_frequency=result.finalization.chosen_frequency if result.finalization else None,
    )


@router.post("/payments/manual", response_model=ManualPaymentResponse)
def manual_payment(body: ManualPaymentRequest, db: Session = Depends(get_db)) -> ManualPaymentResponse:
    """Landlord confirms an existing payment or records one received offline."""
    service = VerificationService(db)
    try:
        if body.payment_id is not None:
            result = service.confirm_manual_payment(body.payment_id, body.landlord_id, body.notes)
        elif body.user_id is not None and body.amount is not None:
            result = service.record_manual_payment(
                landlord_id=body.landlord_id,
                user_id=body.user_id,
                amount=body.amount,
                charge_id=body.charge_id,
                period=body.period.to_period() if body.period else None,
                payment_type=body.payment_type,
                notes=body.notes,
            )
        else:
            raise ValidationError("Missing required parameters")
    except AppError as e:
        raise_app_error(e)

    return ManualPaymentResponse(
        success=result.success,
        payment_id=result.payment_id,
        reference=result.reference,
        chosen_frequency=result.chosen_frequency,
    )
