"""Unit tests for pending payment creation."""

from datetime import date

import pytest

from roomledger.errors import AlreadyPaidError, DuplicatePaymentError, InvalidFrequencyError
from roomledger.models import AuditLog, Payment, PaymentStatus, PaymentType
from roomledger.services.payment_record_service import PaymentRecordService
from roomledger.services.period_service import monthly_period, yearly_period
from conftest import TENANT_ID


class TestCreatePaymentRecord:
    """Test create_payment_record."""

    def test_creates_pending_payment(self, db_session, yearly_charge):
        result = PaymentRecordService(db_session).create_payment_record(
            TENANT_ID, yearly_charge, "monthly", "CHARGE_1", period=monthly_period(6, 2025)
        )

        assert result.success is True
        assert result.reference == "CHARGE_1"
        assert result.existing_reference is None
        assert result.gateway_reference == "CHARGE_1"
        assert result.amount == 37500
        payment = db_session.query(Payment).filter_by(reference="CHARGE_1").one()
        assert payment.id == result.payment_id
        assert payment.status == PaymentStatus.PENDING
        assert payment.payment_type == PaymentType.CHARGE
        assert payment.currency == "NGN"
        assert (payment.period_month, payment.period_month_end, payment.period_year) == (6, None, 2025)
        assert payment.period_label == "June 2025"
        assert db_session.query(AuditLog).filter_by(action="create", entity_id=payment.id).count() == 1

    def test_default_yearly_period_from_tenancy(self, db_session, yearly_charge):
        result = PaymentRecordService(db_session).create_payment_record(
            TENANT_ID,
            yearly_charge,
            "yearly",
            "CHARGE_1",
            tenancy_start=date(2024, 1, 15),
            today=date(2024, 6, 1),
        )

        assert result.amount == 450000
        assert (result.period.month, result.period.month_end, result.period.year) == (1, 12, 2024)
        assert result.period.label == "2024 Annual (Jan-Dec)"

    def test_default_monthly_period_is_current_month(self, db_session, monthly_charge):
        result = PaymentRecordService(db_session).create_payment_record(
            TENANT_ID, monthly_charge, "monthly", "CHARGE_1", today=date(2025, 3, 9)
        )

        assert result.period.label == "March 2025"
        assert result.amount == 5000

    def test_reuses_pending_payment(self, db_session, monthly_charge):
        """A second attempt for the same period returns the first reference."""
        service = PaymentRecordService(db_session)
        first = service.create_payment_record(
            TENANT_ID, monthly_charge, "monthly", "CHARGE_1", period=monthly_period(5, 2025)
        )

        second = service.create_payment_record(
            TENANT_ID, monthly_charge, "monthly", "CHARGE_2", period=monthly_period(5, 2025)
        )

        assert second.success is True
        assert second.reference is None
        assert second.existing_reference == "CHARGE_1"
        assert second.gateway_reference == "CHARGE_1"
        assert second.payment_id == first.payment_id
        assert db_session.query(Payment).count() == 1

    def test_already_paid_month(self, db_session, monthly_charge, make_payment):
        make_payment(monthly_charge, 1, 2024)

        with pytest.raises(AlreadyPaidError) as exc_info:
            PaymentRecordService(db_session).create_payment_record(
                TENANT_ID, monthly_charge, "monthly", "CHARGE_1", period=monthly_period(1, 2024)
            )

        assert exc_info.value.period_label == "January 2024"
        assert exc_info.value.http_status == 409
        assert db_session.query(Payment).filter_by(reference="CHARGE_1").count() == 0

    def test_yearly_period_overlapping_paid_month(self, db_session, yearly_charge, make_payment):
        """A paid month inside a requested year blocks the yearly payment."""
        make_payment(yearly_charge, 3, 2025, amount=37500)

        with pytest.raises(AlreadyPaidError, match="March 2025 is already paid"):
            PaymentRecordService(db_session).create_payment_record(
                TENANT_ID, yearly_charge, "yearly", "CHARGE_1", period=yearly_period(1, 2025)
            )

    def test_month_inside_paid_span(self, db_session, monthly_charge, make_payment):
        make_payment(monthly_charge, 9, 2024, month_end=8, amount=60000)

        with pytest.raises(AlreadyPaidError):
            PaymentRecordService(db_session).create_payment_record(
                TENANT_ID, monthly_charge, "monthly", "CHARGE_1", period=monthly_period(2, 2025)
            )

    def test_duplicate_reference(self, db_session, monthly_charge, make_payment):
        make_payment(monthly_charge, 1, 2025, status=PaymentStatus.PENDING, reference="CHARGE_DUP")

        with pytest.raises(DuplicatePaymentError) as exc_info:
            PaymentRecordService(db_session).create_payment_record(
                TENANT_ID, monthly_charge, "monthly", "CHARGE_DUP", period=monthly_period(2, 2025)
            )

        assert exc_info.value.reference == "CHARGE_DUP"
        assert db_session.query(Payment).count() == 1

    def test_invalid_frequency(self, db_session, monthly_charge):
        with pytest.raises(InvalidFrequencyError):
            PaymentRecordService(db_session).create_payment_record(
                TENANT_ID, monthly_charge, "fortnightly", "CHARGE_1"
            )

        assert db_session.query(Payment).count() == 0


class TestPendingReuseAcrossFrequencies:
    """A pending payment is reused only for the identical period."""

    def test_yearly_request_ignores_pending_month(self, db_session, yearly_charge):
        service = PaymentRecordService(db_session)
        monthly = service.create_payment_record(
            TENANT_ID, yearly_charge, "monthly", "CHARGE_M", period=monthly_period(3, 2025)
        )

        yearly = service.create_payment_record(
            TENANT_ID, yearly_charge, "yearly", "CHARGE_Y", period=yearly_period(3, 2025)
        )

        assert monthly.amount == 37500
        assert yearly.existing_reference is None
        assert yearly.reference == "CHARGE_Y"
        assert yearly.amount == 450000
        assert db_session.query(Payment).count() == 2

    def test_monthly_request_ignores_pending_year(self, db_session, yearly_charge):
        service = PaymentRecordService(db_session)
        service.create_payment_record(TENANT_ID, yearly_charge, "yearly", "CHARGE_Y", period=yearly_period(3, 2025))

        monthly = service.create_payment_record(
            TENANT_ID, yearly_charge, "monthly", "CHARGE_M", period=monthly_period(3, 2025)
        )

        assert monthly.existing_reference is None
        assert monthly.gateway_reference == "CHARGE_M"
        assert monthly.amount == 37500

    def test_same_yearly_period_is_reused(self, db_session, yearly_charge):
        service = PaymentRecordService(db_session)
        service.create_payment_record(TENANT_ID, yearly_charge, "yearly", "CHARGE_Y", period=yearly_period(3, 2025))

        again = service.create_payment_record(
            TENANT_ID, yearly_charge, "yearly", "CHARGE_Y2", period=yearly_period(3, 2025)
        )

        assert again.existing_reference == "CHARGE_Y"
        assert again.amount == 450000

    def test_failed_payment_is_not_reused(self, db_session, monthly_charge, make_payment):
        make_payment(monthly_charge, 4, 2025, status=PaymentStatus.FAILED, reference="CHARGE_DEAD")

        result = PaymentRecordService(db_session).create_payment_record(
            TENANT_ID, monthly_charge, "monthly", "CHARGE_NEW", period=monthly_period(4, 2025)
        )

        assert result.existing_reference is None
        assert result.reference == "CHARGE_NEW"
