"""Contract tests for the charge payment API endpoints."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from roomledger.api.app import app
from roomledger.models import Payment, PaymentStatus, Tenancy
from roomledger.services.db import get_db
from roomledger.services.gateway import GatewayVerification, get_gateway
from conftest import BUILDING_ID, TENANT_ID

TODAY = date.today()
LAST_YEAR = TODAY.year - 1


@pytest.fixture
def client(db_session, gateway):
    """Test client bound to the test session and fake gateway."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def recent_tenancy(db_session) -> Tenancy:
    """Tenancy starting in January of last year."""
    tenancy = Tenancy(tenant_id=TENANT_ID, building_id=BUILDING_ID, start_date=date(LAST_YEAR, 1, 10))
    db_session.add(tenancy)
    db_session.commit()
    return tenancy


class TestChargeStatusEndpoint:
    """Test GET /api/charges/{charge_id}/status."""

    def test_yearly_charge_status(self, client, yearly_charge, recent_tenancy):
        response = client.get(f"/api/charges/{yearly_charge.id}/status", params={"user_id": TENANT_ID})

        assert response.status_code == 200
        data = response.json()
        assert data["charge_name"] == "Service Charge"
        assert data["charge_frequency"] == "yearly"
        assert data["effective_frequency"] == "yearly"
        assert data["chosen_frequency"] is None
        assert data["is_locked"] is False
        assert [p["label"] for p in data["unpaid_periods"]] == [
            f"{LAST_YEAR} Annual (Jan-Dec)",
            f"{TODAY.year} Annual (Jan-Dec)",
        ]
        assert data["total_arrears"] == 900000
        assert data["next_payment_due"]["year"] == LAST_YEAR
        assert data["current_period_paid"] is False

    def test_frequency_preview(self, client, yearly_charge, recent_tenancy):
        response = client.get(
            f"/api/charges/{yearly_charge.id}/status",
            params={"user_id": TENANT_ID, "frequency": "monthly"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["effective_frequency"] == "monthly"
        assert len(data["unpaid_periods"]) == 12 + TODAY.month
        assert data["unpaid_periods"][0]["amount"] == 37500

    def test_invalid_frequency(self, client, yearly_charge, recent_tenancy):
        response = client.get(
            f"/api/charges/{yearly_charge.id}/status",
            params={"user_id": TENANT_ID, "frequency": "weekly"},
        )

        assert response.status_code == 422

    def test_unknown_charge(self, client, recent_tenancy):
        response = client.get("/api/charges/999/status", params={"user_id": TENANT_ID})

        assert response.status_code == 404
        assert response.json()["detail"]["error"]["code"] == "charge_not_found"

    def test_no_tenancy(self, client, yearly_charge):
        response = client.get(f"/api/charges/{yearly_charge.id}/status", params={"user_id": TENANT_ID})

        assert response.status_code == 404
        assert response.json()["detail"]["error"]["code"] == "tenancy_not_found"


class TestTenantChargesEndpoint:
    def test_lists_building_charges(self, client, yearly_charge, monthly_charge, recent_tenancy):
        response = client.get(f"/api/charges/tenant/{TENANT_ID}")

        assert response.status_code == 200
        data = response.json()
        assert [s["charge_name"] for s in data["statuses"]] == ["Electricity", "Service Charge"]
        assert data["tenancy_start_date"] == f"{LAST_YEAR}-01-10"
        assert data["total_arrears"] == 900000 + (12 + TODAY.month) * 5000


class TestCreatePaymentEndpoint:
    """Test POST /api/charges/{charge_id}/payments."""

    def test_creates_pending_payment(self, client, db_session, yearly_charge, recent_tenancy):
        response = client.post(
            f"/api/charges/{yearly_charge.id}/payments",
            json={"user_id": TENANT_ID, "frequency": "monthly", "period": {"month": 2, "year": LAST_YEAR}},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["reference"] == "CHARGE_TEST_1"
        assert data["reused"] is False
        assert data["amount"] == 37500
        assert data["period_label"] == f"February {LAST_YEAR}"
        payment = db_session.query(Payment).filter_by(reference="CHARGE_TEST_1").one()
        assert payment.status == PaymentStatus.PENDING

    def test_second_attempt_reuses_reference(self, client, yearly_charge, recent_tenancy):
        body = {"user_id": TENANT_ID, "frequency": "yearly", "period": {"month": 1, "year": LAST_YEAR, "month_end": 12}}

        first = client.post(f"/api/charges/{yearly_charge.id}/payments", json=body)
        second = client.post(f"/api/charges/{yearly_charge.id}/payments", json=body)

        assert first.json()["reference"] == "CHARGE_TEST_1"
        assert second.status_code == 201
        assert second.json()["reference"] == "CHARGE_TEST_1"
        assert second.json()["reused"] is True
        assert second.json()["period_label"] == f"{LAST_YEAR} Annual (Jan-Dec)"

    def test_already_paid(self, client, yearly_charge, recent_tenancy, make_payment):
        make_payment(yearly_charge, 1, LAST_YEAR, month_end=12)

        response = client.post(
            f"/api/charges/{yearly_charge.id}/payments",
            json={"user_id": TENANT_ID, "frequency": "monthly", "period": {"month": 5, "year": LAST_YEAR}},
        )

        assert response.status_code == 409
        assert response.json()["detail"]["error"]["code"] == "already_paid"

    def test_rejects_bad_period(self, client, yearly_charge, recent_tenancy):
        response = client.post(
            f"/api/charges/{yearly_charge.id}/payments",
            json={"user_id": TENANT_ID, "frequency": "monthly", "period": {"month": 13, "year": LAST_YEAR}},
        )

        assert response.status_code == 422


class TestVerifyPaymentEndpoint:
    """Test POST /api/charges/payments/verify."""

    def test_verifies_and_locks(self, client, yearly_charge, recent_tenancy, make_payment):
        payment = make_payment(yearly_charge, 3, LAST_YEAR, status=PaymentStatus.PENDING, amount=37500)

        response = client.post("/api/charges/payments/verify", json={"reference": payment.reference})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["preference_saved"] is True
        assert data["chosen_frequency"] == "monthly"
        assert data["payment_type"] == "charge"

        status = client.get(f"/api/charges/{yearly_charge.id}/status", params={"user_id": TENANT_ID}).json()
        assert status["is_locked"] is True
        assert status["effective_frequency"] == "monthly"
        assert f"March {LAST_YEAR}" in [p["label"] for p in status["paid_periods"]]

    def test_gateway_rejection(self, client, gateway, yearly_charge, recent_tenancy, make_payment):
        gateway.verification = GatewayVerification(success=False, message="Transaction was abandoned")
        payment = make_payment(yearly_charge, 3, LAST_YEAR, status=PaymentStatus.PENDING)

        response = client.post("/api/charges/payments/verify", json={"reference": payment.reference})

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["message"] == "Transaction was abandoned"

    def test_unknown_reference(self, client):
        response = client.post("/api/charges/payments/verify", json={"reference": "CHARGE_missing"})

        assert response.status_code == 404

    def test_empty_reference(self, client):
        response = client.post("/api/charges/payments/verify", json={"reference": ""})

        assert response.status_code == 422

    def test_failed_payment_is_not_offered_again(self, client, gateway, yearly_charge, recent_tenancy):
        body = {"user_id": TENANT_ID, "frequency": "monthly", "period": {"month": 3, "year": LAST_YEAR}}
        first = client.post(f"/api/charges/{yearly_charge.id}/payments", json=body).json()
        gateway.verification = GatewayVerification(success=False, message="Declined", status="failed")

        response = client.post("/api/charges/payments/verify", json={"reference": first["reference"]})
        retry = client.post(f"/api/charges/{yearly_charge.id}/payments", json=body).json()

        assert response.json()["success"] is False
        assert retry["reused"] is False
        assert retry["reference"] == "CHARGE_TEST_2"


class TestGatewayWebhookEndpoint:
    """Test POST /api/charges/payments/webhook."""

    def test_charge_success(self, client, db_session, yearly_charge, recent_tenancy, make_payment):
        payment = make_payment(yearly_charge, 1, LAST_YEAR, month_end=12, status=PaymentStatus.PENDING)

        response = client.post(
            "/api/charges/payments/webhook",
            json={"event": "charge.success", "data": {"reference": payment.reference, "channel": "card"}},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["chosen_frequency"] == "yearly"
        assert db_session.query(Payment).filter_by(reference=payment.reference).one().status == PaymentStatus.SUCCESS
        status = client.get(f"/api/charges/{yearly_charge.id}/status", params={"user_id": TENANT_ID}).json()
        assert status["is_locked"] is True

    def test_charge_failed(self, client, db_session, monthly_charge, recent_tenancy, make_payment):
        payment = make_payment(monthly_charge, 2, LAST_YEAR, status=PaymentStatus.PENDING)

        response = client.post(
            "/api/charges/payments/webhook",
            json={"event": "charge.failed", "data": {"reference": payment.reference}},
        )

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert db_session.query(Payment).filter_by(reference=payment.reference).one().status == PaymentStatus.FAILED

    def test_other_event_is_acknowledged(self, client):
        response = client.post(
            "/api/charges/payments/webhook",
            json={"event": "transfer.success", "data": {"reference": "TRF_1"}},
        )

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_missing_reference(self, client):
        response = client.post("/api/charges/payments/webhook", json={"event": "charge.success", "data": {}})

        assert response.status_code == 400

    def test_unknown_reference(self, client):
        response = client.post(
            "/api/charges/payments/webhook",
            json={"event": "charge.failed", "data": {"reference": "CHARGE_missing"}},
        )

        assert response.status_code == 404


class TestManualPaymentEndpoint:
    def test_confirms_existing_payment(self, client, monthly_charge, recent_tenancy, make_payment):
        payment = make_payment(monthly_charge, 1, LAST_YEAR, status=PaymentStatus.PENDING)

        response = client.post("/api/charges/payments/manual", json={"landlord_id": 99, "payment_id": payment.id})

        assert response.status_code == 200
        assert response.json()["payment_id"] == payment.id
        assert response.json()["chosen_frequency"] == "monthly"

    def test_records_new_payment(self, client, monthly_charge, recent_tenancy):
        response = client.post(
            "/api/charges/payments/manual",
            json={
                "landlord_id": 99,
                "user_id": TENANT_ID,
                "amount": 5000,
                "charge_id": monthly_charge.id,
                "period": {"month": 1, "year": LAST_YEAR},
            },
        )

        assert response.status_code == 200
        assert response.json()["reference"].startswith("MANUAL_")

    def test_missing_parameters(self, client):
        response = client.post("/api/charges/payments/manual", json={"landlord_id": 99})

        assert response.status_code == 400
        assert response.json()["detail"]["error"]["code"] == "validation_error"


class TestHealthEndpoint:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
