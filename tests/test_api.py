import threading

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from app.api.payments.main import get_payment_service
from app.core.constants import UserRole
from app.core.users import current_active_user
from app.db.engine_sync import get_sync_session
from app.main import app
from app.models.user import User

ADMIN = User(
    email="admin@example.com",
    hashed_password="x",
    username="admin",
    full_name="Office Admin",
    role=UserRole.ADMIN,
)
EMPLOYEE = User(
    email="collector@example.com",
    hashed_password="x",
    username="collector",
    full_name="Field Collector",
    role=UserRole.EMPLOYEE,
)


@pytest.fixture
def acting_user():
    return {"user": ADMIN}


@pytest.fixture
def client(engine, acting_user):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_sync_session] = override_session
    app.dependency_overrides[current_active_user] = lambda: acting_user["user"]
    # No context manager: startup hooks would touch the real database
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def subscribed(client):
    """Creates a package, a customer and one assigned VC through the API."""
    package = client.post("/api/packages", json={"name": "Premium HD", "price": 599}).json()
    customer = client.post(
        "/api/customers", json={"name": "John Smith", "collector_name": "North"}
    ).json()
    created = client.post(
        "/api/vcs/bulk", json={"vc_numbers": ["VC001234"], "package_id": package["id"]}
    )
    assert created.status_code == 201
    vc_id = client.get("/api/vcs").json()[0]["id"]
    assigned = client.post(
        "/api/vcs/assign", json={"vc_ids": [vc_id], "customer_id": customer["id"]}
    )
    assert assigned.status_code == 200
    return customer, vc_id


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_full_billing_cycle(client, subscribed):
    customer, _ = subscribed

    response = client.post("/api/bills/generate", json={"month": "2024-03", "due_days": 15})
    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["bills_generated"] == 1
    bill = body["success"][0]
    assert bill["total_amount"] == 599
    assert bill["bill_due_date"] == "2024-04-15"
    assert bill["vc_breakdown"][0]["vc_number"] == "VC001234"

    payment = client.post(
        "/api/payments",
        json={"customer_id": customer["id"], "amount_paid": 599, "bill_id": bill["id"]},
    )
    assert payment.status_code == 201
    assert payment.json()["collected_by"] == "Office Admin"
    assert payment.json()["receipt_number"].startswith("RCP-")

    assert client.get(f"/api/bills/{bill['id']}").json()["status"] == "paid"
    summary = client.get(f"/api/customers/{customer['id']}/financial-summary").json()
    assert summary["current_os"] == 0
    assert summary["active_vc_count"] == 1


def test_duplicate_generation_conflicts(client, subscribed):
    assert client.post("/api/bills/generate", json={"month": "2024-03"}).status_code == 200
    response = client.post("/api/bills/generate", json={"month": "2024-03"})
    assert response.status_code == 409
    assert response.json()["detail"] == "Bills for 2024-03 already exist"


def test_invalid_month_is_bad_request(client):
    assert client.post("/api/bills/generate", json={"month": "2024-3"}).status_code == 400


def test_employee_cannot_generate_bills(client, acting_user, subscribed):
    acting_user["user"] = EMPLOYEE
    assert client.post("/api/bills/generate", json={"month": "2024-03"}).status_code == 403


def test_employee_collects_payment(client, acting_user, subscribed):
    customer, _ = subscribed
    acting_user["user"] = EMPLOYEE

    response = client.post(
        "/api/payments",
        json={"customer_id": customer["id"], "amount_paid": 100, "payment_method": "online"},
    )

    assert response.status_code == 201
    assert response.json()["collected_by"] == "Field Collector"
    summary = client.get("/api/payments/daily").json()
    assert summary["total_collections"] == 1


def test_payment_errors(client, subscribed):
    customer, _ = subscribed
    zero = client.post("/api/payments", json={"customer_id": customer["id"], "amount_paid": 0})
    assert zero.status_code == 400

    unknown = client.post(
        "/api/payments",
        json={"customer_id": "00000000-0000-0000-0000-000000000000", "amount_paid": 10},
    )
    assert unknown.status_code == 404
    assert client.get("/api/payments").json() == []


def test_payments_summary_has_labels(client, subscribed):
    customer, _ = subscribed
    client.post(
        "/api/payments",
        json={"customer_id": customer["id"], "amount_paid": 50, "payment_method": "bank_transfer"},
    )

    summary = client.get("/api/payments/summary").json()

    assert summary["payments_by_method"]["bank_transfer"]["label"] == "Bank Transfer"
    assert summary["payments_by_employee"]["Office Admin"]["amount"] == 50


def test_vc_conflict_and_reassign(client, subscribed):
    _, vc_id = subscribed
    other = client.post("/api/customers", json={"name": "Sarah Johnson"}).json()

    conflict = client.post("/api/vcs/assign", json={"vc_ids": [vc_id], "customer_id": other["id"]})
    assert conflict.status_code == 409

    moved = client.post(f"/api/vcs/{vc_id}/reassign", json={"customer_id": other["id"]})
    assert moved.status_code == 200
    assert moved.json()["customer_name"] == "Sarah Johnson"
    assert len(moved.json()["ownership_history"]) == 2


def test_vc_validate_and_status(client, subscribed):
    _, vc_id = subscribed

    result = client.post("/api/vcs/validate", json={"vc_numbers": ["VC001234", "VC999"]}).json()
    assert result["unavailable"] == ["VC001234", "VC999"]

    response = client.put(
        f"/api/vcs/{vc_id}/status", json={"status": "maintenance", "reason": "Box swap"}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "maintenance"

    missing = client.put("/api/vcs/999/status", json={"status": "inactive"})
    assert missing.status_code == 404


def test_auto_billing_settings_endpoints(client):
    assert client.get("/api/settings/auto-billing").json()["enabled"] is False

    updated = client.put("/api/settings/auto-billing", json={"enabled": True, "day_of_month": 3})
    assert updated.status_code == 200
    assert updated.json() == {"enabled": True, "day_of_month": 3, "last_run_date": None}

    invalid = client.put("/api/settings/auto-billing", json={"enabled": True, "day_of_month": 40})
    assert invalid.status_code == 422


def test_staff_accounts(client, acting_user):
    created = client.post(
        "/api/users",
        json={
            "email": "anna@example.com",
            "username": "anna",
            "password": "collect-2024",
            "full_name": "Anna Collector",
            "collector_name": "North",
        },
    )
    assert created.status_code == 201
    assert created.json()["role"] == "employee"
    assert created.json()["display_name"] == "Anna Collector"

    weak = client.post(
        "/api/users",
        json={"email": "ben@example.com", "username": "ben", "password": "short"},
    )
    assert weak.status_code == 400

    employees = client.get("/api/users", params={"role": "employee"}).json()
    assert [u["username"] for u in employees] == ["anna"]

    deactivated = client.post(f"/api/users/{created.json()['id']}/deactivate")
    assert deactivated.json()["is_active"] is False

    acting_user["user"] = EMPLOYEE
    assert client.get("/api/users").status_code == 403
    assert client.get("/api/users/me").json()["username"] == "collector"


def test_customer_identity_update_keeps_balances(client, subscribed):
    customer, _ = subscribed
    client.post("/api/bills/generate", json={"month": "2024-03"})

    response = client.put(
        f"/api/customers/{customer['id']}",
        json={"phone_number": "+1 555 0100", "current_outstanding": 0},
    )

    assert response.status_code == 200
    assert response.json()["phone_number"] == "+1 555 0100"
    assert response.json()["current_outstanding"] == 599


def test_payments_summary_accepts_utc_offsets(client, subscribed):
    customer, _ = subscribed
    client.post(
        "/api/payments",
        json={
            "customer_id": customer["id"],
            "amount_paid": 75,
            "paid_at": "2024-03-01T10:00:00+05:30",
        },
    )

    ranged = client.get(
        "/api/payments/summary",
        params={"start": "2024-03-01T04:00:00Z", "end": "2024-03-01T05:00:00Z"},
    )
    assert ranged.status_code == 200
    assert ranged.json()["total_amount"] == 75

    later = client.get("/api/payments/summary", params={"start": "2024-03-01T04:31:00Z"})
    assert later.json()["total_payments"] == 0


def test_sub_cent_payment_is_bad_request(client, subscribed):
    customer, _ = subscribed
    response = client.post(
        "/api/payments", json={"customer_id": customer["id"], "amount_paid": 0.004}
    )
    assert response.status_code == 400
    assert client.get("/api/payments").json() == []


def test_failed_payment_write_is_bad_request(client, subscribed):
    customer, _ = subscribed

    class LockedPaymentService:
        def collect_payment(self, payment_data, collected_by):
            raise ValueError("Database error: database is locked")

    app.dependency_overrides[get_payment_service] = LockedPaymentService
    response = client.post(
        "/api/payments", json={"customer_id": customer["id"], "amount_paid": 10}
    )
    assert response.status_code == 400
    assert "locked" in response.json()["detail"]


def test_generic_settings_cannot_touch_auto_billing(client):
    assert client.put("/api/settings", json={"company_name": "City Cable"}).status_code == 204
    assert client.get("/api/settings").json()["company_name"] == "City Cable"

    forged = client.put(
        "/api/settings",
        json={"auto_billing_last_run": "2099-01-01T00:00:00", "company_name": "Other"},
    )
    assert forged.status_code == 400
    stored = client.get("/api/settings").json()
    assert "auto_billing_last_run" not in stored
    assert stored["company_name"] == "City Cable"


def test_startup_runs_billing_check_off_the_event_loop(monkeypatch):
    from app import main

    threads = {}

    async def fake_create_db_and_tables():
        threads["loop"] = threading.current_thread()

    def fake_billing_check():
        threads["check"] = threading.current_thread()
        return False

    monkeypatch.setattr(main, "create_db_and_tables", fake_create_db_and_tables)
    monkeypatch.setattr(main, "create_sync_db_and_tables", lambda: None)
    monkeypatch.setattr(main, "run_auto_billing_check", fake_billing_check)

    with TestClient(app):
        pass

    assert threads["check"] is not threads["loop"]
