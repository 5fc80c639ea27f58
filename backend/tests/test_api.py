from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import TENANT, seed_fleet
from jetski.main import app

client = TestClient(app)

HEADERS = {"X-Tenant-Id": TENANT}
START = "2030-06-01T10:00:00"
END = "2030-06-01T12:00:00"


@pytest.fixture
def fleet(db):
    model, units, customer = seed_fleet(db, units=2)
    ids = {"model": model.id, "units": [u.id for u in units], "customer": customer.id}
    # release the fixture session's read so request sessions can write
    db.rollback()
    return ids


def create(fleet, deposit=False, jetski_id=None, start=START, end=END, headers=HEADERS):
    payload = {
        "model_id": fleet["model"],
        "customer_id": fleet["customer"],
        "start_at": start,
        "end_at": end,
        "jetski_id": jetski_id,
        "deposit_paid": deposit,
        "deposit_amount": "50.00" if deposit else None,
    }
    return client.post("/api/reservations", json=payload, headers=headers)


def test_tenant_header_is_required(fleet):
    res = client.get("/api/reservations")
    assert res.status_code == 422


def test_create_and_fetch_reservation(fleet):
    res = create(fleet, deposit=True)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["status"] == "PENDING"
    assert body["priority"] == "GUARANTEED"
    assert Decimal(str(body["deposit_amount"])) == Decimal("50.00")
    assert body["expires_at"] == "2030-06-01T10:30:00"

    got = client.get(f"/api/reservations/{body['id']}", headers=HEADERS)
    assert got.status_code == 200
    assert got.json()["id"] == body["id"]


def test_capacity_errors_map_to_conflict(fleet):
    assert create(fleet, deposit=True).status_code == 200
    assert create(fleet, deposit=True).status_code == 200
    res = create(fleet, deposit=True)
    assert res.status_code == 409
    assert "Capacity exhausted" in res.json()["detail"]

    params = {"model_id": fleet["model"], "start": START, "end": END, "with_deposit": "false"}
    avail = client.get("/api/reservations/availability", params=params, headers=HEADERS)
    assert avail.status_code == 200
    assert avail.json()["available"] is True

    detail = client.get(
        "/api/reservations/availability/detail",
        params={"model_id": fleet["model"], "start": START, "end": END},
        headers=HEADERS,
    )
    assert detail.status_code == 200
    body = detail.json()
    assert body["guaranteed_count"] == 2
    assert body["max_allowed"] == 3
    assert body["regular_slots"] == 1
    assert body["accepts_with_deposit"] is False


def test_validation_and_not_found(fleet):
    assert create(fleet, start=END, end=START).status_code == 400
    assert client.get("/api/reservations/99999", headers=HEADERS).status_code == 404
    assert client.post("/api/reservations/99999/confirm", headers=HEADERS).status_code == 404


def test_other_tenants_cannot_see_reservations(fleet):
    rid = create(fleet).json()["id"]
    other = {"X-Tenant-Id": "tenant-b"}
    assert client.get(f"/api/reservations/{rid}", headers=other).status_code == 404
    assert client.get("/api/reservations", headers=other).json() == []


def test_lifecycle_endpoints(fleet):
    rid = create(fleet).json()["id"]

    res = client.post(f"/api/reservations/{rid}/deposit", json={"amount": "0"}, headers=HEADERS)
    assert res.status_code == 422
    res = client.post(f"/api/reservations/{rid}/deposit", json={"amount": "40.00"}, headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["priority"] == "GUARANTEED"

    res = client.patch(f"/api/reservations/{rid}", json={"notes": "VIP"}, headers=HEADERS)
    assert res.json()["notes"] == "VIP"

    assert client.post(f"/api/reservations/{rid}/confirm", headers=HEADERS).status_code == 200
    assert client.post(f"/api/reservations/{rid}/confirm", headers=HEADERS).status_code == 409
    # window hasn't started, so the grace period can't have passed
    assert client.post(f"/api/reservations/{rid}/expire", headers=HEADERS).status_code == 409

    res = client.post(
        f"/api/reservations/{rid}/allocate", json={"jetski_id": fleet["units"][0]}, headers=HEADERS
    )
    assert res.status_code == 200
    assert res.json()["jetski_id"] == fleet["units"][0]

    listed = client.get("/api/reservations", params={"status": "CONFIRMED"}, headers=HEADERS)
    assert [r["id"] for r in listed.json()] == [rid]

    assert client.post(f"/api/reservations/{rid}/cancel", headers=HEADERS).status_code == 200
    assert client.get("/api/reservations", headers=HEADERS).json() == []
    assert len(client.get("/api/reservations", params={"active_only": "false"}, headers=HEADERS).json()) == 1


def test_booking_policy_endpoints(fleet):
    res = client.get("/api/booking-policy", headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["grace_period_minutes"] == 30

    res = client.put("/api/booking-policy", json={"grace_period_minutes": 45}, headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["grace_period_minutes"] == 45

    res = client.put("/api/booking-policy", json={"overbooking_factor": "0.5"}, headers=HEADERS)
    assert res.status_code == 400
    assert client.get("/api/booking-policy", headers=HEADERS).json()["grace_period_minutes"] == 45


def test_rental_flow(fleet):
    rid = create(fleet, jetski_id=fleet["units"][0]).json()["id"]
    assert client.post(f"/api/reservations/{rid}/confirm", headers=HEADERS).status_code == 200

    res = client.post("/api/rentals/check-in", json={"reservation_id": rid}, headers=HEADERS)
    assert res.status_code == 200, res.text
    rental = res.json()
    assert rental["status"] == "IN_PROGRESS"
    assert client.get(f"/api/reservations/{rid}", headers=HEADERS).json()["status"] == "FINALIZED"

    res = client.post(f"/api/rentals/{rental['id']}/check-out", json={}, headers=HEADERS)
    assert res.status_code == 200
    assert res.json()["status"] == "COMPLETED"
    assert res.json()["billable_minutes"] == 0

    res = client.post(f"/api/rentals/{rental['id']}/check-out", json={}, headers=HEADERS)
    assert res.status_code == 409


def test_admin_expiration_run(fleet):
    create(fleet)
    res = client.post("/api/admin/expirations/run")
    assert res.status_code == 200
    assert res.json() == {"expired": 0}
