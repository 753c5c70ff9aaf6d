# backend/tests/test_api_endpoints.py
from __future__ import annotations

from datetime import datetime

from taskengine.models import Assignment, Client, Package, SiteAsset, Task


def _seed_client(session_factory, *, status: str = "qc_approved") -> int:
    db = session_factory()
    try:
        pkg = Package(name="Starter", total_months=1)
        client = Client(
            name="Acme",
            package=pkg,
            start_date=datetime(2024, 1, 1, 9, 0),
            due_date=datetime(2024, 2, 1, 9, 0),
        )
        db.add_all([pkg, client])
        db.flush()
        asset = SiteAsset(name="Instagram", type="social_site", default_posting_frequency=2)
        db.add(asset)
        db.flush()
        a = Assignment(client_id=client.id)
        db.add(a)
        db.flush()
        db.add(Task(assignment_id=a.id, client_id=client.id, asset_id=asset.id, name="Instagram", status=status))
        db.commit()
        return int(client.id)
    finally:
        db.close()


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers.get("X-Request-ID")


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


def test_due_date_endpoint(client):
    r = client.post("/api/cadence/due-date", json={"anchor": "2024-01-01T00:00:00", "cycle_number": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["mode"] == "initial"
    assert body["due_date"] == "2024-01-22T00:00:00"

    r = client.post(
        "/api/cadence/due-date",
        json={"anchor": "2024-01-01T00:00:00", "cycle_number": -5, "mode": "renewal"},
    )
    assert r.status_code == 200
    assert r.json()["cycle_number"] == 1
    assert r.json()["due_date"] == "2024-01-02T00:00:00"


def test_series_endpoint_by_count_and_end(client):
    r = client.post("/api/cadence/series", json={"anchor": "2024-01-01T00:00:00", "count": 3, "mode": "renewal"})
    assert r.status_code == 200
    items = r.json()["items"]
    assert [i["cycle"] for i in items] == [1, 2, 3]
    assert items[1]["due_date"] == "2024-01-11T00:00:00"

    r = client.post("/api/cadence/series", json={"anchor": "2024-01-01T00:00:00", "end": "2024-01-22T00:00:00"})
    assert r.status_code == 200
    assert [i["due_date"] for i in r.json()["items"]] == ["2024-01-15T00:00:00", "2024-01-22T00:00:00"]


def test_series_endpoint_validation(client):
    r = client.post("/api/cadence/series", json={"anchor": "2024-01-01T00:00:00"})
    assert r.status_code == 422
    r = client.post("/api/cadence/series", json={"anchor": "2024-01-01T00:00:00", "count": 10_000})
    assert r.status_code == 400


def test_cycle_number_endpoint(client):
    r = client.get("/api/cadence/cycle-number", params={"name": "Medium - 3"})
    assert r.json() == {"name": "Medium - 3", "base_name": "Medium", "cycle_number": 3}
    r = client.get("/api/cadence/cycle-number", params={"name": "Medium - abc"})
    assert r.json()["cycle_number"] == 1


def test_renewal_endpoint_creates_then_skips(client, session_factory):
    cid = _seed_client(session_factory)
    payload = {"client_id": cid, "renewal_date": "2024-01-01T09:00:00"}

    r = client.post("/api/renewal", json=payload)
    assert r.status_code == 201
    body = r.json()
    assert body["created"] == 3
    assert body["due_date"] == "2024-02-01T09:00:00"
    assert body["renewal_count"] == 1
    cats = {t["name"]: t["category"] for t in body["tasks"]}
    assert cats == {
        "Instagram -1": "Social Activity",
        "Instagram -2": "Social Activity",
        "Instagram - Social Communication": "Social Communication",
    }

    r = client.post("/api/renewal", json=payload)
    assert r.status_code == 200
    assert r.json()["created"] == 0
    assert r.json()["skipped"] == 3

    r = client.get(f"/api/clients/{cid}/tasks")
    assert r.status_code == 200
    dues = [t["due_date"] for t in r.json() if t["due_date"]]
    assert dues == sorted(dues)


def test_renewal_endpoint_errors(client, session_factory):
    r = client.post("/api/renewal", json={"client_id": 404, "renewal_date": "2024-01-01T09:00:00"})
    assert r.status_code == 404

    cid = _seed_client(session_factory, status="pending")
    r = client.post("/api/renewal", json={"client_id": cid, "renewal_date": "2024-01-01T09:00:00"})
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert len(detail["not_approved_task_ids"]) == 1
    assert detail["counts_by_status"]["pending"] == 1


def test_remaining_cycles(client, session_factory):
    cid = _seed_client(session_factory)
    r = client.get(f"/api/clients/{cid}/remaining-cycles", params={"today": "2024-01-12T00:00:00"})
    assert r.status_code == 200
    body = r.json()
    assert body["mode"] == "renewal"
    assert body["total_cycles"] == 4
    assert body["cycles_to_date"] == 2
    assert body["remaining_cycles"] == 2

    assert client.get("/api/clients/999/remaining-cycles").status_code == 404


def test_oversized_inbound_request_id_is_replaced(client):
    r = client.get("/api/health", headers={"X-Request-ID": "x" * 500})
    assert r.headers["X-Request-ID"] != "x" * 500
    assert len(r.headers["X-Request-ID"]) == 32


def test_due_date_cycle_number_is_capped(client):
    r = client.post("/api/cadence/due-date", json={"anchor": "2024-01-01T00:00:00", "cycle_number": 1e7})
    assert r.status_code == 400
    assert "cycle_number" in r.json()["detail"]

    r = client.post("/api/cadence/due-date", json={"anchor": "2024-01-01T00:00:00", "cycle_number": 1000})
    assert r.status_code == 200


def test_due_dates_past_year_9999_are_rejected(client):
    r = client.post("/api/cadence/due-date", json={"anchor": "9999-12-20T00:00:00", "cycle_number": 5})
    assert r.status_code == 400

    r = client.post("/api/cadence/series", json={"anchor": "9999-12-20T00:00:00", "count": 5})
    assert r.status_code == 400


def test_series_with_mixed_timezones(client):
    r = client.post("/api/cadence/series", json={"anchor": "2024-01-01T00:00:00Z", "end": "2024-01-22T00:00:00"})
    assert r.status_code == 200
    assert [i["cycle"] for i in r.json()["items"]] == [1, 2]

    r = client.post("/api/cadence/series", json={"anchor": "2024-01-01T00:00:00", "end": "2024-03-01T00:00:00+00:00"})
    assert r.status_code == 200
    assert len(r.json()["items"]) > 2


def test_remaining_cycles_with_aware_today(client, session_factory):
    cid = _seed_client(session_factory)
    r = client.get(f"/api/clients/{cid}/remaining-cycles", params={"today": "2024-01-12T00:00:00Z"})
    assert r.status_code == 200
    assert r.json()["cycles_to_date"] == 2
    assert r.json()["remaining_cycles"] == 2


def test_remaining_tasks_endpoint(client, session_factory):
    cid = _seed_client(session_factory)
    payload = {"today": "2024-01-12T00:00:00Z"}

    r = client.post(f"/api/clients/{cid}/remaining-tasks", json=payload)
    assert r.status_code == 201
    body = r.json()
    assert body["future_cycles"] == 2
    assert body["created"] == 5
    due = {t["name"]: t["due_date"] for t in body["tasks"]}
    assert due == {
        "Instagram -3": "2024-01-22T09:00:00",
        "Instagram -4": "2024-01-31T09:00:00",
        "Instagram -5": "2024-02-09T09:00:00",
        "Instagram -6": "2024-02-20T09:00:00",
        "Instagram - Social Communication": "2024-02-20T09:00:00",
    }

    r = client.post(f"/api/clients/{cid}/remaining-tasks", json=payload)
    assert r.status_code == 200
    assert r.json()["created"] == 0
    assert r.json()["skipped"] == 5


def test_remaining_tasks_endpoint_errors(client, session_factory):
    r = client.post("/api/clients/999/remaining-tasks", json={"today": "2024-01-12T00:00:00"})
    assert r.status_code == 404

    cid = _seed_client(session_factory, status="pending")
    r = client.post(f"/api/clients/{cid}/remaining-tasks", json={"today": "2024-01-12T00:00:00"})
    assert r.status_code == 400
    assert r.json()["detail"]["counts_by_status"]["pending"] == 1
