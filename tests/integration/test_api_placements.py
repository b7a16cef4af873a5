from fastapi.testclient import TestClient

from splitline.api.app import create_app
from splitline.db.models import User

HIRE = {
    "job_id": "job-1",
    "candidate_id": "cand-1",
    "application_id": "app-1",
    "start_date": "2026-03-01",
    "salary": 180000,
    "fee_percentage": 20,
}


def _as(identity: str) -> dict[str, str]:
    return {"X-Identity-User-Id": identity}


def _create(client: TestClient) -> dict:
    resp = client.post("/placements", json=HIRE, headers=_as("user-admin"))
    assert resp.status_code == 201
    return resp.json()["data"]


def test_missing_identity_is_unauthenticated(marketplace) -> None:
    client = TestClient(create_app())

    resp = client.get("/placements")
    assert resp.status_code == 401
    assert set(resp.json()) == {"error"}
    assert "X-Identity-User-Id" in resp.json()["error"]["message"]

    resp = client.get("/placements", headers=_as("user-ghost"))
    assert resp.status_code == 401


def test_create_and_fetch_placement(marketplace) -> None:
    client = TestClient(create_app())
    created = _create(client)

    assert created["status"] == "pending"
    assert created["placement_fee"] == 36000.0
    assert created["guarantee_expires_at"] == "2026-05-30"
    assert [created[f"{role}_recruiter_id"] for role in ("candidate", "company", "job_owner")] == ["R1", "R2", "R3"]
    assert created["candidate_sourcer_recruiter_id"] == "R4"
    assert created["company_sourcer_recruiter_id"] == "R5"

    resp = client.get(f"/placements/{created['id']}", headers=_as("user-r4"))
    assert resp.status_code == 200
    body = resp.json()["data"]
    assert body["id"] == created["id"]
    assert body["recruiter_share"] == 0.0


def test_list_paginates_and_validates_query(marketplace) -> None:
    client = TestClient(create_app())
    _create(client)

    resp = client.get("/placements", params={"limit": 1, "page": 1}, headers=_as("user-r1"))
    assert resp.status_code == 200
    assert resp.json()["pagination"] == {"total": 1, "page": 1, "limit": 1, "total_pages": 1}
    assert len(resp.json()["data"]) == 1

    assert client.get("/placements", params={"limit": 500}, headers=_as("user-r1")).status_code == 400
    assert client.get("/placements", params={"status": "archived"}, headers=_as("user-r1")).status_code == 400
    bad_sort = client.get("/placements", params={"sort_by": "secret"}, headers=_as("user-r1"))
    assert bad_sort.status_code == 400
    assert "cannot sort" in bad_sort.json()["error"]["message"]


def test_out_of_scope_placement_is_not_found(marketplace) -> None:
    marketplace.add(User(id="user-outsider", email="outsider@example.test"))
    marketplace.commit()
    client = TestClient(create_app())
    created = _create(client)

    resp = client.get(f"/placements/{created['id']}", headers=_as("user-outsider"))
    assert resp.status_code == 404
    assert resp.json() == {"error": {"message": "Placement not found"}}

    listing = client.get("/placements", headers=_as("user-outsider"))
    assert listing.json()["pagination"]["total"] == 0


def test_patch_errors_map_to_status_codes(marketplace) -> None:
    client = TestClient(create_app())
    placement_id = _create(client)["id"]

    frozen = client.patch(
        f"/placements/{placement_id}", json={"job_owner_recruiter_id": "R1"}, headers=_as("user-admin")
    )
    assert frozen.status_code == 400
    assert "attribution" in frozen.json()["error"]["message"]

    jump = client.patch(f"/placements/{placement_id}", json={"status": "completed"}, headers=_as("user-admin"))
    assert jump.status_code == 400
    assert "invalid status transition" in jump.json()["error"]["message"]

    confirm = client.patch(f"/placements/{placement_id}", json={"status": "confirmed"}, headers=_as("user-hm"))
    assert confirm.status_code == 200
    assert confirm.json()["data"]["status"] == "confirmed"


def test_duplicate_create_conflicts(marketplace) -> None:
    client = TestClient(create_app())
    _create(client)

    resp = client.post("/placements", json=HIRE, headers=_as("user-admin"))
    assert resp.status_code == 409


def test_delete_cancels_placement(marketplace, events) -> None:
    client = TestClient(create_app())
    placement_id = _create(client)["id"]

    resp = client.delete(f"/placements/{placement_id}", headers=_as("user-admin"))
    assert resp.status_code == 200
    assert resp.json() == {"data": {"message": "Placement cancelled", "id": placement_id}}

    fetched = client.get(f"/placements/{placement_id}", headers=_as("user-admin"))
    assert fetched.json()["data"]["status"] == "cancelled"
    assert [event.topic for event in events.events()] == ["placement.created", "placement.deleted"]


def test_health(marketplace) -> None:
    resp = TestClient(create_app()).get("/health")
    assert resp.json() == {"status": "ok"}


def test_error_body_is_documented(marketplace) -> None:
    schema = TestClient(create_app()).get("/openapi.json").json()
    responses = schema["paths"]["/placements/{placement_id}"]["get"]["responses"]
    assert responses["404"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
    assert "ErrorResponse" in schema["components"]["schemas"]
