from fastapi.testclient import TestClient

from splitline.api.app import create_app
from splitline.core.placements import PlacementService
from splitline.core.sourcers import CandidateSourcerRegistry


def _as(identity: str) -> dict[str, str]:
    return {"X-Identity-User-Id": identity}


def test_hire_to_completion_keeps_the_original_credit(marketplace, context_for, events) -> None:
    client = TestClient(create_app())

    placement = PlacementService(marketplace).create_placement_from_application("app-1")
    placement_id = placement.id

    # Sourcer leaves after the hire; credit on the placement must not move.
    candidates = CandidateSourcerRegistry(marketplace)
    candidates.update(candidates.find_by_subject("cand-1").id, context_for("user-admin"), {"status": "terminated"})

    for status in ("confirmed", "active"):
        resp = client.patch(f"/placements/{placement_id}", json={"status": status}, headers=_as("user-hm"))
        assert resp.status_code == 200, resp.text

    denied = client.patch(f"/placements/{placement_id}", json={"status": "completed"}, headers=_as("user-hm"))
    assert denied.status_code == 403

    done = client.patch(f"/placements/{placement_id}", json={"status": "completed"}, headers=_as("user-r4"))
    assert done.status_code == 200, done.text
    body = done.json()["data"]
    assert body["status"] == "completed"
    assert body["candidate_sourcer_recruiter_id"] == "R4"
    assert body["recruiter_share"] == 0.0

    reopen = client.patch(f"/placements/{placement_id}", json={"status": "active"}, headers=_as("user-admin"))
    assert reopen.status_code == 400

    topics = [event.topic for event in events.events()]
    assert topics[0] == "placement.created"
    assert topics.count("placement.status_changed") == 3
    assert topics.count("placement.updated") == 3
    assert "candidate.sourcer_updated" in topics

    listing = client.get("/placements", params={"status": "completed"}, headers=_as("user-cand"))
    assert listing.json()["pagination"]["total"] == 1
