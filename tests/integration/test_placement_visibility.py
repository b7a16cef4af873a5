import pytest

from splitline.core.placements import PlacementService
from splitline.db.models import Job, PlacementSplit, Recruiter, User
from splitline.errors import NotFoundError, ValidationError
from splitline.types import PlacementFilters

HIRE = {
    "job_id": "job-1",
    "candidate_id": "cand-1",
    "application_id": "app-1",
    "start_date": "2026-03-01",
    "salary": 180000,
    "fee_percentage": 20,
}


@pytest.fixture
def placement(marketplace, context_for):
    return PlacementService(marketplace).create_placement(context_for("user-admin"), HIRE)


@pytest.fixture
def outsider_recruiter(marketplace):
    marketplace.add(User(id="user-r6", email="r6@recruit.test", name="Sam Six"))
    marketplace.flush()
    marketplace.add(Recruiter(id="R6", user_id="user-r6", name="Sam Six", status="active"))
    marketplace.add(User(id="user-nobody", email="nobody@example.test"))
    marketplace.commit()


@pytest.mark.parametrize("identity", ["user-r1", "user-r2", "user-r3", "user-r4", "user-r5"])
def test_every_attributed_recruiter_sees_the_placement(placement, context_for, marketplace, identity) -> None:
    items, total = PlacementService(marketplace).list_placements(context_for(identity))
    assert total == 1
    assert items[0].id == placement.id


@pytest.mark.parametrize("identity", ["user-admin", "user-hm", "user-cand"])
def test_admin_company_and_candidate_callers_see_the_placement(placement, context_for, marketplace, identity):
    _, total = PlacementService(marketplace).list_placements(context_for(identity))
    assert total == 1


@pytest.mark.parametrize("identity", ["user-r6", "user-nobody"])
def test_unrelated_callers_see_nothing(placement, outsider_recruiter, context_for, marketplace, identity) -> None:
    service = PlacementService(marketplace)
    caller = context_for(identity)

    items, total = service.list_placements(caller)
    assert (items, total) == ([], 0)
    with pytest.raises(NotFoundError):
        service.get_placement(placement.id, caller)


def test_recruiter_share_sums_the_callers_splits(placement, context_for, marketplace) -> None:
    marketplace.add_all(
        [
            PlacementSplit(
                placement_id=placement.id,
                recruiter_id="R1",
                role="candidate_recruiter",
                split_percentage=25,
                split_amount=9000,
            ),
            PlacementSplit(
                placement_id=placement.id,
                recruiter_id="R2",
                role="company_recruiter",
                split_percentage=20,
                split_amount=7200,
            ),
        ]
    )
    marketplace.commit()
    service = PlacementService(marketplace)

    assert service.get_placement(placement.id, context_for("user-r1")).recruiter_share == 9000.0
    assert service.get_placement(placement.id, context_for("user-r3")).recruiter_share == 0.0
    assert service.get_placement(placement.id, context_for("user-admin")).recruiter_share is None


def test_filters_search_and_sorting(placement, context_for, marketplace) -> None:
    service = PlacementService(marketplace)
    admin = context_for("user-admin")

    _, total = service.list_placements(admin, PlacementFilters(search="platform"))
    assert total == 1
    _, total = service.list_placements(admin, PlacementFilters(search="designer"))
    assert total == 0
    _, total = service.list_placements(admin, PlacementFilters(status="active"))
    assert total == 0
    _, total = service.list_placements(admin, PlacementFilters(job_id="job-1"), sort_by="salary", sort_order="asc")
    assert total == 1

    with pytest.raises(ValidationError):
        service.list_placements(admin, sort_by="recruiter_share")
    with pytest.raises(ValidationError):
        service.list_placements(admin, limit=500)
    with pytest.raises(ValidationError):
        service.list_placements(admin, page=0)


def test_recruiter_share_adds_up_every_role_held(marketplace, context_for) -> None:
    marketplace.get(Job, "job-1").job_owner_recruiter_id = "R2"
    marketplace.commit()
    service = PlacementService(marketplace)
    placement = service.create_placement(context_for("user-admin"), HIRE)
    assert placement.company_recruiter_id == placement.job_owner_recruiter_id == "R2"

    marketplace.add_all(
        [
            PlacementSplit(
                placement_id=placement.id,
                recruiter_id="R2",
                role="company_recruiter",
                split_percentage=20,
                split_amount=7200,
            ),
            PlacementSplit(
                placement_id=placement.id,
                recruiter_id="R2",
                role="job_owner",
                split_percentage=10,
                split_amount=3600,
            ),
        ]
    )
    marketplace.commit()

    items, _ = service.list_placements(context_for("user-r2"))
    assert items[0].recruiter_share == 10800.0
    assert service.get_placement(placement.id, context_for("user-r2")).recruiter_share == 10800.0
