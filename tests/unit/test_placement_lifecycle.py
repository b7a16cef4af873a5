from datetime import date

import pytest

from splitline.core.access import AccessContext
from splitline.core.lifecycle import (
    TERMINAL_STATUSES,
    PlacementLifecycle,
    can_complete,
    compute_guarantee_expiration,
    compute_placement_fee,
    validate_fee_percentage,
    validate_salary,
    validate_transition,
)
from splitline.errors import InvalidTransitionError, ValidationError


def test_happy_path_walks_pending_to_completed() -> None:
    lifecycle = PlacementLifecycle("pending")
    for target in ("confirmed", "active", "completed"):
        lifecycle.transition(target)
    assert lifecycle.status == "completed"
    assert lifecycle.is_terminal


@pytest.mark.parametrize("current", ["pending", "confirmed", "active"])
def test_cancel_is_allowed_from_every_open_status(current: str) -> None:
    validate_transition(current, "cancelled")


@pytest.mark.parametrize(
    ("current", "requested"),
    [
        ("pending", "active"),
        ("pending", "completed"),
        ("confirmed", "completed"),
        ("completed", "cancelled"),
        ("cancelled", "pending"),
        ("active", "pending"),
    ],
)
def test_illegal_transitions_are_rejected(current: str, requested: str) -> None:
    with pytest.raises(InvalidTransitionError) as excinfo:
        validate_transition(current, requested)
    assert excinfo.value.current == current
    assert excinfo.value.requested == requested
    assert excinfo.value.status_code == 400


def test_unknown_target_status_is_an_invalid_transition() -> None:
    with pytest.raises(InvalidTransitionError):
        validate_transition("pending", "archived")


def test_unknown_current_status_is_a_validation_error() -> None:
    with pytest.raises(ValidationError):
        PlacementLifecycle("archived").allowed_targets()


def test_terminal_statuses_have_no_way_out() -> None:
    assert TERMINAL_STATUSES == {"completed", "cancelled"}


def test_guarantee_expiration_adds_calendar_days() -> None:
    assert compute_guarantee_expiration(date(2026, 3, 1), 90) == date(2026, 5, 30)
    assert compute_guarantee_expiration(date(2028, 2, 1), 30) == date(2028, 3, 2)
    assert compute_guarantee_expiration(date(2026, 3, 1), 0) == date(2026, 3, 1)


def test_placement_fee_rounds_to_cents() -> None:
    assert compute_placement_fee(180000, 20) == 36000.0
    assert compute_placement_fee(123456.78, 17.5) == 21604.94
    assert compute_placement_fee(95000, 0) == 0.0


@pytest.mark.parametrize("value", [-0.01, 100.5, 250, float("nan"), float("inf")])
def test_fee_percentage_bounds(value: float) -> None:
    with pytest.raises(ValidationError):
        validate_fee_percentage(value)


@pytest.mark.parametrize("value", [-1, float("nan"), float("inf"), float("-inf")])
def test_salary_must_be_finite_and_non_negative(value: float) -> None:
    with pytest.raises(ValidationError):
        validate_salary(value)


def test_fee_percentage_accepts_inclusive_edges() -> None:
    validate_fee_percentage(0)
    validate_fee_percentage(100)


def test_completion_rights() -> None:
    admin = AccessContext(identity_user_id="u1", is_platform_admin=True, roles=frozenset({"platform_admin"}))
    recruiter = AccessContext(identity_user_id="u2", recruiter_id="R1", roles=frozenset({"recruiter"}))
    company_admin = AccessContext(
        identity_user_id="u3",
        organization_ids=frozenset({"org-1"}),
        roles=frozenset({"company_admin"}),
        organization_roles=frozenset({("org-1", "company_admin")}),
    )
    hiring_manager = AccessContext(
        identity_user_id="u4",
        organization_ids=frozenset({"org-1"}),
        roles=frozenset({"hiring_manager"}),
        organization_roles=frozenset({("org-1", "hiring_manager")}),
    )
    # A suspended recruiter keeps the recruiter id but loses the role.
    suspended = AccessContext(identity_user_id="u5", recruiter_id="R9")

    assert can_complete(admin, "org-2")
    assert can_complete(recruiter, "org-2")
    assert can_complete(company_admin, "org-1")
    assert not can_complete(company_admin, "org-2")
    assert not can_complete(company_admin)
    assert not can_complete(hiring_manager, "org-1")
    assert not can_complete(suspended, "org-1")
