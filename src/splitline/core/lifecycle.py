from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta

from splitline.core.access import COMPANY_ADMIN, AccessContext
from splitline.errors import AuthorizationError, InvalidTransitionError, ValidationError

PLACEMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"active", "cancelled"}),
    "active": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in PLACEMENT_TRANSITIONS.items() if not targets)


@dataclass(slots=True)
class PlacementLifecycle:
    status: str

    def allowed_targets(self) -> frozenset[str]:
        if self.status not in PLACEMENT_TRANSITIONS:
            raise ValidationError(f"unknown placement status '{self.status}'")
        return PLACEMENT_TRANSITIONS[self.status]

    def can_transition(self, new_status: str) -> bool:
        return new_status in self.allowed_targets()

    def transition(self, new_status: str) -> str:
        if not self.can_transition(new_status):
            raise InvalidTransitionError(self.status, new_status)
        self.status = new_status
        return new_status

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def validate_transition(current: str, new_status: str) -> None:
    PlacementLifecycle(current).transition(new_status)


def can_complete(context: AccessContext, organization_id: str | None = None) -> bool:
    """Company admins may only complete placements of their own organization."""
    if context.is_platform_admin or context.is_recruiter:
        return True
    return context.has_organization_role(organization_id, COMPANY_ADMIN)


def require_completion_rights(context: AccessContext, organization_id: str | None = None) -> None:
    if not can_complete(context, organization_id):
        raise AuthorizationError("only platform admins, recruiters or the company's admins can mark a placement completed")


def compute_guarantee_expiration(start_date: date, guarantee_days: int) -> date:
    return start_date + timedelta(days=guarantee_days)


def compute_placement_fee(salary: float, fee_percentage: float) -> float:
    return round(salary * fee_percentage / 100, 2)


def validate_fee_percentage(value: float) -> None:
    if not math.isfinite(value) or value < 0 or value > 100:
        raise ValidationError("fee_percentage must be between 0 and 100")


def validate_salary(value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise ValidationError("salary must be a finite amount, zero or greater")


def validate_guarantee_days(value: int) -> None:
    if value < 0:
        raise ValidationError("guarantee_days must be zero or greater")
