from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from splitline.db.models import Candidate, Membership, Recruiter, User
from splitline.errors import AuthenticationError, AuthorizationError

PLATFORM_ADMIN = "platform_admin"
COMPANY_ADMIN = "company_admin"
HIRING_MANAGER = "hiring_manager"
RECRUITER = "recruiter"
CANDIDATE = "candidate"


@dataclass(frozen=True, slots=True)
class AccessContext:
    """What a caller may act as for the duration of one request."""

    identity_user_id: str
    candidate_id: str | None = None
    recruiter_id: str | None = None
    organization_ids: frozenset[str] = field(default_factory=frozenset)
    roles: frozenset[str] = field(default_factory=frozenset)
    # (organization_id, role) pairs from memberships.
    organization_roles: frozenset[tuple[str, str]] = field(default_factory=frozenset)
    is_platform_admin: bool = False

    @property
    def is_recruiter(self) -> bool:
        return RECRUITER in self.roles and self.recruiter_id is not None

    def has_organization_role(self, organization_id: str | None, role: str) -> bool:
        return organization_id is not None and (organization_id, role) in self.organization_roles

    def require_platform_admin(self, action: str = "perform this action") -> None:
        if not self.is_platform_admin:
            raise AuthorizationError(f"platform admin privileges required to {action}")


class AccessContextResolver:
    def __init__(self, session: Session):
        self.session = session

    def resolve(self, identity_user_id: str | None) -> AccessContext:
        if not identity_user_id:
            raise AuthenticationError("caller identity is required")

        user = self.session.get(User, identity_user_id)
        if user is None:
            raise AuthenticationError("caller identity could not be resolved")

        memberships = self.session.scalars(
            select(Membership).where(Membership.user_id == user.id)
        ).all()
        recruiter = self.session.scalar(select(Recruiter).where(Recruiter.user_id == user.id))
        candidate = self.session.scalar(select(Candidate).where(Candidate.user_id == user.id))

        roles = {membership.role for membership in memberships}
        organization_ids = {
            membership.organization_id for membership in memberships if membership.role != PLATFORM_ADMIN
        }
        if recruiter is not None and recruiter.status == "active":
            roles.add(RECRUITER)
        if candidate is not None:
            roles.add(CANDIDATE)

        return AccessContext(
            identity_user_id=user.id,
            candidate_id=candidate.id if candidate else None,
            recruiter_id=recruiter.id if recruiter else None,
            organization_ids=frozenset(organization_ids),
            roles=frozenset(roles),
            organization_roles=frozenset(
                (membership.organization_id, membership.role) for membership in memberships
            ),
            is_platform_admin=PLATFORM_ADMIN in roles,
        )
