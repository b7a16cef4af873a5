"""Row-visibility predicates for access-context-scoped queries.

Each builder returns a SQLAlchemy boolean clause (or ``None`` for "no filter")
so the rules can be inspected and tested without running a query.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import ColumnElement, false, or_, select

from splitline.core.access import AccessContext
from splitline.db.models import Company, Job, Placement
from splitline.types import ATTRIBUTION_ROLES

ATTRIBUTION_ROLE_COLUMNS = {
    "candidate_recruiter": Placement.candidate_recruiter_id,
    "company_recruiter": Placement.company_recruiter_id,
    "job_owner": Placement.job_owner_recruiter_id,
    "candidate_sourcer": Placement.candidate_sourcer_recruiter_id,
    "company_sourcer": Placement.company_sourcer_recruiter_id,
}


def recruiter_attribution_predicate(
    recruiter_id: str,
    roles: Iterable[str] = ATTRIBUTION_ROLES,
) -> ColumnElement[bool]:
    selected = list(roles)
    unknown = set(selected) - set(ATTRIBUTION_ROLE_COLUMNS)
    if unknown:
        raise ValueError(f"unknown attribution roles: {sorted(unknown)}")
    return or_(*(ATTRIBUTION_ROLE_COLUMNS[role] == recruiter_id for role in selected))


def organization_predicate(organization_ids: Iterable[str]) -> ColumnElement[bool]:
    company_jobs = (
        select(Job.id)
        .join(Company, Company.id == Job.company_id)
        .where(Company.identity_organization_id.in_(sorted(organization_ids)))
    )
    return Placement.job_id.in_(company_jobs)


def placement_scope(context: AccessContext) -> ColumnElement[bool] | None:
    if context.is_platform_admin:
        return None

    clauses: list[ColumnElement[bool]] = []
    if context.candidate_id:
        clauses.append(Placement.candidate_id == context.candidate_id)
    if context.recruiter_id:
        clauses.append(recruiter_attribution_predicate(context.recruiter_id))
    if context.organization_ids:
        clauses.append(organization_predicate(context.organization_ids))

    if not clauses:
        return false()
    return or_(*clauses)
