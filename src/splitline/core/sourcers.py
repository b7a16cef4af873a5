"""Company and candidate sourcer registries.

A sourcer is the recruiter credited with bringing a company or a candidate to
the marketplace. At most one record per subject may be ``active``. The
pre-check below gives a friendly error; the partial unique index on the table
is what actually holds under concurrent claims.

Protection does not expire: an ``active`` record protects the sourcer until
the record is terminated.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import ClassVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import ColumnElement, false, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from splitline.core.access import AccessContext
from splitline.core.events import EventPublisher, publish_safely
from splitline.core.runtime import get_event_publisher
from splitline.db.base import is_unique_violation
from splitline.db.models import Candidate, CandidateSourcer, Company, CompanySourcer, Recruiter
from splitline.errors import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from splitline.types import ProtectionStatus, SourcerFilters, SourcerPatch

logger = logging.getLogger(__name__)

SOURCER_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"active", "declined"}),
    "active": frozenset({"terminated"}),
    "declined": frozenset(),
    "terminated": frozenset(),
}

SourcerRecord = CompanySourcer | CandidateSourcer


class SourcerRegistry:
    model: ClassVar[type[SourcerRecord]]
    subject_model: ClassVar[type[Company] | type[Candidate]]
    subject: ClassVar[str]

    def __init__(self, session: Session, *, event_publisher: EventPublisher | None = None):
        self.session = session
        self.event_publisher = event_publisher or get_event_publisher()

    @property
    def subject_column(self):
        return getattr(self.model, f"{self.subject}_id")

    @property
    def subject_label(self) -> str:
        return self.subject.capitalize()

    def find_by_subject(self, subject_id: str) -> SourcerRecord | None:
        statement = select(self.model).where(self.subject_column == subject_id, self.model.status == "active")
        return self.session.scalar(statement)

    def is_active(self, subject_id: str) -> bool:
        record = self.find_by_subject(subject_id)
        if record is None:
            return False
        recruiter = self.session.get(Recruiter, record.recruiter_id)
        return recruiter is not None and recruiter.status == "active"

    def check_protection_status(self, subject_id: str) -> ProtectionStatus:
        record = self.find_by_subject(subject_id)
        if record is None:
            return ProtectionStatus(has_protection=False)
        return ProtectionStatus(
            has_protection=True,
            sourcer_recruiter_id=record.recruiter_id,
            sourced_at=record.created_at,
        )

    def list(
        self,
        caller: AccessContext,
        filters: SourcerFilters | None = None,
        *,
        page: int = 1,
        limit: int = 25,
    ) -> tuple[list[SourcerRecord], int]:
        filters = filters or SourcerFilters()
        conditions = []
        scope = self._scope(caller)
        if scope is not None:
            conditions.append(scope)
        if filters.status:
            conditions.append(self.model.status == filters.status)
        if filters.recruiter_id:
            conditions.append(self.model.recruiter_id == filters.recruiter_id)
        if filters.subject_id:
            conditions.append(self.subject_column == filters.subject_id)

        total = self.session.scalar(select(func.count()).select_from(self.model).where(*conditions)) or 0
        statement = (
            select(self.model)
            .where(*conditions)
            .order_by(self.model.created_at.desc(), self.model.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(self.session.scalars(statement).all()), total

    def get(self, record_id: str, caller: AccessContext) -> SourcerRecord:
        statement = select(self.model).where(self.model.id == record_id)
        scope = self._scope(caller)
        if scope is not None:
            statement = statement.where(scope)
        record = self.session.scalar(statement)
        if record is None:
            # Same answer for "missing" and "not yours".
            raise NotFoundError(f"{self.subject_label} sourcer not found")
        return record

    def create(
        self,
        subject_id: str,
        recruiter_id: str,
        *,
        caller: AccessContext,
        relationship_start_date: date | None = None,
        notes: str = "",
    ) -> SourcerRecord:
        if not subject_id or not recruiter_id:
            raise ValidationError(f"{self.subject}_id and recruiter_id are required")
        if not (caller.is_platform_admin or caller.is_recruiter):
            raise AuthorizationError(f"only recruiters can claim {self.subject} sourcing credit")
        if not caller.is_platform_admin and recruiter_id != caller.recruiter_id:
            raise AuthorizationError("recruiters can only assign themselves as sourcer")

        if self.session.get(self.subject_model, subject_id) is None:
            raise NotFoundError(f"{self.subject_label} not found")
        if self.session.get(Recruiter, recruiter_id) is None:
            raise NotFoundError("Recruiter not found")
        if self.find_by_subject(subject_id) is not None:
            raise ConflictError(f"{self.subject_label} already has a sourcer assigned")

        record = self.model(
            recruiter_id=recruiter_id,
            status="active",
            relationship_start_date=relationship_start_date or date.today(),
            notes=notes,
            created_by=caller.identity_user_id,
            **{f"{self.subject}_id": subject_id},
        )
        self.session.add(record)
        self._commit_unique()
        self.session.refresh(record)
        logger.info(
            "%s sourcer created id=%s %s_id=%s recruiter_id=%s",
            self.subject_label,
            record.id,
            self.subject,
            subject_id,
            recruiter_id,
        )

        publish_safely(
            self.event_publisher,
            f"{self.subject}.sourced",
            {
                "sourcer_id": record.id,
                f"{self.subject}_id": subject_id,
                "recruiter_id": recruiter_id,
                "sourced_at": record.created_at.isoformat(),
                "created_by": caller.identity_user_id,
            },
        )
        return record

    def update(self, record_id: str, caller: AccessContext, patch: SourcerPatch | dict) -> SourcerRecord:
        if isinstance(patch, dict):
            try:
                patch = SourcerPatch.model_validate(patch)
            except PydanticValidationError as exc:
                raise ValidationError(str(exc)) from exc
        record = self.get(record_id, caller)
        changes = patch.model_dump(exclude_unset=True)
        if "status" in changes and changes["status"] is None:
            raise ValidationError("status cannot be null")
        previous_status = record.status

        new_status = changes.get("status")
        if new_status is not None and new_status != previous_status:
            if new_status not in SOURCER_TRANSITIONS.get(previous_status, frozenset()):
                raise InvalidTransitionError(previous_status, new_status)
            if new_status == "active" and self.find_by_subject(getattr(record, f"{self.subject}_id")):
                raise ConflictError(f"{self.subject_label} already has a sourcer assigned")
            if new_status in {"declined", "terminated"} and changes.get("relationship_end_date") is None:
                changes["relationship_end_date"] = date.today()

        for key, value in changes.items():
            setattr(record, key, value)
        self._commit_unique()
        self.session.refresh(record)

        publish_safely(
            self.event_publisher,
            f"{self.subject}.sourcer_updated",
            {
                "sourcer_id": record.id,
                f"{self.subject}_id": getattr(record, f"{self.subject}_id"),
                "recruiter_id": record.recruiter_id,
                "previous_status": previous_status,
                "new_status": record.status,
                "updated_fields": sorted(changes),
                "updated_by": caller.identity_user_id,
            },
        )
        return record

    def delete(self, record_id: str, caller: AccessContext) -> None:
        caller.require_platform_admin(f"remove a {self.subject} sourcer")
        record = self.session.get(self.model, record_id)
        if record is None:
            raise NotFoundError(f"{self.subject_label} sourcer not found")

        payload = {
            "sourcer_id": record.id,
            f"{self.subject}_id": getattr(record, f"{self.subject}_id"),
            "recruiter_id": record.recruiter_id,
            "deleted_by": caller.identity_user_id,
        }
        self.session.delete(record)
        self.session.commit()
        logger.info("%s sourcer removed id=%s", self.subject_label, record_id)
        publish_safely(self.event_publisher, f"{self.subject}.sourcer_removed", payload)

    def _scope(self, caller: AccessContext) -> ColumnElement[bool] | None:
        if caller.is_platform_admin:
            return None
        clauses: list[ColumnElement[bool]] = []
        if caller.recruiter_id:
            clauses.append(self.model.recruiter_id == caller.recruiter_id)
        clauses.extend(self._subject_scope(caller))
        if not clauses:
            return false()
        return or_(*clauses)

    def _subject_scope(self, caller: AccessContext) -> list[ColumnElement[bool]]:
        raise NotImplementedError

    def _commit_unique(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            table = self.model.__tablename__
            if is_unique_violation(exc, f"uq_{table}_active", f"{table}.{self.subject}_id"):
                raise ConflictError(f"{self.subject_label} already has a sourcer assigned") from exc
            raise


class CompanySourcerRegistry(SourcerRegistry):
    model = CompanySourcer
    subject_model = Company
    subject = "company"

    def _subject_scope(self, caller: AccessContext) -> list[ColumnElement[bool]]:
        if not caller.organization_ids:
            return []
        owned_companies = select(Company.id).where(
            Company.identity_organization_id.in_(sorted(caller.organization_ids))
        )
        return [CompanySourcer.company_id.in_(owned_companies)]


class CandidateSourcerRegistry(SourcerRegistry):
    model = CandidateSourcer
    subject_model = Candidate
    subject = "candidate"

    def _subject_scope(self, caller: AccessContext) -> list[ColumnElement[bool]]:
        if not caller.candidate_id:
            return []
        return [CandidateSourcer.candidate_id == caller.candidate_id]
