from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from splitline.config import Settings, get_settings
from splitline.core.access import AccessContext
from splitline.core.events import EventPublisher, publish_safely
from splitline.core.lifecycle import (
    compute_guarantee_expiration,
    compute_placement_fee,
    require_completion_rights,
    validate_fee_percentage,
    validate_guarantee_days,
    validate_salary,
    validate_transition,
)
from splitline.core.runtime import get_event_publisher
from splitline.core.sourcers import CandidateSourcerRegistry, CompanySourcerRegistry
from splitline.db.models import ATTRIBUTION_COLUMNS, Application, Job, Placement
from splitline.db.repositories import PlacementRepository
from splitline.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from splitline.types import AttributionSnapshot, PlacementCreate, PlacementFilters, PlacementPatch

logger = logging.getLogger(__name__)

REQUIRED_CREATE_FIELDS = ("job_id", "candidate_id", "application_id", "start_date", "salary", "fee_percentage")


class PlacementService:
    def __init__(
        self,
        session: Session,
        *,
        settings: Settings | None = None,
        event_publisher: EventPublisher | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.event_publisher = event_publisher or get_event_publisher()
        self.repo = PlacementRepository(session)
        self.candidate_sourcers = CandidateSourcerRegistry(session, event_publisher=self.event_publisher)
        self.company_sourcers = CompanySourcerRegistry(session, event_publisher=self.event_publisher)

    def list_placements(
        self,
        caller: AccessContext,
        filters: PlacementFilters | dict[str, Any] | None = None,
        *,
        page: int = 1,
        limit: int | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Placement], int]:
        limit = limit or self.settings.default_page_size
        if page < 1:
            raise ValidationError("page must be 1 or greater")
        if limit < 1 or limit > self.settings.max_page_size:
            raise ValidationError(f"limit must be between 1 and {self.settings.max_page_size}")
        if filters is not None:
            filters = self._coerce(PlacementFilters, filters)
        return self.repo.list(caller, filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)

    def get_placement(self, placement_id: str, caller: AccessContext) -> Placement:
        placement = self.repo.find(placement_id, caller)
        if placement is None:
            raise NotFoundError("Placement not found")
        return placement

    def gather_attribution(self, candidate_id: str, job_id: str, application_id: str) -> AttributionSnapshot:
        application = self.repo.get_application(application_id)
        if application is None:
            raise NotFoundError(f"application {application_id} not found")

        job = self.repo.get_job(job_id)
        if job is None:
            raise NotFoundError(f"job {job_id} not found")

        candidate_sourcer_id = None
        candidate_sourcer = self.candidate_sourcers.find_by_subject(candidate_id)
        if candidate_sourcer is not None and self.candidate_sourcers.is_active(candidate_id):
            candidate_sourcer_id = candidate_sourcer.recruiter_id

        company_sourcer_id = None
        company_sourcer = self.company_sourcers.find_by_subject(job.company_id)
        if company_sourcer is not None and self.company_sourcers.is_active(job.company_id):
            company_sourcer_id = company_sourcer.recruiter_id

        return AttributionSnapshot(
            candidate_recruiter_id=application.candidate_recruiter_id,
            company_recruiter_id=job.company_recruiter_id,
            job_owner_recruiter_id=job.job_owner_recruiter_id,
            candidate_sourcer_recruiter_id=candidate_sourcer_id,
            company_sourcer_recruiter_id=company_sourcer_id,
        )

    def create_placement(self, caller: AccessContext, data: PlacementCreate | dict[str, Any]) -> Placement:
        payload = self._coerce(PlacementCreate, data)
        missing = [name for name in REQUIRED_CREATE_FIELDS if getattr(payload, name) is None]
        if missing:
            raise ValidationError(f"missing required fields: {', '.join(missing)}")

        validate_fee_percentage(payload.fee_percentage)
        validate_salary(payload.salary)
        guarantee_days = self._resolve_guarantee_days(payload.guarantee_days)

        application = self._require_hired_application(payload.application_id)
        if application.candidate_id != payload.candidate_id or application.job_id != payload.job_id:
            raise ValidationError("application does not belong to the given candidate and job")
        job = application.job
        self._require_can_create(caller, job)

        attribution = self.gather_attribution(payload.candidate_id, payload.job_id, payload.application_id)
        values = {
            "application_id": payload.application_id,
            "candidate_id": payload.candidate_id,
            "job_id": payload.job_id,
            "company_id": job.company_id,
            "salary": payload.salary,
            "fee_percentage": payload.fee_percentage,
            "placement_fee": compute_placement_fee(payload.salary, payload.fee_percentage),
            "start_date": payload.start_date,
            "guarantee_days": guarantee_days,
            "guarantee_expires_at": compute_guarantee_expiration(payload.start_date, guarantee_days),
            "notes": payload.notes,
            "candidate_name": application.candidate.full_name,
            "candidate_email": application.candidate.email,
            "job_title": job.title,
            "company_name": job.company.name,
            "created_by": caller.identity_user_id,
            **attribution.as_columns(),
        }
        placement = self.repo.create(values)
        logger.info("Placement created placement_id=%s application_id=%s", placement.id, application.id)
        self._publish_created(placement)
        return placement

    def create_placement_from_application(
        self,
        application_id: str,
        *,
        start_date: date | None = None,
    ) -> Placement:
        application = self._require_hired_application(application_id)
        job = application.job
        if application.salary is None:
            raise ValidationError(f"application {application_id} has no salary")

        fee_percentage = job.fee_percentage if job.fee_percentage is not None else 0.0
        validate_fee_percentage(fee_percentage)
        validate_salary(application.salary)
        guarantee_days = self._resolve_guarantee_days(job.guarantee_days)
        hired_at = datetime.now(UTC)
        start = start_date or hired_at.date()

        attribution = self.gather_attribution(application.candidate_id, job.id, application.id)
        values = {
            "application_id": application.id,
            "candidate_id": application.candidate_id,
            "job_id": job.id,
            "company_id": job.company_id,
            "salary": application.salary,
            "fee_percentage": fee_percentage,
            "placement_fee": compute_placement_fee(application.salary, fee_percentage),
            "start_date": start,
            "guarantee_days": guarantee_days,
            "guarantee_expires_at": compute_guarantee_expiration(start, guarantee_days),
            "candidate_name": application.candidate.full_name,
            "candidate_email": application.candidate.email,
            "job_title": job.title,
            "company_name": job.company.name,
            **attribution.as_columns(),
        }
        placement = self.repo.create_from_application(values, application, hired_at)
        logger.info("Placement created from hire placement_id=%s application_id=%s", placement.id, application_id)
        self._publish_created(placement)
        return placement

    def update_placement(
        self,
        caller: AccessContext,
        placement_id: str,
        patch: PlacementPatch | dict[str, Any],
    ) -> Placement:
        if isinstance(patch, dict):
            frozen = sorted(set(patch) & set(ATTRIBUTION_COLUMNS))
            if frozen:
                raise ValidationError(f"attribution fields cannot be modified: {', '.join(frozen)}")
        changes = self._coerce(PlacementPatch, patch).model_dump(exclude_unset=True)
        existing = self.get_placement(placement_id, caller)
        previous_status = existing.status

        if changes.get("salary") is not None:
            validate_salary(changes["salary"])
        if changes.get("fee_percentage") is not None:
            validate_fee_percentage(changes["fee_percentage"])
        if changes.get("guarantee_days") is not None:
            validate_guarantee_days(changes["guarantee_days"])
        for name in ("status", "salary", "fee_percentage", "start_date", "guarantee_days"):
            if name in changes and changes[name] is None:
                raise ValidationError(f"{name} cannot be null")

        new_status = changes.get("status")
        status_changed = new_status is not None and new_status != previous_status
        if status_changed:
            validate_transition(previous_status, new_status)
            if new_status == "completed":
                company = self.repo.get_company(existing.company_id)
                require_completion_rights(caller, company.identity_organization_id if company else None)
        elif "status" in changes:
            changes.pop("status")

        start_date = changes.get("start_date", existing.start_date)
        guarantee_days = changes.get("guarantee_days", existing.guarantee_days)
        if start_date != existing.start_date or guarantee_days != existing.guarantee_days:
            changes["guarantee_expires_at"] = compute_guarantee_expiration(start_date, guarantee_days)

        salary = changes.get("salary", existing.salary)
        fee_percentage = changes.get("fee_percentage", existing.fee_percentage)
        if salary != existing.salary or fee_percentage != existing.fee_percentage:
            changes["placement_fee"] = compute_placement_fee(salary, fee_percentage)

        if not changes:
            return existing

        updated = self.repo.update(placement_id, changes, expected_status=previous_status)
        updated = self.repo.find(placement_id, caller) or updated

        if status_changed:
            logger.info(
                "Placement status changed placement_id=%s %s->%s", placement_id, previous_status, new_status
            )
            publish_safely(
                self.event_publisher,
                "placement.status_changed",
                {
                    "placement_id": placement_id,
                    "previous_status": previous_status,
                    "new_status": new_status,
                    "changed_by": caller.identity_user_id,
                },
            )
        publish_safely(
            self.event_publisher,
            "placement.updated",
            {
                "placement_id": placement_id,
                "updated_fields": sorted(changes),
                "updated_by": caller.identity_user_id,
            },
        )
        return updated

    def delete_placement(self, caller: AccessContext, placement_id: str) -> Placement:
        existing = self.get_placement(placement_id, caller)
        previous_status = existing.status
        validate_transition(previous_status, "cancelled")

        cancelled = self.repo.soft_delete(placement_id, expected_status=previous_status)
        logger.info("Placement cancelled placement_id=%s previous_status=%s", placement_id, previous_status)
        publish_safely(
            self.event_publisher,
            "placement.deleted",
            {
                "placement_id": placement_id,
                "previous_status": previous_status,
                "deleted_by": caller.identity_user_id,
            },
        )
        return cancelled

    def _publish_created(self, placement: Placement) -> None:
        payload = {
            "placement_id": placement.id,
            "application_id": placement.application_id,
            "candidate_id": placement.candidate_id,
            "job_id": placement.job_id,
            "company_id": placement.company_id,
            "salary": placement.salary,
            "fee_percentage": placement.fee_percentage,
            "placement_fee": placement.placement_fee,
            "start_date": placement.start_date.isoformat(),
            "guarantee_expires_at": placement.guarantee_expires_at.isoformat(),
            "created_by": placement.created_by,
        }
        payload.update({column: getattr(placement, column) for column in ATTRIBUTION_COLUMNS})
        publish_safely(self.event_publisher, "placement.created", payload)

    def _require_hired_application(self, application_id: str) -> Application:
        application = self.repo.get_application(application_id)
        if application is None:
            raise NotFoundError(f"application {application_id} not found")
        if application.stage != "hired":
            raise ValidationError(
                f"application {application_id} must be in 'hired' stage, current stage is '{application.stage}'"
            )
        if application.placement_id:
            raise ConflictError(f"application {application_id} already has placement {application.placement_id}")
        return application

    def _require_can_create(self, caller: AccessContext, job: Job) -> None:
        if caller.is_platform_admin or caller.is_recruiter:
            return
        if job.company.identity_organization_id in caller.organization_ids:
            return
        raise AuthorizationError("caller cannot create placements for this job")

    def _resolve_guarantee_days(self, value: int | None) -> int:
        guarantee_days = self.settings.default_guarantee_days if value is None else value
        validate_guarantee_days(guarantee_days)
        return guarantee_days

    @staticmethod
    def _coerce(model, data):
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
