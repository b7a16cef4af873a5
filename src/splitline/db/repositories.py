from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from splitline.core.access import AccessContext
from splitline.db.base import is_unique_violation, utcnow
from splitline.db.models import (
    ATTRIBUTION_COLUMNS,
    Application,
    Company,
    Job,
    Placement,
    PlacementSplit,
)
from splitline.db.scoping import placement_scope
from splitline.errors import ConflictError, NotFoundError, ValidationError
from splitline.types import PlacementFilters

PLACEMENT_SORT_COLUMNS = {
    "created_at": Placement.created_at,
    "updated_at": Placement.updated_at,
    "start_date": Placement.start_date,
    "salary": Placement.salary,
    "placement_fee": Placement.placement_fee,
    "status": Placement.status,
}


class PlacementRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_application(self, application_id: str) -> Application | None:
        return self.session.get(Application, application_id)

    def get_job(self, job_id: str) -> Job | None:
        return self.session.get(Job, job_id)

    def get_company(self, company_id: str) -> Company | None:
        return self.session.get(Company, company_id)

    def list(
        self,
        caller: AccessContext,
        filters: PlacementFilters | None = None,
        *,
        page: int = 1,
        limit: int = 25,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[Placement], int]:
        filters = filters or PlacementFilters()
        conditions = []
        scope = placement_scope(caller)
        if scope is not None:
            conditions.append(scope)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    Placement.candidate_name.ilike(pattern),
                    Placement.job_title.ilike(pattern),
                    Placement.company_name.ilike(pattern),
                    Placement.notes.ilike(pattern),
                )
            )
        if filters.status:
            conditions.append(Placement.status == filters.status)
        if filters.job_id:
            conditions.append(Placement.job_id == filters.job_id)
        if filters.candidate_id:
            conditions.append(Placement.candidate_id == filters.candidate_id)

        if sort_by not in PLACEMENT_SORT_COLUMNS:
            raise ValidationError(f"cannot sort placements by '{sort_by}'")
        column = PLACEMENT_SORT_COLUMNS[sort_by]
        ordering = column.asc() if sort_order.lower() == "asc" else column.desc()

        total = self.session.scalar(select(func.count()).select_from(Placement).where(*conditions)) or 0
        statement = (
            select(Placement)
            .where(*conditions)
            .order_by(ordering, Placement.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = list(self.session.scalars(statement).all())
        self._enrich(items, caller)
        return items, total

    def find(self, placement_id: str, caller: AccessContext | None = None) -> Placement | None:
        statement = select(Placement).where(Placement.id == placement_id)
        if caller is not None:
            scope = placement_scope(caller)
            if scope is not None:
                statement = statement.where(scope)
        placement = self.session.scalar(statement)
        if placement is not None and caller is not None:
            self._enrich([placement], caller)
        return placement

    def recruiter_shares(self, placement_ids: list[str], recruiter_id: str) -> dict[str, float]:
        if not placement_ids:
            return {}
        statement = (
            select(PlacementSplit.placement_id, func.sum(PlacementSplit.split_amount))
            .where(
                PlacementSplit.placement_id.in_(placement_ids),
                PlacementSplit.recruiter_id == recruiter_id,
            )
            .group_by(PlacementSplit.placement_id)
        )
        return {placement_id: float(total or 0) for placement_id, total in self.session.execute(statement)}

    def _enrich(self, placements: list[Placement], caller: AccessContext) -> None:
        if not caller.recruiter_id:
            for item in placements:
                item.recruiter_share = None
            return
        shares = self.recruiter_shares([item.id for item in placements], caller.recruiter_id)
        for item in placements:
            item.recruiter_share = shares.get(item.id, 0.0)

    def create(self, values: dict[str, Any]) -> Placement:
        placement = Placement(**values)
        self.session.add(placement)
        with self._duplicate_application_guard():
            self.session.commit()
        self.session.refresh(placement)
        return placement

    def create_from_application(
        self,
        values: dict[str, Any],
        application: Application,
        hired_at: datetime,
    ) -> Placement:
        placement = Placement(hired_at=hired_at, **values)
        self.session.add(placement)
        with self._duplicate_application_guard():
            self.session.flush()
            application.placement_id = placement.id
            application.hired_at = hired_at
            self.session.commit()
        self.session.refresh(placement)
        return placement

    def update(
        self,
        placement_id: str,
        values: dict[str, Any],
        *,
        expected_status: str | None = None,
    ) -> Placement:
        frozen = sorted(set(values) & set(ATTRIBUTION_COLUMNS))
        if frozen:
            raise ValidationError(f"attribution fields cannot be modified: {', '.join(frozen)}")

        statement = update(Placement).where(Placement.id == placement_id)
        if expected_status is not None:
            statement = statement.where(Placement.status == expected_status)
        statement = statement.values(**values, updated_at=utcnow()).execution_options(synchronize_session=False)

        result = self.session.execute(statement)
        if result.rowcount == 0:
            self.session.rollback()
            if self.session.get(Placement, placement_id) is None:
                raise NotFoundError("Placement not found")
            raise ConflictError("placement status changed concurrently; reload and retry")
        self.session.commit()

        placement = self.session.get(Placement, placement_id)
        self.session.refresh(placement)
        return placement

    def soft_delete(self, placement_id: str, *, expected_status: str | None = None) -> Placement:
        return self.update(placement_id, {"status": "cancelled"}, expected_status=expected_status)

    @contextmanager
    def _duplicate_application_guard(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self.session.rollback()
            if is_unique_violation(exc, "placements.application_id", "placements_application_id_key"):
                raise ConflictError("a placement already exists for this application") from exc
            raise
