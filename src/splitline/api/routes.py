from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from splitline.api.deps import get_access_context, get_db, get_publisher
from splitline.api.schemas import (
    CandidateSourcerCreateRequest,
    CandidateSourcerResponse,
    CompanySourcerCreateRequest,
    CompanySourcerResponse,
    DeleteEnvelope,
    ErrorResponse,
    Pagination,
    PlacementEnvelope,
    PlacementListResponse,
    PlacementResponse,
    ProtectionResponse,
)
from splitline.core.access import AccessContext
from splitline.core.events import EventPublisher
from splitline.core.placements import PlacementService
from splitline.core.sourcers import CandidateSourcerRegistry, CompanySourcerRegistry, SourcerRegistry
from splitline.types import PlacementCreate, PlacementFilters, SourcerFilters, SourcerPatch

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409)
}

router = APIRouter(tags=["placements"], responses=ERROR_RESPONSES)


def _service(db: Session, publisher: EventPublisher) -> PlacementService:
    return PlacementService(db, event_publisher=publisher)


@router.get("/placements", response_model=PlacementListResponse)
def list_placements(
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    search: str | None = None,
    status_filter: Literal["pending", "confirmed", "active", "completed", "cancelled"] | None = Query(
        None, alias="status"
    ),
    job_id: str | None = None,
    candidate_id: str | None = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    caller: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> PlacementListResponse:
    filters = PlacementFilters(search=search, status=status_filter, job_id=job_id, candidate_id=candidate_id)
    items, total = _service(db, publisher).list_placements(
        caller, filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )
    return PlacementListResponse(
        data=[PlacementResponse.model_validate(item) for item in items],
        pagination=Pagination.build(total=total, page=page, limit=limit),
    )


@router.get("/placements/{placement_id}", response_model=PlacementEnvelope)
def get_placement(
    placement_id: str,
    caller: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> PlacementEnvelope:
    placement = _service(db, publisher).get_placement(placement_id, caller)
    return PlacementEnvelope(data=PlacementResponse.model_validate(placement))


@router.post("/placements", response_model=PlacementEnvelope, status_code=status.HTTP_201_CREATED)
def create_placement(
    payload: PlacementCreate,
    caller: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> PlacementEnvelope:
    placement = _service(db, publisher).create_placement(caller, payload)
    return PlacementEnvelope(data=PlacementResponse.model_validate(placement))


@router.patch("/placements/{placement_id}", response_model=PlacementEnvelope)
def update_placement(
    placement_id: str,
    payload: dict[str, Any],
    caller: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> PlacementEnvelope:
    placement = _service(db, publisher).update_placement(caller, placement_id, payload)
    return PlacementEnvelope(data=PlacementResponse.model_validate(placement))


@router.delete("/placements/{placement_id}", response_model=DeleteEnvelope)
def delete_placement(
    placement_id: str,
    caller: AccessContext = Depends(get_access_context),
    db: Session = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> DeleteEnvelope:
    _service(db, publisher).delete_placement(caller, placement_id)
    return DeleteEnvelope.model_validate({"data": {"message": "Placement cancelled", "id": placement_id}})


def build_sourcer_router(
    *,
    prefix: str,
    registry_cls: type[SourcerRegistry],
    create_model: type[CompanySourcerCreateRequest] | type[CandidateSourcerCreateRequest],
    response_model: type[CompanySourcerResponse] | type[CandidateSourcerResponse],
) -> APIRouter:
    subject = registry_cls.subject
    label = f"{subject.capitalize()} sourcer"
    sourcer_router = APIRouter(prefix=prefix, tags=[f"{subject}-sourcers"], responses=ERROR_RESPONSES)

    def render(record) -> dict[str, Any]:
        return response_model.model_validate(record).model_dump(mode="json")

    @sourcer_router.get("/check-protection/{subject_id}", response_model=ProtectionResponse)
    def check_protection(
        subject_id: str,
        db: Session = Depends(get_db),
        publisher: EventPublisher = Depends(get_publisher),
    ) -> ProtectionResponse:
        protection = registry_cls(db, event_publisher=publisher).check_protection_status(subject_id)
        return ProtectionResponse.model_validate(protection.model_dump())

    @sourcer_router.get("")
    def list_sourcers(
        page: int = Query(1, ge=1),
        limit: int = Query(25, ge=1, le=100),
        status_filter: Literal["pending", "active", "declined", "terminated"] | None = Query(None, alias="status"),
        recruiter_id: str | None = None,
        subject_id: str | None = Query(None, alias=f"{subject}_id"),
        caller: AccessContext = Depends(get_access_context),
        db: Session = Depends(get_db),
        publisher: EventPublisher = Depends(get_publisher),
    ) -> dict[str, Any]:
        filters = SourcerFilters(status=status_filter, recruiter_id=recruiter_id, subject_id=subject_id)
        items, total = registry_cls(db, event_publisher=publisher).list(caller, filters, page=page, limit=limit)
        return {
            "data": [render(item) for item in items],
            "pagination": Pagination.build(total=total, page=page, limit=limit).model_dump(),
        }

    @sourcer_router.get("/{record_id}")
    def get_sourcer(
        record_id: str,
        caller: AccessContext = Depends(get_access_context),
        db: Session = Depends(get_db),
        publisher: EventPublisher = Depends(get_publisher),
    ) -> dict[str, Any]:
        return {"data": render(registry_cls(db, event_publisher=publisher).get(record_id, caller))}

    @sourcer_router.post("", status_code=status.HTTP_201_CREATED)
    def create_sourcer(
        payload: create_model,
        caller: AccessContext = Depends(get_access_context),
        db: Session = Depends(get_db),
        publisher: EventPublisher = Depends(get_publisher),
    ) -> dict[str, Any]:
        record = registry_cls(db, event_publisher=publisher).create(
            getattr(payload, f"{subject}_id"),
            payload.recruiter_id,
            caller=caller,
            relationship_start_date=payload.relationship_start_date,
            notes=payload.notes,
        )
        return {"data": render(record)}

    @sourcer_router.patch("/{record_id}")
    def update_sourcer(
        record_id: str,
        payload: SourcerPatch,
        caller: AccessContext = Depends(get_access_context),
        db: Session = Depends(get_db),
        publisher: EventPublisher = Depends(get_publisher),
    ) -> dict[str, Any]:
        record = registry_cls(db, event_publisher=publisher).update(record_id, caller, payload)
        return {"data": render(record)}

    @sourcer_router.delete("/{record_id}")
    def delete_sourcer(
        record_id: str,
        caller: AccessContext = Depends(get_access_context),
        db: Session = Depends(get_db),
        publisher: EventPublisher = Depends(get_publisher),
    ) -> dict[str, Any]:
        registry_cls(db, event_publisher=publisher).delete(record_id, caller)
        return {"data": {"message": f"{label} removed", "id": record_id}}

    return sourcer_router


company_sourcer_router = build_sourcer_router(
    prefix="/company-sourcers",
    registry_cls=CompanySourcerRegistry,
    create_model=CompanySourcerCreateRequest,
    response_model=CompanySourcerResponse,
)

candidate_sourcer_router = build_sourcer_router(
    prefix="/candidate-sourcers",
    registry_cls=CandidateSourcerRegistry,
    create_model=CandidateSourcerCreateRequest,
    response_model=CandidateSourcerResponse,
)
