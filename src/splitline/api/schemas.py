from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class ErrorBody(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, *, total: int, page: int, limit: int) -> Pagination:
        return cls(total=total, page=page, limit=limit, total_pages=(total + limit - 1) // limit if limit else 0)


class PlacementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    candidate_id: str
    job_id: str
    company_id: str
    candidate_recruiter_id: str | None
    company_recruiter_id: str | None
    job_owner_recruiter_id: str | None
    candidate_sourcer_recruiter_id: str | None
    company_sourcer_recruiter_id: str | None
    salary: float
    fee_percentage: float
    placement_fee: float
    status: str
    start_date: date
    end_date: date | None
    guarantee_days: int
    guarantee_expires_at: date
    hired_at: datetime | None
    failure_reason: str | None
    notes: str
    candidate_name: str
    candidate_email: str
    job_title: str
    company_name: str
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    recruiter_share: float | None = None


class PlacementEnvelope(BaseModel):
    data: PlacementResponse


class PlacementListResponse(BaseModel):
    data: list[PlacementResponse]
    pagination: Pagination


class SourcerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    recruiter_id: str
    status: str
    relationship_start_date: date
    relationship_end_date: date | None
    termination_reason: str | None
    notes: str
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class CompanySourcerResponse(SourcerResponse):
    company_id: str


class CandidateSourcerResponse(SourcerResponse):
    candidate_id: str


class CompanySourcerCreateRequest(BaseModel):
    company_id: str
    recruiter_id: str
    relationship_start_date: date | None = None
    notes: str = ""


class CandidateSourcerCreateRequest(BaseModel):
    candidate_id: str
    recruiter_id: str
    relationship_start_date: date | None = None
    notes: str = ""


class ProtectionResponse(BaseModel):
    has_protection: bool
    sourcer_recruiter_id: str | None = None
    sourced_at: datetime | None = None


class DeleteConfirmation(BaseModel):
    message: str
    id: str


class DeleteEnvelope(BaseModel):
    data: DeleteConfirmation
