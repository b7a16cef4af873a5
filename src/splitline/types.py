from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PlacementStatus = Literal["pending", "confirmed", "active", "completed", "cancelled"]
SourcerStatus = Literal["pending", "active", "declined", "terminated"]
RecruiterStatus = Literal["pending", "active", "suspended"]
MembershipRole = Literal["platform_admin", "company_admin", "hiring_manager"]
SortOrder = Literal["asc", "desc"]

ATTRIBUTION_ROLES: tuple[str, ...] = (
    "candidate_recruiter",
    "company_recruiter",
    "job_owner",
    "candidate_sourcer",
    "company_sourcer",
)


class AttributionSnapshot(BaseModel):
    """The five recruiter roles credited on a placement.

    Built once when the placement is created and copied onto the row. It is a
    historical record: later changes to job ownership or sourcer registries
    never flow back into it.
    """

    model_config = ConfigDict(frozen=True)

    candidate_recruiter_id: str | None = None
    company_recruiter_id: str | None = None
    job_owner_recruiter_id: str | None = None
    candidate_sourcer_recruiter_id: str | None = None
    company_sourcer_recruiter_id: str | None = None

    def as_columns(self) -> dict[str, str | None]:
        return self.model_dump()


class ProtectionStatus(BaseModel):
    has_protection: bool
    sourcer_recruiter_id: str | None = None
    sourced_at: datetime | None = None


class PlacementFilters(BaseModel):
    search: str | None = None
    status: PlacementStatus | None = None
    job_id: str | None = None
    candidate_id: str | None = None


class SourcerFilters(BaseModel):
    status: SourcerStatus | None = None
    recruiter_id: str | None = None
    subject_id: str | None = None


class PlacementCreate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    job_id: str | None = None
    candidate_id: str | None = None
    application_id: str | None = None
    start_date: date | None = None
    salary: float | None = None
    fee_percentage: float | None = None
    guarantee_days: int | None = None
    notes: str = ""

    @field_validator("guarantee_days")
    @classmethod
    def validate_guarantee_days(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError("guarantee_days must be zero or greater")
        return value


class PlacementPatch(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    # Checked against the transition table, not here.
    status: str | None = None
    salary: float | None = None
    fee_percentage: float | None = None
    start_date: date | None = None
    end_date: date | None = None
    guarantee_days: int | None = None
    failure_reason: str | None = None
    notes: str | None = None


class SourcerPatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: SourcerStatus | None = None
    termination_reason: str | None = None
    relationship_end_date: date | None = None


class DomainEvent(BaseModel):
    event_id: str
    topic: str
    occurred_at: datetime
    payload: dict = Field(default_factory=dict)
