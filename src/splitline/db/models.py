from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from splitline.db.base import Base, IdMixin, TimestampMixin

ATTRIBUTION_COLUMNS: tuple[str, ...] = (
    "candidate_recruiter_id",
    "company_recruiter_id",
    "job_owner_recruiter_id",
    "candidate_sourcer_recruiter_id",
    "company_sourcer_recruiter_id",
)


class User(IdMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)


class Membership(IdMixin, TimestampMixin, Base):
    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("user_id", "organization_id", "role"),)

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    organization_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(40), nullable=False)


class Recruiter(IdMixin, TimestampMixin, Base):
    __tablename__ = "recruiters"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)


class Candidate(IdMixin, TimestampMixin, Base):
    __tablename__ = "candidates"

    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    full_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)


class Company(IdMixin, TimestampMixin, Base):
    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    identity_organization_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)


class Job(IdMixin, TimestampMixin, Base):
    __tablename__ = "jobs"

    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id"), index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    company_recruiter_id: Mapped[str | None] = mapped_column(ForeignKey("recruiters.id"), nullable=True)
    job_owner_recruiter_id: Mapped[str | None] = mapped_column(ForeignKey("recruiters.id"), nullable=True)
    fee_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    guarantee_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    company: Mapped[Company] = relationship()


class Application(IdMixin, TimestampMixin, Base):
    __tablename__ = "applications"

    candidate_id: Mapped[str] = mapped_column(ForeignKey("candidates.id"), index=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True)
    candidate_recruiter_id: Mapped[str | None] = mapped_column(ForeignKey("recruiters.id"), nullable=True)
    stage: Mapped[str] = mapped_column(String(40), default="draft", nullable=False)
    salary: Mapped[float | None] = mapped_column(Float, nullable=True)
    # No FK: placements already reference applications.
    placement_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    hired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    candidate: Mapped[Candidate] = relationship()
    job: Mapped[Job] = relationship()


class Placement(IdMixin, TimestampMixin, Base):
    __tablename__ = "placements"

    application_id: Mapped[str] = mapped_column(ForeignKey("applications.id"), unique=True)
    candidate_id: Mapped[str] = mapped_column(ForeignKey("candidates.id"), index=True)
    job_id: Mapped[str] = mapped_column(ForeignKey("jobs.id"), index=True)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id"), index=True)

    candidate_recruiter_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    company_recruiter_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    job_owner_recruiter_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    candidate_sourcer_recruiter_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    company_sourcer_recruiter_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    salary: Mapped[float] = mapped_column(Float, nullable=False)
    fee_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    placement_fee: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    guarantee_days: Mapped[int] = mapped_column(Integer, default=90, nullable=False)
    guarantee_expires_at: Mapped[date] = mapped_column(Date, nullable=False)
    hired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    candidate_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    candidate_email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    job_title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Filled per request for recruiter callers; never persisted.
    recruiter_share = None

    @validates(*ATTRIBUTION_COLUMNS)
    def _freeze_attribution(self, key: str, value: str | None) -> str | None:
        state = inspect(self)
        if state.persistent or state.detached:
            raise ValueError(f"attribution field '{key}' cannot change after the placement is created")
        return value


class PlacementSplit(IdMixin, TimestampMixin, Base):
    __tablename__ = "placement_splits"
    __table_args__ = (UniqueConstraint("placement_id", "role"),)

    placement_id: Mapped[str] = mapped_column(ForeignKey("placements.id", ondelete="CASCADE"), index=True)
    recruiter_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(40), nullable=False)
    split_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    split_amount: Mapped[float] = mapped_column(Float, nullable=False)


class CompanySourcer(IdMixin, TimestampMixin, Base):
    __tablename__ = "company_sourcers"
    __table_args__ = (
        Index(
            "uq_company_sourcers_active",
            "company_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), index=True)
    recruiter_id: Mapped[str] = mapped_column(ForeignKey("recruiters.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    relationship_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    relationship_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    termination_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)


class CandidateSourcer(IdMixin, TimestampMixin, Base):
    __tablename__ = "candidate_sourcers"
    __table_args__ = (
        Index(
            "uq_candidate_sourcers_active",
            "candidate_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    candidate_id: Mapped[str] = mapped_column(ForeignKey("candidates.id", ondelete="CASCADE"), index=True)
    recruiter_id: Mapped[str] = mapped_column(ForeignKey("recruiters.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    relationship_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    relationship_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    termination_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
