from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    pass


class IdMixin:
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


def is_unique_violation(exc: IntegrityError, *markers: str) -> bool:
    """True when ``exc`` is a unique-constraint failure naming one of ``markers``.

    Markers are matched against the driver message, which names the index on
    PostgreSQL and ``table.column`` on SQLite.
    """
    message = str(exc.orig)
    if "unique" not in message.lower():
        return False
    return any(marker in message for marker in markers)
