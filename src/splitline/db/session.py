from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from splitline.config import get_settings

settings = get_settings()
_is_sqlite = settings.database_url.startswith("sqlite")
engine_kwargs: dict = {"connect_args": {"check_same_thread": False}} if _is_sqlite else {}
if _is_sqlite and ":memory:" in settings.database_url:
    # One shared connection, otherwise every session sees its own empty database.
    engine_kwargs["poolclass"] = StaticPool

engine = create_engine(settings.database_url, future=True, **engine_kwargs)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


if _is_sqlite:

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db_session() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
