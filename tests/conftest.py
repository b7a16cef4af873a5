from __future__ import annotations

import os
import tempfile
from pathlib import Path

_DB_DIR = Path(tempfile.mkdtemp(prefix="splitline-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["APP_ENV"] = "test"
os.environ["EVENT_PUBLISHER"] = "memory"

import pytest  # noqa: E402

from splitline.core.access import AccessContext, AccessContextResolver  # noqa: E402
from splitline.core.events import InMemoryEventPublisher  # noqa: E402
from splitline.core.runtime import set_event_publisher  # noqa: E402
from splitline.db.base import Base  # noqa: E402
from splitline.db.seed import seed_demo_marketplace  # noqa: E402
from splitline.db.session import SessionLocal, engine  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def events() -> InMemoryEventPublisher:
    publisher = InMemoryEventPublisher()
    set_event_publisher(publisher)
    yield publisher
    set_event_publisher(None)


@pytest.fixture
def db_session():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def marketplace(db_session):
    seed_demo_marketplace(db_session)
    return db_session


@pytest.fixture
def context_for(marketplace):
    def resolve(identity_user_id: str) -> AccessContext:
        return AccessContextResolver(marketplace).resolve(identity_user_id)

    return resolve
