from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from splitline.config import get_settings
from splitline.core.access import AccessContext, AccessContextResolver
from splitline.core.events import EventPublisher
from splitline.core.runtime import get_event_publisher
from splitline.db.session import get_db_session
from splitline.errors import AuthenticationError


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_publisher() -> EventPublisher:
    return get_event_publisher()


def get_access_context(request: Request, db: Session = Depends(get_db)) -> AccessContext:
    header = get_settings().identity_header
    identity = request.headers.get(header)
    if not identity:
        raise AuthenticationError(f"missing caller identity header {header}")
    return AccessContextResolver(db).resolve(identity.strip())
