from __future__ import annotations

from splitline.db import models  # noqa: F401
from splitline.db.base import Base
from splitline.db.seed import seed_demo_marketplace
from splitline.db.session import SessionLocal, engine


def init_database(*, demo: bool = False) -> dict[str, int]:
    Base.metadata.create_all(bind=engine)

    seeded = 0
    if demo:
        with SessionLocal() as session:
            seeded = seed_demo_marketplace(session)
    return {"tables": len(Base.metadata.tables), "seeded_rows": seeded}
