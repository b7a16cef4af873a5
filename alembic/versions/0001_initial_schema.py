"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-03-02

"""

from __future__ import annotations

from alembic import op

from splitline.db.base import Base
from splitline.db import models  # noqa: F401

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

# Sourcer registries arrive in 0002.
_DEFERRED_TABLES = {"company_sourcers", "candidate_sourcers"}


def _tables():
    return [table for name, table in Base.metadata.tables.items() if name not in _DEFERRED_TABLES]


def upgrade() -> None:
    bind = op.get_bind()
    Base.metadata.create_all(bind=bind, tables=_tables())


def downgrade() -> None:
    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind, tables=_tables())
