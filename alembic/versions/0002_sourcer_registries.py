"""Sourcer registries

Revision ID: 0002_sourcer_registries
Revises: 0001_initial_schema
Create Date: 2026-03-09

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_sourcer_registries"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

_ACTIVE_ONLY = sa.text("status = 'active'")


def _has_table(insp: sa.Inspector, table: str) -> bool:
    return table in insp.get_table_names()


def _create_registry(table: str, subject_column: str, subject_table: str) -> None:
    op.create_table(
        table,
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            subject_column,
            sa.String(length=36),
            sa.ForeignKey(f"{subject_table}.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("recruiter_id", sa.String(length=36), sa.ForeignKey("recruiters.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("relationship_start_date", sa.Date(), nullable=False),
        sa.Column("relationship_end_date", sa.Date(), nullable=True),
        sa.Column("termination_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(f"ix_{table}_{subject_column}", table, [subject_column])
    op.create_index(f"ix_{table}_recruiter_id", table, ["recruiter_id"])
    # At most one active sourcer per subject, enforced by the database.
    op.create_index(
        f"uq_{table}_active",
        table,
        [subject_column],
        unique=True,
        sqlite_where=_ACTIVE_ONLY,
        postgresql_where=_ACTIVE_ONLY,
    )


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not _has_table(insp, "company_sourcers"):
        _create_registry("company_sourcers", "company_id", "companies")
    if not _has_table(insp, "candidate_sourcers"):
        _create_registry("candidate_sourcers", "candidate_id", "candidates")


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    for table in ("candidate_sourcers", "company_sourcers"):
        if _has_table(insp, table):
            op.drop_table(table)
