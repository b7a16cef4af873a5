from __future__ import annotations

import os
import sqlite3
import subprocess
import sys
from pathlib import Path


def test_alembic_upgrade_and_downgrade_for_sourcer_registries(tmp_path: Path) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    db_path = tmp_path / "migration_test.db"
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{db_path}"

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "0002_sourcer_registries"],
        cwd=repo_root,
        env=env,
        check=True,
    )

    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='company_sourcers'")
    assert cur.fetchone() is not None

    cur.execute("SELECT sql FROM sqlite_master WHERE type='index' AND name='uq_candidate_sourcers_active'")
    index_sql = cur.fetchone()[0]
    assert "UNIQUE" in index_sql
    assert "status = 'active'" in index_sql

    cur.execute("PRAGMA table_info(placements)")
    placement_cols = {row[1] for row in cur.fetchall()}
    assert {"company_sourcer_recruiter_id", "guarantee_expires_at"} <= placement_cols

    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", "downgrade", "0001_initial_schema"],
        cwd=repo_root,
        env=env,
        check=True,
    )

    cur.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name IN ('company_sourcers', 'candidate_sourcers')"
    )
    assert cur.fetchall() == []

    cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='placements'")
    assert cur.fetchone() is not None

    conn.close()
