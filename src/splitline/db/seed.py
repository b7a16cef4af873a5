from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from splitline.core.access import HIRING_MANAGER, PLATFORM_ADMIN
from splitline.db.models import (
    Application,
    Candidate,
    CandidateSourcer,
    Company,
    CompanySourcer,
    Job,
    Membership,
    Recruiter,
    User,
)

DEMO_ORGANIZATION_ID = "org-acme"

DEMO_USERS: list[dict[str, str]] = [
    {"id": "user-admin", "email": "admin@splitline.test", "name": "Platform Admin"},
    {"id": "user-hm", "email": "hm@acme.test", "name": "Hannah Manager"},
    {"id": "user-cand", "email": "casey@example.test", "name": "Casey Candidate"},
    {"id": "user-r1", "email": "r1@recruit.test", "name": "Riley One"},
    {"id": "user-r2", "email": "r2@recruit.test", "name": "Robin Two"},
    {"id": "user-r3", "email": "r3@recruit.test", "name": "Rowan Three"},
    {"id": "user-r4", "email": "r4@recruit.test", "name": "Reese Four"},
    {"id": "user-r5", "email": "r5@recruit.test", "name": "Remy Five"},
]

DEMO_MEMBERSHIPS: list[tuple[str, str, str]] = [
    ("user-admin", "org-platform", PLATFORM_ADMIN),
    ("user-hm", DEMO_ORGANIZATION_ID, HIRING_MANAGER),
]


def seed_demo_marketplace(session: Session) -> int:
    """Insert a small marketplace with one hired application; returns rows added."""
    if session.get(User, "user-admin") is not None:
        return 0

    rows: list[object] = [User(**values) for values in DEMO_USERS]
    rows.extend(
        Membership(user_id=user_id, organization_id=org_id, role=role)
        for user_id, org_id, role in DEMO_MEMBERSHIPS
    )
    for index in range(1, 6):
        rows.append(
            Recruiter(
                id=f"R{index}",
                user_id=f"user-r{index}",
                name=DEMO_USERS[index + 2]["name"],
                email=DEMO_USERS[index + 2]["email"],
                status="active",
            )
        )
    rows.extend(
        [
            Candidate(id="cand-1", user_id="user-cand", full_name="Casey Candidate", email="casey@example.test"),
            Company(id="C1", name="Acme Robotics", identity_organization_id=DEMO_ORGANIZATION_ID),
            Job(
                id="job-1",
                company_id="C1",
                title="Staff Platform Engineer",
                company_recruiter_id="R2",
                job_owner_recruiter_id="R3",
                fee_percentage=20.0,
                guarantee_days=90,
            ),
            Application(
                id="app-1",
                candidate_id="cand-1",
                job_id="job-1",
                candidate_recruiter_id="R1",
                stage="hired",
                salary=180000.0,
            ),
            CandidateSourcer(
                candidate_id="cand-1",
                recruiter_id="R4",
                status="active",
                relationship_start_date=date(2026, 1, 5),
            ),
            CompanySourcer(
                company_id="C1",
                recruiter_id="R5",
                status="active",
                relationship_start_date=date(2025, 11, 12),
            ),
        ]
    )

    # Parents first so foreign keys resolve on every backend.
    for row in rows:
        session.add(row)
        session.flush()
    session.commit()
    return len(rows)
