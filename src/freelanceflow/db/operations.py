import logging
import random
from datetime import timedelta
from typing import Any

from faker import Faker
from sqlalchemy import inspect, text

from freelanceflow.db.connect import _engine_for, get_session, resolve_db_uri
from freelanceflow.db.crud import MemberCRUD, ProjectCRUD
from freelanceflow.db.models import (
    Category,
    ExperienceLevel,
    MemberRole,
    ProjectSize,
    TimelineDuration,
    utcnow,
)
from freelanceflow.logging import get_logger


logger = get_logger(__file__, propagate=True)

SKILL_POOL = (
    "python", "django", "fastapi", "react", "vue", "node.js", "typescript",
    "figma", "photoshop", "seo", "copywriting", "aws", "docker", "kubernetes",
    "solidity", "pytorch", "pandas", "swift", "kotlin", "flutter",
)


def _log_info(message: str, *args: Any) -> None:
    """Log ``message`` using both the module logger and the root logger."""

    logger.info(message, *args)
    logging.getLogger().info(message, *args)


def check_status(file_path: str | None = None):
    """Query the database for its SQLite version and log/return it."""
    _log_info("checking db status...")
    with get_session(file_path) as session:
        result = session.execute(text("SELECT sqlite_version();")).fetchone()
        if result:
            version = result[0]
            _log_info("sqlite version: %s", version)
            return version
        logger.warning("sqlite version query returned no result")
        return None


def show_tables(file_path: str | None = None) -> dict[str, list[dict[str, Any]]]:
    """Return table and column metadata for the SQLite database.

    Returns a mapping of table names to column definitions, each with
    ``name``, ``type``, ``nullable`` and ``default`` keys.
    """

    _log_info("showing tables..")
    with get_session(file_path=file_path) as session:
        inspector = inspect(session.bind)
        table_names = sorted(inspector.get_table_names())
        _log_info("tables: %s", table_names)

        return {
            table_name: [
                {
                    "name": column.get("name", ""),
                    "type": str(column.get("type", "")),
                    "nullable": bool(column.get("nullable", True)),
                    "default": column.get("default"),
                }
                for column in inspector.get_columns(table_name)
            ]
            for table_name in table_names
        }


def initialize(file_path=None):
    """Create every table in the database at ``file_path`` (or the default)."""
    db_uri = resolve_db_uri(file_path)
    _log_info("initializing %s", db_uri)
    return _engine_for(db_uri)


def _fake_project(fake: Faker, rng: random.Random, client_id: int) -> dict[str, Any]:
    if rng.random() < 0.6:
        budget = {"type": "fixed", "amount": rng.randrange(100, 10000, 50)}
    else:
        low = rng.randrange(10, 90, 5)
        budget = {"type": "hourly", "rate_min": low, "rate_max": low + rng.randrange(5, 60, 5)}
    deadline = utcnow() + timedelta(days=rng.randint(7, 60)) if rng.random() < 0.5 else None
    return {
        "client_id": client_id,
        "title": fake.sentence(nb_words=6).rstrip(".")[:100].ljust(10, "x"),
        "description": fake.paragraph(nb_sentences=6)[:5000].ljust(50, "."),
        "category": rng.choice(list(Category)).value,
        "skills": rng.sample(SKILL_POOL, k=rng.randint(1, 4)),
        "budget": budget,
        "experience_level": rng.choice(list(ExperienceLevel)).value,
        "project_size": rng.choice(list(ProjectSize)).value,
        "timeline_duration": rng.choice(list(TimelineDuration)).value,
        "location": fake.city() if rng.random() < 0.4 else None,
        "is_remote": rng.random() < 0.7,
        "is_urgent": rng.random() < 0.2,
        "featured": rng.random() < 0.1,
        "tags": ",".join(fake.words(nb=3)),
        "application_deadline": deadline,
    }


def seed(
    file_path: str | None = None,
    *,
    clients: int = 3,
    freelancers: int = 6,
    projects: int = 10,
    proposals_per_project: int = 3,
    random_seed: int | None = None,
) -> dict[str, int]:
    """Fill the database with demo members, projects and proposals."""

    from freelanceflow.matching import service

    fake = Faker()
    rng = random.Random(random_seed)
    if random_seed is not None:
        fake.seed_instance(random_seed)

    members = MemberCRUD()
    counts = {"members": 0, "projects": 0, "proposals": 0}
    with get_session(file_path) as session:
        created = []
        for role, n in ((MemberRole.client, clients), (MemberRole.freelancer, freelancers)):
            for _ in range(n):
                member = members.create(
                    session,
                    {
                        "name": fake.name(),
                        "email": fake.unique.email(),
                        "role": role,
                        "company": fake.company() if role == MemberRole.client else None,
                        "location": fake.city(),
                        "rating": round(rng.uniform(3.0, 5.0), 1),
                        "is_verified": rng.random() < 0.5,
                    },
                )
                if member is not None:
                    created.append(member)
        counts["members"] = len(created)
        client_rows = [m for m in created if m.role == MemberRole.client]
        freelancer_rows = [m for m in created if m.role == MemberRole.freelancer]
        if not client_rows:
            return counts

        store = ProjectCRUD()
        for _ in range(projects):
            client = rng.choice(client_rows)
            project = store.create(session, _fake_project(fake, rng, client.id))
            counts["projects"] += 1
            bidders = rng.sample(freelancer_rows, k=min(proposals_per_project, len(freelancer_rows)))
            for freelancer in bidders:
                if project.budget_amount is not None:
                    bid = round(project.budget_amount * rng.uniform(0.7, 1.1), 2)
                else:
                    bid = round(rng.uniform(project.rate_min, project.rate_max), 2)
                service.submit_proposal(
                    session,
                    project.id,
                    freelancer,
                    {
                        "bid_amount": bid,
                        "cover_letter": fake.paragraph(nb_sentences=5).ljust(50, "."),
                        "timeline": f"{rng.randint(1, 12)} weeks",
                    },
                )
                counts["proposals"] += 1

    _log_info("seeded %s", counts)
    return counts
