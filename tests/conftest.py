import os
import sys
from pathlib import Path

import pytest

# Ensure the src directory is on the path for imports
root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(root / "src"))

log_dir = root / "logs"
log_dir.mkdir(parents=True, exist_ok=True)
os.environ.setdefault("FREELANCEFLOW_LOG_DIR", str(log_dir))
os.environ.setdefault("FREELANCEFLOW_LOG_CONFIG", str(log_dir / "logging.json"))
os.environ.setdefault("FREELANCEFLOW_DB_DIR", str(root / ".test-db"))

from freelanceflow.db.connect import make_session_factory, sqlite_engine, initialize_db  # noqa: E402
from freelanceflow.db.crud import MemberCRUD, ProjectCRUD  # noqa: E402
from freelanceflow.db.models import MemberRole  # noqa: E402

LOREM = (
    "We need an experienced developer to build and maintain a customer portal "
    "with authentication, dashboards and reporting."
)
COVER = (
    "I have delivered several similar portals and can start immediately; "
    "references available on request."
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for key in ("FREELANCEFLOW_API_KEY", "FREELANCEFLOW_NOTIFY_URL", "FREELANCEFLOW_DB_PATH"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def session_factory(tmp_path):
    engine = sqlite_engine(f"sqlite:///{tmp_path}/test.db")
    initialize_db(engine)
    return make_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def make_member(db_session):
    counter = {"n": 0}

    def _make(role=MemberRole.client, name=None, **extra):
        counter["n"] += 1
        n = counter["n"]
        record = {
            "name": name or f"{role.value.title()} {n}",
            "email": f"{role.value}{n}@example.com",
            "role": role,
            **extra,
        }
        return MemberCRUD().create(db_session, record)

    return _make


@pytest.fixture
def client_member(make_member):
    return make_member(MemberRole.client, name="Carla Client")


@pytest.fixture
def freelancer(make_member):
    return make_member(MemberRole.freelancer, name="Fred Freelancer")


@pytest.fixture
def other_freelancer(make_member):
    return make_member(MemberRole.freelancer, name="Fiona Freelancer")


@pytest.fixture
def admin_member(make_member):
    return make_member(MemberRole.admin, name="Ada Admin")


def project_record(**overrides):
    record = {
        "title": "Build a customer portal",
        "description": LOREM,
        "category": "web-development",
        "skills": ["python", "react"],
        "budget": {"type": "fixed", "amount": 500},
        "experience_level": "intermediate",
        "project_size": "medium",
        "timeline_duration": "1-3-months",
    }
    record.update(overrides)
    return record


def proposal_record(**overrides):
    record = {"bid_amount": 450, "cover_letter": COVER, "timeline": "6 weeks"}
    record.update(overrides)
    return record


@pytest.fixture
def project_payload():
    return project_record


@pytest.fixture
def proposal_payload():
    return proposal_record


@pytest.fixture
def make_project(db_session, client_member):
    def _make(client=None, **overrides):
        owner = client or client_member
        return ProjectCRUD().create(db_session, dict(project_record(**overrides), client_id=owner.id))

    return _make
