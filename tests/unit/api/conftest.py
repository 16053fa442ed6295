import pytest
from fastapi.testclient import TestClient

from freelanceflow.api.main import app
from freelanceflow.db.connect import get_session_dep, get_session_factory_dep


@pytest.fixture
def api(session_factory):
    def override_session():
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_session_dep] = override_session
    app.dependency_overrides[get_session_factory_dep] = lambda: session_factory
    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def as_member():
    def _headers(member):
        return {"X-User-Id": str(member.id)}

    return _headers
