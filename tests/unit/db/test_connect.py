import pytest
from sqlalchemy import text

from freelanceflow.db import connect
from freelanceflow.db.connect import get_session, make_session_factory, resolve_db_uri
from freelanceflow.db.models import Member, sqlite_engine


def test_resolve_db_uri_prefers_argument(monkeypatch, tmp_path):
    monkeypatch.setenv("FREELANCEFLOW_DB_PATH", str(tmp_path / "env.db"))
    assert resolve_db_uri(tmp_path / "arg.db") == f"sqlite:///{tmp_path / 'arg.db'}"
    assert resolve_db_uri() == f"sqlite:///{tmp_path / 'env.db'}"
    assert resolve_db_uri("sqlite:///already.db") == "sqlite:///already.db"


def test_get_session_uses_env_path(monkeypatch, tmp_path):
    db_file = tmp_path / "env.db"
    monkeypatch.setenv("FREELANCEFLOW_DB_PATH", str(db_file))
    with get_session() as session:
        session.execute(text("SELECT 1"))
    assert db_file.exists()


def test_session_factory_commits_and_rolls_back(tmp_path):
    engine = sqlite_engine(f"sqlite:///{tmp_path}/factory.db")
    factory = make_session_factory(engine)

    with factory() as session:
        session.add(Member(name="Kept", email="kept@example.com", role="client"))

    with pytest.raises(RuntimeError):
        with factory() as session:
            session.add(Member(name="Lost", email="lost@example.com", role="client"))
            session.flush()
            raise RuntimeError("boom")

    with factory() as session:
        names = [m.name for m in session.query(Member).all()]
    assert names == ["Kept"]


def test_foreign_keys_are_enforced(tmp_path):
    engine = sqlite_engine(f"sqlite:///{tmp_path}/fk.db")
    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1


def test_session_factory_dep_returns_context_manager():
    assert connect.get_session_factory_dep() is get_session
