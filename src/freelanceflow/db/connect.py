# freelanceflow/db/connect.py

import os
from functools import lru_cache
from pathlib import Path
from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator

from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine

from freelanceflow.db.models import sqlite_engine, initialize_db
from freelanceflow.logging import get_logger

logger = get_logger(__file__)

SessionFactory = Callable[[], ContextManager[Session]]


@lru_cache(maxsize=None)
def get_db_dir() -> Path:
    db_dir = Path(os.environ.get("FREELANCEFLOW_DB_DIR", Path.home() / "freelanceflow"))
    db_dir.mkdir(parents=True, exist_ok=True)
    logger.info("setting db_dir to %s", str(db_dir))
    return db_dir


@lru_cache(maxsize=None)
def get_db_path(file: str | Path | None = None) -> str:
    """Return a SQLite database URI string.

    Parameters
    ----------
    file:
        Optional path to a SQLite database file. When ``None`` the default
        directory from :func:`get_db_dir` and the filename
        ``freelanceflow.db`` are used.

    Returns
    -------
    str
        SQLite URI pointing to the database file.
    """

    if file is None:
        db_file = get_db_dir() / "freelanceflow.db"
    else:
        db_file = Path(file)
    db_uri = "sqlite:///" + str(db_file)
    logger.info("setting db_path to %s", db_uri)
    return db_uri


def resolve_db_uri(file_path: str | Path | None = None) -> str:
    """Resolve ``file_path`` or ``FREELANCEFLOW_DB_PATH`` into a SQLite URI."""

    db_path = os.getenv("FREELANCEFLOW_DB_PATH") if file_path is None else file_path
    if db_path is None:
        return get_db_path()
    db_uri = str(db_path)
    if not db_uri.startswith("sqlite"):
        db_uri = "sqlite:///" + db_uri
    return db_uri


@lru_cache(maxsize=None)
def _engine_for(db_uri: str) -> Engine:
    engine = sqlite_engine(db_uri)
    initialize_db(engine=engine)
    return engine


def make_session_factory(engine: Engine) -> SessionFactory:
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    initialize_db(engine=engine)

    @contextmanager
    def get_session():
        session = SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return get_session


# Session Context Manager
@contextmanager
def get_session(file_path: str | Path | None = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations.

    Parameters
    ----------
    file_path:
        Optional path or URI to the SQLite database. If not provided, the
        ``FREELANCEFLOW_DB_PATH`` environment variable or the default URI from
        :func:`get_db_path` is used.
    """

    engine = _engine_for(resolve_db_uri(file_path))
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_session_dep() -> Iterator[Session]:
    """FastAPI dependency that yields a SQLAlchemy session.

    ``get_session`` is a ``contextmanager`` for CLI/scripts. FastAPI expects a
    generator dependency (``yield``) so it can manage teardown after the
    request. This wrapper bridges the two.
    """

    with get_session() as session:
        yield session


def get_session_factory_dep() -> SessionFactory:
    """FastAPI dependency returning a factory for work that outlives a request.

    Background tasks (the best-effort view counter) must not reuse the
    request session, which is closed once the response is sent.
    """

    return get_session
