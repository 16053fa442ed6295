from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from freelanceflow.config import settings
from freelanceflow.logging import get_logger

from .base import Base

logger = get_logger(__file__)


def sqlite_engine(db_path: str = "sqlite:///./freelanceflow.db") -> Engine:
    """Create an engine for ``db_path`` with foreign keys enforced.

    ``timeout`` is SQLite's busy timeout: a writer that finds the database
    locked waits that long for the competing transaction to finish instead of
    failing straight away. The guarded updates of the lifecycle engine depend
    on this so the loser of an accept race observes the winner's commit.
    """

    engine = create_engine(
        db_path,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.db_timeout_seconds(),
        },
        echo=False,
    )

    trace_sql = settings.sql_trace_enabled()

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if trace_sql:
            dbapi_connection.set_trace_callback(lambda x: logger.info(x))
        cursor.close()

    return engine


def initialize_db(engine: Engine):
    Base.metadata.create_all(bind=engine)
