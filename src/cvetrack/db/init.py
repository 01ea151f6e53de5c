"""Database initialization for cvetrack."""

import logging
from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from cvetrack.db.models import Base
from cvetrack.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT = 30.0


def _enable_sqlite_wal(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def get_engine(db_url: str) -> Engine:
    """Build an engine; SQLite files get a busy timeout and WAL journaling."""
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(db_url, echo=False, pool_pre_ping=True)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        db_url,
        echo=False,
        connect_args={"timeout": SQLITE_BUSY_TIMEOUT, "check_same_thread": False},
    )
    event.listen(engine, "connect", _enable_sqlite_wal)
    return engine


def init_db(db_url: str) -> Engine:
    """Connect to the store, create all tables and return the engine.

    Raises StoreUnavailableError when the store cannot be reached.
    """
    try:
        engine = get_engine(db_url)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        logger.error("Store unavailable at %s: %s", make_url(db_url).render_as_string(), e)
        raise StoreUnavailableError(f"Cannot connect to store: {e}") from e
    return engine


def get_session(engine: Engine):
    """Get a database session bound to the engine."""
    Session = sessionmaker(bind=engine)
    return Session()
