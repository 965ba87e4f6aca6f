"""Database configuration for the to-do backend.

This module builds the SQLAlchemy engine from the environment and
creates the tables. Sessions are opened by crud.TaskStorage.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine

# Import models so they're registered with SQLModel.metadata
from .models import Task  # noqa: F401

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./data/todos.db"


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Create the database engine.

    Args:
        database_url: SQLAlchemy URL; defaults to DATABASE_URL from the
            environment, then to a SQLite file under ./data

    Returns:
        Engine: configured engine
    """
    url = make_url(database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))
    echo = os.getenv("SQL_ECHO", "").lower() in ("1", "true", "yes")

    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    # Requests are served from a thread pool; the store serializes writes itself.
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    logger.info(f"Using SQLite database at {url.database}")
    return engine


def create_db_and_tables(engine: Engine) -> None:
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def ping(engine: Engine) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception("Database readiness check failed")
        return False
