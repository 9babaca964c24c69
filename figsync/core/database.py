"""
Database engine and session handling.

The catalog and collection tables live in PostgreSQL in production; tests and
local runs may point ``DATABASE_URL`` at SQLite instead.
"""

from typing import Any, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from figsync.core.config import get_settings
from figsync.core.logging import get_logger

logger = get_logger(__name__)


def engine_options(database_url: str) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to the backend."""
    settings = get_settings()

    if make_url(database_url).get_backend_name() == "sqlite":
        # Sessions are handed across threads by the FastAPI threadpool
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": True,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
    }


engine = create_engine(get_settings().DATABASE_URL, **engine_options(get_settings().DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI routes to get a database session.

    Work left uncommitted when a request fails is rolled back.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_database(db: Session) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True
