"""
Database connection and session management.

Module-level engine and scoped session factory, created lazily from
settings.database_url. Tests swap in their own engine with configure_engine().
"""

from contextlib import contextmanager
from typing import Generator

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, scoped_session, sessionmaker

logger = structlog.get_logger(__name__)

# Global singletons
_engine: Engine | None = None
_SessionFactory: scoped_session | None = None


def get_engine() -> Engine:
    """
    Get or create SQLAlchemy engine (singleton).

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        from forum_inline.config import settings

        kwargs = {"echo": settings.database_echo_sql, "pool_pre_ping": True}
        if settings.database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs["pool_size"] = settings.database_pool_size

        _engine = create_engine(settings.database_url, **kwargs)

        logger.info(
            "forum_db_engine_created",
            database=_engine.url.database,
            dialect=_engine.dialect.name,
        )

    return _engine


def configure_engine(engine: Engine) -> None:
    """
    Use ``engine`` for all following sessions.

    Drops the current session factory so the next session binds to the new
    engine.
    """
    global _engine, _SessionFactory

    if _SessionFactory is not None:
        _SessionFactory.remove()
    _engine = engine
    _SessionFactory = None
    logger.debug("forum_db_engine_configured", dialect=engine.dialect.name)


def get_session_factory() -> scoped_session:
    """
    Get or create scoped session factory (singleton).

    Returns:
        Scoped session factory
    """
    global _SessionFactory

    if _SessionFactory is None:
        engine = get_engine()
        _SessionFactory = scoped_session(sessionmaker(bind=engine, expire_on_commit=False))
        logger.info("forum_db_session_factory_created")

    return _SessionFactory


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic commit/rollback.

    Usage:
        >>> with get_db_session() as session:
        ...     session.add(Post(...))
        ...     # Automatically commits on success, rolls back on exception

    Yields:
        SQLAlchemy Session instance

    Raises:
        Exception: Any database exception (after rollback)
    """
    SessionFactory = get_session_factory()
    session = SessionFactory()

    try:
        yield session
        session.commit()
        logger.debug("forum_db_session_committed")
    except Exception as e:
        session.rollback()
        logger.error("forum_db_session_rollback", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        session.close()
        logger.debug("forum_db_session_closed")


def create_all_tables() -> None:
    """
    Create all database tables.

    Safe to call repeatedly: existing tables are left alone.
    """
    from .models import Base

    engine = get_engine()
    Base.metadata.create_all(engine)
    logger.info("forum_db_tables_created")


def drop_all_tables() -> None:
    """
    Drop all database tables.

    WARNING: Destructive operation. Only use for testing.
    """
    from .models import Base

    engine = get_engine()
    Base.metadata.drop_all(engine)
    logger.warning("forum_db_tables_dropped")
