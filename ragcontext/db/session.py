from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from ragcontext.config.settings import settings

SessionFactory = Callable[[], Session]


def _is_postgresql(database_url: str) -> bool:
    lowered = database_url.lower()
    return "postgresql" in lowered or "postgres" in lowered


def _validate_postgresql_driver() -> None:
    """Validate PostgreSQL driver is installed when using PostgreSQL.

    Must actually import psycopg2 (not just check spec) because SQLAlchemy
    will try to import it when creating the engine.
    """
    try:
        import psycopg2  # noqa: F401, PLC0415

        logger.info("PostgreSQL driver (psycopg2) is available")
    except ImportError as e:
        logger.error("PostgreSQL driver (psycopg2) is not installed. Install it with: pip install psycopg2-binary")
        raise ImportError("PostgreSQL driver required. Install with: pip install psycopg2-binary") from e


def create_db_engine(database_url: str) -> Engine:
    """Create an engine with connection arguments suited to the backend."""
    connect_args: dict[str, object] = {}
    if "sqlite" in database_url.lower():
        connect_args = {"check_same_thread": False}
    elif _is_postgresql(database_url):
        _validate_postgresql_driver()
        connect_args = {
            "connect_timeout": 10,
            "application_name": "ragcontext",
        }

    return create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


# Lazy initialization to avoid import-time database connections
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Get or create the process-wide database engine."""
    global _engine
    if _engine is None:
        if _is_postgresql(settings.database_url):
            logger.info("Initializing database engine (PostgreSQL)")
        else:
            logger.warning("Initializing database engine (SQLite, local development only)")
        _engine = create_db_engine(settings.database_url)
        logger.info("Database engine initialized")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory bound to the process-wide engine."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
        logger.info("Database session factory initialized")
    return _SessionLocal


@contextmanager
def get_session(session_factory: SessionFactory | None = None) -> Generator[Session, None, None]:
    """Get database session context manager.

    Commits when the block exits cleanly and there is something to write,
    rolls back and re-raises otherwise.

    Args:
        session_factory: Factory to open the session with. Defaults to the
            process-wide factory.
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        if session.dirty or session.new or session.deleted:
            session.commit()
    except Exception as e:
        logger.error(f"Database session error, rolling back: {type(e).__name__}: {e}")
        session.rollback()
        raise
    finally:
        session.close()
