"""
Database engine and sessions for the provider configuration store.

WHAT: SQLite engine, session factory and declarative Base
WHY: Persist provider configs, credentials and model price lists between runs
HOW: SQLAlchemy 2 sync engine in WAL mode with foreign keys on (model rows cascade with their config)
"""

from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

if settings.DATABASE_URL.startswith("sqlite:///"):
    Path(settings.DATABASE_URL.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(
    settings.DATABASE_URL,
    # Connections may be used from threads other than the one that opened them
    connect_args={"check_same_thread": False},
    echo=settings.DEBUG,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """WAL for concurrent readers; foreign keys so deleting a config drops its models."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

Base = declarative_base()


@contextmanager
def get_db():
    """
    Transaction scope for one store operation.

    Commits on normal exit, rolls back and re-raises on any exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping_database() -> dict:
    """Report whether the store answers a trivial query (used by /status and /health)."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return {"available": True, "error": None}
    except Exception as e:
        logger.error(f"Configuration store ping failed: {e}")
        return {"available": False, "error": str(e)}


def init_db():
    """Create the provider_configs and provider_models tables if missing."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Configuration store ready")


def close_db():
    engine.dispose()
    logger.info("Configuration store connections closed")
