"""
Run store database setup with SQLAlchemy.

SQLite by default (``FATIGUE_DATABASE_URL``); any SQLAlchemy URL works.
"""
from typing import Any, Dict, Optional
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from fatigue.config import get_settings
import logging

logger = logging.getLogger(__name__)

settings = get_settings()


def make_engine(url: str, **kwargs: Any) -> Engine:
    """
    Create an engine for ``url``.

    SQLite connections are shared with the FastAPI worker threads, so the
    same-thread check is disabled for them.
    """
    connect_args: Dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, **kwargs)


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Session:
    """
    Dependency function to get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None):
    """Create the run store tables on ``bind`` (default: the configured engine)."""
    bind = bind or engine
    try:
        from fatigue.models import analysis_run  # noqa: F401  registers the table

        Base.metadata.create_all(bind=bind)
        logger.info(f"Run store tables: {inspect(bind).get_table_names()}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
