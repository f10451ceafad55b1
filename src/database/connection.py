"""
Database Connection Management for ToeRank

Provides database engine, session factory, and initialization utilities.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from src.config import load_config
from src.utils import get_logger

logger = get_logger(__name__)

# Global engine and session factory (initialized once)
_engine = None
_SessionFactory = None


def get_engine():
    """
    Get SQLAlchemy engine (singleton)

    URL comes from 'database.url' (required, Fast Fail).
    """
    global _engine

    if _engine is None:
        config = load_config()
        db_url = config.get_required('database.url')

        url = make_url(db_url)
        if url.get_backend_name() == 'sqlite' and url.database and url.database != ':memory:':
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        _engine = create_engine(
            db_url,
            pool_pre_ping=True,
            echo=config.get('database.echo', False)
        )

        logger.info(f"Database engine created: {url.render_as_string(hide_password=True)}")

    return _engine


def get_session_factory():
    """Get SQLAlchemy session factory (singleton)"""
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=get_engine())
        logger.debug("Session factory created")

    return _SessionFactory


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions

    Usage:
        >>> with get_session() as session:
        ...     runs = session.query(BatchRun).all()
        ...     # Session auto-committed on success, rolled back on error

    Raises:
        Exception: Re-raises any exceptions after rollback
    """
    session = get_session_factory()()

    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Session rollback due to error: {e}", exc_info=True)
        raise
    finally:
        session.close()


def init_db():
    """
    Initialize database

    Creates all tables defined in models.
    """
    from .models import Base

    Base.metadata.create_all(get_engine())
    logger.info("Database tables created/verified")
