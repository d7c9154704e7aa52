"""
Database Session
Provides database session factory for use in Celery tasks and other contexts.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ..config.settings import get_settings


def create_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    """
    Build a session factory bound to a new engine.

    Args:
        database_url: SQLAlchemy database URL
        **engine_kwargs: Extra arguments for create_engine

    Returns:
        Configured sessionmaker
    """
    engine = create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        **engine_kwargs,
    )
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


_session_factory = None


def get_session_factory() -> sessionmaker:
    """Get the process-wide session factory, built from settings on first use."""
    global _session_factory
    if _session_factory is None:
        settings = get_settings()
        _session_factory = create_session_factory(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )
    return _session_factory
