"""
Database engine and session management for the SQL storage backend.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rhodesign.logging_config import configure_logging

logger = configure_logging(name="rhodesign.db", logfile="rhodesign.log")

_engine = None
_session_factory = None


def make_engine(database_url: str):
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


def init_engine(database_url: str):
    """Create the process-wide engine and session factory for `database_url`."""
    global _engine, _session_factory
    try:
        _engine = make_engine(database_url)
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    except Exception as e:
        logger.error("Failed to create database engine: %s", str(e), exc_info=True)
        raise
    logger.debug("Database engine initialised for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_engine():
    """Get the SQLAlchemy engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialised; call init_engine() first")
    return _engine


def get_session_factory():
    if _session_factory is None:
        raise RuntimeError("Database engine not initialised; call init_engine() first")
    return _session_factory
