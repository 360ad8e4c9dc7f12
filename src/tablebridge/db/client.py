"""
tablebridge - SQLAlchemy engine.

Low-level database access. All statements go through one pooled Engine.
"""

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from tablebridge.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Singleton engine instance
_engine: Engine | None = None


def create_db_engine(settings: Settings) -> Engine:
    """Build a pooled engine from settings."""
    url = settings.database_url
    kwargs: dict = {"echo": settings.database_echo, "pool_pre_ping": True}

    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_size"] = settings.database_pool_size

    engine = create_engine(url, **kwargs)
    logger.info(f"Database engine created (dialect={engine.dialect.name})")
    return engine


def get_engine() -> Engine:
    """
    Get the process-wide engine.

    Uses singleton pattern to reuse the connection pool.
    """
    global _engine

    if _engine is None:
        _engine = create_db_engine(get_settings())

    return _engine


def driver_message(exc: Exception) -> str:
    """The underlying driver's message for a SQLAlchemy error, if there is one."""
    orig = getattr(exc, "orig", None)
    if orig is not None:
        return str(orig)
    return str(exc)
