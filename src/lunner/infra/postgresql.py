"""Database engine for the election engine."""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from lunner.app.config import PostgresConfig

logger = logging.getLogger(__name__)


def create_election_engine(config: PostgresConfig, echo: bool = False) -> AsyncEngine:
    """Create the engine used exclusively by the election engine.

    The pool holds a single connection so every cycle runs on the same
    session. pool_pre_ping replaces it transparently after a connection
    loss; the cycle that hit the loss simply fails.
    """
    engine = create_async_engine(
        config.connection,
        echo=echo,
        isolation_level="SERIALIZABLE",
        pool_size=1,
        max_overflow=0,
        pool_recycle=3600,
        pool_pre_ping=True,
    )
    logger.info(
        "PostgreSQL engine created",
        extra={"event": "db_engine_created", "url": config.safe_url, "table": config.table},
    )
    return engine
