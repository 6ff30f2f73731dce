"""
Dogsfy Backend — Partition Engines and Registry
=================================================

What:  Async SQLAlchemy engine factory, declarative base, and the registry
       that owns the three partition stores.
How:   `open_partitions()` builds one AsyncEngine per configured URL and wraps
       each in a PartitionStore. The registry is created once by the
       composition root (application lifespan, bootstrap script, or a test
       fixture) and handed to the directory and friendship graph.
Who:   main.py (lifespan), schema.py (bootstrap), tests/conftest.py.
When:  Engines are created at startup and disposed at shutdown. Nothing in
       this module runs at import time apart from the Base declaration.

Partition Layout:
    ┌──────────────┐  ┌──────────────┐  ┌──────────────────┐
    │ north ("n")  │  │ south ("s")  │  │ friends ("f")    │
    │ users table  │  │ users table  │  │ friends table    │
    └──────────────┘  └──────────────┘  └──────────────────┘
    Every store is an independent unit of durability. There is no
    two-phase commit across them.
"""

import logging
from typing import Iterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from dogsfy.config import Settings, settings as default_settings
from dogsfy.services.partition_store import PartitionStore
from dogsfy.services.partitioning import FRIENDS_PARTITION, PartitionTag

logger = logging.getLogger(__name__)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    The user and friendship tables share one metadata object; which table is
    created in which partition is decided by schema.py.
    """
    pass


# ── Engine Factory ────────────────────────────────────────────────────────
def create_partition_engine(url: str, config: Optional[Settings] = None) -> AsyncEngine:
    """
    Create the async engine for a single partition.

    SQLite engines keep SQLAlchemy's default pool; server databases get the
    configured pool sizing and a one-hour recycle.
    """
    config = config or default_settings
    options = {
        "pool_pre_ping": config.db_pool_pre_ping,
        "echo": config.log_level == "DEBUG",
    }
    if not url.startswith("sqlite"):
        options.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_recycle=3600,
        )
    return create_async_engine(url, **options)


# ── Registry ──────────────────────────────────────────────────────────────
class PartitionRegistry:
    """
    Owns the north, south and friends partition stores.

    Usage:
        registry = open_partitions(settings)
        directory = UserDirectory(registry.north, registry.south)
        ...
        await registry.dispose()
    """

    def __init__(self, north: PartitionStore, south: PartitionStore, friends: PartitionStore):
        self.north = north
        self.south = south
        self.friends = friends

    def __iter__(self) -> Iterator[PartitionStore]:
        return iter((self.north, self.south, self.friends))

    async def dispose(self) -> None:
        """Close every pooled connection of every partition."""
        for store in self:
            await store.dispose()
        logger.info("Partition engines disposed")


def open_partitions(config: Optional[Settings] = None) -> PartitionRegistry:
    """
    Build the three partition stores from configuration.

    Engines connect lazily, so this never touches the databases.
    """
    config = config or default_settings
    retry = {
        "retry_attempts": config.storage_retry_max_attempts,
        "retry_min_wait": config.storage_retry_min_wait,
        "retry_max_wait": config.storage_retry_max_wait,
    }
    registry = PartitionRegistry(
        north=PartitionStore(
            PartitionTag.NORTH.value,
            create_partition_engine(config.north_database_url, config),
            **retry,
        ),
        south=PartitionStore(
            PartitionTag.SOUTH.value,
            create_partition_engine(config.south_database_url, config),
            **retry,
        ),
        friends=PartitionStore(
            FRIENDS_PARTITION,
            create_partition_engine(config.friends_database_url, config),
            **retry,
        ),
    )
    logger.info("Opened partitions: north, south, friends")
    return registry
