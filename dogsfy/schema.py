"""
Dogsfy Backend — Schema Bootstrap
===================================

What:  Creates the tables each partition needs.
How:   `users` goes to the north and south partitions, `friends` to the
       friends partition; the three partitions are prepared concurrently.
Who:   The application lifespan (when AUTO_CREATE_SCHEMA is on) and
       operators via `python -m dogsfy.schema`.
"""

import asyncio
import logging

from dogsfy.database import Base, PartitionRegistry, open_partitions
from dogsfy.models.friendship import Friendship
from dogsfy.models.user import User

logger = logging.getLogger(__name__)


async def create_schema(registry: PartitionRegistry) -> None:
    """Create any missing tables in all three partitions."""
    users = [User.__table__]
    friends = [Friendship.__table__]
    await asyncio.gather(
        registry.north.create_schema(Base.metadata, users),
        registry.south.create_schema(Base.metadata, users),
        registry.friends.create_schema(Base.metadata, friends),
    )


async def main() -> None:
    registry = open_partitions()
    try:
        await create_schema(registry)
    finally:
        await registry.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    asyncio.run(main())
    logger.info("Finished OK")
