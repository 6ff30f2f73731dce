"""
Dogsfy Backend — Scatter/Gather Across Partitions
===================================================

What:  The one primitive every multi-partition read goes through.
How:   `scatter()` runs the same query against each store concurrently and
       waits for ALL of them; results come back in the order the stores were
       given, never in completion order. `gather_first()` and
       `gather_concat()` apply the two merge rules the directory needs.

Tie-break:
    Stores are passed north first, so when a lookup that should match in at
    most one partition matches in both, the north row wins. The rule is
    applied after every branch has finished.

Failures:
    If any branch fails, the remaining branches still run to completion and
    the first failure (in store order) is re-raised. Cancelling the caller
    cancels every branch.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Hashable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from dogsfy.services.partition_store import PartitionStore

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

Query = Callable[[PartitionStore], Awaitable[T]]


async def scatter(stores: Mapping[K, PartitionStore], query: Query) -> List[Tuple[K, T]]:
    """Run `query` on every store concurrently; return (key, result) in store order."""
    keys = list(stores)
    results = await asyncio.gather(
        *(query(stores[key]) for key in keys),
        return_exceptions=True,
    )
    for key, result in zip(keys, results):
        if isinstance(result, BaseException):
            logger.debug("Fan-out branch '%s' failed: %s", key, type(result).__name__)
            raise result
    return list(zip(keys, results))


def first_present(results: Sequence[Tuple[K, Optional[T]]]) -> Optional[T]:
    """Tie-break: the first non-empty result in store order."""
    for key, result in results:
        if result is not None:
            return result
    return None


async def gather_first(stores: Mapping[K, PartitionStore], query: Query) -> Optional[T]:
    """Scatter a point lookup and keep the winning row, if any."""
    return first_present(await scatter(stores, query))


async def gather_concat(stores: Mapping[K, PartitionStore], query: Query) -> List[T]:
    """Scatter a scan and concatenate the result lists in store order."""
    combined: List[T] = []
    for _, rows in await scatter(stores, query):
        combined.extend(rows)
    return combined
