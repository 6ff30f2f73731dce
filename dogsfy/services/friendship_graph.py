"""
Dogsfy Backend — Friendship Graph
===================================

What:  Symmetric friendship edges stored in the friends partition.
How:   One row per unordered pair. Every read and delete matches both
       (a, b) and (b, a); listing unions "edges I created" with "edges that
       point at me" and then hydrates each neighbor from its own partition
       through the UserDirectory.
Who:   AccountService (friend use cases and the user-delete cascade).

Listing Algorithm:
    1. neighbor ids = SELECT DISTINCT friend_id WHERE user_id = :me
                      UNION
                      SELECT DISTINCT user_id  WHERE friend_id = :me
       ordered by neighbor id so consecutive pages never overlap
    2. no PageRequest → all neighbor ids
    3. PageRequest    → LIMIT/OFFSET on the id query; the total comes from
                        the same union without LIMIT/OFFSET
    4. zero ids       → empty page with total 0, no hydration (a page past
                        the end included)
    5. otherwise      → one routed point query per neighbor, concurrently;
                        output keeps the neighbor-id order

Consistency:
    add/remove never pre-check anything; AccountService does that, with the
    usual window between check and write. A neighbor whose user row has
    already been deleted (edge cascade and user delete are separate calls)
    is logged and left out of the hydrated page.
"""

import asyncio
import logging
from typing import List, Optional

from sqlalchemy import and_, literal_column, or_, select, union

from dogsfy.models.friendship import Friendship
from dogsfy.schemas.user import FriendPage, FriendshipEdge, PageRequest
from dogsfy.services.partition_store import PartitionStore
from dogsfy.services.partitioning import RecordId
from dogsfy.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


def _pair(a: str, b: str):
    """Predicate matching the edge between a and b in either column order."""
    return or_(
        and_(Friendship.user_id == a, Friendship.friend_id == b),
        and_(Friendship.user_id == b, Friendship.friend_id == a),
    )


def _touching(user_id: str):
    """Predicate matching every edge that mentions user_id in either column."""
    return or_(Friendship.user_id == user_id, Friendship.friend_id == user_id)


def _well_formed(*identifiers: str) -> None:
    """Reject ids that could never name a user before they reach the edge table."""
    for identifier in identifiers:
        RecordId.parse(identifier)


def neighbor_ids_query(user_id: str):
    """The unordered neighbor-id union used for both a page and its total."""
    return union(
        select(Friendship.friend_id.label("friend_id"))
        .where(Friendship.user_id == user_id)
        .distinct(),
        select(Friendship.user_id.label("friend_id"))
        .where(Friendship.friend_id == user_id)
        .distinct(),
    )


class FriendshipGraph:
    """
    Edge operations over the friends partition.

    Args:
        store:     The friends PartitionStore.
        directory: Used to hydrate neighbor profiles from the user partitions.
    """

    def __init__(self, store: PartitionStore, directory: UserDirectory):
        self.store = store
        self.directory = directory

    async def exists(self, user_a: str, user_b: str) -> Optional[FriendshipEdge]:
        """The stored edge between the two users in either order, or None."""
        _well_formed(user_a, user_b)
        edge = await self.store.get(Friendship, _pair(user_a, user_b))
        return FriendshipEdge.model_validate(edge) if edge else None

    async def add(self, user_a: str, user_b: str) -> FriendshipEdge:
        """Insert the edge (user_a, user_b). Callers check existence first."""
        _well_formed(user_a, user_b)
        edge = await self.store.insert(Friendship(user_id=user_a, friend_id=user_b))
        logger.info("Friendship added: %s -> %s", user_a, user_b)
        return FriendshipEdge.model_validate(edge)

    async def remove(self, user_a: str, user_b: str) -> int:
        """Delete the edge in either order; removing nothing still succeeds."""
        _well_formed(user_a, user_b)
        deleted = await self.store.delete(Friendship, _pair(user_a, user_b))
        logger.info("Friendship removed: %s <-> %s (%d rows)", user_a, user_b, deleted)
        return deleted

    async def remove_all(self, user_id: str) -> int:
        """Delete every edge mentioning user_id, whichever column it sits in."""
        _well_formed(user_id)
        deleted = await self.store.delete(Friendship, _touching(user_id))
        logger.info("Removed all friendships of %s (%d rows)", user_id, deleted)
        return deleted

    async def neighbor_ids(self, user_id: str, page: Optional[PageRequest] = None) -> List[str]:
        """Neighbor ids in stable order, optionally one page of them."""
        _well_formed(user_id)
        query = neighbor_ids_query(user_id)
        return await self.store.scan(
            query,
            order_by=[literal_column("friend_id")],
            limit=page.limit if page else None,
            offset=page.offset if page else None,
        )

    async def list_friends(self, user_id: str, page: Optional[PageRequest] = None) -> FriendPage:
        """
        Hydrated friends of user_id.

        Args:
            user_id: Whose friends to list.
            page:    Optional 1-based page; without it every friend is returned.

        Returns:
            FriendPage with total (all friends, not just this page) and, when
            paginated, total_pages and current_page. A page that comes back
            empty reports total 0.
        """
        ids = await self.neighbor_ids(user_id, page)

        if not ids:
            result = FriendPage(friends=[], total=0)
        else:
            if page is None:
                total = len(ids)
            else:
                total = await self.store.count(neighbor_ids_query(user_id))

            profiles = await asyncio.gather(*(self.directory.get_profile(i) for i in ids))
            friends = []
            for neighbor_id, profile in zip(ids, profiles):
                if profile is None:
                    logger.warning("Friend %s of %s has no user record; skipping", neighbor_id, user_id)
                    continue
                friends.append(profile)
            result = FriendPage(friends=friends, total=total)

        if page is not None:
            result.total_pages = page.total_pages(result.total)
            result.current_page = page.page
        return result
