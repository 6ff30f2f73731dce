"""
Dogsfy Backend — User Directory
=================================

What:  Reads and writes user records across the two hemisphere partitions.
How:   Lookups by username or email fan out to both partitions (north wins
       ties); lookups, updates and deletes by id route straight to the
       partition named by the id's first character.
Who:   AccountService (all user use cases) and FriendshipGraph (hydrating
       friend profiles).

Query plan per operation:
    find_by_username / find_by_email → 2 point queries, concurrent
    find_by_id / get_profile         → 1 point query, routed by id prefix
    list_all                         → 2 full scans, concurrent, north first
    register                         → 1 insert into the resolved partition
    update / remove                  → 1 statement, routed by id prefix

Contract:
    Everything returned is a UserAccount or FriendProfile; the stored
    password never leaves this module. Absence is reported as None, never as
    an exception; deciding whether absence is an error belongs to the caller.
    `remove()` does not touch friendship edges.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from dogsfy.models.user import User
from dogsfy.schemas.user import FriendProfile, UserAccount, UserCreate
from dogsfy.services.fanout import gather_concat, gather_first
from dogsfy.services.partition_store import PartitionStore
from dogsfy.services.partitioning import PartitionTag, RecordId, resolve_partition

logger = logging.getLogger(__name__)

# Columns a caller may change after registration.
UPDATABLE_FIELDS = frozenset({"username", "password", "lat", "lng", "language"})


def generate_identifier(tag: PartitionTag) -> str:
    """Partition tag followed by a fresh random token; collisions are not checked."""
    return str(RecordId.generate(tag))


class UserDirectory:
    """
    Cross-partition view of all users.

    Args:
        north: Store holding users registered with latitude >= 0.
        south: Store holding users registered with latitude < 0.
    """

    def __init__(self, north: PartitionStore, south: PartitionStore):
        self.north = north
        self.south = south

    @property
    def stores(self) -> Dict[PartitionTag, PartitionStore]:
        """Both user partitions, north first (the tie-break order)."""
        return {PartitionTag.NORTH: self.north, PartitionTag.SOUTH: self.south}

    def store_for(self, identifier: str) -> PartitionStore:
        """Route a well-formed id to its partition; raises MalformedIdentifierError."""
        return self.stores[RecordId.parse(identifier).partition]

    # ── Lookups ───────────────────────────────────────────────────────────

    async def _find_across(self, column: Any, value: str) -> Optional[User]:
        return await gather_first(self.stores, lambda store: store.get(User, column == value))

    async def find_by_username(self, username: str) -> Optional[UserAccount]:
        user = await self._find_across(User.username, username)
        return UserAccount.model_validate(user) if user else None

    async def find_by_email(self, email: str) -> Optional[UserAccount]:
        user = await self._find_across(User.email, email)
        return UserAccount.model_validate(user) if user else None

    async def find_by_id(self, identifier: str) -> Optional[UserAccount]:
        """
        Routed point lookup; no fan-out.

        Raises:
            MalformedIdentifierError: The id is not a tag followed by 32 hex chars.
        """
        store = self.store_for(identifier)
        user = await store.get(User, User.id == identifier)
        return UserAccount.model_validate(user) if user else None

    async def get_profile(self, identifier: str) -> Optional[FriendProfile]:
        """Public profile fields (id, username, email, lat, lng) of one user."""
        store = self.store_for(identifier)
        user = await store.get(User, User.id == identifier)
        return FriendProfile.model_validate(user) if user else None

    async def list_all(self) -> Tuple[List[UserAccount], int]:
        """Every user of both partitions, north first, with the total."""
        rows = await gather_concat(self.stores, lambda store: store.scan(User))
        users = [UserAccount.model_validate(row) for row in rows]
        return users, len(users)

    # ── Writes ────────────────────────────────────────────────────────────

    async def register(self, user: UserCreate) -> UserAccount:
        """
        Assign a partition and an id, then insert.

        The caller has already checked that username and email are free.

        Raises:
            InvalidCoordinateError: lat/lng fall in neither hemisphere.
            StorageError: The insert failed.
        """
        tag = resolve_partition(user.lat, user.lng)
        record = User(
            id=generate_identifier(tag),
            username=user.username,
            email=user.email,
            password=user.password,
            lat=user.lat,
            lng=user.lng,
            language=user.language,
            hemisphere=tag.value,
        )
        store = self.stores[tag]
        await store.insert(record)
        logger.info("Registered user %s in partition '%s'", record.id, store.name)
        return UserAccount.model_validate(record)

    async def update(self, identifier: str, fields: Dict[str, Any]) -> bool:
        """
        Sparse update of the supplied fields.

        None values and fields that may not change (id, hemisphere, email,
        timestamps) are dropped. Nothing left to change is a successful no-op
        and returns False. Changing lat/lng never moves a user to the other
        partition; the id prefix stays authoritative.
        """
        changes = {
            key: value
            for key, value in fields.items()
            if value is not None and key in UPDATABLE_FIELDS
        }
        if not changes:
            logger.debug("No changes for user %s", identifier)
            return False

        store = self.store_for(identifier)
        await store.update(User, [User.id == identifier], changes)
        logger.info("Updated user %s (fields: %s)", identifier, sorted(changes))
        return True

    async def remove(self, identifier: str) -> int:
        """Delete the user row only; friendship edges are the caller's job."""
        store = self.store_for(identifier)
        deleted = await store.delete(User, User.id == identifier)
        logger.info("Removed user %s from partition '%s' (%d row)", identifier, store.name, deleted)
        return deleted
