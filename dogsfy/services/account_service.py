"""
Dogsfy Backend — Account Service (Use Cases)
==============================================

What:  The inbound use cases that sit on top of the directory and the graph:
       registration, profile CRUD, friend add/remove/list, account deletion.
How:   Each use case runs its existence/uniqueness pre-checks, then calls
       exactly the core operations it needs. Pre-checks and writes are
       separate calls, so two concurrent requests can both pass a check;
       that window is accepted, not locked.
Who:   Any inbound adapter (HTTP handlers, scripts, tests).

Workflow: delete_user
    ┌──────────────┐   ┌────────────────────┐   ┌──────────────────────┐
    │ user exists? │ → │ graph.remove_all() │ → │ directory.remove()   │
    └──────────────┘   └────────────────────┘   └──────────────────────┘
    Two partitions, two transactions. If the second step fails the edges are
    already gone and the user remains; a retry completes the deletion.

Error Recovery:
    Our own exceptions (DogsfyError subclasses) propagate unchanged. Anything
    else is logged with its traceback and replaced by a generic StorageError
    so internal detail never reaches the caller.
"""

import asyncio
import functools
import logging
from typing import Optional

from dogsfy.config import settings
from dogsfy.exceptions import (
    AlreadyExistsError,
    ConflictError,
    DogsfyError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from dogsfy.schemas.user import (
    FriendListResponse,
    MessageResponse,
    PageRequest,
    UserAccount,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from dogsfy.services.friendship_graph import FriendshipGraph
from dogsfy.services.partitioning import RecordId, resolve_partition
from dogsfy.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


def use_case(func):
    """Normalize unexpected failures at the service boundary to StorageError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DogsfyError:
            raise
        except Exception as e:
            logger.error("Unexpected error in %s: %s", func.__name__, str(e), exc_info=True)
            raise StorageError(
                message="Server error",
                context={"operation": func.__name__, "error_type": type(e).__name__},
            ) from e

    return wrapper


class AccountService:
    """
    Orchestrates user and friendship use cases across all partitions.

    Args:
        directory:      Cross-partition user access.
        graph:          Friendship edges.
        max_page_limit: Upper bound for the page size of friend listings.
    """

    def __init__(
        self,
        directory: UserDirectory,
        graph: FriendshipGraph,
        max_page_limit: Optional[int] = None,
    ):
        self.directory = directory
        self.graph = graph
        self.max_page_limit = max_page_limit or settings.max_page_limit

    async def _require_user(self, user_id: str, resource: str = "user") -> UserAccount:
        """Parse the id (MalformedIdentifierError) and load the user (NotFoundError)."""
        RecordId.parse(user_id)
        user = await self.directory.find_by_id(user_id)
        if user is None:
            raise NotFoundError(resource=resource, resource_id=user_id)
        return user

    # ── Users ─────────────────────────────────────────────────────────────

    @use_case
    async def register_user(self, payload: UserCreate) -> UserResponse:
        """
        Register a new user in the partition its coordinates resolve to.

        Raises:
            InvalidCoordinateError: lat/lng outside both hemispheres.
            AlreadyExistsError: Username or email taken in either partition.
            StorageError: The insert failed.
        """
        resolve_partition(payload.lat, payload.lng)

        by_username, by_email = await asyncio.gather(
            self.directory.find_by_username(payload.username),
            self.directory.find_by_email(payload.email),
        )
        if by_username is not None:
            raise AlreadyExistsError(resource="user", field="username")
        if by_email is not None:
            raise AlreadyExistsError(resource="user", field="email")

        user = await self.directory.register(payload)
        return UserResponse(data=user)

    @use_case
    async def get_user(self, user_id: str) -> UserResponse:
        return UserResponse(data=await self._require_user(user_id))

    @use_case
    async def list_users(self) -> UserListResponse:
        users, total = await self.directory.list_all()
        return UserListResponse(data=users, total=total)

    @use_case
    async def update_user(self, user_id: str, payload: UserUpdate) -> MessageResponse:
        """
        Apply a partial profile update.

        An update with no fields is a success that changes nothing. Choosing
        a username already held by a different user is a conflict.
        """
        await self._require_user(user_id)

        changes = payload.changes()
        if not changes:
            return MessageResponse(message="No changes were made")

        if "username" in changes:
            holder = await self.directory.find_by_username(changes["username"])
            if holder is not None and holder.id != user_id:
                raise AlreadyExistsError(resource="user", field="username")

        await self.directory.update(user_id, changes)
        return MessageResponse(message="User updated correctly")

    @use_case
    async def delete_user(self, user_id: str) -> MessageResponse:
        """Remove all of the user's friendships, then the user (not atomic)."""
        await self._require_user(user_id)
        await self.graph.remove_all(user_id)
        await self.directory.remove(user_id)
        return MessageResponse(message="User deleted correctly")

    # ── Friends ───────────────────────────────────────────────────────────

    @use_case
    async def add_friend(self, user_id: str, friend_id: str) -> MessageResponse:
        """
        Raises:
            MalformedIdentifierError: Either id is not a well-formed user id.
            ValidationError: A user cannot befriend themselves.
            NotFoundError: The user or the friend does not exist.
            AlreadyExistsError: The users are already friends.
        """
        RecordId.parse(user_id)
        RecordId.parse(friend_id)
        if user_id == friend_id:
            raise ValidationError(message="You cannot add yourself as a friend", field="friend_id")

        await self._require_user(user_id)
        await self._require_user(friend_id, resource="friend")
        if await self.graph.exists(user_id, friend_id) is not None:
            raise AlreadyExistsError(
                resource="friendship",
                message="The users are already friends",
            )

        await self.graph.add(user_id, friend_id)
        return MessageResponse(message="Friend added correctly")

    @use_case
    async def remove_friend(self, user_id: str, friend_id: str) -> MessageResponse:
        """
        Raises:
            MalformedIdentifierError: Either id is not a well-formed user id.
            NotFoundError: The user or the friend does not exist.
            ConflictError: The users are not friends.
        """
        await self._require_user(user_id)
        await self._require_user(friend_id, resource="friend")
        if await self.graph.exists(user_id, friend_id) is None:
            raise ConflictError(
                resource="friendship",
                message="The users are not friends",
            )

        await self.graph.remove(user_id, friend_id)
        return MessageResponse(message="Friend deleted correctly")

    @use_case
    async def list_friends(
        self,
        user_id: str,
        limit: Optional[int] = None,
        page: Optional[int] = None,
    ) -> FriendListResponse:
        """
        List a user's friends; paginated only when both limit and page are given.

        `page` is 1-based. `limit` is capped at max_page_limit.
        """
        await self._require_user(user_id)

        request = None
        if limit is not None and page is not None:
            if limit < 1 or page < 1:
                raise ValidationError(message="limit and page must be positive integers", field="limit,page")
            request = PageRequest(page=page, limit=min(limit, self.max_page_limit))

        result = await self.graph.list_friends(user_id, request)
        return FriendListResponse(
            data=result.friends,
            total=result.total,
            total_pages=result.total_pages,
            current_page=result.current_page,
        )
