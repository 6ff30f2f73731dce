"""
Dogsfy Backend — Partition Store Tests
========================================

What:  CRUD behaviour of a single partition against a real SQLite file.
How:   Uses the `partitions` fixture (fresh files per test); failure paths
       use an unreachable database path or a patched session.

What we test:
    ✅ insert / get / scan / count / update / delete
    ✅ scan limit/offset and re-issuability
    ✅ Table-level unique constraint → ConstraintViolationError
    ✅ Unreachable database → StorageError after retries; ping() is False
    ✅ Partitions are independent (a row in north is invisible in south)
    ✅ Building the retry policy raises no tenacity deprecation warnings
"""

import warnings
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from dogsfy.database import create_partition_engine
from dogsfy.exceptions import ConstraintViolationError, StorageError
from dogsfy.models.friendship import Friendship
from dogsfy.models.user import User
from dogsfy.services.partition_store import PartitionStore
from dogsfy.services.partitioning import PartitionTag
from dogsfy.services.user_directory import generate_identifier


def make_user(username: str, tag: PartitionTag = PartitionTag.NORTH) -> User:
    return User(
        id=generate_identifier(tag),
        username=username,
        email=f"{username}@example.com",
        password="opaque",
        lat=10.0 if tag is PartitionTag.NORTH else -10.0,
        lng=20.0,
        language="en",
        hemisphere=tag.value,
    )


class TestPartitionStoreCrud:

    @pytest.mark.asyncio
    async def test_insert_then_get(self, partitions):
        user = make_user("alice")
        await partitions.north.insert(user)

        found = await partitions.north.get(User, User.id == user.id)
        assert found is not None
        assert found.username == "alice"
        assert found.created_at is not None

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, partitions):
        assert await partitions.north.get(User, User.username == "nobody") is None

    @pytest.mark.asyncio
    async def test_partitions_are_independent(self, partitions):
        user = make_user("alice")
        await partitions.north.insert(user)

        assert await partitions.south.get(User, User.id == user.id) is None
        assert await partitions.south.scan(User) == []

    @pytest.mark.asyncio
    async def test_scan_with_limit_and_offset(self, partitions):
        for name in ["a", "b", "c", "d", "e"]:
            await partitions.north.insert(make_user(name))

        everything = await partitions.north.scan(User, order_by=[User.username])
        assert [u.username for u in everything] == ["a", "b", "c", "d", "e"]

        window = await partitions.north.scan(User, order_by=[User.username], limit=2, offset=1)
        assert [u.username for u in window] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_scan_is_reissuable(self, partitions):
        await partitions.north.insert(make_user("a"))
        first = await partitions.north.scan(User)
        second = await partitions.north.scan(User)
        assert [u.id for u in first] == [u.id for u in second]

    @pytest.mark.asyncio
    async def test_scan_statement_returns_scalars_for_one_column(self, partitions):
        await partitions.friends.insert(Friendship(user_id="n1", friend_id="s1"))
        await partitions.friends.insert(Friendship(user_id="n1", friend_id="s2"))

        ids = await partitions.friends.scan(
            select(Friendship.friend_id).where(Friendship.user_id == "n1"),
            order_by=[Friendship.friend_id],
        )
        assert ids == ["s1", "s2"]

    @pytest.mark.asyncio
    async def test_count_matches_statement(self, partitions):
        for name in ["a", "b", "c"]:
            await partitions.north.insert(make_user(name))
        assert await partitions.north.count(select(User.id)) == 3
        assert await partitions.north.count(select(User.id).where(User.username == "a")) == 1

    @pytest.mark.asyncio
    async def test_update_returns_rows_affected(self, partitions):
        user = make_user("alice")
        await partitions.north.insert(user)

        affected = await partitions.north.update(User, [User.id == user.id], {"language": "es"})
        assert affected == 1
        refreshed = await partitions.north.get(User, User.id == user.id)
        assert refreshed.language == "es"

        assert await partitions.north.update(User, [User.id == "n-missing"], {"language": "fr"}) == 0

    @pytest.mark.asyncio
    async def test_delete_returns_rows_affected(self, partitions):
        user = make_user("alice")
        await partitions.north.insert(user)

        assert await partitions.north.delete(User, User.id == user.id) == 1
        assert await partitions.north.delete(User, User.id == user.id) == 0
        assert await partitions.north.get(User, User.id == user.id) is None


class TestPartitionStoreFailures:

    @pytest.mark.asyncio
    async def test_unique_constraint_raises_constraint_violation(self, partitions):
        await partitions.north.insert(make_user("alice"))

        with pytest.raises(ConstraintViolationError) as exc_info:
            await partitions.north.insert(make_user("alice"))

        assert isinstance(exc_info.value, StorageError)
        assert exc_info.value.partition == "n"

    @pytest.mark.asyncio
    async def test_friends_table_accepts_duplicate_pairs(self, partitions):
        await partitions.friends.insert(Friendship(user_id="n1", friend_id="s1"))
        await partitions.friends.insert(Friendship(user_id="n1", friend_id="s1"))
        assert len(await partitions.friends.scan(Friendship)) == 2

    @pytest.mark.asyncio
    async def test_unreachable_database_raises_storage_error(self, tmp_path, test_settings):
        url = f"sqlite+aiosqlite:///{tmp_path / 'missing-dir' / 'x.db'}"
        store = PartitionStore("n", create_partition_engine(url, test_settings), retry_attempts=2, retry_min_wait=0, retry_max_wait=0.01)
        try:
            with pytest.raises(StorageError) as exc_info:
                await store.get(User, User.id == "n1")
            assert exc_info.value.context["operation"] == "get"
            assert exc_info.value.context["error_type"] == "OperationalError"
            assert await store.ping() is False
        finally:
            await store.dispose()

    @pytest.mark.asyncio
    async def test_transient_operational_error_is_retried(self, partitions):
        store = partitions.north
        user = make_user("alice")
        await store.insert(user)

        real_factory = store._session_factory
        calls = {"count": 0}

        def flaky_factory():
            calls["count"] += 1
            if calls["count"] == 1:
                raise OperationalError("SELECT", {}, Exception("database is locked"))
            return real_factory()

        with patch.object(store, "_session_factory", side_effect=flaky_factory):
            found = await store.get(User, User.id == user.id)

        assert found is not None
        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_ping_reachable(self, partitions):
        assert await partitions.friends.ping() is True

    @pytest.mark.asyncio
    async def test_retry_policy_emits_no_tenacity_warnings(self, partitions):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            await partitions.north.get(User, User.username == "nobody")

        raised_here = [
            w
            for w in caught
            if issubclass(w.category, DeprecationWarning)
            and ("tenacity" in w.filename or w.filename.endswith("partition_store.py"))
        ]
        assert raised_here == []
