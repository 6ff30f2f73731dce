"""
Dogsfy Backend — Friendship Graph Tests
=========================================

What:  Edge operations and hydrated listings over real SQLite partitions.

What we test:
    ✅ Edges are symmetric for exists / remove / listing
    ✅ remove_all() deletes edges in both columns
    ✅ Friends are hydrated from their own partition, without passwords
    ✅ Pagination: every page reports the same total, pages never overlap,
       and together they cover every friend exactly once
    ✅ Duplicate raw edges are listed once
    ✅ A neighbor with no user row is skipped
    ✅ An empty page (none at all, or past the end) reports total 0
    ✅ Malformed ids are rejected before they reach the edge table
"""

import pytest

from dogsfy.exceptions import MalformedIdentifierError
from dogsfy.models.friendship import Friendship
from dogsfy.schemas.user import PageRequest


@pytest.fixture
def register(directory, user_payload):
    async def make(username, lat=40.0, lng=-3.0):
        return await directory.register(user_payload(username, lat=lat, lng=lng))

    return make


class TestEdges:

    @pytest.mark.asyncio
    async def test_exists_in_both_orders(self, graph, register):
        alice = await register("alice")
        bob = await register("bob", lat=-40.0)

        assert await graph.exists(alice.id, bob.id) is None
        await graph.add(alice.id, bob.id)

        forward = await graph.exists(alice.id, bob.id)
        backward = await graph.exists(bob.id, alice.id)
        assert forward is not None and backward is not None
        assert forward.user_id == alice.id
        assert forward.friend_id == bob.id

    @pytest.mark.asyncio
    async def test_remove_either_order(self, graph, register):
        alice = await register("alice")
        bob = await register("bob", lat=-40.0)
        await graph.add(alice.id, bob.id)

        assert await graph.remove(bob.id, alice.id) == 1
        assert await graph.exists(alice.id, bob.id) is None

    @pytest.mark.asyncio
    async def test_remove_missing_edge_is_not_an_error(self, graph):
        assert await graph.remove("n" + "1" * 32, "s" + "2" * 32) == 0

    @pytest.mark.asyncio
    async def test_remove_all_covers_both_columns(self, graph, register):
        alice = await register("alice")
        bob = await register("bob", lat=-40.0)
        carol = await register("carol")
        dave = await register("dave")
        await graph.add(alice.id, bob.id)
        await graph.add(carol.id, alice.id)
        await graph.add(bob.id, dave.id)

        assert await graph.remove_all(alice.id) == 2
        assert await graph.remove_all(alice.id) == 0

        assert (await graph.list_friends(alice.id)).total == 0
        remaining = await graph.list_friends(bob.id)
        assert [f.id for f in remaining.friends] == [dave.id]


class TestListFriends:

    @pytest.mark.asyncio
    async def test_friends_hydrated_across_partitions(self, graph, register):
        alice = await register("alice", lat=40.0)
        bob = await register("bob", lat=-40.0, lng=151.0)
        await graph.add(alice.id, bob.id)

        page = await graph.list_friends(alice.id)
        assert page.total == 1
        assert page.total_pages is None
        assert page.current_page is None
        assert page.friends[0].model_dump() == {
            "id": bob.id,
            "username": "bob",
            "email": "bob@example.com",
            "lat": -40.0,
            "lng": 151.0,
        }

        reverse = await graph.list_friends(bob.id)
        assert [f.id for f in reverse.friends] == [alice.id]

    @pytest.mark.asyncio
    async def test_no_friends(self, graph, register):
        alice = await register("alice")

        page = await graph.list_friends(alice.id)
        assert page.friends == []
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_no_friends_paginated(self, graph, register):
        alice = await register("alice")

        page = await graph.list_friends(alice.id, PageRequest(page=1, limit=5))
        assert page.friends == []
        assert page.total == 0
        assert page.total_pages == 0
        assert page.current_page == 1

    @pytest.mark.asyncio
    async def test_pages_partition_the_friend_list(self, graph, register):
        me = await register("me")
        friend_ids = set()
        for i in range(7):
            friend = await register(f"friend{i}", lat=-10.0 if i % 2 else 10.0)
            friend_ids.add(friend.id)
            if i % 3 == 0:
                await graph.add(friend.id, me.id)
            else:
                await graph.add(me.id, friend.id)

        seen = []
        for number in (1, 2, 3):
            page = await graph.list_friends(me.id, PageRequest(page=number, limit=3))
            assert page.total == 7
            assert page.total_pages == 3
            assert page.current_page == number
            seen.extend(f.id for f in page.friends)

        assert len(seen) == 7
        assert set(seen) == friend_ids
        assert seen == sorted(seen)

    @pytest.mark.asyncio
    async def test_page_past_the_end(self, graph, register):
        me = await register("me")
        friend = await register("friend")
        await graph.add(me.id, friend.id)

        page = await graph.list_friends(me.id, PageRequest(page=4, limit=2))
        assert page.friends == []
        assert page.total == 0
        assert page.total_pages == 0
        assert page.current_page == 4

    @pytest.mark.asyncio
    async def test_duplicate_edges_listed_once(self, graph, partitions, register):
        alice = await register("alice")
        bob = await register("bob", lat=-40.0)
        await partitions.friends.insert(Friendship(user_id=alice.id, friend_id=bob.id))
        await partitions.friends.insert(Friendship(user_id=bob.id, friend_id=alice.id))
        await partitions.friends.insert(Friendship(user_id=alice.id, friend_id=bob.id))

        page = await graph.list_friends(alice.id)
        assert page.total == 1
        assert [f.id for f in page.friends] == [bob.id]

        paged = await graph.list_friends(alice.id, PageRequest(page=1, limit=10))
        assert paged.total == 1

        assert await graph.remove(alice.id, bob.id) == 3

    @pytest.mark.asyncio
    async def test_dangling_neighbor_is_skipped(self, graph, directory, register):
        alice = await register("alice")
        bob = await register("bob", lat=-40.0)
        carol = await register("carol")
        await graph.add(alice.id, bob.id)
        await graph.add(alice.id, carol.id)

        await directory.remove(bob.id)

        page = await graph.list_friends(alice.id)
        assert [f.id for f in page.friends] == [carol.id]
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_output_keeps_neighbor_id_order(self, graph, register):
        me = await register("me")
        others = [await register(f"u{i}", lat=-5.0 if i % 2 else 5.0) for i in range(5)]
        for other in others:
            await graph.add(me.id, other.id)

        page = await graph.list_friends(me.id)
        assert [f.id for f in page.friends] == sorted(o.id for o in others)


class TestMalformedIds:

    @pytest.mark.parametrize("bad_id", ["garbage", "", "x" + "1" * 32, "n" + "Z" * 32, "s123"])
    @pytest.mark.asyncio
    async def test_every_entry_point_rejects_malformed_ids(self, graph, register, bad_id):
        alice = await register("alice")

        with pytest.raises(MalformedIdentifierError):
            await graph.exists(alice.id, bad_id)
        with pytest.raises(MalformedIdentifierError):
            await graph.add(bad_id, alice.id)
        with pytest.raises(MalformedIdentifierError):
            await graph.remove(alice.id, bad_id)
        with pytest.raises(MalformedIdentifierError):
            await graph.remove_all(bad_id)
        with pytest.raises(MalformedIdentifierError):
            await graph.list_friends(bad_id)

    @pytest.mark.asyncio
    async def test_rejected_add_stores_nothing(self, graph, partitions, register):
        bob = await register("bob", lat=-40.0)

        with pytest.raises(MalformedIdentifierError):
            await graph.add("x" + "1" * 32, bob.id)

        assert await partitions.friends.scan(Friendship) == []
        assert (await graph.list_friends(bob.id)).total == 0
