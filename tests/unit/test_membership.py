"""
Unit tests for group membership synchronization.

Tests cover:
- Membership map derivation
- Projection onto users after create/update/delete
- Rollback when the projection cannot be applied
"""

import asyncio

import pytest

from stockroom.access import GroupMembershipSynchronizer, build_membership_map
from stockroom.errors import MembershipSyncError
from stockroom.models import Group
from stockroom.store import InMemoryBacking, InventoryStore


class TestBuildMembershipMap:
    """Tests for build_membership_map."""

    def test_map(self):
        groups = [
            Group(id="g1", name="Lab", member_ids=["u1", "u2"]),
            Group(id="g2", name="Ops", member_ids=["u2"]),
        ]
        assert build_membership_map(groups) == {"u1": ["g1"], "u2": ["g1", "g2"]}

    def test_duplicate_members_collapsed(self):
        groups = [Group(id="g1", name="Lab", member_ids=["u1", "u1"])]
        assert build_membership_map(groups) == {"u1": ["g1"]}

    def test_empty(self):
        assert build_membership_map([]) == {}


class TestGroupMembershipSynchronizer:
    """Tests for GroupMembershipSynchronizer."""

    @pytest.fixture
    def store(self):
        users = [
            {"id": user_id, "username": name, "password": "x"}
            for user_id, name in (("u1", "alice"), ("u2", "bob"), ("u3", "carol"))
        ]
        return InventoryStore(InMemoryBacking({"users": users}), seed_sample_data=False)

    @pytest.fixture
    def sync(self, store):
        return GroupMembershipSynchronizer(store)

    async def groups_of(self, store, user_id):
        return (await store.users.get(user_id)).groups

    @pytest.mark.asyncio
    async def test_create_update_delete_round_trip(self, store, sync):
        """User.groups tracks member_ids through the group lifecycle."""
        group = await sync.create_group({"id": "g1", "name": "Lab", "member_ids": ["u1", "u2"]})

        assert group.member_ids == ["u1", "u2"]
        assert await self.groups_of(store, "u1") == ["g1"]
        assert await self.groups_of(store, "u2") == ["g1"]
        assert await self.groups_of(store, "u3") == []

        await sync.update_group("g1", {"member_ids": ["u1"]})
        assert await self.groups_of(store, "u1") == ["g1"]
        assert await self.groups_of(store, "u2") == []

        assert await sync.delete_group("g1") is True
        assert await self.groups_of(store, "u1") == []

    @pytest.mark.asyncio
    async def test_sync_repairs_stale_projection(self, store, sync):
        """A full sync overwrites hand-edited group lists."""
        await store.groups.create({"id": "g1", "name": "Lab", "member_ids": ["u3"]})
        await store.users.update("u1", {"groups": ["g1", "ghost"]})

        memberships = await sync.sync()

        assert memberships == {"u3": ["g1"]}
        assert await self.groups_of(store, "u1") == []
        assert await self.groups_of(store, "u3") == ["g1"]

    @pytest.mark.asyncio
    async def test_unknown_member_ids_ignored(self, store, sync):
        """Member ids without a user do not fail the sync."""
        await sync.create_group({"id": "g1", "name": "Lab", "member_ids": ["u1", "nobody"]})
        assert await self.groups_of(store, "u1") == ["g1"]

    @pytest.mark.asyncio
    async def test_update_missing_group(self, sync):
        assert await sync.update_group("nope", {"name": "x"}) is None
        assert await sync.delete_group("nope") is False

    @pytest.mark.asyncio
    async def test_create_rolled_back_on_failure(self, store, sync, monkeypatch):
        """A failed projection removes the new group and re-raises."""

        async def broken_update_many(patches):
            raise ValueError("disk full")

        monkeypatch.setattr(store.users, "update_many", broken_update_many)

        with pytest.raises(MembershipSyncError):
            await sync.create_group({"id": "g1", "name": "Lab", "member_ids": ["u1"]})

        assert await store.groups.get("g1") is None

    @pytest.mark.asyncio
    async def test_update_rolled_back_on_failure(self, store, sync, monkeypatch):
        """A failed projection restores the previous group."""
        await sync.create_group({"id": "g1", "name": "Lab", "member_ids": ["u1"]})

        async def broken_update_many(patches):
            raise ValueError("disk full")

        monkeypatch.setattr(store.users, "update_many", broken_update_many)

        with pytest.raises(MembershipSyncError):
            await sync.update_group("g1", {"name": "Ops", "member_ids": ["u2"]})

        group = await store.groups.get("g1")
        assert group.name == "Lab"
        assert group.member_ids == ["u1"]

    @pytest.mark.asyncio
    async def test_delete_rolled_back_on_failure(self, store, sync, monkeypatch):
        """A failed projection recreates the deleted group."""
        await sync.create_group({"id": "g1", "name": "Lab", "member_ids": ["u1"]})

        async def broken_update_many(patches):
            raise ValueError("disk full")

        monkeypatch.setattr(store.users, "update_many", broken_update_many)

        with pytest.raises(MembershipSyncError):
            await sync.delete_group("g1")

        assert (await store.groups.get("g1")).member_ids == ["u1"]
        assert await self.groups_of(store, "u1") == ["g1"]


class SlowBacking(InMemoryBacking):
    """In-memory backing whose saves yield to the event loop like file I/O."""

    def __init__(self, initial=None, delays=None):
        super().__init__(initial)
        self.delays = delays or {}

    async def save(self, name, records):
        await asyncio.sleep(self.delays.get(name, 0))
        await super().save(name, records)


class TestConcurrentGroupMutations:
    """Tests for overlapping group mutations."""

    @pytest.fixture
    def store(self):
        users = [
            {"id": "u1", "username": "alice", "password": "x"},
            {"id": "u2", "username": "bob", "password": "x"},
        ]
        backing = SlowBacking({"users": users}, delays={"users": 0.05, "groups": 0.001})
        return InventoryStore(backing, seed_sample_data=False)

    @pytest.mark.asyncio
    async def test_overlapping_creates_both_succeed(self, store):
        """Two valid creates in flight together both commit and sync."""
        sync = GroupMembershipSynchronizer(store)

        async def create_later(partial, delay):
            await asyncio.sleep(delay)
            return await sync.create_group(partial)

        results = await asyncio.gather(
            create_later({"id": "g1", "name": "Lab", "member_ids": ["u1"]}, 0),
            create_later({"id": "g2", "name": "Ops", "member_ids": ["u1", "u2"]}, 0.012),
            return_exceptions=True,
        )

        assert [r.id for r in results] == ["g1", "g2"]
        assert sorted(g.id for g in await store.groups.list()) == ["g1", "g2"]
        assert sorted((await store.users.get("u1")).groups) == ["g1", "g2"]
        assert (await store.users.get("u2")).groups == ["g2"]

    @pytest.mark.asyncio
    async def test_overlapping_update_and_delete(self, store):
        """An update racing a delete leaves a consistent projection."""
        sync = GroupMembershipSynchronizer(store)
        await sync.create_group({"id": "g1", "name": "Lab", "member_ids": ["u1"]})
        await sync.create_group({"id": "g2", "name": "Ops", "member_ids": ["u1"]})

        updated, deleted = await asyncio.gather(
            sync.update_group("g1", {"member_ids": ["u1", "u2"]}),
            sync.delete_group("g2"),
        )

        assert updated.member_ids == ["u1", "u2"]
        assert deleted is True
        assert (await store.users.get("u1")).groups == ["g1"]
        assert (await store.users.get("u2")).groups == ["g1"]
