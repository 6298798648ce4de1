"""
Group membership synchronization for Stockroom.

Group.member_ids is the authoritative membership record; User.groups is a
cached projection used by the access resolver. This module rebuilds the
projection after every group create/update/delete.

Invariants:
    - After a group mutation returns, every user's groups equals the ids of
      the groups whose member_ids contain that user
    - Recomputation is full, not incremental
    - If the projection cannot be rebuilt, the group mutation is undone and
      MembershipSyncError propagates to the caller

How to change safely:
    - Route every group mutation through GroupMembershipSynchronizer
    - Keep sync() a single users write so readers never see half a rebuild
    - Hold the synchronizer lock across "mutate group + sync"; a second
      mutation landing during the users write would otherwise make the
      first verification fail
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ..errors import MembershipSyncError
from ..models import Group

if TYPE_CHECKING:
    from ..store import InventoryStore

logger = logging.getLogger(__name__)


def build_membership_map(groups: Iterable[Group]) -> dict[str, list[str]]:
    """Map each member user id to the ids of the groups listing it.

    Args:
        groups: All groups

    Returns:
        Dictionary of user id to group ids, in group order
    """
    memberships: dict[str, list[str]] = {}
    for group in groups:
        for user_id in group.member_ids:
            user_groups = memberships.setdefault(user_id, [])
            if group.id not in user_groups:
                user_groups.append(group.id)
    return memberships


class GroupMembershipSynchronizer:
    """Keeps User.groups consistent with Group.member_ids.

    Example:
        >>> sync = GroupMembershipSynchronizer(store)
        >>> group = await sync.create_group({"name": "Lab", "member_ids": ["u1"]})
        >>> (await store.users.get("u1")).groups
        [group.id]
    """

    def __init__(self, store: InventoryStore) -> None:
        self.store = store
        self._lock = asyncio.Lock()

    async def sync(self) -> dict[str, list[str]]:
        """Rebuild every user's group list from the groups.

        Returns:
            The membership map that was applied

        Raises:
            MembershipSyncError: If users could not be updated to match
        """
        async with self._lock:
            return await self._sync()

    async def create_group(self, partial: dict[str, Any]) -> Group:
        """Create a group and sync memberships.

        Raises:
            MembershipSyncError: If sync fails (the group is removed again)
        """
        async with self._lock:
            group = await self.store.groups.create(partial)
            try:
                await self._sync()
            except MembershipSyncError:
                await self.store.groups.delete(group.id)
                await self._resync_after_rollback()
                raise
            return group

    async def update_group(self, group_id: str, partial: dict[str, Any]) -> Group | None:
        """Update a group and sync memberships.

        Returns:
            Updated group, or None if not found

        Raises:
            MembershipSyncError: If sync fails (the previous group is restored)
        """
        async with self._lock:
            previous = await self.store.groups.get(group_id)
            if previous is None:
                return None

            group = await self.store.groups.update(group_id, partial)
            try:
                await self._sync()
            except MembershipSyncError:
                await self.store.groups.update(group_id, dataclasses.asdict(previous))
                await self._resync_after_rollback()
                raise
            return group

    async def delete_group(self, group_id: str) -> bool:
        """Delete a group and sync memberships.

        Returns:
            True if deleted, False if not found

        Raises:
            MembershipSyncError: If sync fails (the group is recreated)
        """
        async with self._lock:
            previous = await self.store.groups.get(group_id)
            if previous is None or not await self.store.groups.delete(group_id):
                return False

            try:
                await self._sync()
            except MembershipSyncError:
                await self.store.groups.create(dataclasses.asdict(previous))
                await self._resync_after_rollback()
                raise
            return True

    async def _sync(self) -> dict[str, list[str]]:
        # Caller holds self._lock
        groups = await self.store.groups.list()
        users = await self.store.users.list()
        memberships = build_membership_map(groups)

        patches = {user.id: {"groups": memberships.get(user.id, [])} for user in users}
        try:
            await self.store.users.update_many(patches)
        except ValueError as e:
            raise MembershipSyncError(f"Failed to apply group memberships: {e}") from e

        # Verify against the groups as they are now, not as they were read
        expected = build_membership_map(await self.store.groups.list())
        stale = [
            user.id
            for user in await self.store.users.list()
            if user.id in patches and user.groups != expected.get(user.id, [])
        ]
        if stale:
            raise MembershipSyncError("User group memberships are inconsistent", user_ids=stale)

        logger.info(
            "Synchronized group memberships",
            extra={"groups": len(groups), "users": len(users)},
        )
        return memberships

    async def _resync_after_rollback(self) -> None:
        try:
            await self._sync()
        except MembershipSyncError as e:
            logger.error(f"Membership resync after rollback failed: {e}", exc_info=True)
