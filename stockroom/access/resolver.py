"""
Warehouse and component access resolution for Stockroom.

This module decides what a user may see or change:
- Warehouse visibility (admin, group membership, ownership)
- Component visibility through the owning warehouse
- Ownership checks for renaming/deleting warehouses
- Group visibility and group-warehouse creation rights

Invariants:
    - Role admin always wins for visibility
    - A group warehouse without a group is visible to admins only
    - A component whose warehouse is missing from the supplied set is not
      visible to anyone, admins included (orphans are outside every
      warehouse's scope)
    - Missing user or missing entity means no access
    - Nothing here raises for a denial; callers map False to 404/403

How to change safely:
    - Keep every check a pure function of the records passed in
    - Add new rules as separate predicates; do not widen existing ones
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..models import Component, Group, User, Warehouse, WarehouseType

if TYPE_CHECKING:
    from ..store import InventoryStore


class AccessResolver:
    """Evaluates access to warehouses and components.

    All checks are synchronous evaluations against already-loaded records.

    Thread safety:
        This class is stateless and thread-safe.

    Example:
        >>> resolver = AccessResolver()
        >>> warehouse = Warehouse(id="w1", name="Bench", owner_id="u1")
        >>> resolver.can_access_warehouse(warehouse, user_u1)
        True
    """

    def is_admin(self, user: User | None) -> bool:
        """Whether the user holds the admin role."""
        return user is not None and user.is_admin

    def can_access_warehouse(self, warehouse: Warehouse | None, user: User | None) -> bool:
        """Check if a user may see and use a warehouse.

        Args:
            warehouse: Warehouse being accessed
            user: Acting user

        Returns:
            True if access is granted
        """
        if user is None or warehouse is None:
            return False

        if user.is_admin:
            return True

        groups = set(user.groups)
        if warehouse.type == WarehouseType.GROUP:
            return bool(warehouse.warehouse_group_id) and warehouse.warehouse_group_id in groups

        if warehouse.owner_id == user.id:
            return True
        return any(group_id in groups for group_id in warehouse.group_ids)

    def can_access_component(
        self,
        component: Component | None,
        user: User | None,
        warehouses: Iterable[Warehouse],
    ) -> bool:
        """Check if a user may see and change a component.

        Args:
            component: Component being accessed
            user: Acting user
            warehouses: Warehouses to resolve the component's owner from

        Returns:
            True if the component's warehouse is in the set and accessible
        """
        if user is None or component is None or component.warehouse_id is None:
            return False

        warehouse = next((w for w in warehouses if w.id == component.warehouse_id), None)
        return self.can_access_warehouse(warehouse, user)

    def get_accessible_warehouses(
        self,
        user: User | None,
        warehouses: Iterable[Warehouse],
    ) -> list[Warehouse]:
        """Filter warehouses down to those the user may access."""
        return [w for w in warehouses if self.can_access_warehouse(w, user)]

    def filter_accessible_components(
        self,
        components: Iterable[Component],
        user: User | None,
        warehouses: Iterable[Warehouse],
    ) -> list[Component]:
        """Filter components down to those the user may access.

        Args:
            components: Candidate components
            user: Acting user
            warehouses: Warehouses to resolve owners from (usually the
                user's accessible set)

        Returns:
            Accessible components, input order preserved
        """
        by_id = {w.id: w for w in warehouses}
        return [
            c
            for c in components
            if c.warehouse_id is not None
            and self.can_access_warehouse(by_id.get(c.warehouse_id), user)
        ]

    def can_modify_warehouse(self, warehouse: Warehouse | None, user: User | None) -> bool:
        """Check if a user may rename or delete a warehouse.

        Only the owner or an admin qualifies; group members do not.
        """
        if user is None or warehouse is None:
            return False
        return user.is_admin or warehouse.owner_id == user.id

    def can_create_group_warehouse(self, group: Group | None, user: User | None) -> bool:
        """Check if a user may open a warehouse shared with a group."""
        if user is None or group is None:
            return False
        return user.is_admin or user.id in group.member_ids

    def visible_groups(self, groups: Iterable[Group], user: User | None) -> list[Group]:
        """Admins see every group; other users the groups they belong to."""
        if user is None:
            return []
        if user.is_admin:
            return list(groups)
        return [g for g in groups if user.id in g.member_ids]

    async def accessible_warehouses(self, store: InventoryStore, user: User | None) -> list[Warehouse]:
        """Load all warehouses from a store and filter them for a user."""
        return self.get_accessible_warehouses(user, await store.warehouses.list())


# Default resolver instance
_default_resolver: AccessResolver | None = None


def get_access_resolver() -> AccessResolver:
    """Get the default access resolver instance."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = AccessResolver()
    return _default_resolver
