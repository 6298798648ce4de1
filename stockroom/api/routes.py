"""
API routes for the Stockroom HTTP API.

Handlers load the acting user, ask the access resolver which warehouses
that user may see, filter store results through that set and persist
mutations through the store.

Status mapping:
    - Missing or invisible entity: 404 (never 403, so existence is not leaked)
    - Known entity, operation not allowed: 403
    - Field constraint violation or duplicate username: 400
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Response

from ..access import AccessResolver, GroupMembershipSynchronizer
from ..errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from ..inventory import compute_stats, filter_components, low_stock_components
from ..models import Component, Role, User, Warehouse, WarehouseType
from ..security import hash_password, needs_rehash, verify_password
from ..store import InventoryStore
from .deps import get_current_user, get_resolver, get_store, get_synchronizer, require_admin
from .schemas import (
    ComponentCreateRequest,
    ComponentUpdateRequest,
    GroupCreateRequest,
    GroupUpdateRequest,
    LoginRequest,
    MeUpdateRequest,
    RegisterRequest,
    UserCreateRequest,
    UserUpdateRequest,
    WarehouseCreateRequest,
    WarehouseUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Stockroom"])


# =============================================================================
# Helpers
# =============================================================================


async def _ensure_username_free(
    store: InventoryStore, username: str, user_id: str | None = None
) -> None:
    existing = await store.get_user_by_username(username)
    if existing is not None and existing.id != user_id:
        raise ValidationError("Username already taken", field_name="username")


async def _accessible_components(
    store: InventoryStore,
    resolver: AccessResolver,
    user: User,
) -> list[Component]:
    warehouses = await resolver.accessible_warehouses(store, user)
    return resolver.filter_accessible_components(await store.components.list(), user, warehouses)


async def _get_accessible_component(
    store: InventoryStore,
    resolver: AccessResolver,
    user: User,
    component_id: str,
) -> Component:
    component = await store.components.get(component_id)
    warehouses = await resolver.accessible_warehouses(store, user)
    if component is None or not resolver.can_access_component(component, user, warehouses):
        raise NotFoundError("Component", component_id)
    return component


async def _get_modifiable_warehouse(
    store: InventoryStore,
    resolver: AccessResolver,
    user: User,
    warehouse_id: str,
) -> Warehouse:
    warehouse = await store.warehouses.get(warehouse_id)
    if warehouse is None or not resolver.can_access_warehouse(warehouse, user):
        raise NotFoundError("Warehouse", warehouse_id)
    if not resolver.can_modify_warehouse(warehouse, user):
        raise ForbiddenError("Only the warehouse owner can change this warehouse", actor=user.id)
    return warehouse


# =============================================================================
# Session & profile
# =============================================================================


@router.post("/login")
async def login(body: LoginRequest, store: InventoryStore = Depends(get_store)) -> dict[str, Any]:
    """Verify credentials and return the account profile."""
    user = await store.get_user_by_username(body.username)
    if user is None or not verify_password(body.password, user.password):
        raise UnauthorizedError("Invalid credentials")

    if needs_rehash(user.password):
        user = await store.users.update(user.id, {"password": hash_password(body.password)}) or user

    logger.info("User logged in", extra={"user_id": user.id})
    return {"user": user.to_profile()}


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, store: InventoryStore = Depends(get_store)) -> dict[str, Any]:
    """Create a regular account with its own personal warehouse."""
    await _ensure_username_free(store, body.username)

    user = await store.users.create(
        {
            "username": body.username,
            "password": hash_password(body.password),
            "role": Role.USER,
            "groups": [],
        }
    )
    warehouse = await store.warehouses.create(
        {
            "name": f"{body.username}'s Warehouse",
            "owner_id": user.id,
            "type": WarehouseType.PERSONAL,
            "warehouse_group_id": None,
            "group_ids": [],
        }
    )
    user = await store.users.update(user.id, {"default_warehouse_id": warehouse.id}) or user

    logger.info("Registered user", extra={"user_id": user.id, "warehouse_id": warehouse.id})
    return {"user": user.to_profile()}


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return user.to_profile()


@router.patch("/me")
async def update_me(
    body: MeUpdateRequest,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
) -> dict[str, Any]:
    """Change own username and/or password."""
    patch: dict[str, Any] = {}
    if body.username:
        await _ensure_username_free(store, body.username, user.id)
        patch["username"] = body.username
    if body.password:
        patch["password"] = hash_password(body.password)

    updated = await store.users.update(user.id, patch)
    if updated is None:
        raise NotFoundError("User", user.id)
    return {"user": updated.to_profile()}


# =============================================================================
# Components
# =============================================================================


@router.get("/components")
async def list_components(
    search: str | None = Query(None),
    category: str | None = Query(None),
    warehouse_id: str | None = Query(None, alias="warehouseId"),
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> list[dict[str, Any]]:
    """List accessible components, optionally filtered."""
    components = await _accessible_components(store, resolver, user)
    filtered = filter_components(
        components, search=search, category=category, warehouse_id=warehouse_id
    )
    return [c.to_dict() for c in filtered]


@router.get("/components/alerts/low-stock")
async def list_low_stock(
    warehouse_id: str | None = Query(None, alias="warehouseId"),
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> list[dict[str, Any]]:
    """Accessible components at or below their reorder threshold."""
    components = await _accessible_components(store, resolver, user)
    low = low_stock_components(filter_components(components, warehouse_id=warehouse_id))
    return [c.to_dict() for c in low]


@router.get("/components/{component_id}")
async def get_component(
    component_id: str,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> dict[str, Any]:
    component = await _get_accessible_component(store, resolver, user, component_id)
    return component.to_dict()


@router.post("/components", status_code=201)
async def create_component(
    body: ComponentCreateRequest,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> dict[str, Any]:
    """Create a component in the requested or first accessible warehouse.

    A user without any accessible warehouse gets a new personal one.
    """
    warehouses = await resolver.accessible_warehouses(store, user)
    target_id = body.warehouse_id or (warehouses[0].id if warehouses else None)
    if target_id is None:
        created = await store.warehouses.create(
            {
                "name": "My Warehouse",
                "owner_id": user.id,
                "type": WarehouseType.PERSONAL,
                "warehouse_group_id": None,
                "group_ids": [],
            }
        )
        target_id = created.id

    target = await store.warehouses.get(target_id)
    if not resolver.can_access_warehouse(target, user):
        raise ForbiddenError(actor=user.id)

    fields = body.model_dump(exclude={"warehouse_id"})
    component = await store.components.create(
        {
            **fields,
            "owner_id": user.id,
            "group_ids": [],
            "warehouse_id": target.id,
            "warehouse_type": target.type,
            "warehouse_group_id": target.warehouse_group_id,
        }
    )
    return component.to_dict()


@router.patch("/components/{component_id}")
async def update_component(
    component_id: str,
    body: ComponentUpdateRequest,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> dict[str, Any]:
    await _get_accessible_component(store, resolver, user, component_id)
    component = await store.components.update(component_id, body.model_dump(exclude_unset=True))
    if component is None:
        raise NotFoundError("Component", component_id)
    return component.to_dict()


@router.delete("/components/{component_id}", status_code=204)
async def delete_component(
    component_id: str,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> Response:
    await _get_accessible_component(store, resolver, user, component_id)
    if not await store.components.delete(component_id):
        raise NotFoundError("Component", component_id)
    return Response(status_code=204)


@router.get("/stats")
async def get_stats(
    warehouse_id: str | None = Query(None, alias="warehouseId"),
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> dict[str, int]:
    """Totals over accessible components."""
    components = await _accessible_components(store, resolver, user)
    return compute_stats(filter_components(components, warehouse_id=warehouse_id)).to_dict()


# =============================================================================
# Users (admin)
# =============================================================================


@router.get("/users")
async def list_users(
    _: User = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
) -> list[dict[str, Any]]:
    return [u.to_profile() for u in await store.users.list()]


@router.post("/users", status_code=201)
async def create_user(
    body: UserCreateRequest,
    _: User = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
    synchronizer: GroupMembershipSynchronizer = Depends(get_synchronizer),
) -> dict[str, Any]:
    await _ensure_username_free(store, body.username)
    user = await store.users.create(
        {
            "username": body.username,
            "password": hash_password(body.password),
            "role": body.role,
            "groups": [],
        }
    )
    # Groups may already list this id
    await synchronizer.sync()
    return (await store.users.get(user.id) or user).to_profile()


@router.patch("/users/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    _: User = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
) -> dict[str, Any]:
    patch = body.model_dump(exclude_unset=True)
    if "username" in patch:
        await _ensure_username_free(store, patch["username"], user_id)
    if "password" in patch:
        patch["password"] = hash_password(patch["password"])

    user = await store.users.update(user_id, patch)
    if user is None:
        raise NotFoundError("User", user_id)
    return user.to_profile()


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    _: User = Depends(require_admin),
    store: InventoryStore = Depends(get_store),
) -> Response:
    if not await store.users.delete(user_id):
        raise NotFoundError("User", user_id)
    return Response(status_code=204)


# =============================================================================
# Groups
# =============================================================================


@router.get("/groups")
async def list_groups(
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> list[dict[str, Any]]:
    """Admins see every group; other users their own."""
    return [g.to_dict() for g in resolver.visible_groups(await store.groups.list(), user)]


@router.post("/groups", status_code=201)
async def create_group(
    body: GroupCreateRequest,
    _: User = Depends(require_admin),
    synchronizer: GroupMembershipSynchronizer = Depends(get_synchronizer),
) -> dict[str, Any]:
    group = await synchronizer.create_group(body.model_dump())
    return group.to_dict()


@router.patch("/groups/{group_id}")
async def update_group(
    group_id: str,
    body: GroupUpdateRequest,
    _: User = Depends(require_admin),
    synchronizer: GroupMembershipSynchronizer = Depends(get_synchronizer),
) -> dict[str, Any]:
    group = await synchronizer.update_group(group_id, body.model_dump(exclude_unset=True))
    if group is None:
        raise NotFoundError("Group", group_id)
    return group.to_dict()


@router.delete("/groups/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    _: User = Depends(require_admin),
    synchronizer: GroupMembershipSynchronizer = Depends(get_synchronizer),
) -> Response:
    if not await synchronizer.delete_group(group_id):
        raise NotFoundError("Group", group_id)
    return Response(status_code=204)


# =============================================================================
# Warehouses
# =============================================================================


@router.get("/warehouses")
async def list_warehouses(
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> list[dict[str, Any]]:
    """Accessible warehouses, with the name of their group when shared."""
    groups = {g.id: g for g in await store.groups.list()}
    result = []
    for warehouse in await resolver.accessible_warehouses(store, user):
        data = warehouse.to_dict()
        group = groups.get(warehouse.warehouse_group_id) if warehouse.warehouse_group_id else None
        data["groupName"] = group.name if group else None
        result.append(data)
    return result


@router.post("/warehouses", status_code=201)
async def create_warehouse(
    body: WarehouseCreateRequest,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> dict[str, Any]:
    """Create a personal warehouse, or a group warehouse for a group the user is in."""
    group_id = None
    if body.type == WarehouseType.GROUP:
        candidate = body.group_id or (body.group_ids[0] if body.group_ids else None)
        group = await store.groups.get(candidate)
        if group is None:
            raise ValidationError("Group not found", field_name="groupId")
        if not resolver.can_create_group_warehouse(group, user):
            raise ForbiddenError("Only group members can create group warehouses", actor=user.id)
        group_id = group.id

    warehouse = await store.warehouses.create(
        {
            "name": body.name or "My Warehouse",
            "owner_id": user.id,
            "type": body.type,
            "warehouse_group_id": group_id,
            "group_ids": [],
        }
    )
    return warehouse.to_dict()


@router.patch("/warehouses/{warehouse_id}")
async def update_warehouse(
    warehouse_id: str,
    body: WarehouseUpdateRequest,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> dict[str, Any]:
    """Rename a warehouse (owner or admin)."""
    warehouse = await _get_modifiable_warehouse(store, resolver, user, warehouse_id)
    if body.name:
        warehouse = await store.warehouses.update(warehouse_id, {"name": body.name}) or warehouse
    return warehouse.to_dict()


@router.delete("/warehouses/{warehouse_id}", status_code=204)
async def delete_warehouse(
    warehouse_id: str,
    user: User = Depends(get_current_user),
    store: InventoryStore = Depends(get_store),
    resolver: AccessResolver = Depends(get_resolver),
) -> Response:
    """Delete a warehouse; its components are orphaned, not deleted."""
    await _get_modifiable_warehouse(store, resolver, user, warehouse_id)

    orphans = await store.components.find(lambda c: c.warehouse_id == warehouse_id)
    if orphans:
        await store.components.update_many({c.id: {"warehouse_id": None} for c in orphans})

    if not await store.warehouses.delete(warehouse_id):
        raise NotFoundError("Warehouse", warehouse_id)

    logger.info(
        "Deleted warehouse",
        extra={"warehouse_id": warehouse_id, "orphaned_components": len(orphans)},
    )
    return Response(status_code=204)
