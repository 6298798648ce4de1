"""
Startup bootstrap for Stockroom.

Ensures the configured administrator account and the default admin
warehouse exist before the API starts serving requests.
"""

from __future__ import annotations

import logging

from .config import BootstrapConfig
from .models import DEFAULT_WAREHOUSE_ID, Role, User, WarehouseType
from .security import hash_password
from .store import InventoryStore

logger = logging.getLogger(__name__)


async def ensure_admin(store: InventoryStore, config: BootstrapConfig) -> User:
    """Create the administrator and its default warehouse when missing.

    Args:
        store: Entity store
        config: Bootstrap configuration

    Returns:
        The administrator account (existing or new)
    """
    existing = await store.get_user_by_username(config.admin_username)
    if existing is not None:
        return existing

    admin = await store.users.get(config.admin_id)
    if admin is None:
        admin = await store.users.create(
            {
                "id": config.admin_id,
                "username": config.admin_username,
                "password": hash_password(config.admin_password),
                "role": Role.ADMIN,
                "groups": [],
            }
        )
        logger.info(f"Created administrator account: {config.admin_username}")
    else:
        logger.warning(
            f"User id {config.admin_id} exists under another username; "
            f"not creating administrator {config.admin_username}"
        )

    if await store.warehouses.get(DEFAULT_WAREHOUSE_ID) is None:
        await store.warehouses.create(
            {
                "id": DEFAULT_WAREHOUSE_ID,
                "name": "Admin Warehouse",
                "owner_id": config.admin_id,
                "type": WarehouseType.PERSONAL,
                "warehouse_group_id": None,
                "group_ids": [],
            }
        )
    return admin
