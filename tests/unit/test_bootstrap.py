"""
Unit tests for administrator bootstrap.

Tests cover:
- First start creates the admin and default warehouse
- Restarts are idempotent
- Existing ids are never overwritten
"""

import pytest

from stockroom.bootstrap import ensure_admin
from stockroom.config import BootstrapConfig
from stockroom.models import DEFAULT_WAREHOUSE_ID, Role
from stockroom.security import verify_password
from stockroom.store import InMemoryBacking, InventoryStore


class TestEnsureAdmin:
    """Tests for ensure_admin."""

    @pytest.mark.asyncio
    async def test_creates_admin_and_warehouse(self):
        store = InventoryStore(InMemoryBacking(), seed_sample_data=False)
        config = BootstrapConfig(admin_password="s3cret")

        admin = await ensure_admin(store, config)

        assert admin.id == "admin"
        assert admin.role == Role.ADMIN
        assert admin.password != "s3cret"
        assert verify_password("s3cret", admin.password)
        assert (await store.warehouses.get(DEFAULT_WAREHOUSE_ID)).owner_id == "admin"

    @pytest.mark.asyncio
    async def test_idempotent(self):
        store = InventoryStore(InMemoryBacking())
        first = await ensure_admin(store, BootstrapConfig())
        second = await ensure_admin(store, BootstrapConfig(admin_password="changed"))

        assert first == second
        assert len(await store.users.list()) == 1
        assert len(await store.warehouses.list()) == 1

    @pytest.mark.asyncio
    async def test_existing_id_not_overwritten(self):
        """A different user holding the admin id is left alone."""
        backing = InMemoryBacking(
            {"users": [{"id": "admin", "username": "someone", "password": "x", "role": "user"}]}
        )
        store = InventoryStore(backing, seed_sample_data=False)

        user = await ensure_admin(store, BootstrapConfig(admin_username="root"))

        assert user.username == "someone"
        assert user.role == Role.USER
        assert await store.get_user_by_username("root") is None

    @pytest.mark.asyncio
    async def test_custom_admin_id_owns_seeded_warehouse(self):
        """With a non-default admin id the seeded warehouse has a real owner."""
        store = InventoryStore(InMemoryBacking(), admin_id="root")
        admin = await ensure_admin(store, BootstrapConfig(admin_id="root", admin_username="root"))

        warehouse = await store.warehouses.get(DEFAULT_WAREHOUSE_ID)
        assert warehouse.owner_id == admin.id == "root"
        assert await store.users.get(warehouse.owner_id) is not None
