"""
Unit tests for entity record types.

Tests cover:
- Defaults applied on creation
- camelCase serialization and tolerant loading
- Merge semantics and id immutability
- Low-stock threshold
"""

import pytest

from stockroom.models import (
    DEFAULT_WAREHOUSE_ID,
    Component,
    Group,
    Role,
    User,
    Warehouse,
    WarehouseType,
)


class TestComponentDefaults:
    """Tests for component creation defaults."""

    def test_defaults(self):
        """Omitted fields take the documented defaults."""
        c = Component.from_partial({"id": "c1", "name": "LM7805", "category": "Integrated Circuits"})

        assert c.quantity == 0
        assert c.min_stock_level == 10
        assert c.owner_id == "admin"
        assert c.group_ids == []
        assert c.warehouse_id == DEFAULT_WAREHOUSE_ID
        assert c.warehouse_type == WarehouseType.PERSONAL
        assert c.warehouse_group_id is None

    def test_unknown_field_rejected(self):
        """Unknown fields raise ValueError."""
        with pytest.raises(ValueError, match="colour"):
            Component.from_partial({"id": "c1", "name": "x", "category": "y", "colour": "red"})

    def test_missing_required_field(self):
        """Missing required fields raise ValueError, not TypeError."""
        with pytest.raises(ValueError):
            Component.from_partial({"id": "c1", "name": "x"})

    def test_group_ids_not_shared(self):
        """Default list is not shared between records."""
        a = Component.from_partial({"id": "a", "name": "a", "category": "x"})
        b = Component.from_partial({"id": "b", "name": "b", "category": "x"})
        a.group_ids.append("g1")
        assert b.group_ids == []


class TestLowStock:
    """Tests for the low-stock predicate."""

    @pytest.mark.parametrize(
        "quantity,expected",
        [(5, True), (10, True), (11, False), (0, True)],
    )
    def test_threshold_is_inclusive(self, quantity, expected):
        """Quantity equal to the threshold counts as low."""
        c = Component(id="c", name="n", category="x", quantity=quantity, min_stock_level=10)
        assert c.is_low_stock is expected


class TestSerialization:
    """Tests for to_dict/from_dict."""

    def test_to_dict_uses_camel_case(self):
        """Wire keys are camelCase, enums are plain values."""
        c = Component(id="c1", name="n", category="x", min_stock_level=3, warehouse_id="w1")
        data = c.to_dict()

        assert data["minStockLevel"] == 3
        assert data["warehouseId"] == "w1"
        assert data["warehouseType"] == "personal"
        assert "min_stock_level" not in data

    def test_from_dict_reads_camel_case(self):
        """Persisted records load back into equal records."""
        w = Warehouse(id="w1", name="Lab", owner_id="u1", type=WarehouseType.GROUP, warehouse_group_id="g1")
        assert Warehouse.from_dict(w.to_dict()) == w

    def test_from_dict_fills_missing_optional_fields(self):
        """Older records without newer fields still load."""
        c = Component.from_dict({"id": "c1", "name": "n", "category": "x", "quantity": 4})

        assert c.quantity == 4
        assert c.warehouse_id == DEFAULT_WAREHOUSE_ID

    def test_from_dict_invalid_record(self):
        """Records missing required keys raise ValueError."""
        with pytest.raises(ValueError):
            Group.from_dict({"id": "g1"})

    def test_from_dict_preserves_null_warehouse(self):
        """Orphaned components stay orphaned across a reload."""
        c = Component(id="c1", name="n", category="x", warehouse_id=None)
        assert Component.from_dict(c.to_dict()).warehouse_id is None

    def test_profile_omits_password(self):
        """User profile never exposes the password."""
        u = User(id="u1", username="alice", password="secret", role=Role.ADMIN)
        profile = u.to_profile()

        assert "password" not in profile
        assert profile["role"] == "admin"


class TestMerge:
    """Tests for partial updates."""

    def test_omitted_fields_preserved(self):
        """Only patched fields change."""
        c = Component(id="c1", name="n", category="x", quantity=3, location="A1")
        updated = c.merged({"quantity": 7})

        assert updated.quantity == 7
        assert updated.location == "A1"
        assert c.quantity == 3

    def test_explicit_none_clears(self):
        """Explicit None overwrites the field."""
        c = Component(id="c1", name="n", category="x", warehouse_id="w1")
        assert c.merged({"warehouse_id": None}).warehouse_id is None

    def test_id_is_immutable(self):
        """Changing the id is rejected."""
        g = Group(id="g1", name="Lab")
        with pytest.raises(ValueError, match="immutable"):
            g.merged({"id": "g2"})

    def test_same_id_allowed(self):
        """Repeating the current id is not a change."""
        g = Group(id="g1", name="Lab")
        assert g.merged({"id": "g1", "name": "Lab 2"}).name == "Lab 2"

    def test_enum_coerced_from_string(self):
        """String roles are coerced to Role."""
        u = User(id="u1", username="a", password="p").merged({"role": "admin"})
        assert u.role is Role.ADMIN
        assert u.is_admin
