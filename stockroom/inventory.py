"""
Inventory queries over already-authorized components.

Handlers first narrow components to what the actor may see, then apply
these filters and aggregates.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import Component

ALL_CATEGORIES = "All Categories"


def matches_search(component: Component, query: str) -> bool:
    """Case-insensitive substring match on name, description, category, location."""
    needle = query.lower()
    return any(
        needle in value.lower()
        for value in (component.name, component.description, component.category, component.location)
    )


def filter_components(
    components: Iterable[Component],
    search: str | None = None,
    category: str | None = None,
    warehouse_id: str | None = None,
) -> list[Component]:
    """Apply warehouse, category and search filters, in that order.

    Args:
        components: Candidate components
        search: Free-text query; empty means no filter
        category: Exact category; None or "All Categories" means no filter
        warehouse_id: Restrict to one warehouse

    Returns:
        Matching components, input order preserved
    """
    result = list(components)
    if warehouse_id:
        result = [c for c in result if c.warehouse_id == warehouse_id]
    if category and category != ALL_CATEGORIES:
        result = [c for c in result if c.category == category]
    if search:
        result = [c for c in result if matches_search(c, search)]
    return result


def low_stock_components(components: Iterable[Component]) -> list[Component]:
    """Components at or below their reorder threshold."""
    return [c for c in components if c.is_low_stock]


@dataclass(frozen=True)
class InventoryStats:
    """Summary figures for a set of components."""

    total_components: int
    total_quantity: int
    categories: int
    low_stock_count: int

    def to_dict(self) -> dict[str, int]:
        return {
            "totalComponents": self.total_components,
            "totalQuantity": self.total_quantity,
            "categories": self.categories,
            "lowStockCount": self.low_stock_count,
        }


def compute_stats(components: Iterable[Component]) -> InventoryStats:
    items = list(components)
    return InventoryStats(
        total_components=len(items),
        total_quantity=sum(c.quantity for c in items),
        categories=len({c.category for c in items}),
        low_stock_count=len(low_stock_components(items)),
    )
