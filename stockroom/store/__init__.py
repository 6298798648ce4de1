"""
Store module for Stockroom - cached entity persistence.

This module handles:
- Collection backings (JSON files on disk, in-memory for tests)
- Per-entity keyed collections with write-through persistence
- Lazy, guarded initialization and sample data seeding

Invariants:
    - The in-memory collections are authoritative for the running process
    - Every mutation rewrites its whole collection before returning
    - Backing failures are logged at this boundary and never propagated

How to change safely:
    - New backings must implement the CollectionBacking protocol
    - Verify seeding stays idempotent under concurrent first access
"""

from .backing import CollectionBacking, JsonFileBacking, create_backing
from .entity_store import SAMPLE_COMPONENTS, EntityCollection, InventoryStore
from .memory import InMemoryBacking

__all__ = [
    # Protocol and factory
    "CollectionBacking",
    "create_backing",
    # Implementations
    "JsonFileBacking",
    "InMemoryBacking",
    # Store
    "EntityCollection",
    "InventoryStore",
    "SAMPLE_COMPONENTS",
]
