"""
Cached, write-through entity store for Stockroom.

This module manages the in-memory copy of every entity collection:
- Components, users, groups and warehouses, one EntityCollection each
- Lazy one-time initialization from the durable backing
- Sample data seeding when no components are stored
- Full-collection rewrite after every mutation

The in-memory maps are the source of truth for the running process; the
backing is a best-effort durable mirror of them.

Invariants:
    - Initialization runs at most once per store instance, even when the
      first accesses are concurrent
    - Every create/update/delete persists its collection before returning
    - Persistence failures are logged, never raised, and never roll back
      the in-memory mutation
    - One record per id per collection; ids never change

How to change safely:
    - Never call public collection methods from inside initialize(); they
      wait on the initialization barrier
    - Keep the snapshot inside the save lock so the last write wins with
      the latest state
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..errors import BackingError
from ..models import (
    DEFAULT_OWNER_ID,
    DEFAULT_WAREHOUSE_ID,
    Component,
    Group,
    Record,
    User,
    Warehouse,
    WarehouseType,
)
from .backing import CollectionBacking, create_backing

if TYPE_CHECKING:
    from ..config import StorageConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Record)

SAMPLE_COMPONENTS: tuple[dict[str, Any], ...] = (
    {
        "name": "ATmega328P-PU",
        "category": "Integrated Circuits",
        "quantity": 45,
        "location": "A1-B3",
        "description": "8-bit AVR Microcontroller",
        "min_stock_level": 10,
    },
    {
        "name": "470µF Electrolytic",
        "category": "Capacitors",
        "quantity": 8,
        "location": "C2-A1",
        "description": "25V Radial Electrolytic Capacitor",
        "min_stock_level": 20,
    },
    {
        "name": "10kΩ Resistor",
        "category": "Resistors",
        "quantity": 250,
        "location": "R1-A5",
        "description": "1/4W Carbon Film Resistor",
        "min_stock_level": 50,
    },
    {
        "name": "2N3904 NPN",
        "category": "Transistors",
        "quantity": 0,
        "location": "T1-C2",
        "description": "General Purpose NPN Transistor",
        "min_stock_level": 15,
    },
    {
        "name": "1N4148 Diode",
        "category": "Diodes",
        "quantity": 5,
        "location": "D1-A2",
        "description": "High-speed switching diode",
        "min_stock_level": 25,
    },
)


class EntityCollection(Generic[T]):
    """Keyed, cached persistence for one entity type.

    Records handed out are copies; mutate through update().

    Example:
        >>> groups = store.groups
        >>> group = await groups.create({"name": "Lab", "member_ids": ["u1"]})
        >>> await groups.update(group.id, {"name": "Electronics Lab"})
    """

    def __init__(
        self,
        name: str,
        record_type: type[T],
        backing: CollectionBacking,
        ensure_ready: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the collection.

        Args:
            name: Collection name used by the backing
            record_type: Dataclass for records of this collection
            backing: Durable backing
            ensure_ready: Awaited before every public operation
        """
        self.name = name
        self.record_type = record_type
        self._backing = backing
        self._ensure_ready = ensure_ready
        self._records: dict[str, T] = {}
        self._save_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def _ready(self) -> None:
        if self._ensure_ready is not None:
            await self._ensure_ready()

    async def get(self, record_id: str | None) -> T | None:
        """Get a record by id, or None if absent."""
        await self._ready()
        if record_id is None:
            return None
        record = self._records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def list(self) -> list[T]:
        """All records in insertion order."""
        await self._ready()
        return [copy.deepcopy(r) for r in self._records.values()]

    async def find(self, predicate: Callable[[T], bool]) -> list[T]:
        """Records matching a predicate, in insertion order."""
        await self._ready()
        return [copy.deepcopy(r) for r in self._records.values() if predicate(r)]

    async def create(self, partial: dict[str, Any]) -> T:
        """Create a record.

        Args:
            partial: snake_case field values; ``id`` is generated when absent

        Returns:
            The stored record

        Raises:
            ValueError: On unknown fields, missing required fields, or an
                id that is already taken
        """
        await self._ready()
        data = dict(partial)
        if data.get("id") is None:
            data["id"] = str(uuid.uuid4())
        if data["id"] in self._records:
            raise ValueError(f"{self.record_type.kind} already exists: {data['id']}")

        record = self.record_type.from_partial(data)
        self._records[record.id] = record
        await self._persist()

        logger.debug(
            "Created record",
            extra={"collection": self.name, "record_id": record.id},
        )
        return copy.deepcopy(record)

    async def update(self, record_id: str, partial: dict[str, Any]) -> T | None:
        """Shallow-merge fields over an existing record.

        Args:
            record_id: Record identifier
            partial: Fields to overwrite; explicit None clears a field

        Returns:
            Updated record, or None if not found

        Raises:
            ValueError: On unknown fields or an id change
        """
        await self._ready()
        existing = self._records.get(record_id)
        if existing is None:
            return None

        updated = existing.merged(partial)
        self._records[record_id] = updated
        await self._persist()

        logger.debug(
            "Updated record",
            extra={"collection": self.name, "record_id": record_id, "fields": sorted(partial)},
        )
        return copy.deepcopy(updated)

    async def update_many(self, patches: dict[str, dict[str, Any]]) -> list[T]:
        """Apply several partial updates with a single persist.

        Unknown ids are skipped. Either every patch is applied or, when one
        is invalid, none is.

        Returns:
            Updated records

        Raises:
            ValueError: On unknown fields or an id change in any patch
        """
        await self._ready()
        merged = {
            record_id: self._records[record_id].merged(patch)
            for record_id, patch in patches.items()
            if record_id in self._records
        }
        if not merged:
            return []

        self._records.update(merged)
        await self._persist()
        return [copy.deepcopy(r) for r in merged.values()]

    async def delete(self, record_id: str) -> bool:
        """Delete a record.

        Returns:
            True if deleted, False if not found
        """
        await self._ready()
        if self._records.pop(record_id, None) is None:
            return False

        await self._persist()
        logger.debug("Deleted record", extra={"collection": self.name, "record_id": record_id})
        return True

    def _replace_all(self, records: Iterable[T]) -> None:
        self._records = {r.id: r for r in records}

    def _put(self, record: T) -> None:
        self._records[record.id] = record

    async def _persist(self) -> bool:
        """Rewrite the durable collection from memory.

        Returns:
            True if the backing accepted the write
        """
        async with self._save_lock:
            snapshot = [r.to_dict() for r in self._records.values()]
            try:
                await self._backing.save(self.name, snapshot)
            except Exception as e:
                logger.error(
                    f"Failed to persist {self.name}: {e}",
                    exc_info=True,
                    extra={"collection": self.name},
                )
                return False
        return True


class InventoryStore:
    """Store for all Stockroom entity collections.

    This class provides:
    - One EntityCollection per entity type
    - A guarded one-time initialization barrier
    - Sample data seeding for an empty component collection

    Thread safety:
        Designed for a single asyncio event loop. Handlers run without
        preemption between awaits, so in-memory read/modify/write needs no
        lock; only initialization and collection writes are serialized.

    Example:
        >>> store = InventoryStore(JsonFileBacking("/var/lib/stockroom"))
        >>> await store.initialize()
        >>> components = await store.components.list()
    """

    def __init__(
        self,
        backing: CollectionBacking,
        seed_sample_data: bool = True,
        admin_id: str = DEFAULT_OWNER_ID,
    ) -> None:
        """Initialize the store.

        Args:
            backing: Durable backing shared by all collections
            seed_sample_data: Seed sample components when none are stored
            admin_id: Owner of the default warehouse and the seeded components
        """
        self.backing = backing
        self.seed_sample_data = seed_sample_data
        self.admin_id = admin_id
        self._initialized = False
        self._init_lock = asyncio.Lock()

        self.components: EntityCollection[Component] = EntityCollection(
            "components", Component, backing, self.initialize
        )
        self.users: EntityCollection[User] = EntityCollection("users", User, backing, self.initialize)
        self.groups: EntityCollection[Group] = EntityCollection(
            "groups", Group, backing, self.initialize
        )
        self.warehouses: EntityCollection[Warehouse] = EntityCollection(
            "warehouses", Warehouse, backing, self.initialize
        )

    @classmethod
    def from_config(cls, config: StorageConfig, admin_id: str = DEFAULT_OWNER_ID) -> InventoryStore:
        """Build a store with the backing selected by configuration."""
        return cls(
            create_backing(config),
            seed_sample_data=config.seed_sample_data,
            admin_id=admin_id,
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load every collection from the backing, once.

        Safe to call repeatedly and concurrently; later callers wait for the
        first one to finish.
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self._load_all()
            self._initialized = True

    async def _load_all(self) -> None:
        for collection in (self.users, self.groups, self.warehouses):
            records = await self._load_collection(collection)
            collection._replace_all(records or [])

        components = await self._load_collection(self.components)
        if components is None and self.seed_sample_data:
            logger.info("No existing components found, seeding sample data")
            await self._seed_sample_data()
        else:
            self.components._replace_all(components or [])

    async def _load_collection(self, collection: EntityCollection[T]) -> list[T] | None:
        """Load and parse one collection.

        Returns:
            Parsed records, or None if the collection is absent or corrupt
        """
        try:
            raw = await self.backing.load(collection.name)
        except BackingError as e:
            logger.warning(f"Could not load {collection.name}, starting empty: {e}")
            return None
        except Exception as e:
            logger.error(f"Could not load {collection.name}, starting empty: {e}", exc_info=True)
            return None

        if raw is None:
            logger.info(f"No existing {collection.name} data found")
            return None

        records: list[T] = []
        for item in raw:
            try:
                records.append(collection.record_type.from_dict(item))
            except ValueError as e:
                logger.warning(f"Skipping invalid {collection.record_type.kind} record: {e}")

        logger.info(f"Loaded {len(records)} {collection.name}")
        return records

    async def _seed_sample_data(self) -> None:
        if self.warehouses._records.get(DEFAULT_WAREHOUSE_ID) is None:
            self.warehouses._put(
                Warehouse(
                    id=DEFAULT_WAREHOUSE_ID,
                    name="Admin Warehouse",
                    owner_id=self.admin_id,
                    type=WarehouseType.PERSONAL,
                )
            )
            await self.warehouses._persist()

        seeded = [
            Component.from_partial(
                {
                    **sample,
                    "id": str(uuid.uuid4()),
                    "owner_id": self.admin_id,
                    "warehouse_id": DEFAULT_WAREHOUSE_ID,
                    "warehouse_type": WarehouseType.PERSONAL,
                    "warehouse_group_id": None,
                }
            )
            for sample in SAMPLE_COMPONENTS
        ]
        self.components._replace_all(seeded)
        await self.components._persist()

    async def get_user_by_username(self, username: str) -> User | None:
        """Find a user by exact username."""
        matches = await self.users.find(lambda u: u.username == username)
        return matches[0] if matches else None
