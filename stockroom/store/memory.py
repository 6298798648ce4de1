"""
In-memory collection backing for testing.

This module provides a backing that keeps serialized collections in a dict:
- Unit and integration tests
- Local development without a data directory

Invariants:
    - All data is lost on process exit
    - Records are deep-copied on save and load, so callers never share
      structure with the stored snapshot

How to change safely:
    - Keep the interface compatible with CollectionBacking
    - Add helpers here rather than reaching into private state from tests
"""

from __future__ import annotations

import copy
import logging
from collections import defaultdict
from typing import Any

from ..errors import BackingError

logger = logging.getLogger(__name__)


class InMemoryBacking:
    """In-memory implementation of CollectionBacking.

    Example:
        >>> backing = InMemoryBacking()
        >>> await backing.save("users", [])
        >>> backing.save_count("users")
        1
    """

    def __init__(self, initial: dict[str, list[dict[str, Any]]] | None = None) -> None:
        """Initialize in-memory backing.

        Args:
            initial: Optional pre-populated collections
        """
        self._collections: dict[str, list[dict[str, Any]]] = copy.deepcopy(initial or {})
        self._save_counts: dict[str, int] = defaultdict(int)
        self._load_counts: dict[str, int] = defaultdict(int)
        self._fail_saves: set[str] = set()
        self._fail_loads: set[str] = set()

    async def load(self, name: str) -> list[dict[str, Any]] | None:
        self._load_counts[name] += 1
        if name in self._fail_loads:
            raise BackingError(f"Injected load failure for {name}", collection=name)
        if name not in self._collections:
            return None
        return copy.deepcopy(self._collections[name])

    async def save(self, name: str, records: list[dict[str, Any]]) -> None:
        self._save_counts[name] += 1
        if name in self._fail_saves:
            raise BackingError(f"Injected save failure for {name}", collection=name)
        self._collections[name] = copy.deepcopy(records)
        logger.debug("Saved collection in memory", extra={"collection": name, "records": len(records)})

    # Testing helpers

    def get_records(self, name: str) -> list[dict[str, Any]] | None:
        """Get the stored snapshot of a collection (testing helper)."""
        records = self._collections.get(name)
        return copy.deepcopy(records) if records is not None else None

    def save_count(self, name: str) -> int:
        """Number of save attempts for a collection (testing helper)."""
        return self._save_counts[name]

    def load_count(self, name: str) -> int:
        """Number of load attempts for a collection (testing helper)."""
        return self._load_counts[name]

    def fail_saves(self, name: str, enabled: bool = True) -> None:
        """Make subsequent saves of a collection raise BackingError."""
        if enabled:
            self._fail_saves.add(name)
        else:
            self._fail_saves.discard(name)

    def fail_loads(self, name: str, enabled: bool = True) -> None:
        """Make subsequent loads of a collection raise BackingError."""
        if enabled:
            self._fail_loads.add(name)
        else:
            self._fail_loads.discard(name)
