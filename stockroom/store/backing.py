"""
Backing protocol and JSON file backing for entity collections.

A backing durably stores one named collection as a list of flat records.
The entity store keeps the authoritative copy in memory and rewrites the
whole collection through the backing after every mutation.

Invariants:
    - save() replaces the complete collection, never a single record
    - load() returns None for an absent collection and raises BackingError
      for one that exists but cannot be read or parsed
    - Backings perform no referential checks across collections

How to change safely:
    - Protocol changes require updating all implementations
    - A per-record backing (embedded key-value store) can replace the JSON
      files without touching EntityCollection as long as save() semantics hold
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..errors import BackingError

if TYPE_CHECKING:
    from ..config import StorageConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class CollectionBacking(Protocol):
    """Protocol for durable collection storage.

    Durability contract:
        - save() returns only after the full collection has been handed to
          the storage medium
        - A failed save() leaves the previous representation readable
    """

    @abstractmethod
    async def load(self, name: str) -> list[dict[str, Any]] | None:
        """Load a collection.

        Args:
            name: Collection name (e.g. "components")

        Returns:
            List of records, or None if the collection was never saved

        Raises:
            BackingError: If the stored collection is unreadable or corrupt
        """
        ...

    @abstractmethod
    async def save(self, name: str, records: list[dict[str, Any]]) -> None:
        """Replace a collection.

        Args:
            name: Collection name
            records: Full list of records

        Raises:
            BackingError: If the write fails
        """
        ...


class JsonFileBacking:
    """Stores each collection as ``<data_dir>/<name>.json``.

    Files are written to a temporary sibling and moved into place, so a
    crash mid-write leaves the previous file intact. Blocking file I/O runs
    in the default executor so a slow disk only delays the issuing request.

    Example:
        >>> backing = JsonFileBacking("/var/lib/stockroom")
        >>> await backing.save("groups", [{"id": "g1", "name": "Lab", "memberIds": []}])
        >>> await backing.load("groups")
        [{'id': 'g1', 'name': 'Lab', 'memberIds': []}]
    """

    def __init__(self, data_dir: str) -> None:
        """Initialize the backing.

        Args:
            data_dir: Directory for collection files (created on first write)
        """
        self.data_dir = Path(data_dir)

    def get_path(self, name: str) -> Path:
        """Get file path for a collection."""
        # Sanitize name to prevent path traversal
        safe_name = "".join(c for c in name if c.isalnum() or c in "-_")
        return self.data_dir / f"{safe_name}.json"

    async def load(self, name: str) -> list[dict[str, Any]] | None:
        path = self.get_path(name)
        return await asyncio.get_running_loop().run_in_executor(None, self._read, name, path)

    async def save(self, name: str, records: list[dict[str, Any]]) -> None:
        path = self.get_path(name)
        await asyncio.get_running_loop().run_in_executor(None, self._write, name, path, records)
        logger.debug("Saved collection", extra={"collection": name, "records": len(records)})

    def _read(self, name: str, path: Path) -> list[dict[str, Any]] | None:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise BackingError(f"Failed to read {path}: {e}", collection=name) from e

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise BackingError(f"{path} does not contain a list of records", collection=name)
        return data

    def _write(self, name: str, path: Path, records: list[dict[str, Any]]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise BackingError(f"Failed to write {path}: {e}", collection=name) from e


def create_backing(config: "StorageConfig") -> CollectionBacking:
    """Factory function to create a backing from configuration.

    Args:
        config: Storage configuration

    Returns:
        Appropriate CollectionBacking implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StorageBackend
    from .memory import InMemoryBacking

    if config.backend == StorageBackend.JSON:
        return JsonFileBacking(config.data_dir)
    elif config.backend == StorageBackend.MEMORY:
        return InMemoryBacking()
    else:
        raise ValueError(f"Unsupported storage backend: {config.backend}")
