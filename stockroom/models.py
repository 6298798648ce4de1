"""
Entity record types for Stockroom.

Each persisted entity has an explicit dataclass:
- Component: a stocked item inside one warehouse (or orphaned)
- Warehouse: a personal or group-shared container of components
- User: an account with a role and a derived group list
- Group: the authoritative set of member user ids

Records use snake_case attributes in Python and camelCase keys on disk and
on the wire (see ``to_dict``/``from_dict``).

Invariants:
    - ids are assigned once and never change (``merged`` rejects it)
    - quantity and min_stock_level are non-negative integers
    - User.groups is a projection of Group.member_ids, never edited by hand
    - Unknown fields are rejected at the create and update boundaries

How to change safely:
    - New fields need a default so existing JSON collections still load
    - Keep wire names stable; they are the persisted layout
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, TypeVar

DEFAULT_WAREHOUSE_ID = "admin-default"
DEFAULT_OWNER_ID = "admin"
DEFAULT_MIN_STOCK_LEVEL = 10

R = TypeVar("R", bound="Record")


class Role(str, Enum):
    """User roles."""

    USER = "user"
    ADMIN = "admin"


class WarehouseType(str, Enum):
    """Warehouse sharing modes."""

    PERSONAL = "personal"
    GROUP = "group"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class Record:
    """Shared serialization and merge behavior for entity dataclasses."""

    kind: ClassVar[str] = "record"

    id: str

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))  # type: ignore[arg-type]

    @classmethod
    def check_fields(cls, data: dict[str, Any]) -> None:
        """Reject keys that are not attributes of this record type.

        Raises:
            ValueError: If an unknown field is present
        """
        unknown = sorted(set(data) - set(cls.field_names()))
        if unknown:
            raise ValueError(f"Unknown {cls.kind} field(s): {', '.join(unknown)}")

    @classmethod
    def from_partial(cls: type[R], data: dict[str, Any]) -> R:
        """Build a record from snake_case fields, applying defaults.

        Args:
            data: Field values; must include ``id`` and the required fields

        Returns:
            New record

        Raises:
            ValueError: If fields are unknown or required ones are missing
        """
        cls.check_fields(data)
        try:
            return cls(**data)
        except TypeError as e:
            raise ValueError(f"Invalid {cls.kind}: {e}") from e

    @classmethod
    def from_dict(cls: type[R], data: dict[str, Any]) -> R:
        """Create from a persisted camelCase record.

        Missing optional keys fall back to the dataclass defaults.
        """
        values: dict[str, Any] = {}
        for name in cls.field_names():
            wire = _camel(name)
            if wire in data:
                values[name] = data[wire]
            elif name in data:
                values[name] = data[name]
        try:
            return cls(**values)
        except TypeError as e:
            raise ValueError(f"Invalid {cls.kind} record: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat camelCase dictionary for storage."""
        result: dict[str, Any] = {}
        for name in self.field_names():
            value = getattr(self, name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, list):
                value = list(value)
            result[_camel(name)] = value
        return result

    def merged(self: R, patch: dict[str, Any]) -> R:
        """Return a copy with ``patch`` shallowly applied.

        Omitted fields are preserved; explicit ``None`` values clear.

        Raises:
            ValueError: On unknown fields or an attempt to change the id
        """
        self.check_fields(patch)
        if "id" in patch and patch["id"] != self.id:
            raise ValueError(f"{self.kind} id is immutable: {self.id}")
        return dataclasses.replace(self, **patch)  # type: ignore[type-var]


@dataclass
class Component(Record):
    """A stocked inventory item.

    Attributes:
        id: Component identifier
        name: Display name
        category: Free-form category (e.g. "Resistors")
        quantity: Units on hand
        location: Shelf/bin location
        description: Free text
        min_stock_level: Reorder threshold
        owner_id: User who created the component
        group_ids: Legacy sharing list
        warehouse_id: Owning warehouse, None when orphaned
        warehouse_type: Copy of the owning warehouse type at creation
        warehouse_group_id: Copy of the owning warehouse group at creation
    """

    kind: ClassVar[str] = "component"

    id: str
    name: str
    category: str
    quantity: int = 0
    location: str = ""
    description: str = ""
    min_stock_level: int = DEFAULT_MIN_STOCK_LEVEL
    owner_id: str | None = DEFAULT_OWNER_ID
    group_ids: list[str] = field(default_factory=list)
    warehouse_id: str | None = DEFAULT_WAREHOUSE_ID
    warehouse_type: WarehouseType | None = WarehouseType.PERSONAL
    warehouse_group_id: str | None = None

    def __post_init__(self) -> None:
        if self.warehouse_type is not None:
            self.warehouse_type = WarehouseType(self.warehouse_type)
        self.group_ids = list(self.group_ids or [])

    @property
    def is_low_stock(self) -> bool:
        """Quantity at or below the reorder threshold."""
        return self.quantity <= self.min_stock_level


@dataclass
class Warehouse(Record):
    """A named container of components.

    A personal warehouse is reachable by its owner and by members of any
    group in ``group_ids``; a group warehouse only by members of
    ``warehouse_group_id``.
    """

    kind: ClassVar[str] = "warehouse"

    id: str
    name: str
    owner_id: str | None = None
    type: WarehouseType = WarehouseType.PERSONAL
    warehouse_group_id: str | None = None
    group_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.type = WarehouseType(self.type)
        self.group_ids = list(self.group_ids or [])


@dataclass
class User(Record):
    """An account.

    ``password`` holds a salted hash (see ``stockroom.security``); ``groups``
    is rebuilt by the membership synchronizer.
    """

    kind: ClassVar[str] = "user"

    id: str
    username: str
    password: str
    role: Role = Role.USER
    groups: list[str] = field(default_factory=list)
    default_warehouse_id: str | None = None

    def __post_init__(self) -> None:
        self.role = Role(self.role)
        self.groups = list(self.groups or [])

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_profile(self) -> dict[str, Any]:
        """Public view of the account (no password)."""
        data = self.to_dict()
        data.pop("password", None)
        return data


@dataclass
class Group(Record):
    """A named set of member user ids."""

    kind: ClassVar[str] = "group"

    id: str
    name: str
    member_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.member_ids = list(self.member_ids or [])
