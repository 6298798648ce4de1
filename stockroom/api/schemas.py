"""
Request models for the Stockroom HTTP API.

Field names on the wire are camelCase; ``model_dump(exclude_unset=True)``
yields the snake_case partials the entity store expects.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import Role, WarehouseType


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(_Request):
    """Credentials for login."""

    username: str = ""
    password: str = ""


class RegisterRequest(_Request):
    """Self-service account creation."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class MeUpdateRequest(_Request):
    """Change own username and/or password."""

    username: str | None = Field(None, min_length=1)
    password: str | None = Field(None, min_length=1)


class UserCreateRequest(_Request):
    """Admin: create an account."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    role: Role = Role.USER


class UserUpdateRequest(_Request):
    """Admin: update an account."""

    username: str | None = Field(None, min_length=1)
    password: str | None = Field(None, min_length=1)
    role: Role | None = None

    @field_validator("username", "password", "role")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("field may not be null")
        return v


class ComponentCreateRequest(_Request):
    """Create a component."""

    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    quantity: int = Field(0, ge=0, description="Quantity must be 0 or greater")
    location: str
    description: str
    min_stock_level: int = Field(
        10, ge=0, alias="minStockLevel", description="Minimum stock level must be 0 or greater"
    )
    warehouse_id: str | None = Field(None, alias="warehouseId")


class ComponentUpdateRequest(_Request):
    """Partial component update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1)
    category: str | None = Field(None, min_length=1)
    quantity: int | None = Field(None, ge=0)
    location: str | None = None
    description: str | None = None
    min_stock_level: int | None = Field(None, ge=0, alias="minStockLevel")

    @field_validator("name", "category", "quantity", "location", "description", "min_stock_level")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("field may not be null")
        return v


class GroupCreateRequest(_Request):
    """Admin: create a group."""

    name: str = Field(..., min_length=1)
    member_ids: list[str] = Field(default_factory=list, alias="memberIds")


class GroupUpdateRequest(_Request):
    """Admin: update a group."""

    name: str | None = Field(None, min_length=1)
    member_ids: list[str] | None = Field(None, alias="memberIds")

    @field_validator("name", "member_ids")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("field may not be null")
        return v


class WarehouseCreateRequest(_Request):
    """Create a personal or group warehouse."""

    name: str | None = None
    type: WarehouseType = WarehouseType.PERSONAL
    group_id: str | None = Field(None, alias="groupId")
    group_ids: list[str] = Field(default_factory=list, alias="groupIds")


class WarehouseUpdateRequest(_Request):
    """Rename a warehouse."""

    name: str | None = None
