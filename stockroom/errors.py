"""
Error types for Stockroom.

This module defines the exceptions raised across the service:
- StockroomError: Base exception
- NotFoundError: Entity missing or invisible to the actor
- ForbiddenError: Entity known to the actor, operation not allowed
- UnauthorizedError: Missing or unknown identity, bad credentials
- ValidationError: Field constraint violations
- BackingError: Durable storage I/O failure
- MembershipSyncError: Group membership projection could not be rebuilt

Invariants:
    - All errors inherit from StockroomError
    - The store and the access resolver never raise for normal absence or
      denial; they return None/False and the handler layer raises these
    - BackingError never escapes the entity store
"""

from __future__ import annotations

from typing import Any


class StockroomError(Exception):
    """Base exception for all Stockroom errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "STOCKROOM_ERROR"
        self.details = details or {}


class NotFoundError(StockroomError):
    """Entity not found.

    Raised when:
    - The record does not exist
    - The record exists but the actor may not see it (indistinguishable
      from absence on purpose)
    """

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str | None = None) -> None:
        super().__init__(
            f"{resource_type} not found",
            code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ForbiddenError(StockroomError):
    """Operation denied on an entity whose existence the actor already knows."""

    status_code = 403

    def __init__(self, message: str = "Forbidden", actor: str | None = None) -> None:
        super().__init__(message, code="FORBIDDEN", details={"actor": actor})
        self.actor = actor


class UnauthorizedError(StockroomError):
    """No usable identity on the request."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, code="UNAUTHORIZED")


class ValidationError(StockroomError):
    """Field validation failed.

    Raised when:
    - A numeric field is negative or not an integer
    - A required string is missing
    - A username is already taken
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field_name: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        errors = errors or []
        if field_name and not errors:
            errors = [{"field": field_name, "message": message}]
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name, "errors": errors},
        )
        self.field_name = field_name
        self.errors = errors


class BackingError(StockroomError):
    """Reading or writing a collection's durable representation failed."""

    def __init__(self, message: str, collection: str | None = None) -> None:
        super().__init__(
            message,
            code="BACKING_ERROR",
            details={"collection": collection},
        )
        self.collection = collection


class MembershipSyncError(StockroomError):
    """User group memberships could not be brought in line with the groups.

    The group mutation that triggered the sync is not committed for access
    control purposes when this is raised.
    """

    def __init__(self, message: str, user_ids: list[str] | None = None) -> None:
        super().__init__(
            message,
            code="MEMBERSHIP_SYNC_ERROR",
            details={"user_ids": user_ids or []},
        )
        self.user_ids = user_ids or []
