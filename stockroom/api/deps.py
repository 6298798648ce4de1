"""
FastAPI dependencies for the Stockroom HTTP API.

Identity comes from a request header (``Settings.actor_header``) holding
the acting user's id; an authenticating front end is expected to set it
after login.
"""

from fastapi import Depends, Request

from ..access import AccessResolver, GroupMembershipSynchronizer, get_access_resolver
from ..errors import ForbiddenError, UnauthorizedError
from ..models import User
from ..store import InventoryStore


def get_store(request: Request) -> InventoryStore:
    """Get the entity store from app state."""
    return request.app.state.store


def get_synchronizer(request: Request) -> GroupMembershipSynchronizer:
    """Get the group membership synchronizer from app state."""
    return request.app.state.synchronizer


def get_resolver() -> AccessResolver:
    return get_access_resolver()


async def get_current_user(
    request: Request,
    store: InventoryStore = Depends(get_store),
) -> User:
    """Load the acting user, freshly, so group changes apply immediately.

    Raises:
        UnauthorizedError: If the header is missing or names no user
    """
    actor = request.headers.get(request.app.state.settings.actor_header)
    if not actor:
        raise UnauthorizedError()

    user = await store.users.get(actor)
    if user is None:
        raise UnauthorizedError()
    return user


async def require_admin(
    user: User = Depends(get_current_user),
    resolver: AccessResolver = Depends(get_resolver),
) -> User:
    """Require the acting user to be an admin.

    Raises:
        ForbiddenError: If the user is not an admin
    """
    if not resolver.is_admin(user):
        raise ForbiddenError(actor=user.id)
    return user
