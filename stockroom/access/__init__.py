"""
Access module for Stockroom - visibility and group membership.

This module handles:
- Warehouse and component access resolution
- Group membership projection onto users

Invariants:
    - Resolver checks are pure and never raise for a denial
    - User.groups is rebuilt after every group mutation, before the
      mutation is reported as done

How to change safely:
    - Test new rules against admin, owner, group member and stranger users
    - Keep membership derivation a full recomputation
"""

from .membership import GroupMembershipSynchronizer, build_membership_map
from .resolver import AccessResolver, get_access_resolver

__all__ = [
    "AccessResolver",
    "get_access_resolver",
    "GroupMembershipSynchronizer",
    "build_membership_map",
]
