"""
Stockroom - Electronic component inventory with warehouse access control.

This package implements a small inventory service built on:
- Components, Warehouses, Users and Groups as the data model
- One JSON document per collection as durable storage
- An in-memory cache of every collection as the live view
- Per-warehouse visibility derived from ownership and group membership

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │   Client    │────▶│  HTTP API   │────▶│ AccessResolver  │
    │  (browser)  │     │  (FastAPI)  │     │                 │
    └─────────────┘     └──────┬──────┘     └─────────────────┘
                               │
                               ▼
                        ┌─────────────────┐     ┌─────────────────┐
                        │ InventoryStore  │────▶│ JSON documents  │
                        │  (cached view)  │     │   (data dir)    │
                        └─────────────────┘     └─────────────────┘

Invariants:
    - Every mutation is applied to the cache first, then the whole
      collection is rewritten
    - User.groups is derived from Group.member_ids, never edited directly
    - Admins see everything; everyone else sees warehouses they own or
      share a group with, and the components inside them

How to change safely:
    - Keep wire field names camelCase; existing data files depend on them
    - Route group mutations through GroupMembershipSynchronizer
    - Test access rules with admin, owner, member and stranger users
"""

from ._version import __version__
