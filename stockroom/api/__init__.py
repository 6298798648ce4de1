"""
Stockroom HTTP API - REST access to the component inventory.

This package provides:
1. An application factory wiring the entity store and membership sync
2. Routes for login, components, users, groups and warehouses
3. Request models with camelCase wire names
"""

from .app import create_app
from .routes import router

__all__ = ["create_app", "router"]
