"""
Stockroom Test Suite.

This package contains:
- unit/: Unit tests (in-memory backing, temporary directories)
- integration/: HTTP API tests through the FastAPI test client
"""
