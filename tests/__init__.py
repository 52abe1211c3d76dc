"""
Tance Test Suite.

This package contains:
- unit/: Unit tests (no store)
- integration/: Collection tests against the in-memory store
- e2e/: Tests against a real Redis server
"""
