"""
E2E test fixtures for Tance.

These tests require a running Redis server (REDIS_URL, default
redis://localhost:6379/15). The database is flushed after each test.
"""

import os
import uuid

import pytest
import pytest_asyncio

from tance.client import Tance
from tance.config import RedisConfig, TanceConfig
from tance.schema.registry import SkeemaRegistry

# Skip E2E tests if not in E2E mode
E2E_ENABLED = os.environ.get("TANCE_E2E_TESTS", "0") == "1"

pytestmark = pytest.mark.skipif(
    not E2E_ENABLED,
    reason="E2E tests disabled. Set TANCE_E2E_TESTS=1 to enable.",
)


@pytest.fixture
def redis_config() -> RedisConfig:
    return RedisConfig(url=os.environ.get("REDIS_URL", "redis://localhost:6379/15"))


@pytest.fixture
def test_namespace() -> str:
    """Generate unique namespace for test isolation."""
    return f"e2e{uuid.uuid4().hex[:8]}"


@pytest_asyncio.fixture
async def tance(redis_config, employee_schema):
    """Connected client over a real Redis server."""
    registry = SkeemaRegistry()
    registry.register(employee_schema)

    client = Tance.from_config(TanceConfig(redis=redis_config), registry=registry)
    await client.connect()
    yield client
    await client.store.flushdb()
    await client.close()
