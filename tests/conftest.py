"""Shared pytest fixtures for portal tests."""

from __future__ import annotations

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric import ec

from claimportal.crypto.certificates import (
    account_from_public_key_der_b64,
    public_key_der_b64,
)
from claimportal.infrastructure.database import DatabaseClient
from claimportal.infrastructure.repositories import (
    ClaimRegistryRepositoryImpl,
    PortalStateRepositoryImpl,
)
from claimportal.infrastructure.scripts import register_portal_scripts
from claimportal.infrastructure.storage import RedisKeyValueStore
from tests.fixtures import FakeClock, InMemoryKeyValueStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def admin_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generate the portal admin key pair."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key, private_key.public_key()


@pytest.fixture
def claimant_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generate a claimant key pair."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key, private_key.public_key()


@pytest.fixture
def admin_public_key_der_b64(
    admin_key_pair: tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey],
) -> str:
    _, public_key = admin_key_pair
    return public_key_der_b64(public_key)


@pytest.fixture
def claimant_public_key_der_b64(
    claimant_key_pair: tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey],
) -> str:
    _, public_key = claimant_key_pair
    return public_key_der_b64(public_key)


@pytest.fixture
def admin_account(admin_public_key_der_b64: str) -> int:
    return account_from_public_key_der_b64(admin_public_key_der_b64)


@pytest.fixture
def claimant_account(claimant_public_key_der_b64: str) -> int:
    return account_from_public_key_der_b64(claimant_public_key_der_b64)


@pytest.fixture
async def store() -> AsyncGenerator[InMemoryKeyValueStore, None]:
    """In-memory store with every portal script registered."""
    kv = InMemoryKeyValueStore()
    await register_portal_scripts(kv)
    yield kv
    kv.clear()


@pytest.fixture
def claim_repo(store: InMemoryKeyValueStore) -> ClaimRegistryRepositoryImpl:
    return ClaimRegistryRepositoryImpl(store)


@pytest.fixture
def state_repo(store: InMemoryKeyValueStore) -> PortalStateRepositoryImpl:
    return PortalStateRepositoryImpl(store)


class TestDatabaseSettings:
    """Test settings for Redis connection."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url


@pytest_asyncio.fixture
async def redis_db_client() -> AsyncGenerator[DatabaseClient, None]:
    """Create a Redis database client for testing.

    Uses TEST_REDIS_URL if set, otherwise localhost:6379/15.
    """
    import warnings

    test_redis_url = os.getenv("TEST_REDIS_URL", "redis://localhost:6379/15")
    settings = TestDatabaseSettings(database_url=test_redis_url)
    client = DatabaseClient(settings)
    client.initialize_database()

    try:
        async with client.get_connection() as conn:
            await conn.ping()
    except Exception as e:
        warnings.warn(
            f"Redis not available at {test_redis_url}: {e}. "
            "Tests requiring Redis will be skipped.",
            UserWarning,
        )
        await client.close()
        pytest.skip(f"Redis not available: {e}")

    async with client.get_connection() as conn:
        await conn.flushdb()

    yield client

    try:
        async with client.get_connection() as conn:
            await conn.flushdb()
    finally:
        await client.close()


@pytest_asyncio.fixture
async def redis_store(redis_db_client: DatabaseClient) -> RedisKeyValueStore:
    """Redis-backed store with every portal script registered."""
    kv = RedisKeyValueStore(redis_db_client)
    await register_portal_scripts(kv)
    return kv
