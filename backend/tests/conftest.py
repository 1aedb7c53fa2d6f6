"""
Transit Store Backend - Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── storage:      StorageAdapter connected to a temporary SQLite file
    ├── transit:      InMemoryTransitClient (no network)
    ├── record_service / folder_service: services wired to the two above
    └── test_client:  HTTPX AsyncClient talking to the FastAPI app in-process
"""

import os
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Override settings for testing BEFORE any app imports
os.environ.pop("DATABASE_URL", None)
os.environ.pop("API_TOKEN", None)
os.environ["VAULT_ADDR"] = "http://vault.test:8200"
os.environ["VAULT_TOKEN"] = "test-token-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

from transit_store.database import StorageAdapter  # noqa: E402
from transit_store.exceptions import (  # noqa: E402
    DecryptionKeyNotFoundError,
    DecryptionUnavailableError,
    EncryptionKeyNotFoundError,
    EncryptionUnavailableError,
)
from transit_store.services.folder_service import FolderService  # noqa: E402
from transit_store.services.record_service import RecordService  # noqa: E402
from transit_store.services.transit_base import (  # noqa: E402
    EncryptionResult,
    TransitClient,
    decode_plaintext,
    encode_plaintext,
)


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Transit Client
# ══════════════════════════════════════════════════════════════════════════

class InMemoryTransitClient(TransitClient):
    """
    Deterministic stand-in for the transit oracle.

    Ciphertext looks like Vault's (`vault:v1:...`) and carries the key name,
    so decrypting under a different key fails the way the oracle would.
    Flip `fail_encrypt` / `fail_decrypt` / `healthy` to simulate outages.
    """

    PREFIX = "vault:v1:"

    def __init__(self, keys=("mykey",)):
        self.keys = set(keys)
        self.fail_encrypt = False
        self.fail_decrypt = False
        self.healthy = True
        self.encrypt_calls = 0
        self.decrypt_calls = 0

    async def encrypt(self, plaintext: Any, key_name: str) -> EncryptionResult:
        self.encrypt_calls += 1
        if self.fail_encrypt:
            raise EncryptionUnavailableError(key_name=key_name)
        if key_name not in self.keys:
            raise EncryptionKeyNotFoundError(key_name)
        # Reversed so the stored text never equals the encoded plaintext.
        sealed = encode_plaintext(plaintext)[::-1]
        return EncryptionResult(ciphertext=f"{self.PREFIX}{key_name}:{sealed}", key_version=1)

    async def decrypt(self, ciphertext: str, key_name: str) -> Any:
        self.decrypt_calls += 1
        if self.fail_decrypt:
            raise DecryptionUnavailableError(key_name=key_name)
        if key_name not in self.keys:
            raise DecryptionKeyNotFoundError(key_name)
        expected = f"{self.PREFIX}{key_name}:"
        if not ciphertext.startswith(expected):
            raise DecryptionUnavailableError(
                message="ciphertext was not produced by this key",
                key_name=key_name,
            )
        return decode_plaintext(ciphertext[len(expected):][::-1], key_name)

    async def health_check(self) -> bool:
        return self.healthy


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def storage(tmp_path) -> AsyncGenerator[StorageAdapter, None]:
    """
    A connected StorageAdapter on a throwaway SQLite file.

    Real SQL, real constraints: UNIQUE and FOREIGN KEY violations are raised
    by SQLite itself, exactly as they are in production.
    """
    adapter = StorageAdapter(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await adapter.connect()
    yield adapter
    await adapter.dispose()


@pytest.fixture
def transit() -> InMemoryTransitClient:
    return InMemoryTransitClient()


@pytest.fixture
def record_service(storage, transit) -> RecordService:
    return RecordService(storage=storage, transit=transit)


@pytest.fixture
def folder_service(storage) -> FolderService:
    return FolderService(storage=storage)


@pytest_asyncio.fixture
async def test_client(storage, transit):
    """
    Provides an async HTTP test client for endpoint testing.

    ASGITransport does not run the lifespan, so the storage handle and the
    transit client are placed on app.state here instead.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from transit_store.main import app

    app.state.storage = storage
    app.state.transit = transit
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.storage = None
    app.state.transit = None
