"""Unit test fixtures."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from bidhub_client.client import MarketplaceClient
from bidhub_client.config import ApiConfig, clear_settings_cache
from bidhub_client.notices import NoticeBoard
from bidhub_client.schemas import UserSummary
from bidhub_client.session import SessionStore
from bidhub_client.storage import MemoryStorage, MemoryStorageArea

BASE_URL = "http://bidhub.test"

Handler = Callable[[httpx.Request], Any]


@pytest.fixture()
def api_config() -> ApiConfig:
    return ApiConfig(base_url=BASE_URL, timeout_seconds=5)


@pytest.fixture()
def storage_area() -> MemoryStorageArea:
    """A shared storage area, like one browser profile."""
    return MemoryStorageArea()


@pytest.fixture()
def storage(storage_area: MemoryStorageArea) -> MemoryStorage:
    return storage_area.context()


@pytest.fixture()
def session_store(storage: MemoryStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture()
def notices() -> NoticeBoard:
    return NoticeBoard(ttl_seconds=5)


@pytest.fixture()
def buyer_payload() -> dict[str, Any]:
    """A login response user object, including a credential field."""
    return {
        "id": "1",
        "name": "Ann",
        "email": "a@b.com",
        "role": "BUYER",
        "createdAt": "2024-01-01",
        "password": "hashed-secret",
    }


@pytest.fixture()
def seller_payload() -> dict[str, Any]:
    return {
        "id": "2",
        "name": "Sam",
        "email": "s@b.com",
        "role": "SELLER",
        "createdAt": "2024-02-01",
    }


@pytest.fixture()
def buyer(buyer_payload: dict[str, Any]) -> UserSummary:
    return UserSummary.from_payload(buyer_payload)


@pytest.fixture()
def seller(seller_payload: dict[str, Any]) -> UserSummary:
    return UserSummary.from_payload(seller_payload)


@pytest.fixture()
async def make_client(
    api_config: ApiConfig, session_store: SessionStore
) -> AsyncIterator[Callable[[Handler], MarketplaceClient]]:
    """Build MarketplaceClients backed by an httpx.MockTransport handler."""
    clients: list[MarketplaceClient] = []

    def _make(handler: Handler) -> MarketplaceClient:
        client = MarketplaceClient(
            api_config, session_store, transport=httpx.MockTransport(handler)
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.close()


@pytest.fixture(autouse=True)
def _clear_config_cache() -> None:
    """Clear config cache between tests."""
    clear_settings_cache()
