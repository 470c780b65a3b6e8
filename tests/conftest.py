"""Shared fixtures for the client data-access tests.

Provides:
- Settings isolated from any local .env file
- A session event channel with a recording subscriber
- A token store and a gateway factory backed by httpx.MockTransport
- A RetryPolicy whose sleep is recorded instead of awaited
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from src.crm_client.config import Settings
from src.crm_client.gateway.client import RequestGateway
from src.crm_client.resilience.retry import RetryPolicy
from src.crm_client.session.events import SessionEvent, SessionEventChannel
from src.crm_client.session.tokens import InMemoryTokenStore

BASE_URL = "http://api.test"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    """Default settings, ignoring .env."""
    return Settings(_env_file=None, API_BASE_URL=BASE_URL)


@pytest.fixture
def channel() -> SessionEventChannel:
    return SessionEventChannel()


@pytest.fixture
def published(channel) -> list[SessionEvent]:
    """Every event delivered on ``channel`` during the test."""
    events: list[SessionEvent] = []
    channel.subscribe(events.append)
    return events


@pytest.fixture
def tokens() -> InMemoryTokenStore:
    return InMemoryTokenStore("test-token")


@pytest.fixture
def fake_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def retry_policy(fake_sleep) -> RetryPolicy:
    return RetryPolicy(sleep=fake_sleep)


@pytest_asyncio.fixture
async def make_gateway(channel, tokens) -> AsyncGenerator[Callable[..., RequestGateway], None]:
    """Factory building gateways over a MockTransport handler."""
    created: list[RequestGateway] = []

    def _make(handler: Handler, **kwargs) -> RequestGateway:
        kwargs.setdefault("token_provider", tokens)
        gateway = RequestGateway(
            BASE_URL,
            channel,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
        created.append(gateway)
        return gateway

    yield _make

    for gateway in created:
        await gateway.aclose()
