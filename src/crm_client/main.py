"""Client composition root.

Builds the process-wide pieces once -- session event channel, token store,
gateway, endpoint wrappers, recovery/guard services -- and wires the channel
by reference into the gateway and the navigation-side expiry watcher.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
import structlog

from src.crm_client.config import Settings, get_settings
from src.crm_client.core.logging import configure_structlog
from src.crm_client.gateway.client import RequestGateway, build_gateway
from src.crm_client.gateway.resources import CrmApi
from src.crm_client.loaders.paged import (
    PagedListLoader,
    clients_loader,
    projects_loader,
    tasks_loader,
)
from src.crm_client.loaders.schemas import ClientRow, ProjectRow, TaskRow
from src.crm_client.resilience.retry import RetryPolicy
from src.crm_client.services.auth_guard import AuthGuard
from src.crm_client.services.recovery import AuthRecoveryService
from src.crm_client.session.events import SessionEventChannel
from src.crm_client.session.tokens import InMemoryTokenStore
from src.crm_client.session.watcher import SessionExpiryWatcher

logger = structlog.get_logger(__name__)


@dataclass
class CrmClient:
    """Everything a UI shell needs, sharing one gateway and one channel."""

    settings: Settings
    channel: SessionEventChannel
    tokens: InMemoryTokenStore
    gateway: RequestGateway
    api: CrmApi
    recovery: AuthRecoveryService
    guard: AuthGuard

    def clients_loader(self) -> PagedListLoader[ClientRow]:
        return clients_loader(self.api, settings=self.settings)

    def projects_loader(self) -> PagedListLoader[ProjectRow]:
        return projects_loader(self.api, settings=self.settings)

    def tasks_loader(self, project_id: str | None = None) -> PagedListLoader[TaskRow]:
        return tasks_loader(self.api, project_id=project_id, settings=self.settings)

    def watch_expiry(self, on_expired: Callable[[], None]) -> SessionExpiryWatcher:
        """Subscribe the navigation shell's reaction to session expiry."""
        return SessionExpiryWatcher(self.channel, on_expired)

    async def aclose(self) -> None:
        await self.gateway.aclose()


def create_client(
    settings: Settings | None = None,
    tokens: InMemoryTokenStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    retry_policy: RetryPolicy | None = None,
) -> CrmClient:
    """Wire the client stack. Call once per process."""
    settings = settings or get_settings()
    channel = SessionEventChannel()
    tokens = tokens or InMemoryTokenStore()
    gateway = build_gateway(channel, tokens, settings=settings, transport=transport)
    api = CrmApi(gateway)
    retry_policy = retry_policy or RetryPolicy()

    logger.info(
        "client.created",
        base_url=settings.API_BASE_URL,
        environment=settings.ENVIRONMENT.value,
    )
    return CrmClient(
        settings=settings,
        channel=channel,
        tokens=tokens,
        gateway=gateway,
        api=api,
        recovery=AuthRecoveryService(gateway, retry_policy, settings=settings),
        guard=AuthGuard(api, tokens, retry_policy, settings=settings),
    )


@asynccontextmanager
async def client_lifespan(
    settings: Settings | None = None,
) -> AsyncGenerator[CrmClient, None]:
    """Configure logging, build the client, and close its transport on exit."""
    configure_structlog()
    client = create_client(settings)
    try:
        yield client
    finally:
        await client.aclose()
