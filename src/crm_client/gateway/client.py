"""HTTP gateway to the CRM backend.

Owns the shared httpx.AsyncClient and sits between every caller and the
network:

- Outbound: tags each request with an ``X-Request-Id`` and injects
  ``Authorization: Bearer <token>`` when a token is available. Headers the
  caller already set are never overwritten.
- Inbound: successful responses pass through untouched. Failures are
  observed, never recovered: a 401 outside the login endpoint publishes
  ``SessionEvent.EXPIRED``, a 5xx is logged, and the original httpx error is
  re-raised unchanged.

Timeouts are fixed once on the underlying client; there is no per-call
timeout or cancellation at this layer.
"""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from src.crm_client.config import Settings, get_settings
from src.crm_client.core.correlation import REQUEST_ID_HEADER, tag_correlation
from src.crm_client.core.monitoring import session_expired_total, track_gateway_call
from src.crm_client.session.events import SessionEvent, SessionEventChannel
from src.crm_client.session.tokens import TokenProvider

logger = structlog.get_logger(__name__)

AUTHORIZATION_HEADER = "Authorization"


class RequestDescriptor(BaseModel):
    """One outbound call as described by a caller.

    Attributes:
        method: HTTP verb (case-insensitive).
        path: Path relative to the API base URL, e.g. ``/projects``.
        params: Query parameters; ``None`` values are omitted on the wire.
        body: JSON-serializable request body, if any.
        headers: Caller-supplied headers; these always win over injected ones.
    """

    method: str
    path: str
    params: dict[str, Any] | None = None
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


class RequestGateway:
    """Tagging, authenticating, failure-signalling wrapper over httpx.

    Args:
        base_url: API base URL.
        channel: Session event channel that receives ``expired`` signals.
        token_provider: Source of the current bearer token (optional).
        timeout: Connect/response timeout in seconds for every call.
        login_path: Path whose 401s mean "bad credentials", not "session died".
        transport: Custom httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        channel: SessionEventChannel,
        token_provider: TokenProvider | None = None,
        timeout: float = 10.0,
        login_path: str = "/auth/login",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")

        self._channel = channel
        self._token_provider = token_provider
        self._login_pattern = re.compile(re.escape(login_path.rstrip("/")) + r"\b")
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> RequestGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Outbound ──────────────────────────────────────────────────────────

    def _read_token(self) -> str | None:
        if self._token_provider is None:
            return None
        try:
            return self._token_provider.token()
        except Exception:
            # Call proceeds unauthenticated.
            logger.warning("gateway.token_provider_failed", exc_info=True)
            return None

    def _outbound_headers(self, supplied: dict[str, str]) -> httpx.Headers:
        headers = tag_correlation(httpx.Headers(supplied))
        if not headers.get(AUTHORIZATION_HEADER):
            token = self._read_token()
            if token:
                headers[AUTHORIZATION_HEADER] = f"Bearer {token}"
        return headers

    # ── Inbound ───────────────────────────────────────────────────────────

    def is_login_path(self, path: str) -> bool:
        return bool(self._login_pattern.search(path))

    def _observe_failure(self, error: httpx.HTTPStatusError) -> None:
        """Signal and log a failed response. Never raises."""
        try:
            status = error.response.status_code
            path = error.request.url.path

            if status == 401 and not self.is_login_path(path):
                logger.warning("gateway.session_expired", path=path)
                session_expired_total.inc()
                self._channel.publish(SessionEvent.EXPIRED)

            if status >= 500:
                logger.error(
                    "gateway.server_error",
                    method=error.request.method,
                    path=path,
                    status_code=status,
                    request_id=error.request.headers.get(REQUEST_ID_HEADER),
                )
        except Exception:
            logger.exception("gateway.failure_observer_error")

    # ── Public API ────────────────────────────────────────────────────────

    async def send(self, request: RequestDescriptor) -> httpx.Response:
        """Send one request and return its response.

        Raises:
            httpx.HTTPStatusError: For any 4xx/5xx response, unchanged.
            httpx.TransportError: When no response was received, unchanged.
        """
        method = request.method.upper()
        params = {k: v for k, v in (request.params or {}).items() if v is not None}

        http_request = self._client.build_request(
            method,
            request.path,
            params=params or None,
            json=request.body,
            headers=self._outbound_headers(request.headers),
        )

        request_id = http_request.headers.get(REQUEST_ID_HEADER)
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            return await self._round_trip(method, http_request)

    async def _round_trip(self, method: str, http_request: httpx.Request) -> httpx.Response:
        async with track_gateway_call(method) as tracker:
            try:
                response = await self._client.send(http_request)
            except httpx.TransportError as exc:
                logger.warning(
                    "gateway.transport_error",
                    method=method,
                    path=http_request.url.path,
                    error=str(exc) or type(exc).__name__,
                    request_id=http_request.headers.get(REQUEST_ID_HEADER),
                )
                raise

            tracker["status"] = response.status_code
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                self._observe_failure(exc)
                raise

        return response

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self.send(
            RequestDescriptor(method="GET", path=path, params=params, headers=headers or {})
        )

    async def post(
        self,
        path: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self.send(
            RequestDescriptor(method="POST", path=path, body=json, headers=headers or {})
        )

    async def put(
        self,
        path: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self.send(
            RequestDescriptor(method="PUT", path=path, body=json, headers=headers or {})
        )

    async def patch(
        self,
        path: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self.send(
            RequestDescriptor(method="PATCH", path=path, body=json, headers=headers or {})
        )

    async def delete(
        self,
        path: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self.send(
            RequestDescriptor(method="DELETE", path=path, headers=headers or {})
        )


def build_gateway(
    channel: SessionEventChannel,
    token_provider: TokenProvider | None = None,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RequestGateway:
    """Build the process-wide gateway from settings."""
    settings = settings or get_settings()
    return RequestGateway(
        base_url=settings.API_BASE_URL,
        channel=channel,
        token_provider=token_provider,
        timeout=settings.API_TIMEOUT,
        login_path=settings.API_LOGIN_PATH,
        transport=transport,
    )
