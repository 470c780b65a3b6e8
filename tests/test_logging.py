"""Unit tests for structlog configuration and per-request log context."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest
import structlog

from src.crm_client.config import Environment, Settings
from src.crm_client.core.correlation import REQUEST_ID_HEADER
from src.crm_client.core.logging import configure_structlog


@pytest.fixture
def restore_structlog():
    """Undo global structlog configuration and bound context after a test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# ── configure_structlog ─────────────────────────────────────────────────────


class TestConfigureStructlog:
    def _configure(self, environment: Environment) -> None:
        settings = Settings(_env_file=None, ENVIRONMENT=environment, SERVICE_NAME="crm-test")
        with patch("src.crm_client.core.logging.get_settings", return_value=settings):
            configure_structlog()

    def test_production_renders_json(self, restore_structlog):
        self._configure(Environment.production)

        processors = structlog.get_config()["processors"]
        assert processors[0] is structlog.contextvars.merge_contextvars
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_development_renders_console(self, restore_structlog):
        self._configure(Environment.development)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_binds_service_context(self, restore_structlog):
        self._configure(Environment.staging)

        context = structlog.contextvars.get_contextvars()
        assert context["service"] == "crm-test"
        assert context["environment"] == "staging"


# ── Gateway Request Context ─────────────────────────────────────────────────


class TestGatewayRequestContext:
    """The gateway binds request_id only for the duration of a call."""

    async def test_request_id_bound_during_call(self, make_gateway):
        bound: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bound.append(
                {
                    "context": structlog.contextvars.get_contextvars().get("request_id"),
                    "header": request.headers[REQUEST_ID_HEADER],
                }
            )
            return httpx.Response(200, json={})

        gateway = make_gateway(handler)

        await gateway.get("/projects")

        assert bound[0]["context"] == bound[0]["header"]
        assert "request_id" not in structlog.contextvars.get_contextvars()

    async def test_request_id_unbound_after_failure(self, make_gateway):
        gateway = make_gateway(lambda request: httpx.Response(500))

        with pytest.raises(httpx.HTTPStatusError):
            await gateway.get("/projects")

        assert "request_id" not in structlog.contextvars.get_contextvars()
