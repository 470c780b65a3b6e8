"""Password recovery flows.

Request a reset e-mail, validate a reset token, and submit the new
password. Each backend call runs under the bounded RetryPolicy; on
exhaustion the last error is turned into a user-facing result dict
instead of being raised.
"""

from __future__ import annotations

import re
from typing import Any

import httpx
import structlog

from src.crm_client.config import Settings, get_settings
from src.crm_client.gateway.client import RequestGateway
from src.crm_client.resilience.retry import RetryPolicy

logger = structlog.get_logger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FORGOT_PASSWORD_PATH = "/auth/forgot-password"
VALIDATE_TOKEN_PATH = "/auth/reset-password/validate"
RESET_PASSWORD_PATH = "/auth/reset-password"


def _status_of(error: BaseException) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def _success_body(response: httpx.Response) -> Any:
    """Decoded body of a 2xx reply; ``{"ok": True}`` when empty or not JSON."""
    if not response.content:
        return {"ok": True}
    try:
        return response.json()
    except ValueError:
        logger.info(
            "recovery.non_json_body",
            path=response.request.url.path,
            status_code=response.status_code,
        )
        return {"ok": True}


def _server_message(error: BaseException) -> str | None:
    if not isinstance(error, httpx.HTTPStatusError):
        return None
    try:
        body = error.response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None


class AuthRecoveryService:
    """Password recovery with bounded retry.

    Args:
        gateway: The shared request gateway.
        retry_policy: Retry runner; a fresh RetryPolicy when omitted.
        settings: Supplies attempt count and delay.
    """

    def __init__(
        self,
        gateway: RequestGateway,
        retry_policy: RetryPolicy | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._gateway = gateway
        self._retry = retry_policy or RetryPolicy()
        self._max_attempts = settings.RECOVERY_MAX_ATTEMPTS
        self._delay_ms = settings.RECOVERY_RETRY_DELAY_MS
        self._last_email = ""

    def last_email(self) -> str:
        """The e-mail most recently used to request a reset."""
        return self._last_email

    async def _with_retry(self, method: str, path: str, **kwargs: Any) -> Any:
        async def call() -> httpx.Response:
            return await getattr(self._gateway, method)(path, **kwargs)

        response = await self._retry.run(call, self._max_attempts, self._delay_ms)
        return _success_body(response)

    async def request_reset(self, email: str) -> dict[str, Any]:
        """Ask the backend to e-mail a password reset link."""
        normalized = (email or "").strip().lower()
        if not _EMAIL_RE.match(normalized):
            return {"ok": False, "message": "Invalid e-mail"}

        self._last_email = normalized

        try:
            return await self._with_retry("post", FORGOT_PASSWORD_PATH, json={"email": normalized})
        except Exception as exc:
            if _status_of(exc) == 404:
                logger.info("recovery.reset_not_enabled")
                return {
                    "ok": True,
                    "message": "Password reset is not enabled in this environment.",
                }
            logger.warning("recovery.request_reset_failed", error_type=type(exc).__name__)
            return {"ok": False, "message": "Failed to request password reset."}

    async def validate_token(self, token: str) -> dict[str, Any]:
        """Check that a reset token is still valid."""
        cleaned = (token or "").strip()
        if not cleaned:
            return {"ok": False}

        try:
            return await self._with_retry("get", VALIDATE_TOKEN_PATH, params={"token": cleaned})
        except Exception as exc:
            logger.warning("recovery.validate_token_failed", error_type=type(exc).__name__)
            return {"ok": False}

    async def reset_password(self, token: str, password: str, confirm: str) -> dict[str, Any]:
        """Submit the new password for a reset token."""
        cleaned = (token or "").strip()
        if not cleaned:
            return {"ok": False, "message": "Missing token"}

        try:
            return await self._with_retry(
                "post",
                RESET_PASSWORD_PATH,
                json={"token": cleaned, "password": password, "confirm": confirm},
            )
        except Exception as exc:
            logger.warning("recovery.reset_password_failed", error_type=type(exc).__name__)
            return {
                "ok": False,
                "message": _server_message(exc) or "Failed to reset password",
            }
