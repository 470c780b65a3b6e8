"""Session re-verification guard.

Confirms the stored token still works by calling ``/auth/me`` under the
bounded RetryPolicy. A token that cannot be verified is cleared (logout).
"""

from __future__ import annotations

import structlog

from src.crm_client.config import Settings, get_settings
from src.crm_client.gateway.resources import CrmApi
from src.crm_client.resilience.retry import RetryPolicy
from src.crm_client.session.tokens import InMemoryTokenStore

logger = structlog.get_logger(__name__)


class AuthVerificationError(RuntimeError):
    """Raised when ``/auth/me`` answers without a profile."""


class AuthGuard:
    """Verify-or-logout gate for protected screens.

    Args:
        api: CRM endpoint wrappers.
        tokens: Token store cleared when verification fails.
        retry_policy: Retry runner; a fresh RetryPolicy when omitted.
        settings: Supplies attempt count and delay.
    """

    def __init__(
        self,
        api: CrmApi,
        tokens: InMemoryTokenStore,
        retry_policy: RetryPolicy | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._api = api
        self._tokens = tokens
        self._retry = retry_policy or RetryPolicy()
        self._max_attempts = settings.AUTH_GUARD_MAX_ATTEMPTS
        self._delay_ms = settings.AUTH_GUARD_RETRY_DELAY_MS
        self._verified = False
        self._verifying = False

    @property
    def verified(self) -> bool:
        return self._verified

    async def _fetch_profile(self) -> bool:
        profile = await self._api.me()
        if not profile:
            raise AuthVerificationError("empty /auth/me response")
        return True

    async def verify_or_logout(self) -> bool:
        """Return True when the session is verified; otherwise log out.

        While a verification is already running, answers with whether a
        token is currently held instead of starting a second one.
        """
        if self._verified:
            return True
        if self._verifying:
            return self._tokens.is_authed()

        self._verifying = True
        try:
            await self._retry.run(self._fetch_profile, self._max_attempts, self._delay_ms)
        except Exception as exc:
            logger.warning("auth_guard.verification_failed", error_type=type(exc).__name__)
            self._tokens.clear()
            return False
        else:
            self._verified = True
            return True
        finally:
            self._verifying = False

    def reset_verified(self) -> None:
        self._verified = False
        self._verifying = False
