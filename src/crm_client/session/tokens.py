"""Bearer token access.

The gateway only ever reads the current token through ``TokenProvider``.
``InMemoryTokenStore`` is the process-local implementation used by the
auth flows; on-device persistence lives outside this package.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenProvider(Protocol):
    """Read-only source of the current access token."""

    def token(self) -> str | None:
        """Return the current access token, or None when signed out."""
        ...


class InMemoryTokenStore:
    """Holds the access token for the lifetime of the process."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None) -> None:
        self._token = (token or "").strip() or None

    def clear(self) -> None:
        self._token = None

    def is_authed(self) -> bool:
        return self._token is not None
