"""Session signalling and token access.

Exports:
    SessionEvent: Enum of session signals (only EXPIRED).
    SessionEventChannel: Synchronous in-process publish/subscribe channel.
    SessionExpiryWatcher: Idempotent navigation-side expiry reaction.
    TokenProvider: Read-only token source protocol.
    InMemoryTokenStore: Process-local token holder.
"""

from __future__ import annotations

from src.crm_client.session.events import SessionEvent, SessionEventChannel
from src.crm_client.session.tokens import InMemoryTokenStore, TokenProvider
from src.crm_client.session.watcher import SessionExpiryWatcher

__all__ = [
    "InMemoryTokenStore",
    "SessionEvent",
    "SessionEventChannel",
    "SessionExpiryWatcher",
    "TokenProvider",
]
