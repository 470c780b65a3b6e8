"""Navigation-side consumer of session expiry signals.

The gateway may emit ``expired`` once per failing request, so a burst of
parallel calls after the token dies produces a burst of events. The watcher
collapses them into a single ``on_expired`` reaction until it is re-armed
(typically after the next successful sign-in).
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from src.crm_client.session.events import SessionEvent, SessionEventChannel

logger = structlog.get_logger(__name__)


class SessionExpiryWatcher:
    """Invoke ``on_expired`` once per session death.

    Args:
        channel: The shared session event channel.
        on_expired: Reaction to run, e.g. clear credentials and route to login.
    """

    def __init__(
        self,
        channel: SessionEventChannel,
        on_expired: Callable[[], None],
    ) -> None:
        self._on_expired = on_expired
        self._fired = False
        self._unsubscribe: Callable[[], None] | None = channel.subscribe(self._handle)

    @property
    def fired(self) -> bool:
        return self._fired

    def _handle(self, event: SessionEvent) -> None:
        if event is not SessionEvent.EXPIRED:
            return
        if self._fired:
            logger.debug("session.expired_ignored")
            return
        self._fired = True
        logger.info("session.expired")
        self._on_expired()

    def rearm(self) -> None:
        """Accept the next ``expired`` signal again."""
        self._fired = False

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
