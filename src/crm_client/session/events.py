"""In-process session event channel.

Carries the single ``expired`` signal from the request gateway to whatever
owns top-level navigation. The channel is constructed once at startup and
passed by reference to its publishers and subscribers; there is no
module-level instance.

Delivery is synchronous, in subscription order, and unbuffered: a handler
registered after a publish does not see it.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class SessionEvent(str, Enum):
    """Session lifecycle signals. Carries no payload."""

    EXPIRED = "expired"


SessionHandler = Callable[[SessionEvent], None]


class SessionEventChannel:
    """Process-wide publish/subscribe channel for session events.

    A handler that raises is logged and skipped; the remaining handlers
    still run. Subscribers are expected to be idempotent to repeated
    emissions.
    """

    def __init__(self) -> None:
        self._handlers: list[SessionHandler] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: SessionHandler) -> Callable[[], None]:
        """Register ``handler`` and return a function that removes it.

        Calling the returned function more than once is harmless.
        """
        self._handlers.append(handler)

        def unsubscribe() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, event: SessionEvent) -> None:
        """Deliver ``event`` to every current subscriber, in order."""
        # Snapshot so handlers may unsubscribe while being notified.
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "session.handler_failed",
                    session_event=event.value,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )

        logger.debug(
            "session.event_published",
            session_event=event.value,
            subscribers=len(self._handlers),
        )
