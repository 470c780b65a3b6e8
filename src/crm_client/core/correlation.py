"""Per-request correlation ids for cross-system tracing."""

from __future__ import annotations

import uuid
from collections.abc import Callable

import httpx

REQUEST_ID_HEADER = "X-Request-Id"


def new_correlation_id() -> str:
    """Return a fresh opaque correlation id."""
    return str(uuid.uuid4())


def tag_correlation(
    headers: httpx.Headers,
    id_factory: Callable[[], str] = new_correlation_id,
) -> httpx.Headers:
    """Return a copy of ``headers`` carrying an ``X-Request-Id``.

    An id already present (any casing) is kept as is.
    """
    tagged = httpx.Headers(headers)
    if not tagged.get(REQUEST_ID_HEADER):
        tagged[REQUEST_ID_HEADER] = id_factory()
    return tagged
