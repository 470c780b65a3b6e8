"""Cursor-paginated list loader with deterministic offline fallback.

One loader per mounted list view. The view drives it with ``load(reset)``
and ``more()`` and renders ``state``; a loader failure never raises to the
view. When the backend cannot be reached (transport error, 5xx, any other
failure) the loader serves a page from FallbackDatasetGenerator, filtered by
the current query, and sets a non-fatal ``error`` message instead.

State machine (per loader instance):

    IDLE --load/more--> IN_FLIGHT --success/fallback--> IDLE
    IN_FLIGHT --load/more--> IN_FLIGHT   (call ignored)
    any --detach--> detached             (later calls ignored, late results dropped)

Rows are kept in arrival order: a reset load replaces them, a non-reset
load appends.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import structlog

from src.crm_client.config import Settings, get_settings
from src.crm_client.core.monitoring import loader_fallback_total
from src.crm_client.gateway.resources import (
    CLIENTS_PATH,
    PROJECTS_PATH,
    TASKS_PATH,
    CrmApi,
)
from src.crm_client.loaders.fallback import (
    BACKEND_UNAVAILABLE_MESSAGE,
    EntityKind,
    FallbackDatasetGenerator,
)
from src.crm_client.loaders.normalize import (
    normalize_client,
    normalize_project,
    normalize_task,
)
from src.crm_client.loaders.schemas import (
    ClientRow,
    LoaderPhase,
    LoaderState,
    Page,
    ProjectRow,
    TaskRow,
)

logger = structlog.get_logger(__name__)

RowT = TypeVar("RowT")

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True)
class ListResource(Generic[RowT]):
    """How one entity kind is listed, normalized and faked.

    Attributes:
        kind: Entity kind, also selects the fallback builder.
        path: List endpoint path.
        normalize: Raw item -> read model, or None to drop the item.
        filters: Extra query params sent with every page request.
    """

    kind: EntityKind
    path: str
    normalize: Callable[[Any], RowT | None]
    filters: dict[str, Any] = field(default_factory=dict)


CLIENTS_RESOURCE: ListResource[ClientRow] = ListResource(
    EntityKind.CLIENTS, CLIENTS_PATH, normalize_client
)
PROJECTS_RESOURCE: ListResource[ProjectRow] = ListResource(
    EntityKind.PROJECTS, PROJECTS_PATH, normalize_project
)
TASKS_RESOURCE: ListResource[TaskRow] = ListResource(
    EntityKind.TASKS, TASKS_PATH, normalize_task
)


def fallback_offset(cursor: str | None) -> int:
    """Numeric offset encoded in a fallback cursor; 0 when unparsable."""
    match = _LEADING_DIGITS.match(cursor or "")
    return int(match.group(1)) if match else 0


class PagedListLoader(Generic[RowT]):
    """Drives incremental "load more" pagination for one list view.

    Args:
        api: CRM endpoint wrappers (shared gateway underneath).
        resource: Which entity kind this loader lists.
        generator: Fallback data source used when the backend fails.
        limit: Page size requested from the server.
        fallback_page_size: Records generated per fallback page.
    """

    def __init__(
        self,
        api: CrmApi,
        resource: ListResource[RowT],
        generator: FallbackDatasetGenerator | None = None,
        limit: int | None = None,
        fallback_page_size: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()

        self._api = api
        self._resource = resource
        self._generator = generator or FallbackDatasetGenerator()
        self._limit = limit or settings.LIST_PAGE_LIMIT
        self._fallback_page_size = fallback_page_size or settings.FALLBACK_PAGE_SIZE

        self._phase = LoaderPhase.IDLE
        self._rows: list[RowT] = []
        self._error = ""
        self._cursor: str | None = None
        self._next_cursor: str | None = None
        self._query = ""

        # Bumped on every load and on detach; results from an older epoch are dropped.
        self._epoch = 0
        self._detached = False

    # ── Introspection ─────────────────────────────────────────────────────

    @property
    def phase(self) -> LoaderPhase:
        return self._phase

    @property
    def loading(self) -> bool:
        return self._phase is LoaderPhase.IN_FLIGHT

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def state(self) -> LoaderState[RowT]:
        return LoaderState(
            rows=list(self._rows),
            loading=self.loading,
            error=self._error,
            cursor=self._cursor,
            next_cursor=self._next_cursor,
            query=self._query,
        )

    # ── Operations ────────────────────────────────────────────────────────

    def set_query(self, query: str) -> None:
        """Set the search text used by the next load."""
        self._query = query or ""

    async def load(self, reset: bool = False) -> None:
        """Fetch a page; replace rows when ``reset``, otherwise append.

        Ignored while another load is in flight or after ``detach()``.
        Never raises for backend failures.
        """
        if self._detached or self._phase is LoaderPhase.IN_FLIGHT:
            logger.debug(
                "loader.load_ignored",
                resource=self._resource.kind.value,
                detached=self._detached,
            )
            return

        self._phase = LoaderPhase.IN_FLIGHT
        self._error = ""
        self._epoch += 1
        epoch = self._epoch

        previous_cursor = self._cursor
        if reset:
            self._rows = []
            self._cursor = None
            self._next_cursor = None

        query = self._query.strip()

        try:
            page = await self._api.list_page(
                self._resource.path,
                q=query or None,
                cursor=None if reset else previous_cursor,
                limit=self._limit,
                **self._resource.filters,
            )
        except Exception as exc:
            if epoch == self._epoch:
                self._apply_fallback(reset, previous_cursor, query, exc)
            else:
                self._log_stale(outcome="failure", error_type=type(exc).__name__)
        else:
            if epoch != self._epoch:
                self._log_stale(outcome="page")
            else:
                try:
                    self._apply_page(reset, page)
                except Exception as exc:
                    logger.exception(
                        "loader.page_rejected", resource=self._resource.kind.value
                    )
                    self._apply_fallback(reset, previous_cursor, query, exc)
        finally:
            self._phase = LoaderPhase.IDLE

    async def more(self) -> None:
        """Load the next page, if there is one and nothing is in flight."""
        if self._phase is LoaderPhase.IN_FLIGHT or self._next_cursor is None:
            return
        await self.load(False)

    def detach(self) -> None:
        """Mark the owning view as gone; late results are discarded."""
        self._detached = True
        self._epoch += 1

    # ── Internal ──────────────────────────────────────────────────────────

    def _log_stale(self, **context: Any) -> None:
        logger.info(
            "loader.stale_result_dropped",
            resource=self._resource.kind.value,
            **context,
        )

    def _extend(self, reset: bool, rows: list[RowT]) -> None:
        self._rows = rows if reset else [*self._rows, *rows]

    def _apply_page(self, reset: bool, page: Page[dict[str, Any]]) -> None:
        rows: list[RowT] = []
        for item in page.items:
            row = self._resource.normalize(item)
            if row is not None:
                rows.append(row)

        dropped = len(page.items) - len(rows)
        if dropped:
            logger.warning(
                "loader.items_dropped",
                resource=self._resource.kind.value,
                dropped=dropped,
            )

        self._extend(reset, rows)
        self._cursor = page.next_cursor
        self._next_cursor = page.next_cursor

    def _apply_fallback(
        self,
        reset: bool,
        previous_cursor: str | None,
        query: str,
        error: Exception,
    ) -> None:
        kind = self._resource.kind
        offset = 0 if reset else fallback_offset(previous_cursor)
        size = self._fallback_page_size

        records = [
            record
            for record in self._generator.generate(kind, offset, size)
            if self._generator.matches(kind, record, query)
        ]
        fallback_cursor = str(offset + size) if records else None

        self._extend(reset, records)
        self._cursor = fallback_cursor
        self._next_cursor = fallback_cursor
        self._error = BACKEND_UNAVAILABLE_MESSAGE

        loader_fallback_total.labels(resource=kind.value).inc()
        logger.warning(
            "loader.fallback",
            resource=kind.value,
            offset=offset,
            served=len(records),
            error_type=type(error).__name__,
            error=str(error),
        )


def clients_loader(api: CrmApi, **kwargs: Any) -> PagedListLoader[ClientRow]:
    return PagedListLoader(api, CLIENTS_RESOURCE, **kwargs)


def projects_loader(api: CrmApi, **kwargs: Any) -> PagedListLoader[ProjectRow]:
    return PagedListLoader(api, PROJECTS_RESOURCE, **kwargs)


def tasks_loader(
    api: CrmApi, project_id: str | None = None, **kwargs: Any
) -> PagedListLoader[TaskRow]:
    resource = TASKS_RESOURCE
    if project_id:
        resource = ListResource(
            EntityKind.TASKS, TASKS_PATH, normalize_task, {"projectId": project_id}
        )
    return PagedListLoader(api, resource, **kwargs)
