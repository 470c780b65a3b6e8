"""Pydantic schemas for paginated list loading.

Defines:
- Entity read models: ClientRow, ProjectRow, TaskRow (snake_case attributes,
  camelCase wire aliases so ``model_dump(by_alias=True)`` matches the API)
- Page: one page of a cursor-paginated list response
- LoaderPhase / LoaderState: the list loader's state machine and snapshot
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


# ── Entity Read Models ─────────────────────────────────────────────────────


class _ReadModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ClientRow(_ReadModel):
    """A client as shown in the clients list."""

    id: str
    name: str = "-"
    email: str = "-"
    phone: str = "-"
    company: str = "-"
    preferred_contact: str = "-"
    created_at: str = ""
    updated_at: str = ""


class ProjectRow(_ReadModel):
    """A project as shown in the projects list."""

    id: str
    code: str = ""
    name: str = ""
    owner_email: str = ""
    status: str = ""
    due_at: str = ""


class TaskRow(_ReadModel):
    """A task as shown in the tasks list."""

    id: str
    project_id: str = "p_unknown"
    title: str = "Untitled task"
    assignee_email: str = "unknown@corp.local"
    status: str = "todo"
    priority: int = Field(default=3, ge=1, le=5)
    due_at: str | None = None
    created_at: str = ""
    updated_at: str = ""


# ── Pagination ─────────────────────────────────────────────────────────────


class Page(BaseModel, Generic[T]):
    """One page of a cursor-paginated list.

    ``next_cursor`` of None means there are no further pages; it is never
    inferred from the number of items.
    """

    items: list[T] = Field(default_factory=list)
    next_cursor: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> Page[Any]:
        """Parse the wire shape ``{items, nextCursor}`` leniently.

        A non-list ``items`` reads as empty and a falsy ``nextCursor`` as
        absent. The cursor is otherwise kept verbatim (stringified).
        """
        if not isinstance(payload, dict):
            return cls()

        raw_items = payload.get("items")
        items = list(raw_items) if isinstance(raw_items, list) else []

        raw_cursor = payload.get("nextCursor")
        next_cursor = str(raw_cursor) if raw_cursor else None

        return cls(items=items, next_cursor=next_cursor)


# ── Loader State ───────────────────────────────────────────────────────────


class LoaderPhase(str, Enum):
    """List loader phases. At most one call is in flight per loader."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class LoaderState(BaseModel, Generic[T]):
    """Immutable snapshot of a list loader.

    Attributes:
        rows: Loaded rows in arrival order (first page first).
        loading: True while a load is in flight.
        error: Non-fatal message for the view; empty when data is live.
        cursor: Cursor the next non-reset load will send.
        next_cursor: Cursor of the next page; None when exhausted.
        query: Search text sent with (and used to filter) the next load.
    """

    model_config = ConfigDict(frozen=True)

    rows: list[T] = Field(default_factory=list)
    loading: bool = False
    error: str = ""
    cursor: str | None = None
    next_cursor: str | None = None
    query: str = ""
