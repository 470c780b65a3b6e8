"""Deterministic stand-in data for when the backend is unreachable.

Records are derived arithmetically from their position ``n = offset + index + 1``
and a fixed anchor date: the same ``(kind, offset, count)`` always yields the
same records, so offline pagination and local query filtering behave the same
way on every run.

The numeric offset that the loader turns into a cursor while offline is a
convention private to this generator; it is never sent to the server as a
real cursor would be.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from src.crm_client.loaders.schemas import ClientRow, ProjectRow, TaskRow

FALLBACK_ANCHOR = datetime(2026, 1, 1, tzinfo=timezone.utc)

BACKEND_UNAVAILABLE_MESSAGE = "Backend unavailable. Showing fallback mock data."


class EntityKind(str, Enum):
    """Entity kinds served by the paged list loaders."""

    CLIENTS = "clients"
    PROJECTS = "projects"
    TASKS = "tasks"


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def _mock_client(n: int) -> ClientRow:
    even = n % 2 == 0
    return ClientRow(
        id=f"mock-client-{n}",
        name=f"Mock Client {n}",
        email=f"client{n}@corp.local",
        phone=f"+55 11 9{str(10_000_000 + n)[:8]}",
        company=f"Company {n}" if even else "-",
        preferred_contact="email" if even else "phone",
        created_at=_iso(FALLBACK_ANCHOR - timedelta(days=n)),
        updated_at=_iso(FALLBACK_ANCHOR - timedelta(hours=12 * n)),
    )


def _mock_project(n: int) -> ProjectRow:
    return ProjectRow(
        id=f"mock-{n}",
        code=f"PRJ-{n:04d}",
        name=f"Mock Project {n}",
        owner_email=f"owner{(n % 7) + 1}@corp.local",
        status=("active", "paused", "done")[n % 3],
        due_at=f"2026-0{(n % 9) + 1}-15",
    )


def _mock_task(n: int) -> TaskRow:
    return TaskRow(
        id=f"mock-task-{n}",
        project_id=f"p_{(n % 8) + 1:02d}",
        title=f"Mock Task {n}",
        assignee_email=f"user{(n % 10) + 1}@corp.local",
        status=("todo", "doing", "done")[n % 3],
        priority=(n % 5) + 1,
        due_at=f"2026-0{(n % 9) + 1}-2{n % 9}",
        created_at=_iso(FALLBACK_ANCHOR - timedelta(days=n)),
        updated_at=_iso(FALLBACK_ANCHOR - timedelta(hours=12 * n)),
    )


_BUILDERS: dict[EntityKind, Callable[[int], BaseModel]] = {
    EntityKind.CLIENTS: _mock_client,
    EntityKind.PROJECTS: _mock_project,
    EntityKind.TASKS: _mock_task,
}

# Fields a user would type into the search box, per kind.
_DISPLAY_FIELDS: dict[EntityKind, tuple[str, ...]] = {
    EntityKind.CLIENTS: ("name", "email", "phone", "company"),
    EntityKind.PROJECTS: ("code", "name", "owner_email"),
    EntityKind.TASKS: ("title", "project_id", "assignee_email", "status", "priority"),
}


class FallbackDatasetGenerator:
    """Pure generator of synthetic list pages, one builder per entity kind."""

    def generate(self, kind: EntityKind, offset: int, count: int) -> list[Any]:
        """Return ``count`` records starting after position ``offset``.

        Raises:
            ValueError: If ``offset`` or ``count`` is negative.
        """
        if offset < 0 or count < 0:
            raise ValueError(f"offset and count must be >= 0, got {offset}, {count}")

        build = _BUILDERS[EntityKind(kind)]
        return [build(offset + index + 1) for index in range(count)]

    def haystack(self, kind: EntityKind, record: BaseModel) -> str:
        """Lowercased concatenation of a record's display fields."""
        fields = _DISPLAY_FIELDS[EntityKind(kind)]
        return " ".join(str(getattr(record, name, "")) for name in fields).lower()

    def matches(self, kind: EntityKind, record: BaseModel, query: str) -> bool:
        """Case-insensitive substring match of ``query`` over display fields."""
        needle = (query or "").strip().lower()
        if not needle:
            return True
        return needle in self.haystack(kind, record)
