"""Paginated list loading with deterministic offline fallback.

Exports:
    ClientRow, ProjectRow, TaskRow: Entity read models.
    Page: One page of a cursor-paginated response.
    LoaderPhase, LoaderState: Loader state machine and snapshot.
    EntityKind: Entity kinds served by the loaders.
    FallbackDatasetGenerator: Pure synthetic record generator.
    PagedListLoader: Per-view list controller.
    clients_loader, projects_loader, tasks_loader: Ready-made loaders.
"""

from __future__ import annotations

from src.crm_client.loaders.fallback import EntityKind, FallbackDatasetGenerator
from src.crm_client.loaders.schemas import (
    ClientRow,
    LoaderPhase,
    LoaderState,
    Page,
    ProjectRow,
    TaskRow,
)

__all__ = [
    "ClientRow",
    "EntityKind",
    "FallbackDatasetGenerator",
    "LoaderPhase",
    "LoaderState",
    "Page",
    "PagedListLoader",
    "ProjectRow",
    "TaskRow",
    "clients_loader",
    "projects_loader",
    "tasks_loader",
]

_PAGED_EXPORTS = {"PagedListLoader", "clients_loader", "projects_loader", "tasks_loader"}


def __getattr__(name: str):  # noqa: N807
    """Lazy-load the loader to avoid a cycle with gateway.resources."""
    if name in _PAGED_EXPORTS:
        from src.crm_client.loaders import paged

        return getattr(paged, name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
