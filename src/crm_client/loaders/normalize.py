"""Identity and field normalization for loosely-typed list payloads.

Every normalizer returns a read model or None and never raises, so list
loaders can map them over untrusted ``items`` and drop the Nones.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from src.crm_client.loaders.schemas import ClientRow, ProjectRow, TaskRow

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _trim(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first truthy value among ``keys`` (dotted keys walk nested maps)."""
    for key in keys:
        value: Any = raw
        for part in key.split("."):
            value = value.get(part) if isinstance(value, Mapping) else None
        if value and not isinstance(value, Mapping):
            return value
    return None


def normalize_id(raw: Any) -> str | None:
    """Resolve an entity id from ``id``, ``_id`` or ``_id.$oid``.

    Returns None when no non-blank id can be found.
    """
    if not isinstance(raw, Mapping):
        return None

    candidate = raw.get("id") or raw.get("_id")
    if isinstance(candidate, Mapping):
        candidate = candidate.get("$oid")

    ident = _trim(candidate)
    return ident or None


def _timestamps(raw: Mapping[str, Any], clock: Clock) -> tuple[str, str]:
    created_at = _trim(raw.get("createdAt")) or clock().isoformat()
    updated_at = _trim(raw.get("updatedAt")) or created_at
    return created_at, updated_at


def normalize_client(raw: Any, clock: Clock = _utc_now) -> ClientRow | None:
    ident = normalize_id(raw)
    if ident is None:
        return None

    created_at, updated_at = _timestamps(raw, clock)
    return ClientRow(
        id=ident,
        name=_trim(_first(raw, "name", "fullName", "contactName")) or "-",
        email=_trim(raw.get("email")).lower() or "-",
        phone=_trim(_first(raw, "phone", "cellPhone", "whatsappNumber")) or "-",
        company=_trim(raw.get("company")) or "-",
        preferred_contact=_trim(raw.get("preferredContact")) or "-",
        created_at=created_at,
        updated_at=updated_at,
    )


def normalize_project(raw: Any, clock: Clock = _utc_now) -> ProjectRow | None:
    ident = normalize_id(raw)
    if ident is None:
        return None

    return ProjectRow(
        id=ident,
        code=_trim(raw.get("code")),
        name=_trim(raw.get("name")),
        owner_email=_trim(raw.get("ownerEmail")).lower(),
        status=_trim(raw.get("status")),
        due_at=_trim(raw.get("dueAt")),
    )


def _priority(value: Any) -> int:
    try:
        priority = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 3
    return priority if 1 <= priority <= 5 else 3


def normalize_task(raw: Any, clock: Clock = _utc_now) -> TaskRow | None:
    ident = normalize_id(raw)
    if ident is None:
        return None

    created_at, updated_at = _timestamps(raw, clock)
    due_at = _trim(raw.get("dueAt")) or None
    priority = raw.get("priority")
    return TaskRow(
        id=ident,
        project_id=_trim(_first(raw, "projectId", "project.id", "project")) or "p_unknown",
        title=_trim(_first(raw, "title", "name")) or "Untitled task",
        assignee_email=(
            _trim(_first(raw, "assigneeEmail", "assignee.email")).lower()
            or "unknown@corp.local"
        ),
        status=_trim(raw.get("status")) or "todo",
        priority=_priority(3 if priority is None else priority),
        due_at=due_at,
        created_at=created_at,
        updated_at=updated_at,
    )
