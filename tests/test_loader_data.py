"""Unit tests for list payload normalization, schemas and fallback data.

Covers:
- normalize_id and the per-entity normalizers (defaults, aliases, drops)
- Page.from_payload leniency and LoaderState immutability
- FallbackDatasetGenerator determinism, record formulas and query matching
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.crm_client.loaders.fallback import (
    BACKEND_UNAVAILABLE_MESSAGE,
    EntityKind,
    FallbackDatasetGenerator,
)
from src.crm_client.loaders.normalize import (
    normalize_client,
    normalize_id,
    normalize_project,
    normalize_task,
)
from src.crm_client.loaders.schemas import LoaderState, Page, ProjectRow, TaskRow

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _clock() -> datetime:
    return FIXED_NOW


# ── Identity ────────────────────────────────────────────────────────────────


class TestNormalizeId:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({"id": "abc"}, "abc"),
            ({"_id": "def"}, "def"),
            ({"_id": {"$oid": "65f0c0ffee"}}, "65f0c0ffee"),
            ({"id": 42}, "42"),
            ({"id": "  padded  "}, "padded"),
        ],
    )
    def test_resolves_id_aliases(self, raw, expected):
        assert normalize_id(raw) == expected

    @pytest.mark.parametrize("raw", [{}, {"id": "   "}, {"_id": {}}, None, "abc", []])
    def test_missing_id_is_none(self, raw):
        assert normalize_id(raw) is None


# ── Normalizers ─────────────────────────────────────────────────────────────


class TestNormalizeClient:
    def test_full_record(self):
        row = normalize_client(
            {
                "_id": {"$oid": "c1"},
                "fullName": " Ana Souza ",
                "email": "ANA@Example.COM",
                "cellPhone": "+55 11 99999-0000",
                "company": "Acme",
                "preferredContact": "whatsapp",
                "createdAt": "2026-01-10T10:00:00Z",
            },
            clock=_clock,
        )

        assert row.id == "c1"
        assert row.name == "Ana Souza"
        assert row.email == "ana@example.com"
        assert row.phone == "+55 11 99999-0000"
        assert row.company == "Acme"
        assert row.preferred_contact == "whatsapp"
        assert row.created_at == "2026-01-10T10:00:00Z"
        assert row.updated_at == "2026-01-10T10:00:00Z"

    def test_sparse_record_gets_placeholders(self):
        row = normalize_client({"id": "c2"}, clock=_clock)

        assert (row.name, row.email, row.phone, row.company) == ("-", "-", "-", "-")
        assert row.created_at == FIXED_NOW.isoformat()

    def test_without_id_is_dropped(self):
        assert normalize_client({"name": "Ghost"}) is None

    def test_camel_case_dump(self):
        row = normalize_client({"id": "c3", "preferredContact": "email"}, clock=_clock)
        dumped = row.model_dump(by_alias=True)
        assert dumped["preferredContact"] == "email"
        assert "createdAt" in dumped


class TestNormalizeProject:
    def test_fields_are_trimmed_and_email_lowered(self):
        row = normalize_project(
            {
                "id": "p1",
                "code": " PRJ-9 ",
                "name": "Apollo",
                "ownerEmail": "Owner@Corp.Local",
                "status": "active",
                "dueAt": "2026-05-01",
            }
        )

        assert row == ProjectRow(
            id="p1",
            code="PRJ-9",
            name="Apollo",
            owner_email="owner@corp.local",
            status="active",
            due_at="2026-05-01",
        )

    def test_non_mapping_is_dropped(self):
        assert normalize_project(["p1"]) is None


class TestNormalizeTask:
    def test_defaults_for_sparse_task(self):
        row = normalize_task({"id": "t1"}, clock=_clock)

        assert row.project_id == "p_unknown"
        assert row.title == "Untitled task"
        assert row.assignee_email == "unknown@corp.local"
        assert row.status == "todo"
        assert row.priority == 3
        assert row.due_at is None

    def test_nested_project_and_assignee(self):
        row = normalize_task(
            {
                "id": "t2",
                "name": "Write brief",
                "project": {"id": "p_07"},
                "assignee": {"email": "Dev@Corp.Local"},
                "priority": "5",
                "dueAt": "2026-02-02",
            },
            clock=_clock,
        )

        assert row.project_id == "p_07"
        assert row.title == "Write brief"
        assert row.assignee_email == "dev@corp.local"
        assert row.priority == 5
        assert row.due_at == "2026-02-02"

    @pytest.mark.parametrize(
        "priority",
        [0, 6, "urgent", None, -1, "inf", "-inf", "1e999", float("inf"), "nan"],
    )
    def test_out_of_range_priority_falls_back_to_3(self, priority):
        row = normalize_task({"id": "t3", "priority": priority}, clock=_clock)
        assert row.priority == 3

    def test_task_row_rejects_invalid_priority(self):
        with pytest.raises(ValidationError):
            TaskRow(id="t4", priority=9)


# ── Page / LoaderState ──────────────────────────────────────────────────────


class TestPage:
    def test_parses_wire_shape(self):
        page = Page.from_payload({"items": [{"id": "a"}], "nextCursor": "n1"})
        assert page.items == [{"id": "a"}]
        assert page.next_cursor == "n1"

    def test_numeric_cursor_kept_as_text(self):
        assert Page.from_payload({"items": [], "nextCursor": 25}).next_cursor == "25"

    @pytest.mark.parametrize("payload", [None, "oops", [1, 2], {"items": None}])
    def test_malformed_payload_is_empty(self, payload):
        page = Page.from_payload(payload)
        assert page.items == []
        assert page.next_cursor is None

    def test_loader_state_is_frozen(self):
        state = LoaderState(query="x")
        with pytest.raises(ValidationError):
            state.query = "y"


# ── FallbackDatasetGenerator ────────────────────────────────────────────────


class TestFallbackDatasetGenerator:
    """Deterministic synthetic pages."""

    @pytest.fixture
    def generator(self):
        return FallbackDatasetGenerator()

    @pytest.mark.parametrize("kind", list(EntityKind))
    def test_same_input_same_output(self, generator, kind):
        assert generator.generate(kind, 25, 25) == generator.generate(kind, 25, 25)

    def test_positions_continue_from_offset(self, generator):
        first = generator.generate(EntityKind.PROJECTS, 0, 25)
        second = generator.generate(EntityKind.PROJECTS, 25, 25)

        assert [p.id for p in first][:2] == ["mock-1", "mock-2"]
        assert first[-1].id == "mock-25"
        assert second[0].id == "mock-26"

    def test_project_formula(self, generator):
        (project,) = generator.generate(EntityKind.PROJECTS, 0, 1)

        assert project == ProjectRow(
            id="mock-1",
            code="PRJ-0001",
            name="Mock Project 1",
            owner_email="owner2@corp.local",
            status="paused",
            due_at="2026-02-15",
        )

    def test_client_formula(self, generator):
        _, client = generator.generate(EntityKind.CLIENTS, 0, 2)

        assert client.id == "mock-client-2"
        assert client.email == "client2@corp.local"
        assert client.company == "Company 2"
        assert client.preferred_contact == "email"
        assert client.created_at == "2025-12-30T00:00:00Z"

    def test_odd_client_has_no_company(self, generator):
        (client,) = generator.generate(EntityKind.CLIENTS, 0, 1)

        assert client.company == "-"
        assert client.preferred_contact == "phone"

    def test_task_formula(self, generator):
        (task,) = generator.generate(EntityKind.TASKS, 2, 1)

        assert task.id == "mock-task-3"
        assert task.project_id == "p_04"
        assert task.assignee_email == "user4@corp.local"
        assert task.status == "todo"
        assert task.priority == 4
        assert task.due_at == "2026-04-23"

    def test_zero_count_is_empty(self, generator):
        assert generator.generate(EntityKind.TASKS, 10, 0) == []

    def test_negative_arguments_rejected(self, generator):
        with pytest.raises(ValueError):
            generator.generate(EntityKind.TASKS, -1, 5)
        with pytest.raises(ValueError):
            generator.generate(EntityKind.TASKS, 0, -5)

    def test_accepts_kind_value(self, generator):
        assert generator.generate("clients", 0, 1)[0].id == "mock-client-1"

    def test_query_matching_is_case_insensitive(self, generator):
        records = generator.generate(EntityKind.PROJECTS, 0, 25)

        hits = [r.id for r in records if generator.matches(EntityKind.PROJECTS, r, "  prj-0003 ")]

        assert hits == ["mock-3"]

    def test_blank_query_matches_everything(self, generator):
        records = generator.generate(EntityKind.CLIENTS, 0, 5)
        assert all(generator.matches(EntityKind.CLIENTS, r, "") for r in records)

    def test_message_constant(self):
        assert BACKEND_UNAVAILABLE_MESSAGE == "Backend unavailable. Showing fallback mock data."
