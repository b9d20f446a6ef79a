"""Tests for the generic create-or-reuse record restorer."""

from unittest.mock import AsyncMock

import pytest

from course_restore.adapters.base import UniqueConstraintError
from course_restore.restore.entities import get_entity
from course_restore.restore.remap import RemapContext
from course_restore.restore.restorers import (
    RecordOutcome,
    natural_key_filters,
    restore_record,
    restore_records,
)


def _make_mock_uow(select_results: list | None = None, insert_error: Exception | None = None) -> AsyncMock:
    """AsyncMock unit of work with scripted select results and insert behaviour."""
    uow = AsyncMock()
    uow.select = AsyncMock(side_effect=list(select_results or []) or None, return_value=[])

    async def _insert(table, data):
        if insert_error is not None:
            raise insert_error
        return {**data, "id": "live-new"}

    uow.insert = AsyncMock(side_effect=_insert)
    return uow


class TestNaturalKeyFilters:
    def test_single_field(self):
        assert natural_key_filters(get_entity("users"), {"email": "a@x.com"}) == {"email": "a@x.com"}

    def test_composite(self):
        filters = natural_key_filters(get_entity("lessons"), {"courseId": "C", "number": 3})
        assert filters == {"courseId": "C", "number": 3}

    def test_missing_part_is_none(self):
        assert natural_key_filters(get_entity("lessons"), {"courseId": "C"}) is None

    def test_question_without_text_is_none(self):
        assert natural_key_filters(get_entity("quizQuestions"), {"lessonId": "L"}) is None


class TestRestoreRecord:
    """Single-record outcomes."""

    async def test_creates_and_maps(self, store):
        ctx = RemapContext()
        outcome, live_id = await restore_record(
            store, get_entity("users"), {"id": "u1", "email": "a@x.com"}, ctx
        )
        assert outcome is RecordOutcome.CREATED
        assert ctx.resolve("users", "u1") == live_id
        assert store.rows("User")[0]["email"] == "a@x.com"
        assert "u1" not in {r["id"] for r in store.rows("User")}

    async def test_matches_existing_by_natural_key(self, store):
        existing = store.seed("User", email="a@x.com")
        ctx = RemapContext()
        outcome, live_id = await restore_record(
            store, get_entity("users"), {"id": "u1", "email": "a@x.com"}, ctx
        )
        assert outcome is RecordOutcome.MATCHED
        assert live_id == existing["id"]
        assert ctx.resolve("users", "u1") == existing["id"]
        assert len(store.rows("User")) == 1

    async def test_duplicate_backup_id_not_reinserted(self, store):
        ctx = RemapContext()
        cohort = get_entity("cohorts")
        await restore_record(store, cohort, {"id": "c1", "name": "2024"}, ctx)
        outcome, _ = await restore_record(store, cohort, {"id": "c1", "name": "2025"}, ctx)
        assert outcome is RecordOutcome.DUPLICATE
        assert [r["name"] for r in store.rows("Cohort")] == ["2024"]

    async def test_drops_unresolved_required(self, store):
        outcome, live_id = await restore_record(
            store, get_entity("lessons"), {"id": "l1", "courseId": "nope", "number": 1}, RemapContext()
        )
        assert outcome is RecordOutcome.DROPPED
        assert live_id is None
        assert store.writes == []

    async def test_collision_requeries_natural_key(self):
        """Insert collides after a missed lookup: the re-query result is reused."""
        uow = _make_mock_uow(
            select_results=[[], [{"id": "live-9"}]],
            insert_error=UniqueConstraintError("User"),
        )
        ctx = RemapContext()
        outcome, live_id = await restore_record(
            uow, get_entity("users"), {"id": "u1", "email": "a@x.com"}, ctx
        )
        assert outcome is RecordOutcome.MATCHED
        assert live_id == "live-9"
        assert ctx.resolve("users", "u1") == "live-9"
        assert uow.select.await_count == 2

    async def test_collision_without_match_reraises(self):
        uow = _make_mock_uow(select_results=[[], []], insert_error=UniqueConstraintError("User"))
        with pytest.raises(UniqueConstraintError):
            await restore_record(uow, get_entity("users"), {"id": "u1", "email": "a@x.com"}, RemapContext())

    async def test_incomplete_key_collision_skipped(self):
        uow = _make_mock_uow(insert_error=UniqueConstraintError("QuizQuestion"))
        ctx = RemapContext()
        ctx.seed("lessons", "l1", "live-l1")
        outcome, live_id = await restore_record(
            uow, get_entity("quizQuestions"), {"id": "q1", "lessonId": "l1"}, ctx
        )
        assert outcome is RecordOutcome.CONFLICT
        assert live_id is None
        uow.select.assert_not_awaited()

    async def test_other_store_errors_propagate(self, store):
        store.fail_on["Cohort"] = RuntimeError("connection reset")
        with pytest.raises(RuntimeError, match="connection reset"):
            await restore_record(store, get_entity("cohorts"), {"id": "c1", "name": "x"}, RemapContext())


class TestRestoreRecords:
    async def test_counts_only_created(self, store):
        store.seed("Cohort", name="2023")
        records = [
            {"id": "c1", "name": "2023"},
            {"id": "c2", "name": "2024"},
            {"id": "c3", "name": "2025"},
        ]
        ctx = RemapContext()
        created = await restore_records(store, get_entity("cohorts"), records, ctx)
        assert created == 2
        assert len(ctx.table("cohorts")) == 3
