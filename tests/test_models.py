"""Tests for the domain model, patches, stats and error mapping."""

from datetime import datetime

import pytest

from calmnote.core.checklists import ChecklistStats, checklist_stats
from calmnote.core.errors import (
    DuplicateName,
    ErrorCode,
    NotFoundError,
    PersistenceError,
    error_code_for,
    user_message,
)
from calmnote.core.models import (
    UNSET,
    ChecklistItem,
    CollectionPatch,
    Priority,
    TaskPatch,
    is_active,
)

from conftest import make_checklist, make_collection, make_note, make_task


class TestPriority:
    @pytest.mark.parametrize("raw", ["focus", "FOCUS", " Focus ", "1", 1, Priority.FOCUS])
    def test_parse(self, raw):
        assert Priority.parse(raw) is Priority.FOCUS

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Priority.parse("urgent")

    def test_focus_sorts_first(self):
        assert sorted([Priority.LOW, Priority.FOCUS, Priority.NORMAL]) == [
            Priority.FOCUS, Priority.NORMAL, Priority.LOW
        ]


class TestTaskPatch:
    def test_unset_fields_are_untouched(self, now):
        task = make_task("1", due=datetime(2025, 1, 20), title="Keep me")
        updated = TaskPatch(priority=Priority.LOW).apply(task, now)
        assert updated.title == "Keep me"
        assert updated.due_date == datetime(2025, 1, 20)
        assert updated.priority is Priority.LOW
        assert updated.updated_at == now

    def test_none_clears_nullable_field(self, now):
        task = make_task("1", due=datetime(2025, 1, 20))
        assert TaskPatch(due_date=None).apply(task, now).due_date is None

    def test_completing_sets_completed_at(self, now):
        updated = TaskPatch(completed=True).apply(make_task("1"), now)
        assert updated.completed
        assert updated.completed_at == now

    def test_reopening_clears_completed_at(self, now):
        updated = TaskPatch(completed=False).apply(make_task("1", completed=True), now)
        assert not updated.completed
        assert updated.completed_at is None

    def test_recompleting_keeps_first_timestamp(self, now):
        task = make_task("1", completed=True)
        updated = TaskPatch(completed=True).apply(task, now)
        assert updated.completed_at == task.completed_at

    def test_input_task_is_not_mutated(self, now):
        task = make_task("1")
        TaskPatch(completed=True).apply(task, now)
        assert not task.completed
        assert task.completed_at is None

    def test_changes_and_is_empty(self):
        assert TaskPatch().is_empty()
        assert TaskPatch(title="x").changes() == {"title": "x"}
        assert not UNSET


class TestCollectionPatch:
    def test_apply(self, now):
        collection = make_collection("c", "Old")
        updated = CollectionPatch(name="New", is_pinned=True).apply(collection, now)
        assert (updated.name, updated.is_pinned, updated.is_archived) == ("New", True, False)


class TestIsActive:
    def test_rules(self, now):
        assert is_active(make_task("1"))
        assert not is_active(make_task("2", completed=True))
        assert not is_active(make_note("3", deleted_at=now))
        assert is_active(make_checklist("4"))


class TestChecklistStats:
    def test_counts_live_items_only(self, now):
        checklist = make_checklist("cl")
        items = [
            ChecklistItem(id="1", checklist_id="cl", title="Milk", checked=True),
            ChecklistItem(id="2", checklist_id="cl", title="Eggs"),
            ChecklistItem(id="3", checklist_id="cl", title="Gone", checked=True, deleted_at=now),
            ChecklistItem(id="4", checklist_id="other", title="Elsewhere", checked=True),
        ]
        stats = checklist_stats(checklist, items)
        assert stats == ChecklistStats(checked_count=1, total_count=2)
        assert stats.format() == "1/2"
        assert not stats.is_complete
        assert stats.progress == 0.5

    def test_empty_checklist_is_not_complete(self):
        stats = checklist_stats(make_checklist("cl"), [])
        assert not stats.is_complete
        assert stats.progress == 0.0

    def test_all_checked_is_complete(self):
        items = [ChecklistItem(id="1", checklist_id="cl", title="Only", checked=True)]
        assert checklist_stats(make_checklist("cl"), items).is_complete


class TestErrorMapping:
    def test_validation_keeps_message(self):
        assert user_message(DuplicateName()) == "A collection with this name already exists"

    def test_persistence_uses_generic_text(self):
        error = PersistenceError("disk exploded at sector 7", ErrorCode.DB_TRANSACTION_ERROR)
        assert user_message(error) == "This operation is temporarily unavailable. Please try again."

    def test_not_found(self):
        error = NotFoundError("Entry", "abc")
        assert error.code is ErrorCode.NOT_FOUND
        assert user_message(error) == "This item no longer exists"

    @pytest.mark.parametrize(
        "message,code",
        [
            ("UNIQUE constraint failed", ErrorCode.DB_UNIQUE_VIOLATION),
            ("FOREIGN KEY constraint failed", ErrorCode.DB_FOREIGN_KEY_VIOLATION),
            ("CHECK constraint failed", ErrorCode.DB_CONSTRAINT_VIOLATION),
            ("connection reset", ErrorCode.CONNECTION_ERROR),
            ("weird", ErrorCode.UNKNOWN_ERROR),
        ],
    )
    def test_foreign_exceptions_by_keyword(self, message, code):
        assert error_code_for(RuntimeError(message)) is code
