"""Tests for the notebook workflow layer."""

from datetime import datetime, timedelta

import pytest

from calmnote.adapters.memory_store import InMemoryNotebookRepository
from calmnote.core.errors import DuplicateName, EmptyName, ErrorCode, NotFoundError, PersistenceError
from calmnote.core.models import Priority, Task
from calmnote.core.reordering import Section, SectionHeader
from calmnote.core.timeline import Bucket
from calmnote.workflows import REORDER_FAILED_NOTICE, Notebook, reconcile_drag_result


class FailingSortOrderRepository(InMemoryNotebookRepository):
    """Accepts everything except sort order batches."""

    def __init__(self, clock=None):
        super().__init__(clock)
        self.batches = 0

    async def persist_sort_orders(self, updates):
        self.batches += 1
        raise PersistenceError("locked", ErrorCode.DB_TRANSACTION_ERROR)


# Fixtures
@pytest.fixture
def failing_repo(clock):
    return FailingSortOrderRepository(clock)


class TestCollections:
    async def test_create_stores_display_name(self, notebook):
        collection = await notebook.create_collection("  Weekend   Plans ")
        assert collection.name == "Weekend Plans"

    async def test_create_rejects_duplicate_case_insensitively(self, notebook):
        await notebook.create_collection("Work")
        with pytest.raises(DuplicateName):
            await notebook.create_collection("  WORK ")

    async def test_archived_names_still_count(self, notebook):
        work = await notebook.create_collection("Work")
        await notebook.archive_collection(work.id)
        with pytest.raises(DuplicateName):
            await notebook.create_collection("work")

    async def test_rename_to_own_name(self, notebook):
        work = await notebook.create_collection("Work")
        renamed = await notebook.rename_collection(work.id, "WORK")
        assert renamed.name == "WORK"

    async def test_rename_onto_other_rejected(self, notebook):
        await notebook.create_collection("Home")
        work = await notebook.create_collection("Work")
        with pytest.raises(DuplicateName):
            await notebook.rename_collection(work.id, "home")

    async def test_new_collections_append_to_regular_section(self, notebook):
        first = await notebook.create_collection("A")
        second = await notebook.create_collection("B")
        assert (first.sort_order, second.sort_order) == (0, 1)

    async def test_pin_and_board(self, notebook):
        await notebook.create_collection("A")
        b = await notebook.create_collection("B")
        await notebook.set_pinned(b.id, True)

        board = await notebook.collection_board()
        assert [row.id for row in board] == ["header-pinned", b.id, "header-regular", board[3].id]

    async def test_system_cannot_be_pinned_or_archived(self, notebook):
        system = await notebook.lifecycle.get_or_create_system_collection()
        with pytest.raises(ValueError):
            await notebook.set_pinned(system.id, True)
        with pytest.raises(ValueError):
            await notebook.archive_collection(system.id)

    async def test_system_name_reserved_before_it_exists(self, notebook):
        with pytest.raises(DuplicateName):
            await notebook.create_collection(" unsorted ")
        assert await notebook.repo.list_collections() == []

    async def test_system_name_reserved_after_it_exists(self, notebook):
        work = await notebook.create_collection("Work")
        await notebook.lifecycle.get_or_create_system_collection()
        with pytest.raises(DuplicateName):
            await notebook.rename_collection(work.id, "UNSORTED")

    async def test_delete_takes_entries_along(self, notebook):
        work = await notebook.create_collection("Work")
        task = await notebook.create_task("Report", work.id)
        view = await notebook.create_checklist("Packing", ["Socks"], work.id)

        deleted = await notebook.delete_collection(work.id)

        assert deleted.is_deleted
        assert await notebook.repo.list_collections() == []
        with pytest.raises(NotFoundError):
            await notebook.repo.get_entry(task.id)
        assert await notebook.repo.list_checklist_items(view.checklist.id) == []

    async def test_deleted_name_can_be_reused(self, notebook):
        work = await notebook.create_collection("Work")
        await notebook.delete_collection(work.id)
        assert (await notebook.create_collection("Work")).id != work.id

    async def test_system_cannot_be_deleted(self, notebook):
        task = await notebook.create_task("Keep")
        with pytest.raises(ValueError):
            await notebook.delete_collection(task.collection_id)
        assert (await notebook.repo.get_entry(task.id)).title == "Keep"


class TestReconcileDragResult:
    async def test_drop_in_place_does_nothing(self, failing_repo):
        rows = ["a", "b"]
        outcome = await reconcile_drag_result(failing_repo, rows, rows, 1, 1)
        assert outcome.committed
        assert outcome.order == rows
        assert outcome.updates == []
        assert failing_repo.batches == 0

    async def test_failure_restores_previous_order(self, failing_repo, clock):
        notebook = Notebook(failing_repo, clock=clock)
        a = await notebook.create_collection("A")
        b = await notebook.create_collection("B")
        previous = await notebook.collection_board()
        dragged = [SectionHeader(Section.REGULAR), b, a]

        outcome = await notebook.reorder_collections(previous, dragged, 2, 1)

        assert not outcome.committed
        assert outcome.order == previous
        assert outcome.notice == REORDER_FAILED_NOTICE
        assert [c.sort_order for c in await failing_repo.list_collections()] == [0, 1]

    async def test_success_persists_new_positions(self, notebook):
        a = await notebook.create_collection("A")
        b = await notebook.create_collection("B")
        previous = await notebook.collection_board()
        dragged = [SectionHeader(Section.PINNED), b, SectionHeader(Section.REGULAR), a]

        outcome = await notebook.reorder_collections(previous, dragged, 2, 1)

        assert outcome.committed
        assert outcome.order == dragged
        pinned_b = await notebook.repo.get_collection(b.id)
        assert (pinned_b.sort_order, pinned_b.is_pinned) == (0, True)

    async def test_reorder_entries_within_collection(self, notebook):
        work = await notebook.create_collection("Work")
        first = await notebook.create_task("First", work.id)
        second = await notebook.create_note("Second", collection_id=work.id)

        await notebook.reorder_entries([first, second], [second, first], 1, 0)
        assert [e.id for e in await notebook.collection_entries(work.id)] == [second.id, first.id]


class TestEntries:
    async def test_create_task_defaults_to_system(self, notebook):
        task = await notebook.create_task("  Call   mom ")
        system = await notebook.repo.find_system_collection()
        assert task.title == "Call mom"
        assert task.collection_id == system.id

    async def test_empty_title_rejected(self, notebook):
        with pytest.raises(EmptyName) as exc:
            await notebook.create_task("   ")
        assert exc.value.format() == "title: Title cannot be empty"

    async def test_entries_append_in_manual_order(self, notebook):
        work = await notebook.create_collection("Work")
        await notebook.create_task("One", work.id)
        await notebook.create_note("Two", collection_id=work.id)
        entries = await notebook.collection_entries(work.id)
        assert [e.sort_order for e in entries] == [0, 1]

    async def test_toggle(self, notebook):
        task = await notebook.create_task("Flip")
        await notebook.create_task("Stay")
        await notebook.toggle_task(task.id)
        assert (await notebook.repo.get_entry(task.id)).completed
        await notebook.toggle_task(task.id)
        assert not (await notebook.repo.get_entry(task.id)).completed

    async def test_toggle_note_rejected(self, notebook):
        note = await notebook.create_note("Idea")
        with pytest.raises(TypeError):
            await notebook.toggle_task(note.id)

    async def test_reschedule_and_priority(self, notebook):
        task = await notebook.create_task("Plan")
        await notebook.reschedule_task(task.id, datetime(2025, 2, 1))
        updated = await notebook.set_priority(task.id, Priority.FOCUS)
        assert updated.due_date == datetime(2025, 2, 1)
        assert updated.priority is Priority.FOCUS

    async def test_move_to_same_collection_is_no_change(self, notebook):
        task = await notebook.create_task("Stay")
        event = await notebook.move_entry(task.id, task.collection_id)
        assert not event.archived

    async def test_edit_note_keeps_omitted_fields(self, notebook):
        note = await notebook.create_note("Idea", body="Draft")
        retitled = await notebook.edit_note(note.id, title="  Better   idea ")
        assert (retitled.title, retitled.body) == ("Better idea", "Draft")

        rewritten = await notebook.edit_note(note.id, body="Final")
        assert (rewritten.title, rewritten.body) == ("Better idea", "Final")

    async def test_edit_note_can_clear_body(self, notebook):
        note = await notebook.create_note("Idea", body="Draft")
        assert (await notebook.edit_note(note.id, body=None)).body is None

    async def test_edit_note_rejects_empty_title(self, notebook):
        note = await notebook.create_note("Idea")
        with pytest.raises(EmptyName):
            await notebook.edit_note(note.id, title="  ")
        assert (await notebook.repo.get_entry(note.id)).title == "Idea"


class TestTasksView:
    async def test_groups_tasks_only(self, notebook, now):
        await notebook.create_task("Late", due_date=now - timedelta(hours=2))
        await notebook.create_task("Soon", due_date=now + timedelta(hours=2))
        await notebook.create_task("Whenever")
        await notebook.create_note("Not a task")

        grouped = await notebook.tasks_view()
        assert [b for b, _ in grouped.sections()] == [Bucket.OVERDUE, Bucket.TODAY, Bucket.NO_DATE]
        assert all(isinstance(e, Task) for _, entries in grouped.sections() for e in entries)

    async def test_filter_applied_before_grouping(self, notebook, now):
        await notebook.create_task("Late", due_date=now - timedelta(hours=2))
        done = await notebook.create_task("Done")
        await notebook.complete_task(done.id)

        grouped = await notebook.tasks_view("completed")
        assert [b for b, _ in grouped.sections()] == [Bucket.COMPLETED]

    async def test_default_filter_from_config(self, notebook, now, config):
        config.default_filter = "overdue"
        await notebook.create_task("Late", due_date=now - timedelta(hours=2))
        await notebook.create_task("Whenever")
        grouped = await notebook.tasks_view()
        assert len(grouped) == 1


class TestChecklistFlows:
    async def test_create_returns_stats(self, notebook):
        view = await notebook.create_checklist("Packing", ["Socks", "Hat", ""])
        assert view.stats.format() == "0/2"

    async def test_checking_items_updates_stats(self, notebook):
        view = await notebook.create_checklist("Packing", ["Socks"])
        item = await notebook.add_checklist_item(view.checklist.id, "Hat")
        await notebook.set_item_checked(item.id)

        stats = await notebook.collection_checklist_stats(view.checklist.collection_id)
        assert stats[view.checklist.id].format() == "1/2"

    async def test_toggle_item(self, notebook):
        view = await notebook.create_checklist("Packing", ["Socks"])
        item = (await notebook.repo.list_checklist_items(view.checklist.id))[0]
        assert (await notebook.toggle_checklist_item(item.id)).checked
        assert not (await notebook.toggle_checklist_item(item.id)).checked

    async def test_removing_item(self, notebook):
        view = await notebook.create_checklist("Packing", ["Socks", "Hat"])
        items = await notebook.repo.list_checklist_items(view.checklist.id)
        await notebook.remove_checklist_item(items[0].id)
        assert (await notebook.checklist_view(view.checklist.id)).stats.total_count == 1

    async def test_deleting_checklist_archives_empty_system(self, notebook):
        view = await notebook.create_checklist("Packing", ["Socks"])
        event = await notebook.delete_entry(view.checklist.id)
        assert event.archived
        assert await notebook.repo.list_checklist_items(view.checklist.id) == []

    async def test_rename_checklist(self, notebook):
        view = await notebook.create_checklist("Packing", ["Socks"])
        renamed = await notebook.rename_checklist(view.checklist.id, " Trip   packing ")
        assert renamed.title == "Trip packing"
        assert (await notebook.checklist_view(view.checklist.id)).stats.total_count == 1

    async def test_rename_checklist_item(self, notebook):
        view = await notebook.create_checklist("Packing", ["Sox"])
        item = (await notebook.repo.list_checklist_items(view.checklist.id))[0]
        await notebook.set_item_checked(item.id)

        renamed = await notebook.rename_checklist_item(item.id, "Socks")
        assert (renamed.title, renamed.checked) == ("Socks", True)
        with pytest.raises(EmptyName):
            await notebook.rename_checklist_item(item.id, "")
