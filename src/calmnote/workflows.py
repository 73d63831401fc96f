"""Notebook workflows - the engine surface used by the presentation layer.

Each flow sequences repository calls in program order and runs the system
collection lifecycle hooks after writes. No retries: failures propagate to the
caller, except drag reordering which rolls back to the pre-drag order.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Sequence

from .config import Config
from .core import checklists, filters, grouping, names, timeline
from .core.checklists import ChecklistStats, ChecklistView
from .core.errors import EmptyName, PersistenceError
from .core.grouping import GroupedEntries
from .core.models import (
    UNSET,
    Checklist,
    ChecklistItem,
    ChecklistItemPatch,
    ChecklistPatch,
    Collection,
    CollectionPatch,
    Entry,
    Note,
    NotePatch,
    Priority,
    Task,
    TaskPatch,
    is_active,
    new_id,
)
from .core.reordering import SortOrderUpdate, build_sections, reconcile_entries, reconcile_sections
from .lifecycle import NO_CHANGE, CollectionLifecycleManager, LifecycleEvent
from .ports.notebook_repo import NotebookRepository

logger = logging.getLogger(__name__)

REORDER_FAILED_NOTICE = "Unable to save new order. Changes reverted."


@dataclass
class ReorderOutcome:
    """Result of a drag. `order` is what the UI should display now."""

    order: list[Any]
    committed: bool
    updates: list[SortOrderUpdate] = field(default_factory=list)
    notice: str | None = None


async def reconcile_drag_result(
    repo: NotebookRepository,
    previous: Sequence[Any],
    dragged: Sequence[Any],
    from_index: int,
    to_index: int,
    sectioned: bool = True,
) -> ReorderOutcome:
    """
    Persist a drag-and-drop result as one atomic batch.

    Dropping an item where it started does nothing at all. If the batch
    fails, the pre-drag order comes back with a notice for the user.
    """
    if from_index == to_index:
        return ReorderOutcome(order=list(previous), committed=True)

    updates = reconcile_sections(dragged) if sectioned else reconcile_entries(dragged)
    try:
        await repo.persist_sort_orders(updates)
    except PersistenceError as e:
        logger.error(f"Failed to persist drag order ({len(updates)} rows): {e}")
        return ReorderOutcome(
            order=list(previous),
            committed=False,
            updates=updates,
            notice=REORDER_FAILED_NOTICE,
        )
    return ReorderOutcome(order=list(dragged), committed=True, updates=updates)


def _entry_title(raw: str) -> str:
    title = names.prepare_display(raw)
    if not title:
        raise EmptyName("Title cannot be empty", field="title")
    return title


class Notebook:
    """
    In-process engine facade.

    Pass explicit identifiers; no ambient "selected collection" state is kept.
    """

    def __init__(
        self,
        repo: NotebookRepository,
        config: Config | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repo = repo
        self.config = config or Config()
        self._clock = clock or datetime.now
        self.lifecycle = CollectionLifecycleManager(repo, self.config, self._clock)

    def now(self) -> datetime:
        return self._clock()

    # ============== Pure engine functions ==============

    def classify(self, entry: Entry) -> timeline.Bucket:
        return timeline.classify(entry, self.now())

    def apply_filter(self, entries: list[Entry], task_filter: "filters.TaskFilter | str") -> list[Entry]:
        return filters.apply_filter(entries, task_filter, self.now())

    def group(self, entries: list[Entry]) -> GroupedEntries:
        return grouping.group_entries(entries, self.now())

    def checklist_stats(self, checklist: Checklist, items: list[ChecklistItem]) -> ChecklistStats:
        return checklists.checklist_stats(checklist, items)

    async def resolve_name_for_save(
        self,
        raw: str,
        mode: names.NameMode = names.NameMode.CREATE,
        exclude_id: str | None = None,
    ) -> str:
        """Validate a collection name against every live collection, archived ones included.

        Until the system collection exists its configured name stays reserved.
        """
        existing: list[Any] = await self.repo.list_collections(include_archived=True)
        if not any(c.is_system for c in existing):
            existing.append(Collection(id="", name=self.config.system_collection_name, is_system=True))
        return names.resolve_name_for_save(
            raw, existing, mode, exclude_id, max_length=self.config.name_max_length
        )

    async def reconcile_drag_result(
        self,
        previous: Sequence[Any],
        dragged: Sequence[Any],
        from_index: int,
        to_index: int,
        sectioned: bool = True,
    ) -> ReorderOutcome:
        return await reconcile_drag_result(self.repo, previous, dragged, from_index, to_index, sectioned)

    # ============== Collections ==============

    async def create_collection(self, name: str, icon: str | None = None, color_hint: str | None = None) -> Collection:
        """Create a user collection at the end of the regular section."""
        display = await self.resolve_name_for_save(name, names.NameMode.CREATE)
        existing = await self.repo.list_collections(include_archived=True)
        regular = [c for c in existing if not c.is_pinned and not c.is_system]
        now = self.now()
        collection = await self.repo.create_collection(
            Collection(
                id=new_id(),
                name=display,
                icon=icon,
                color_hint=color_hint,
                sort_order=len(regular),
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(f"Created collection {display!r}")
        return collection

    async def rename_collection(self, collection_id: str, name: str) -> Collection:
        display = await self.resolve_name_for_save(name, names.NameMode.RENAME, exclude_id=collection_id)
        return await self.repo.update_collection(collection_id, CollectionPatch(name=display))

    async def set_pinned(self, collection_id: str, pinned: bool) -> Collection:
        """Pin or unpin a user collection; it moves to the end of its new section."""
        collection = await self.repo.get_collection(collection_id)
        if collection.is_system:
            raise ValueError("System collections cannot be pinned")
        if collection.is_pinned == pinned:
            return collection

        existing = await self.repo.list_collections(include_archived=True)
        section = [c for c in existing if c.is_pinned == pinned and not c.is_system]
        return await self.repo.update_collection(
            collection_id, CollectionPatch(is_pinned=pinned, sort_order=len(section))
        )

    async def archive_collection(self, collection_id: str) -> Collection:
        """Explicit user archive. The system collection manages itself."""
        collection = await self.repo.get_collection(collection_id)
        if collection.is_system:
            raise ValueError("The system collection is archived automatically")
        return await self.repo.archive_collection(collection_id)

    async def unarchive_collection(self, collection_id: str) -> Collection:
        return await self.repo.unarchive_collection(collection_id)

    async def delete_collection(self, collection_id: str) -> Collection:
        """Soft-delete a user collection together with its entries."""
        collection = await self.repo.get_collection(collection_id)
        if collection.is_system:
            raise ValueError("The system collection cannot be deleted")
        deleted = await self.repo.delete_collection(collection_id)
        logger.info(f"Deleted collection {collection.name!r}")
        return deleted

    async def collection_board(self) -> list[Any]:
        """Visible collections with PINNED/REGULAR headers, ready for dragging."""
        return build_sections(await self.repo.list_collections(include_archived=False))

    async def reorder_collections(
        self, previous: Sequence[Any], dragged: Sequence[Any], from_index: int, to_index: int
    ) -> ReorderOutcome:
        return await self.reconcile_drag_result(previous, dragged, from_index, to_index, sectioned=True)

    # ============== Entries ==============

    async def _target_collection(self, collection_id: str | None) -> str:
        """Resolve where a new entry goes, reviving the system collection when needed."""
        if collection_id is None:
            return (await self.lifecycle.ensure_active()).id

        collection = await self.repo.get_collection(collection_id)
        if collection.is_system and collection.is_archived:
            await self.lifecycle.ensure_active()
        return collection.id

    async def _next_position(self, collection_id: str) -> int:
        return len(await self.repo.list_entries(collection_id))

    async def create_task(
        self,
        title: str,
        collection_id: str | None = None,
        due_date: datetime | None = None,
        priority: Priority = Priority.NORMAL,
        body: str | None = None,
    ) -> Task:
        """Create a task; with no collection it lands in the system collection."""
        title = _entry_title(title)
        target = await self._target_collection(collection_id)
        now = self.now()
        task = Task(
            id=new_id(),
            title=title,
            collection_id=target,
            body=body,
            sort_order=await self._next_position(target),
            created_at=now,
            updated_at=now,
            due_date=due_date,
            priority=Priority(priority),
        )
        return await self.repo.create_entry(task)

    async def create_note(self, title: str, body: str | None = None, collection_id: str | None = None) -> Note:
        title = _entry_title(title)
        target = await self._target_collection(collection_id)
        now = self.now()
        note = Note(
            id=new_id(),
            title=title,
            collection_id=target,
            body=body,
            sort_order=await self._next_position(target),
            created_at=now,
            updated_at=now,
        )
        return await self.repo.create_entry(note)

    async def create_checklist(
        self, title: str, items: list[str], collection_id: str | None = None
    ) -> ChecklistView:
        """Create a checklist together with its items in one unit of work."""
        title = _entry_title(title)
        target = await self._target_collection(collection_id)
        checklist = await self.repo.create_checklist_with_items(title, target, items)
        return await self.checklist_view(checklist.id)

    async def complete_task(self, task_id: str) -> LifecycleEvent:
        task = await self.repo.update_entry(task_id, TaskPatch(completed=True))
        return await self.lifecycle.on_entry_completed(task)

    async def reopen_task(self, task_id: str) -> LifecycleEvent:
        task = await self.repo.update_entry(task_id, TaskPatch(completed=False))
        return await self.lifecycle.on_entry_reopened(task)

    async def toggle_task(self, task_id: str) -> LifecycleEvent:
        task = await self.repo.get_entry(task_id)
        if not isinstance(task, Task):
            raise TypeError(f"Entry {task_id} is a {task.kind.value}, not a task")
        if task.completed:
            return await self.reopen_task(task_id)
        return await self.complete_task(task_id)

    async def reschedule_task(self, task_id: str, due_date: datetime | None) -> Task:
        return await self.repo.update_entry(task_id, TaskPatch(due_date=due_date))

    async def set_priority(self, task_id: str, priority: Priority) -> Task:
        return await self.repo.update_entry(task_id, TaskPatch(priority=Priority(priority)))

    async def delete_entry(self, entry_id: str) -> LifecycleEvent:
        """Soft-delete an entry (checklists take their items along)."""
        entry = await self.repo.get_entry(entry_id)
        if isinstance(entry, Checklist):
            await self.repo.delete_checklist(entry_id)
        else:
            await self.repo.soft_delete_entry(entry_id)
        return await self.lifecycle.on_entry_moved_or_deleted(entry.collection_id)

    async def move_entry(self, entry_id: str, target_collection_id: str) -> LifecycleEvent:
        """Move an entry; the source may archive, an archived system target revives.

        Only an unresolved entry revives the system collection. A completed task
        moved into it leaves it archived.
        """
        entry = await self.repo.get_entry(entry_id)
        if entry.collection_id == target_collection_id:
            return NO_CHANGE

        if is_active(entry):
            await self._target_collection(target_collection_id)
        else:
            await self.repo.get_collection(target_collection_id)
        await self.repo.move_entry(entry_id, target_collection_id)
        return await self.lifecycle.on_entry_moved_or_deleted(entry.collection_id)

    async def edit_note(self, note_id: str, title: str = UNSET, body: str | None = UNSET) -> Note:
        """Change a note's title and/or body. Omitted fields stay as they are."""
        patch = NotePatch(title=_entry_title(title) if title is not UNSET else UNSET, body=body)
        return await self.repo.update_entry(note_id, patch)

    async def rename_checklist(self, checklist_id: str, title: str) -> Checklist:
        return await self.repo.update_entry(checklist_id, ChecklistPatch(title=_entry_title(title)))

    async def collection_entries(self, collection_id: str) -> list[Entry]:
        """Mixed tasks, notes and checklists in manual order."""
        entries = await self.repo.list_entries(collection_id)
        return sorted(entries, key=lambda e: e.sort_order)

    async def reorder_entries(
        self, previous: Sequence[Any], dragged: Sequence[Any], from_index: int, to_index: int
    ) -> ReorderOutcome:
        return await self.reconcile_drag_result(previous, dragged, from_index, to_index, sectioned=False)

    async def tasks_view(self, task_filter: "filters.TaskFilter | str | None" = None) -> GroupedEntries:
        """All tasks across collections, filtered then grouped into buckets."""
        selector = filters.parse_filter(task_filter if task_filter is not None else self.config.default_filter)
        entries = await self.repo.list_active_entries_across_collections()
        tasks = [e for e in entries if isinstance(e, Task)]
        return self.group(self.apply_filter(tasks, selector))

    # ============== Checklist items ==============

    async def checklist_view(self, checklist_id: str) -> ChecklistView:
        checklist = await self.repo.get_entry(checklist_id)
        if not isinstance(checklist, Checklist):
            raise TypeError(f"Entry {checklist_id} is a {checklist.kind.value}, not a checklist")
        items = await self.repo.list_checklist_items(checklist_id)
        return ChecklistView(checklist, self.checklist_stats(checklist, items))

    async def collection_checklist_stats(self, collection_id: str) -> dict[str, ChecklistStats]:
        """Stats for every checklist in a collection, keyed by checklist id."""
        stats = {}
        for entry in await self.repo.list_entries(collection_id):
            if isinstance(entry, Checklist):
                items = await self.repo.list_checklist_items(entry.id)
                stats[entry.id] = self.checklist_stats(entry, items)
        return stats

    async def add_checklist_item(self, checklist_id: str, title: str) -> ChecklistItem:
        return await self.repo.add_checklist_item(checklist_id, _entry_title(title))

    async def rename_checklist_item(self, item_id: str, title: str) -> ChecklistItem:
        return await self.repo.update_checklist_item(item_id, ChecklistItemPatch(title=_entry_title(title)))

    async def set_item_checked(self, item_id: str, checked: bool = True) -> ChecklistItem:
        return await self.repo.update_checklist_item(item_id, ChecklistItemPatch(checked=checked))

    async def toggle_checklist_item(self, item_id: str) -> ChecklistItem:
        item = await self.repo.get_checklist_item(item_id)
        return await self.set_item_checked(item_id, not item.checked)

    async def remove_checklist_item(self, item_id: str) -> ChecklistItem:
        return await self.repo.soft_delete_checklist_item(item_id)

