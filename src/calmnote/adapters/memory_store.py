"""In-memory notebook storage adapter."""

import copy
import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterator

from calmnote.core.errors import ErrorCode, NotFoundError, PersistenceError
from calmnote.core.models import (
    PATCH_TYPES,
    Checklist,
    ChecklistItem,
    ChecklistItemPatch,
    Collection,
    CollectionPatch,
    Entry,
    EntryPatch,
    is_active,
    new_id,
)
from calmnote.core.reordering import SortOrderUpdate

logger = logging.getLogger(__name__)


class InMemoryNotebookRepository:
    """
    Dict-backed notebook storage.

    Implements NotebookRepository protocol. Stored rows are only ever replaced,
    never mutated, and callers always get copies. Every public call runs as a
    unit of work that restores the previous state if anything fails.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._clock = clock or datetime.now
        self._entries: dict[str, Entry] = {}
        self._items: dict[str, ChecklistItem] = {}
        self._collections: dict[str, Collection] = {}

    # ============== Unit of work ==============

    def _snapshot(self) -> tuple[dict, dict, dict]:
        return dict(self._entries), dict(self._items), dict(self._collections)

    def _restore(self, snapshot: tuple[dict, dict, dict]) -> None:
        self._entries, self._items, self._collections = snapshot

    def _commit(self) -> None:
        """Hook for durable subclasses. Called once per successful unit of work."""

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        snapshot = self._snapshot()
        try:
            yield
            self._commit()
        except OSError as e:
            self._restore(snapshot)
            logger.error(f"Notebook write failed, rolled back: {e}")
            raise PersistenceError(f"Write failed: {e}", ErrorCode.DB_TRANSACTION_ERROR) from e
        except BaseException:
            self._restore(snapshot)
            raise

    # ============== Lookups ==============

    def _live_entry(self, entry_id: str) -> Entry:
        entry = self._entries.get(entry_id)
        if entry is None or entry.is_deleted:
            raise NotFoundError("Entry", entry_id)
        return entry

    def _live_item(self, item_id: str) -> ChecklistItem:
        item = self._items.get(item_id)
        if item is None or item.is_deleted:
            raise NotFoundError("Checklist item", item_id)
        return item

    def _live_collection(self, collection_id: str) -> Collection:
        collection = self._collections.get(collection_id)
        if collection is None or collection.is_deleted:
            raise NotFoundError("Collection", collection_id)
        return collection

    def _live_checklist(self, checklist_id: str) -> Checklist:
        entry = self._live_entry(checklist_id)
        if not isinstance(entry, Checklist):
            raise NotFoundError("Checklist", checklist_id)
        return entry

    def _entries_in(self, collection_id: str | None) -> list[Entry]:
        return sorted(
            (e for e in self._entries.values() if e.collection_id == collection_id and not e.is_deleted),
            key=lambda e: (e.sort_order, e.created_at),
        )

    def _items_in(self, checklist_id: str) -> list[ChecklistItem]:
        return sorted(
            (i for i in self._items.values() if i.checklist_id == checklist_id and not i.is_deleted),
            key=lambda i: (i.sort_order, i.created_at),
        )

    def _check_collection_ref(self, collection_id: str | None) -> None:
        if collection_id is not None:
            self._live_collection(collection_id)

    # ============== Entries ==============

    async def list_entries(self, collection_id: str) -> list[Entry]:
        return [copy.copy(e) for e in self._entries_in(collection_id)]

    async def list_active_entries_across_collections(self) -> list[Entry]:
        live = [e for e in self._entries.values() if not e.is_deleted]
        return [copy.copy(e) for e in sorted(live, key=lambda e: e.created_at)]

    async def get_entry(self, entry_id: str) -> Entry:
        return copy.copy(self._live_entry(entry_id))

    async def create_entry(self, entry: Entry) -> Entry:
        with self._unit_of_work():
            if entry.id in self._entries:
                raise PersistenceError(f"Entry {entry.id} already exists", ErrorCode.DB_UNIQUE_VIOLATION)
            self._check_collection_ref(entry.collection_id)
            self._entries[entry.id] = copy.copy(entry)
        return copy.copy(entry)

    async def update_entry(self, entry_id: str, patch: EntryPatch) -> Entry:
        with self._unit_of_work():
            current = self._live_entry(entry_id)
            if type(patch) is not PATCH_TYPES[current.kind]:
                raise TypeError(f"{type(patch).__name__} cannot update a {current.kind.value}")
            updated = patch.apply(current, self._clock())
            self._entries[entry_id] = updated
        return copy.copy(updated)

    async def soft_delete_entry(self, entry_id: str) -> Entry:
        with self._unit_of_work():
            deleted = self._soft_delete(self._live_entry(entry_id))
        return copy.copy(deleted)

    def _soft_delete(self, entry: Entry) -> Entry:
        now = self._clock()
        deleted = replace(entry, deleted_at=now, updated_at=now)
        self._entries[entry.id] = deleted
        if isinstance(entry, Checklist):
            for item in self._items_in(entry.id):
                self._items[item.id] = replace(item, deleted_at=now, updated_at=now)
        return deleted

    async def move_entry(self, entry_id: str, target_collection_id: str) -> Entry:
        with self._unit_of_work():
            current = self._live_entry(entry_id)
            self._live_collection(target_collection_id)
            if current.collection_id == target_collection_id:
                return copy.copy(current)
            moved = replace(
                current,
                collection_id=target_collection_id,
                sort_order=len(self._entries_in(target_collection_id)),
                updated_at=self._clock(),
            )
            self._entries[entry_id] = moved
        return copy.copy(moved)

    async def count_active_entries(self, collection_id: str) -> int:
        return sum(1 for e in self._entries_in(collection_id) if is_active(e))

    # ============== Checklists ==============

    async def create_checklist_with_items(
        self, title: str, collection_id: str | None, item_titles: list[str]
    ) -> Checklist:
        with self._unit_of_work():
            self._check_collection_ref(collection_id)
            now = self._clock()
            checklist = Checklist(
                id=new_id(),
                title=title,
                collection_id=collection_id,
                sort_order=len(self._entries_in(collection_id)),
                created_at=now,
                updated_at=now,
            )
            self._entries[checklist.id] = checklist
            position = 0
            for item_title in item_titles:
                if not item_title.strip():
                    continue
                item = ChecklistItem(
                    id=new_id(),
                    checklist_id=checklist.id,
                    title=item_title.strip(),
                    sort_order=position,
                    created_at=now,
                    updated_at=now,
                )
                self._items[item.id] = item
                position += 1
        return copy.copy(checklist)

    async def delete_checklist(self, checklist_id: str) -> Checklist:
        with self._unit_of_work():
            deleted = self._soft_delete(self._live_checklist(checklist_id))
        return copy.copy(deleted)

    async def list_checklist_items(self, checklist_id: str) -> list[ChecklistItem]:
        return [copy.copy(i) for i in self._items_in(checklist_id)]

    async def add_checklist_item(self, checklist_id: str, title: str) -> ChecklistItem:
        with self._unit_of_work():
            self._live_checklist(checklist_id)
            now = self._clock()
            item = ChecklistItem(
                id=new_id(),
                checklist_id=checklist_id,
                title=title.strip(),
                sort_order=len(self._items_in(checklist_id)),
                created_at=now,
                updated_at=now,
            )
            self._items[item.id] = item
        return copy.copy(item)

    async def get_checklist_item(self, item_id: str) -> ChecklistItem:
        return copy.copy(self._live_item(item_id))

    async def update_checklist_item(self, item_id: str, patch: ChecklistItemPatch) -> ChecklistItem:
        with self._unit_of_work():
            updated = patch.apply(self._live_item(item_id), self._clock())
            self._items[item_id] = updated
        return copy.copy(updated)

    async def soft_delete_checklist_item(self, item_id: str) -> ChecklistItem:
        with self._unit_of_work():
            now = self._clock()
            deleted = replace(self._live_item(item_id), deleted_at=now, updated_at=now)
            self._items[item_id] = deleted
        return copy.copy(deleted)

    # ============== Collections ==============

    async def list_collections(self, include_archived: bool = True) -> list[Collection]:
        live = [
            c for c in self._collections.values()
            if not c.is_deleted and (include_archived or not c.is_archived)
        ]
        return [copy.copy(c) for c in sorted(live, key=lambda c: (c.sort_order, c.created_at))]

    async def get_collection(self, collection_id: str) -> Collection:
        return copy.copy(self._live_collection(collection_id))

    async def find_system_collection(self) -> Collection | None:
        for collection in self._collections.values():
            if collection.is_system and not collection.is_deleted:
                return copy.copy(collection)
        return None

    async def create_collection(self, collection: Collection) -> Collection:
        with self._unit_of_work():
            if collection.id in self._collections:
                raise PersistenceError(
                    f"Collection {collection.id} already exists", ErrorCode.DB_UNIQUE_VIOLATION
                )
            if collection.is_system and await self.find_system_collection() is not None:
                raise PersistenceError("A system collection already exists", ErrorCode.DB_UNIQUE_VIOLATION)
            self._collections[collection.id] = copy.copy(collection)
        return copy.copy(collection)

    async def update_collection(self, collection_id: str, patch: CollectionPatch) -> Collection:
        with self._unit_of_work():
            current = self._live_collection(collection_id)
            if current.is_system and patch.is_pinned is True:
                raise PersistenceError(
                    "System collections cannot be pinned", ErrorCode.DB_CONSTRAINT_VIOLATION
                )
            updated = patch.apply(current, self._clock())
            self._collections[collection_id] = updated
        return copy.copy(updated)

    async def archive_collection(self, collection_id: str) -> Collection:
        return await self.update_collection(collection_id, CollectionPatch(is_archived=True))

    async def unarchive_collection(self, collection_id: str) -> Collection:
        return await self.update_collection(collection_id, CollectionPatch(is_archived=False))

    async def delete_collection(self, collection_id: str) -> Collection:
        with self._unit_of_work():
            current = self._live_collection(collection_id)
            now = self._clock()
            for entry in self._entries_in(collection_id):
                self._soft_delete(entry)
            deleted = replace(current, deleted_at=now, updated_at=now)
            self._collections[collection_id] = deleted
        logger.debug(f"Deleted collection {collection_id} and its entries")
        return copy.copy(deleted)

    # ============== Ordering ==============

    async def persist_sort_orders(self, updates: list[SortOrderUpdate]) -> None:
        with self._unit_of_work():
            now = self._clock()
            for update in updates:
                if update.id in self._collections:
                    current = self._live_collection(update.id)
                    if current.is_system:
                        continue
                    changes = {"sort_order": update.sort_order, "updated_at": now}
                    if update.is_pinned is not None:
                        changes["is_pinned"] = update.is_pinned
                    self._collections[update.id] = replace(current, **changes)
                else:
                    current = self._live_entry(update.id)
                    self._entries[update.id] = replace(current, sort_order=update.sort_order, updated_at=now)
        logger.debug(f"Persisted sort order for {len(updates)} rows")
