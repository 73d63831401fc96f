"""Notebook repository interface."""

from typing import Protocol

from calmnote.core.models import (
    ChecklistItem,
    ChecklistItemPatch,
    Checklist,
    Collection,
    CollectionPatch,
    Entry,
    EntryPatch,
)
from calmnote.core.reordering import SortOrderUpdate


class NotebookRepository(Protocol):
    """
    Interface for notebook storage.

    Every call is one unit of work: it fully succeeds or raises
    PersistenceError and leaves storage untouched. Reads never return
    soft-deleted rows. Missing ids raise NotFoundError.
    """

    # Entries

    async def list_entries(self, collection_id: str) -> list[Entry]:
        """Live entries of one collection, by sort_order."""
        ...

    async def list_active_entries_across_collections(self) -> list[Entry]:
        """Live entries of every collection (completed tasks included)."""
        ...

    async def get_entry(self, entry_id: str) -> Entry:
        ...

    async def create_entry(self, entry: Entry) -> Entry:
        ...

    async def update_entry(self, entry_id: str, patch: EntryPatch) -> Entry:
        ...

    async def soft_delete_entry(self, entry_id: str) -> Entry:
        ...

    async def move_entry(self, entry_id: str, target_collection_id: str) -> Entry:
        ...

    async def count_active_entries(self, collection_id: str) -> int:
        """Live entries in a collection that are not completed."""
        ...

    # Checklists

    async def create_checklist_with_items(
        self, title: str, collection_id: str | None, item_titles: list[str]
    ) -> Checklist:
        """Create a checklist and its items atomically. Blank titles are skipped."""
        ...

    async def delete_checklist(self, checklist_id: str) -> Checklist:
        """Soft-delete a checklist and all of its items atomically."""
        ...

    async def list_checklist_items(self, checklist_id: str) -> list[ChecklistItem]:
        ...

    async def add_checklist_item(self, checklist_id: str, title: str) -> ChecklistItem:
        ...

    async def get_checklist_item(self, item_id: str) -> ChecklistItem:
        ...

    async def update_checklist_item(self, item_id: str, patch: ChecklistItemPatch) -> ChecklistItem:
        ...

    async def soft_delete_checklist_item(self, item_id: str) -> ChecklistItem:
        ...

    # Collections

    async def list_collections(self, include_archived: bool = True) -> list[Collection]:
        ...

    async def get_collection(self, collection_id: str) -> Collection:
        ...

    async def find_system_collection(self) -> Collection | None:
        """The system collection, archived or not, if it exists."""
        ...

    async def create_collection(self, collection: Collection) -> Collection:
        ...

    async def update_collection(self, collection_id: str, patch: CollectionPatch) -> Collection:
        ...

    async def archive_collection(self, collection_id: str) -> Collection:
        ...

    async def unarchive_collection(self, collection_id: str) -> Collection:
        ...

    async def delete_collection(self, collection_id: str) -> Collection:
        """Soft-delete a collection and every entry in it atomically."""
        ...

    # Ordering

    async def persist_sort_orders(self, updates: list[SortOrderUpdate]) -> None:
        """Apply a batch of positions atomically. System collections are skipped."""
        ...
