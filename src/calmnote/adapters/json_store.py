"""JSON file notebook storage adapter."""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from calmnote.core.errors import ErrorCode, PersistenceError
from calmnote.core.models import ENTRY_TYPES, ChecklistItem, Collection, Entry, EntryKind, Priority, Task

from .memory_store import InMemoryNotebookRepository

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_DATETIME_FIELDS = ("created_at", "updated_at", "deleted_at", "due_date", "completed_at")


def _dump_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _load_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def entry_to_dict(entry: Entry) -> dict[str, Any]:
    data: dict[str, Any] = {
        "kind": entry.kind.value,
        "id": entry.id,
        "title": entry.title,
        "collection_id": entry.collection_id,
        "body": entry.body,
        "sort_order": entry.sort_order,
        "created_at": _dump_dt(entry.created_at),
        "updated_at": _dump_dt(entry.updated_at),
        "deleted_at": _dump_dt(entry.deleted_at),
    }
    if isinstance(entry, Task):
        data.update(
            due_date=_dump_dt(entry.due_date),
            completed=entry.completed,
            completed_at=_dump_dt(entry.completed_at),
            priority=int(entry.priority),
        )
    return data


def entry_from_dict(data: dict[str, Any]) -> Entry:
    fields = dict(data)
    kind = EntryKind(fields.pop("kind"))
    for name in _DATETIME_FIELDS:
        if name in fields:
            fields[name] = _load_dt(fields[name])
    if kind is EntryKind.TASK:
        fields["priority"] = Priority(fields.get("priority", Priority.NORMAL))
    return ENTRY_TYPES[kind](**fields)


def item_to_dict(item: ChecklistItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "checklist_id": item.checklist_id,
        "title": item.title,
        "checked": item.checked,
        "sort_order": item.sort_order,
        "created_at": _dump_dt(item.created_at),
        "updated_at": _dump_dt(item.updated_at),
        "deleted_at": _dump_dt(item.deleted_at),
    }


def item_from_dict(data: dict[str, Any]) -> ChecklistItem:
    fields = dict(data)
    for name in ("created_at", "updated_at", "deleted_at"):
        fields[name] = _load_dt(fields.get(name))
    return ChecklistItem(**fields)


def collection_to_dict(collection: Collection) -> dict[str, Any]:
    return {
        "id": collection.id,
        "name": collection.name,
        "icon": collection.icon,
        "color_hint": collection.color_hint,
        "sort_order": collection.sort_order,
        "is_pinned": collection.is_pinned,
        "is_archived": collection.is_archived,
        "is_system": collection.is_system,
        "created_at": _dump_dt(collection.created_at),
        "updated_at": _dump_dt(collection.updated_at),
        "deleted_at": _dump_dt(collection.deleted_at),
    }


def collection_from_dict(data: dict[str, Any]) -> Collection:
    fields = dict(data)
    for name in ("created_at", "updated_at", "deleted_at"):
        fields[name] = _load_dt(fields.get(name))
    return Collection(**fields)


class JsonFileNotebookRepository(InMemoryNotebookRepository):
    """
    Notebook storage persisted to a single JSON file.

    Implements NotebookRepository protocol. The whole store is rewritten after
    each unit of work (temp file + atomic rename), so a failed write leaves the
    previous file and the previous in-memory state in place.
    """

    def __init__(self, path: Path | str, clock: Callable[[], datetime] | None = None):
        super().__init__(clock)
        self.path = Path(path).expanduser()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text())
            entries = [entry_from_dict(e) for e in data.get("entries", [])]
            items = [item_from_dict(i) for i in data.get("checklist_items", [])]
            collections = [collection_from_dict(c) for c in data.get("collections", [])]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Cannot read notebook file {self.path}: {e}", ErrorCode.DB_CONSTRAINT_VIOLATION
            ) from e

        self._entries = {e.id: e for e in entries}
        self._items = {i.id: i for i in items}
        self._collections = {c.id: c for c in collections}
        logger.debug(
            f"Loaded {len(entries)} entries, {len(items)} checklist items, "
            f"{len(collections)} collections from {self.path}"
        )

    def _commit(self) -> None:
        payload = {
            "version": FORMAT_VERSION,
            "entries": [entry_to_dict(e) for e in self._entries.values()],
            "checklist_items": [item_to_dict(i) for i in self._items.values()],
            "collections": [collection_to_dict(c) for c in self._collections.values()],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f"{self.path.name}.tmp")
        try:
            tmp.write_text(json.dumps(payload, indent=2))
            os.replace(tmp, self.path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
