"""Pure notebook domain model - entries, checklist items, collections and patches."""

import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, ClassVar

SYSTEM_SORT_ORDER = 9999


class Priority(IntEnum):
    """Calm priority. Lower rank sorts first."""

    FOCUS = 1
    NORMAL = 2
    LOW = 3

    @classmethod
    def parse(cls, value: "str | int | Priority") -> "Priority":
        """Accept a rank, a member or a case-insensitive name."""
        if isinstance(value, str) and not value.isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown priority: {value!r}")
        return cls(int(value))


class EntryKind(Enum):
    TASK = "task"
    NOTE = "note"
    CHECKLIST = "checklist"


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class _EntryBase:
    """Fields shared by every entry variant."""

    id: str
    title: str
    collection_id: str | None = None
    body: str | None = None
    sort_order: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class Task(_EntryBase):
    """A completable entry with an optional due date."""

    kind: ClassVar[EntryKind] = EntryKind.TASK

    due_date: datetime | None = None
    completed: bool = False
    completed_at: datetime | None = None
    priority: Priority = Priority.NORMAL


@dataclass
class Note(_EntryBase):
    """Free text. The body is the content."""

    kind: ClassVar[EntryKind] = EntryKind.NOTE


@dataclass
class Checklist(_EntryBase):
    """Container for checklist items. Completion is always derived from its items."""

    kind: ClassVar[EntryKind] = EntryKind.CHECKLIST


Entry = Task | Note | Checklist

ENTRY_TYPES: dict[EntryKind, type] = {
    EntryKind.TASK: Task,
    EntryKind.NOTE: Note,
    EntryKind.CHECKLIST: Checklist,
}


def is_completed(entry: Entry) -> bool:
    """Only tasks carry a completion flag."""
    return isinstance(entry, Task) and entry.completed


def due_date_of(entry: Entry) -> datetime | None:
    return entry.due_date if isinstance(entry, Task) else None


def priority_of(entry: Entry) -> Priority:
    return entry.priority if isinstance(entry, Task) else Priority.NORMAL


def is_active(entry: Entry) -> bool:
    """Active = not soft-deleted and not completed."""
    return not entry.is_deleted and not is_completed(entry)


@dataclass
class ChecklistItem:
    """A line inside a checklist."""

    id: str
    checklist_id: str
    title: str
    checked: bool = False
    sort_order: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class Collection:
    """A named grouping of entries."""

    id: str
    name: str
    icon: str | None = None
    color_hint: str | None = None
    sort_order: int = 0
    is_pinned: bool = False
    is_archived: bool = False
    is_system: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# ============== Patches ==============


class _Unset:
    """Marker for patch fields the caller did not touch."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class _Patch:
    """Typed partial update. UNSET fields are left alone; None clears a nullable field."""

    def changes(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    def is_empty(self) -> bool:
        return not self.changes()

    def apply(self, target: Any, now: datetime) -> Any:
        """Return a copy of target with the changes applied and updated_at bumped."""
        return replace(target, **self.changes(), updated_at=now)


@dataclass
class TaskPatch(_Patch):
    title: str = UNSET
    body: str | None = UNSET
    due_date: datetime | None = UNSET
    priority: Priority = UNSET
    completed: bool = UNSET
    sort_order: int = UNSET

    def apply(self, target: Task, now: datetime) -> Task:
        updated = super().apply(target, now)
        # completed_at is set iff completed
        if self.completed is not UNSET and self.completed != target.completed:
            updated.completed_at = now if self.completed else None
        return updated


@dataclass
class NotePatch(_Patch):
    title: str = UNSET
    body: str | None = UNSET
    sort_order: int = UNSET


@dataclass
class ChecklistPatch(_Patch):
    title: str = UNSET
    body: str | None = UNSET
    sort_order: int = UNSET


@dataclass
class ChecklistItemPatch(_Patch):
    title: str = UNSET
    checked: bool = UNSET
    sort_order: int = UNSET


@dataclass
class CollectionPatch(_Patch):
    name: str = UNSET
    icon: str | None = UNSET
    color_hint: str | None = UNSET
    sort_order: int = UNSET
    is_pinned: bool = UNSET
    is_archived: bool = UNSET


EntryPatch = TaskPatch | NotePatch | ChecklistPatch

PATCH_TYPES: dict[EntryKind, type] = {
    EntryKind.TASK: TaskPatch,
    EntryKind.NOTE: NotePatch,
    EntryKind.CHECKLIST: ChecklistPatch,
}
