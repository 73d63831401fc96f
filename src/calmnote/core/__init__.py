"""Functional core - pure business logic with no I/O."""

from .models import (
    Task,
    Note,
    Checklist,
    ChecklistItem,
    Collection,
    Entry,
    EntryKind,
    Priority,
    TaskPatch,
    NotePatch,
    ChecklistPatch,
    ChecklistItemPatch,
    CollectionPatch,
    UNSET,
    SYSTEM_SORT_ORDER,
)
from .errors import (
    CalmnoteError,
    ValidationError,
    EmptyName,
    NameTooLong,
    DuplicateName,
    PersistenceError,
    NotFoundError,
    ErrorCode,
    user_message,
)
from .names import NameMode, canonicalize, prepare_display, validate, is_duplicate, resolve_name_for_save
from .timeline import Bucket, classify, has_time_component, compare_entries, sort_entries, format_due
from .filters import TaskFilter, apply_filter, parse_filter, filter_label
from .grouping import GroupedEntries, group_entries
from .reordering import Section, SectionHeader, SortOrderUpdate, reconcile_sections, reconcile_entries
from .checklists import ChecklistStats, checklist_stats

__all__ = [
    # Models
    "Task",
    "Note",
    "Checklist",
    "ChecklistItem",
    "Collection",
    "Entry",
    "EntryKind",
    "Priority",
    "TaskPatch",
    "NotePatch",
    "ChecklistPatch",
    "ChecklistItemPatch",
    "CollectionPatch",
    "UNSET",
    "SYSTEM_SORT_ORDER",
    # Errors
    "CalmnoteError",
    "ValidationError",
    "EmptyName",
    "NameTooLong",
    "DuplicateName",
    "PersistenceError",
    "NotFoundError",
    "ErrorCode",
    "user_message",
    # Names
    "NameMode",
    "canonicalize",
    "prepare_display",
    "validate",
    "is_duplicate",
    "resolve_name_for_save",
    # Time
    "Bucket",
    "classify",
    "has_time_component",
    "compare_entries",
    "sort_entries",
    "format_due",
    # Filters and grouping
    "TaskFilter",
    "apply_filter",
    "parse_filter",
    "filter_label",
    "GroupedEntries",
    "group_entries",
    # Reordering
    "Section",
    "SectionHeader",
    "SortOrderUpdate",
    "reconcile_sections",
    "reconcile_entries",
    # Checklists
    "ChecklistStats",
    "checklist_stats",
]
