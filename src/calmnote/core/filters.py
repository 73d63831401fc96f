"""Task filter selectors - decide WHICH entries are visible.

Filtering happens before grouping; grouping decides HOW they are sectioned.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable

from .models import Entry, is_completed
from .timeline import Bucket, classify

logger = logging.getLogger(__name__)


class TaskFilter(Enum):
    ALL = "all"
    TODAY = "today"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"
    NO_DATE = "no-date"
    COMPLETED = "completed"


_FILTER_BUCKETS: dict[TaskFilter, Bucket] = {
    TaskFilter.TODAY: Bucket.TODAY,
    TaskFilter.OVERDUE: Bucket.OVERDUE,
    TaskFilter.UPCOMING: Bucket.UPCOMING,
    TaskFilter.NO_DATE: Bucket.NO_DATE,
}

_LABELS: dict[TaskFilter, str] = {
    TaskFilter.ALL: "All Tasks",
    TaskFilter.TODAY: "Today",
    TaskFilter.OVERDUE: "Overdue",
    TaskFilter.UPCOMING: "Upcoming",
    TaskFilter.NO_DATE: "No Date",
    TaskFilter.COMPLETED: "Completed",
}


def parse_filter(value: "TaskFilter | str | None") -> TaskFilter:
    """
    Coerce a raw selector (e.g. from a deep link) into a TaskFilter.

    Unknown values are logged and fall back to ALL rather than raising.
    """
    if isinstance(value, TaskFilter):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower().replace("_", "-")
        try:
            return TaskFilter(normalized)
        except ValueError:
            pass
    logger.warning(f"Invalid task filter {value!r}, defaulting to 'all'")
    return TaskFilter.ALL


def filter_predicate(task_filter: "TaskFilter | str", now: datetime | None = None) -> Callable[[Entry], bool]:
    """Predicate selecting the entries visible under a filter."""
    task_filter = parse_filter(task_filter)
    now = now or datetime.now()

    # ALL means every *active* entry, not literally every entry
    if task_filter is TaskFilter.ALL:
        return lambda entry: not is_completed(entry)
    if task_filter is TaskFilter.COMPLETED:
        return is_completed

    bucket = _FILTER_BUCKETS[task_filter]
    return lambda entry: not is_completed(entry) and classify(entry, now) is bucket


def apply_filter(
    entries: list[Entry],
    task_filter: "TaskFilter | str",
    now: datetime | None = None,
) -> list[Entry]:
    """
    Filter entries by selector.

    Pure function - no I/O.
    """
    predicate = filter_predicate(task_filter, now)
    return [e for e in entries if predicate(e)]


def filter_label(task_filter: TaskFilter) -> str:
    """Human-readable label for a filter."""
    return _LABELS[task_filter]


def has_entries_for_filter(
    entries: list[Entry],
    task_filter: "TaskFilter | str",
    now: datetime | None = None,
) -> bool:
    predicate = filter_predicate(task_filter, now)
    return any(predicate(e) for e in entries)
