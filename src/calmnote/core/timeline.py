"""Time buckets and in-bucket ordering - no I/O dependencies.

All datetimes are naive local time. A due value at exactly midnight is a
date-only due date; any other time of day makes it a timed due value.
"""

from datetime import datetime, timedelta
from enum import Enum

from .models import Entry, due_date_of, is_completed, priority_of


class Bucket(Enum):
    """Mutually exclusive temporal classification, in display order."""

    OVERDUE = "overdue"
    TODAY = "today"
    UPCOMING = "upcoming"
    NO_DATE = "no_date"
    COMPLETED = "completed"


def has_time_component(dt: datetime) -> bool:
    """True unless the value sits exactly on local midnight (to the second)."""
    return dt.hour != 0 or dt.minute != 0 or dt.second != 0


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(now: datetime) -> datetime:
    return now.replace(hour=23, minute=59, second=59, microsecond=999000)


def classify(entry: Entry, now: datetime | None = None) -> Bucket:
    """
    Assign an entry to its time bucket.

    Completion wins over everything. Timed due values are overdue the moment
    they pass; date-only due values only once their whole day has passed.
    """
    if is_completed(entry):
        return Bucket.COMPLETED

    due = due_date_of(entry)
    if due is None:
        return Bucket.NO_DATE

    now = now or datetime.now()
    today_start = start_of_day(now)
    today_end = end_of_day(now)

    if has_time_component(due):
        if due < now:
            return Bucket.OVERDUE
        if due <= today_end:
            return Bucket.TODAY
        return Bucket.UPCOMING

    if due < today_start:
        return Bucket.OVERDUE
    if due <= today_end:
        return Bucket.TODAY
    return Bucket.UPCOMING


# ============== Ordering ==============


def ordering_key(entry: Entry) -> tuple:
    """
    Sort key for entries within one bucket.

    Timed due first, then date-only, then no due date; then priority rank;
    then due instant (or creation time when there is no due date); id last
    so the order is total.
    """
    due = due_date_of(entry)
    if due is None:
        time_rank = 2
        instant = entry.created_at
    else:
        time_rank = 0 if has_time_component(due) else 1
        instant = due
    return (time_rank, int(priority_of(entry)), instant, entry.created_at, entry.id)


def compare_entries(a: Entry, b: Entry) -> int:
    """Three-way comparison consistent with ordering_key."""
    ka, kb = ordering_key(a), ordering_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def sort_entries(entries: list[Entry]) -> list[Entry]:
    """Return a new list in bucket order. Sorting sorted input is a no-op."""
    return sorted(entries, key=ordering_key)


# ============== Display helpers ==============


def relative_day_label(due: datetime, now: datetime | None = None) -> str:
    """'Overdue', 'Today', 'Tomorrow' or a short date like 'Oct 25'."""
    now = now or datetime.now()
    today_start = start_of_day(now)

    if due < today_start:
        return "Overdue"
    if due < today_start + timedelta(days=1):
        return "Today"
    if due < today_start + timedelta(days=2):
        return "Tomorrow"
    return f"{due:%b} {due.day}"


def format_due(due: datetime, now: datetime | None = None) -> str:
    """Relative day, plus the clock time for timed due values ('Today, 14:30')."""
    label = relative_day_label(due, now)
    if not has_time_component(due):
        return label
    return f"{label}, {due:%H:%M}"
