"""Group entries into time buckets - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator

from .models import Entry
from .timeline import Bucket, classify, sort_entries


@dataclass
class GroupedEntries:
    """Entries partitioned by bucket. Lists are owned by this object."""

    overdue: list[Entry] = field(default_factory=list)
    today: list[Entry] = field(default_factory=list)
    upcoming: list[Entry] = field(default_factory=list)
    no_date: list[Entry] = field(default_factory=list)
    completed: list[Entry] = field(default_factory=list)

    def bucket(self, bucket: Bucket) -> list[Entry]:
        return getattr(self, bucket.value)

    def sections(self) -> Iterator[tuple[Bucket, list[Entry]]]:
        """Non-empty buckets in display order."""
        for bucket in Bucket:
            entries = self.bucket(bucket)
            if entries:
                yield bucket, entries

    def __len__(self) -> int:
        return sum(len(self.bucket(b)) for b in Bucket)


def group_entries(entries: list[Entry], now: datetime | None = None) -> GroupedEntries:
    """
    Classify every entry once, then order each bucket.

    Completed keeps insertion order. Pure function - the input list is not touched.
    """
    now = now or datetime.now()
    grouped = GroupedEntries()

    for entry in entries:
        grouped.bucket(classify(entry, now)).append(entry)

    grouped.overdue = sort_entries(grouped.overdue)
    grouped.today = sort_entries(grouped.today)
    grouped.upcoming = sort_entries(grouped.upcoming)
    grouped.no_date = sort_entries(grouped.no_date)
    return grouped
