"""Checklist completion stats - derived on every read, never stored."""

from dataclasses import dataclass

from .models import Checklist, ChecklistItem


@dataclass(frozen=True)
class ChecklistStats:
    checked_count: int
    total_count: int

    @property
    def is_complete(self) -> bool:
        """An empty checklist is never complete."""
        return self.total_count > 0 and self.checked_count == self.total_count

    @property
    def progress(self) -> float:
        if not self.total_count:
            return 0.0
        return self.checked_count / self.total_count

    def format(self) -> str:
        return f"{self.checked_count}/{self.total_count}"


@dataclass
class ChecklistView:
    """A checklist paired with its current stats, for listings."""

    checklist: Checklist
    stats: ChecklistStats


def checklist_stats(checklist: Checklist, items: list[ChecklistItem]) -> ChecklistStats:
    """Count the checklist's live items and how many are checked."""
    live = [i for i in items if i.checklist_id == checklist.id and not i.is_deleted]
    return ChecklistStats(
        checked_count=sum(1 for i in live if i.checked),
        total_count=len(live),
    )
