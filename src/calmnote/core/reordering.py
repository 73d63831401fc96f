"""Turn a post-drag ordering into persisted positions - no I/O dependencies."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence


class Section(Enum):
    PINNED = "pinned"
    REGULAR = "regular"


@dataclass(frozen=True)
class SectionHeader:
    """Synthetic, non-reorderable row separating sections."""

    section: Section

    @property
    def id(self) -> str:
        return f"header-{self.section.value}"

    @property
    def title(self) -> str:
        return "PINNED" if self.section is Section.PINNED else "COLLECTIONS"


@dataclass(frozen=True)
class SortOrderUpdate:
    """New position for one row. is_pinned is None for unsectioned rows (entries)."""

    id: str
    sort_order: int
    is_pinned: bool | None = None


def _is_system(row: Any) -> bool:
    return bool(getattr(row, "is_system", False))


def reconcile_sections(sequence: Iterable[Any]) -> list[SortOrderUpdate]:
    """
    Walk a sectioned sequence once and number each row within its section.

    Headers reset the counter. System rows are never reassigned and do not take
    a position. Rows before any header count as REGULAR.
    """
    updates: list[SortOrderUpdate] = []
    section = Section.REGULAR
    position = 0

    for row in sequence:
        if isinstance(row, SectionHeader):
            section = row.section
            position = 0
            continue
        if _is_system(row):
            continue
        updates.append(SortOrderUpdate(row.id, position, section is Section.PINNED))
        position += 1

    return updates


def reconcile_entries(sequence: Sequence[Any]) -> list[SortOrderUpdate]:
    """Flat variant for entries inside one collection: positions 0..n-1."""
    return [SortOrderUpdate(row.id, index) for index, row in enumerate(sequence)]


def build_sections(collections: Iterable[Any]) -> list[Any]:
    """
    Lay out collections for a drag board.

    Pinned first, then regular with the system collection last. Headers appear
    only for sections that have rows; archived and deleted collections are left out.
    """
    visible = [c for c in collections if not c.is_archived and not c.is_deleted]
    pinned = sorted((c for c in visible if c.is_pinned and not c.is_system), key=lambda c: c.sort_order)
    regular = sorted((c for c in visible if not c.is_pinned and not c.is_system), key=lambda c: c.sort_order)
    system = sorted((c for c in visible if c.is_system), key=lambda c: c.sort_order)

    rows: list[Any] = []
    if pinned:
        rows.append(SectionHeader(Section.PINNED))
        rows.extend(pinned)
    if regular or system:
        rows.append(SectionHeader(Section.REGULAR))
        rows.extend(regular)
        rows.extend(system)
    return rows
