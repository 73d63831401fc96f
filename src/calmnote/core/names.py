"""Name canonicalization and validation - no I/O dependencies.

Display form (stored, shown): trimmed, whitespace collapsed, case preserved.
Canonical form (compared only): display form lowercased. Never stored.
"""

import re
from dataclasses import replace
from enum import Enum
from typing import Iterable, Protocol, Sequence, TypeVar

from .errors import DuplicateName, EmptyName, NameTooLong

NAME_MAX_LENGTH = 100

_WHITESPACE = re.compile(r"\s+")


class Named(Protocol):
    id: str
    name: str


class NameMode(Enum):
    CREATE = "create"
    RENAME = "rename"


def prepare_display(raw: str) -> str:
    """Trim and collapse whitespace, preserving case."""
    return _WHITESPACE.sub(" ", raw.strip())


def canonicalize(raw: str) -> str:
    """
    Comparison key for a name.

    "  Grocery   List " -> "grocery list". Idempotent.
    """
    return prepare_display(raw).lower()


def validate(name: str, max_length: int = NAME_MAX_LENGTH, field: str = "name") -> None:
    """Raise EmptyName / NameTooLong for an unusable name."""
    display = prepare_display(name)
    if not display:
        raise EmptyName(field=field)
    if len(display) > max_length:
        raise NameTooLong(max_length, field=field)


def is_duplicate(candidate: str, existing: Iterable[Named], exclude_id: str | None = None) -> bool:
    """True if candidate canonically matches any existing name other than exclude_id."""
    key = canonicalize(candidate)
    return any(
        canonicalize(item.name) == key
        for item in existing
        if exclude_id is None or item.id != exclude_id
    )


def resolve_name_for_save(
    raw: str,
    existing: Iterable[Named],
    mode: NameMode = NameMode.CREATE,
    exclude_id: str | None = None,
    max_length: int = NAME_MAX_LENGTH,
    field: str = "name",
) -> str:
    """
    Validate a user-entered name and return its display form.

    Create and rename share these rules; a rename must say which item is being
    renamed so it does not collide with itself.
    """
    if mode is NameMode.RENAME and exclude_id is None:
        raise ValueError("rename requires exclude_id")

    validate(raw, max_length, field)
    display = prepare_display(raw)
    if is_duplicate(display, existing, exclude_id):
        raise DuplicateName(field=field)
    return display


T = TypeVar("T")


def normalize_sort_orders(items: Sequence[T]) -> list[T]:
    """Reassign sort_order 0..n-1 following the current (stable) sort_order."""
    ordered = sorted(items, key=lambda item: item.sort_order)
    return [replace(item, sort_order=index) for index, item in enumerate(ordered)]
