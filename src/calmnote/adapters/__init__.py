"""Adapters - I/O implementations of ports."""

from .memory_store import InMemoryNotebookRepository
from .json_store import JsonFileNotebookRepository

__all__ = [
    "InMemoryNotebookRepository",
    "JsonFileNotebookRepository",
]
