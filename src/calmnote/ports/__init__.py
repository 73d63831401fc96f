"""Ports - interfaces/protocols for external dependencies."""

from .notebook_repo import NotebookRepository

__all__ = [
    "NotebookRepository",
]
