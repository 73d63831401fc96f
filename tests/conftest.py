"""Shared fixtures for calmnote tests."""

from datetime import datetime

import pytest

from calmnote.adapters.memory_store import InMemoryNotebookRepository
from calmnote.config import Config
from calmnote.core.models import Checklist, Collection, Note, Priority, Task
from calmnote.workflows import Notebook


# Fixtures
@pytest.fixture
def now():
    """Wednesday noon, fixed."""
    return datetime(2025, 1, 15, 12, 0)


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def repo(clock):
    return InMemoryNotebookRepository(clock)


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def notebook(repo, config, clock):
    return Notebook(repo, config, clock)


def make_task(id, due=None, priority=Priority.NORMAL, completed=False, created=None, **kwargs):
    created = created or datetime(2025, 1, 1, 9, 0)
    return Task(
        id=id,
        title=kwargs.pop("title", f"Task {id}"),
        due_date=due,
        priority=priority,
        completed=completed,
        completed_at=created if completed else None,
        created_at=created,
        updated_at=created,
        **kwargs,
    )


def make_note(id, created=None, **kwargs):
    created = created or datetime(2025, 1, 1, 9, 0)
    return Note(id=id, title=kwargs.pop("title", f"Note {id}"), created_at=created, updated_at=created, **kwargs)


def make_checklist(id, **kwargs):
    return Checklist(id=id, title=kwargs.pop("title", f"Checklist {id}"), **kwargs)


def make_collection(id, name=None, **kwargs):
    return Collection(id=id, name=name or f"Collection {id}", **kwargs)
