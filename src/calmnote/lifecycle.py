"""Lifecycle of the system ("Unsorted") collection.

The system collection is a transient inbox: it is visible only while it holds
active entries. It archives itself when its last active entry is completed,
deleted or moved away, and comes back when something lands in it again.
User collections are never touched here.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from .config import Config
from .core.models import SYSTEM_SORT_ORDER, Collection, Entry, new_id
from .ports.notebook_repo import NotebookRepository

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class LifecycleEvent:
    """What a write did to the system collection, if anything."""

    archived: bool = False
    unarchived: bool = False
    collection_id: str | None = None

    @property
    def navigate_away(self) -> bool:
        """The caller must leave the archived collection's detail view."""
        return self.archived


NO_CHANGE = LifecycleEvent()


class CollectionLifecycleManager:
    def __init__(
        self,
        repo: NotebookRepository,
        config: Config | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repo = repo
        self.config = config or Config()
        self._clock = clock or datetime.now

    async def get_or_create_system_collection(self) -> Collection:
        """Return the system collection, creating it if it does not exist yet. Never un-archives."""
        existing = await self.repo.find_system_collection()
        if existing is not None:
            return existing

        now = self._clock()
        logger.info(f"Creating system collection {self.config.system_collection_name!r}")
        return await self.repo.create_collection(
            Collection(
                id=new_id(),
                name=self.config.system_collection_name,
                icon=self.config.system_collection_icon,
                color_hint=self.config.system_collection_color,
                sort_order=SYSTEM_SORT_ORDER,
                is_system=True,
                created_at=now,
                updated_at=now,
            )
        )

    async def state(self) -> LifecycleState | None:
        """ACTIVE, ARCHIVED, or None when there is no system collection."""
        system = await self.repo.find_system_collection()
        if system is None:
            return None
        return LifecycleState.ARCHIVED if system.is_archived else LifecycleState.ACTIVE

    async def ensure_active(self) -> Collection:
        """Get or create the system collection and un-archive it. Call before writing into it."""
        system = await self.get_or_create_system_collection()
        if system.is_archived:
            logger.info(f"Un-archiving {system.name!r} (entry being added)")
            system = await self.repo.unarchive_collection(system.id)
        return system

    async def on_entry_added(self, collection_id: str | None) -> LifecycleEvent:
        """An entry was added to or reactivated in collection_id."""
        system = await self.repo.find_system_collection()
        if system is None or system.id != collection_id or not system.is_archived:
            return NO_CHANGE
        logger.info(f"Un-archiving {system.name!r} (entry reactivated)")
        await self.repo.unarchive_collection(system.id)
        return LifecycleEvent(unarchived=True, collection_id=system.id)

    async def on_entry_completed(self, entry: Entry) -> LifecycleEvent:
        """Archive the system collection if entry was its last active entry."""
        return await self._archive_if_idle(entry.collection_id)

    async def on_entry_reopened(self, entry: Entry) -> LifecycleEvent:
        return await self.on_entry_added(entry.collection_id)

    async def on_entry_moved_or_deleted(self, source_collection_id: str | None) -> LifecycleEvent:
        """Archive the source if it is the system collection and nothing active is left."""
        return await self._archive_if_idle(source_collection_id)

    async def _archive_if_idle(self, collection_id: str | None) -> LifecycleEvent:
        system = await self.repo.find_system_collection()
        if system is None or system.id != collection_id or system.is_archived:
            return NO_CHANGE

        active = await self.repo.count_active_entries(system.id)
        if active:
            logger.debug(f"{system.name!r} still has {active} active entries, keeping visible")
            return NO_CHANGE

        logger.info(f"Last active entry in {system.name!r} resolved, archiving")
        await self.repo.archive_collection(system.id)
        return LifecycleEvent(archived=True, collection_id=system.id)
