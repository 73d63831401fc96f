"""calmnote CLI - notebook from the terminal."""

import asyncio
import json
import logging
import sys
from typing import Any, Coroutine

import click

from .adapters.json_store import JsonFileNotebookRepository
from .config import load_config
from .core.errors import CalmnoteError, ValidationError, user_message
from .core.filters import filter_label, parse_filter
from .core.models import Checklist, ChecklistItem, Collection, Entry, Note, Priority, Task
from .core.names import canonicalize
from .core.reordering import SectionHeader
from .core.timeline import format_due
from .lifecycle import LifecycleEvent
from .workflows import Notebook

PRIORITY_MARKERS = {Priority.FOCUS: "!", Priority.NORMAL: " ", Priority.LOW: "."}
DUE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]


def _notebook() -> Notebook:
    config = load_config()
    return Notebook(JsonFileNotebookRepository(config.data_file), config)


def _run(coro: Coroutine) -> Any:
    """Run a workflow, turning engine errors into a message and exit code 1."""
    try:
        return asyncio.run(coro)
    except ValidationError as e:
        click.echo(f"Error: {e.format()}", err=True)
        sys.exit(1)
    except CalmnoteError as e:
        click.echo(f"Error: {user_message(e)}", err=True)
        sys.exit(1)
    except (ValueError, TypeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


async def _find_collection(nb: Notebook, ref: str) -> Collection:
    """Match a collection by id, id prefix, or name (case/whitespace-insensitive)."""
    collections = await nb.repo.list_collections(include_archived=True)
    for collection in collections:
        if collection.id == ref or canonicalize(collection.name) == canonicalize(ref):
            return collection
    matches = [c for c in collections if c.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    raise click.ClickException(f"No collection matching {ref!r}")


async def _find_entry(nb: Notebook, ref: str) -> Entry:
    entries = await nb.repo.list_active_entries_across_collections()
    matches = [e for e in entries if e.id == ref or e.id.startswith(ref)]
    if len(matches) != 1:
        raise click.ClickException(f"No unique entry matching {ref!r}")
    return matches[0]


async def _find_item(nb: Notebook, ref: str) -> ChecklistItem:
    entries = await nb.repo.list_active_entries_across_collections()
    matches = []
    for entry in entries:
        if isinstance(entry, Checklist):
            items = await nb.repo.list_checklist_items(entry.id)
            matches.extend(i for i in items if i.id.startswith(ref))
    if len(matches) != 1:
        raise click.ClickException(f"No unique checklist item matching {ref!r}")
    return matches[0]


def _short(item_id: str) -> str:
    return item_id[:8]


def _report(event: LifecycleEvent) -> None:
    if event.archived:
        click.echo("Unsorted is empty and has been archived.")
    elif event.unarchived:
        click.echo("Unsorted is back.")


def _task_line(task: Task, nb: Notebook) -> str:
    marker = PRIORITY_MARKERS[task.priority]
    check = "x" if task.completed else " "
    due = f" ({format_due(task.due_date, nb.now())})" if task.due_date else ""
    return f"[{check}]{marker} {_short(task.id)}  {task.title}{due}"


def _serialize_task(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "collection_id": task.collection_id,
        "priority": task.priority.name.lower(),
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "completed": task.completed,
    }


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Verbose logging")
def main(debug: bool):
    """calmnote - tasks, notes and checklists."""
    config = load_config()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else config.log_level,
    )


@main.command()
@click.option(
    "--filter", "-f", "task_filter", default=None,
    help="all, today, overdue, upcoming, no-date or completed",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tasks(task_filter: str | None, as_json: bool):
    """List tasks grouped by due date."""
    nb = _notebook()
    grouped = _run(nb.tasks_view(task_filter))

    if as_json:
        click.echo(
            json.dumps(
                {bucket.value: [_serialize_task(t) for t in entries] for bucket, entries in grouped.sections()},
                indent=2,
            )
        )
        return

    selector = parse_filter(task_filter or nb.config.default_filter)
    if not len(grouped):
        click.echo(f"No tasks for {filter_label(selector)}.")
        return

    first = True
    for bucket, entries in grouped.sections():
        if not first:
            click.echo()
        first = False
        click.echo(f"### {bucket.value.replace('_', ' ').title()}")
        for task in entries:
            click.echo(f"  {_task_line(task, nb)}")


@main.command()
@click.argument("title")
@click.option("--collection", "-c", default=None, help="Collection name or id (default: Unsorted)")
@click.option("--due", type=click.DateTime(formats=DUE_FORMATS), default=None, help="YYYY-MM-DD[ HH:MM]")
@click.option(
    "--priority", "-p",
    type=click.Choice(["focus", "normal", "low"], case_sensitive=False),
    default="normal",
)
def add(title: str, collection: str | None, due, priority: str):
    """Add a task."""
    nb = _notebook()

    async def flow() -> Task:
        target = (await _find_collection(nb, collection)).id if collection else None
        return await nb.create_task(title, target, due_date=due, priority=Priority.parse(priority))

    task = _run(flow())
    click.echo(f"Added {_short(task.id)}: {task.title}")


@main.command()
@click.argument("title")
@click.option("--body", "-b", default=None, help="Note text")
@click.option("--collection", "-c", default=None, help="Collection name or id (default: Unsorted)")
def note(title: str, body: str | None, collection: str | None):
    """Add a note."""
    nb = _notebook()

    async def flow() -> Note:
        target = (await _find_collection(nb, collection)).id if collection else None
        return await nb.create_note(title, body, target)

    created = _run(flow())
    click.echo(f"Added note {_short(created.id)}: {created.title}")


@main.command()
@click.argument("title")
@click.option("--item", "-i", "items", multiple=True, help="Checklist item (repeatable)")
@click.option("--collection", "-c", default=None, help="Collection name or id (default: Unsorted)")
def checklist(title: str, items: tuple[str, ...], collection: str | None):
    """Add a checklist with items."""
    nb = _notebook()

    async def flow():
        target = (await _find_collection(nb, collection)).id if collection else None
        return await nb.create_checklist(title, list(items), target)

    view = _run(flow())
    click.echo(f"Added checklist {_short(view.checklist.id)}: {view.checklist.title} [{view.stats.format()}]")


@main.command()
@click.argument("entry_id")
def done(entry_id: str):
    """Complete a task."""
    nb = _notebook()

    async def flow() -> LifecycleEvent:
        entry = await _find_entry(nb, entry_id)
        return await nb.complete_task(entry.id)

    _report(_run(flow()))
    click.echo("Done.")


@main.command()
@click.argument("entry_id")
def undo(entry_id: str):
    """Reopen a completed task."""
    nb = _notebook()

    async def flow() -> LifecycleEvent:
        entry = await _find_entry(nb, entry_id)
        return await nb.reopen_task(entry.id)

    _report(_run(flow()))
    click.echo("Reopened.")


@main.command()
@click.argument("entry_id")
def delete(entry_id: str):
    """Delete a task, note or checklist."""
    nb = _notebook()

    async def flow() -> LifecycleEvent:
        entry = await _find_entry(nb, entry_id)
        return await nb.delete_entry(entry.id)

    _report(_run(flow()))
    click.echo("Deleted.")


@main.command()
@click.argument("entry_id")
@click.argument("collection")
def move(entry_id: str, collection: str):
    """Move an entry to another collection."""
    nb = _notebook()

    async def flow() -> LifecycleEvent:
        entry = await _find_entry(nb, entry_id)
        target = await _find_collection(nb, collection)
        return await nb.move_entry(entry.id, target.id)

    _report(_run(flow()))
    click.echo("Moved.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def collections(as_json: bool):
    """List visible collections, pinned first."""
    nb = _notebook()
    rows = _run(nb.collection_board())

    if as_json:
        click.echo(
            json.dumps(
                [
                    {"id": c.id, "name": c.name, "is_pinned": c.is_pinned, "is_system": c.is_system}
                    for c in rows
                    if not isinstance(c, SectionHeader)
                ],
                indent=2,
            )
        )
        return

    if not rows:
        click.echo("No collections yet.")
        return

    for row in rows:
        if isinstance(row, SectionHeader):
            click.echo(row.title)
            continue
        icon = f"{row.icon} " if row.icon else ""
        click.echo(f"  {_short(row.id)}  {icon}{row.name}")


@main.command()
@click.argument("collection")
def show(collection: str):
    """Show the entries of one collection in manual order."""
    nb = _notebook()

    async def flow():
        target = await _find_collection(nb, collection)
        entries = await nb.collection_entries(target.id)
        stats = await nb.collection_checklist_stats(target.id)
        items = {
            e.id: await nb.repo.list_checklist_items(e.id) for e in entries if isinstance(e, Checklist)
        }
        return target, entries, stats, items

    target, entries, stats, items = _run(flow())
    click.echo(f"### {target.name}")
    if not entries:
        click.echo("  (empty)")
        return
    for entry in entries:
        if isinstance(entry, Task):
            click.echo(f"  {_task_line(entry, nb)}")
        elif isinstance(entry, Checklist):
            click.echo(f"  [{stats[entry.id].format()}] {_short(entry.id)}  {entry.title}")
            for item in items[entry.id]:
                mark = "x" if item.checked else " "
                click.echo(f"      [{mark}] {_short(item.id)}  {item.title}")
        else:
            click.echo(f"  [note] {_short(entry.id)}  {entry.title}")


@main.command("new-collection")
@click.argument("name")
def new_collection(name: str):
    """Create a collection."""
    created = _run(_notebook().create_collection(name))
    click.echo(f"Created {_short(created.id)}: {created.name}")


@main.command()
@click.argument("collection")
@click.argument("name")
def rename(collection: str, name: str):
    """Rename a collection."""
    nb = _notebook()

    async def flow() -> Collection:
        target = await _find_collection(nb, collection)
        return await nb.rename_collection(target.id, name)

    renamed = _run(flow())
    click.echo(f"Renamed to {renamed.name}")


@main.command("delete-collection")
@click.argument("collection")
def delete_collection(collection: str):
    """Delete a collection and everything in it."""
    nb = _notebook()

    async def flow() -> Collection:
        target = await _find_collection(nb, collection)
        return await nb.delete_collection(target.id)

    deleted = _run(flow())
    click.echo(f"Deleted {deleted.name}")


def _set_pinned(collection: str, pinned: bool) -> Collection:
    nb = _notebook()

    async def flow() -> Collection:
        target = await _find_collection(nb, collection)
        return await nb.set_pinned(target.id, pinned)

    return _run(flow())


@main.command()
@click.argument("collection")
def pin(collection: str):
    """Pin a collection to the top."""
    pinned = _set_pinned(collection, True)
    click.echo(f"Pinned {pinned.name}")


@main.command()
@click.argument("collection")
def unpin(collection: str):
    """Unpin a collection."""
    unpinned = _set_pinned(collection, False)
    click.echo(f"Unpinned {unpinned.name}")


@main.command()
@click.argument("item_id")
@click.option("--uncheck", is_flag=True, help="Clear the check mark instead")
def check(item_id: str, uncheck: bool):
    """Check a checklist item."""
    nb = _notebook()

    async def flow() -> ChecklistItem:
        item = await _find_item(nb, item_id)
        return await nb.set_item_checked(item.id, not uncheck)

    item = _run(flow())
    click.echo(f"{'Unchecked' if uncheck else 'Checked'} {item.title}")


if __name__ == "__main__":
    main()
