#!/usr/bin/env python
"""Command line entry point for a SQLite-backed note store."""
import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from notekeep import __version__
from notekeep.config import config
from notekeep.database import Database
from notekeep.exceptions import NotekeepError, NoteNotFoundError
from notekeep.observability import configure_logging, metrics

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Notekeep note store")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--database-path",
        help="SQLite database file path",
        type=str,
        default=os.environ.get("NOTEKEEP_DATABASE_PATH")
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("NOTEKEEP_LOG_LEVEL", "WARNING")
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Create or update a note")
    add.add_argument("--id", help="Existing note ID to update")
    add.add_argument("--title")
    body = add.add_mutually_exclusive_group()
    body.add_argument("--text", help="Markdown body")
    body.add_argument("--html", help="HTML (tiptap) body")
    add.add_argument("--tag", action="append", dest="tags", help="Tag (repeatable)")
    add.add_argument("--color")

    show = commands.add_parser("show", help="Show one note with its body")
    show.add_argument("note_id")

    listing = commands.add_parser("list", help="List notes")
    view = listing.add_mutually_exclusive_group()
    view.add_argument("--pinned", action="store_true")
    view.add_argument("--favorites", action="store_true")
    view.add_argument("--conflicted", action="store_true")
    view.add_argument("--tag")
    view.add_argument("--color")

    group = commands.add_parser("group", help="Group notes")
    group.add_argument("--by", choices=["abc", "month", "week", "year"])
    group.add_argument("--sort", choices=["asc", "desc"])

    delete = commands.add_parser("delete", help="Delete notes")
    delete.add_argument("note_ids", nargs="+")
    delete.add_argument("--hard", action="store_true", help="Skip the trash")

    notebook = commands.add_parser("notebook", help="Create a notebook")
    notebook.add_argument("title")
    notebook.add_argument("--topic", action="append", dest="topics", default=[])

    move = commands.add_parser("move", help="File notes under a notebook topic")
    move.add_argument("--notebook", required=True)
    move.add_argument("--topic", required=True)
    move.add_argument("note_ids", nargs="+")

    commands.add_parser("trash", help="List trashed notes")
    restore = commands.add_parser("restore", help="Restore notes from the trash")
    restore.add_argument("note_ids", nargs="+")
    purge = commands.add_parser("purge", help="Purge notes from the trash")
    purge.add_argument("note_ids", nargs="*")
    purge.add_argument("--expired", action="store_true", help="Only expired snapshots")

    repair = commands.add_parser("repair", help="Reconcile indexes with notes")
    repair.add_argument("--dry-run", action="store_true")
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.database_path:
        config.database_path = Path(args.database_path)


async def run_command(db: Database, args):
    """Execute one parsed command and return a JSON-serializable result."""
    notes = db.notes
    if args.command == "add":
        note = {"id": args.id, "title": args.title, "tags": args.tags, "color": args.color}
        note = {k: v for k, v in note.items() if v is not None}
        if args.text is not None:
            note["content"] = {"type": "markdown", "data": args.text}
        elif args.html is not None:
            note["content"] = {"type": "tiptap", "data": args.html}
        view = await notes.note(args.id) if args.id else None
        if view is not None and "tags" in note:
            # --tag adds to the tags an existing note already has
            note["tags"] = [*view.tags, *note["tags"]]
        return {"id": await notes.add(note)}
    if args.command == "show":
        view = await notes.note(args.note_id)
        if view is None:
            raise NoteNotFoundError(args.note_id)
        return {"note": view.data, "content": await view.content()}
    if args.command == "list":
        if args.pinned:
            return await notes.pinned()
        if args.favorites:
            return await notes.favorites()
        if args.conflicted:
            return await notes.conflicted()
        if args.tag:
            return await notes.tagged(args.tag)
        if args.color:
            return await notes.colored(args.color)
        return await notes.all()
    if args.command == "group":
        groups = await notes.group(args.by, args.sort)
        return {name: [n["id"] for n in items] for name, items in groups.items()}
    if args.command == "delete":
        if args.hard:
            return await notes.remove(*args.note_ids)
        return await notes.delete(*args.note_ids)
    if args.command == "notebook":
        return {"id": await db.notebooks.add({"title": args.title, "topics": args.topics})}
    if args.command == "move":
        await notes.move({"id": args.notebook, "topic": args.topic}, *args.note_ids)
        return {"moved": args.note_ids}
    if args.command == "trash":
        return await db.trash.all()
    if args.command == "restore":
        return await db.trash.restore(*args.note_ids)
    if args.command == "purge":
        if args.expired:
            return await db.trash.cleanup()
        await db.trash.delete(*args.note_ids)
        return args.note_ids
    if args.command == "repair":
        report = await db.reconciler.reconcile(dry_run=args.dry_run)
        return report.to_dict()
    raise ValueError(f"Unknown command {args.command}")


def main(argv=None):
    """Run one notekeep command against the configured database."""
    args = parse_args(argv)
    update_config(args)

    log_level = getattr(logging, args.log_level.upper(), logging.WARNING)
    try:
        configure_logging(log_dir=config.log_dir, level=log_level, console=True)
    except OSError as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logger.warning(f"Failed to configure file logging: {e}")

    db = Database.open_sql()
    try:
        result = asyncio.run(run_command(db, args))
    except NotekeepError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1
    finally:
        db.close()
        logger.debug(f"Operation metrics: {metrics.get_summary()}")

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
