"""CLI entry point for docsync."""

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Literal, Optional, cast

from docsync.config import load_config
from docsync.errors import ConfigError, DocSyncError
from docsync.models import SyncFolder, SyncOutcomeKind
from docsync.services import Services, open_services

logger = logging.getLogger(__name__)

DEFAULT_CHARACTER = "default"


def find_folder(services: Services, ref: str) -> SyncFolder:
    """Look a folder up by id, then by path."""
    folder = services.store.get_folder(ref)
    if folder is not None:
        return folder
    resolved = str(Path(ref).expanduser().resolve())
    for folder in services.store.list_folders():
        if folder.folder_path == resolved:
            return folder
    logger.error(f"No registered folder matches: {ref}")
    sys.exit(1)


def add(services: Services, args: argparse.Namespace) -> None:
    """Register a folder and optionally sync it right away."""
    path = Path(args.path).expanduser()
    if not path.is_dir():
        logger.error(f"Not a directory: {args.path}")
        sys.exit(1)

    folder = services.store.register_folder(
        args.character,
        str(path),
        display_name=args.name,
        recursive=not args.no_recursive,
        include_extensions=args.ext or (),
        exclude_patterns=args.exclude or (),
    )
    logger.info(f"Registered {folder.folder_path} as {folder.id}")

    if args.sync:
        _report(services.engine.sync_folder(folder.id))


def remove(services: Services, args: argparse.Namespace) -> None:
    folder = find_folder(services, args.folder)
    services.unregister(folder)
    logger.info(f"Removed {folder.folder_path}")


def list_folders(services: Services, args: argparse.Namespace) -> None:
    folders = services.store.list_folders(args.character)
    if args.json:
        print(json.dumps([f.to_dict() for f in folders], indent=2))
        return
    if not folders:
        print("No folders registered")
        return
    for f in folders:
        print(f"{f.id}  {f.status.value:<8} {f.file_count:>6} files {f.chunk_count:>8} chunks  {f.folder_path}")
        if f.last_error:
            print(f"    error: {f.last_error}")


def sync(services: Services, args: argparse.Namespace) -> None:
    """Sync one folder, or every unpaused folder, and wait for completion."""
    if args.folder:
        futures = [services.scheduler.schedule(find_folder(services, args.folder).id)]
    else:
        futures = services.scheduler.schedule_all(args.character)
    if not futures:
        logger.info("Nothing to sync")
        return

    try:
        for future in futures:
            if future is not None:
                _report(future.result())
    except KeyboardInterrupt:
        logger.info("Cancelling...")
        services.scheduler.cancel_all()
        services.scheduler.wait()


def _report(outcome) -> None:
    if outcome.kind is SyncOutcomeKind.SKIPPED:
        logger.info(f"Skipped {outcome.folder_id} (already syncing or paused)")
    elif outcome.kind is SyncOutcomeKind.FAILED:
        logger.error(f"Sync failed for {outcome.folder_id}: {outcome.error}")
    for path in outcome.failed_files:
        logger.warning(f"  failed: {path}")


def pause(services: Services, args: argparse.Namespace) -> None:
    folder = find_folder(services, args.folder)
    services.scheduler.cancel(folder.id)
    services.scheduler.wait_folder(folder.id)
    if services.store.pause_folder(folder.id):
        logger.info(f"Paused {folder.folder_path}")
    else:
        logger.error(f"Could not pause {folder.folder_path} (status: {folder.status.value})")
        sys.exit(1)


def resume(services: Services, args: argparse.Namespace) -> None:
    folder = find_folder(services, args.folder)
    if services.store.resume_folder(folder.id):
        logger.info(f"Resumed {folder.folder_path}")
    else:
        logger.error(f"{folder.folder_path} is not paused")
        sys.exit(1)


def search(services: Services, args: argparse.Namespace) -> None:
    folder_ids = [find_folder(services, ref).id for ref in args.folder or ()]
    result = services.searcher.try_search(
        args.query,
        character_id=args.character,
        folder_ids=folder_ids or None,
        top_k=args.limit,
    )
    if not result.ok:
        logger.error(f"Search failed ({result.kind.value}): {result.message}")
        sys.exit(1)

    hits = result.value
    if args.json:
        print(json.dumps([h.to_dict() for h in hits], indent=2))
        return
    if not hits:
        print(f"No results found for: {args.query}")
        return
    for i, hit in enumerate(hits, 1):
        print(f"{i}. [{hit.score:.3f}] {_location(hit)}")
        text = hit.text[:200].replace("\n", " ")
        print(f"   {text}{'...' if len(hit.text) > 200 else ''}")


def _location(hit) -> str:
    if hit.start_line is None:
        return hit.relative_path
    if hit.end_line is None or hit.end_line == hit.start_line:
        return f"{hit.relative_path}:{hit.start_line}"
    return f"{hit.relative_path}:{hit.start_line}-{hit.end_line}"


def status(services: Services, args: argparse.Namespace) -> None:
    print(json.dumps(services.status(args.character).to_dict(), indent=2))


def watch(services: Services, args: argparse.Namespace) -> None:
    """Sync everything once, then keep folders in sync until interrupted."""
    services.scheduler.schedule_all()
    watcher = services.watcher()
    watcher.start()
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Stopping...")
    finally:
        watcher.stop()


def serve(services: Services, args: argparse.Namespace) -> None:
    """Start the MCP server over the shared index."""
    # Import here to avoid loading MCP unless needed
    from docsync.server import create_mcp_server

    logger.info(f"Serving {services.config.db_path} via {args.transport}")
    watcher = services.watcher() if args.watch else None
    if watcher is not None:
        services.scheduler.schedule_all()
        watcher.start()
    try:
        mcp = create_mcp_server(services=services)
        mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], args.transport))
    finally:
        if watcher is not None:
            watcher.stop()


def deck(services: Services, args: argparse.Namespace) -> None:
    """Launch the sync deck TUI."""
    from docsync.deck import SyncDeck

    SyncDeck(services).run()


COMMANDS = {
    "add": add,
    "remove": remove,
    "list": list_folders,
    "sync": sync,
    "pause": pause,
    "resume": resume,
    "search": search,
    "status": status,
    "watch": watch,
    "serve": serve,
    "deck": deck,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsync",
        description="docsync - folder sync and hybrid search for agents",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--db", help="Database path (overrides DOCSYNC_DB_PATH)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # add command
    add_parser = subparsers.add_parser("add", help="Register a folder for syncing")
    add_parser.add_argument("path", help="Folder to sync")
    add_parser.add_argument("--character", default=DEFAULT_CHARACTER, help="Owning agent id")
    add_parser.add_argument("--name", help="Display name (default: folder name)")
    add_parser.add_argument("--no-recursive", action="store_true", help="Top level only")
    add_parser.add_argument("--ext", action="append", help="Only index this extension (repeatable)")
    add_parser.add_argument("--exclude", action="append", help="Extra exclude pattern (repeatable)")
    add_parser.add_argument("--sync", action="store_true", help="Sync immediately")

    remove_parser = subparsers.add_parser("remove", help="Unregister a folder and drop its index")
    remove_parser.add_argument("folder", help="Folder id or path")

    list_parser = subparsers.add_parser("list", help="List registered folders")
    list_parser.add_argument("--character", help="Only this agent's folders")
    list_parser.add_argument("--json", action="store_true", help="JSON output")

    sync_parser = subparsers.add_parser("sync", help="Run a sync cycle")
    sync_parser.add_argument("folder", nargs="?", help="Folder id or path (default: all)")
    sync_parser.add_argument("--character", help="Only this agent's folders")

    pause_parser = subparsers.add_parser("pause", help="Suspend automatic syncing")
    pause_parser.add_argument("folder", help="Folder id or path")

    resume_parser = subparsers.add_parser("resume", help="Resume a paused folder")
    resume_parser.add_argument("folder", help="Folder id or path")

    # search command
    search_parser = subparsers.add_parser("search", help="Hybrid search across synced folders")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("-k", "--limit", type=int, default=None, help="Number of results")
    search_parser.add_argument("--character", help="Only this agent's folders")
    search_parser.add_argument("--folder", action="append", help="Restrict to folder (repeatable)")
    search_parser.add_argument("--json", action="store_true", help="JSON output")

    status_parser = subparsers.add_parser("status", help="Show aggregated sync status")
    status_parser.add_argument("--character", help="Only this agent's folders")

    subparsers.add_parser("watch", help="Watch folders and sync on change")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start MCP server")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    serve_parser.add_argument("--watch", action="store_true", help="Also watch folders")

    subparsers.add_parser("deck", help="Launch the sync deck TUI")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    try:
        env = None
        if args.db:
            env = {**os.environ, "DOCSYNC_DB_PATH": args.db}
        config = load_config(env)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    if not config.enabled and args.command not in ("status", "list"):
        logger.error("Folder sync is disabled (DOCSYNC_ENABLED=false)")
        sys.exit(1)

    services = open_services(config)
    try:
        COMMANDS[args.command](services, args)
    except DocSyncError as e:
        logger.error(str(e))
        sys.exit(1)
    finally:
        services.close()


if __name__ == "__main__":
    main()
