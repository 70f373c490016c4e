#!/usr/bin/env python3

import argparse
import logging
import signal
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from cliptrail.clipboard import ClipboardProvider, get_clipboard_provider
from cliptrail.config import HistoryConfig
from cliptrail.database import DiskStore
from cliptrail.models import ClipboardKind, ClipboardRecord
from cliptrail.services import ClipboardMonitor, HistoryCache, InternalWriteGuard, ItemClassifier
from cliptrail.utils import FileManager

logger = logging.getLogger(__name__)


class ClipTrailApp:
    """Wires the store, cache and monitor together and owns their lifecycle."""

    def __init__(self, config: HistoryConfig, provider: Optional[ClipboardProvider] = None):
        self.config = config
        self.provider = provider
        self.file_manager = FileManager(config.images_dir)
        self.store = DiskStore(config.storage_dir, self.file_manager)
        self.write_guard = InternalWriteGuard(config.suppress_window)
        self.cache = HistoryCache(
            self.store,
            provider,
            write_guard=self.write_guard,
            max_items=config.max_items,
            batch_size=config.batch_size,
        )
        self.monitor: Optional[ClipboardMonitor] = None
        self.running = False
        self._opened = False

    def open(self) -> None:
        if self._opened:
            return
        self.cache.load_initial()
        if self.config.auto_cleanup:
            self.cache.cleanup_older_than(self.config.max_history_days)
        self._opened = True

    def attach_provider(self, provider: ClipboardProvider) -> None:
        self.provider = provider
        self.cache.provider = provider

    def start(self) -> None:
        if self.running:
            return

        self.open()
        if self.provider is None:
            self.attach_provider(get_clipboard_provider())

        self.monitor = ClipboardMonitor(
            self.provider,
            ItemClassifier(self.file_manager),
            self.cache,
            write_guard=self.write_guard,
            poll_interval=self.config.poll_interval,
        )
        self.monitor.start()
        self.running = True
        print(f"ClipTrail recording clipboard history to {self.config.storage_dir}. Press Ctrl+C to stop")

    def stop(self) -> None:
        if not self.running:
            return

        self.running = False
        if self.monitor:
            self.monitor.stop()
        self.cache.shutdown()
        print("ClipTrail stopped")

    def run_forever(self) -> None:
        self.start()

        try:
            while self.running:
                time.sleep(1.0)
        except KeyboardInterrupt:
            print("\nStopping...")
        finally:
            self.stop()

    def history(self, pinned: bool = False, query: str = "", limit: int = 20) -> List[ClipboardRecord]:
        self.open()
        if pinned:
            return self.cache.pinned_view(query)[:limit]

        while len(self.cache.unpinned_view(query)) < limit and self.cache.has_more:
            if not self.cache.load_more():
                break
        return self.cache.unpinned_view(query)[:limit]


def format_record(record: ClipboardRecord) -> str:
    if record.kind == ClipboardKind.TEXT:
        summary = record.preview_text.replace("\n", " ")
    elif record.kind == ClipboardKind.IMAGE:
        summary = record.payload.image_path
    else:
        summary = record.payload.path or record.payload.file_name
    pin = "*" if record.pinned else " "
    tag = f" #{record.tag}" if record.tag else ""
    return f"{pin} {record.id}  {record.formatted_timestamp}  [{record.kind.value}]{tag}  {summary}"


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="ClipTrail - clipboard history recorder"
    )

    parser.add_argument(
        "--storage-dir",
        type=Path,
        default=None,
        help="History directory (default: $CLIPTRAIL_STORAGE_DIR or ~/.cliptrail/history)"
    )

    parser.add_argument(
        "-i", "--poll-interval",
        type=float,
        default=None,
        help="Clipboard polling interval in seconds (default: 0.5)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    commands = parser.add_subparsers(dest="command")

    commands.add_parser("run", help="Record clipboard history until interrupted")

    list_parser = commands.add_parser("list", help="Show clipboard history")
    list_parser.add_argument("--pinned", action="store_true", help="Show pinned records only")
    list_parser.add_argument("-q", "--query", default="", help="Case-insensitive search")
    list_parser.add_argument("-n", "--limit", type=int, default=20, help="Maximum records (default: 20)")

    pin_parser = commands.add_parser("pin", help="Pin or unpin a record")
    pin_parser.add_argument("record_id")

    tag_parser = commands.add_parser("tag", help="Set or clear a record's tag")
    tag_parser.add_argument("record_id")
    tag_parser.add_argument("tag", nargs="?", default=None)

    delete_parser = commands.add_parser("delete", help="Delete a record")
    delete_parser.add_argument("record_id")

    copy_parser = commands.add_parser("copy", help="Copy a record back to the clipboard")
    copy_parser.add_argument("record_id")

    commands.add_parser("clear", help="Erase all clipboard history")

    cleanup_parser = commands.add_parser("cleanup", help="Delete unpinned history older than N days")
    cleanup_parser.add_argument("--days", type=int, default=None, help="Age limit (default: 30)")

    return parser.parse_args(argv)


def build_config(args) -> HistoryConfig:
    config = HistoryConfig.from_env()
    if args.storage_dir is not None:
        config = replace(config, storage_dir=args.storage_dir.expanduser())
    if args.poll_interval is not None:
        config = replace(config, poll_interval=args.poll_interval)
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s: %(message)s',
    )

    try:
        config = build_config(args)
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    app = ClipTrailApp(config)
    command = args.command or "run"

    if command == "run":
        def signal_handler(signum, frame):
            app.stop()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        try:
            app.run_forever()
        except Exception as e:
            logger.error("Fatal error: %s", e)
            return 1
        return 0

    if command == "list":
        for record in app.history(pinned=args.pinned, query=args.query, limit=args.limit):
            print(format_record(record))
        return 0

    if command == "clear":
        app.open()
        app.cache.clear_all()
        print("Clipboard history cleared")
        return 0

    if command == "cleanup":
        app.cache.load_initial()
        days = args.days if args.days is not None else config.max_history_days
        removed = app.cache.cleanup_older_than(days)
        print(f"Removed {removed} record(s) older than {days} day(s)")
        return 0

    app.open()
    record = app.cache.get(args.record_id)
    if record is None:
        print(f"No record {args.record_id} in recent history", file=sys.stderr)
        return 1

    if command == "pin":
        updated = app.cache.toggle_pin(record.id)
        print(f"{'Pinned' if updated.pinned else 'Unpinned'} {record.id}")
    elif command == "tag":
        updated = app.cache.update_tag(record.id, args.tag)
        print(f"Tag of {record.id}: {updated.tag or '(none)'}")
    elif command == "delete":
        app.cache.delete(record.id)
        print(f"Deleted {record.id}")
    elif command == "copy":
        app.attach_provider(get_clipboard_provider())
        if not app.cache.copy_to_clipboard(record):
            return 1
        print(f"Copied {record.id} to the clipboard")
    app.cache.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
