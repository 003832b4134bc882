"""Application wiring and command line interface"""

import argparse
import asyncio
import sys
from typing import List, Optional
from loguru import logger

from . import __version__
from .core.actions import (
    ActionConfig, applicable_actions, is_default_action, load_config, upgrade_config,
)
from .core.clipboard import ClipboardEntry, ItemType
from .core.errors import DatabaseConnectionError, NotFoundError, StorageError
from .core.storage import AsyncioScheduler, EntryFilter, EntryStore, create_driver
from .utils import ConfigManager, get_data_dir, setup_logging

PREVIEW_LENGTH = 60


def truncate_text(text: str, max_len: int = PREVIEW_LENGTH) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


class ClipStoreApp:
    """Owns the settings, the entry store and the action configuration"""

    def __init__(self, settings_path: Optional[str] = None):
        """
        Initialize application

        Args:
            settings_path: Settings file (defaults to the config directory)
        """
        self.settings_path = settings_path
        self.config_manager: Optional[ConfigManager] = None
        self.store: Optional[EntryStore] = None
        self.actions: Optional[ActionConfig] = None

    def load_settings(self) -> bool:
        """Load settings and configure logging"""
        self.config_manager = ConfigManager(self.settings_path)
        self._setup_logging()

        if not self.config_manager.validate():
            logger.error("Invalid configuration")
            return False
        return True

    def _setup_logging(self):
        log_dir = None
        if self.config_manager.get('logging.file_logging'):
            log_dir = get_data_dir() / 'logs'

        setup_logging(
            level=self.config_manager.get('logging.level', 'INFO'),
            log_dir=log_dir,
            rotation=self.config_manager.get('logging.rotation', '1 day'),
            retention=self.config_manager.get('logging.retention', '7 days'),
        )

    def load_actions(self) -> ActionConfig:
        """Load the action configuration, merging new bundled actions first if enabled"""
        path = self.config_manager.actions_path()

        if self.config_manager.get('actions.merge_on_startup', True):
            try:
                upgrade_config(path)
            except OSError as e:
                logger.error(f"Failed to save upgraded actions config: {e}")

        self.actions = load_config(path, save=True)
        return self.actions

    async def initialize(self) -> bool:
        """Initialize all components"""
        if self.config_manager is None and not self.load_settings():
            return False

        logger.info("Loading actions...")
        self.load_actions()

        logger.info("Opening clipboard database...")
        driver = create_driver(
            self.config_manager.get('storage.driver'),
            self.config_manager.connection_string()
        )
        try:
            self.store = await EntryStore.open(
                driver,
                AsyncioScheduler(),
                poll_interval=int(self.config_manager.get('storage.poll_interval')),
                max_attempts=int(self.config_manager.get('storage.poll_attempts')),
            )
        except (DatabaseConnectionError, StorageError) as e:
            logger.error(f"Failed to open clipboard database: {e}")
            return False

        return True

    def shutdown(self):
        if self.store is not None:
            self.store.close()
            self.store = None
        logger.info("Shutdown complete")


def format_entry(entry: ClipboardEntry) -> str:
    pin = '*' if entry.pinned else ' '
    tag = f" [{entry.tag}]" if entry.tag else ''
    return f"{entry.id:>6} {pin} {entry.type.value:<9} {truncate_text(entry.content)}{tag}"


async def cmd_list(app: ClipStoreApp, args) -> int:
    entry_filter = EntryFilter(
        type=args.type,
        tag=args.tag,
        pinned=True if args.pinned else None,
        search=args.search,
        limit=args.limit,
    )
    async for entry in app.store.list(entry_filter):
        print(format_entry(entry))
    return 0


async def cmd_add(app: ClipStoreApp, args) -> int:
    entry = await app.store.insert(
        ClipboardEntry(type=ItemType(args.type), content=args.content, tag=args.tag, pinned=args.pin)
    )
    print(entry.id)
    return 0


async def cmd_tag(app: ClipStoreApp, args) -> int:
    await app.store.update(args.id, tag=args.tag)
    return 0


async def cmd_delete(app: ClipStoreApp, args) -> int:
    await app.store.delete(args.id)
    return 0


async def cmd_clear(app: ClipStoreApp, args) -> int:
    deleted = await app.store.clear(keep_pinned=not args.all)
    print(f"Deleted {deleted} entries")
    return 0


async def cmd_actions(app: ClipStoreApp, args) -> int:
    entry = await app.store.get(args.id)
    if entry is None:
        raise NotFoundError(args.id)

    for action, captures in applicable_actions(app.actions, entry):
        marker = '(default)' if is_default_action(app.actions, entry, action) else ''
        groups = ', '.join('' if c is None else repr(c) for c in captures[1:])
        print(f"{action.id:<20} {action.name:<20} {marker:<9} {groups}".rstrip())
    return 0


COMMANDS = {
    'list': cmd_list,
    'add': cmd_add,
    'tag': cmd_tag,
    'delete': cmd_delete,
    'clear': cmd_clear,
    'actions': cmd_actions,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='clipstore',
        description="Clipboard history store and action configuration",
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--settings', help="Settings file (YAML)")
    sub = parser.add_subparsers(dest='command', required=True)

    types = [t.value for t in ItemType]

    p = sub.add_parser('list', help="List clipboard history")
    p.add_argument('--type', choices=types)
    p.add_argument('--tag')
    p.add_argument('--search')
    p.add_argument('--pinned', action='store_true')
    p.add_argument('--limit', type=int, default=25)

    p = sub.add_parser('add', help="Add an entry")
    p.add_argument('content')
    p.add_argument('--type', choices=types, default=ItemType.TEXT.value)
    p.add_argument('--tag')
    p.add_argument('--pin', action='store_true')

    p = sub.add_parser('tag', help="Set or clear the tag of an entry")
    p.add_argument('id', type=int)
    p.add_argument('tag', nargs='?')

    p = sub.add_parser('delete', help="Delete an entry")
    p.add_argument('id', type=int)

    p = sub.add_parser('clear', help="Clear clipboard history")
    p.add_argument('--all', action='store_true', help="Also delete pinned entries")

    p = sub.add_parser('actions', help="Show the actions applicable to an entry")
    p.add_argument('id', type=int)

    sub.add_parser('upgrade-actions', help="Add new bundled actions to the actions config")

    return parser


async def run(args) -> int:
    app = ClipStoreApp(args.settings)
    if not app.load_settings():
        return 1

    if args.command == 'upgrade-actions':
        added = upgrade_config(app.config_manager.actions_path())
        print(f"Added {added} actions")
        return 0

    if not await app.initialize():
        return 1

    try:
        return await COMMANDS[args.command](app, args)
    except NotFoundError as e:
        print(e, file=sys.stderr)
        return 1
    except StorageError as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        return 1
    finally:
        app.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))
