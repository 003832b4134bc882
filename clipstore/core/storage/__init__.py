"""Data persistence and storage management"""

from .connection import Connection, Strategy, open_connection
from .drivers import IdleDriver, PollingDriver, create_driver
from .executor import StatementExecutor
from .repository import EntryFilter, EntryStore
from .scheduler import AsyncioScheduler, CancellationToken, Scheduler

__all__ = [
    'AsyncioScheduler', 'CancellationToken', 'Connection', 'EntryFilter', 'EntryStore',
    'IdleDriver', 'PollingDriver', 'Scheduler', 'StatementExecutor', 'Strategy',
    'create_driver', 'open_connection',
]
