"""Clipboard entry store built on the statement executor"""

import asyncio
import json
from dataclasses import dataclass, replace
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from sqlalchemy import delete, func, insert, select, update
from loguru import logger

from .connection import open_connection
from .database import ENTRIES, convert_datetime, parse_datetime, schema_statements
from .drivers import LastRow, RowSet
from .executor import StatementExecutor, wait_for_result
from .scheduler import CancellationToken, Scheduler
from ..clipboard.entry import ClipboardEntry, ItemType
from ..errors import NotFoundError, QueryError, QueryTimeoutError, StorageError

UPDATABLE_FIELDS = frozenset({'type', 'content', 'pinned', 'tag', 'timestamp', 'metadata'})


@dataclass
class EntryFilter:
    """Criteria for listing entries; unset fields match everything"""
    type: Optional[ItemType] = None
    tag: Optional[str] = None
    pinned: Optional[bool] = None
    search: Optional[str] = None
    limit: Optional[int] = None
    offset: int = 0

    def apply(self, statement):
        if self.type is not None:
            statement = statement.where(ENTRIES.c.type == ItemType(self.type).value)
        if self.tag is not None:
            statement = statement.where(ENTRIES.c.tag == self.tag)
        if self.pinned is not None:
            statement = statement.where(ENTRIES.c.pinned.is_(bool(self.pinned)))
        if self.search:
            statement = statement.where(ENTRIES.c.content.contains(self.search, autoescape=True))
        return statement


class EntryQuery:
    """
    Lazy, restartable listing of entries

    Every iteration issues the select again, so iterating twice reflects
    writes made in between.
    """

    def __init__(self, store: 'EntryStore', entry_filter: EntryFilter,
                 cancellable: Optional[CancellationToken] = None):
        self._store = store
        self._filter = entry_filter
        self._cancellable = cancellable

    def statement(self):
        statement = self._filter.apply(select(ENTRIES))
        statement = statement.order_by(ENTRIES.c.timestamp.desc(), ENTRIES.c.id.desc())
        if self._filter.limit is not None:
            statement = statement.limit(self._filter.limit)
        if self._filter.offset:
            statement = statement.offset(self._filter.offset)
        return statement

    def __aiter__(self) -> AsyncIterator[ClipboardEntry]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ClipboardEntry]:
        rows = await self._store._select(self.statement(), self._cancellable)
        for row in rows:
            yield self._store._row_to_entry(row)

    async def all(self) -> List[ClipboardEntry]:
        return [entry async for entry in self]


class EntryStore:
    """CRUD over clipboard entries; unaware of which driver generation is in use"""

    def __init__(self, executor: StatementExecutor):
        """
        Initialize store

        Args:
            executor: Statement executor owning an open connection
        """
        self.executor = executor

    @classmethod
    async def open(cls, driver: Any, scheduler: Scheduler,
                   poll_interval: int = StatementExecutor.POLL_INTERVAL,
                   max_attempts: int = StatementExecutor.MAX_POLL_ATTEMPTS) -> 'EntryStore':
        """
        Open a driver, create the schema and return a ready store

        Raises:
            DatabaseConnectionError: The database could not be opened
        """
        connection = await asyncio.wrap_future(open_connection(driver, scheduler))
        store = cls(StatementExecutor(connection, poll_interval, max_attempts))
        try:
            await store.init_db()
        except StorageError:
            connection.close()
            raise
        return store

    async def init_db(self) -> None:
        for statement in schema_statements():
            await self._write(statement)
        logger.debug("Entry schema ready")

    async def __aenter__(self) -> 'EntryStore':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        self.executor.connection.close()

    async def insert(self, entry: ClipboardEntry,
                     cancellable: Optional[CancellationToken] = None) -> ClipboardEntry:
        """
        Store a new entry

        Returns:
            Copy of the entry carrying its assigned id
        """
        values = {
            'type': entry.type.value,
            'content': entry.content,
            'pinned': bool(entry.pinned),
            'tag': entry.tag,
            'timestamp': convert_datetime(entry.timestamp),
            'entry_metadata': self._dump_metadata(entry.metadata),
        }
        _, last_row = await self._write(insert(ENTRIES).values(**self._expr_values(values)), cancellable)

        if not last_row or last_row.get('id') is None:
            raise StorageError("Insert did not report the new row id")

        logger.debug(f"Inserted entry {last_row['id']} ({entry.type.value})")
        return replace(entry, id=last_row['id'])

    async def get(self, entry_id: int,
                  cancellable: Optional[CancellationToken] = None) -> Optional[ClipboardEntry]:
        rows = await self._select(select(ENTRIES).where(ENTRIES.c.id == entry_id), cancellable)
        return self._row_to_entry(rows[0]) if len(rows) else None

    async def update(self, entry_id: int, cancellable: Optional[CancellationToken] = None,
                     **fields: Any) -> None:
        """
        Update fields of an entry

        Args:
            entry_id: Entry to update
            **fields: Any of type, content, pinned, tag, timestamp, metadata

        Raises:
            NotFoundError: No entry has this id
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if not fields:
            raise ValueError("No fields to update")

        values = {}
        for key, value in fields.items():
            if key == 'type':
                values['type'] = ItemType(value).value
            elif key == 'pinned':
                values['pinned'] = bool(value)
            elif key == 'timestamp':
                values['timestamp'] = convert_datetime(value)
            elif key == 'metadata':
                values['entry_metadata'] = self._dump_metadata(value)
            else:
                values[key] = value

        statement = update(ENTRIES).where(ENTRIES.c.id == entry_id).values(**self._expr_values(values))
        affected, _ = await self._write(statement, cancellable)
        if affected == 0:
            raise NotFoundError(entry_id)

        logger.debug(f"Updated entry {entry_id}: {', '.join(sorted(fields))}")

    async def delete(self, entry_id: int, cancellable: Optional[CancellationToken] = None) -> None:
        """
        Delete an entry

        Raises:
            NotFoundError: No entry has this id
        """
        affected, _ = await self._write(delete(ENTRIES).where(ENTRIES.c.id == entry_id), cancellable)
        if affected == 0:
            raise NotFoundError(entry_id)

        logger.debug(f"Deleted entry {entry_id}")

    def list(self, entry_filter: Optional[EntryFilter] = None,
             cancellable: Optional[CancellationToken] = None) -> EntryQuery:
        return EntryQuery(self, entry_filter or EntryFilter(), cancellable)

    async def count(self, entry_filter: Optional[EntryFilter] = None,
                    cancellable: Optional[CancellationToken] = None) -> int:
        entry_filter = entry_filter or EntryFilter()
        statement = entry_filter.apply(select(func.count().label('count')).select_from(ENTRIES))
        rows = await self._select(statement, cancellable)
        return int(rows[0]['count'])

    async def clear(self, keep_pinned: bool = True,
                    cancellable: Optional[CancellationToken] = None) -> int:
        """
        Clear the history

        Args:
            keep_pinned: Leave pinned entries in place

        Returns:
            Number of entries deleted
        """
        statement = delete(ENTRIES)
        if keep_pinned:
            statement = statement.where(ENTRIES.c.pinned.is_(False))

        affected, _ = await self._write(statement, cancellable)
        logger.info(f"Cleared clipboard history ({affected} entries)")
        return affected

    def _expr_values(self, values: Dict[str, Any]) -> Dict[str, Any]:
        connection = self.executor.connection
        return {key: connection.expr_value(value) for key, value in values.items()}

    async def _select(self, statement, cancellable: Optional[CancellationToken] = None) -> RowSet:
        cancellable = cancellable or CancellationToken()
        try:
            return await wait_for_result(self.executor.execute_select(statement, cancellable), cancellable)
        except (QueryError, QueryTimeoutError) as e:
            raise StorageError(f"Query failed: {e}") from e

    async def _write(self, statement,
                     cancellable: Optional[CancellationToken] = None) -> Tuple[int, LastRow]:
        cancellable = cancellable or CancellationToken()
        try:
            return await wait_for_result(self.executor.execute_non_select(statement, cancellable), cancellable)
        except (QueryError, QueryTimeoutError) as e:
            raise StorageError(f"Write failed: {e}") from e

    @staticmethod
    def _dump_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
        return json.dumps(metadata) if metadata else None

    @staticmethod
    def _row_to_entry(row: Dict[str, Any]) -> ClipboardEntry:
        # Rows from re-parsed SQL text come back untyped
        metadata = row.get('entry_metadata')
        return ClipboardEntry(
            id=int(row['id']),
            type=ItemType(row['type']),
            content=row['content'],
            pinned=bool(row['pinned']),
            tag=row.get('tag'),
            timestamp=parse_datetime(row['timestamp']),
            metadata=json.loads(metadata) if metadata else None,
        )
