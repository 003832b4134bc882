"""Statement execution over either driver generation

Both strategies deliver through a concurrent.futures.Future:

    execute_select      -> RowSet
    execute_non_select  -> (affected row count, last inserted row)

Failures are delivered as QueryError or QueryTimeoutError. Cancelling the
token during submit/poll execution stops polling and leaves the future
pending; the statement itself is not aborted.
"""

import asyncio
from concurrent.futures import Future
from enum import Enum
from typing import Any, Optional, Tuple
from loguru import logger

from .connection import Connection, Strategy
from .drivers import IMPACTED_ROWS, LastRow, ParameterSet, RowSet
from .scheduler import CancellationToken, SOURCE_CONTINUE, SOURCE_REMOVE
from .sql_compat import unescape_nulls
from ..errors import QueryError, QueryTimeoutError

# Row count reported when the driver does not know it
UNKNOWN_ROW_COUNT = -2


class StatementKind(str, Enum):
    SELECT = 'select'
    NON_SELECT = 'non-select'


class StatementExecutor:
    """Runs statements on a connection using the strategy fixed at open time"""

    POLL_INTERVAL = 100     # ms between result fetches
    MAX_POLL_ATTEMPTS = 10  # empty fetches tolerated before timing out

    def __init__(self, connection: Connection, poll_interval: int = POLL_INTERVAL,
                 max_attempts: int = MAX_POLL_ATTEMPTS):
        """
        Initialize executor

        Args:
            connection: Open connection
            poll_interval: Milliseconds between result fetches (submit/poll only)
            max_attempts: Empty fetches before QueryTimeoutError (submit/poll only)
        """
        self.connection = connection
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    def execute_select(self, statement, cancellable: CancellationToken) -> 'Future[RowSet]':
        return self._execute(statement, StatementKind.SELECT, cancellable)

    def execute_non_select(self, statement,
                           cancellable: CancellationToken) -> 'Future[Tuple[int, LastRow]]':
        return self._execute(statement, StatementKind.NON_SELECT, cancellable)

    def _execute(self, statement, kind: StatementKind, cancellable: CancellationToken) -> Future:
        future = Future()

        if self.connection.strategy is Strategy.SUBMIT_POLL:
            self._submit_and_poll(statement, kind, cancellable, future)
        else:
            self._dispatch_idle(statement, kind, future)

        return future

    def _submit_and_poll(self, statement, kind: StatementKind,
                         cancellable: CancellationToken, future: Future) -> None:
        driver = self.connection.driver
        scheduler = self.connection.scheduler

        try:
            statement = unescape_nulls(self.connection, statement)
            job_id = driver.async_statement_execute(statement, kind is StatementKind.NON_SELECT)
        except Exception as e:
            self._reject(future, QueryError(f"Failed to submit statement: {e}"), e)
            return

        attempts = 0
        handler_id = 0

        def poll():
            nonlocal attempts

            try:
                result, last_row = driver.async_fetch_result(job_id)
            except Exception as e:
                cancellable.disconnect(handler_id)
                self._reject(future, QueryError(str(e)), e)
                return SOURCE_REMOVE

            if result is not None:
                cancellable.disconnect(handler_id)
                self._classify(future, kind, result, last_row)
                return SOURCE_REMOVE

            if attempts >= self.max_attempts:
                cancellable.disconnect(handler_id)
                driver.discard(job_id)
                # attempts counts empty polls before this one
                logger.warning(f"Statement job {job_id} timed out after {attempts + 1} polls")
                self._reject(future, QueryTimeoutError(f"No result for job {job_id} after {attempts + 1} polls"))
                return SOURCE_REMOVE

            attempts += 1
            return SOURCE_CONTINUE

        source_id = scheduler.timeout_add(self.poll_interval, poll)
        handler_id = cancellable.connect(lambda: self._stop_polling(source_id, job_id))

    def _stop_polling(self, source_id: int, job_id: int) -> None:
        self.connection.driver.discard(job_id)
        if self.connection.scheduler.source_remove(source_id):
            logger.debug(f"Stopped polling statement job {job_id}")

    def _dispatch_idle(self, statement, kind: StatementKind, future: Future) -> None:
        driver = self.connection.driver

        def run():
            try:
                if kind is StatementKind.SELECT:
                    self._classify(future, kind, driver.statement_execute_select(statement), None)
                else:
                    impacted, last_row = driver.statement_execute_non_select(statement)
                    self._classify(future, kind, ParameterSet({IMPACTED_ROWS: impacted}), last_row)
            except Exception as e:
                self._reject(future, QueryError(str(e)), e)

            return SOURCE_REMOVE

        self.connection.scheduler.idle_add(run)

    def _classify(self, future: Future, kind: StatementKind, result: Any, last_row: LastRow) -> None:
        if kind is StatementKind.SELECT:
            if isinstance(result, RowSet):
                self._resolve(future, result)
            else:
                self._reject(future, QueryError("Statement is not a selection statement"))
            return

        if isinstance(result, ParameterSet):
            rows = result.get_holder_value(IMPACTED_ROWS)
            self._resolve(future, (rows if rows is not None else UNKNOWN_ROW_COUNT, last_row))
        else:
            self._reject(future, QueryError("Statement is a selection statement"))

    @staticmethod
    def _resolve(future: Future, value: Any) -> None:
        # Already cancelled by whoever was waiting on it
        if not future.done():
            future.set_result(value)

    @staticmethod
    def _reject(future: Future, error: Exception, cause: Optional[BaseException] = None) -> None:
        if cause is not None:
            error.__cause__ = cause
            logger.error(f"Statement failed: {error}")
        if not future.done():
            future.set_exception(error)


async def wait_for_result(future: Future, cancellable: Optional[CancellationToken] = None):
    """
    Await an executor future from a coroutine

    Cancelling the token cancels the await with asyncio.CancelledError.
    """
    waiter = asyncio.wrap_future(future)
    handler_id = cancellable.connect(waiter.cancel) if cancellable is not None else 0

    try:
        return await waiter
    finally:
        if cancellable is not None:
            cancellable.disconnect(handler_id)
