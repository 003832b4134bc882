"""SQLite driver adapters for the two supported driver generations

Both generations talk to the same SQLite file through a SQLAlchemy engine and
accept the same connection string, but expose different execution contracts:

    PollingDriver - synchronous open, statements submitted to an isolated
                    worker and collected later with async_fetch_result
    IdleDriver    - open completes asynchronously on the main context,
                    statements execute synchronously when called

The connection layer decides once which contract a driver exposes.
"""

import itertools
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.elements import TextClause
from loguru import logger

from .scheduler import Scheduler, SOURCE_REMOVE

MEMORY_DATABASE = ':memory:'
IMPACTED_ROWS = 'IMPACTED_ROWS'

LastRow = Optional[Dict[str, Any]]


class DriverError(Exception):
    """Raised by a driver when it cannot run a statement"""


class RowSet(Sequence):
    """Rows returned by a selection statement, each addressable by field name"""

    def __init__(self, columns: List[str], rows: List[Dict[str, Any]]):
        self.columns = columns
        self._rows = rows

    def __getitem__(self, index):
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)

    def get_value(self, row: int, field_name: str) -> Any:
        return self._rows[row][field_name]

    def __repr__(self) -> str:
        return f"RowSet(columns={self.columns!r}, rows={len(self._rows)})"


class ParameterSet:
    """Named values describing the outcome of a non-selection statement"""

    def __init__(self, holders: Dict[str, Any]):
        self._holders = holders

    def get_holder_value(self, name: str) -> Any:
        return self._holders.get(name)

    def __repr__(self) -> str:
        return f"ParameterSet({self._holders!r})"


DriverResult = Union[RowSet, ParameterSet]


def parse_connection_string(cnc_string: str) -> Dict[str, str]:
    """
    Parse a `KEY=value;KEY=value` connection string

    Args:
        cnc_string: Connection string, e.g. DB_DIR=/path;DB_NAME=clipboard

    Returns:
        Parameters keyed by upper-cased name
    """
    params = {}
    for part in cnc_string.split(';'):
        part = part.strip()
        if not part:
            continue

        key, sep, value = part.partition('=')
        if not sep:
            raise ValueError(f"Malformed connection string segment: {part!r}")
        params[key.strip().upper()] = value.strip()

    if not params.get('DB_NAME'):
        raise ValueError("Connection string is missing DB_NAME")

    return params


def build_connection_string(directory: Union[str, Path], name: str) -> str:
    return f"DB_DIR={directory};DB_NAME={name}"


class _SqliteDriver:
    """Engine handling shared by both driver generations"""

    def __init__(self, cnc_string: str):
        self.cnc_string = cnc_string
        self.engine: Optional[Engine] = None

    def _create_engine(self) -> Engine:
        params = parse_connection_string(self.cnc_string)
        name = params['DB_NAME']

        if name == MEMORY_DATABASE:
            return create_engine(
                'sqlite://',
                connect_args={'check_same_thread': False},
                poolclass=StaticPool
            )

        directory = Path(params.get('DB_DIR', '.')).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        return create_engine(
            f'sqlite:///{directory / name}.db',
            connect_args={'check_same_thread': False}
        )

    def _open(self) -> bool:
        try:
            self.engine = self._create_engine()
            with self.engine.connect():
                pass
            logger.info(f"Database opened: {self.cnc_string}")
            return True

        except (OSError, ValueError, SQLAlchemyError) as e:
            logger.error(f"Failed to open database {self.cnc_string!r}: {e}")
            self.engine = None
            return False

    def _execute(self, statement, need_last_row: bool,
                 expect_rows: Optional[bool] = None) -> Tuple[DriverResult, LastRow]:
        if self.engine is None:
            raise DriverError("Connection is not open")

        # A kind mismatch raises inside the transaction so it is rolled back
        with self.engine.begin() as conn:
            result = conn.execute(statement)

            if result.returns_rows:
                if expect_rows is False:
                    raise DriverError("Statement is a selection statement")
                rows = [dict(row) for row in result.mappings()]
                return RowSet(list(result.keys()), rows), None

            if expect_rows is True:
                raise DriverError("Statement is not a selection statement")

            impacted = result.rowcount if result.rowcount >= 0 else None
            last_row = None
            if need_last_row and result.lastrowid:
                last_row = {'id': result.lastrowid}
            return ParameterSet({IMPACTED_ROWS: impacted}), last_row

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            logger.info(f"Database closed: {self.cnc_string}")


class PollingDriver(_SqliteDriver):
    """Older generation: synchronous open, submit-then-fetch statement execution"""

    def __init__(self, cnc_string: str):
        super().__init__(cnc_string)
        self._worker: Optional[ThreadPoolExecutor] = None
        self._jobs: Dict[int, Future] = {}
        self._job_ids = itertools.count(1)

    def open(self) -> bool:
        if not self._open():
            return False

        # Thread isolated: every statement runs on one dedicated worker
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix='clipstore-db')
        return True

    def async_statement_execute(self, statement, need_last_row: bool = False) -> int:
        """
        Submit a statement for execution

        Returns:
            Job id to pass to async_fetch_result
        """
        if self._worker is None:
            raise DriverError("Connection is not open")

        job_id = next(self._job_ids)
        self._jobs[job_id] = self._worker.submit(self._execute, statement, need_last_row)
        return job_id

    def async_fetch_result(self, job_id: int) -> Tuple[Optional[DriverResult], LastRow]:
        """
        Collect the result of a submitted statement

        Returns:
            (None, None) while the job is still running, otherwise the result
            and the last inserted row. Raises the job's error if it failed.
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise DriverError(f"Unknown job {job_id}")

        if not job.done():
            return None, None

        del self._jobs[job_id]
        return job.result()

    def discard(self, job_id: int) -> None:
        """Forget a job whose result will never be fetched; the statement still runs"""
        self._jobs.pop(job_id, None)

    @property
    def pending_jobs(self) -> int:
        return len(self._jobs)

    def statement_to_sql(self, statement) -> str:
        """Render a statement as SQL text with all values inlined"""
        if self.engine is None:
            raise DriverError("Connection is not open")

        compiled = statement.compile(
            dialect=self.engine.dialect,
            compile_kwargs={'literal_binds': True}
        )
        return str(compiled)

    def parse_sql_string(self, sql: str) -> TextClause:
        # Escaped so colons inside literals are not read as bind parameters
        return text(sql.replace(':', '\\:'))

    def close(self) -> None:
        if self._worker is not None:
            self._worker.shutdown(wait=True)
            self._worker = None
        self._jobs.clear()
        super().close()


class IdleDriver(_SqliteDriver):
    """Newer generation: open bound to the main context, direct statement execution"""

    def __init__(self, cnc_string: str):
        super().__init__(cnc_string)
        self._scheduler: Optional[Scheduler] = None

    def set_main_context(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler

    def open_async(self, callback: Callable[[bool], None]) -> None:
        """Open the database on the main context and report success to `callback` once"""
        if self._scheduler is None:
            raise DriverError("open_async requires a main context")

        def do_open():
            callback(self._open())
            return SOURCE_REMOVE

        self._scheduler.idle_add(do_open)

    def statement_execute_select(self, statement) -> RowSet:
        result, _ = self._execute(statement, False, expect_rows=True)
        return result

    def statement_execute_non_select(self, statement) -> Tuple[Optional[int], LastRow]:
        result, last_row = self._execute(statement, True, expect_rows=False)
        return result.get_holder_value(IMPACTED_ROWS), last_row


DRIVERS = {
    'polling': PollingDriver,
    'idle': IdleDriver,
}


def create_driver(name: str, cnc_string: str):
    """
    Create a driver by generation name

    Args:
        name: 'polling' or 'idle'
        cnc_string: Connection string
    """
    try:
        driver_class = DRIVERS[name]
    except KeyError:
        raise ValueError(f"Unknown driver {name!r}, expected one of {sorted(DRIVERS)}") from None

    return driver_class(cnc_string)
