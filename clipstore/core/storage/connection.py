"""Connection handle and the one-time driver capability probe"""

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any
from sqlalchemy import literal, null
from loguru import logger

from .scheduler import Scheduler
from ..errors import DatabaseConnectionError

# Rendering of NULL by drivers without a null expression
NULL_LITERAL = 'NULL'


class Strategy(str, Enum):
    """Statement execution contract exposed by a driver generation"""
    SUBMIT_POLL = 'submit-poll'
    IDLE_DISPATCH = 'idle-dispatch'


@dataclass
class Connection:
    """An open database connection with its execution strategy fixed"""
    driver: Any
    strategy: Strategy
    scheduler: Scheduler

    def expr_value(self, value: Any) -> Any:
        """
        Convert a Python value into a statement value for this driver generation

        The submit/poll generation has no null expression, so None is written
        as the quoted literal 'NULL' and fixed up by the SQL shim later.
        """
        if value is None:
            if self.strategy is Strategy.SUBMIT_POLL:
                return literal(NULL_LITERAL)
            return null()
        return value

    def close(self) -> None:
        self.driver.close()


def probe_strategy(driver: Any) -> Strategy:
    """Determine which execution contract a driver exposes"""
    if callable(getattr(driver, 'async_statement_execute', None)):
        return Strategy.SUBMIT_POLL
    if callable(getattr(driver, 'open_async', None)):
        return Strategy.IDLE_DISPATCH

    raise DatabaseConnectionError(f"Unsupported database driver: {type(driver).__name__}")


def open_connection(driver: Any, scheduler: Scheduler) -> 'Future[Connection]':
    """
    Open a driver and fix its strategy for the lifetime of the connection

    Args:
        driver: Driver instance of either generation
        scheduler: Scheduler of the loop that will run statements

    Returns:
        Future resolving to the Connection, or failing with DatabaseConnectionError
    """
    future: 'Future[Connection]' = Future()
    strategy = probe_strategy(driver)
    name = getattr(driver, 'cnc_string', type(driver).__name__)

    def finish(success: bool) -> None:
        if future.done():
            return
        if success:
            logger.debug(f"Connection opened with {strategy.value} strategy: {name}")
            future.set_result(Connection(driver, strategy, scheduler))
        else:
            future.set_exception(DatabaseConnectionError(f"Could not open database: {name}"))

    if strategy is Strategy.SUBMIT_POLL:
        finish(driver.open())
    else:
        driver.set_main_context(scheduler)
        driver.open_async(finish)

    return future
