"""Timer and idle scheduling on the host event loop, plus cooperative cancellation"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional
from loguru import logger

# Callbacks return True to stay scheduled, False to be removed
SOURCE_CONTINUE = True
SOURCE_REMOVE = False

SourceCallback = Callable[[], bool]


class Scheduler(ABC):
    """Schedules timeout and idle callbacks on the loop that owns a connection"""

    @abstractmethod
    def timeout_add(self, interval_ms: int, callback: SourceCallback) -> int:
        """
        Call `callback` every `interval_ms` milliseconds until it returns False

        Returns:
            Source id usable with source_remove
        """

    @abstractmethod
    def idle_add(self, callback: SourceCallback) -> int:
        """Call `callback` the next time the loop is idle, again while it returns True"""

    @abstractmethod
    def source_remove(self, source_id: int) -> bool:
        """Remove a source; returns False if it was already gone"""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize scheduler

        Args:
            loop: Event loop to schedule on (defaults to the running loop)
        """
        self._loop = loop
        self._handles: Dict[int, asyncio.Handle] = {}
        self._ids = itertools.count(1)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def timeout_add(self, interval_ms: int, callback: SourceCallback) -> int:
        source_id = next(self._ids)
        delay = interval_ms / 1000.0
        self._handles[source_id] = self.loop.call_later(
            delay, self._dispatch, source_id, callback, delay
        )
        return source_id

    def idle_add(self, callback: SourceCallback) -> int:
        source_id = next(self._ids)
        self._handles[source_id] = self.loop.call_soon(
            self._dispatch, source_id, callback, None
        )
        return source_id

    def source_remove(self, source_id: int) -> bool:
        handle = self._handles.pop(source_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def _dispatch(self, source_id: int, callback: SourceCallback, delay: Optional[float]) -> None:
        if source_id not in self._handles:
            return

        try:
            keep = callback()
        except Exception as e:
            logger.error(f"Scheduled callback {source_id} failed: {e}")
            keep = SOURCE_REMOVE

        # The callback may have removed its own source
        if not keep or source_id not in self._handles:
            self._handles.pop(source_id, None)
            return

        if delay is None:
            self._handles[source_id] = self.loop.call_soon(
                self._dispatch, source_id, callback, None
            )
        else:
            self._handles[source_id] = self.loop.call_later(
                delay, self._dispatch, source_id, callback, delay
            )


class CancellationToken:
    """One-shot signal a caller triggers to stop watching an operation"""

    def __init__(self):
        self._cancelled = False
        self._handlers: Dict[int, Callable[[], None]] = {}
        self._ids = itertools.count(1)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def connect(self, callback: Callable[[], None]) -> int:
        """
        Register a callback for cancellation

        A callback connected to an already cancelled token runs immediately.

        Returns:
            Handler id usable with disconnect (0 if the callback already ran)
        """
        if self._cancelled:
            callback()
            return 0

        handler_id = next(self._ids)
        self._handlers[handler_id] = callback
        return handler_id

    def disconnect(self, handler_id: int) -> None:
        self._handlers.pop(handler_id, None)

    def cancel(self) -> None:
        """Trigger the token; only the first call has any effect"""
        if self._cancelled:
            return

        self._cancelled = True
        handlers = list(self._handlers.values())
        self._handlers.clear()

        for handler in handlers:
            handler()
