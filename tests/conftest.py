import asyncio
import itertools

import pytest

from clipstore.core.actions.models import (
    ActionConfig, ActionOutput, ActionSubmenu, ColorAction, ColorSpace, CommandAction,
)
from clipstore.core.clipboard import ClipboardEntry, ItemType
from clipstore.core.storage.drivers import build_connection_string, create_driver
from clipstore.core.storage.repository import EntryStore
from clipstore.core.storage.scheduler import AsyncioScheduler, Scheduler


class ManualScheduler(Scheduler):
    """Scheduler driven by advance() instead of wall-clock time"""

    def __init__(self):
        self.now = 0
        self._sources = {}
        self._ids = itertools.count(1)

    @property
    def pending(self) -> int:
        return len(self._sources)

    def timeout_add(self, interval_ms, callback):
        source_id = next(self._ids)
        self._sources[source_id] = [self.now + interval_ms, interval_ms, callback]
        return source_id

    def idle_add(self, callback):
        return self.timeout_add(0, callback)

    def source_remove(self, source_id):
        return self._sources.pop(source_id, None) is not None

    def advance(self, ms=0):
        target = self.now + ms
        while True:
            due = [(s[0], sid) for sid, s in self._sources.items() if s[0] <= target]
            if not due:
                break

            when, source_id = min(due)
            self.now = when
            _, interval, callback = self._sources[source_id]

            if callback() and source_id in self._sources:
                self._sources[source_id][0] = when + interval
            else:
                self._sources.pop(source_id, None)

        self.now = target


class StubPollingDriver:
    """Submit/poll driver whose result shows up on a chosen fetch"""

    def __init__(self, result=None, last_row=None, complete_on=None, error=None, open_result=True):
        self.result = result
        self.last_row = last_row
        self.complete_on = complete_on
        self.error = error
        self.open_result = open_result
        self.fetches = 0
        self.submitted = []
        self.discarded = []
        self.closed = False

    def open(self):
        return self.open_result

    def async_statement_execute(self, statement, need_last_row=False):
        self.submitted.append(statement)
        return len(self.submitted)

    def async_fetch_result(self, job_id):
        self.fetches += 1
        if self.error is not None:
            raise self.error
        if self.complete_on is not None and self.fetches >= self.complete_on:
            return self.result, self.last_row
        return None, None

    def discard(self, job_id):
        self.discarded.append(job_id)

    def statement_to_sql(self, statement):
        return statement

    def parse_sql_string(self, sql):
        return sql

    def close(self):
        self.closed = True


class StubIdleDriver:
    """Idle-dispatch driver returning canned results"""

    def __init__(self, rows=None, impacted=1, last_row=None, error=None, open_result=True):
        self.rows = rows
        self.impacted = impacted
        self.last_row = last_row
        self.error = error
        self.open_result = open_result
        self.scheduler = None
        self.executed = []
        self.open_calls = 0

    def set_main_context(self, scheduler):
        self.scheduler = scheduler

    def open_async(self, callback):
        def do_open():
            self.open_calls += 1
            callback(self.open_result)
            return False

        self.scheduler.idle_add(do_open)

    def statement_execute_select(self, statement):
        self.executed.append(statement)
        if self.error is not None:
            raise self.error
        return self.rows

    def statement_execute_non_select(self, statement):
        self.executed.append(statement)
        if self.error is not None:
            raise self.error
        return self.impacted, self.last_row

    def close(self):
        pass


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def make_entry():
    """Factory fixture to create ClipboardEntry instances for testing."""

    def _make_entry(content="hello world", type=ItemType.TEXT, **kwargs) -> ClipboardEntry:
        return ClipboardEntry(type=type, content=content, **kwargs)

    return _make_entry


@pytest.fixture
def rgb_action():
    return ColorAction(id='rgb', name='Rgb', pattern='^(?!rgb)', types=['color'],
                       space=ColorSpace.RGB, output=ActionOutput.PASTE)


@pytest.fixture
def hex_action():
    return ColorAction(id='hex', name='Hex', pattern='^(?!#)', types=['color'],
                       space=ColorSpace.HEX, output=ActionOutput.PASTE)


@pytest.fixture
def command_action():
    def _command_action(action_id, pattern=None, types=None):
        return CommandAction(id=action_id, name=action_id.title(), pattern=pattern, types=types,
                             command='echo $1', output=ActionOutput.COPY)

    return _command_action


@pytest.fixture
def nested_config(command_action):
    return ActionConfig(
        actions=[
            command_action('top'),
            ActionSubmenu(name='Outer', actions=[
                command_action('outer-a'),
                ActionSubmenu(name='Inner', actions=[
                    ActionSubmenu(name='Deepest', actions=[command_action('deep')]),
                    command_action('inner-a'),
                ]),
            ]),
            command_action('last'),
        ],
        defaults={'text': 'deep', 'link': 'removed-action'},
    )


@pytest.fixture(params=['idle', 'polling'])
def run_with_store(request, tmp_path):
    """Run `scenario(store)` on a fresh store for each driver generation."""

    def _run(scenario, name='clipboard'):
        async def main():
            driver = create_driver(request.param, build_connection_string(tmp_path, name))
            store = await EntryStore.open(driver, AsyncioScheduler(), poll_interval=5, max_attempts=200)
            try:
                return await scenario(store)
            finally:
                store.close()

        return asyncio.run(main())

    _run.driver = request.param
    return _run
