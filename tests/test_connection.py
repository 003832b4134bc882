import pytest
from sqlalchemy import insert, select

from clipstore.core.errors import DatabaseConnectionError
from clipstore.core.storage.connection import Strategy, open_connection, probe_strategy
from clipstore.core.storage.database import ENTRIES
from clipstore.core.storage.drivers import (
    DriverError, IdleDriver, PollingDriver, RowSet, build_connection_string, create_driver,
    parse_connection_string,
)
from clipstore.core.storage.sql_compat import unescape_nulls, unescape_sql

from conftest import StubIdleDriver, StubPollingDriver


class TestProbe:
    def test_polling_driver_opens_synchronously(self, scheduler):
        driver = StubPollingDriver()
        future = open_connection(driver, scheduler)

        connection = future.result(timeout=0)
        assert connection.strategy is Strategy.SUBMIT_POLL
        assert connection.driver is driver

    def test_polling_open_failure(self, scheduler):
        future = open_connection(StubPollingDriver(open_result=False), scheduler)
        assert isinstance(future.exception(timeout=0), DatabaseConnectionError)

    def test_idle_driver_opens_on_the_loop(self, scheduler):
        driver = StubIdleDriver()
        future = open_connection(driver, scheduler)

        assert not future.done()
        assert driver.scheduler is scheduler

        scheduler.advance()
        assert future.result(timeout=0).strategy is Strategy.IDLE_DISPATCH
        assert driver.open_calls == 1

    def test_idle_open_failure(self, scheduler):
        future = open_connection(StubIdleDriver(open_result=False), scheduler)
        scheduler.advance()
        error = future.exception(timeout=0)
        assert isinstance(error, DatabaseConnectionError)
        assert isinstance(error, ConnectionError)

    def test_unsupported_driver(self, scheduler):
        with pytest.raises(DatabaseConnectionError):
            open_connection(object(), scheduler)

    def test_strategy_from_real_drivers(self):
        assert probe_strategy(PollingDriver('DB_NAME=:memory:')) is Strategy.SUBMIT_POLL
        assert probe_strategy(IdleDriver('DB_NAME=:memory:')) is Strategy.IDLE_DISPATCH


class TestExprValue:
    def test_polling_null_is_quoted_literal(self, scheduler):
        connection = open_connection(StubPollingDriver(), scheduler).result(timeout=0)
        value = connection.expr_value(None)
        assert str(value.compile(compile_kwargs={'literal_binds': True})) == "'NULL'"

    def test_idle_null_is_null_keyword(self, scheduler):
        future = open_connection(StubIdleDriver(), scheduler)
        scheduler.advance()
        value = future.result(timeout=0).expr_value(None)
        assert str(value.compile()) == "NULL"

    def test_other_values_unchanged(self, scheduler):
        connection = open_connection(StubPollingDriver(), scheduler).result(timeout=0)
        assert connection.expr_value('text') == 'text'
        assert connection.expr_value(0) == 0


class TestUnescapeSql:
    def test_quoted_null_becomes_keyword(self):
        assert unescape_sql("SELECT * FROM t WHERE x = 'NULL'") == "SELECT * FROM t WHERE x = NULL"

    def test_all_occurrences(self):
        sql = "INSERT INTO t (a, b, c) VALUES ('NULL', 'x', 'NULL')"
        assert unescape_sql(sql) == "INSERT INTO t (a, b, c) VALUES (NULL, 'x', NULL)"

    def test_escaped_string_untouched(self):
        # the string value 'NULL' including its quotes
        sql = "UPDATE t SET a = '''NULL''' WHERE id = 1"
        assert unescape_sql(sql) == sql

    def test_quote_adjacent_untouched(self):
        for sql in ("SELECT 'NULL'''", "SELECT '''NULL'", "SELECT 'it''s NULL'"):
            assert unescape_sql(sql) == sql

    def test_other_words_untouched(self):
        sql = "SELECT 'NULLABLE', 'null', x IS NULL"
        assert unescape_sql(sql) == sql


class TestUnescapeNulls:
    @pytest.fixture
    def connection(self, scheduler):
        driver = PollingDriver('DB_NAME=:memory:')
        connection = open_connection(driver, scheduler).result(timeout=0)
        yield connection
        connection.close()

    def test_builds_real_null(self, connection):
        statement = insert(ENTRIES).values(
            type='text', content="it's 12:30", pinned=False, timestamp='2024-01-01 00:00:00',
            tag=connection.expr_value(None), entry_metadata=connection.expr_value(None),
        )
        sql = str(unescape_nulls(connection, statement))

        assert "'NULL'" not in sql
        assert "NULL" in sql
        assert "'it''s 12:30'" in sql

    def test_reparsed_statement_has_no_bind_parameters(self, connection):
        statement = select(ENTRIES).where(ENTRIES.c.content == 'a:b :name')
        reparsed = unescape_nulls(connection, statement)

        assert reparsed.compile().params == {}
        assert "'a:b :name'" in str(reparsed)


class TestDrivers:
    def test_parse_connection_string(self):
        assert parse_connection_string('DB_DIR=/tmp/x; DB_NAME=clipboard') == {
            'DB_DIR': '/tmp/x', 'DB_NAME': 'clipboard'}

    def test_lowercase_keys(self):
        assert parse_connection_string('db_name=clip')['DB_NAME'] == 'clip'

    def test_missing_name(self):
        with pytest.raises(ValueError):
            parse_connection_string('DB_DIR=/tmp')

    def test_malformed_segment(self):
        with pytest.raises(ValueError):
            parse_connection_string('DB_NAME=clip;oops')

    def test_build_connection_string(self, tmp_path):
        params = parse_connection_string(build_connection_string(tmp_path, 'clip'))
        assert params == {'DB_DIR': str(tmp_path), 'DB_NAME': 'clip'}

    def test_create_driver(self):
        assert isinstance(create_driver('polling', 'DB_NAME=a'), PollingDriver)
        assert isinstance(create_driver('idle', 'DB_NAME=a'), IdleDriver)
        with pytest.raises(ValueError):
            create_driver('gda4', 'DB_NAME=a')

    def test_polling_open_creates_database_file(self, tmp_path):
        driver = PollingDriver(build_connection_string(tmp_path / 'db', 'clip'))
        assert driver.open() is True
        driver.close()
        assert (tmp_path / 'db' / 'clip.db').exists()

    def test_polling_open_fails_when_dir_is_a_file(self, tmp_path):
        blocker = tmp_path / 'file'
        blocker.write_text('x')
        driver = PollingDriver(build_connection_string(blocker, 'clip'))
        assert driver.open() is False

    def test_polling_submit_requires_open(self):
        with pytest.raises(DriverError):
            PollingDriver('DB_NAME=:memory:').async_statement_execute(select(ENTRIES))

    def test_polling_unknown_job(self):
        driver = PollingDriver('DB_NAME=:memory:')
        assert driver.open()
        try:
            with pytest.raises(DriverError):
                driver.async_fetch_result(42)
        finally:
            driver.close()

    def test_idle_open_requires_main_context(self):
        with pytest.raises(DriverError):
            IdleDriver('DB_NAME=:memory:').open_async(lambda success: None)

    def test_idle_open_reports_failure(self, tmp_path, scheduler):
        blocker = tmp_path / 'file'
        blocker.write_text('x')
        driver = IdleDriver(build_connection_string(blocker, 'clip'))
        driver.set_main_context(scheduler)
        results = []
        driver.open_async(results.append)

        scheduler.advance()
        assert results == [False]

    def test_rowset(self):
        rows = RowSet(['id'], [{'id': 1}, {'id': 2}])
        assert len(rows) == 2
        assert rows.get_value(1, 'id') == 2
        assert [r['id'] for r in rows] == [1, 2]
