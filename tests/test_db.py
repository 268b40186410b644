"""
Tests for the SQLite gateway.
"""

import asyncio
import sqlite3
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from core.config import QueryMode
from core.db import Database, StorageError
from logs import repository


class TestDatabaseLifecycle:
    def test_open_creates_missing_parent_directory(self, tmp_path):
        db = Database(tmp_path / "nested" / "dir" / "log.db")
        db.open()
        try:
            assert db.is_open
            assert (tmp_path / "nested" / "dir" / "log.db").exists()
        finally:
            db.close()
        assert not db.is_open

    def test_calls_before_open_fail(self, tmp_path):
        db = Database(tmp_path / "log.db")
        with pytest.raises(StorageError):
            db.execute_sync("SELECT 1")
        with pytest.raises(StorageError):
            db.fetch_all_sync("SELECT 1")

    def test_schema_is_idempotent(self, database):
        repository.ensure_schema(database, QueryMode.STRUCTURED)
        repository.ensure_schema(database, QueryMode.STRUCTURED)
        assert database.fetch_all_sync("SELECT count(*) FROM logs") == [(0,)]


class TestDatabaseStatements:
    def test_execute_returns_new_row_id(self, database):
        repository.ensure_schema(database, QueryMode.STRUCTURED)
        first = database.execute_sync(
            "INSERT INTO logs (key, value, timestamp) VALUES (?, ?, ?)", ("a", "b", "t")
        )
        second = database.execute_sync(
            "INSERT INTO logs (key, value, timestamp) VALUES (?, ?, ?)", ("c", "d", "t")
        )
        assert second > first

    def test_sql_errors_become_storage_errors(self, database):
        with pytest.raises(StorageError):
            database.execute_sync("INSERT INTO missing_table VALUES (1)")
        with pytest.raises(StorageError):
            database.fetch_all_sync("SELEC nonsense")

    def test_read_connection_refuses_writes(self, database):
        repository.ensure_schema(database, QueryMode.RAW)
        with pytest.raises(StorageError):
            database.fetch_all_sync("INSERT INTO logs (message, timestamp) VALUES ('x', 'y')")
        assert database.fetch_all_sync("SELECT count(*) FROM logs") == [(0,)]

    def test_multiple_statements_are_refused(self, database):
        repository.ensure_schema(database, QueryMode.RAW)
        with pytest.raises(StorageError):
            database.fetch_all_sync("SELECT 1; DROP TABLE logs")
        assert database.fetch_all_sync("SELECT count(*) FROM logs") == [(0,)]

    def test_native_value_types(self, database):
        rows = database.fetch_all_sync("SELECT NULL, 9223372036854775807, 1.5, 'txt', x'0001'")
        assert rows == [(None, 9223372036854775807, 1.5, "txt", b"\x00\x01")]

    @pytest.mark.asyncio
    async def test_async_helpers(self, database):
        repository.ensure_schema(database, QueryMode.STRUCTURED)
        row_id = await database.execute(
            "INSERT INTO logs (key, value, timestamp) VALUES (?, ?, ?)", "k", "v", "t"
        )
        rows = await database.fetch_all("SELECT id, key FROM logs WHERE key = ?", "k")
        assert rows == [(row_id, "k")]


class TestConcurrentInserts:
    def test_threads_get_distinct_ids(self, database):
        repository.ensure_schema(database, QueryMode.STRUCTURED)

        def insert(n):
            return database.execute_sync(
                "INSERT INTO logs (key, value, timestamp) VALUES (?, ?, ?)",
                ("worker", str(n), "2024-01-01 00:00:00"),
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(insert, range(200)))

        assert len(set(ids)) == 200
        assert database.fetch_all_sync("SELECT count(*) FROM logs") == [(200,)]

    @pytest.mark.asyncio
    async def test_async_callers_get_distinct_ids(self, database):
        repository.ensure_schema(database, QueryMode.RAW)
        ids = await asyncio.gather(
            *(
                repository.insert_message(database, message=f"m{n}", timestamp="t")
                for n in range(50)
            )
        )
        assert len(set(ids)) == 50
        assert await database.fetch_all("SELECT count(*) FROM logs") == [(50,)]


class HoldingDatabase(Database):
    """Read connections get a `hold()` SQL function that blocks until released."""

    def __init__(self, path):
        super().__init__(path)
        self.started = threading.Event()
        self.release = threading.Event()

    def _connect_reader(self):
        conn = super()._connect_reader()

        def hold():
            self.started.set()
            self.release.wait(timeout=10)
            return 1

        conn.create_function("hold", 0, hold)
        return conn


class TestIndependentReads:
    def test_trivial_select_runs_while_slow_select_is_in_flight(self, db_path):
        db = HoldingDatabase(db_path)
        db.open()
        results = {}

        def slow():
            results["slow"] = db.fetch_all_sync("SELECT hold()")

        worker = threading.Thread(target=slow)
        worker.start()
        try:
            assert db.started.wait(timeout=5)

            assert db.fetch_all_sync("SELECT 1") == [(1,)]
            assert worker.is_alive()
        finally:
            db.release.set()
            worker.join(timeout=10)
            db.close()

        assert results["slow"] == [(1,)]

    def test_write_runs_while_slow_select_is_in_flight(self, db_path):
        db = HoldingDatabase(db_path)
        db.open()
        repository.ensure_schema(db, QueryMode.RAW)
        worker = threading.Thread(target=db.fetch_all_sync, args=("SELECT hold()",))
        worker.start()
        try:
            assert db.started.wait(timeout=5)

            row_id = db.execute_sync(
                "INSERT INTO logs (message, timestamp) VALUES (?, ?)", ("m", "t")
            )
            assert row_id > 0
            assert worker.is_alive()
        finally:
            db.release.set()
            worker.join(timeout=10)
            db.close()


class BrokenConnection:
    in_transaction = True

    def execute(self, sql, params):
        raise sqlite3.OperationalError("database is locked")

    def rollback(self):
        raise sqlite3.OperationalError("cannot rollback - no transaction is active")


def test_failed_rollback_keeps_original_error(tmp_path):
    db = Database(tmp_path / "log.db")
    db._write_conn = BrokenConnection()

    with pytest.raises(StorageError, match="database is locked"):
        db.execute_sync("INSERT INTO logs DEFAULT VALUES")
