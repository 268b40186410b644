"""
Embedded database access helpers (raw SQL) using sqlite3.

`Database` owns the connections to the single SQLite file. FastAPI opens it
on startup, stores it on `app.state` and closes it on shutdown
(see `api/main.py`). Handlers receive it through `get_database`.

SQL parameter style:
- sqlite3 uses positional `?` placeholders.

Connections:
- writes go through one long-lived connection, serialized by a lock
- every read opens its own short-lived connection with `PRAGMA query_only=ON`,
  so a statement that reaches it can never modify the file and a slow read
  never holds up other requests
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from fastapi import Request

logger = logging.getLogger(__name__)

Row = tuple[Any, ...]


class StorageError(RuntimeError):
    pass


class Database:
    def __init__(self, path: str | Path, *, timeout_s: float = 30.0) -> None:
        self.path = Path(path)
        self.timeout_s = timeout_s
        self._write_conn: sqlite3.Connection | None = None
        self._write_lock = threading.Lock()

    def open(self) -> None:
        if self._write_conn is not None:
            return None
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._write_conn = sqlite3.connect(
                str(self.path),
                check_same_thread=False,
                timeout=self.timeout_s,
            )
            # WAL lets readers see committed rows while a write is in flight.
            self._write_conn.execute("PRAGMA journal_mode=WAL")
        except sqlite3.Error as exc:
            self.close()
            raise StorageError(f"Cannot open database {self.path}: {exc}") from exc
        logger.info("database_opened path=%s", self.path)

    def close(self) -> None:
        if self._write_conn is not None:
            self._write_conn.close()
        self._write_conn = None

    @property
    def is_open(self) -> bool:
        return self._write_conn is not None

    def _writer(self) -> sqlite3.Connection:
        if self._write_conn is None:
            raise StorageError("Database is not open. Call open() on startup.")
        return self._write_conn

    def _connect_reader(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.path), timeout=self.timeout_s)
        conn.execute("PRAGMA query_only=ON")
        return conn

    def execute_sync(self, sql: str, params: Sequence[Any] = ()) -> int:
        """
        Run a statement (INSERT/DDL) and commit. Returns the last inserted row id.
        """
        conn = self._writer()
        with self._write_lock:
            try:
                cursor = conn.execute(sql, tuple(params))
                conn.commit()
            except (sqlite3.Error, sqlite3.Warning) as exc:
                self._rollback(conn)
                raise StorageError(str(exc)) from exc
            return int(cursor.lastrowid or 0)

    def _rollback(self, conn: sqlite3.Connection) -> None:
        if not conn.in_transaction:
            return None
        try:
            conn.rollback()
        except sqlite3.Error:
            logger.exception("rollback_failed path=%s", self.path)

    def fetch_all_sync(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """
        Run a read-only query on its own connection and materialize every row.
        """
        if not self.is_open:
            raise StorageError("Database is not open. Call open() on startup.")
        try:
            conn = self._connect_reader()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc
        # Older interpreters raise sqlite3.Warning for multi-statement strings.
        try:
            cursor = conn.execute(sql, tuple(params))
            return [tuple(row) for row in cursor.fetchall()]
        except (sqlite3.Error, sqlite3.Warning) as exc:
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    async def execute(self, sql: str, *args: Any) -> int:
        return await asyncio.to_thread(self.execute_sync, sql, args)

    async def fetch_all(self, sql: str, *args: Any) -> list[Row]:
        return await asyncio.to_thread(self.fetch_all_sync, sql, args)


def get_database(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None or not db.is_open:
        raise RuntimeError("Database is not initialized. Open it in the app lifespan.")
    return db
