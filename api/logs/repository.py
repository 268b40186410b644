"""
Log persistence.
This module is where log-related SQL lives.
"""

from __future__ import annotations

from core.config import QueryMode
from core.db import Database, Row

from .query_builder import LOGS_TABLE, Statement

STRUCTURED_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {LOGS_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    timestamp TEXT NOT NULL
)
"""

MESSAGE_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {LOGS_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    message TEXT NOT NULL,
    timestamp TEXT NOT NULL
)
"""


def ensure_schema(db: Database, mode: QueryMode) -> None:
    """
    Create the logs table for the given mode. Runs once at startup, before
    the event loop serves requests, so it uses the blocking call.
    """
    schema = MESSAGE_SCHEMA if mode is QueryMode.RAW else STRUCTURED_SCHEMA
    db.execute_sync(schema)


async def insert_entry(db: Database, *, key: str, value: str, timestamp: str) -> int:
    return await db.execute(
        f"INSERT INTO {LOGS_TABLE} (key, value, timestamp) VALUES (?, ?, ?)",
        key,
        value,
        timestamp,
    )


async def insert_message(db: Database, *, message: str, timestamp: str) -> int:
    return await db.execute(
        f"INSERT INTO {LOGS_TABLE} (message, timestamp) VALUES (?, ?)",
        message,
        timestamp,
    )


async def run_statement(db: Database, statement: Statement) -> list[Row]:
    return await db.fetch_all(statement.sql, *statement.params)
