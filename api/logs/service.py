"""
Log business logic.

Scope:
- stamp and store incoming entries (one INSERT per request)
- build, run and project queries for the configured query mode
- translate storage/query errors into HTTP status codes
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, status

from core.db import Database, StorageError

from . import repository, schemas
from .query_builder import QueryBuilder, QueryRejected

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
LOGGED_SAMPLE_ROWS = 3


def utc_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _write_failed() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Write failed.",
    )


async def write_entry(db: Database, entry: schemas.LogEntryRequest) -> int:
    timestamp = entry.timestamp if entry.timestamp is not None else utc_timestamp()
    try:
        row_id = await repository.insert_entry(
            db,
            key=entry.key,
            value=entry.value,
            timestamp=timestamp,
        )
    except StorageError as exc:
        logger.exception("log_insert_failed key=%s", entry.key)
        raise _write_failed() from exc

    logger.info("log_inserted id=%s key=%s value=%s", row_id, entry.key, entry.value)
    return row_id


async def write_message(db: Database, entry: schemas.MessageEntryRequest) -> int:
    timestamp = entry.timestamp if entry.timestamp is not None else utc_timestamp()
    try:
        row_id = await repository.insert_message(db, message=entry.message, timestamp=timestamp)
    except StorageError as exc:
        logger.exception("log_insert_failed message_chars=%s", len(entry.message))
        raise _write_failed() from exc

    logger.info("log_inserted id=%s message_chars=%s", row_id, len(entry.message))
    return row_id


async def run_query(db: Database, builder: QueryBuilder, payload: Any) -> list[dict[str, Any]]:
    try:
        statement = builder.build(payload)
    except QueryRejected as exc:
        logger.warning("query_rejected mode=%s reason=%s", builder.mode.value, exc)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only SELECT queries are allowed.",
        ) from exc

    try:
        rows = await repository.run_statement(db, statement)
    except StorageError as exc:
        logger.exception("query_failed mode=%s sql=%s", builder.mode.value, statement.sql)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query failed.",
        ) from exc

    results = [builder.project(row) for row in rows]
    for index, item in enumerate(results[:LOGGED_SAMPLE_ROWS], start=1):
        logger.debug("query_rows row=%s data=%s", index, item)
    logger.info("query_done mode=%s rows=%s", builder.mode.value, len(results))
    return results
