"""
Query construction for POST /query.

Two strategies share one interface (`build` + `project`):

- StructuredQueryBuilder: named, optional, ANDed filters. Values are always
  bound as `?` parameters; the statement text depends only on which filters
  are present.
- RawQueryBuilder: client-supplied statement, accepted only when its first
  keyword is SELECT. This is an intent check, not a sandbox; the database
  layer runs reads on a query-only connection as the second guard.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from core.config import QueryMode

from . import projection, schemas

LOGS_TABLE = "logs"

BASE_SELECT = f"SELECT id, key, value, timestamp FROM {LOGS_TABLE} WHERE 1=1"

# (request field, SQL fragment) in the order they are appended.
FILTER_CLAUSES: tuple[tuple[str, str], ...] = (
    ("key", " AND key = ?"),
    ("value_like", " AND value LIKE ?"),
    ("from_", " AND timestamp > ?"),
    ("to", " AND timestamp < ?"),
)

_FIRST_KEYWORD = re.compile(r"\s*(\w+)")


class QueryRejected(ValueError):
    pass


@dataclass(frozen=True)
class Statement:
    sql: str
    params: tuple[str, ...] = ()


class QueryBuilder(Protocol):
    mode: QueryMode

    def build(self, payload: Any) -> Statement: ...

    def project(self, row: Sequence[Any]) -> dict[str, Any]: ...


class StructuredQueryBuilder:
    mode = QueryMode.STRUCTURED

    def build(self, payload: schemas.QueryFilterRequest) -> Statement:
        sql = BASE_SELECT
        params: list[str] = []
        for field_name, clause in FILTER_CLAUSES:
            value = getattr(payload, field_name)
            if value is None:
                continue
            sql += clause
            params.append(value)
        return Statement(sql=sql, params=tuple(params))

    def project(self, row: Sequence[Any]) -> dict[str, Any]:
        return projection.project_log_row(row)


def first_keyword(statement: str) -> str:
    match = _FIRST_KEYWORD.match(statement or "")
    return match.group(1).upper() if match else ""


class RawQueryBuilder:
    mode = QueryMode.RAW

    def build(self, payload: schemas.RawQueryRequest) -> Statement:
        keyword = first_keyword(payload.query)
        if keyword != "SELECT":
            raise QueryRejected(f"Only SELECT statements are allowed, got {keyword or 'nothing'!r}.")
        return Statement(sql=payload.query)

    def project(self, row: Sequence[Any]) -> dict[str, Any]:
        return projection.project_first_column(row)


def builder_for(mode: QueryMode) -> QueryBuilder:
    if mode is QueryMode.RAW:
        return RawQueryBuilder()
    return StructuredQueryBuilder()
