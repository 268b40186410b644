"""
Row projection: SQLite values -> JSON-compatible values.

sqlite3 hands back one of None, int, float, str or bytes per column.

- None   -> null
- int    -> number (Python ints are exact; the JSON encoder writes the full
            64-bit range, clients parsing into doubles lose precision > 2**53)
- float  -> number, non-finite values (NaN, +/-inf) become 0
- str    -> string
- bytes  -> null (blobs are never returned to clients)

Mis-typed columns in the fixed-shape log rows degrade to 0 / "" instead of
failing the whole response.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any, Union

JsonValue = Union[int, float, str, None]


def project_value(value: Any) -> JsonValue:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        return value
    # bytes / memoryview / anything else the driver may hand back
    return None


def _int_or_zero(value: Any) -> int:
    return value if isinstance(value, int) else 0


def _text_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _column(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def project_log_row(row: Sequence[Any]) -> dict[str, Any]:
    """
    Shape a `(id, key, value, timestamp)` row into a fixed-shape object.
    """
    return {
        "id": _int_or_zero(_column(row, 0)),
        "key": _text_or_empty(_column(row, 1)),
        "value": _text_or_empty(_column(row, 2)),
        "timestamp": _text_or_empty(_column(row, 3)),
    }


def project_first_column(row: Sequence[Any]) -> dict[str, Any]:
    """
    Shape an arbitrary SELECT row as `{"value": <first column>}`.
    Any further columns are dropped.
    """
    return {"value": project_value(_column(row, 0))}
