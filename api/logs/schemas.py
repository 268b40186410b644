"""
Pydantic schemas for log endpoints (request/response models).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LogEntryRequest(BaseModel):
    key: str
    value: str
    # If omitted, the service stamps the current UTC time.
    timestamp: str | None = None


class MessageEntryRequest(BaseModel):
    message: str
    timestamp: str | None = None


class QueryFilterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str | None = None
    value_like: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None


class RawQueryRequest(BaseModel):
    query: str

