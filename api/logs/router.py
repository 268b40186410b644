"""
FastAPI routers for log endpoints.

Only one of the two routers is mounted, depending on the configured query mode:
- structured_router: POST /log {key, value}, POST /query {key?, value_like?, from?, to?}
- raw_router:        POST /log {message},    POST /query {query}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from core.config import QueryMode
from core.db import Database, get_database

from . import schemas, service
from .query_builder import QueryBuilder

structured_router = APIRouter()
raw_router = APIRouter()


def get_query_builder(request: Request) -> QueryBuilder:
    return request.app.state.query_builder


@structured_router.post("/log", status_code=status.HTTP_201_CREATED)
async def add_log(
    entry: schemas.LogEntryRequest,
    db: Database = Depends(get_database),
) -> Response:
    await service.write_entry(db, entry)
    return Response(status_code=status.HTTP_201_CREATED)


@structured_router.post("/query")
async def query_logs(
    payload: schemas.QueryFilterRequest,
    db: Database = Depends(get_database),
    builder: QueryBuilder = Depends(get_query_builder),
) -> list[dict]:
    return await service.run_query(db, builder, payload)


@raw_router.post("/log", status_code=status.HTTP_201_CREATED)
async def add_message(
    entry: schemas.MessageEntryRequest,
    db: Database = Depends(get_database),
) -> Response:
    await service.write_message(db, entry)
    return Response(status_code=status.HTTP_201_CREATED)


@raw_router.post("/query")
async def query_raw(
    payload: schemas.RawQueryRequest,
    db: Database = Depends(get_database),
    builder: QueryBuilder = Depends(get_query_builder),
) -> list[dict]:
    return await service.run_query(db, builder, payload)


def router_for(mode: QueryMode) -> APIRouter:
    return raw_router if mode is QueryMode.RAW else structured_router
