from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, load_settings
from core.db import Database
from core.log_config import configure_logging
from logs import repository as logs_repository
from logs.query_builder import builder_for
from logs.router import router_for

logger = logging.getLogger(__name__)


def create_app(settings: Settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One database handle per process, shared by every request.
        db = Database(settings.database_path)
        db.open()
        try:
            logs_repository.ensure_schema(db, settings.query_mode)
            logger.info("schema_ready mode=%s", settings.query_mode.value)
            app.state.db = db
            yield
        finally:
            app.state.db = None
            db.close()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.db = None
    app.state.query_builder = builder_for(settings.query_mode)

    # Any origin may call the log endpoints.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router_for(settings.query_mode), tags=["logs"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "mode": settings.query_mode.value}

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("server_starting url=http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
