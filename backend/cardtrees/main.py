"""Card tree FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardtrees.config import Settings, configure_logging
from cardtrees.db.connection import Database
from cardtrees.error_handlers import register_error_handlers
from cardtrees.trees.router import get_tree_service
from cardtrees.trees.router import router as trees_router
from cardtrees.trees.service import CardTreeService

VERSION = "0.1.0"

logger = logging.getLogger(__name__)

# .env lives in the backend/ directory
ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around one Settings object.

    Settings are read from the environment when not given. The lifespan opens
    the database and wires the service from the same object.
    """
    if settings is None:
        settings = Settings.from_env(ENV_FILE)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage database lifecycle and service wiring."""
        configure_logging(settings.log_level)

        db = await Database.connect(settings.db_path, timeout=settings.store_timeout)
        logger.info("Card tree store opened at %s", settings.db_path)

        service = CardTreeService.from_database(db, max_payload_nodes=settings.max_payload_nodes)
        app.dependency_overrides[get_tree_service] = lambda: service

        app.state.db = db
        yield

        await db.close()

    app = FastAPI(
        title="Card Trees",
        description="Hierarchical card outlines attached to forum boards, threads and posts",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(trees_router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
