"""Metaphornik API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map MetaphornikError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, Analysis Store, AI Gateway and workspace registry are built in the
      lifespan and live on app.state; disposed in reverse order on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_app() factory: tests build an app and fill app.state themselves
    - SQLite databases get their schema created on startup; server databases are
      migrated with alembic
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from metaphornik.api.error_handlers import register_error_handlers
from metaphornik.api.routes import analyses, health, workspaces
from metaphornik.config import get_settings
from metaphornik.infrastructure.anthropic_client import ResilientAnthropicClient
from metaphornik.infrastructure.database import init_db
from metaphornik.infrastructure.image_client import GeminiImageClient
from metaphornik.infrastructure.observability import setup_logging
from metaphornik.services.ai_gateway import AIGateway
from metaphornik.services.analysis_store import AnalysisStore
from metaphornik.services.store_repository import SqlAlchemyStoreRepository
from metaphornik.services.workspace_registry import WorkspaceRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if db.is_sqlite:
        await db.create_schema()

    store = AnalysisStore(SqlAlchemyStoreRepository(db))
    await store.init()
    app.state.store = store
    app.state.gateway = AIGateway(
        ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        ),
        GeminiImageClient(settings.gemini_api_key, settings.image_model),
        analysis_model=settings.analysis_model,
        fast_model=settings.fast_model,
        max_tokens=settings.text_max_tokens,
    )
    app.state.registry = WorkspaceRegistry()
    logger.info("Metaphornik API started")
    yield
    logger.info("Metaphornik API shutting down")
    app.state.registry.dispose()
    await store.dispose()
    await db.dispose()


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Metaphornik API", version="1.0.0",
        lifespan=lifespan if use_lifespan else None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    app.include_router(analyses.router)
    app.include_router(workspaces.router)
    register_error_handlers(app)

    # ADR: mounted AFTER API routes so /api/v1/* takes precedence
    if os.path.isdir("static"):
        app.mount("/", StaticFiles(directory="static", html=True), name="static")
    return app


app = create_app()
