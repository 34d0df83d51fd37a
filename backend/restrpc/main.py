"""REST-RPC API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Service registries and dispatchers built once in create_app(), read-only afterwards
    - Global error handlers keep every response in the {status, message, data} envelope
    - CORS configured from settings (not hardcoded)
    - Logging and database initialized on startup via lifespan context manager

Design Decisions:
    - App factory + module-level `app`: uvicorn serves `restrpc.main:app`, tests
      build apps with their own Settings
    - Registries live on app.state (not in lifespan) so they exist even when the
      ASGI lifespan is not run (httpx ASGITransport in tests)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from restrpc.api.error_handlers import register_error_handlers
from restrpc.api.routes.health import create_health_router
from restrpc.api.routes.services import create_services_router
from restrpc.config import Settings, get_settings
from restrpc.infrastructure import database
from restrpc.infrastructure.observability import setup_logging
from restrpc.services.action_call_log import ActionCallRecorder
from restrpc.services.action_dispatch import ActionDispatcher
from restrpc.services.authenticator import build_authenticator
from restrpc.services.registry_loader import build_api_versions

logger = logging.getLogger(__name__)


def _lifespan_for(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_logging(settings.log_level, settings.log_format)
        manager = database.init_db(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        if settings.database_create_tables:
            await manager.create_tables()
        logger.info(
            "REST-RPC API started",
            extra={"api_version": ",".join(app.state.api_versions.versions())},
        )
        yield
        logger.info("REST-RPC API shutting down")
        await manager.dispose()

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="REST-RPC API", version="1.0.0", lifespan=_lifespan_for(settings),
    )

    api_versions = build_api_versions(settings)
    authenticator = build_authenticator(settings)
    recorder = ActionCallRecorder() if settings.record_action_calls else None
    app.state.settings = settings
    app.state.api_versions = api_versions
    app.state.dispatchers = {
        version: ActionDispatcher(
            api_versions.get(version),
            authenticator,
            coerce_types=settings.validation_coerce_types,
            handler_timeout=settings.handler_timeout_seconds,
            recorder=recorder,
        )
        for version in api_versions.versions()
    }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # Routes, registered explicitly
    app.include_router(create_health_router(settings.base_url))
    app.include_router(create_services_router(settings.base_url))

    register_error_handlers(app)
    return app


app = create_app()
