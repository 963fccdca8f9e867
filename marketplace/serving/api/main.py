"""
FastAPI Application Factory

Creates and configures the User Activity API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import structlog

from marketplace.activity.service import UserActivityService
from marketplace.config import Settings, get_settings
from marketplace.config.logging import configure_logging
from marketplace.database.connection import close_database, get_session_factory, init_database
from marketplace.database.store import EntityStore
from marketplace.serving.api.errors import register_exception_handlers
from marketplace.serving.api.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from marketplace.serving.api.routes import activity_router, health_router

logger = structlog.get_logger(__name__)


def build_activity_service(settings: Settings) -> UserActivityService:
    """Wire the activity service to the initialized database."""
    store = EntityStore(get_session_factory())
    return UserActivityService(store, settings=settings.activity)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Application settings (defaults to cached settings)

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        configure_logging(settings)
        logger.info("Starting User Activity API", environment=settings.app_env)

        try:
            await init_database(settings)
            app.state.activity_service = build_activity_service(settings)
            logger.info("Activity service ready")
        except Exception as e:
            # Requests answer 503 until the store is reachable after a restart
            logger.warning("Database init failed", error=str(e))

        yield

        logger.info("Shutting down...")
        app.state.activity_service = None
        await close_database()

    app = FastAPI(
        title="Marketplace User Activity API",
        description="Consolidated buyer, seller and review activity for the grocery marketplace",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.activity_service = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(activity_router, prefix="/user-activity", tags=["User Activity"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Marketplace User Activity API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
