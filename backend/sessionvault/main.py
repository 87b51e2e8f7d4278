"""Sessionvault - FastAPI Application Factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sessionvault.api import auth_router, health_router
from sessionvault.core import async_session_maker, init_models, settings, setup_logging
from sessionvault.core.logging import get_logger
from sessionvault.services.token_cleanup import RefreshTokenCleanupService
from sessionvault.services.users import seed_admin_account

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging(level=settings.log_level, format_type=settings.log_format)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    for warning in settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    if settings.db_create_tables:
        await init_models()
        logger.info("Database tables created")

    if settings.admin_seed_enabled:
        await seed_admin_account(
            async_session_maker, settings.admin_seed_email, settings.admin_seed_password
        )

    cleanup_service = RefreshTokenCleanupService.get_instance(
        async_session_maker, settings.token_settings()
    )
    await cleanup_service.start()

    yield

    logger.info("Shutting down...")
    await cleanup_service.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Access and refresh token service",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    app.include_router(health_router)
    app.include_router(auth_router)

    return app


app = create_app()
