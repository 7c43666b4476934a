"""FastAPI application factory and main entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tracksubs.api.middleware.exception_handler import setup_exception_handlers
from tracksubs.api.middleware.logging import LoggingMiddleware
from tracksubs.api.middleware.metrics import MetricsMiddleware
from tracksubs.api.routes import (
    catalog_router,
    health_router,
    payment_methods_router,
    subscriptions_router,
    users_router,
)
from tracksubs.core.config import get_settings
from tracksubs.core.database import engine
from tracksubs.core.logging import configure_logging, get_logger
from tracksubs.core.redis import close_redis

settings = get_settings()

configure_logging(
    json_logs=settings.is_production,
    log_level="DEBUG" if settings.debug else "INFO",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("application_startup", app_name=settings.app_name, env=settings.app_env)
    yield
    logger.info("application_shutdown")
    await close_redis()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        description="Subscription tracking with usage counters and a billing ledger",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_exception_handlers(app)

    prefix = settings.api_v1_prefix
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router, prefix=prefix, tags=["Users"])
    app.include_router(subscriptions_router, prefix=f"{prefix}/subscriptions", tags=["Subscriptions"])
    app.include_router(payment_methods_router, prefix=f"{prefix}/payment-methods", tags=["Payment Methods"])
    app.include_router(catalog_router, prefix=prefix, tags=["Catalog"])

    return app


app = create_app()
