from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from fieldforce_api.core.settings import settings
from fieldforce_api.db.session import engine
from . import models  # noqa: F401
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing


APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Rewards API starting",
        environment=settings.environment,
        review_min_role=settings.rewards_review_min_role,
        read_min_role=settings.rewards_read_min_role,
    )
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Rewards API stopped")


def create_app() -> FastAPI:
    """Application factory for the field-force rewards FastAPI service."""
    configure_logging(
        service_name="fieldforce-api",
        environment=settings.environment,
        version=APP_VERSION,
        level=settings.log_level,
        redacted_fields=settings.log_redacted_fields,
    )

    app = FastAPI(
        title="Field Force Rewards API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    configure_tracing(
        app,
        service_name="fieldforce-api",
        service_version=APP_VERSION,
        environment=settings.environment,
    )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
