"""Temp targets FastAPI application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from temp_targets.config import settings
from temp_targets.database import close_database, init_models
from temp_targets.logging_config import get_logger, setup_logging
from temp_targets.middleware import CorrelationIdMiddleware
from temp_targets.routers import health, temp_targets

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await init_models()
    await temp_targets.get_controller()
    logger.info(
        "Temp targets API started",
        units=str(settings.glucose_units),
        max_sensitivity_ratio=settings.max_sensitivity_ratio,
    )

    yield

    logger.info("Shutting down temp targets API...")
    temp_targets.reset_controller()
    await close_database()
    logger.info("Temp targets API shutdown complete")


app = FastAPI(
    title="Temp Targets API",
    description="Temporary glucose target overrides for a closed-loop system",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(temp_targets.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "Temp Targets API",
        "version": "0.1.0",
        "docs": "/docs",
    }
