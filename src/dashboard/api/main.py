"""Main FastAPI application for Ward-Census dashboard.

This module sets up the FastAPI application with all routes, middleware,
and configuration for the dashboard API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.dashboard.api.middleware import setup_middleware
from src.dashboard.api.logging_config import setup_logging
from src.dashboard.api.routes import analytics, health
from src.infrastructure.settings import APP_VERSION, settings

# Configure structured logging
setup_logging(use_json=settings.json_logs, log_level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info(f"{settings.app_name} Dashboard API starting up...")
    logger.info("API documentation available at /api/docs")
    logger.info(f"Logging level: {settings.log_level}")
    logger.info(f"JSON logs: {settings.json_logs}")
    yield
    # Shutdown
    logger.info(f"{settings.app_name} Dashboard API shutting down...")


# Create FastAPI application
app = FastAPI(
    title="Ward-Census Dashboard API",
    description="Cohort analytics API for hospital ward dashboards",
    version=APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)

# Setup custom middleware
setup_middleware(app)

# Include routers
app.include_router(health.router)
app.include_router(analytics.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Ward-Census Dashboard API",
        "version": APP_VERSION,
        "docs": "/api/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.dashboard.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
