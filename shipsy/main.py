"""
Shipsy API
Multi-tenant shipment and customer management service
"""

import os
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shipsy import __version__
from shipsy.api import auth_routes, customer_routes, shipment_routes
from shipsy.api.errors import register_exception_handlers
from shipsy.core import RequestLoggingMiddleware, ServiceHealth, get_logger, setup_logging
from shipsy.core_settings import get_settings
from shipsy.infrastructure.db import init_models, ping_database

settings = get_settings()

SERVICE_DESCRIPTION = "Shipment and customer management API"
PROJECT_ROOT = os.path.join(os.path.dirname(__file__), "..")

setup_logging(
    service_name=settings.SERVICE_NAME,
    level=settings.LOG_LEVEL,
    environment=settings.ENVIRONMENT,
    version=settings.SERVICE_VERSION,
)

logger = get_logger(__name__)


def run_migrations() -> None:
    logger.info("Running database migrations")
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        check=False
    )
    if result.returncode != 0:
        raise RuntimeError(f"alembic upgrade failed: {result.stderr.strip()}")
    logger.info("Database migrations completed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.SERVICE_NAME} version {settings.SERVICE_VERSION}")

    if settings.RUN_MIGRATIONS:
        run_migrations()
    else:
        init_models()
        logger.info("Database models initialized")

    logger.info(f"{settings.SERVICE_NAME} started successfully")
    yield
    logger.info(f"Shutting down {settings.SERVICE_NAME}")


app = FastAPI(
    title=settings.SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

# Credentialed CORS needs explicit origins, never "*"
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

health_service = ServiceHealth(settings.SERVICE_NAME, settings.SERVICE_VERSION, ping_database)
app.include_router(health_service.create_health_router())

app.include_router(auth_routes.router)
app.include_router(customer_routes.router)
app.include_router(shipment_routes.router)


@app.get("/")
async def root():
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "package": __version__,
        "status": "running",
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs"
    }
