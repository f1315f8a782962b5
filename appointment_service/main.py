"""
FastAPI Application Entry Point

This module initializes the FastAPI application and integrates:
- Appointment API routes
- Database connections
- Error handlers
- Lifecycle events

Sample data is never inserted here; see ``appointment_service.seed``.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from appointment_service.api import appointments_router
from appointment_service.config import settings
from appointment_service.db.repository import DatabaseError
from appointment_service.db.schema import create_schema
from appointment_service.db.session import (
    check_database_connection,
    close_database_connection,
    get_engine,
)
from appointment_service.services.errors import AppointmentServiceError
from appointment_service.services.pets import PetRegistryError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events:
    - Verifies the database connection
    - Creates the appointments table when enabled
    - Closes connections on shutdown
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.service_name}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Database driver: {settings.database_url_str.split('://')[0]}")
    logger.info(f"Pet registry: {settings.pet_registry_url or 'shared table ' + settings.pets_table}")
    logger.info("=" * 60)

    if await check_database_connection():
        logger.info("Database connection verified")
        if settings.db_create_schema:
            try:
                await create_schema(get_engine())
            except SQLAlchemyError as e:
                logger.error(f"Could not create appointments table: {e}")
    else:
        logger.error("Database connection failed!")
        logger.warning("Application will start but database operations will fail")

    yield

    logger.info(f"Shutting down {settings.service_name}...")
    await close_database_connection()


# Initialize FastAPI application
app = FastAPI(
    title="Appointment Service",
    description=(
        "Veterinary appointment records. Accepts the current and the legacy "
        "client schema, checks pet references against the pet registry and "
        "reports status statistics."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppointmentServiceError)
async def appointment_error_handler(request: Request, exc: AppointmentServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(DatabaseError)
@app.exception_handler(PetRegistryError)
async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/health")
async def health_check():
    """Liveness probe; does not touch the database."""
    return {"status": "ok", "service": settings.service_name}


@app.get("/ready")
async def readiness_check():
    """
    Readiness probe.

    Returns:
        JSONResponse with 200 when the database answers, 503 otherwise
    """
    db_healthy = await check_database_connection()
    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "status": "ok" if db_healthy else "degraded",
            "database": "connected" if db_healthy else "disconnected",
        },
    )


app.include_router(appointments_router)


def run() -> None:
    import uvicorn

    logger.info(f"Starting uvicorn on {settings.app_host}:{settings.app_port}")
    uvicorn.run(
        "appointment_service.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
