"""Main FastAPI application entry point.

Initializes:
- FastAPI application with CORS middleware
- Database connection
- Marine (AIS) position service
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from yachtops.ais import MarineServiceError, SqlVesselRepository, build_marine_service
from yachtops.ais.service import MarineService
from yachtops.api import marine_error_handler, request_validation_handler
from yachtops.api import router as api_router
from yachtops.config import get_settings
from yachtops.database import (
    check_database_connection,
    close_db_engine,
    init_db_engine,
)

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info("=" * 60)
    logger.info(f"Environment: {settings.environment}")

    owns_database = getattr(app.state, "marine_service", None) is None
    if owns_database:
        logger.info("Initializing database connection...")
        session_factory = init_db_engine(settings.database_url, echo=settings.debug)
        app.state.marine_service = build_marine_service(
            settings, SqlVesselRepository(session_factory)
        )

    service: MarineService = app.state.marine_service
    logger.info("Initializing marine position service...")
    await service.start()

    logger.info("=" * 60)
    logger.info("Startup complete")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down marine position service...")
    await service.stop()

    if owns_database:
        logger.info("Closing database connection...")
        await close_db_engine()
        app.state.marine_service = None

    logger.info("Shutdown complete")


def create_app(marine_service: Optional[MarineService] = None) -> FastAPI:
    """Build the application, optionally around an existing service."""
    app = FastAPI(
        title=settings.app_name,
        description="""
## YachtOps Marine API

Live vessel positions for the yacht fleet from the AIS stream.

### Features
- **Fleet**: Fleet vessels joined with live AIS positions
- **Positions**: Latest positions by MMSI or bounding box
- **Details & Search**: Vessel information from the AIS provider
- **Corrections**: Manual position updates by operators

Without an AIS API key the read endpoints serve sample data.
        """,
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        openapi_tags=[
            {
                "name": "Marine",
                "description": "AIS vessel positions, details and search",
            },
        ],
    )
    app.state.marine_service = marine_service

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MarineServiceError, marine_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict[str, str | bool]:
        """Health check endpoint for container orchestration."""
        service: Optional[MarineService] = app.state.marine_service
        db_healthy = await check_database_connection()

        return {
            "status": "healthy" if db_healthy else "degraded",
            "service": "yachtops",
            "environment": settings.environment,
            "database": db_healthy,
            "ais_configured": bool(service and service.is_configured),
            "ais_feed": service.connection.state.value if service else "unavailable",
        }

    @app.get("/status")
    async def system_status() -> dict:
        """Detailed marine pipeline status."""
        service: Optional[MarineService] = app.state.marine_service
        return {
            "service": settings.app_name,
            "version": "0.1.0",
            "environment": settings.environment,
            "ais": service.get_statistics() if service else None,
        }

    return app


app = create_app()
