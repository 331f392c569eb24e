"""
Main FastAPI application entrypoint.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tripboard import __version__
from tripboard.app_services import AppServices
from tripboard.config import settings
from tripboard.domain.errors import InfrastructureError, TripboardError
from tripboard.api.health import router as health_router
from tripboard.api.auth import router as auth_router
from tripboard.api.trips import router as trips_router
from tripboard.api.posts import router as posts_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def tripboard_error_handler(request: Request, exc: TripboardError) -> JSONResponse:
    return _error(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(400, "Request is invalid.")
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
    return _error(400, f"Invalid request: {location}: {first.get('msg', 'invalid value')}")


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.error(f"Database connection error on {request.method} {request.url.path}: {exc}")
        return _error(500, InfrastructureError.default_message)
    logger.exception(f"Unexpected database error on {request.method} {request.url.path}")
    return _error(500, TripboardError.default_message)


def create_app(services: Optional[AppServices] = None) -> FastAPI:
    """
    Build the application.

    Args:
        services: Pre-built resources (tests). When omitted they are built
            from settings on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan event handler for startup and shutdown.
        """
        # Startup
        if app.state.services is None:
            app.state.services = AppServices.from_settings()
        await app.state.services.start()
        logger.info(f"Starting Tripboard API on {settings.host}:{settings.port}")
        logger.info(f"Debug mode: {settings.debug}")

        yield

        # Shutdown
        logger.info("Shutting down Tripboard API")
        await app.state.services.close()

    app = FastAPI(
        title="Tripboard API",
        description="Backend API for collaborative trip planning",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TripboardError, tripboard_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(trips_router, prefix="/api")
    app.include_router(posts_router, prefix="/api")

    # Directory is created on startup by the upload store
    uploads_dir = services.upload_store.directory if services else settings.uploads_dir
    app.mount(
        settings.uploads_url_prefix,
        StaticFiles(directory=uploads_dir, check_dir=False),
        name="uploads",
    )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Tripboard API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    return app


app = create_app()
