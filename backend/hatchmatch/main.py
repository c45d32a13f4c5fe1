"""FastAPI application factory and lifespan for HatchMatch."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .exceptions import (
    ConfigurationError,
    HatchMatchError,
    NoTripWatersError,
    OracleError,
    RecommendationError,
    TripAggregationError,
    WaterBodyNotFoundError,
)
from .models.database import init_database
from .api.router import api_router
from .api.dependencies import set_http_client
from .ws.handler import trip_recommendations_endpoint

# Configure logging for our app (uvicorn only configures its own loggers)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

_ERROR_STATUS: list[tuple[type[HatchMatchError], int]] = [
    (WaterBodyNotFoundError, 404),
    (NoTripWatersError, 400),
    (TripAggregationError, 502),
    (RecommendationError, 502),
    (OracleError, 502),
]


def error_status(exc: HatchMatchError) -> int:
    """HTTP status for a pipeline error."""
    if isinstance(exc, ConfigurationError):
        return 500 if exc.missing_credentials else 400
    for exc_type, status in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


async def _hatchmatch_error_handler(request: Request, exc: HatchMatchError) -> JSONResponse:
    status = error_status(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"error": str(exc)})


async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: database setup and the shared HTTP client."""
    logger.info("Database: %s", settings.db_path)
    init_database()
    logger.info("Database initialized")

    client = httpx.AsyncClient(
        timeout=settings.http_timeout_sec,
        headers={"User-Agent": settings.user_agent},
    )
    set_http_client(client)

    yield

    logger.info("Shutting down...")
    set_http_client(None)
    await client.aclose()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="HatchMatch",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HatchMatchError, _hatchmatch_error_handler)
    app.add_exception_handler(HTTPException, _http_error_handler)

    app.include_router(api_router)
    app.websocket("/ws/trip-recommendations")(trip_recommendations_endpoint)

    return app


# Application instance
app = create_app()


def cli() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    cli()
