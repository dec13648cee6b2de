"""
F1 Live Timing Backend - FastAPI Application
"""
# livetiming/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from livetiming.config import get_settings
from livetiming.core.logging import setup_logging, get_logger
from livetiming.db import Database
from livetiming.services.ingestion import PositionPoller
from livetiming.services.openf1_client import OpenF1Client

import livetiming.routers.health as health
import livetiming.routers.positions as positions
import livetiming.routers.speed as speed


settings = get_settings()

# Setup logging
setup_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"OpenF1: {settings.openf1_base_url}")
    logger.info(f"Ingestion mode: {settings.ingestion_mode}")
    logger.info(f"Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'configured'}")
    logger.info("=" * 60)

    database = Database(settings.database_url, echo=settings.debug)
    if settings.auto_create_tables:
        database.create_all()
    client = OpenF1Client(settings)
    poller = PositionPoller(client, database, settings)

    app.state.database = database
    app.state.openf1_client = client
    app.state.poller = poller

    if settings.poll_enabled:
        poller.start()

    yield

    # Shutdown
    logger.info("Shutting down application")
    await poller.stop()
    await client.aclose()
    database.dispose()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    F1 Live Timing Backend API

    Features:
    - Background ingestion of live driver positions from OpenF1
    - Deduplicated position history per session
    - Current positions, per-driver position timelines and live speeds
    """,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as {"message": ...}."""
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation errors as {"message": ...}."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=422, content={"message": f"Invalid request: {problems}"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for errors no endpoint handled."""
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Include routers
app.include_router(health.router)
app.include_router(positions.router)
app.include_router(speed.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "livetiming.main:app",
        host="0.0.0.0",
        port=3001,
        reload=settings.debug
    )
