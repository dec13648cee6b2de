# livetiming/core/deps.py
"""FastAPI dependencies."""
from typing import Generator
from sqlalchemy.orm import Session
from fastapi import Request

from livetiming.db import get_db
from livetiming.config import Settings, get_settings
from livetiming.services.ingestion import PositionPoller
from livetiming.services.openf1_client import TelemetrySource


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Get database session dependency."""
    yield from get_db(request)


def get_app_settings() -> Settings:
    """Get application settings dependency."""
    return get_settings()


def get_openf1(request: Request) -> TelemetrySource:
    """Get the process-wide OpenF1 client."""
    return request.app.state.openf1_client


def get_poller(request: Request) -> PositionPoller:
    """Get the background position poller."""
    return request.app.state.poller
