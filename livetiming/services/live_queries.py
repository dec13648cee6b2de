"""
Read-side queries behind the dashboard endpoints.
"""
import asyncio
from datetime import datetime

from sqlalchemy.orm import Session

from livetiming.config import Settings
from livetiming.core.exceptions import (
    DriverNotFoundException,
    NoActiveSessionException,
    NO_ACTIVE_SESSION_MESSAGE,
)
from livetiming.core.time_utils import utc_now
from livetiming.schemas.positions import (
    CurrentPositionSchema,
    PositionHistoryPointSchema,
    DriverOptionSchema,
    CurrentSpeedSchema,
)
from livetiming.services import position_store
from livetiming.services.ingestion_modes import get_ingestion_mode
from livetiming.services.openf1_client import TelemetrySource
from livetiming.services.session_resolver import resolve_current_session


async def resolve_session_key(
    client: TelemetrySource,
    settings: Settings,
    now: datetime | None = None
) -> int | None:
    """Resolve the current session with the same window the poller uses."""
    sessions = await client.get_sessions()
    window = get_ingestion_mode(settings).window
    return resolve_current_session(sessions, now or utc_now(), window)


async def get_current_positions(
    db: Session,
    client: TelemetrySource,
    settings: Settings
) -> list[CurrentPositionSchema]:
    """Latest stored position of every driver, by position. Empty without a session."""
    session_key = await resolve_session_key(client, settings)
    if session_key is None:
        return []

    rows = await asyncio.to_thread(position_store.get_latest_positions, db, session_key)
    return [CurrentPositionSchema.model_validate(row) for row in rows]


async def get_position_history_for_driver(
    db: Session,
    client: TelemetrySource,
    settings: Settings,
    driver_number: int
) -> list[PositionHistoryPointSchema]:
    """
    A driver's position timeline in the current session, oldest first.

    Raises:
        NoActiveSessionException: If no session is current
    """
    session_key = await resolve_session_key(client, settings)
    if session_key is None:
        raise NoActiveSessionException(NO_ACTIVE_SESSION_MESSAGE)

    rows = await asyncio.to_thread(position_store.get_position_history, db, driver_number, session_key)
    return [PositionHistoryPointSchema.model_validate(row) for row in rows]


async def get_drivers_with_data(
    db: Session,
    client: TelemetrySource,
    settings: Settings
) -> list[DriverOptionSchema]:
    """Drivers with stored positions in the current session. Empty without a session."""
    session_key = await resolve_session_key(client, settings)
    if session_key is None:
        return []

    pairs = await asyncio.to_thread(position_store.get_drivers_with_positions, db, session_key)
    return [DriverOptionSchema(driver_number=number, full_name=name) for number, name in pairs]


async def get_current_speed(
    client: TelemetrySource,
    settings: Settings,
    driver_number: int
) -> CurrentSpeedSchema:
    """
    Latest speed sample of a driver, read straight from upstream.

    Raises:
        NoActiveSessionException: If no session is current
        DriverNotFoundException: If the driver is not in the session or has no samples
    """
    session_key = await resolve_session_key(client, settings)
    if session_key is None:
        raise NoActiveSessionException(NO_ACTIVE_SESSION_MESSAGE)

    drivers = await client.get_drivers(session_key)
    driver = next((d for d in drivers if d.driver_number == driver_number), None)
    if driver is None:
        raise DriverNotFoundException(f"Driver #{driver_number} not found in session {session_key}")

    samples = [s for s in await client.get_car_data(session_key, driver_number) if s.date is not None]
    if not samples:
        raise DriverNotFoundException(f"No speed data for driver #{driver_number} in session {session_key}")

    latest = max(samples, key=lambda s: s.date)
    return CurrentSpeedSchema(
        driver_number=driver_number,
        full_name=driver.full_name,
        speed=latest.speed,
        date=latest.date,
    )
