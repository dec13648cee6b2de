"""Position endpoints consumed by the dashboard."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from livetiming.config import Settings
from livetiming.core.deps import get_db_session, get_app_settings, get_openf1
from livetiming.core.exceptions import NoActiveSessionException, no_active_session, internal_error
from livetiming.core.logging import get_logger
from livetiming.schemas.positions import (
    CurrentPositionSchema,
    PositionHistoryPointSchema,
    DriverOptionSchema,
)
from livetiming.services import live_queries
from livetiming.services.openf1_client import TelemetrySource

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Positions"])


@router.get("/current_positions", response_model=list[CurrentPositionSchema])
async def current_positions(
    db: Session = Depends(get_db_session),
    client: TelemetrySource = Depends(get_openf1),
    settings: Settings = Depends(get_app_settings)
) -> list[CurrentPositionSchema]:
    """Latest position of every driver in the current session, leader first."""
    try:
        return await live_queries.get_current_positions(db, client, settings)
    except Exception as e:
        logger.error(f"Error fetching current positions: {e}")
        raise internal_error()


@router.get("/positions/history/{driver_number}", response_model=list[PositionHistoryPointSchema])
async def position_history(
    driver_number: int,
    db: Session = Depends(get_db_session),
    client: TelemetrySource = Depends(get_openf1),
    settings: Settings = Depends(get_app_settings)
) -> list[PositionHistoryPointSchema]:
    """Position timeline of one driver in the current session, oldest first."""
    try:
        return await live_queries.get_position_history_for_driver(db, client, settings, driver_number)
    except NoActiveSessionException:
        raise no_active_session()
    except Exception as e:
        logger.error(f"Error fetching historical positions: {e}")
        raise internal_error()


@router.get("/drivers_with_position_data", response_model=list[DriverOptionSchema])
async def drivers_with_position_data(
    db: Session = Depends(get_db_session),
    client: TelemetrySource = Depends(get_openf1),
    settings: Settings = Depends(get_app_settings)
) -> list[DriverOptionSchema]:
    """Drivers that have stored positions in the current session, by name."""
    try:
        return await live_queries.get_drivers_with_data(db, client, settings)
    except Exception as e:
        logger.error(f"Error fetching drivers with position data: {e}")
        raise internal_error()
