"""Speed endpoint."""
from fastapi import APIRouter, Depends

from livetiming.config import Settings
from livetiming.core.deps import get_app_settings, get_openf1
from livetiming.core.exceptions import (
    NoActiveSessionException,
    DriverNotFoundException,
    no_active_session,
    driver_not_found,
    internal_error,
)
from livetiming.core.logging import get_logger
from livetiming.schemas.positions import CurrentSpeedSchema
from livetiming.services import live_queries
from livetiming.services.openf1_client import TelemetrySource

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Speed"])


@router.get("/current_speed/{driver_number}", response_model=CurrentSpeedSchema)
async def current_speed(
    driver_number: int,
    client: TelemetrySource = Depends(get_openf1),
    settings: Settings = Depends(get_app_settings)
) -> CurrentSpeedSchema:
    """Latest speed sample of a driver in the current session."""
    try:
        return await live_queries.get_current_speed(client, settings, driver_number)
    except NoActiveSessionException:
        raise no_active_session()
    except DriverNotFoundException:
        raise driver_not_found(driver_number)
    except Exception as e:
        logger.error(f"Error fetching speed for driver {driver_number}: {e}")
        raise internal_error()
