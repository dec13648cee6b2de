"""
Async client for the OpenF1 REST API.
Only the endpoints needed for live positions and speeds are wrapped.
"""
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from livetiming.config import Settings
from livetiming.core.logging import get_logger
from livetiming.core.exceptions import UpstreamUnavailableException
from livetiming.schemas.openf1 import (
    SessionSchema,
    DriverSchema,
    RawPositionSchema,
    CarDataSchema,
)

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class TelemetrySource(Protocol):
    """Protocol for anything that can feed sessions, positions, drivers and car data."""

    async def get_sessions(self) -> list[SessionSchema]:
        ...

    async def get_positions(self, session_key: int) -> list[RawPositionSchema]:
        ...

    async def get_drivers(self, session_key: int) -> list[DriverSchema]:
        ...

    async def get_car_data(self, session_key: int, driver_number: int) -> list[CarDataSchema]:
        ...


def parse_records(payload: Any, model: type[RecordT], endpoint: str) -> list[RecordT]:
    """
    Validate a JSON array into records, dropping malformed entries.

    Args:
        payload: Decoded JSON body
        model: Schema each entry is validated against
        endpoint: Endpoint name, for log messages

    Returns:
        Records that validated successfully

    Raises:
        UpstreamUnavailableException: If the body is not a JSON array
    """
    if not isinstance(payload, list):
        raise UpstreamUnavailableException(
            f"OpenF1 {endpoint} returned {type(payload).__name__}, expected a list"
        )

    records = []
    dropped = 0
    for item in payload:
        try:
            records.append(model.model_validate(item))
        except ValidationError:
            dropped += 1

    if dropped:
        logger.warning(f"Dropped {dropped} malformed record(s) from OpenF1 {endpoint}")
    return records


class OpenF1Client:
    """
    Client for https://api.openf1.org/v1.

    Holds one httpx.AsyncClient for the life of the process; call aclose()
    on shutdown.
    """

    def __init__(self, settings: Settings):
        self.base_url = settings.openf1_base_url.rstrip("/")
        self.timeout = settings.openf1_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
        )
        logger.info(f"Initialized OpenF1Client at {self.base_url}")

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET an endpoint and return the decoded JSON body.

        Raises:
            UpstreamUnavailableException: On transport errors, timeouts,
                non-2xx responses or undecodable bodies
        """
        try:
            logger.debug(f"Calling OpenF1 API: {endpoint} params={params}")
            response = await self._client.get(endpoint, params=params)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"OpenF1 HTTP error: {e.response.status_code} on {endpoint}")
            raise UpstreamUnavailableException(
                f"OpenF1 HTTP error: {e.response.status_code} on {endpoint}"
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"OpenF1 timeout on {endpoint}: {str(e)}")
            raise UpstreamUnavailableException(f"OpenF1 timeout on {endpoint}") from e
        except httpx.RequestError as e:
            logger.error(f"OpenF1 request error on {endpoint}: {str(e)}")
            raise UpstreamUnavailableException(f"Failed to connect to OpenF1: {str(e)}") from e
        except ValueError as e:
            logger.error(f"OpenF1 returned invalid JSON on {endpoint}")
            raise UpstreamUnavailableException(f"Invalid JSON from OpenF1 {endpoint}") from e

    async def get_sessions(self) -> list[SessionSchema]:
        """Fetch the session catalog."""
        payload = await self._get("/sessions")
        return parse_records(payload, SessionSchema, "sessions")

    async def get_positions(self, session_key: int) -> list[RawPositionSchema]:
        """Fetch all position samples for a session."""
        payload = await self._get("/position", params={"session_key": session_key})
        return parse_records(payload, RawPositionSchema, "position")

    async def get_drivers(self, session_key: int) -> list[DriverSchema]:
        """Fetch driver metadata for a session."""
        payload = await self._get("/drivers", params={"session_key": session_key})
        return parse_records(payload, DriverSchema, "drivers")

    async def get_car_data(self, session_key: int, driver_number: int) -> list[CarDataSchema]:
        """Fetch car telemetry samples for one driver in a session."""
        payload = await self._get(
            "/car_data",
            params={"session_key": session_key, "driver_number": driver_number},
        )
        return parse_records(payload, CarDataSchema, "car_data")

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()
