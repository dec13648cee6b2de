"""Shared test fixtures and sample OpenF1 records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from livetiming.config import Settings
from livetiming.db import Database
from livetiming.schemas.openf1 import (
    CarDataSchema,
    DriverSchema,
    RawPositionSchema,
    SessionSchema,
)

NOW = datetime(2024, 6, 9, 15, 0, 0, tzinfo=timezone.utc)
SESSION_KEY = 9523


def naive(dt: datetime) -> datetime:
    """SQLite hands datetimes back without tzinfo; compare in naive UTC."""
    return dt.astimezone(timezone.utc).replace(tzinfo=None) if dt.tzinfo else dt


def make_session(
    session_key: int = SESSION_KEY,
    session_type: str = "Race",
    start: datetime | None = None,
    end: datetime | None = None,
) -> SessionSchema:
    return SessionSchema.model_validate({
        "session_key": session_key,
        "session_type": session_type,
        "session_name": session_type,
        "date_start": start or NOW - timedelta(hours=3),
        "date_end": end,
    })


def make_driver(driver_number: int, full_name: str, team_name: str) -> DriverSchema:
    return DriverSchema.model_validate({
        "driver_number": driver_number,
        "full_name": full_name,
        "team_name": team_name,
        "session_key": SESSION_KEY,
    })


def make_position(driver_number: int, position: int, date: datetime) -> RawPositionSchema:
    return RawPositionSchema.model_validate({
        "driver_number": driver_number,
        "position": position,
        "date": date,
        "session_key": SESSION_KEY,
    })


DRIVERS = [
    make_driver(1, "Max VERSTAPPEN", "Red Bull Racing"),
    make_driver(16, "Charles LECLERC", "Ferrari"),
    make_driver(44, "Lewis HAMILTON", "Mercedes"),
    make_driver(99, "Test DRIVER", "Garage Team"),
]


class FakeTelemetrySource:
    """In-memory stand-in for OpenF1Client."""

    def __init__(
        self,
        sessions: list[SessionSchema] | None = None,
        positions: list[RawPositionSchema] | None = None,
        drivers: list[DriverSchema] | None = None,
        car_data: list[CarDataSchema] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.sessions = sessions or []
        self.positions = positions or []
        self.drivers = drivers if drivers is not None else list(DRIVERS)
        self.car_data = car_data or []
        self.error = error
        self.calls: list[str] = []

    async def get_sessions(self) -> list[SessionSchema]:
        self.calls.append("sessions")
        if self.error:
            raise self.error
        return list(self.sessions)

    async def get_positions(self, session_key: int) -> list[RawPositionSchema]:
        self.calls.append("position")
        return [p for p in self.positions if p.session_key in (None, session_key)]

    async def get_drivers(self, session_key: int) -> list[DriverSchema]:
        self.calls.append("drivers")
        return list(self.drivers)

    async def get_car_data(self, session_key: int, driver_number: int) -> list[CarDataSchema]:
        self.calls.append("car_data")
        return [c for c in self.car_data if c.driver_number == driver_number]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        poll_enabled=False,
        poll_interval_seconds=0.01,
        ingestion_mode="live",
    )


@pytest.fixture
def database() -> Generator[Database, None, None]:
    database = Database("sqlite://")
    database.create_all()
    try:
        yield database
    finally:
        database.dispose()


@pytest.fixture
def db(database: Database) -> Generator[Session, None, None]:
    with database.session_scope() as session:
        yield session


@pytest.fixture
def live_session() -> SessionSchema:
    """A race that started three hours ago and is still running."""
    return make_session()
