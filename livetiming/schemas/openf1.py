# livetiming/schemas/openf1.py
"""Schemas for records returned by the OpenF1 API."""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from livetiming.core.time_utils import to_utc


class SessionType(str, Enum):
    """Session type as reported by OpenF1."""
    QUALIFYING = "Qualifying"
    RACE = "Race"
    PRACTICE = "Practice"
    OTHER = "Other"


class OpenF1Record(BaseModel):
    """Base for upstream records: unknown fields are ignored, timestamps become UTC."""
    
    model_config = ConfigDict(extra="ignore", frozen=True)


class SessionSchema(OpenF1Record):
    """One timed event (practice, qualifying, race)."""
    session_key: int
    session_type: SessionType = SessionType.OTHER
    session_name: str | None = None
    date_start: datetime | None = None
    date_end: datetime | None = None
    
    @field_validator("session_type", mode="before")
    @classmethod
    def _known_session_type(cls, value):
        if value in {t.value for t in SessionType}:
            return value
        return SessionType.OTHER
    
    @field_validator("date_start", "date_end")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class DriverSchema(OpenF1Record):
    """Driver metadata for one session."""
    driver_number: int
    full_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    team_name: str | None = None
    
    @model_validator(mode="before")
    @classmethod
    def _fill_full_name(cls, data):
        if isinstance(data, dict) and not data.get("full_name"):
            parts = [p for p in (data.get("first_name"), data.get("last_name")) if p]
            name = " ".join(parts) if parts else f"Driver #{data.get('driver_number')}"
            data = {**data, "full_name": name}
        return data


class RawPositionSchema(OpenF1Record):
    """A position sample; upstream may send many per driver per call."""
    driver_number: int
    position: int | None = None
    date: datetime | None = None
    session_key: int | None = None
    
    @field_validator("date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class CarDataSchema(OpenF1Record):
    """A car telemetry sample; only speed is used."""
    driver_number: int
    speed: float | None = None
    date: datetime | None = None
    
    @field_validator("date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None
