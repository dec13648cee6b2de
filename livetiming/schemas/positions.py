# livetiming/schemas/positions.py
"""Position and speed response schemas."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class CurrentPositionSchema(BaseModel):
    """Latest known position of a driver."""
    driver_number: int
    full_name: str
    team_name: str
    position: int
    
    model_config = ConfigDict(from_attributes=True)


class PositionHistoryPointSchema(BaseModel):
    """One point of a driver's position timeline."""
    driver_number: int
    full_name: str
    position: int
    date: datetime
    
    model_config = ConfigDict(from_attributes=True)


class DriverOptionSchema(BaseModel):
    """Driver that has stored position data."""
    driver_number: int
    full_name: str


class CurrentSpeedSchema(BaseModel):
    """Latest speed sample of a driver."""
    driver_number: int
    full_name: str
    speed: float | None
    date: datetime


class PositionRecord(BaseModel):
    """A position row ready to be appended to the history table."""
    session_key: int
    driver_number: int
    full_name: str
    team_name: str
    position: int
    date: datetime
    
    model_config = ConfigDict(frozen=True)
