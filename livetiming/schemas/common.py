# livetiming/schemas/common.py
"""Common response schemas."""
from datetime import datetime
from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""
    status: str


class MessageResponse(BaseModel):
    """Error body returned by every endpoint."""
    message: str


class IngestionStatusSchema(BaseModel):
    """State of the background position poller."""
    mode: str
    poll_enabled: bool
    poll_interval_seconds: float
    cycle_running: bool
    cycles_completed: int
    cycles_failed: int
    ticks_skipped: int
    last_started_at: datetime | None
    last_finished_at: datetime | None
    last_session_key: int | None
    last_inserted: int
    last_error: str | None
