"""Health and ingestion status endpoints."""
from fastapi import APIRouter, Depends

from livetiming.core.deps import get_poller
from livetiming.schemas.common import HealthResponse, IngestionStatusSchema
from livetiming.services.ingestion import PositionPoller

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(status="ok")


@router.get("/api/ingestion/status", response_model=IngestionStatusSchema)
async def ingestion_status(poller: PositionPoller = Depends(get_poller)) -> IngestionStatusSchema:
    """State of the background position poller."""
    return poller.snapshot()
