"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from firreports.config import get_settings
from firreports.routers.reports import get_record_store
from firreports.services.record_store import RecordStore, RecordStoreError

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    record_store: str
    reachable: bool
    detail: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: Annotated[RecordStore, Depends(get_record_store)],
) -> HealthResponse:
    """
    Health check endpoint with record store status.

    Probes the store with a one-row FIR fetch. An unreachable store reports
    "degraded" rather than failing the request.
    """
    backend = get_settings().record_store_backend
    try:
        await store.fetch("fir", columns=["id"], limit=1)
    except RecordStoreError as e:
        return HealthResponse(
            status="degraded",
            timestamp=datetime.now(UTC),
            record_store=backend,
            reachable=False,
            detail=str(e),
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        record_store=backend,
        reachable=True,
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe for container orchestration."""
    return {"status": "alive"}
