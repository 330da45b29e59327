"""Health check endpoint for dashboard API."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from typing import Annotated

from src.dashboard.api.dependencies import SnapshotProvider, get_snapshot_provider
from src.dashboard.models.health import HealthResponse, SnapshotHealth
from src.domain.ports import SnapshotError
from src.infrastructure.settings import APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


def check_snapshot_health(provider: SnapshotProvider) -> SnapshotHealth:
    """Check that the configured snapshot can be loaded.

    Parameters:
        provider: Snapshot provider

    Returns:
        SnapshotHealth: Snapshot status and record counts
    """
    if not provider.source:
        return SnapshotHealth(status="empty")

    try:
        snapshot = provider.current()
    except SnapshotError as e:
        logger.warning(f"Snapshot health check failed: {str(e)}")
        return SnapshotHealth(status="unavailable", source=provider.source)

    return SnapshotHealth(
        status="loaded",
        source=provider.source,
        version=snapshot.version,
        patients=len(snapshot.patients),
        observations=len(snapshot.observations),
        rejected=snapshot.rejected_count,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(
    provider: Annotated[SnapshotProvider, Depends(get_snapshot_provider)],
) -> HealthResponse:
    """Health check endpoint.

    Used by monitoring tools and load balancers. The API is healthy when the
    snapshot loads, degraded when none is configured or some records were
    rejected, and unhealthy when the configured export cannot be read.

    Parameters:
        provider: Snapshot provider (injected via dependency)

    Returns:
        HealthResponse: System health status
    """
    snapshot_health = check_snapshot_health(provider)

    if snapshot_health.status == "unavailable":
        overall_status = "unhealthy"
    elif snapshot_health.status == "empty" or snapshot_health.rejected:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=APP_VERSION,
        snapshot=snapshot_health
    )
