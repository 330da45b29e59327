"""Health check models for dashboard API."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SnapshotHealth(BaseModel):
    """Record snapshot status model.

    Attributes:
        status: Whether a snapshot is loaded
        source: Configured export file (None when not configured)
        version: Content fingerprint of the loaded export
        patients: Number of valid patient records
        observations: Number of valid observation records
        rejected: Number of records that failed validation
    """
    status: Literal["loaded", "empty", "unavailable"]
    source: Optional[str] = None
    version: Optional[str] = None
    patients: int = 0
    observations: int = 0
    rejected: int = 0


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Overall system status
        timestamp: Current timestamp
        version: Application version
        snapshot: Record snapshot information
    """
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Current UTC timestamp")
    version: str = Field(default="1.0.0", description="Application version")
    snapshot: SnapshotHealth
