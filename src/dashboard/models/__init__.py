"""Dashboard Pydantic models."""

from src.dashboard.models.health import HealthResponse, SnapshotHealth
from src.dashboard.models.analytics import RiskMember, RiskResponse
