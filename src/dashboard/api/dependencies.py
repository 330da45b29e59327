"""Dependency injection for dashboard API.

This module provides dependency injection functions for FastAPI, following
Hexagonal Architecture principles by reading the record store through the
existing snapshot adapters.
"""

import logging
import threading
from datetime import date
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Query

from src.adapters.snapshot import get_adapter
from src.domain.enums import AdmissionTypeFilter, Unit
from src.domain.periods import PeriodSelector
from src.domain.ports import InvalidArgumentError, Snapshot
from src.domain.services.analytics_engine import CohortAnalyticsEngine, DashboardQuery
from src.domain.services.cohort_filter import ShiftWindow
from src.infrastructure.config_manager import EngineConfig
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)


class SnapshotProvider:
    """Holds the most recently loaded snapshot of one export file.

    The file is re-read only when its content fingerprint changes, so
    repeated requests against an unchanged export share one snapshot and the
    engine's report memo stays warm.
    """

    def __init__(self, source: Optional[str]):
        self.source = source
        self._snapshot: Optional[Snapshot] = None
        self._lock = threading.Lock()

    def current(self) -> Snapshot:
        """Return the snapshot, reloading it if the file changed.

        Raises:
            SourceNotFoundError: If the configured file does not exist
            UnsupportedSourceError: If the file cannot be parsed
        """
        if not self.source:
            return Snapshot()
        adapter = get_adapter(self.source)
        with self._lock:
            version = adapter.fingerprint(self.source)
            if self._snapshot is None or version is None or self._snapshot.version != version:
                self._snapshot = adapter.load(self.source)
                logger.info(
                    f"Loaded snapshot {self.source} (version {self._snapshot.version}): "
                    f"{len(self._snapshot.patients)} patient(s), "
                    f"{len(self._snapshot.observations)} observation(s), "
                    f"{self._snapshot.rejected_count} rejected"
                )
            return self._snapshot


@lru_cache()
def get_engine_config() -> EngineConfig:
    """Get engine configuration (cached)."""
    return settings.engine_config


@lru_cache()
def get_snapshot_provider() -> SnapshotProvider:
    """Get the snapshot provider for the configured export (cached)."""
    source = get_engine_config().snapshot_path
    if not source:
        logger.warning("No snapshot configured (set WARD_SNAPSHOT_PATH); serving an empty record set")
    return SnapshotProvider(source)


def get_snapshot(provider: Annotated[SnapshotProvider, Depends(get_snapshot_provider)]) -> Snapshot:
    return provider.current()


@lru_cache()
def get_engine() -> CohortAnalyticsEngine:
    """Get the analytics engine (cached so its report memo is shared)."""
    return CohortAnalyticsEngine(get_engine_config().to_engine_options())


def get_dashboard_query(
    config: Annotated[EngineConfig, Depends(get_engine_config)],
    unit: Annotated[Optional[str], Query(description="Unit (NICU, PICU, SNCU, HDU, GeneralWard)")] = None,
    period: Annotated[Optional[str], Query(description="All Time, Today, This Week, This Month, Custom or YYYY-MM")] = None,
    start: Annotated[Optional[date], Query(description="Custom range start date")] = None,
    end: Annotated[Optional[date], Query(description="Custom range end date")] = None,
    admission_type: Annotated[str, Query(description="All, Inborn or Outborn")] = "All",
    shift_start: Annotated[Optional[str], Query(description="Shift start HH:MM")] = None,
    shift_end: Annotated[Optional[str], Query(description="Shift end HH:MM")] = None,
) -> DashboardQuery:
    """Build a dashboard query from request parameters.

    Raises:
        InvalidArgumentError: If a parameter cannot be interpreted
    """
    if (shift_start is None) != (shift_end is None):
        raise InvalidArgumentError("shift_start and shift_end must be given together")
    try:
        selected_unit = Unit(unit) if unit else None
        admission = AdmissionTypeFilter(admission_type)
        shift = ShiftWindow.between(shift_start, shift_end) if shift_start is not None else None
        selector = PeriodSelector.parse(period, start=start, end=end, first_day_of_week=config.first_day_of_week)
    except InvalidArgumentError:
        raise
    except ValueError as e:
        # Enum lookups and model validation both raise ValueError subclasses
        raise InvalidArgumentError(str(e)) from e
    return DashboardQuery(unit=selected_unit, admission_type=admission, period=selector, shift=shift)


# Type aliases for dependency injection
EngineDep = Annotated[CohortAnalyticsEngine, Depends(get_engine)]
SnapshotDep = Annotated[Snapshot, Depends(get_snapshot)]
QueryDep = Annotated[DashboardQuery, Depends(get_dashboard_query)]
