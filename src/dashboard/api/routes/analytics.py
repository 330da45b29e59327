"""Analytics endpoints for dashboard API.

Every endpoint accepts the same cohort filters (unit, period, start, end,
admission_type, shift_start, shift_end) and runs the analytics engine over
the current record snapshot.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Query

from src.dashboard.api.dependencies import EngineDep, QueryDep, SnapshotDep
from src.dashboard.models.analytics import RiskResponse
from src.domain.enums import Dimension
from src.domain.ports import InvalidArgumentError
from src.domain.services.analytics_engine import DashboardReport
from src.domain.services.distribution_builder import Distribution
from src.domain.services.outcome_aggregator import OutcomeSummary
from src.domain.services.time_series import TimeSeries

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/report", response_model=DashboardReport)
async def get_report(engine: EngineDep, snapshot: SnapshotDep, query: QueryDep) -> DashboardReport:
    """Full dashboard report: summary, risk tiers and the daily census."""
    return engine.report(snapshot.records, query, version=snapshot.version)


@router.get("/summary", response_model=OutcomeSummary)
async def get_summary(engine: EngineDep, snapshot: SnapshotDep, query: QueryDep) -> OutcomeSummary:
    """Outcome counts, rates and length-of-stay statistics."""
    return engine.outcomes(snapshot.records, query)


@router.get("/distribution/{dimension}", response_model=Distribution)
async def get_distribution(
    dimension: str,
    engine: EngineDep,
    snapshot: SnapshotDep,
    query: QueryDep,
    top_n: Annotated[Optional[int], Query(gt=0, description="Keep only the N largest groups")] = None,
) -> Distribution:
    """Grouped tally of the cohort along one dimension.

    Raises:
        InvalidArgumentError: If the dimension is unknown
    """
    try:
        selected = Dimension(dimension.lower())
    except ValueError as e:
        raise InvalidArgumentError(
            f"Unknown dimension: {dimension!r}. Supported: {[d.value for d in Dimension]}"
        ) from e
    return engine.distribution(snapshot.records, query, selected, top_n=top_n)


@router.get("/risk", response_model=RiskResponse)
async def get_risk(engine: EngineDep, snapshot: SnapshotDep, query: QueryDep) -> RiskResponse:
    """Risk tiers of the currently active patients in the cohort."""
    return RiskResponse.from_stratification(engine.risk(snapshot.records, query))


@router.get("/census", response_model=TimeSeries)
async def get_census(
    engine: EngineDep,
    snapshot: SnapshotDep,
    query: QueryDep,
    granularity: Annotated[str, Query(description="day, month or hour")] = "day",
    last_n: Annotated[Optional[int], Query(gt=0, description="Keep only the most recent N buckets")] = None,
) -> TimeSeries:
    """Admissions, discharges, deaths and running census per bucket."""
    return engine.time_series(snapshot.records, query, granularity, truncate_to_last_n=last_n)
