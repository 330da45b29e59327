"""Cohort Analytics Engine facade.

Bundles the engine components behind one object that owns the injected clock
and the deployment options (time zone, first day of week, top-N, census
window, critical diagnoses). Screens and exports call this facade instead of
re-deriving period math themselves.

Patient analytics (outcomes, breakdowns, risk, census) run over patient
records only. Observation entries are filtered with the same query and
reported on their own.

The facade is stateless apart from an optional, bounded report memo keyed on
a caller-supplied snapshot version plus the query; results are identical with
or without it.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from src.domain.data_quality import DataQualityReport
from src.domain.enums import AdmissionTypeFilter, Dimension, Granularity, Unit
from src.domain.periods import Interval, PeriodSelector, PeriodWindow, resolve_period
from src.domain.ports import InvalidArgumentError
from src.domain.records import ObservationRecord, PatientRecord, WardRecord
from src.domain.services.cohort_filter import (
    Cohort,
    ShiftWindow,
    count_admissions_in_period,
    filter_cohort,
    recent_admissions,
)
from src.domain.services.distribution_builder import DEFAULT_TOP_N, Band, Distribution, build_distribution
from src.domain.services.outcome_aggregator import OutcomeSummary, aggregate_outcomes
from src.domain.services.risk_classifier import (
    DEFAULT_CRITICAL_DIAGNOSES,
    RiskStratification,
    classify_risk,
)
from src.domain.services.time_series import DEFAULT_LAST_N_DAYS, TimeSeries, build_time_series

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

MAX_MEMOIZED_REPORTS = 32


@dataclass(frozen=True)
class EngineOptions:
    """Deployment options consumed by the engine.

    Attributes:
        tz: Local time zone; None means naive system-local time
        first_day_of_week: Python weekday the week starts on (6 = Sunday)
        top_n: Presentation truncation for diagnosis/referral breakdowns
        census_window: Number of most recent daily buckets to display
        critical_diagnoses: Keywords marking a diagnosis as critical
        enabled_units: Units that exist in this deployment (breakdown seeds)
    """
    tz: Optional[tzinfo] = None
    first_day_of_week: int = 6
    top_n: int = DEFAULT_TOP_N
    census_window: int = DEFAULT_LAST_N_DAYS
    critical_diagnoses: Tuple[str, ...] = DEFAULT_CRITICAL_DIAGNOSES
    enabled_units: Tuple[Unit, ...] = field(default_factory=lambda: tuple(Unit))


class DashboardQuery(BaseModel):
    """Filter parameters of one dashboard query."""

    model_config = ConfigDict(frozen=True)

    unit: Optional[Unit] = None
    admission_type: AdmissionTypeFilter = AdmissionTypeFilter.ALL
    period: PeriodSelector = Field(default_factory=PeriodSelector.all_time)
    shift: Optional[ShiftWindow] = None


class DashboardReport(BaseModel):
    """Everything the ward dashboard shows for one query."""
    query: DashboardQuery
    period_label: str
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    generated_at: datetime
    cohort_size: int
    admissions_in_period: int
    new_admissions_24h: int
    outcomes: OutcomeSummary
    risk_counts: Dict[str, int]
    census: TimeSeries
    quality: DataQualityReport
    observations: int = 0
    active_observations: int = 0


def split_by_kind(records: Iterable[WardRecord]) -> Tuple[List[PatientRecord], List[ObservationRecord]]:
    """Separate patient records from observation entries, keeping input order."""
    patients: List[PatientRecord] = []
    observations: List[ObservationRecord] = []
    for record in records:
        if isinstance(record, ObservationRecord):
            observations.append(record)
        else:
            patients.append(record)
    return patients, observations


class CohortAnalyticsEngine:
    """Entry point used by presentation and export collaborators.

    Parameters:
        options: Deployment options
        clock: Callable returning the current time; defaults to the wall
            clock in ``options.tz``
    """

    def __init__(self, options: Optional[EngineOptions] = None, clock: Optional[Clock] = None):
        self.options = options or EngineOptions()
        self._clock = clock or (lambda: datetime.now(self.options.tz))
        self._reports: "OrderedDict[tuple, DashboardReport]" = OrderedDict()

    def now(self) -> datetime:
        return self._clock()

    def resolve(self, period: PeriodSelector, now: Optional[datetime] = None) -> PeriodWindow:
        return resolve_period(period, now or self.now())

    def cohort(
        self,
        records: Iterable[WardRecord],
        query: DashboardQuery,
        now: Optional[datetime] = None,
    ) -> Cohort:
        window = self.resolve(query.period, now)
        return filter_cohort(
            records,
            unit=query.unit,
            admission_type=query.admission_type,
            window=window,
            shift=query.shift,
            tz=self.options.tz,
        )

    def patient_cohort(
        self,
        records: Iterable[WardRecord],
        query: DashboardQuery,
        now: Optional[datetime] = None,
    ) -> Cohort:
        patients, _ = split_by_kind(records)
        return self.cohort(patients, query, now)

    def observation_cohort(
        self,
        records: Iterable[WardRecord],
        query: DashboardQuery,
        now: Optional[datetime] = None,
    ) -> Cohort:
        _, observations = split_by_kind(records)
        return self.cohort(observations, query, now)

    def outcomes(self, records: Iterable[WardRecord], query: DashboardQuery) -> OutcomeSummary:
        now = self.now()
        return aggregate_outcomes(self.patient_cohort(records, query, now), now=now)

    def distribution(
        self,
        records: Iterable[WardRecord],
        query: DashboardQuery,
        dimension: Union[Dimension, str],
        top_n: Optional[int] = None,
        band_boundaries: Optional[Sequence[Union[Band, float]]] = None,
    ) -> Distribution:
        try:
            dimension = Dimension(dimension)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown dimension: {dimension!r}") from e
        if top_n is None and dimension in (Dimension.DIAGNOSIS, Dimension.REFERRING_HOSPITAL):
            top_n = self.options.top_n
        categories = [unit.value for unit in self.options.enabled_units] if dimension == Dimension.UNIT else None
        return build_distribution(
            self.patient_cohort(records, query),
            dimension,
            top_n=top_n,
            band_boundaries=band_boundaries,
            categories=categories,
            tz=self.options.tz,
        )

    def risk(self, records: Iterable[WardRecord], query: DashboardQuery) -> RiskStratification:
        cohort = self.patient_cohort(records, query)
        return classify_risk(cohort.active_members, self.options.critical_diagnoses)

    def time_series(
        self,
        records: Iterable[WardRecord],
        query: DashboardQuery,
        granularity: Union[Granularity, str] = Granularity.DAY,
        truncate_to_last_n: Optional[int] = None,
    ) -> TimeSeries:
        return build_time_series(
            self.patient_cohort(records, query),
            granularity,
            truncate_to_last_n=truncate_to_last_n,
            tz=self.options.tz,
        )

    def report(
        self,
        records: Iterable[WardRecord],
        query: Optional[DashboardQuery] = None,
        version: Optional[str] = None,
    ) -> DashboardReport:
        """Build the full dashboard report for one query.

        When ``version`` identifies the record snapshot, reports are memoised
        on (version, query, resolved window, current time). The report's
        timestamps and 24-hour counts depend on the clock, so a report is only
        reused for the exact same instant.
        """
        query = query or DashboardQuery()
        now = self.now()
        window = self.resolve(query.period, now)
        key = None
        if version is not None:
            key = (version, query.model_dump_json(), repr(window), now)
            cached = self._reports.get(key)
            if cached is not None:
                self._reports.move_to_end(key)
                return cached

        patients, observations = split_by_kind(records)
        cohort = filter_cohort(
            patients,
            unit=query.unit,
            admission_type=query.admission_type,
            window=window,
            shift=query.shift,
            tz=self.options.tz,
        )
        observed = filter_cohort(
            observations,
            unit=query.unit,
            admission_type=query.admission_type,
            window=window,
            shift=query.shift,
            tz=self.options.tz,
        )
        outcomes = aggregate_outcomes(cohort, now=now)
        risk = classify_risk(cohort.active_members, self.options.critical_diagnoses)
        census = build_time_series(
            cohort,
            Granularity.DAY,
            truncate_to_last_n=self.options.census_window,
            tz=self.options.tz,
        )
        report = DashboardReport(
            query=query,
            period_label=query.period.label,
            period_start=window.start if isinstance(window, Interval) else None,
            period_end=window.end if isinstance(window, Interval) else None,
            generated_at=now,
            cohort_size=cohort.size,
            admissions_in_period=count_admissions_in_period(cohort.members, window),
            new_admissions_24h=len(recent_admissions(cohort.members, now)),
            outcomes=outcomes,
            risk_counts={tier.value: count for tier, count in risk.tier_counts.items()},
            census=census,
            quality=outcomes.quality,
            observations=observed.size,
            active_observations=len(observed.active_members),
        )

        if key is not None:
            self._reports[key] = report
            while len(self._reports) > MAX_MEMOIZED_REPORTS:
                self._reports.popitem(last=False)
        logger.info(
            f"Dashboard report: unit={query.unit.value if query.unit else 'All'} "
            f"period={query.period.label} cohort={cohort.size}"
        )
        return report
