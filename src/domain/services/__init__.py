"""Domain Services.

This package contains the analytics services that run over filtered
cohorts without infrastructure dependencies.
"""

from src.domain.services.cohort_filter import Cohort, ShiftWindow, filter_cohort
from src.domain.services.outcome_aggregator import OutcomeSummary, aggregate_outcomes
from src.domain.services.distribution_builder import Distribution, build_distribution
from src.domain.services.risk_classifier import RiskStratification, classify_risk
from src.domain.services.time_series import TimeSeries, build_time_series
from src.domain.services.analytics_engine import (
    CohortAnalyticsEngine,
    DashboardQuery,
    DashboardReport,
    EngineOptions,
)

__all__ = [
    'Cohort',
    'ShiftWindow',
    'filter_cohort',
    'OutcomeSummary',
    'aggregate_outcomes',
    'Distribution',
    'build_distribution',
    'RiskStratification',
    'classify_risk',
    'TimeSeries',
    'build_time_series',
    'CohortAnalyticsEngine',
    'DashboardQuery',
    'DashboardReport',
    'EngineOptions',
]
