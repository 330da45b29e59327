"""Domain layer for Ward-Census.

This module contains the ward records, the period model and the analytics
services. All domain models are pure Python with no external dependencies
beyond Pydantic and pandas.
"""

from .records import (
    PatientRecord,
    ObservationRecord,
    WardRecord,
)
from .periods import (
    Interval,
    OpenWindow,
    PeriodSelector,
    resolve_period,
)
from .data_quality import DataQualityReport

__all__ = [
    "PatientRecord",
    "ObservationRecord",
    "WardRecord",
    "Interval",
    "OpenWindow",
    "PeriodSelector",
    "resolve_period",
    "DataQualityReport",
]
