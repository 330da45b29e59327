"""Distribution & Breakdown Builder.

Builds grouped tallies of a cohort along one categorical dimension (diagnosis,
referring hospital, gender, weight band, day of week, ...). Every group tracks
its size and its deaths so that per-group mortality can be reported.

Rules shared by every dimension:
    - Missing or unbandable values go to an explicit "Unknown" group, so the
      group totals always add up to the cohort size
    - Groups are sorted by descending total; ties keep seed/insertion order
    - Top-N truncation is applied last, after the full distribution exists
    - Numeric dimensions use ordered half-open bands, first match wins
"""

import logging
import math
from dataclasses import dataclass
from datetime import tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd
from pydantic import BaseModel

from src.domain.enums import AdmissionTypeFilter, Dimension, PatientOutcome
from src.domain.periods import to_local
from src.domain.ports import InvalidArgumentError
from src.domain.records import WardRecord
from src.domain.services.cohort_filter import matches_admission_type
from src.domain.services.outcome_aggregator import length_of_stay, rate

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
HOURS = tuple(f"{hour:02d}:00" for hour in range(24))

# Presentation default for diagnosis and referral breakdowns
DEFAULT_TOP_N = 10


@dataclass(frozen=True)
class Band:
    """Half-open numeric band ``[lower, upper)``."""
    label: str
    lower: float
    upper: float = math.inf

    def contains(self, value: float) -> bool:
        return self.lower <= value < self.upper


BIRTH_WEIGHT_BANDS = (
    Band("<1 kg", 0, 1.0),
    Band("1-1.5 kg", 1.0, 1.5),
    Band("1.5-2 kg", 1.5, 2.0),
    Band("2-2.5 kg", 2.0, 2.5),
    Band("≥2.5 kg", 2.5),
)

# Whole days
LENGTH_OF_STAY_BANDS = (
    Band("0-3 days", 0, 4),
    Band("4-7 days", 4, 8),
    Band("8-14 days", 8, 15),
    Band("15-21 days", 15, 22),
    Band("22-28 days", 22, 29),
    Band("29+ days", 29),
)

# Hours from admission to death
TIME_TO_DEATH_BANDS = (
    Band("<6 hours", 0, 6),
    Band("6-12 hours", 6, 12),
    Band("12-24 hours", 12, 24),
    Band("1-3 days", 24, 72),
    Band("3-7 days", 72, 168),
    Band("1-2 weeks", 168, 336),
    Band("2-4 weeks", 336, 672),
    Band(">4 weeks", 672),
)

# Age in days
AGE_GROUP_BANDS = (
    Band("0-24h", 0, 1),
    Band("1-7 days", 1, 8),
    Band("8-28 days", 8, 29),
    Band("1-6 months", 29, 181),
    Band("6-12 months", 181, 366),
    Band("1-5 years", 366, 1826),
    Band(">5 years", 1826),
)

DEFAULT_BANDS = {
    Dimension.BIRTH_WEIGHT: BIRTH_WEIGHT_BANDS,
    Dimension.LENGTH_OF_STAY: LENGTH_OF_STAY_BANDS,
    Dimension.TIME_TO_DEATH: TIME_TO_DEATH_BANDS,
    Dimension.AGE_GROUP: AGE_GROUP_BANDS,
}

FIXED_CATEGORIES = {
    Dimension.DAY_OF_WEEK: WEEKDAYS,
    Dimension.HOUR_OF_DAY: HOURS,
}


def _format_bound(value: float) -> str:
    return f"{value:g}"


def bands_from_boundaries(boundaries: Sequence[float]) -> Tuple[Band, ...]:
    """Build contiguous bands from ascending cut points.

    ``[1, 1.5, 2.5]`` gives ``<1``, ``1-1.5``, ``1.5-2.5`` and ``≥2.5``.

    Raises:
        InvalidArgumentError: If the boundaries are empty or not strictly ascending
    """
    cuts = [float(b) for b in boundaries]
    if not cuts or any(later <= earlier for earlier, later in zip(cuts, cuts[1:])):
        raise InvalidArgumentError(f"Band boundaries must be non-empty and strictly ascending. Got: {boundaries}")
    bands = [Band(f"<{_format_bound(cuts[0])}", -math.inf, cuts[0])]
    for lower, upper in zip(cuts, cuts[1:]):
        bands.append(Band(f"{_format_bound(lower)}-{_format_bound(upper)}", lower, upper))
    bands.append(Band(f"≥{_format_bound(cuts[-1])}", cuts[-1]))
    return tuple(bands)


def assign_band(value: Optional[float], bands: Sequence[Band]) -> str:
    """Label of the first band containing ``value``; "Unknown" otherwise."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return UNKNOWN
    for band in bands:
        if band.contains(value):
            return band.label
    return UNKNOWN


def _text_or_unknown(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        return UNKNOWN
    return str(value).strip()


def _hours_to_death(record: WardRecord) -> Optional[float]:
    if getattr(record, "outcome", None) != PatientOutcome.DECEASED:
        return None
    admitted = to_local(record.admitted_at)
    died = to_local(record.death_date)
    if admitted is None or died is None:
        return None
    return (died - admitted).total_seconds() / 3600


def category_of(
    record: WardRecord,
    dimension: Dimension,
    bands: Optional[Sequence[Band]] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    """Category a record falls into along ``dimension``."""
    if dimension == Dimension.DIAGNOSIS:
        return _text_or_unknown(getattr(record, "diagnosis", None))
    if dimension == Dimension.REFERRING_HOSPITAL:
        return _text_or_unknown(getattr(record, "referring_hospital", None))
    if dimension == Dimension.GENDER:
        return _text_or_unknown(record.gender)
    if dimension == Dimension.UNIT:
        return record.unit.value
    if dimension == Dimension.ADMISSION_TYPE:
        if matches_admission_type(record, AdmissionTypeFilter.INBORN):
            return AdmissionTypeFilter.INBORN.value
        if matches_admission_type(record, AdmissionTypeFilter.OUTBORN):
            return AdmissionTypeFilter.OUTBORN.value
        return _text_or_unknown(record.admission_type)

    if dimension in DEFAULT_BANDS:
        bands = bands or DEFAULT_BANDS[dimension]
        if dimension == Dimension.BIRTH_WEIGHT:
            value = getattr(record, "weight", None)
        elif dimension == Dimension.LENGTH_OF_STAY:
            value = length_of_stay(record) if hasattr(record, "release_date") else None
        elif dimension == Dimension.TIME_TO_DEATH:
            value = _hours_to_death(record)
        else:
            value = getattr(record, "age_in_days", None)
        return assign_band(value, bands)

    admitted = to_local(record.admitted_at, tz)
    if admitted is None:
        return UNKNOWN
    if dimension == Dimension.DAY_OF_WEEK:
        # isoweekday: Monday=1 .. Sunday=7
        return WEEKDAYS[admitted.isoweekday() % 7]
    if dimension == Dimension.HOUR_OF_DAY:
        return HOURS[admitted.hour]
    if dimension == Dimension.MONTH:
        return f"{admitted.year:04d}-{admitted.month:02d}"

    raise InvalidArgumentError(f"Unsupported dimension: {dimension}")


class DistributionGroup(BaseModel):
    name: str
    total: int
    deceased: int
    mortality_rate: float


class Distribution(BaseModel):
    """Grouped tally along one dimension.

    Attributes:
        dimension: Dimension that was grouped on
        groups: Groups sorted by descending total (possibly truncated)
        total: Number of records tallied, before any truncation
        truncated: True when groups beyond the top-N were dropped
    """
    dimension: Dimension
    groups: List[DistributionGroup]
    total: int
    truncated: bool = False

    def top(self, n: int) -> "Distribution":
        """Presentation-time truncation to the ``n`` largest groups."""
        if n <= 0:
            raise InvalidArgumentError(f"top_n must be positive. Got: {n}")
        return self.model_copy(update={
            "groups": self.groups[:n],
            "truncated": self.truncated or len(self.groups) > n,
        })

    def group(self, name: str) -> Optional[DistributionGroup]:
        for group in self.groups:
            if group.name == name:
                return group
        return None

    def as_dict(self) -> dict:
        return {group.name: group.total for group in self.groups}


def _resolve_bands(
    dimension: Dimension,
    band_boundaries: Optional[Sequence[Union[Band, float]]],
) -> Optional[Sequence[Band]]:
    if band_boundaries is None:
        return DEFAULT_BANDS.get(dimension)
    if dimension not in DEFAULT_BANDS:
        raise InvalidArgumentError(f"Dimension {dimension.value!r} does not use bands")
    if all(isinstance(b, Band) for b in band_boundaries):
        return tuple(band_boundaries)
    return bands_from_boundaries(band_boundaries)


def build_distribution(
    cohort: Iterable[WardRecord],
    dimension: Union[Dimension, str],
    top_n: Optional[int] = None,
    band_boundaries: Optional[Sequence[Union[Band, float]]] = None,
    categories: Optional[Sequence[str]] = None,
    sort_by_total: bool = True,
    tz: Optional[tzinfo] = None,
) -> Distribution:
    """Group a cohort along one dimension.

    Parameters:
        cohort: Filtered cohort (or any iterable of records)
        dimension: Dimension to group on
        top_n: Keep only the ``top_n`` largest groups (presentation option)
        band_boundaries: ``Band`` objects or ascending cut points overriding
            the default bands of a numeric dimension
        categories: Extra categories to report even when empty (e.g. the
            units enabled for a deployment)
        sort_by_total: Sort by descending total; False keeps seed order
        tz: Local zone for day/hour/month dimensions

    Returns:
        Distribution: Full or truncated grouping

    Raises:
        InvalidArgumentError: Unknown dimension, bad bands or non-positive top_n
    """
    try:
        dimension = Dimension(dimension)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown dimension: {dimension!r}") from e
    if top_n is not None and top_n <= 0:
        raise InvalidArgumentError(f"top_n must be positive. Got: {top_n}")

    bands = _resolve_bands(dimension, band_boundaries)
    records = list(cohort)
    names = [category_of(record, dimension, bands, tz) for record in records]
    deceased = [getattr(record, "outcome", None) == PatientOutcome.DECEASED for record in records]

    seeds: List[str] = []
    if bands is not None:
        seeds.extend(band.label for band in bands)
    seeds.extend(FIXED_CATEGORIES.get(dimension, ()))
    seeds.extend(categories or ())
    order = list(dict.fromkeys([*seeds, *names]))

    frame = pd.DataFrame({"name": names, "deceased": deceased}, columns=["name", "deceased"])
    if frame.empty:
        grouped = pd.DataFrame({"total": pd.Series(dtype="int64"), "deceased": pd.Series(dtype="int64")})
    else:
        grouped = frame.groupby("name", sort=False)["deceased"].agg(total="size", deceased="sum")
    grouped = grouped.reindex(order, fill_value=0)
    if sort_by_total:
        grouped = grouped.sort_values("total", ascending=False, kind="stable")

    groups = [
        DistributionGroup(
            name=str(name),
            total=int(row["total"]),
            deceased=int(row["deceased"]),
            mortality_rate=rate(int(row["deceased"]), int(row["total"])),
        )
        for name, row in grouped.iterrows()
    ]
    distribution = Distribution(dimension=dimension, groups=groups, total=len(records))
    logger.debug(f"Distribution over {dimension.value}: {len(groups)} group(s) from {len(records)} record(s)")
    if top_n is not None:
        distribution = distribution.top(top_n)
    return distribution
