"""Running-Census Time Series Builder.

Buckets cohort events by day, month or hour of day. Each admission counts in
the bucket of its admission; each terminal outcome with a resolvable date
counts in the bucket of that outcome, which may differ from the admission's.

After chronological sorting, the running census is the prefix sum of
``admissions - discharges - deaths`` seeded at 0. The census is computed over
the full series before any truncation so the value at the truncation point
carries the history before it.
"""

import logging
from datetime import datetime, tzinfo
from typing import Iterable, List, Optional, Union

import pandas as pd
from pydantic import BaseModel, Field

from src.domain.enums import Granularity, PatientOutcome
from src.domain.periods import to_local
from src.domain.ports import InvalidArgumentError
from src.domain.records import WardRecord

logger = logging.getLogger(__name__)

# Default display window for the daily census chart
DEFAULT_LAST_N_DAYS = 30

COUNTER_COLUMNS = ["admissions", "discharges", "deaths"]


class TimeSeriesPoint(BaseModel):
    bucket: str
    admissions: int = 0
    discharges: int = 0
    deaths: int = 0
    census: int = 0


class TimeSeries(BaseModel):
    """Chronological census series.

    Attributes:
        granularity: Bucket size
        points: Chronological points (possibly only the most recent ones)
        full_length: Number of buckets before truncation
        missing_admission: Records with no admission date (no admission event)
        unresolved_outcome: Non-active records whose outcome has no date
    """
    granularity: Granularity
    points: List[TimeSeriesPoint] = Field(default_factory=list)
    full_length: int = 0
    missing_admission: int = 0
    unresolved_outcome: int = 0

    @property
    def census(self) -> List[int]:
        return [point.census for point in self.points]

    @property
    def buckets(self) -> List[str]:
        return [point.bucket for point in self.points]


def parse_granularity(granularity: Union[Granularity, str]) -> Granularity:
    try:
        return Granularity(granularity.lower() if isinstance(granularity, str) else granularity)
    except ValueError as e:
        raise InvalidArgumentError(
            f"Unknown granularity: {granularity!r}. Supported: {[g.value for g in Granularity]}"
        ) from e


def bucket_key(moment: datetime, granularity: Granularity) -> str:
    """Sortable bucket label: ``YYYY-MM-DD``, ``YYYY-MM`` or ``HH:00``."""
    if granularity == Granularity.DAY:
        return moment.strftime("%Y-%m-%d")
    if granularity == Granularity.MONTH:
        return moment.strftime("%Y-%m")
    if granularity == Granularity.HOUR:
        return f"{moment.hour:02d}:00"
    raise InvalidArgumentError(f"Unknown granularity: {granularity!r}")


def _is_death(record: WardRecord) -> bool:
    return record.outcome == PatientOutcome.DECEASED


def _is_terminal(record: WardRecord) -> bool:
    return not record.is_active


def build_time_series(
    cohort: Iterable[WardRecord],
    granularity: Union[Granularity, str] = Granularity.DAY,
    truncate_to_last_n: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> TimeSeries:
    """Build the per-bucket admission/discharge/death series with running census.

    Referrals and step-downs leave the ward alive and count as discharges.

    Parameters:
        cohort: Filtered cohort (or any iterable of records)
        granularity: "day", "month" or "hour"
        truncate_to_last_n: Keep only the most recent N buckets
        tz: Local zone used to place events in buckets

    Returns:
        TimeSeries: Chronological points

    Raises:
        InvalidArgumentError: Unknown granularity or non-positive truncation
    """
    granularity = parse_granularity(granularity)
    if truncate_to_last_n is not None and truncate_to_last_n <= 0:
        raise InvalidArgumentError(f"truncate_to_last_n must be positive. Got: {truncate_to_last_n}")

    events = []
    missing_admission = 0
    unresolved_outcome = 0
    for record in cohort:
        admitted = to_local(record.admitted_at, tz)
        if admitted is None:
            missing_admission += 1
        else:
            events.append((bucket_key(admitted, granularity), 1, 0, 0))

        if not _is_terminal(record):
            continue
        ended = to_local(record.outcome_date, tz)
        if ended is None:
            unresolved_outcome += 1
            continue
        if _is_death(record):
            events.append((bucket_key(ended, granularity), 0, 0, 1))
        else:
            events.append((bucket_key(ended, granularity), 0, 1, 0))

    if missing_admission or unresolved_outcome:
        logger.debug(
            f"Time series skipped {missing_admission} admission event(s) and "
            f"{unresolved_outcome} outcome event(s) without dates"
        )

    if not events:
        return TimeSeries(
            granularity=granularity,
            missing_admission=missing_admission,
            unresolved_outcome=unresolved_outcome,
        )

    frame = pd.DataFrame(events, columns=["bucket", *COUNTER_COLUMNS])
    series = frame.groupby("bucket", sort=True)[COUNTER_COLUMNS].sum()
    series["census"] = (series["admissions"] - series["discharges"] - series["deaths"]).cumsum()

    full_length = len(series)
    if truncate_to_last_n is not None:
        series = series.tail(truncate_to_last_n)

    points = [
        TimeSeriesPoint(
            bucket=str(bucket),
            admissions=int(row["admissions"]),
            discharges=int(row["discharges"]),
            deaths=int(row["deaths"]),
            census=int(row["census"]),
        )
        for bucket, row in series.iterrows()
    ]
    return TimeSeries(
        granularity=granularity,
        points=points,
        full_length=full_length,
        missing_admission=missing_admission,
        unresolved_outcome=unresolved_outcome,
    )
