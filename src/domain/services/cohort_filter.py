"""Cohort Membership Filter.

Decides which records belong to a query's cohort. Filtering runs in a fixed
order: unit equality, admission type, the active-during-period predicate, and
finally the optional shift-of-day window.

Two temporal predicates live here and are kept apart:

- ``is_active_during``: interval overlap. The record's occupancy (admission to
  outcome, or open-ended while still in progress) must intersect the period.
  Cohort membership uses this one.
- ``filter_admitted_within``: plain range membership of the admission date.
  This backs the "admissions in period" count.

Architecture:
    - Pure functions over in-memory records, no I/O
    - Input records are never mutated
    - Data-quality problems are collected, not raised
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, tzinfo
from typing import Iterable, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from src.domain.data_quality import DataQualityReport
from src.domain.enums import AdmissionTypeFilter, Unit
from src.domain.periods import Interval, OpenWindow, PeriodWindow, is_open, to_local
from src.domain.ports import InvalidArgumentError
from src.domain.records import WardRecord

logger = logging.getLogger(__name__)


def parse_time_of_day(value: Union[str, time]) -> time:
    """Parse an ``HH:MM`` string into a ``time``.

    Raises:
        InvalidArgumentError: If the value is not a valid time of day
    """
    if isinstance(value, time):
        return value
    try:
        hour_text, minute_text = str(value).strip().split(":")[:2]
        return time(int(hour_text), int(minute_text))
    except (ValueError, TypeError) as e:
        raise InvalidArgumentError(f"Time of day must be formatted as HH:MM. Got: {value!r}") from e


def minutes_since_midnight(moment: Union[datetime, time]) -> int:
    return moment.hour * 60 + moment.minute


class ShiftWindow(BaseModel):
    """Time-of-day window used to narrow a cohort to one shift.

    Only the time of day matters; the date of the reference event is
    discarded. When ``start_time > end_time`` the window spans midnight.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    start_time: time = time(8, 0)
    end_time: time = time(20, 0)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_times(cls, v):
        return parse_time_of_day(v)

    @classmethod
    def between(cls, start: str, end: str) -> "ShiftWindow":
        return cls(enabled=True, start_time=start, end_time=end)

    @property
    def start_minutes(self) -> int:
        return minutes_since_midnight(self.start_time)

    @property
    def end_minutes(self) -> int:
        return minutes_since_midnight(self.end_time)

    @property
    def spans_midnight(self) -> bool:
        return self.start_minutes > self.end_minutes

    def contains(self, moment: Union[datetime, time]) -> bool:
        minutes = minutes_since_midnight(moment)
        if self.spans_midnight:
            return minutes >= self.start_minutes or minutes <= self.end_minutes
        return self.start_minutes <= minutes <= self.end_minutes


@dataclass
class Cohort:
    """Records selected for a query, plus what had to be left out.

    Attributes:
        members: Records that passed every filter, in input order
        quality: Data-quality findings collected while filtering
        window: The temporal window that was applied
    """
    members: List[WardRecord] = field(default_factory=list)
    quality: DataQualityReport = field(default_factory=DataQualityReport)
    window: PeriodWindow = OpenWindow.ALL_TIME

    def __len__(self) -> int:
        return len(self.members)

    def __iter__(self) -> Iterator[WardRecord]:
        return iter(self.members)

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def active_members(self) -> List[WardRecord]:
        return [record for record in self.members if record.is_active]


def matches_unit(record: WardRecord, unit: Optional[Union[Unit, str]]) -> bool:
    if unit is None:
        return True
    return record.unit == Unit(unit)


def matches_admission_type(
    record: WardRecord,
    admission_type: Union[AdmissionTypeFilter, str] = AdmissionTypeFilter.ALL,
) -> bool:
    """Apply the admission-type constraint.

    Inborn is an exact match; Outborn matches any admission type containing
    "outborn" (case-insensitive) to include referral sub-variants.
    """
    wanted = AdmissionTypeFilter(admission_type)
    if wanted == AdmissionTypeFilter.ALL:
        return True
    actual = record.admission_type
    if actual is None:
        return False
    if wanted == AdmissionTypeFilter.INBORN:
        return actual == AdmissionTypeFilter.INBORN.value
    return "outborn" in actual.lower()


def is_active_during(
    record: WardRecord,
    interval: Interval,
    quality: Optional[DataQualityReport] = None,
) -> bool:
    """Interval-overlap test between a record's occupancy and a period.

    A record is retained iff it was admitted no later than the period end and
    it is either still active or its resolved outcome date is no earlier than
    the period start. A non-active record without any outcome date is kept as
    open-ended, like an active one, and is flagged.
    """
    admitted = to_local(record.admitted_at, interval.tz)
    if admitted is None:
        if quality is not None:
            quality.flag_missing_admission(record.id)
        return False
    if admitted > interval.end:
        return False
    if record.is_active:
        return True

    outcome = record.outcome_date
    if outcome is None:
        if quality is not None:
            quality.flag_unresolved_outcome(record.id)
        return True
    return to_local(outcome, interval.tz) >= interval.start


def in_shift(record: WardRecord, shift: Optional[ShiftWindow], tz: Optional[tzinfo] = None) -> bool:
    """Test a record's reference event against a shift window."""
    if shift is None or not shift.enabled:
        return True
    event = to_local(record.reference_event_time, tz)
    if event is None:
        return False
    return shift.contains(event)


def filter_cohort(
    records: Iterable[WardRecord],
    unit: Optional[Union[Unit, str]] = None,
    admission_type: Union[AdmissionTypeFilter, str] = AdmissionTypeFilter.ALL,
    window: PeriodWindow = OpenWindow.ALL_TIME,
    shift: Optional[ShiftWindow] = None,
    tz: Optional[tzinfo] = None,
) -> Cohort:
    """Select the records that belong to a query's cohort.

    Parameters:
        records: Patient and/or observation records (not mutated)
        unit: Unit to keep, or None for every unit
        admission_type: All, Inborn or Outborn (any Outborn variant)
        window: Resolved period; ``ALL_TIME`` and ``INVALID`` skip temporal filtering
        shift: Optional time-of-day window on the reference event
        tz: Local zone for shift tests; defaults to the window's zone

    Returns:
        Cohort: Members in input order plus a data-quality report
    """
    try:
        wanted_unit = Unit(unit) if unit is not None else None
        wanted_type = AdmissionTypeFilter(admission_type)
    except ValueError as e:
        raise InvalidArgumentError(str(e)) from e

    if tz is None and isinstance(window, Interval):
        tz = window.tz

    quality = DataQualityReport()
    members: List[WardRecord] = []
    apply_window = not is_open(window)

    for record in records:
        if not matches_unit(record, wanted_unit):
            continue
        if not matches_admission_type(record, wanted_type):
            continue

        if apply_window:
            if not is_active_during(record, window, quality):
                continue
        elif record.admitted_at is None:
            # Kept under an open window, but still reported
            quality.flag_missing_admission(record.id)

        if not in_shift(record, shift, tz):
            continue
        members.append(record)

    if quality.missing_admission_date:
        logger.warning(
            f"{len(quality.missing_admission_date)} record(s) have no admission date"
        )
    logger.debug(f"Cohort filter kept {len(members)} record(s) for window {window}")
    return Cohort(members=members, quality=quality, window=window)


def filter_admitted_within(
    records: Iterable[WardRecord],
    window: PeriodWindow,
) -> List[WardRecord]:
    """Records whose admission date falls inside the window.

    This is a simple range-membership test, distinct from the overlap
    predicate used for cohort membership. Open windows keep every record
    that has an admission date.
    """
    selected = []
    for record in records:
        if record.admitted_at is None:
            continue
        if is_open(window) or window.contains(record.admitted_at):
            selected.append(record)
    return selected


def count_admissions_in_period(records: Iterable[WardRecord], window: PeriodWindow) -> int:
    """Number of new admissions inside the window."""
    return len(filter_admitted_within(records, window))


def recent_admissions(
    records: Iterable[WardRecord],
    now: datetime,
    hours: int = 24,
) -> List[WardRecord]:
    """Active records admitted within the trailing ``hours`` before ``now``."""
    if hours <= 0:
        raise InvalidArgumentError(f"hours must be positive. Got: {hours}")
    cutoff = now - timedelta(hours=hours)
    selected = []
    for record in records:
        admitted = to_local(record.admitted_at, now.tzinfo)
        if admitted is not None and record.is_active and cutoff <= admitted <= now:
            selected.append(record)
    return selected
