"""Temporal Window Resolver.

Turns a symbolic ``PeriodSelector`` ("Today", "This Week", "2025-01", a custom
range, ...) into a concrete closed ``Interval`` in the caller's local time.
Resolution is a pure function of the selector and an injected ``now``; nothing
here reads the wall clock.

Incomplete custom ranges resolve to ``OpenWindow.INVALID``. Consumers treat
``INVALID`` exactly like ``OpenWindow.ALL_TIME`` (fail-open: keep every record
instead of returning an empty cohort).
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from src.domain.enums import PeriodKind
from src.domain.ports import InvalidArgumentError

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")

# Python weekday numbering (Monday=0); the ward dashboard starts weeks on Sunday
SUNDAY = 6

END_OF_DAY = time(23, 59, 59, 999000)


class OpenWindow(str, Enum):
    """Resolution results that impose no temporal constraint."""
    ALL_TIME = "all_time"
    INVALID = "invalid"


@dataclass(frozen=True)
class Interval:
    """Closed datetime interval ``[start, end]``."""
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        moment = to_local(moment, self.start.tzinfo)
        return self.start <= moment <= self.end

    @property
    def tz(self) -> Optional[tzinfo]:
        return self.start.tzinfo


PeriodWindow = Union[Interval, OpenWindow]


def is_open(window: PeriodWindow) -> bool:
    """True when the window imposes no temporal filtering."""
    return isinstance(window, OpenWindow)


def to_local(moment: Optional[datetime], tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Express a timestamp as local wall time.

    With ``tz=None`` the result is naive local time (aware values are converted
    to the system zone first). With a ``tz`` the result is aware in that zone;
    naive inputs are assumed to already be local to it.
    """
    if moment is None:
        return None
    if tz is None:
        if moment.tzinfo is None:
            return moment
        return moment.astimezone().replace(tzinfo=None)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def start_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, END_OF_DAY, tzinfo=tz)


def last_day_of_month(year: int, month: int) -> date:
    # "Day 0" of the following month
    if month == 12:
        first_of_next = date(year + 1, 1, 1)
    else:
        first_of_next = date(year, month + 1, 1)
    return first_of_next - timedelta(days=1)


class PeriodSelector(BaseModel):
    """Immutable description of a reporting period.

    Attributes:
        kind: Which period family is selected
        month: ``YYYY-MM`` for ``PeriodKind.MONTH``
        start: First day of a custom range
        end: Last day of a custom range
        first_day_of_week: Python weekday the week starts on (Sunday by default)
    """

    model_config = ConfigDict(frozen=True)

    kind: PeriodKind = PeriodKind.ALL_TIME
    month: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    first_day_of_week: int = SUNDAY

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        match = MONTH_PATTERN.match(v.strip())
        if not match or not 1 <= int(match.group(2)) <= 12:
            raise ValueError(f"Month must be formatted as YYYY-MM. Got: {v}")
        return v.strip()

    @field_validator("first_day_of_week")
    @classmethod
    def validate_first_day(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError(f"first_day_of_week must be 0 (Monday) to 6 (Sunday). Got: {v}")
        return v

    @model_validator(mode="after")
    def validate_month_kind(self) -> "PeriodSelector":
        if self.kind == PeriodKind.MONTH and self.month is None:
            raise ValueError("A month period requires 'month' (YYYY-MM)")
        return self

    @classmethod
    def all_time(cls) -> "PeriodSelector":
        return cls(kind=PeriodKind.ALL_TIME)

    @classmethod
    def today(cls) -> "PeriodSelector":
        return cls(kind=PeriodKind.TODAY)

    @classmethod
    def this_week(cls, first_day_of_week: int = SUNDAY) -> "PeriodSelector":
        return cls(kind=PeriodKind.THIS_WEEK, first_day_of_week=first_day_of_week)

    @classmethod
    def this_month(cls) -> "PeriodSelector":
        return cls(kind=PeriodKind.THIS_MONTH)

    @classmethod
    def for_month(cls, year: int, month: int) -> "PeriodSelector":
        return cls(kind=PeriodKind.MONTH, month=f"{year:04d}-{month:02d}")

    @classmethod
    def custom(cls, start: Optional[date] = None, end: Optional[date] = None) -> "PeriodSelector":
        return cls(kind=PeriodKind.CUSTOM, start=start, end=end)

    @classmethod
    def parse(
        cls,
        label: Optional[str],
        start: Optional[date] = None,
        end: Optional[date] = None,
        first_day_of_week: int = SUNDAY,
    ) -> "PeriodSelector":
        """Build a selector from a dashboard label.

        Accepts "All Time", "Today", "This Week", "This Month", "Custom" (with
        ``start``/``end``) and ``YYYY-MM`` month labels, case-insensitively.

        Raises:
            InvalidArgumentError: If the label is not recognized
        """
        if label is None or not label.strip() or label.strip().lower() in ("all", "all time"):
            return cls.all_time()

        text = label.strip()
        if MONTH_PATTERN.match(text):
            try:
                return cls(kind=PeriodKind.MONTH, month=text)
            except ValueError as e:
                raise InvalidArgumentError(str(e)) from e

        lookup = {kind.value.lower(): kind for kind in PeriodKind if kind != PeriodKind.MONTH}
        lookup.update({kind.name.lower(): kind for kind in PeriodKind if kind != PeriodKind.MONTH})
        kind = lookup.get(text.lower())
        if kind is None:
            raise InvalidArgumentError(f"Unknown period: {label!r}")
        return cls(kind=kind, start=start, end=end, first_day_of_week=first_day_of_week)

    @property
    def label(self) -> str:
        if self.kind == PeriodKind.MONTH:
            return self.month
        return self.kind.value


def resolve_period(selector: PeriodSelector, now: datetime) -> PeriodWindow:
    """Resolve a period selector against an injected ``now``.

    The interval is expressed in ``now``'s time zone (naive ``now`` means naive
    local time). All bounds are inclusive: days start at 00:00:00.000 and end
    at 23:59:59.999.

    Parameters:
        selector: Period to resolve
        now: Current wall-clock time

    Returns:
        PeriodWindow: An ``Interval``, ``OpenWindow.ALL_TIME`` or
        ``OpenWindow.INVALID`` (incomplete or reversed custom range)
    """
    tz = now.tzinfo
    today = now.date()
    kind = selector.kind

    if kind == PeriodKind.ALL_TIME:
        return OpenWindow.ALL_TIME

    if kind == PeriodKind.TODAY:
        return Interval(start_of_day(today, tz), end_of_day(today, tz))

    if kind == PeriodKind.THIS_WEEK:
        offset = (today.weekday() - selector.first_day_of_week) % 7
        week_start = today - timedelta(days=offset)
        week_end = week_start + timedelta(days=6)
        return Interval(start_of_day(week_start, tz), end_of_day(week_end, tz))

    if kind == PeriodKind.THIS_MONTH:
        first = today.replace(day=1)
        return Interval(start_of_day(first, tz), end_of_day(last_day_of_month(today.year, today.month), tz))

    if kind == PeriodKind.MONTH:
        year, month = (int(part) for part in selector.month.split("-"))
        return Interval(
            start_of_day(date(year, month, 1), tz),
            end_of_day(last_day_of_month(year, month), tz),
        )

    if kind == PeriodKind.CUSTOM:
        if selector.start is None or selector.end is None:
            logger.debug("Custom period missing a bound; treating as all time")
            return OpenWindow.INVALID
        if selector.start > selector.end:
            logger.warning(
                f"Custom period start {selector.start} is after end {selector.end}; treating as all time"
            )
            return OpenWindow.INVALID
        return Interval(start_of_day(selector.start, tz), end_of_day(selector.end, tz))

    raise InvalidArgumentError(f"Unsupported period kind: {kind}")
