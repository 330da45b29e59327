"""Enumerations shared across the ward analytics domain.

Values mirror the labels used by the record store so that exported snapshots
can be validated without a translation table.
"""

from enum import Enum
from typing import Optional


class Unit(str, Enum):
    """Hospital unit a record belongs to."""
    NICU = "NICU"
    PICU = "PICU"
    SNCU = "SNCU"
    HDU = "HDU"
    GENERAL_WARD = "GeneralWard"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Unit"]:
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for member in cls:
            if normalized in (member.value.lower(), member.name.lower(), _UNIT_LONG_NAMES[member].lower()):
                return member
        return None

    @property
    def long_name(self) -> str:
        return _UNIT_LONG_NAMES[self]


_UNIT_LONG_NAMES = {
    Unit.NICU: "Neonatal Intensive Care Unit",
    Unit.PICU: "Pediatric Intensive Care Unit",
    Unit.SNCU: "Special New Born Care Unit",
    Unit.HDU: "High Dependency Unit",
    Unit.GENERAL_WARD: "General Ward",
}


class AgeUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"

    @classmethod
    def _missing_(cls, value: object) -> Optional["AgeUnit"]:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class PatientOutcome(str, Enum):
    """Outcome of a hospitalization episode. Exactly one holds at a time."""
    IN_PROGRESS = "In Progress"
    DISCHARGED = "Discharged"
    REFERRED = "Referred"
    DECEASED = "Deceased"
    STEP_DOWN = "Step Down"

    @classmethod
    def _missing_(cls, value: object) -> Optional["PatientOutcome"]:
        if not isinstance(value, str):
            return None
        # Accept "InProgress", "in_progress", "STEP DOWN", ...
        squashed = value.replace(" ", "").replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.replace(" ", "").lower() == squashed:
                return member
        return None


class ObservationOutcome(str, Enum):
    IN_OBSERVATION = "In Observation"
    HANDED_OVER = "Handed Over to Mother"
    CONVERTED_TO_ADMISSION = "Converted to Admission"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ObservationOutcome"]:
        if not isinstance(value, str):
            return None
        squashed = value.replace(" ", "").replace("_", "").lower()
        aliases = {
            "inobservation": cls.IN_OBSERVATION,
            "handedover": cls.HANDED_OVER,
            "handedovertomother": cls.HANDED_OVER,
            "convertedtoadmission": cls.CONVERTED_TO_ADMISSION,
        }
        return aliases.get(squashed)


class AdmissionTypeFilter(str, Enum):
    """Admission-type constraint applied by the cohort filter.

    ``OUTBORN`` matches any admission type containing "outborn" so that
    sub-variants such as "Outborn (Community Referred)" are included.
    """
    ALL = "All"
    INBORN = "Inborn"
    OUTBORN = "Outborn"

    @classmethod
    def _missing_(cls, value: object) -> Optional["AdmissionTypeFilter"]:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None


class PeriodKind(str, Enum):
    ALL_TIME = "All Time"
    TODAY = "Today"
    THIS_WEEK = "This Week"
    THIS_MONTH = "This Month"
    MONTH = "Month"
    CUSTOM = "Custom"


class RiskTier(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Granularity(str, Enum):
    DAY = "day"
    MONTH = "month"
    HOUR = "hour"


class Dimension(str, Enum):
    """Categorical dimensions supported by the distribution builder."""
    DIAGNOSIS = "diagnosis"
    REFERRING_HOSPITAL = "referring_hospital"
    GENDER = "gender"
    ADMISSION_TYPE = "admission_type"
    UNIT = "unit"
    BIRTH_WEIGHT = "birth_weight"
    LENGTH_OF_STAY = "length_of_stay"
    TIME_TO_DEATH = "time_to_death"
    AGE_GROUP = "age_group"
    DAY_OF_WEEK = "day_of_week"
    HOUR_OF_DAY = "hour_of_day"
    MONTH = "month"
