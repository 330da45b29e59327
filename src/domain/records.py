"""Ward Record Schema Definitions.

This module defines the canonical read-only models for the two kinds of records
the analytics engine consumes: hospitalization episodes (``PatientRecord``) and
pre-admission tracking entries (``ObservationRecord``).

Both models expose the same small temporal surface (``admitted_at``,
``is_active``, ``outcome_date``, ``reference_event_time``) so that the cohort
filter and the aggregators can treat them uniformly.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Models are immutable and validated before use
    - Accept both snake_case and the record store's camelCase field names
"""

from datetime import date, datetime
from typing import Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.domain.enums import AgeUnit, ObservationOutcome, PatientOutcome, Unit

# Multipliers used to express an age in days
AGE_UNIT_DAYS = {
    AgeUnit.DAYS: 1,
    AgeUnit.WEEKS: 7,
    AgeUnit.MONTHS: 30,
    AgeUnit.YEARS: 365,
}

_RECORD_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
    extra="ignore",
    use_enum_values=False,
)


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def coerce_datetime(value):
    """Normalize a timeline value before Pydantic parsing.

    Blank strings and pandas NaN/NaT become ``None``; plain dates and
    ``YYYY-MM-DD`` strings become local midnight.
    """
    if _is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str) and len(value.strip()) == 10:
        return datetime.fromisoformat(value.strip())
    return value


def _coerce_optional(value):
    return None if _is_missing(value) else value


class PatientRecord(BaseModel):
    """One hospitalization episode.

    Parameters:
        id: Unique, stable record identifier
        unit: Unit the patient was admitted to
        admission_type: "Inborn" or an "Outborn ..." variant (free text)
        gender: Patient gender label
        diagnosis: Working diagnosis (free text)
        age: Age value, always read together with ``age_unit``
        age_unit: Unit of ``age``
        weight: Weight in kg
        admission_date: When the episode started (required for temporal filters)
        release_date: Release time (discharge, referral or death)
        final_discharge_date: Final discharge of a stepped-down patient
        step_down_date: When the patient was stepped down
        date_of_death: Recorded time of death
        date_of_birth: Date and time of birth
        outcome: Current outcome of the episode
        referring_hospital: Referring facility for outborn admissions
        is_step_down: Currently in step-down status
        readmission_from_step_down: Readmitted after a step-down
        is_critical: Explicit critical-condition flag
        institution_id: Owning institution
    """

    model_config = _RECORD_CONFIG

    id: str = Field(..., min_length=1, description="Unique record identifier")
    unit: Unit = Field(..., description="Hospital unit")
    admission_type: Optional[str] = Field(None, description="Inborn / Outborn variant")
    gender: Optional[str] = Field(None, description="Gender label")
    diagnosis: Optional[str] = Field(None, description="Diagnosis (free text)")
    age: Optional[float] = Field(None, ge=0, description="Age, interpreted with age_unit")
    age_unit: Optional[AgeUnit] = Field(None, description="Unit of age")
    weight: Optional[float] = Field(None, ge=0, description="Weight in kg")
    admission_date: Optional[datetime] = Field(None, description="Admission timestamp")
    release_date: Optional[datetime] = None
    final_discharge_date: Optional[datetime] = None
    step_down_date: Optional[datetime] = None
    date_of_death: Optional[datetime] = None
    date_of_birth: Optional[datetime] = None
    outcome: PatientOutcome = Field(PatientOutcome.IN_PROGRESS, description="Current outcome")
    referring_hospital: Optional[str] = None
    is_step_down: bool = False
    readmission_from_step_down: bool = False
    is_critical: bool = False
    institution_id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v) -> str:
        if _is_missing(v):
            raise ValueError("Record id must be a non-empty value")
        return str(v).strip()

    @field_validator("unit", mode="before")
    @classmethod
    def normalize_unit(cls, v):
        if isinstance(v, str):
            return Unit(v)
        return v

    @field_validator("outcome", mode="before")
    @classmethod
    def normalize_outcome(cls, v):
        if _is_missing(v):
            return PatientOutcome.IN_PROGRESS
        if isinstance(v, str):
            return PatientOutcome(v)
        return v

    @field_validator("age_unit", mode="before")
    @classmethod
    def normalize_age_unit(cls, v):
        if _is_missing(v):
            return None
        if isinstance(v, str):
            return AgeUnit(v)
        return v

    @field_validator(
        "admission_date",
        "release_date",
        "final_discharge_date",
        "step_down_date",
        "date_of_death",
        "date_of_birth",
        mode="before",
    )
    @classmethod
    def normalize_timeline(cls, v):
        return coerce_datetime(v)

    @field_validator(
        "admission_type", "gender", "diagnosis", "referring_hospital", "institution_id",
        "age", "weight",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        return _coerce_optional(v)

    @field_validator(
        "is_step_down", "readmission_from_step_down", "is_critical",
        mode="before",
    )
    @classmethod
    def missing_flag_is_false(cls, v):
        return False if _is_missing(v) else v

    @property
    def admitted_at(self) -> Optional[datetime]:
        return self.admission_date

    @property
    def is_active(self) -> bool:
        return self.outcome == PatientOutcome.IN_PROGRESS

    @property
    def outcome_date(self) -> Optional[datetime]:
        """Resolved end of the episode for non-active records.

        Fallback order: release -> final discharge -> step-down -> death.
        Active records have no outcome date.
        """
        if self.is_active:
            return None
        for candidate in (
            self.release_date,
            self.final_discharge_date,
            self.step_down_date,
            self.date_of_death,
        ):
            if candidate is not None:
                return candidate
        return None

    @property
    def death_date(self) -> Optional[datetime]:
        if self.outcome != PatientOutcome.DECEASED:
            return None
        return self.date_of_death or self.release_date

    @property
    def reference_event_time(self) -> Optional[datetime]:
        """Timestamp whose time-of-day decides shift membership."""
        if self.outcome == PatientOutcome.DISCHARGED:
            event = self.final_discharge_date or self.release_date
        elif self.outcome == PatientOutcome.STEP_DOWN:
            event = self.step_down_date
        elif self.outcome == PatientOutcome.REFERRED:
            event = self.release_date
        elif self.outcome == PatientOutcome.DECEASED:
            event = self.release_date or self.date_of_death
        else:
            event = None
        return event or self.admission_date

    @property
    def age_in_days(self) -> Optional[float]:
        if self.age is None:
            return None
        return self.age * AGE_UNIT_DAYS[self.age_unit or AgeUnit.DAYS]


class ObservationRecord(BaseModel):
    """Pre-admission tracking entry (e.g. a newborn awaiting disposition).

    ``date_of_observation`` plays the role of the admission date and
    ``discharged_at`` the role of the release date.
    """

    model_config = _RECORD_CONFIG

    id: str = Field(..., min_length=1)
    unit: Unit
    admission_type: Optional[str] = None
    gender: Optional[str] = None
    reason_for_observation: Optional[str] = None
    date_of_observation: Optional[datetime] = None
    discharged_at: Optional[datetime] = None
    outcome: ObservationOutcome = ObservationOutcome.IN_OBSERVATION
    converted_to_patient_id: Optional[str] = None
    institution_id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v) -> str:
        if _is_missing(v):
            raise ValueError("Record id must be a non-empty value")
        return str(v).strip()

    @field_validator("unit", mode="before")
    @classmethod
    def normalize_unit(cls, v):
        if isinstance(v, str):
            return Unit(v)
        return v

    @field_validator("outcome", mode="before")
    @classmethod
    def normalize_outcome(cls, v):
        if _is_missing(v):
            return ObservationOutcome.IN_OBSERVATION
        if isinstance(v, str):
            return ObservationOutcome(v)
        return v

    @field_validator("date_of_observation", "discharged_at", mode="before")
    @classmethod
    def normalize_timeline(cls, v):
        return coerce_datetime(v)

    @field_validator(
        "admission_type", "gender", "reason_for_observation",
        "converted_to_patient_id", "institution_id",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        return _coerce_optional(v)

    @property
    def admitted_at(self) -> Optional[datetime]:
        return self.date_of_observation

    @property
    def is_active(self) -> bool:
        return self.outcome == ObservationOutcome.IN_OBSERVATION

    @property
    def outcome_date(self) -> Optional[datetime]:
        if self.is_active:
            return None
        return self.discharged_at

    @property
    def reference_event_time(self) -> Optional[datetime]:
        return self.discharged_at or self.date_of_observation


WardRecord = Union[PatientRecord, ObservationRecord]
