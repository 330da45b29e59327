"""Outcome & Length-of-Stay Aggregator.

Computes outcome counts, outcome rates, length-of-stay statistics and the
derived unit-specific rates (inborn/outborn mortality, under-five mortality)
over an already-filtered cohort.

Every rate uses the same formula, ``count / total * 100`` rounded to one
decimal, and is defined as 0 when the denominator is 0.
"""

import logging
import math
from datetime import datetime
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from src.domain.data_quality import DataQualityReport
from src.domain.enums import AdmissionTypeFilter, AgeUnit, PatientOutcome
from src.domain.periods import to_local
from src.domain.records import PatientRecord
from src.domain.services.cohort_filter import Cohort, matches_admission_type

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
UNDER_FIVE_DAYS = 5 * 365


def rate(count: int, total: int) -> float:
    """Percentage rounded to one decimal; 0 when ``total`` is 0."""
    if total <= 0:
        return 0.0
    return round(count / total * 100, 1)


def length_of_stay(record: PatientRecord, quality: Optional[DataQualityReport] = None) -> Optional[int]:
    """Whole days from admission to the resolved end of stay.

    Only non-active records have a length of stay. Returns None (and flags the
    record) when either end of the stay cannot be resolved or the end precedes
    the admission.
    """
    if record.is_active:
        return None
    admitted = to_local(record.admitted_at)
    if admitted is None:
        if quality is not None:
            quality.flag_missing_admission(record.id)
        return None
    ended = to_local(record.outcome_date)
    if ended is None:
        if quality is not None:
            quality.flag_unresolved_outcome(record.id)
        return None
    seconds = (ended - admitted).total_seconds()
    if seconds < 0:
        if quality is not None:
            quality.flag_inconsistent(record.id)
        return None
    return math.ceil(seconds / SECONDS_PER_DAY)


class LengthOfStayStats(BaseModel):
    """Descriptive statistics over whole-day lengths of stay.

    ``median`` is the lower median: the element at ``floor(n / 2)`` of the
    ascending list, so ``[1, 2, 3, 4]`` has median 3.
    """
    count: int = 0
    mean: float = 0.0
    median: int = 0
    min: int = 0
    max: int = 0
    skipped: int = Field(0, description="Non-active records whose stay could not be resolved")


def summarize_length_of_stay(values: Iterable[int], skipped: int = 0) -> LengthOfStayStats:
    ordered = sorted(values)
    if not ordered:
        return LengthOfStayStats(skipped=skipped)
    return LengthOfStayStats(
        count=len(ordered),
        mean=round(sum(ordered) / len(ordered), 1),
        median=ordered[len(ordered) // 2],
        min=ordered[0],
        max=ordered[-1],
        skipped=skipped,
    )


class OutcomeCounts(BaseModel):
    total: int = 0
    in_progress: int = 0
    discharged: int = 0
    referred: int = 0
    deceased: int = 0
    step_down: int = 0


class OutcomeRates(BaseModel):
    discharge_rate: float = 0.0
    mortality_rate: float = 0.0
    referral_rate: float = 0.0
    in_progress_rate: float = 0.0
    step_down_rate: float = 0.0
    success_rate: float = Field(0.0, description="(discharged + step down) / total")


class UnitSpecificRates(BaseModel):
    """Derived rates that only some unit dashboards display.

    Inborn/outborn splits are meaningful for neonatal units, under-five
    mortality for the pediatric unit.
    """
    inborn_admissions: int = 0
    inborn_deaths: int = 0
    inborn_mortality_rate: float = 0.0
    outborn_admissions: int = 0
    outborn_deaths: int = 0
    outborn_mortality_rate: float = 0.0
    under_five_admissions: int = 0
    under_five_deaths: int = 0
    under_five_mortality_rate: float = 0.0


class ClinicalProfile(BaseModel):
    under_24_hours: int = 0
    under_7_days: int = 0
    neonatal: int = 0
    low_birth_weight: int = Field(0, description="Weight < 2.5 kg")
    very_low_birth_weight: int = Field(0, description="Weight < 1.5 kg")
    extremely_low_birth_weight: int = Field(0, description="Weight < 1.0 kg")
    mean_weight: float = 0.0
    male: int = 0
    female: int = 0
    other_gender: int = 0


class OutcomeSummary(BaseModel):
    counts: OutcomeCounts
    rates: OutcomeRates
    length_of_stay: LengthOfStayStats
    unit_rates: UnitSpecificRates
    profile: ClinicalProfile
    readmitted: int = 0
    readmission_rate: float = Field(0.0, description="readmitted / step down")
    avg_admissions_per_day: Optional[float] = None
    quality: DataQualityReport = Field(default_factory=DataQualityReport)


def count_outcomes(records: List[PatientRecord]) -> OutcomeCounts:
    counts = OutcomeCounts(total=len(records))
    field_for = {
        PatientOutcome.IN_PROGRESS: "in_progress",
        PatientOutcome.DISCHARGED: "discharged",
        PatientOutcome.REFERRED: "referred",
        PatientOutcome.DECEASED: "deceased",
        PatientOutcome.STEP_DOWN: "step_down",
    }
    tallies = {name: 0 for name in field_for.values()}
    for record in records:
        tallies[field_for[record.outcome]] += 1
    return counts.model_copy(update=tallies)


def compute_rates(counts: OutcomeCounts) -> OutcomeRates:
    total = counts.total
    return OutcomeRates(
        discharge_rate=rate(counts.discharged, total),
        mortality_rate=rate(counts.deceased, total),
        referral_rate=rate(counts.referred, total),
        in_progress_rate=rate(counts.in_progress, total),
        step_down_rate=rate(counts.step_down, total),
        success_rate=rate(counts.discharged + counts.step_down, total),
    )


def compute_unit_rates(records: List[PatientRecord]) -> UnitSpecificRates:
    def deaths(group: List[PatientRecord]) -> int:
        return sum(1 for record in group if record.outcome == PatientOutcome.DECEASED)

    inborn = [r for r in records if matches_admission_type(r, AdmissionTypeFilter.INBORN)]
    outborn = [r for r in records if matches_admission_type(r, AdmissionTypeFilter.OUTBORN)]
    under_five = [
        r for r in records
        if r.age_in_days is not None and r.age_in_days < UNDER_FIVE_DAYS
    ]
    return UnitSpecificRates(
        inborn_admissions=len(inborn),
        inborn_deaths=deaths(inborn),
        inborn_mortality_rate=rate(deaths(inborn), len(inborn)),
        outborn_admissions=len(outborn),
        outborn_deaths=deaths(outborn),
        outborn_mortality_rate=rate(deaths(outborn), len(outborn)),
        under_five_admissions=len(under_five),
        under_five_deaths=deaths(under_five),
        under_five_mortality_rate=rate(deaths(under_five), len(under_five)),
    )


def build_clinical_profile(records: List[PatientRecord]) -> ClinicalProfile:
    def age_in(unit: AgeUnit, predicate) -> int:
        return sum(
            1 for r in records
            if r.age is not None and r.age_unit == unit and predicate(r.age)
        )

    weights = [r.weight for r in records if r.weight]
    genders = [(r.gender or "").strip().lower() for r in records]
    return ClinicalProfile(
        under_24_hours=age_in(AgeUnit.DAYS, lambda age: age < 1),
        under_7_days=age_in(AgeUnit.DAYS, lambda age: age < 7),
        neonatal=age_in(AgeUnit.DAYS, lambda age: age <= 28) + age_in(AgeUnit.WEEKS, lambda age: age < 4),
        low_birth_weight=sum(1 for w in weights if w < 2.5),
        very_low_birth_weight=sum(1 for w in weights if w < 1.5),
        extremely_low_birth_weight=sum(1 for w in weights if w < 1.0),
        mean_weight=round(sum(weights) / len(weights), 2) if weights else 0.0,
        male=genders.count("male"),
        female=genders.count("female"),
        other_gender=sum(1 for g in genders if g in ("other", "ambiguous")),
    )


def average_admissions_per_day(records: List[PatientRecord], now: datetime) -> float:
    """Cohort size spread over the days since the oldest admission (minimum 1)."""
    admissions = [to_local(r.admitted_at) for r in records if r.admitted_at is not None]
    if not admissions:
        return 0.0
    elapsed = (to_local(now) - min(admissions)).total_seconds()
    days = max(1, math.ceil(elapsed / SECONDS_PER_DAY))
    return round(len(records) / days, 1)


def aggregate_outcomes(
    cohort: Union[Cohort, Iterable[PatientRecord]],
    now: Optional[datetime] = None,
) -> OutcomeSummary:
    """Aggregate outcome counts, rates and length-of-stay statistics.

    Parameters:
        cohort: Filtered cohort (or any iterable of patient records)
        now: Optional clock reading, needed only for admissions-per-day

    Returns:
        OutcomeSummary: Counts, rates, LOS statistics, unit-specific rates and
        the data-quality findings (those of the cohort plus LOS exclusions)
    """
    # Observation records carry no patient outcome
    records = [record for record in cohort if isinstance(record, PatientRecord)]
    quality = cohort.quality.model_copy(deep=True) if isinstance(cohort, Cohort) else DataQualityReport()

    counts = count_outcomes(records)
    los_values = []
    skipped = 0
    for record in records:
        if record.is_active:
            continue
        days = length_of_stay(record, quality)
        if days is None:
            skipped += 1
        else:
            los_values.append(days)
    if skipped:
        logger.debug(f"Length of stay skipped for {skipped} record(s) with unresolved dates")

    stepped_down = counts.step_down
    readmitted = sum(1 for r in records if r.readmission_from_step_down)

    return OutcomeSummary(
        counts=counts,
        rates=compute_rates(counts),
        length_of_stay=summarize_length_of_stay(los_values, skipped=skipped),
        unit_rates=compute_unit_rates(records),
        profile=build_clinical_profile(records),
        readmitted=readmitted,
        readmission_rate=rate(readmitted, stepped_down),
        avg_admissions_per_day=average_admissions_per_day(records, now) if now is not None else None,
        quality=quality,
    )
