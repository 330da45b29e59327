"""Risk Stratification Classifier.

Assigns every currently active patient to exactly one risk tier using a
prioritized rule set evaluated top-down, first match wins:

1. High: weight < 1.5 kg, age < 1 day, or a critical condition
2. Medium: 1.5 kg <= weight < 2.5 kg, or 1 <= age < 7 days
3. Low: everything else

A patient meeting both High and Medium criteria is High only, so tier counts
always add up to the number of active patients.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from src.domain.enums import AgeUnit, RiskTier
from src.domain.records import PatientRecord

logger = logging.getLogger(__name__)

DEFAULT_CRITICAL_DIAGNOSES = (
    "sepsis",
    "septic shock",
    "asphyxia",
    "hypoxic ischemic encephalopathy",
    "respiratory distress syndrome",
    "necrotizing enterocolitis",
    "meningitis",
    "shock",
    "respiratory failure",
    "congenital heart disease",
)

TIER_ORDER = (RiskTier.HIGH, RiskTier.MEDIUM, RiskTier.LOW)


class RiskAssessment(BaseModel):
    """Tier assigned to one patient and the factors that put it there."""
    record: PatientRecord
    tier: RiskTier
    factors: List[str] = Field(default_factory=list)


class RiskStratification(BaseModel):
    """Tier counts plus the members of each tier for drill-down."""
    assessments: List[RiskAssessment] = Field(default_factory=list)

    @property
    def tier_counts(self) -> Dict[RiskTier, int]:
        counts = {tier: 0 for tier in TIER_ORDER}
        for assessment in self.assessments:
            counts[assessment.tier] += 1
        return counts

    @property
    def tier_members(self) -> Dict[RiskTier, List[PatientRecord]]:
        members = {tier: [] for tier in TIER_ORDER}
        for assessment in self.assessments:
            members[assessment.tier].append(assessment.record)
        return members

    def members_of(self, tier: RiskTier) -> List[PatientRecord]:
        return self.tier_members[RiskTier(tier)]

    @property
    def total(self) -> int:
        return len(self.assessments)


def _is_critical(record: PatientRecord, critical_diagnoses: Sequence[str]) -> bool:
    if record.is_critical:
        return True
    diagnosis = (record.diagnosis or "").lower()
    return bool(diagnosis) and any(keyword.lower() in diagnosis for keyword in critical_diagnoses)


def _age_in_days_unit(record: PatientRecord) -> Optional[float]:
    # Age thresholds only apply when the age is recorded in days
    if record.age is None or record.age_unit != AgeUnit.DAYS:
        return None
    return record.age


def high_risk_factors(record: PatientRecord, critical_diagnoses: Sequence[str]) -> List[str]:
    factors = []
    if record.weight is not None and record.weight < 1.5:
        factors.append("weight < 1.5 kg")
    age = _age_in_days_unit(record)
    if age is not None and age < 1:
        factors.append("age < 24 hours")
    if _is_critical(record, critical_diagnoses):
        factors.append("critical condition")
    return factors


def medium_risk_factors(record: PatientRecord) -> List[str]:
    factors = []
    if record.weight is not None and 1.5 <= record.weight < 2.5:
        factors.append("weight 1.5-2.5 kg")
    age = _age_in_days_unit(record)
    if age is not None and 1 <= age < 7:
        factors.append("age 1-7 days")
    return factors


def assess_risk(
    record: PatientRecord,
    critical_diagnoses: Sequence[str] = DEFAULT_CRITICAL_DIAGNOSES,
) -> RiskAssessment:
    """Classify a single patient; earlier tiers take precedence."""
    factors = high_risk_factors(record, critical_diagnoses)
    if factors:
        return RiskAssessment(record=record, tier=RiskTier.HIGH, factors=factors)
    factors = medium_risk_factors(record)
    if factors:
        return RiskAssessment(record=record, tier=RiskTier.MEDIUM, factors=factors)
    return RiskAssessment(record=record, tier=RiskTier.LOW)


def classify_risk(
    active_cohort: Iterable[PatientRecord],
    critical_diagnoses: Optional[Sequence[str]] = None,
) -> RiskStratification:
    """Stratify the active members of a cohort.

    Non-active records and observation entries in the input are ignored, so
    passing a whole cohort is equivalent to passing its active patients.

    Parameters:
        active_cohort: Patients currently in progress
        critical_diagnoses: Diagnosis keywords (case-insensitive substring
            match) that mark a patient as critical

    Returns:
        RiskStratification: One assessment per active patient
    """
    keywords = DEFAULT_CRITICAL_DIAGNOSES if critical_diagnoses is None else tuple(critical_diagnoses)
    assessments = [
        assess_risk(record, keywords)
        for record in active_cohort
        if isinstance(record, PatientRecord) and record.is_active
    ]
    stratification = RiskStratification(assessments=assessments)
    logger.debug(f"Risk stratification: {stratification.tier_counts}")
    return stratification
