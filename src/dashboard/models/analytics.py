"""Analytics response models for dashboard API.

Most analytics endpoints return the engine's own models (OutcomeSummary,
Distribution, TimeSeries, DashboardReport). Risk stratification is flattened
here so the drill-down lists only the fields the ward screen shows.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.domain.services.risk_classifier import RiskAssessment, RiskStratification


class RiskMember(BaseModel):
    """One active patient in a risk tier."""
    id: str
    unit: str
    diagnosis: Optional[str] = None
    weight: Optional[float] = None
    age: Optional[float] = None
    age_unit: Optional[str] = None
    factors: List[str] = Field(default_factory=list)

    @classmethod
    def from_assessment(cls, assessment: RiskAssessment) -> "RiskMember":
        record = assessment.record
        return cls(
            id=record.id,
            unit=record.unit.value,
            diagnosis=record.diagnosis,
            weight=record.weight,
            age=record.age,
            age_unit=record.age_unit.value if record.age_unit else None,
            factors=assessment.factors,
        )


class RiskResponse(BaseModel):
    """Risk tier counts and members.

    Attributes:
        total: Number of active patients stratified
        counts: Patients per tier (High, Medium, Low)
        members: Drill-down list per tier
    """
    total: int
    counts: Dict[str, int]
    members: Dict[str, List[RiskMember]]

    @classmethod
    def from_stratification(cls, stratification: RiskStratification) -> "RiskResponse":
        members = {tier.value: [] for tier in stratification.tier_counts}
        for assessment in stratification.assessments:
            members[assessment.tier.value].append(RiskMember.from_assessment(assessment))
        return cls(
            total=stratification.total,
            counts={tier.value: count for tier, count in stratification.tier_counts.items()},
            members=members,
        )
