"""Tests for the risk stratification classifier."""

import pytest

from factories import make_observation, make_patient
from src.domain.enums import RiskTier
from src.domain.services.cohort_filter import filter_cohort
from src.domain.services.risk_classifier import assess_risk, classify_risk


class TestAssessRisk:
    """Test the prioritized tier rules for a single patient."""

    @pytest.mark.parametrize("overrides,tier", [
        ({"weight": 1.49}, RiskTier.HIGH),
        ({"weight": 1.5}, RiskTier.MEDIUM),
        ({"weight": 2.49}, RiskTier.MEDIUM),
        ({"weight": 2.5}, RiskTier.LOW),
        ({"age": 0.9, "age_unit": "days"}, RiskTier.HIGH),
        ({"age": 1, "age_unit": "days"}, RiskTier.MEDIUM),
        ({"age": 6.9, "age_unit": "days"}, RiskTier.MEDIUM),
        ({"age": 7, "age_unit": "days"}, RiskTier.LOW),
        ({"is_critical": True}, RiskTier.HIGH),
        ({"diagnosis": "Early onset SEPSIS"}, RiskTier.HIGH),
        ({}, RiskTier.LOW),
    ])
    def test_tier_rules(self, overrides, tier):
        assert assess_risk(make_patient(**overrides)).tier == tier

    def test_high_takes_precedence_over_medium(self):
        # Medium by weight, high by age
        assessment = assess_risk(make_patient(weight=2.0, age=0.5, age_unit="days"))
        assert assessment.tier == RiskTier.HIGH
        assert assessment.factors == ["age < 24 hours"]

    def test_age_thresholds_only_apply_to_days(self):
        assert assess_risk(make_patient(age=0.5, age_unit="weeks")).tier == RiskTier.LOW
        assert assess_risk(make_patient(age=3, age_unit="months")).tier == RiskTier.LOW

    def test_missing_weight_and_age_is_low(self):
        assessment = assess_risk(make_patient(weight=None, age=None))
        assert assessment.tier == RiskTier.LOW
        assert assessment.factors == []

    def test_custom_critical_diagnoses(self):
        record = make_patient(diagnosis="Severe jaundice")
        assert assess_risk(record).tier == RiskTier.LOW
        assert assess_risk(record, critical_diagnoses=["jaundice"]).tier == RiskTier.HIGH


class TestClassifyRisk:
    """Test stratification of a cohort."""

    def test_sample_ward(self, ward_records):
        stratification = classify_risk(filter_cohort(ward_records).active_members)

        assert stratification.total == 3
        assert stratification.tier_counts == {RiskTier.HIGH: 1, RiskTier.MEDIUM: 1, RiskTier.LOW: 1}
        assert [r.id for r in stratification.members_of(RiskTier.HIGH)] == ["A1"]
        assert [r.id for r in stratification.members_of("Medium")] == ["A2"]
        assert [r.id for r in stratification.members_of(RiskTier.LOW)] == ["A3"]

    def test_non_active_and_observation_records_ignored(self, ward_records):
        records = ward_records + [make_observation()]
        assert classify_risk(records).total == 3

    def test_counts_add_up_to_active_patients(self):
        records = [
            make_patient(weight=1.0, age=0.5, age_unit="days", is_critical=True),
            make_patient(weight=2.0, age=3, age_unit="days"),
            make_patient(weight=3.0),
            make_patient(weight=1.2),
        ]
        counts = classify_risk(records).tier_counts
        assert sum(counts.values()) == len(records)
        assert counts[RiskTier.HIGH] == 2

    def test_empty_cohort(self):
        stratification = classify_risk([])
        assert stratification.total == 0
        assert stratification.tier_counts == {RiskTier.HIGH: 0, RiskTier.MEDIUM: 0, RiskTier.LOW: 0}
        assert stratification.members_of(RiskTier.HIGH) == []
