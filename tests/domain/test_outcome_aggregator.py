"""Tests for the outcome and length-of-stay aggregator."""

from datetime import datetime

import pytest

from factories import make_observation, make_patient
from src.domain.data_quality import DataQualityReport
from src.domain.periods import PeriodSelector, resolve_period
from src.domain.services.cohort_filter import filter_cohort
from src.domain.services.outcome_aggregator import (
    aggregate_outcomes,
    length_of_stay,
    rate,
    summarize_length_of_stay,
)


class TestRate:
    """Test the shared percentage formula."""

    @pytest.mark.parametrize("count,total,expected", [
        (1, 3, 33.3),
        (2, 3, 66.7),
        (1, 8, 12.5),
        (0, 5, 0.0),
        (0, 0, 0.0),
        (3, 0, 0.0),
    ])
    def test_rate(self, count, total, expected):
        assert rate(count, total) == expected


class TestOutcomeCounts:
    """Test outcome counts and rates over the sample ward."""

    def test_counts_partition_the_cohort(self, ward_records):
        summary = aggregate_outcomes(filter_cohort(ward_records))
        counts = summary.counts
        assert counts.total == 10
        assert (counts.in_progress, counts.discharged, counts.referred, counts.deceased, counts.step_down) == (
            3, 3, 1, 2, 1
        )
        assert counts.in_progress + counts.discharged + counts.referred + counts.deceased + counts.step_down == 10

    def test_rates(self, ward_records):
        rates = aggregate_outcomes(ward_records).rates
        assert rates.discharge_rate == 30.0
        assert rates.mortality_rate == 20.0
        assert rates.referral_rate == 10.0
        assert rates.in_progress_rate == 30.0
        assert rates.step_down_rate == 10.0
        assert rates.success_rate == 40.0

    def test_rounded_rates_still_sum_to_a_hundred(self):
        outcomes = ["In Progress", "Discharged", "Referred", "Deceased", "Deceased", "Step Down", "Step Down"]
        rates = aggregate_outcomes([make_patient(outcome=outcome) for outcome in outcomes]).rates

        parts = [
            rates.in_progress_rate,
            rates.discharge_rate,
            rates.referral_rate,
            rates.mortality_rate,
            rates.step_down_rate,
        ]
        assert parts == [14.3, 14.3, 14.3, 28.6, 28.6]
        assert abs(round(sum(parts), 1) - 100) <= 0.1

    def test_empty_cohort_has_zero_rates(self):
        summary = aggregate_outcomes([])
        assert summary.counts.total == 0
        assert summary.rates.mortality_rate == 0.0
        assert summary.length_of_stay.count == 0
        assert summary.length_of_stay.median == 0

    def test_observation_records_are_not_counted(self, ward_records):
        summary = aggregate_outcomes(ward_records + [make_observation()])
        assert summary.counts.total == 10

    def test_readmission_rate_uses_step_downs(self, ward_records):
        summary = aggregate_outcomes(ward_records)
        assert summary.readmitted == 1
        assert summary.readmission_rate == 100.0

    def test_admissions_per_day_requires_clock(self, ward_records, now):
        assert aggregate_outcomes(ward_records).avg_admissions_per_day is None
        # Oldest admission 2024-02-20 09:00, 25 days before now (rounded up)
        assert aggregate_outcomes(ward_records, now=now).avg_admissions_per_day == 0.4


class TestLengthOfStay:
    """Test whole-day length of stay."""

    def test_partial_day_rounds_up(self):
        record = make_patient(
            outcome="Discharged",
            admission_date=datetime(2024, 3, 1, 8, 0),
            release_date=datetime(2024, 3, 1, 20, 0),
        )
        assert length_of_stay(record) == 1

    def test_same_instant_is_zero_days(self):
        record = make_patient(
            outcome="Discharged",
            admission_date=datetime(2024, 3, 1, 8, 0),
            release_date=datetime(2024, 3, 1, 8, 0),
        )
        assert length_of_stay(record) == 0

    def test_just_over_two_days_is_three(self):
        record = make_patient(
            outcome="Referred",
            admission_date=datetime(2024, 3, 1, 8, 0),
            release_date=datetime(2024, 3, 3, 8, 0, 1),
        )
        assert length_of_stay(record) == 3

    def test_active_record_has_no_stay(self):
        assert length_of_stay(make_patient()) is None

    def test_end_before_admission_is_flagged(self):
        quality = DataQualityReport()
        record = make_patient(
            id="backwards",
            outcome="Discharged",
            admission_date=datetime(2024, 3, 5, 8, 0),
            release_date=datetime(2024, 3, 1, 8, 0),
        )
        assert length_of_stay(record, quality) is None
        assert quality.inconsistent_dates == ["backwards"]

    def test_unresolved_end_is_flagged(self):
        quality = DataQualityReport()
        record = make_patient(id="open", outcome="Discharged")
        assert length_of_stay(record, quality) is None
        assert quality.unresolved_outcome_date == ["open"]

    def test_statistics_over_sample_ward(self, ward_records):
        stats = aggregate_outcomes(ward_records).length_of_stay
        # Stays: 4, 5, 3, 2, 1, 3, 8
        assert stats.count == 7
        assert stats.mean == 3.7
        assert stats.median == 3
        assert stats.min == 1
        assert stats.max == 8
        assert stats.skipped == 0

    def test_median_is_lower_median(self):
        stats = summarize_length_of_stay([4, 1, 3, 2])
        assert stats.median == 3
        assert stats.mean == 2.5

    def test_skipped_records_still_count_as_outcomes(self):
        records = [
            make_patient(outcome="Discharged", release_date=datetime(2024, 3, 3, 8, 0)),
            make_patient(outcome="Discharged"),
        ]
        summary = aggregate_outcomes(records)
        assert summary.counts.discharged == 2
        assert summary.length_of_stay.count == 1
        assert summary.length_of_stay.skipped == 1
        assert len(summary.quality.unresolved_outcome_date) == 1


class TestUnitSpecificRates:
    """Test inborn/outborn and under-five mortality."""

    def test_inborn_outborn_mortality(self, ward_records):
        unit_rates = aggregate_outcomes(ward_records).unit_rates
        assert unit_rates.inborn_admissions == 7
        assert unit_rates.inborn_deaths == 1
        assert unit_rates.inborn_mortality_rate == 14.3
        assert unit_rates.outborn_admissions == 3
        assert unit_rates.outborn_deaths == 1
        assert unit_rates.outborn_mortality_rate == 33.3

    def test_under_five_uses_age_in_days(self):
        records = [
            make_patient(age=2, age_unit="years", outcome="Deceased", date_of_death=datetime(2024, 3, 2)),
            make_patient(age=6, age_unit="years"),
            make_patient(age=10, age_unit="months"),
            make_patient(age=None),
        ]
        unit_rates = aggregate_outcomes(records).unit_rates
        assert unit_rates.under_five_admissions == 2
        assert unit_rates.under_five_deaths == 1
        assert unit_rates.under_five_mortality_rate == 50.0


class TestClinicalProfile:
    """Test age, weight and gender counts."""

    def test_profile(self, ward_records):
        profile = aggregate_outcomes(ward_records).profile
        assert profile.under_24_hours == 1
        assert profile.under_7_days == 2
        assert profile.very_low_birth_weight == 2
        assert profile.extremely_low_birth_weight == 1
        assert profile.male == 10


class TestCohortQuality:
    """Test that cohort findings are carried into the summary."""

    def test_quality_copied_from_cohort(self, now):
        records = [make_patient(id="nodate", admission_date=None), make_patient()]
        cohort = filter_cohort(records, window=resolve_period(PeriodSelector.today(), now))
        summary = aggregate_outcomes(cohort)
        assert summary.quality.missing_admission_date == ["nodate"]
        # The cohort's own report is not modified by aggregation
        assert cohort.quality is not summary.quality
