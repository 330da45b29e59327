"""Tests for the distribution and breakdown builder."""

from datetime import datetime

import pytest

from factories import make_observation, make_patient
from src.domain.enums import Dimension
from src.domain.ports import InvalidArgumentError
from src.domain.services.distribution_builder import (
    BIRTH_WEIGHT_BANDS,
    UNKNOWN,
    WEEKDAYS,
    Band,
    assign_band,
    bands_from_boundaries,
    build_distribution,
)


def names(distribution):
    return [group.name for group in distribution.groups]


class TestBanding:
    """Test numeric band assignment."""

    @pytest.mark.parametrize("weight,label", [
        (0.0, "<1 kg"),
        (0.99, "<1 kg"),
        (1.0, "1-1.5 kg"),
        (1.49, "1-1.5 kg"),
        (1.5, "1.5-2 kg"),
        (2.0, "2-2.5 kg"),
        (2.5, "≥2.5 kg"),
        (4.2, "≥2.5 kg"),
        (None, UNKNOWN),
        (float("nan"), UNKNOWN),
    ])
    def test_birth_weight_band_edges(self, weight, label):
        assert assign_band(weight, BIRTH_WEIGHT_BANDS) == label

    def test_bands_from_boundaries(self):
        bands = bands_from_boundaries([1, 1.5, 2.5])
        assert [band.label for band in bands] == ["<1", "1-1.5", "1.5-2.5", "≥2.5"]
        assert assign_band(1.5, bands) == "1.5-2.5"
        assert assign_band(-3, bands) == "<1"

    @pytest.mark.parametrize("boundaries", [[], [2, 1], [1, 1]])
    def test_bad_boundaries_rejected(self, boundaries):
        with pytest.raises(InvalidArgumentError):
            bands_from_boundaries(boundaries)


class TestBuildDistribution:
    """Test grouping, ordering and truncation."""

    def test_birth_weight_distribution_adds_up(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.BIRTH_WEIGHT)

        assert distribution.total == 10
        assert sum(group.total for group in distribution.groups) == 10
        assert distribution.as_dict() == {
            UNKNOWN: 4,
            "≥2.5 kg": 3,
            "<1 kg": 1,
            "1-1.5 kg": 1,
            "2-2.5 kg": 1,
            "1.5-2 kg": 0,
        }
        # Ties keep band order, empty bands are still reported
        assert names(distribution)[2:] == ["<1 kg", "1-1.5 kg", "2-2.5 kg", "1.5-2 kg"]

    def test_group_mortality(self, ward_records):
        distribution = build_distribution(ward_records, "diagnosis")
        assert names(distribution) == ["Jaundice", "Pneumonia", "Neonatal Sepsis"]
        jaundice = distribution.group("Jaundice")
        assert (jaundice.total, jaundice.deceased, jaundice.mortality_rate) == (7, 1, 14.3)
        assert distribution.group("Neonatal Sepsis").mortality_rate == 100.0
        assert distribution.group("Pneumonia").mortality_rate == 0.0

    def test_missing_values_grouped_as_unknown(self):
        records = [
            make_patient(diagnosis="Jaundice"),
            make_patient(diagnosis=None),
            make_patient(diagnosis="   "),
        ]
        distribution = build_distribution(records, Dimension.DIAGNOSIS)
        assert distribution.as_dict() == {UNKNOWN: 2, "Jaundice": 1}

    def test_top_n_applied_after_grouping(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.DIAGNOSIS, top_n=1)
        assert names(distribution) == ["Jaundice"]
        assert distribution.truncated
        assert distribution.total == 10

    def test_top_n_larger_than_groups_is_not_truncated(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.DIAGNOSIS, top_n=10)
        assert len(distribution.groups) == 3
        assert not distribution.truncated

    def test_non_positive_top_n_rejected(self, ward_records):
        with pytest.raises(InvalidArgumentError):
            build_distribution(ward_records, Dimension.DIAGNOSIS, top_n=0)

    def test_unknown_dimension_rejected(self, ward_records):
        with pytest.raises(InvalidArgumentError):
            build_distribution(ward_records, "blood_group")

    def test_custom_boundaries(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.BIRTH_WEIGHT, band_boundaries=[2.5])
        assert distribution.as_dict() == {UNKNOWN: 4, "≥2.5": 3, "<2.5": 3}

    def test_custom_band_objects(self):
        bands = [Band("light", 0, 2.0), Band("heavy", 2.0)]
        distribution = build_distribution(
            [make_patient(weight=1.0), make_patient(weight=3.0), make_patient(weight=3.5)],
            Dimension.BIRTH_WEIGHT,
            band_boundaries=bands,
        )
        assert distribution.as_dict() == {"heavy": 2, "light": 1}

    def test_boundaries_on_categorical_dimension_rejected(self, ward_records):
        with pytest.raises(InvalidArgumentError):
            build_distribution(ward_records, Dimension.GENDER, band_boundaries=[1, 2])

    def test_empty_cohort(self):
        distribution = build_distribution([], Dimension.DIAGNOSIS)
        assert distribution.groups == []
        assert distribution.total == 0

    def test_empty_cohort_still_reports_bands(self):
        distribution = build_distribution([], Dimension.BIRTH_WEIGHT)
        assert [group.total for group in distribution.groups] == [0] * len(BIRTH_WEIGHT_BANDS)

    def test_extra_categories_seeded(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.UNIT, categories=["NICU", "PICU", "HDU"])
        assert distribution.as_dict() == {"NICU": 8, "PICU": 2, "HDU": 0}

    def test_unsorted_keeps_seed_order(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.BIRTH_WEIGHT, sort_by_total=False)
        assert names(distribution)[:5] == [band.label for band in BIRTH_WEIGHT_BANDS]


class TestDerivedDimensions:
    """Test dimensions computed from dates and outcomes."""

    def test_day_of_week_reports_every_day(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.DAY_OF_WEEK)
        assert set(names(distribution)) == set(WEEKDAYS)
        assert distribution.groups[0].name == "Friday"
        assert distribution.groups[0].total == 5
        assert distribution.group("Saturday").total == 0

    def test_hour_of_day_reports_every_hour(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.HOUR_OF_DAY)
        assert len(distribution.groups) == 24
        assert distribution.group("08:00").total == 5
        assert distribution.group("09:00").total == 2

    def test_month(self, ward_records):
        assert build_distribution(ward_records, Dimension.MONTH).as_dict() == {"2024-03": 9, "2024-02": 1}

    def test_time_to_death(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.TIME_TO_DEATH)
        assert distribution.group("<6 hours").total == 1
        assert distribution.group("3-7 days").total == 1
        # Survivors have no time to death
        assert distribution.group(UNKNOWN).total == 8

    def test_length_of_stay(self, ward_records):
        distribution = build_distribution(ward_records, Dimension.LENGTH_OF_STAY)
        assert distribution.group("0-3 days").total == 4
        assert distribution.group("4-7 days").total == 2
        assert distribution.group("8-14 days").total == 1
        assert distribution.group(UNKNOWN).total == 3

    def test_admission_type_collapses_outborn_variants(self, ward_records):
        assert build_distribution(ward_records, Dimension.ADMISSION_TYPE).as_dict() == {
            "Inborn": 7,
            "Outborn": 3,
        }

    def test_observations_grouped_alongside_patients(self):
        records = [
            make_patient(gender="Female", admission_date=datetime(2024, 3, 1, 8, 0)),
            make_observation(gender="Female"),
            make_observation(gender=None),
        ]
        assert build_distribution(records, Dimension.GENDER).as_dict() == {"Female": 2, UNKNOWN: 1}
