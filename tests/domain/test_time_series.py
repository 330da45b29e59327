"""Tests for the running-census time series builder."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from factories import make_observation, make_patient
from src.domain.enums import Granularity
from src.domain.ports import InvalidArgumentError
from src.domain.services.time_series import bucket_key, build_time_series

DAILY_CENSUS = {
    "2024-02-20": 1,
    "2024-02-25": 0,
    "2024-03-01": 5,
    "2024-03-02": 4,
    "2024-03-04": 3,
    "2024-03-08": 2,
    "2024-03-10": 3,
    "2024-03-11": 3,
    "2024-03-12": 2,
    "2024-03-13": 3,
    "2024-03-14": 4,
    "2024-03-16": 3,
}


class TestBuildTimeSeries:
    """Test bucketing and the running census."""

    def test_daily_census(self, ward_records):
        series = build_time_series(ward_records)
        assert series.granularity == Granularity.DAY
        assert dict(zip(series.buckets, series.census)) == DAILY_CENSUS
        assert series.buckets == sorted(series.buckets)
        assert series.full_length == 12

    def test_final_census_equals_active_patients(self, ward_records):
        series = build_time_series(ward_records)
        active = sum(1 for record in ward_records if record.is_active)
        assert series.census[-1] == active

    def test_admission_and_death_in_same_bucket(self, ward_records):
        point = build_time_series(ward_records).points[7]
        assert point.bucket == "2024-03-11"
        assert (point.admissions, point.discharges, point.deaths, point.census) == (1, 0, 1, 3)

    def test_referral_and_step_down_count_as_discharges(self, ward_records):
        points = {point.bucket: point for point in build_time_series(ward_records).points}
        assert points["2024-03-02"].discharges == 1
        assert points["2024-03-08"].discharges == 1
        assert points["2024-03-02"].deaths == 0

    def test_truncation_keeps_history(self, ward_records):
        series = build_time_series(ward_records, truncate_to_last_n=3)
        assert series.buckets == ["2024-03-13", "2024-03-14", "2024-03-16"]
        assert series.census == [3, 4, 3]
        assert series.full_length == 12

    def test_truncation_longer_than_series(self, ward_records):
        assert len(build_time_series(ward_records, truncate_to_last_n=100).points) == 12

    def test_monthly(self, ward_records):
        series = build_time_series(ward_records, granularity="month")
        assert series.buckets == ["2024-02", "2024-03"]
        assert series.census == [0, 3]
        march = series.points[1]
        assert (march.admissions, march.discharges, march.deaths) == (9, 4, 2)

    def test_hourly_buckets_are_time_of_day(self, ward_records):
        series = build_time_series(ward_records, granularity=Granularity.HOUR)
        assert all(len(bucket) == 5 and bucket.endswith(":00") for bucket in series.buckets)
        assert series.buckets == sorted(series.buckets)

    def test_empty_cohort(self):
        series = build_time_series([])
        assert series.points == []
        assert series.full_length == 0

    def test_records_without_dates_are_counted_not_bucketed(self):
        records = [
            make_patient(admission_date=None),
            make_patient(outcome="Discharged"),
        ]
        series = build_time_series(records)
        assert series.missing_admission == 1
        assert series.unresolved_outcome == 1
        assert series.census == [1]

    def test_observations_contribute_events(self):
        records = [
            make_observation(),
            make_observation(
                outcome="Handed Over to Mother",
                date_of_observation=datetime(2024, 3, 15, 9, 0),
                discharged_at=datetime(2024, 3, 15, 18, 0),
            ),
        ]
        point = build_time_series(records).points[0]
        assert (point.admissions, point.discharges, point.census) == (2, 1, 1)

    def test_events_bucketed_in_local_zone(self):
        utc = ZoneInfo("UTC")
        nairobi = ZoneInfo("Africa/Nairobi")
        record = make_patient(admission_date=datetime(2024, 3, 1, 22, 0, tzinfo=utc))
        assert build_time_series([record], tz=nairobi).buckets == ["2024-03-02"]

    def test_invalid_arguments(self, ward_records):
        with pytest.raises(InvalidArgumentError):
            build_time_series(ward_records, granularity="week")
        with pytest.raises(InvalidArgumentError):
            build_time_series(ward_records, truncate_to_last_n=0)


class TestBucketKey:
    def test_formats(self):
        moment = datetime(2024, 3, 5, 7, 45)
        assert bucket_key(moment, Granularity.DAY) == "2024-03-05"
        assert bucket_key(moment, Granularity.MONTH) == "2024-03"
        assert bucket_key(moment, Granularity.HOUR) == "07:00"
