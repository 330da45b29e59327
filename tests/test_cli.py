"""Tests for the wardstats command line interface.

The CLI reads the wall clock, so these tests stick to All Time and explicit
custom ranges.
"""

import json

import pytest
from typer.testing import CliRunner

from src.cli import app

runner = CliRunner()


@pytest.fixture
def ward_file(tmp_path, ward_records):
    path = tmp_path / "ward_export.json"
    path.write_text(json.dumps([record.model_dump(mode="json") for record in ward_records]), encoding="utf-8")
    return str(path)


class TestSummaryCommand:
    def test_json_output(self, ward_file):
        result = runner.invoke(app, ["summary", ward_file, "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["counts"]["total"] == 10
        assert data["rates"]["mortality_rate"] == 20.0

    def test_table_output(self, ward_file):
        result = runner.invoke(app, ["summary", ward_file, "--unit", "NICU"])

        assert result.exit_code == 0
        assert "Patients:" in result.stdout
        assert "Deceased:" in result.stdout

    def test_custom_range(self, ward_file):
        args = ["summary", ward_file, "--period", "Custom", "--start", "2024-03-10", "--end", "2024-03-11", "--json"]
        result = runner.invoke(app, args)
        assert json.loads(result.stdout)["counts"]["total"] == 4

    def test_unknown_unit_fails(self, ward_file):
        result = runner.invoke(app, ["summary", ward_file, "--unit", "Maternity"])
        assert result.exit_code == 1

    def test_missing_file_fails(self, tmp_path):
        result = runner.invoke(app, ["summary", str(tmp_path / "missing.json")])
        assert result.exit_code == 1

    def test_unsupported_format_fails(self, tmp_path):
        path = tmp_path / "ward.xml"
        path.write_text("<ward/>", encoding="utf-8")
        result = runner.invoke(app, ["summary", str(path)])
        assert result.exit_code == 1

    def test_undecodable_file_fails(self, tmp_path):
        path = tmp_path / "latin.json"
        path.write_bytes(b'[{"id": "\xff\xfe", "unit": "NICU"}]')
        result = runner.invoke(app, ["summary", str(path)])
        assert result.exit_code == 1


class TestDistributionCommand:
    def test_top_groups(self, ward_file):
        result = runner.invoke(app, ["distribution", "diagnosis", ward_file, "--top", "2", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [group["name"] for group in data["groups"]] == ["Jaundice", "Pneumonia"]
        assert data["truncated"] is True

    def test_table_output(self, ward_file):
        result = runner.invoke(app, ["distribution", "birth_weight", ward_file])
        assert result.exit_code == 0
        assert "Mortality" in result.stdout

    def test_unknown_dimension_fails(self, ward_file):
        result = runner.invoke(app, ["distribution", "blood_group", ward_file])
        assert result.exit_code == 1


class TestRiskCommand:
    def test_json_output(self, ward_file):
        result = runner.invoke(app, ["risk", ward_file, "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["total"] == 3
        assert data["counts"] == {"High": 1, "Medium": 1, "Low": 1}
        assert data["members"]["High"] == ["A1"]

    def test_members_listing(self, ward_file):
        result = runner.invoke(app, ["risk", ward_file, "--members"])
        assert result.exit_code == 0
        assert "A1" in result.stdout


class TestCensusCommand:
    def test_last_buckets(self, ward_file):
        result = runner.invoke(app, ["census", ward_file, "--last", "2", "--json"])

        assert result.exit_code == 0
        points = json.loads(result.stdout)["points"]
        assert [point["bucket"] for point in points] == ["2024-03-14", "2024-03-16"]
        assert [point["census"] for point in points] == [4, 3]

    def test_unknown_granularity_fails(self, ward_file):
        result = runner.invoke(app, ["census", ward_file, "--granularity", "week"])
        assert result.exit_code == 1


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "Ward-Census v1.0.0" in result.stdout
