"""Tests for report generation."""

import csv
import json

import pytest

from lambda_memory_tuner.exceptions import RestoreError
from lambda_memory_tuner.models import BatchResult, Measurement, SearchPhase, TuningObjective, TuningResult
from lambda_memory_tuner.reports import (
    CSV_FIELDS,
    batch_to_dict,
    export_to_csv,
    export_to_json,
    format_measurements_table,
    format_summary_table,
    generate_summary,
)


def measurement(memory_size, duration, cost):
    return Measurement(
        function_id="test-function",
        memory_size=memory_size,
        count=3,
        success_count=3,
        failure_count=0,
        mean_duration_ms=duration,
        p50_duration_ms=duration,
        p95_duration_ms=duration,
        avg_billed_duration_ms=duration,
        cost_per_invocation=cost,
        monthly_cost=cost * 1_000_000,
    )


@pytest.fixture
def tuning_result():
    measurements = (
        measurement(128, 3000.0, 0.0000065),
        Measurement.unusable("test-function", 1024, "reconfiguration failed: capacity"),
        measurement(512, 900.0, 0.0000077),
    )
    return TuningResult(
        function_id="test-function",
        objective=TuningObjective.BALANCED,
        phase=SearchPhase.CONVERGED,
        recommended_memory=512,
        recommendation=measurements[2],
        measurements=measurements,
        original_memory=128,
    )


@pytest.fixture
def batch(tuning_result):
    return BatchResult(
        results={"test-function": tuning_result},
        errors={"missing-function": ValueError("Function not found")},
    )


class TestSummaries:
    """Test summary generation."""

    def test_generate_summary(self, tuning_result):
        summary = generate_summary(tuning_result)

        assert summary["recommended_memory"] == 512
        assert summary["original_memory"] == 128
        assert summary["candidates_tested"] == 3
        assert summary["duration_change_percent"] == pytest.approx(70.0)
        assert summary["restored"] is True
        assert summary["reasoning"].startswith("Increasing memory")

    def test_batch_to_dict(self, batch):
        data = batch_to_dict(batch)

        assert data["errors"] == {"missing-function": "ValueError: Function not found"}
        assert data["restore_failures"] == {}
        assert len(data["summaries"]) == 1
        assert "results" not in data["results"]["test-function"]["measurements"][0]

    def test_batch_to_dict_with_restore_failure(self):
        error = RestoreError("still at 512MB", "test-function", 128)
        failed = BatchResult(errors={"test-function": error})

        assert batch_to_dict(failed)["restore_failures"] == {"test-function": "still at 512MB"}


class TestExports:
    """Test file exports."""

    def test_export_to_json(self, batch, tmp_path):
        path = tmp_path / "reports" / "results.json"

        export_to_json(batch, str(path))

        data = json.loads(path.read_text())
        assert data["results"]["test-function"]["recommended_memory"] == 512
        assert data["results"]["test-function"]["phase"] == "converged"

    def test_export_to_csv(self, tuning_result, tmp_path):
        path = tmp_path / "results.csv"

        export_to_csv([tuning_result], str(path))

        with open(path) as f:
            reader = csv.DictReader(f)
            rows = list(reader)
        assert reader.fieldnames == CSV_FIELDS
        assert [row["memory_size"] for row in rows] == ["128", "1024", "512"]
        assert [row["recommended"] for row in rows] == ["False", "False", "True"]


class TestTables:
    """Test console tables."""

    def test_measurements_table_marks_recommendation(self, tuning_result):
        table = format_measurements_table(tuning_result)

        assert "512MB*" in table
        assert "128MB*" not in table
        assert "reconfiguration failed" in table

    def test_summary_table(self, batch):
        table = format_summary_table(batch)

        assert "test-function" in table
        assert "missing-function" in table
        assert "error: ValueError" in table
