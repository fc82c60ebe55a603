"""Unit tests for data models."""

from datetime import datetime, timezone

import pytest

from lambda_memory_tuner.exceptions import RestoreError
from lambda_memory_tuner.models import (
    BatchResult,
    FunctionInformation,
    InvocationResult,
    Measurement,
    SearchPhase,
    SearchState,
    TuningObjective,
    TuningResult,
)


def make_measurement(memory_size=512, **kwargs):
    data = dict(
        function_id="test-function",
        memory_size=memory_size,
        count=3,
        success_count=3,
        failure_count=0,
        mean_duration_ms=900.0,
        p50_duration_ms=900.0,
        p95_duration_ms=900.0,
        cost_per_invocation=0.0000077,
        monthly_cost=7.7,
    )
    data.update(kwargs)
    return Measurement(**data)


def make_result(**kwargs):
    data = dict(
        function_id="test-function",
        objective=TuningObjective.BALANCED,
        phase=SearchPhase.CONVERGED,
        recommended_memory=512,
        recommendation=make_measurement(),
        measurements=(make_measurement(),),
        original_memory=256,
    )
    data.update(kwargs)
    return TuningResult(**data)


@pytest.mark.unit
class TestFunctionInformation:
    """Test FunctionInformation model."""

    def test_function_name_from_arn(self):
        info = FunctionInformation(
            identifier="arn:aws:lambda:us-east-1:123456789012:function:my-func:prod",
            current_memory_size=256,
        )
        assert info.function_name == "my-func"

    def test_function_name_from_name(self):
        info = FunctionInformation(identifier="my-func", current_memory_size=256)
        assert info.function_name == "my-func"


@pytest.mark.unit
class TestInvocationResult:
    """Test InvocationResult model."""

    def test_defaults(self):
        result = InvocationResult(
            function_id="f", memory_size=128, duration_ms=10.0, billed_duration_ms=10.0, success=True
        )

        assert result.error_type is None
        assert result.cold_start is False
        assert isinstance(result.timestamp, datetime)
        assert result.timestamp.tzinfo is timezone.utc

    def test_is_immutable(self):
        result = InvocationResult(
            function_id="f", memory_size=128, duration_ms=10.0, billed_duration_ms=10.0, success=True
        )
        with pytest.raises(AttributeError):
            result.duration_ms = 5.0


@pytest.mark.unit
class TestMeasurement:
    """Test Measurement model."""

    def test_usable_measurement(self):
        measurement = make_measurement()

        assert measurement.is_usable
        assert measurement.error_rate == 0.0

    def test_unusable_measurement(self):
        measurement = Measurement.unusable("test-function", 2048, "reconfiguration failed")

        assert not measurement.is_usable
        assert measurement.count == 0
        assert measurement.unusable_reason == "reconfiguration failed"
        assert measurement.error_rate == 1.0

    def test_partial_failures_stay_usable(self):
        measurement = make_measurement(count=4, success_count=1, failure_count=3)

        assert measurement.is_usable
        assert measurement.error_rate == 0.75

    def test_to_dict_hides_raw_results_by_default(self):
        raw = InvocationResult(
            function_id="f", memory_size=512, duration_ms=1.0, billed_duration_ms=1.0, success=True
        )
        measurement = make_measurement(results=(raw,))

        assert "results" not in measurement.to_dict()
        assert len(measurement.to_dict(include_raw=True)["results"]) == 1


@pytest.mark.unit
class TestSearchState:
    """Test SearchState model."""

    def test_tested_is_sorted(self):
        state = SearchState(
            min_memory=128, max_memory=1024, step=64, objective=TuningObjective.COST
        )
        state.measurements[1024] = make_measurement(1024)
        state.measurements[128] = make_measurement(128)

        assert state.tested == [128, 1024]

    @pytest.mark.parametrize(
        "phase,done",
        [
            (SearchPhase.INITIALIZING, False),
            (SearchPhase.EXPLORING, False),
            (SearchPhase.CONVERGED, True),
            (SearchPhase.EXHAUSTED, True),
            (SearchPhase.FAILED, True),
        ],
    )
    def test_done(self, phase, done):
        state = SearchState(
            min_memory=128, max_memory=1024, step=64, objective=TuningObjective.COST, phase=phase
        )
        assert state.done is done


@pytest.mark.unit
class TestTuningResult:
    """Test TuningResult model."""

    def test_succeeded_and_restored(self):
        result = make_result()

        assert result.succeeded
        assert result.restored

    def test_failed_result(self):
        result = make_result(
            phase=SearchPhase.FAILED, recommended_memory=None, recommendation=None
        )
        assert not result.succeeded

    def test_to_dict(self):
        error = RestoreError("still at 512MB", "test-function", 256)
        data = make_result(restore_error=error).to_dict()

        assert data["objective"] == "balanced"
        assert data["phase"] == "converged"
        assert data["recommended_memory"] == 512
        assert data["recommendation"]["memory_size"] == 512
        assert len(data["measurements"]) == 1
        assert data["restore_error"] == "still at 512MB"


@pytest.mark.unit
class TestBatchResult:
    """Test BatchResult model."""

    def test_restore_failures_from_results_and_errors(self):
        restore_error = RestoreError("not restored", "a", 256)
        raised = RestoreError("not restored either", "c", 256)
        batch = BatchResult(
            results={"a": make_result(function_id="a", restore_error=restore_error),
                     "b": make_result(function_id="b")},
            errors={"c": raised, "d": ValueError("boom")},
        )

        assert batch.restore_failures == {"a": restore_error, "c": raised}
        assert batch.succeeded == ["a", "b"]

    def test_restore_failures_include_unrestored_sessions(self):
        lost = RestoreError("cancelled and not restored", "e", 256)
        batch = BatchResult(errors={"e": ValueError("cancelled")}, unrestored={"e": lost})

        assert batch.restore_failures == {"e": lost}
        assert batch.succeeded == []
