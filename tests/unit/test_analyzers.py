"""Unit tests for the performance analyzer."""

import pytest

from lambda_memory_tuner.analyzers import PerformanceAnalyzer, latest_by_memory
from lambda_memory_tuner.models import (
    Measurement,
    SearchPhase,
    TuningObjective,
    TuningResult,
)


def measurement(memory_size, duration, cost, success_count=3):
    return Measurement(
        function_id="test-function",
        memory_size=memory_size,
        count=3,
        success_count=success_count,
        failure_count=3 - success_count,
        mean_duration_ms=duration,
        cost_per_invocation=cost,
        monthly_cost=cost * 1_000_000 if cost is not None else None,
    )


MEASUREMENTS = [
    measurement(128, 3000.0, 0.0000065),
    measurement(512, 900.0, 0.0000077),
    measurement(1024, 850.0, 0.0000144),
]


@pytest.mark.unit
class TestPerformanceAnalyzer:
    """Test objective scoring and selection."""

    def test_cost_objective(self):
        analyzer = PerformanceAnalyzer(TuningObjective.COST)
        assert analyzer.select_best(MEASUREMENTS) == 128

    def test_speed_objective(self):
        analyzer = PerformanceAnalyzer(TuningObjective.SPEED)
        assert analyzer.select_best(MEASUREMENTS) == 1024

    def test_balanced_objective(self):
        analyzer = PerformanceAnalyzer(TuningObjective.BALANCED)
        scores = analyzer.score(MEASUREMENTS)

        assert analyzer.select_best(MEASUREMENTS) == 512
        assert scores[128] == pytest.approx(0.5)
        assert scores[1024] == pytest.approx(0.5)

    def test_cost_weight_shifts_balance(self):
        cost_heavy = PerformanceAnalyzer(TuningObjective.BALANCED, cost_weight=1.0)
        speed_heavy = PerformanceAnalyzer(TuningObjective.BALANCED, cost_weight=0.0)

        assert cost_heavy.select_best(MEASUREMENTS) == 128
        assert speed_heavy.select_best(MEASUREMENTS) == 1024

    def test_objective_accepts_string(self):
        assert PerformanceAnalyzer("speed").objective == TuningObjective.SPEED

    def test_tie_goes_to_lower_memory(self):
        """Sizes within the tolerance of the best count as a tie."""
        tied = [measurement(512, 900.0, 0.00001), measurement(768, 890.0, 0.0000101)]

        assert PerformanceAnalyzer(TuningObjective.SPEED, tie_tolerance=0.02).select_best(tied) == 512
        assert PerformanceAnalyzer(TuningObjective.SPEED, tie_tolerance=0.0).select_best(tied) == 768

    def test_exact_tie_goes_to_lower_memory(self):
        tied = [measurement(768, 900.0, 0.00001), measurement(512, 900.0, 0.00001)]
        assert PerformanceAnalyzer(TuningObjective.COST, tie_tolerance=0.0).select_best(tied) == 512

    def test_unusable_measurements_are_ignored(self):
        unusable = Measurement.unusable("test-function", 2048, "reconfiguration failed")
        failed = measurement(256, None, None, success_count=0)

        analyzer = PerformanceAnalyzer(TuningObjective.SPEED)
        assert analyzer.score([unusable, failed]) == {}
        assert analyzer.select_best([unusable, failed] + MEASUREMENTS) == 1024

    def test_single_measurement_balanced(self):
        analyzer = PerformanceAnalyzer(TuningObjective.BALANCED)
        assert analyzer.score([MEASUREMENTS[1]]) == {512: 0.0}

    def test_latest_by_memory(self):
        first = measurement(512, 1000.0, 0.00001)
        second = measurement(512, 900.0, 0.00001)

        assert latest_by_memory([first, second]) == {512: second}


@pytest.mark.unit
class TestRecommendation:
    """Test comparison against the original memory size."""

    def result(self, original, recommended, measurements, phase=SearchPhase.CONVERGED):
        by_size = latest_by_memory(measurements)
        return TuningResult(
            function_id="test-function",
            objective=TuningObjective.BALANCED,
            phase=phase,
            recommended_memory=recommended,
            recommendation=by_size.get(recommended),
            measurements=tuple(measurements),
            original_memory=original,
            reason=None if recommended else "every tested memory size was unusable",
        )

    def test_recommendation_against_measured_original(self):
        recommendation = PerformanceAnalyzer().get_recommendation(
            self.result(128, 512, MEASUREMENTS)
        )

        assert recommendation.should_optimize
        assert recommendation.optimal_memory_size == 512
        assert recommendation.duration_change_percent == pytest.approx(70.0)
        assert recommendation.cost_change_percent == pytest.approx(18.4615, rel=1e-3)
        assert recommendation.estimated_monthly_savings == pytest.approx(-1.2)
        assert recommendation.reasoning.startswith("Increasing memory from 128MB to 512MB")

    def test_recommendation_without_original_measurement(self):
        recommendation = PerformanceAnalyzer().get_recommendation(
            self.result(256, 512, MEASUREMENTS)
        )

        assert recommendation.should_optimize
        assert "not measured" in recommendation.reasoning

    def test_recommendation_already_optimal(self):
        recommendation = PerformanceAnalyzer().get_recommendation(
            self.result(512, 512, MEASUREMENTS)
        )

        assert not recommendation.should_optimize
        assert "already" in recommendation.reasoning

    def test_recommendation_when_failed(self):
        recommendation = PerformanceAnalyzer().get_recommendation(
            self.result(256, None, [], phase=SearchPhase.FAILED)
        )

        assert not recommendation.should_optimize
        assert recommendation.optimal_memory_size is None
        assert recommendation.reasoning == "every tested memory size was unusable"
