"""Performance analyzer: objective scores and recommendations."""

import logging
from typing import Dict, Iterable, List, Optional

import numpy as np

from ..models import Measurement, Recommendation, TuningObjective, TuningResult

logger = logging.getLogger(__name__)


def latest_by_memory(measurements: Iterable[Measurement]) -> Dict[int, Measurement]:
    """Latest measurement per memory size, in trail order."""
    latest = {}
    for measurement in measurements:
        latest[measurement.memory_size] = measurement
    return latest


class PerformanceAnalyzer:
    """
    Scores measurements against a tuning objective.

    Scores are "lower is better":

    - cost: estimated cost per invocation
    - speed: mean successful duration
    - balanced: ``cost_weight * norm(cost) + (1 - cost_weight) * norm(duration)``
      where ``norm`` is min-max normalisation over the scored set

    Only usable measurements are scored.
    """

    def __init__(
        self,
        objective: TuningObjective = TuningObjective.BALANCED,
        cost_weight: float = 0.5,
        tie_tolerance: float = 0.02,
    ):
        self.objective = TuningObjective(objective)
        self.cost_weight = cost_weight
        self.tie_tolerance = tie_tolerance

    @classmethod
    def from_config(cls, config) -> "PerformanceAnalyzer":
        return cls(config.tuning_objective, config.cost_weight, config.tie_tolerance)

    def score(self, measurements: Iterable[Measurement]) -> Dict[int, float]:
        """Objective score per memory size."""
        usable = [m for m in latest_by_memory(measurements).values() if m.is_usable]
        if not usable:
            return {}

        if self.objective == TuningObjective.COST:
            return {m.memory_size: m.cost_per_invocation for m in usable}
        if self.objective == TuningObjective.SPEED:
            return {m.memory_size: m.mean_duration_ms for m in usable}

        costs = self._normalize([m.cost_per_invocation for m in usable])
        durations = self._normalize([m.mean_duration_ms for m in usable])
        weighted = self.cost_weight * costs + (1 - self.cost_weight) * durations

        return {m.memory_size: float(s) for m, s in zip(usable, weighted)}

    @staticmethod
    def _normalize(values: List[float]) -> np.ndarray:
        data = np.asarray(values, dtype=float)
        spread = data.max() - data.min()
        if spread == 0:
            return np.zeros_like(data)
        return (data - data.min()) / spread

    def select_best(self, measurements: Iterable[Measurement]) -> Optional[int]:
        """
        Best memory size for the objective.

        Sizes scoring within the tie tolerance of the best score count as
        equal, and the smallest of them wins. The tolerance is relative for
        cost and speed and absolute on the normalised balanced scale.
        """
        scores = self.score(measurements)
        if not scores:
            return None

        best_score = min(scores.values())
        scale = 1.0 if self.objective == TuningObjective.BALANCED else abs(best_score)
        threshold = best_score + self.tie_tolerance * scale

        return min(memory for memory, score in scores.items() if score <= threshold)

    def get_recommendation(self, result: TuningResult) -> Recommendation:
        """Compare the recommended size with the function's original size."""
        objective = result.objective.value
        current = result.original_memory
        optimal = result.recommended_memory

        if optimal is None:
            return Recommendation(
                objective=objective,
                current_memory_size=current,
                optimal_memory_size=None,
                should_optimize=False,
                reasoning=result.reason or "No usable memory size found",
            )

        measured = latest_by_memory(result.measurements)
        current_result = measured.get(current)
        optimal_result = result.recommendation

        if current_result is None or not current_result.is_usable or optimal_result is None:
            return Recommendation(
                objective=objective,
                current_memory_size=current,
                optimal_memory_size=optimal,
                should_optimize=optimal != current,
                reasoning=(
                    f"{optimal}MB is the best {objective} setting found; "
                    f"the current {current}MB was not measured"
                ),
            )

        cost_change = (
            (optimal_result.cost_per_invocation - current_result.cost_per_invocation)
            / current_result.cost_per_invocation
        ) * 100
        duration_change = (
            (current_result.mean_duration_ms - optimal_result.mean_duration_ms)
            / current_result.mean_duration_ms
        ) * 100
        savings = current_result.monthly_cost - optimal_result.monthly_cost

        return Recommendation(
            objective=objective,
            current_memory_size=current,
            optimal_memory_size=optimal,
            should_optimize=optimal != current,
            cost_change_percent=cost_change,
            duration_change_percent=duration_change,
            reasoning=self._generate_reasoning(current, optimal, cost_change, duration_change),
            estimated_monthly_savings=savings,
        )

    @staticmethod
    def _generate_reasoning(
        current: int, optimal: int, cost_change: float, duration_change: float
    ) -> str:
        if current == optimal:
            return f"Current {current}MB is already the best setting found"

        direction = "Increasing" if optimal > current else "Reducing"
        return (
            f"{direction} memory from {current}MB to {optimal}MB changes cost by "
            f"{cost_change:+.1f}% and duration by {-duration_change:+.1f}%"
        )
