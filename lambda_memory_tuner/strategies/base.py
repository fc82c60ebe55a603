"""Base interface for memory search strategies."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..analyzers.analyzer import PerformanceAnalyzer
from ..models import Measurement, SearchPhase, SearchState

logger = logging.getLogger(__name__)


class SearchStrategy(ABC):
    """
    Decides which memory size to sample next and when to stop.

    A strategy keeps no per-session data of its own: everything lives in the
    SearchState it creates, and the state only changes through ``record``.
    Feeding the same ordered measurements through ``record`` always ends in
    the same phase and recommendation.
    """

    def __init__(self, config, analyzer: PerformanceAnalyzer = None):
        """
        Initialize strategy.

        Args:
            config: Tuner configuration
            analyzer: Scorer for the tuning objective
        """
        self.config = config
        self.analyzer = analyzer or PerformanceAnalyzer.from_config(config)
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def initial_candidates(self, state: SearchState) -> List[int]:
        """
        Memory sizes to sample before any measurement is available.

        Args:
            state: Freshly created search state

        Returns:
            Ordered list of sizes on the step grid
        """
        pass

    @abstractmethod
    def explore(self, state: SearchState) -> Optional[int]:
        """
        Next size to sample once the initial candidates are done.

        Args:
            state: Current search state

        Returns:
            An untested size on the step grid, or None when converged
        """
        pass

    def initial_state(self) -> SearchState:
        """Create the state for a new session."""
        state = SearchState(
            min_memory=self.config.min_memory,
            max_memory=self.config.max_memory,
            step=self.config.memory_step,
            objective=self.config.tuning_objective,
        )
        state.pending = self.initial_candidates(state)
        self._advance(state)
        return state

    def next_candidate(self, state: SearchState) -> Optional[int]:
        """The size to sample next, or None when the search is done."""
        if state.done:
            return None
        return state.next_candidate

    def record(self, state: SearchState, memory_size: int, measurement: Measurement) -> SearchState:
        """
        Record a measurement and decide what comes next.

        Args:
            state: Current search state
            memory_size: Size the measurement was taken at
            measurement: Aggregated result for that size

        Returns:
            The updated state
        """
        if measurement.memory_size != memory_size:
            raise ValueError(
                f"Measurement for {measurement.memory_size}MB recorded as {memory_size}MB"
            )

        state.trail.append(measurement)
        state.measurements[memory_size] = measurement

        if self.exceeds_ceiling(measurement):
            if memory_size not in state.excluded:
                self.logger.info(
                    f"{memory_size}MB costs ${measurement.monthly_cost:.2f} per "
                    f"{self.config.invocations_per_month} invocations, above the "
                    f"${self.config.max_price} ceiling"
                )
                state.excluded.append(memory_size)
        elif memory_size in state.excluded:
            state.excluded.remove(memory_size)

        if not state.done:
            self._advance(state)
        return state

    def recommend(self, state: SearchState) -> Optional[int]:
        """Best eligible size in the state."""
        return self.analyzer.select_best(self.eligible(state))

    def exceeds_ceiling(self, measurement: Measurement) -> bool:
        return (
            self.config.max_price is not None
            and measurement.is_usable
            and measurement.monthly_cost > self.config.max_price
        )

    def eligible(self, state: SearchState) -> List[Measurement]:
        """Usable measurements within the price ceiling."""
        return [
            m
            for size, m in sorted(state.measurements.items())
            if m.is_usable and size not in state.excluded
        ]

    def pivot(self, state: SearchState) -> Optional[int]:
        """
        Size the search narrows around.

        The best eligible size when there is one. Otherwise, with a price
        ceiling, the cheapest usable size, since that is the one closest to
        fitting under the ceiling.
        """
        best = self.recommend(state)
        if best is not None:
            return best

        usable = [m for m in state.measurements.values() if m.is_usable]
        if usable and self.config.max_price is not None:
            return min(usable, key=lambda m: (m.monthly_cost, m.memory_size)).memory_size
        return None

    def _advance(self, state: SearchState):
        state.pending = [size for size in state.pending if size not in state.measurements]
        candidate = state.pending[0] if state.pending else self.explore(state)
        state.best = self.recommend(state)

        if candidate is None:
            self._finish(state, SearchPhase.CONVERGED)
        elif len(state.measurements) >= self.config.max_candidates:
            self._finish(
                state,
                SearchPhase.EXHAUSTED,
                f"stopped after {len(state.measurements)} memory sizes",
            )
        else:
            state.phase = SearchPhase.EXPLORING if state.measurements else SearchPhase.INITIALIZING
            state.next_candidate = candidate
            self.logger.debug(f"Next candidate: {candidate}MB (best so far: {state.best})")

    def _finish(self, state: SearchState, phase: SearchPhase, reason: str = None):
        state.next_candidate = None
        state.best = self.recommend(state)

        if state.best is not None:
            state.phase = phase
            state.reason = reason
        elif self.config.max_price is not None and any(
            m.is_usable for m in state.measurements.values()
        ):
            state.phase = SearchPhase.FAILED
            state.reason = (
                f"price ceiling exceeded: no tested memory size costs at most "
                f"${self.config.max_price} per {self.config.invocations_per_month} invocations"
            )
        else:
            state.phase = SearchPhase.FAILED
            state.reason = "every tested memory size was unusable"

        logger.info(f"Search finished: {state.phase.value} (best: {state.best})")
