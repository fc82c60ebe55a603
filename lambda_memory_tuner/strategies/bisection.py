"""Bracketing bisection search over the memory step grid."""

from typing import List, Optional

from ..models import SearchState
from ..utils import snap_to_step
from .base import SearchStrategy


class BisectionSearchStrategy(SearchStrategy):
    """
    Bracketing search in the spirit of ternary search.

    Starts from both range ends and the midpoint. After that it brackets the
    best size so far between its nearest tested neighbours and samples the
    midpoint of the wider half of the bracket (the lower half on a tie).
    The bracket always holds the global best, so one noisy sample cannot
    push the search away from a better size it has already seen. It stops
    once neither half has an untested grid point left.
    """

    def initial_candidates(self, state: SearchState) -> List[int]:
        midpoint = snap_to_step(
            (state.min_memory + state.max_memory) / 2,
            state.step,
            state.min_memory,
            state.max_memory,
        )
        candidates = []
        for size in (state.min_memory, state.max_memory, midpoint):
            if size not in candidates:
                candidates.append(size)
        return candidates

    def explore(self, state: SearchState) -> Optional[int]:
        pivot = self.pivot(state)
        if pivot is None:
            return None

        tested = state.tested
        lower = max((size for size in tested if size < pivot), default=pivot)
        upper = min((size for size in tested if size > pivot), default=pivot)
        state.bracket = (lower, upper)

        gap = None
        for low, high in ((lower, pivot), (pivot, upper)):
            # Both ends sit on the grid, so a wider gap holds an untested size.
            if high - low > state.step and (gap is None or high - low > gap[1] - gap[0]):
                gap = (low, high)

        if gap is None:
            return None

        low, high = gap
        return snap_to_step((low + high) / 2, state.step, low + state.step, high - state.step)
