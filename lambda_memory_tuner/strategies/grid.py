"""Exhaustive grid search."""

from typing import List, Optional

from ..models import SearchState
from ..utils import memory_grid
from .base import SearchStrategy


class GridSearchStrategy(SearchStrategy):
    """Samples every size on the grid in ascending order."""

    def initial_candidates(self, state: SearchState) -> List[int]:
        step = self.config.grid_step or state.step
        sizes = memory_grid(state.min_memory, state.max_memory, step)
        if sizes[-1] != state.max_memory:
            sizes.append(state.max_memory)
        return sizes

    def explore(self, state: SearchState) -> Optional[int]:
        return None
