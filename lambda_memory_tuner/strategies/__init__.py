"""Search strategies for memory tuning."""

from .base import SearchStrategy
from .bisection import BisectionSearchStrategy
from .grid import GridSearchStrategy

STRATEGIES = {
    "bisection": BisectionSearchStrategy,
    "grid": GridSearchStrategy,
}


def create_strategy(config, analyzer=None) -> SearchStrategy:
    """Instantiate the strategy named in the configuration."""
    return STRATEGIES[config.strategy](config, analyzer)


__all__ = [
    "SearchStrategy",
    "BisectionSearchStrategy",
    "GridSearchStrategy",
    "STRATEGIES",
    "create_strategy",
]
