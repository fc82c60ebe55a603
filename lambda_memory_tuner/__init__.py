"""
Lambda Memory Tuner

Finds the memory size that minimizes cost, latency or a balance of both for
an AWS Lambda function by invoking it at different memory settings.
"""

__version__ = "1.0.0"
__author__ = "Lambda Memory Tuner Contributors"

# Import main components
from .config_module import TunerConfig, ConfigManager
from .cost_model import CostModel, LambdaPricing
from .invoker import LambdaInvoker
from .sampler import Sampler
from .orchestrator import TuningSession, run_tuning_session
from .batch import BatchCoordinator, run_batch
from .analyzers.analyzer import PerformanceAnalyzer
from .providers.aws import AWSLambdaProvider
from .strategies import (
    SearchStrategy,
    BisectionSearchStrategy,
    GridSearchStrategy,
    create_strategy,
)
from .models import (
    FunctionInformation,
    InvocationResult,
    Measurement,
    TuningObjective,
    SearchPhase,
    SearchState,
    TuningResult,
    Recommendation,
    BatchResult,
)
from .exceptions import (
    TunerException,
    ConfigurationError,
    ValidationError,
    AWSPermissionError,
    ReconfigurationError,
    InvocationError,
    ThrottlingError,
    RestoreError,
    TemplateNotFoundError,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Core classes
    "TunerConfig",
    "ConfigManager",
    "CostModel",
    "LambdaPricing",
    "LambdaInvoker",
    "Sampler",
    "TuningSession",
    "BatchCoordinator",
    "PerformanceAnalyzer",
    "AWSLambdaProvider",
    "SearchStrategy",
    "BisectionSearchStrategy",
    "GridSearchStrategy",
    "create_strategy",
    # Data models
    "FunctionInformation",
    "InvocationResult",
    "Measurement",
    "TuningObjective",
    "SearchPhase",
    "SearchState",
    "TuningResult",
    "Recommendation",
    "BatchResult",
    # Exceptions
    "TunerException",
    "ConfigurationError",
    "ValidationError",
    "AWSPermissionError",
    "ReconfigurationError",
    "InvocationError",
    "ThrottlingError",
    "RestoreError",
    "TemplateNotFoundError",
    # Convenience functions
    "run_tuning_session",
    "run_batch",
]
