"""
Configuration management for the Lambda memory tuner.
"""

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import List, Dict, Any, Optional

from .cost_model import CostModel, LambdaPricing, GB_SECOND_PRICES
from .exceptions import ConfigurationError, TemplateNotFoundError
from .models import TuningObjective
from .utils import load_json_file

logger = logging.getLogger(__name__)

# Absolute memory bounds accepted by Lambda.
ABSOLUTE_MIN_MEMORY = 128
ABSOLUTE_MAX_MEMORY = 10240

VALID_STRATEGIES = ["bisection", "grid"]


@dataclass
class TunerConfig:
    """Configuration for Lambda memory tuning operations."""

    # Search space
    min_memory: int = 128
    max_memory: int = 1024
    memory_step: int = 64
    objective: str = "balanced"
    strategy: str = "bisection"
    max_candidates: int = 10
    grid_step: Optional[int] = None
    tie_tolerance: float = 0.02
    cost_weight: float = 0.5

    # Price ceiling, in USD per `invocations_per_month` invocations
    max_price: Optional[float] = None
    invocations_per_month: int = 1_000_000

    # Sampling
    sample_count: int = 10
    warmup_runs: int = 1
    sample_concurrency: int = 1
    concurrency: int = 3

    # Pricing
    architecture: str = "x86_64"
    price_per_gb_second: Optional[float] = None
    price_per_request: Optional[float] = None
    billing_increment_ms: float = 1.0

    # Invoker behaviour
    throttle_retries: int = 3
    backoff_seconds: float = 1.0
    timeout_margin_seconds: float = 5.0
    default_timeout_seconds: int = 900
    update_timeout: float = 120.0
    poll_interval: float = 2.0

    # AWS
    region: Optional[str] = None
    profile: Optional[str] = None

    # Reporting
    output_dir: str = "./tuning-results"
    include_raw_data: bool = False

    def __post_init__(self):
        """Validate configuration once, before any sampling happens."""
        self._validate_memory_range()

        try:
            TuningObjective(self.objective)
        except ValueError:
            raise ConfigurationError(
                f"Invalid objective: {self.objective}. "
                f"Must be one of {[o.value for o in TuningObjective]}"
            )

        if self.strategy not in VALID_STRATEGIES:
            raise ConfigurationError(
                f"Invalid strategy: {self.strategy}. Must be one of {VALID_STRATEGIES}"
            )

        if self.sample_count < 1:
            raise ConfigurationError("sample_count must be at least 1")

        if self.warmup_runs < 0:
            raise ConfigurationError("warmup_runs cannot be negative")

        if self.sample_concurrency < 1:
            raise ConfigurationError("sample_concurrency must be at least 1")

        if self.concurrency < 1:
            raise ConfigurationError("concurrency must be at least 1")

        if self.max_candidates < 1:
            raise ConfigurationError("max_candidates must be at least 1")

        if not 0 <= self.tie_tolerance < 1:
            raise ConfigurationError("tie_tolerance must be in [0, 1)")

        if not 0 <= self.cost_weight <= 1:
            raise ConfigurationError("cost_weight must be in [0, 1]")

        if self.invocations_per_month < 1:
            raise ConfigurationError("invocations_per_month must be at least 1")

        if self.architecture not in GB_SECOND_PRICES:
            raise ConfigurationError(
                f"Invalid architecture: {self.architecture}. "
                f"Must be one of {sorted(GB_SECOND_PRICES)}"
            )

        if self.throttle_retries < 0:
            raise ConfigurationError("throttle_retries cannot be negative")

        if self.backoff_seconds < 0 or self.poll_interval < 0:
            raise ConfigurationError("backoff_seconds and poll_interval cannot be negative")

        if self.update_timeout <= 0:
            raise ConfigurationError("update_timeout must be positive")

        try:
            pricing = self.pricing()
        except ValueError as e:
            raise ConfigurationError(f"Invalid pricing: {e}")

        if self.max_price is not None:
            if self.max_price <= 0:
                raise ConfigurationError("max_price must be positive")
            floor = CostModel(pricing).request_floor(self.invocations_per_month)
            if self.max_price < floor:
                raise ConfigurationError(
                    f"max_price ${self.max_price} is unreachable: request charges alone "
                    f"cost ${floor:.2f} per {self.invocations_per_month} invocations"
                )

    def _validate_memory_range(self):
        if self.memory_step < 1:
            raise ConfigurationError("memory_step must be at least 1")

        for name in ("min_memory", "max_memory"):
            value = getattr(self, name)
            if not (ABSOLUTE_MIN_MEMORY <= value <= ABSOLUTE_MAX_MEMORY):
                raise ConfigurationError(
                    f"Invalid {name}: {value}. Must be between "
                    f"{ABSOLUTE_MIN_MEMORY} and {ABSOLUTE_MAX_MEMORY} MB"
                )
            if value % self.memory_step != 0:
                raise ConfigurationError(
                    f"Invalid {name}: {value}. Must be a multiple of {self.memory_step} MB"
                )

        if self.min_memory > self.max_memory:
            raise ConfigurationError(
                f"min_memory ({self.min_memory}) cannot exceed max_memory ({self.max_memory})"
            )

        if self.grid_step is not None and (
            self.grid_step < self.memory_step or self.grid_step % self.memory_step != 0
        ):
            raise ConfigurationError(
                f"grid_step must be a multiple of memory_step ({self.memory_step} MB)"
            )

    @property
    def tuning_objective(self) -> TuningObjective:
        return TuningObjective(self.objective)

    def pricing(self) -> LambdaPricing:
        """Pricing constants for the configured architecture and overrides."""
        return LambdaPricing.for_architecture(
            self.architecture,
            price_per_gb_second=self.price_per_gb_second,
            price_per_request=self.price_per_request,
            billing_increment_ms=self.billing_increment_ms,
        )

    def cost_model(self) -> CostModel:
        return CostModel(self.pricing())

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TunerConfig":
        """Create configuration from dictionary."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_file(cls, filepath: str) -> "TunerConfig":
        """Load configuration from file."""
        data = load_json_file(filepath)
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain an object: {filepath}")
        return cls.from_dict(data)

    def save(self, filepath: str):
        """Save configuration to file."""
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)


TEMPLATES: Dict[str, Dict[str, Any]] = {
    "cost": {
        "min_memory": 128,
        "max_memory": 1024,
        "objective": "cost",
        "sample_count": 10,
    },
    "speed": {
        "min_memory": 512,
        "max_memory": 3008,
        "objective": "speed",
        "sample_count": 10,
    },
    "balanced": {
        "min_memory": 128,
        "max_memory": 2048,
        "objective": "balanced",
        "sample_count": 10,
    },
    "quick": {
        "min_memory": 128,
        "max_memory": 1024,
        "objective": "balanced",
        "sample_count": 3,
        "warmup_runs": 0,
        "max_candidates": 5,
    },
}

TEMPLATE_DESCRIPTIONS = {
    "cost": "Cheapest memory size between 128MB and 1GB",
    "speed": "Fastest memory size between 512MB and ~3GB",
    "balanced": "Equal weight on cost and duration up to 2GB",
    "quick": "Few samples and candidates for a fast first look",
}


class ConfigManager:
    """Manages configuration templates and validation warnings."""

    def __init__(self):
        self._templates = {name: dict(data) for name, data in TEMPLATES.items()}

    def list_templates(self) -> Dict[str, str]:
        return dict(TEMPLATE_DESCRIPTIONS)

    def load_template(self, template_name: str) -> Dict[str, Any]:
        """Load a configuration template."""
        if template_name not in self._templates:
            raise TemplateNotFoundError(f"Template not found: {template_name}")
        return self._templates[template_name].copy()

    def create_from_template(self, template_name: str, **overrides) -> TunerConfig:
        """Create configuration from template with overrides."""
        template_data = self.load_template(template_name)

        for key, value in overrides.items():
            if value is not None:
                template_data[key] = value

        return TunerConfig.from_dict(template_data)

    def merge_configs(
        self, base_config: TunerConfig, override_config: Dict[str, Any]
    ) -> TunerConfig:
        """Merge configuration with overrides."""
        base_dict = base_config.to_dict()

        for key, value in override_config.items():
            if value is not None:
                base_dict[key] = value

        return TunerConfig.from_dict(base_dict)

    def validate_config(self, config: TunerConfig) -> List[str]:
        """Validate configuration and return list of warnings."""
        warnings = []

        if config.objective == "speed" and config.min_memory < 512:
            warnings.append(
                "Using small memory sizes with the 'speed' objective may waste invocations"
            )

        if config.objective == "cost" and config.max_memory > 2048:
            warnings.append("Using large memory sizes with the 'cost' objective increases tuning cost")

        if config.sample_count < 5:
            warnings.append("Low sample count may produce unreliable results")
        elif config.sample_count > 100:
            warnings.append("High sample count will significantly increase tuning time and cost")

        if config.sample_concurrency > 1:
            warnings.append(
                "Parallel sampling runs concurrent executions; durations may include contention"
            )

        if config.concurrency > 10:
            warnings.append("High session concurrency may hit Lambda API rate limits")

        grid_size = (config.max_memory - config.min_memory) // config.memory_step + 1
        if config.strategy == "grid" and grid_size > 20 and config.grid_step is None:
            warnings.append(
                f"Grid strategy will test up to {grid_size} memory sizes; consider grid_step"
            )

        if config.max_candidates < 3 and config.min_memory != config.max_memory:
            warnings.append("max_candidates below 3 stops before the initial probes finish")

        return warnings
