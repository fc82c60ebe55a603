"""Data models for the Lambda memory tuner."""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any, Tuple

from .exceptions import RestoreError


class TuningObjective(Enum):
    """Scalar goal the search optimizes toward."""

    COST = "cost"
    SPEED = "speed"
    BALANCED = "balanced"


class SearchPhase(Enum):
    """Lifecycle of a search."""

    INITIALIZING = "initializing"
    EXPLORING = "exploring"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SearchPhase.CONVERGED, SearchPhase.EXHAUSTED, SearchPhase.FAILED)


@dataclass
class FunctionInformation:
    """What the function catalog knows about a Lambda function."""

    identifier: str
    current_memory_size: int
    runtime: str = "unknown"
    state: str = "Unknown"
    timeout: Optional[int] = None
    description: Optional[str] = None

    @property
    def function_name(self) -> str:
        # arn:aws:lambda:region:account:function:name[:qualifier]
        if self.identifier.startswith("arn:"):
            return self.identifier.split(":")[6]
        return self.identifier


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of a single invocation."""

    function_id: str
    memory_size: int
    duration_ms: float
    billed_duration_ms: float
    success: bool
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    cold_start: bool = False
    init_duration_ms: Optional[float] = None
    max_memory_used_mb: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Measurement:
    """Aggregated invocations for one (function, memory size) pair."""

    function_id: str
    memory_size: int
    count: int
    success_count: int
    failure_count: int
    mean_duration_ms: Optional[float] = None
    p50_duration_ms: Optional[float] = None
    p95_duration_ms: Optional[float] = None
    min_duration_ms: Optional[float] = None
    max_duration_ms: Optional[float] = None
    stddev_duration_ms: Optional[float] = None
    avg_billed_duration_ms: Optional[float] = None
    cost_per_invocation: Optional[float] = None
    monthly_cost: Optional[float] = None
    cold_starts: int = 0
    error_types: Dict[str, int] = field(default_factory=dict)
    unusable_reason: Optional[str] = None
    results: Tuple[InvocationResult, ...] = ()

    @property
    def is_usable(self) -> bool:
        return self.success_count > 0 and self.cost_per_invocation is not None

    @property
    def error_rate(self) -> float:
        if self.count == 0:
            return 1.0
        return self.failure_count / self.count

    @classmethod
    def unusable(cls, function_id: str, memory_size: int, reason: str) -> "Measurement":
        """A measurement for a size that could not be sampled at all."""
        return cls(
            function_id=function_id,
            memory_size=memory_size,
            count=0,
            success_count=0,
            failure_count=0,
            unusable_reason=reason,
        )

    def to_dict(self, include_raw: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("results")
        if include_raw:
            data["results"] = [asdict(r) for r in self.results]
        return data


@dataclass
class SearchState:
    """Per-session state owned by a search strategy."""

    min_memory: int
    max_memory: int
    step: int
    objective: TuningObjective
    phase: SearchPhase = SearchPhase.INITIALIZING
    pending: List[int] = field(default_factory=list)
    measurements: Dict[int, Measurement] = field(default_factory=dict)
    trail: List[Measurement] = field(default_factory=list)
    excluded: List[int] = field(default_factory=list)
    bracket: Optional[Tuple[int, int]] = None
    best: Optional[int] = None
    next_candidate: Optional[int] = None
    reason: Optional[str] = None

    @property
    def tested(self) -> List[int]:
        return sorted(self.measurements)

    @property
    def done(self) -> bool:
        return self.phase.is_terminal


@dataclass
class Recommendation:
    """Recommended size compared with the function's original size."""

    objective: str
    current_memory_size: int
    optimal_memory_size: Optional[int]
    should_optimize: bool
    cost_change_percent: float = 0.0
    duration_change_percent: float = 0.0
    reasoning: str = ""
    estimated_monthly_savings: float = 0.0


@dataclass(frozen=True)
class TuningResult:
    """Complete tuning session results."""

    function_id: str
    objective: TuningObjective
    phase: SearchPhase
    recommended_memory: Optional[int]
    recommendation: Optional[Measurement]
    measurements: Tuple[Measurement, ...]
    original_memory: int
    reason: Optional[str] = None
    restore_error: Optional[RestoreError] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.phase != SearchPhase.FAILED and self.recommended_memory is not None

    @property
    def restored(self) -> bool:
        return self.restore_error is None

    def to_dict(self, include_raw: bool = False) -> Dict[str, Any]:
        return {
            "function_id": self.function_id,
            "objective": self.objective.value,
            "phase": self.phase.value,
            "recommended_memory": self.recommended_memory,
            "recommendation": (
                self.recommendation.to_dict(include_raw) if self.recommendation else None
            ),
            "measurements": [m.to_dict(include_raw) for m in self.measurements],
            "original_memory": self.original_memory,
            "reason": self.reason,
            "restore_error": str(self.restore_error) if self.restore_error else None,
            "started_at": self.started_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class BatchResult:
    """Per-function results and errors of a batch run."""

    results: Dict[str, TuningResult] = field(default_factory=dict)
    errors: Dict[str, BaseException] = field(default_factory=dict)
    # Restore errors of sessions that ended without a result, e.g. cancelled ones
    unrestored: Dict[str, RestoreError] = field(default_factory=dict)

    @property
    def restore_failures(self) -> Dict[str, RestoreError]:
        failures = {
            fid: result.restore_error
            for fid, result in self.results.items()
            if result.restore_error is not None
        }
        for fid, error in self.errors.items():
            if isinstance(error, RestoreError):
                failures[fid] = error
        failures.update(
            (fid, error) for fid, error in self.unrestored.items() if fid not in failures
        )
        return failures

    @property
    def succeeded(self) -> List[str]:
        return [fid for fid, result in self.results.items() if result.succeeded]
