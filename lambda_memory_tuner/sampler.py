"""
Sampler: turns repeated invocations at one memory size into a Measurement.
"""

import asyncio
import logging
from collections import Counter
from typing import Any, Callable, List, Optional

from .cost_model import CostModel
from .models import InvocationResult, Measurement
from .utils import calculate_statistics

logger = logging.getLogger(__name__)


class Sampler:
    """
    Samples a function at a fixed memory size.

    Invocations run sequentially unless ``concurrency`` is above one, in
    which case at most that many run at once. Durations are taken from the
    runtime's REPORT line, so parallel sampling measures execution time
    rather than time spent queueing on the client.
    """

    def __init__(
        self,
        invoker,
        cost_model: CostModel = None,
        invocations_per_month: int = 1_000_000,
        warmup_runs: int = 0,
        concurrency: int = 1,
        on_measurement: Optional[Callable[[Measurement], None]] = None,
    ):
        self.invoker = invoker
        self.cost_model = cost_model or CostModel()
        self.invocations_per_month = invocations_per_month
        self.warmup_runs = warmup_runs
        self.concurrency = concurrency
        self.on_measurement = on_measurement

    @classmethod
    def from_config(cls, invoker, config, on_measurement=None) -> "Sampler":
        return cls(
            invoker,
            cost_model=config.cost_model(),
            invocations_per_month=config.invocations_per_month,
            warmup_runs=config.warmup_runs,
            concurrency=config.sample_concurrency,
            on_measurement=on_measurement,
        )

    async def sample(
        self, function_id: str, memory_size: int, payload: Any, sample_count: int
    ) -> Measurement:
        """Invoke ``sample_count`` times at ``memory_size`` and aggregate."""
        if self.warmup_runs:
            logger.debug(f"Running {self.warmup_runs} warmup invocations at {memory_size}MB")
            await self._run(function_id, memory_size, payload, self.warmup_runs)

        results = await self._run(function_id, memory_size, payload, sample_count)
        measurement = self.aggregate(function_id, memory_size, results)

        logger.info(
            f"{function_id} @ {memory_size}MB: {measurement.success_count}/{measurement.count} "
            f"successful, mean {measurement.mean_duration_ms or 0:.2f}ms"
        )

        if self.on_measurement:
            self.on_measurement(measurement)
        return measurement

    async def _run(
        self, function_id: str, memory_size: int, payload: Any, count: int
    ) -> List[InvocationResult]:
        if self.concurrency <= 1:
            results = []
            for _ in range(count):
                results.append(await self.invoker.invoke(function_id, memory_size, payload))
            return results

        # The first call applies the memory update, the rest reuse it.
        first = await self.invoker.invoke(function_id, memory_size, payload)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded():
            async with semaphore:
                return await self.invoker.invoke(function_id, memory_size, payload)

        rest = await asyncio.gather(*(bounded() for _ in range(count - 1)))
        return [first] + list(rest)

    def aggregate(
        self, function_id: str, memory_size: int, results: List[InvocationResult]
    ) -> Measurement:
        """Build a Measurement from raw invocation results."""
        successes = [r for r in results if r.success]
        failures = [r for r in results if not r.success]
        error_types = dict(Counter(r.error_type or "Unknown" for r in failures))

        if not successes:
            return Measurement(
                function_id=function_id,
                memory_size=memory_size,
                count=len(results),
                success_count=0,
                failure_count=len(failures),
                error_types=error_types,
                unusable_reason="all invocations failed",
                results=tuple(results),
            )

        stats = calculate_statistics([r.duration_ms for r in successes])
        avg_billed = sum(r.billed_duration_ms for r in successes) / len(successes)
        # Mean of per-invocation costs, each billed duration rounded on its own.
        avg_cost = sum(
            self.cost_model.estimate_cost(memory_size, r.billed_duration_ms) for r in successes
        ) / len(successes)

        return Measurement(
            function_id=function_id,
            memory_size=memory_size,
            count=len(results),
            success_count=len(successes),
            failure_count=len(failures),
            mean_duration_ms=stats["mean"],
            p50_duration_ms=stats["median"],
            p95_duration_ms=stats["p95"],
            min_duration_ms=stats["min"],
            max_duration_ms=stats["max"],
            stddev_duration_ms=stats["stddev"],
            avg_billed_duration_ms=avg_billed,
            cost_per_invocation=avg_cost,
            monthly_cost=avg_cost * self.invocations_per_month,
            cold_starts=sum(1 for r in successes if r.cold_start),
            error_types=error_types,
            results=tuple(results),
        )
