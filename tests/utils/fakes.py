"""
In-memory invoker used by session and batch tests.
"""

import asyncio
import math
from typing import Callable, Dict, Iterable, List

import numpy as np

from lambda_memory_tuner.exceptions import ReconfigurationError, RestoreError, ValidationError
from lambda_memory_tuner.models import InvocationResult

DIMINISHING_RETURNS = {128: 3000.0, 512: 900.0, 1024: 850.0}
# Steep enough at the low end that 512MB is also the cheapest size.
STEEP_DIMINISHING_RETURNS = {128: 6000.0, 256: 2400.0, 512: 900.0, 1024: 850.0}


def duration_curve(points: Dict[int, float]) -> Callable[[int], float]:
    """Piecewise linear duration in ms as a function of memory size."""
    sizes = sorted(points)
    values = [points[size] for size in sizes]
    return lambda memory_size: float(np.interp(memory_size, sizes, values))


class FakeInvoker:
    """
    Invoker stand-in with deterministic durations.

    Tracks the live memory size of every function, so tests can check that
    each session puts the original size back.
    """

    def __init__(
        self,
        duration: Callable[[int], float] = None,
        original_memory: int = 256,
        failing_functions: Iterable[str] = (),
        failing_sizes: Iterable[int] = (),
        rejected_sizes: Iterable[int] = (),
        missing_functions: Iterable[str] = (),
        restore_fails: bool = False,
        delay: float = 0.0,
    ):
        self.duration = duration or duration_curve(DIMINISHING_RETURNS)
        self.original_memory = original_memory
        self.failing_functions = set(failing_functions)
        self.failing_sizes = set(failing_sizes)
        self.rejected_sizes = set(rejected_sizes)
        self.missing_functions = set(missing_functions)
        self.restore_fails = restore_fails
        self.delay = delay

        self.memory: Dict[str, int] = {}
        self.invocations: List[tuple] = []
        self.payloads: Dict[str, list] = {}
        self.updates: List[tuple] = []
        self.restores: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def current_memory(self, function_id: str) -> int:
        if function_id in self.missing_functions:
            raise ValidationError(f"Function not found: {function_id}")
        return self.memory.setdefault(function_id, self.original_memory)

    async def ensure_memory(self, function_id: str, memory_size: int):
        if await self.current_memory(function_id) == memory_size:
            return
        if memory_size in self.rejected_sizes:
            raise ReconfigurationError(f"{memory_size}MB rejected", memory_size)
        self.updates.append((function_id, memory_size))
        self.memory[function_id] = memory_size

    async def restore_memory(self, function_id: str, memory_size: int):
        if self.restore_fails:
            raise RestoreError(f"could not restore {function_id}", function_id, memory_size)
        self.memory[function_id] = memory_size
        self.restores.append((function_id, memory_size))

    async def invoke(self, function_id: str, memory_size: int, payload) -> InvocationResult:
        await self.ensure_memory(function_id, memory_size)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        self.invocations.append((function_id, memory_size))
        self.payloads.setdefault(function_id, []).append(payload)

        if function_id in self.failing_functions or memory_size in self.failing_sizes:
            return InvocationResult(
                function_id=function_id,
                memory_size=memory_size,
                duration_ms=10.0,
                billed_duration_ms=10.0,
                success=False,
                error_type="RuntimeError",
                error_message="Something went wrong",
            )

        duration = self.duration(memory_size)
        return InvocationResult(
            function_id=function_id,
            memory_size=memory_size,
            duration_ms=duration,
            billed_duration_ms=float(math.ceil(duration)),
            success=True,
        )
