"""
Invoker: runs one measured invocation at a given memory size.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from .exceptions import InvocationError, ReconfigurationError, RestoreError, ThrottlingError
from .models import FunctionInformation, InvocationResult
from .utils import retry_with_backoff, extract_function_name

logger = logging.getLogger(__name__)


class LambdaInvoker:
    """
    Invokes a function at a requested memory size.

    The invoker owns the reconfiguration step: before an invocation it makes
    sure the function runs with the requested memory, waiting for the update
    to be applied. It remembers the configured size and timeout per function
    so repeated invocations at the same size do not touch the configuration.
    """

    def __init__(
        self,
        provider,
        throttle_retries: int = 3,
        backoff_seconds: float = 1.0,
        timeout_margin_seconds: float = 5.0,
        default_timeout_seconds: int = 900,
    ):
        self.provider = provider
        self.throttle_retries = throttle_retries
        self.backoff_seconds = backoff_seconds
        self.timeout_margin_seconds = timeout_margin_seconds
        self.default_timeout_seconds = default_timeout_seconds
        self._memory: Dict[str, int] = {}
        self._timeouts: Dict[str, float] = {}
        self._invoke = retry_with_backoff(
            retries=throttle_retries,
            backoff_in_seconds=backoff_seconds,
            exceptions=(ThrottlingError,),
        )(self.provider.invoke_function)

    @classmethod
    def from_config(cls, provider, config) -> "LambdaInvoker":
        return cls(
            provider,
            throttle_retries=config.throttle_retries,
            backoff_seconds=config.backoff_seconds,
            timeout_margin_seconds=config.timeout_margin_seconds,
            default_timeout_seconds=config.default_timeout_seconds,
        )

    async def _load(self, function_id: str):
        config = await self.provider.get_function_configuration(function_id)
        self._memory[function_id] = config["MemorySize"]
        timeout = config.get("Timeout")
        self._timeouts[function_id] = float(
            timeout if timeout is not None else self.default_timeout_seconds
        )

    def remember(self, info: FunctionInformation):
        """Seed the cache from catalog information read elsewhere."""
        self._memory[info.identifier] = info.current_memory_size
        if info.timeout is not None:
            self._timeouts[info.identifier] = float(info.timeout)

    async def current_memory(self, function_id: str) -> int:
        """The memory size the function is configured with right now."""
        if function_id not in self._memory:
            await self._load(function_id)
        return self._memory[function_id]

    async def invocation_timeout(self, function_id: str) -> float:
        if function_id not in self._timeouts:
            await self._load(function_id)
        return self._timeouts[function_id] + self.timeout_margin_seconds

    async def ensure_memory(self, function_id: str, memory_size: int):
        """Reconfigure the function if it is not already at ``memory_size``."""
        if await self.current_memory(function_id) == memory_size:
            return

        # Unknown until the update is confirmed.
        self._memory.pop(function_id, None)
        try:
            await self.provider.update_function_memory(function_id, memory_size)
        except asyncio.TimeoutError:
            raise ReconfigurationError(f"Timed out updating memory to {memory_size}MB", memory_size)
        self._memory[function_id] = memory_size

    async def restore_memory(self, function_id: str, memory_size: int):
        """
        Put the original memory size back and confirm it.

        Any failure other than cancellation is raised as RestoreError, chained
        to the underlying error.
        """
        try:
            await self.ensure_memory(function_id, memory_size)
            self._memory.pop(function_id, None)
            actual = await self.current_memory(function_id)
        except Exception as e:
            raise RestoreError(
                f"Failed to restore {extract_function_name(function_id)} to {memory_size}MB: {e}",
                function_id,
                memory_size,
            ) from e
        if actual != memory_size:
            raise RestoreError(
                f"{extract_function_name(function_id)} reports {actual}MB after restoring "
                f"{memory_size}MB",
                function_id,
                memory_size,
            )

    async def invoke(self, function_id: str, memory_size: int, payload: Any) -> InvocationResult:
        """
        Invoke the function once at ``memory_size``.

        Raises ReconfigurationError when the size cannot be applied. Function
        errors, exhausted throttling retries and timeouts come back as failed
        results.
        """
        await self.ensure_memory(function_id, memory_size)
        timeout = await self.invocation_timeout(function_id)

        try:
            raw = await asyncio.wait_for(self._invoke(function_id, payload), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Invocation of {function_id} exceeded {timeout:.0f}s")
            return self._failed(
                function_id, memory_size, "Timeout", f"Exceeded {timeout:.0f}s", timeout * 1000
            )
        except ThrottlingError as e:
            logger.warning(f"Invocation of {function_id} still throttled after retries: {e}")
            return self._failed(function_id, memory_size, "ThrottlingError", str(e))
        except InvocationError as e:
            return self._failed(function_id, memory_size, "InvocationError", str(e))

        return self._to_result(function_id, memory_size, raw)

    @staticmethod
    def _failed(
        function_id: str,
        memory_size: int,
        error_type: str,
        message: str,
        duration_ms: float = 0.0,
    ) -> InvocationResult:
        return InvocationResult(
            function_id=function_id,
            memory_size=memory_size,
            duration_ms=duration_ms,
            billed_duration_ms=duration_ms,
            success=False,
            error_type=error_type,
            error_message=message,
        )

    @staticmethod
    def _to_result(function_id: str, memory_size: int, raw: Dict[str, Any]) -> InvocationResult:
        # Prefer the runtime's own REPORT numbers over wall clock.
        duration = raw.get("actual_duration")
        if duration is None:
            duration = raw["duration"]
        billed = raw.get("billed_duration")
        if billed is None:
            billed = duration

        reported_memory = raw.get("memory_size")
        if reported_memory is not None and reported_memory != memory_size:
            logger.warning(
                f"{function_id} reported {reported_memory}MB while {memory_size}MB was expected"
            )

        extra = {"timestamp": raw["timestamp"]} if raw.get("timestamp") else {}

        return InvocationResult(
            function_id=function_id,
            memory_size=memory_size,
            duration_ms=float(duration),
            billed_duration_ms=float(billed),
            success=not raw.get("error", False),
            error_type=raw.get("error_type"),
            error_message=raw.get("error_message"),
            cold_start=bool(raw.get("cold_start", False)),
            init_duration_ms=raw.get("init_duration"),
            max_memory_used_mb=raw.get("memory_used"),
            **extra,
        )
