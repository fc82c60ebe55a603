"""
Orchestrator module for the Lambda memory tuner.
Drives one function's tuning run from first candidate to restoration.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from .config_module import TunerConfig
from .exceptions import ReconfigurationError, RestoreError, ValidationError
from .invoker import LambdaInvoker
from .models import FunctionInformation, Measurement, SearchPhase, TuningResult
from .providers.aws import AWSLambdaProvider
from .sampler import Sampler
from .strategies import SearchStrategy, create_strategy
from .utils import validate_function_identifier

logger = logging.getLogger(__name__)


class TuningSession:
    """Tunes one function: search, sample, record, restore."""

    def __init__(
        self,
        function: Union[FunctionInformation, str],
        payload: Any,
        config: TunerConfig,
        invoker: LambdaInvoker,
        strategy: Optional[SearchStrategy] = None,
        sampler: Optional[Sampler] = None,
        on_measurement: Optional[Callable[[Measurement], None]] = None,
    ):
        """
        Initialize the session.

        Args:
            function: Function to tune, as catalog information or identifier
            payload: Test event passed unchanged to every invocation
            config: Tuner configuration
            invoker: Invoker bound to the function's provider
            strategy: Search strategy, defaults to the configured one
            sampler: Sampler, defaults to one built from the configuration
            on_measurement: Called with every Measurement as it is taken
        """
        if isinstance(function, str):
            function_id, original_memory = function, None
        else:
            function_id, original_memory = function.identifier, function.current_memory_size

        if not validate_function_identifier(function_id):
            raise ValidationError(f"Invalid Lambda function identifier: {function_id}")

        self.function_id = function_id
        self.payload = payload
        self.config = config
        self.invoker = invoker
        self.strategy = strategy or create_strategy(config)
        self.sampler = sampler or Sampler.from_config(invoker, config, on_measurement)
        self.original_memory = original_memory
        self.state = None
        self.restore_error: Optional[RestoreError] = None

    async def run(self) -> TuningResult:
        """
        Run the complete tuning session.

        The original memory size is restored on every exit path, including
        errors and cancellation.

        Returns:
            TuningResult with the recommendation and every measurement taken
        """
        started_at = datetime.now(timezone.utc)
        start_time = time.time()

        if self.original_memory is None:
            self.original_memory = await self.invoker.current_memory(self.function_id)

        logger.info(
            f"Starting tuning for {self.function_id} "
            f"({self.config.min_memory}-{self.config.max_memory}MB, "
            f"objective={self.config.objective}, original={self.original_memory}MB)"
        )

        self.state = self.strategy.initial_state()

        try:
            await self._search()
        except BaseException as e:
            restore_error = await asyncio.shield(self._restore())
            if restore_error is not None and not isinstance(e, asyncio.CancelledError):
                raise restore_error from e
            raise
        restore_error = await asyncio.shield(self._restore())

        state = self.state
        best = state.best if state.phase != SearchPhase.FAILED else None
        duration = time.time() - start_time

        logger.info(
            f"Tuning of {self.function_id} finished in {duration:.2f}s: "
            f"{state.phase.value}, recommended {best}MB"
        )

        return TuningResult(
            function_id=self.function_id,
            objective=state.objective,
            phase=state.phase,
            recommended_memory=best,
            recommendation=state.measurements.get(best) if best is not None else None,
            measurements=tuple(state.trail),
            original_memory=self.original_memory,
            reason=state.reason,
            restore_error=restore_error,
            started_at=started_at,
            duration_seconds=duration,
        )

    async def _search(self):
        while True:
            candidate = self.strategy.next_candidate(self.state)
            if candidate is None:
                break

            logger.info(f"Testing {self.function_id} at {candidate}MB")
            try:
                measurement = await self.sampler.sample(
                    self.function_id, candidate, self.payload, self.config.sample_count
                )
            except ReconfigurationError as e:
                logger.warning(f"{candidate}MB is unusable for {self.function_id}: {e}")
                measurement = Measurement.unusable(
                    self.function_id, candidate, f"reconfiguration failed: {e}"
                )
                if self.sampler.on_measurement:
                    self.sampler.on_measurement(measurement)

            self.strategy.record(self.state, candidate, measurement)

    async def _restore(self) -> Optional[RestoreError]:
        try:
            await self.invoker.restore_memory(self.function_id, self.original_memory)
        except RestoreError as e:
            # Kept on the session too, so it survives a cancelled run().
            self.restore_error = e
            logger.error(f"Failed to restore {self.function_id}: {e}")
            return e
        logger.info(f"Restored {self.function_id} to {self.original_memory}MB")
        return None


async def run_tuning_session(
    function: Union[FunctionInformation, str],
    config: TunerConfig,
    payload: Any = None,
    provider: Optional[AWSLambdaProvider] = None,
    on_measurement: Optional[Callable[[Measurement], None]] = None,
) -> TuningResult:
    """Run a complete tuning session with the default AWS stack."""
    provider = provider or AWSLambdaProvider.from_config(config)
    invoker = LambdaInvoker.from_config(provider, config)
    session = TuningSession(
        function, payload or {}, config, invoker, on_measurement=on_measurement
    )
    return await session.run()
