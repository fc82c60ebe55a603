"""
Batch coordinator: tunes several functions concurrently.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .config_module import TunerConfig
from .invoker import LambdaInvoker
from .models import BatchResult, FunctionInformation, Measurement, TuningResult
from .orchestrator import TuningSession
from .providers.aws import AWSLambdaProvider
from .strategies import create_strategy
from .utils import extract_function_name

logger = logging.getLogger(__name__)

FunctionRef = Union[FunctionInformation, str]
PayloadSource = Union[Callable[[FunctionRef], Any], Mapping[str, Any], None]


def _identifier(function: FunctionRef) -> str:
    return function if isinstance(function, str) else function.identifier


class BatchCoordinator:
    """
    Runs one tuning session per function with bounded concurrency.

    A failing session never cancels the others; each function ends up in
    either ``BatchResult.results`` or ``BatchResult.errors``.
    """

    def __init__(
        self,
        config: TunerConfig,
        invoker: Optional[LambdaInvoker] = None,
        provider: Optional[AWSLambdaProvider] = None,
        on_measurement: Optional[Callable[[Measurement], None]] = None,
    ):
        self.config = config
        if invoker is None:
            provider = provider or AWSLambdaProvider.from_config(config)
            invoker = LambdaInvoker.from_config(provider, config)
        self.invoker = invoker
        self.on_measurement = on_measurement
        self._tasks: Dict[str, asyncio.Task] = {}
        self._sessions: Dict[str, TuningSession] = {}

    def _deduplicate(self, functions: Sequence[FunctionRef]) -> List[FunctionRef]:
        """One entry per function, so no two sessions share a live configuration."""
        seen = set()
        unique = []
        for function in functions:
            name = extract_function_name(_identifier(function))
            if name in seen:
                logger.warning(f"Skipping duplicate function in batch: {_identifier(function)}")
                continue
            seen.add(name)
            unique.append(function)
        return unique

    @staticmethod
    def _payload_for(function: FunctionRef, payloads: PayloadSource) -> Any:
        if payloads is None:
            return {}
        if callable(payloads):
            return payloads(function)

        identifier = _identifier(function)
        if identifier in payloads:
            return payloads[identifier]
        return payloads.get(extract_function_name(identifier), {})

    async def _tune(self, function: FunctionRef, payload: Any, semaphore: asyncio.Semaphore):
        async with semaphore:
            session = TuningSession(
                function,
                payload,
                self.config,
                self.invoker,
                strategy=create_strategy(self.config),
                on_measurement=self.on_measurement,
            )
            self._sessions[_identifier(function)] = session
            return await session.run()

    async def run(
        self, functions: Sequence[FunctionRef], payloads: PayloadSource = None
    ) -> BatchResult:
        """
        Tune every function and collect the result or error of each.

        Args:
            functions: Catalog entries or identifiers to tune
            payloads: Callable or mapping supplying each function's test event

        Returns:
            BatchResult keyed by function identifier
        """
        unique = self._deduplicate(functions)
        semaphore = asyncio.Semaphore(self.config.concurrency)
        self._sessions = {}

        logger.info(
            f"Tuning {len(unique)} function(s) with up to {self.config.concurrency} at a time"
        )

        self._tasks = {
            _identifier(function): asyncio.ensure_future(
                self._tune(function, self._payload_for(function, payloads), semaphore)
            )
            for function in unique
        }

        try:
            outcomes = await asyncio.gather(*self._tasks.values(), return_exceptions=True)
        finally:
            tasks, self._tasks = self._tasks, {}

        batch = BatchResult()
        for function_id, outcome in zip(tasks, outcomes):
            if isinstance(outcome, TuningResult):
                batch.results[function_id] = outcome
            else:
                logger.error(f"Tuning failed for {function_id}: {outcome!r}")
                batch.errors[function_id] = outcome
                session = self._sessions.get(function_id)
                if session is not None and session.restore_error is not None:
                    batch.unrestored[function_id] = session.restore_error

        for function_id, error in batch.restore_failures.items():
            logger.error(f"{function_id} was NOT restored to its original memory: {error}")

        return batch

    def cancel(self, function_id: Optional[str] = None):
        """Cancel one running session, or all of them."""
        for identifier, task in self._tasks.items():
            if function_id is None or identifier == function_id:
                task.cancel()


async def run_batch(
    functions: Sequence[FunctionRef],
    config: TunerConfig,
    payloads: PayloadSource = None,
    provider: Optional[AWSLambdaProvider] = None,
    on_measurement: Optional[Callable[[Measurement], None]] = None,
) -> BatchResult:
    """Tune several functions with the default AWS stack."""
    coordinator = BatchCoordinator(config, provider=provider, on_measurement=on_measurement)
    return await coordinator.run(functions, payloads)
