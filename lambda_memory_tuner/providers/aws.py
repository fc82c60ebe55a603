"""AWS Lambda provider for function tuning."""

import asyncio
import base64
import functools
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, BotoCoreError

from ..exceptions import (
    AWSPermissionError,
    InvocationError,
    ReconfigurationError,
    ThrottlingError,
    ValidationError,
)
from ..models import FunctionInformation
from ..utils import encode_payload, decode_response, extract_function_name

logger = logging.getLogger(__name__)

THROTTLING_CODES = {"TooManyRequestsException", "EC2ThrottledException", "ThrottlingException"}


class AWSLambdaProvider:
    """AWS Lambda provider for function tuning operations."""

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        client=None,
        poll_interval: float = 2.0,
        update_timeout: float = 120.0,
        read_timeout: float = 905.0,
    ):
        self.region = region
        self.profile = profile
        self.poll_interval = poll_interval
        self.update_timeout = update_timeout
        self.read_timeout = read_timeout
        self.lambda_client = client or self._create_lambda_client()

    @classmethod
    def from_config(cls, config, client=None) -> "AWSLambdaProvider":
        return cls(
            region=config.region,
            profile=config.profile,
            client=client,
            poll_interval=config.poll_interval,
            update_timeout=config.update_timeout,
            read_timeout=config.default_timeout_seconds + config.timeout_margin_seconds,
        )

    def _create_lambda_client(self):
        """Create AWS Lambda client."""
        try:
            session_config = {}
            if self.profile:
                session_config["profile_name"] = self.profile

            session = boto3.Session(**session_config)

            # Must outlast the slowest invocation; retries happen in the invoker.
            client_config = {
                "config": Config(
                    read_timeout=self.read_timeout,
                    connect_timeout=10,
                    retries={"max_attempts": 0},
                )
            }
            if self.region:
                client_config["region_name"] = self.region

            return session.client("lambda", **client_config)

        except BotoCoreError as e:
            logger.error(f"Failed to create Lambda client: {e}")
            raise AWSPermissionError(f"Failed to create Lambda client: {e}")

    async def _call(self, method, **kwargs):
        """Run a blocking boto3 call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(method, **kwargs))

    @staticmethod
    def _error_code(error: ClientError) -> str:
        return error.response.get("Error", {}).get("Code", "Unknown")

    async def list_functions(self) -> List[FunctionInformation]:
        """List every function in the region."""
        functions = []
        marker = None

        try:
            while True:
                kwargs = {"Marker": marker} if marker else {}
                response = await self._call(self.lambda_client.list_functions, **kwargs)
                for func in response.get("Functions", []):
                    functions.append(self._to_function_information(func))
                marker = response.get("NextMarker")
                if not marker:
                    break
        except ClientError as e:
            if self._error_code(e) == "AccessDeniedException":
                raise AWSPermissionError(f"Permission denied to list functions: {e}")
            raise

        logger.info(f"Found {len(functions)} Lambda functions")
        return functions

    async def get_function_configuration(self, function_id: str) -> Dict[str, Any]:
        """Get current function configuration."""
        try:
            return await self._call(
                self.lambda_client.get_function_configuration,
                FunctionName=function_id,
            )
        except ClientError as e:
            code = self._error_code(e)
            if code == "ResourceNotFoundException":
                raise ValidationError(f"Function not found: {function_id}")
            elif code == "AccessDeniedException":
                raise AWSPermissionError(f"Permission denied: {e}")
            raise

    async def get_function_information(self, function_id: str) -> FunctionInformation:
        config = await self.get_function_configuration(function_id)
        info = self._to_function_information(config)
        info.identifier = function_id
        return info

    @staticmethod
    def _to_function_information(config: Dict[str, Any]) -> FunctionInformation:
        return FunctionInformation(
            identifier=config.get("FunctionArn") or config["FunctionName"],
            current_memory_size=config["MemorySize"],
            runtime=config.get("Runtime", "unknown"),
            state=config.get("State", "Unknown"),
            timeout=config.get("Timeout"),
            description=config.get("Description"),
        )

    async def update_function_memory(self, function_id: str, memory_size: int) -> Dict[str, Any]:
        """Update function memory configuration and wait until it is applied."""
        logger.info(f"Updating {extract_function_name(function_id)} memory to {memory_size}MB")

        try:
            response = await self._call(
                self.lambda_client.update_function_configuration,
                FunctionName=function_id,
                MemorySize=memory_size,
            )
        except ClientError as e:
            code = self._error_code(e)
            if code == "AccessDeniedException":
                raise AWSPermissionError(f"Permission denied to update function: {e}")
            raise ReconfigurationError(
                f"Failed to update function memory to {memory_size}MB: {e}", memory_size
            )
        except BotoCoreError as e:
            raise ReconfigurationError(
                f"Failed to update function memory to {memory_size}MB: {e}", memory_size
            )

        config = await self._wait_for_function_update(function_id, memory_size)
        return config or response

    async def _wait_for_function_update(self, function_id: str, memory_size: int):
        """Poll until the update is applied and the function is active again."""
        start_time = time.monotonic()

        while True:
            try:
                config = await self.get_function_configuration(function_id)
            except (ClientError, BotoCoreError) as e:
                raise ReconfigurationError(
                    f"Could not confirm memory update to {memory_size}MB: {e}", memory_size
                )

            status = config.get("LastUpdateStatus", "Successful")
            state = config.get("State", "Active")

            if status == "Failed" or state == "Failed":
                raise ReconfigurationError(
                    f"Function update failed: "
                    f"{config.get('LastUpdateStatusReason', 'Unknown')}",
                    memory_size,
                )
            if (
                status == "Successful"
                and state == "Active"
                and config.get("MemorySize") == memory_size
            ):
                return config

            if time.monotonic() - start_time >= self.update_timeout:
                raise ReconfigurationError(
                    f"Timed out after {self.update_timeout}s waiting for "
                    f"{memory_size}MB update (status={status}, state={state})",
                    memory_size,
                )

            logger.debug(f"Waiting for function update... Status: {status}, State: {state}")
            await asyncio.sleep(self.poll_interval)

    async def invoke_function(self, function_id: str, payload: Any) -> Dict[str, Any]:
        """Invoke the Lambda function and collect execution telemetry."""
        encoded = encode_payload(payload)
        start_time = time.perf_counter()

        try:
            response = await self._call(
                self.lambda_client.invoke,
                FunctionName=function_id,
                InvocationType="RequestResponse",
                LogType="Tail",
                Payload=encoded,
            )
        except ClientError as e:
            code = self._error_code(e)
            if code in THROTTLING_CODES:
                raise ThrottlingError(f"Invocation throttled: {code}")
            elif code == "AccessDeniedException":
                raise AWSPermissionError("Permission denied to invoke function")
            raise InvocationError(f"Lambda invocation failed: {e}")
        except BotoCoreError as e:
            logger.warning(f"Invocation of {function_id} failed in transport: {e}")
            raise InvocationError(f"Lambda invocation failed: {e}")

        duration = (time.perf_counter() - start_time) * 1000

        result = {
            "duration": duration,
            "billed_duration": None,
            "status_code": response.get("StatusCode"),
            "timestamp": datetime.now(timezone.utc),
            "cold_start": False,
            "init_duration": None,
            "memory_size": None,
            "memory_used": None,
        }

        if "LogResult" in response:
            result.update(self._parse_log_result(response["LogResult"]))

        if response.get("FunctionError"):
            result["error"] = True
            result["error_type"] = response["FunctionError"]
            body = decode_response(response["Payload"]) if "Payload" in response else None
            if isinstance(body, dict):
                result["error_type"] = body.get("errorType", response["FunctionError"])
                result["error_message"] = body.get("errorMessage")
            logger.debug(f"Function error: {result['error_type']}")
        else:
            result["error"] = False

        return result

    def _parse_log_result(self, log_result: str) -> Dict[str, Any]:
        """Parse the base64 log tail returned with the invocation."""
        try:
            log_data = base64.b64decode(log_result).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to decode log result: {e}")
            return {}

        result = {}
        for line in log_data.strip().split("\n"):
            if line.startswith("REPORT"):
                result.update(self._parse_report_line(line))

        return result

    def _parse_report_line(self, report_line: str) -> Dict[str, Any]:
        """Parse Lambda REPORT log line."""
        result = {}

        # REPORT RequestId: 1234	Duration: 1234.56 ms	Billed Duration: 1235 ms
        # Memory Size: 512 MB	Max Memory Used: 256 MB	Init Duration: 180.12 ms
        for part in report_line.split("\t"):
            part = part.strip()
            if ":" not in part:
                continue
            key, _, value = part.partition(":")
            value = value.replace("ms", "").replace("MB", "").strip()

            try:
                if key == "REPORT RequestId" or key == "RequestId":
                    result["request_id"] = value
                elif key == "Duration":
                    result["actual_duration"] = float(value)
                elif key == "Billed Duration":
                    result["billed_duration"] = float(value)
                elif key == "Memory Size":
                    result["memory_size"] = int(value)
                elif key == "Max Memory Used":
                    result["memory_used"] = int(value)
                elif key == "Init Duration":
                    result["init_duration"] = float(value)
                    result["cold_start"] = True
            except ValueError:
                logger.warning(f"Failed to parse REPORT field: {part}")

        return result
