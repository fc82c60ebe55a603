"""
Utility functions for the Lambda memory tuner package.
"""

import asyncio
import json
import math
import os
import re
import logging
from functools import wraps
from typing import List, Dict, Any, Optional, Union, Tuple, Type

import numpy as np

logger = logging.getLogger(__name__)

FUNCTION_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9-_]{1,64}$")


def validate_arn(arn: str) -> bool:
    """
    Validate AWS Lambda ARN format.

    Args:
        arn: AWS ARN string

    Returns:
        bool: True if valid ARN format
    """
    if not arn or not isinstance(arn, str):
        return False

    parts = arn.split(":")
    if len(parts) < 7:
        return False

    return parts[0] == "arn" and parts[1].startswith("aws") and parts[2] == "lambda"


def validate_function_identifier(identifier: str) -> bool:
    """Accept a Lambda function ARN or a plain function name."""
    if not identifier or not isinstance(identifier, str):
        return False
    if identifier.startswith("arn:"):
        return validate_arn(identifier)
    return bool(FUNCTION_NAME_PATTERN.match(identifier))


def extract_function_name(identifier: str) -> str:
    """Extract the function name from an ARN or return the plain name."""
    if identifier.startswith("arn:"):
        return identifier.split(":")[6]
    return identifier


def encode_payload(payload: Any) -> str:
    """
    Encode payload for Lambda invocation.

    Strings are passed through after a JSON check, everything else is
    serialized with ``json.dumps``.
    """
    if payload is None:
        return "{}"
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        try:
            json.loads(payload)
            return payload
        except json.JSONDecodeError:
            raise ValueError("Invalid JSON payload")
    try:
        return json.dumps(payload)
    except TypeError as e:
        raise TypeError(f"Payload is not JSON serializable: {e}")


def decode_response(response_payload) -> Any:
    """
    Decode Lambda response payload.

    Args:
        response_payload: Streaming body or raw bytes

    Returns:
        Decoded response, or a dict describing why decoding failed
    """
    payload_str = response_payload
    try:
        if hasattr(response_payload, "read"):
            payload_str = response_payload.read()
        if isinstance(payload_str, bytes):
            payload_str = payload_str.decode("utf-8")
        return json.loads(payload_str) if payload_str else None
    except (ValueError, UnicodeDecodeError) as e:
        logger.debug(f"Failed to decode response: {e}")
        return {"error": str(e), "raw": str(payload_str)}


def calculate_statistics(values: List[float]) -> Dict[str, float]:
    """
    Calculate statistical metrics for a list of values.

    Args:
        values: List of numeric values

    Returns:
        dict: Statistical metrics, empty when there are no values
    """
    if not values:
        return {}

    data = np.asarray(values, dtype=float)

    return {
        "min": float(data.min()),
        "max": float(data.max()),
        "mean": float(data.mean()),
        "median": float(np.percentile(data, 50)),
        "stddev": float(data.std(ddof=1)) if len(data) > 1 else 0.0,
        "p95": float(np.percentile(data, 95)),
        "p99": float(np.percentile(data, 99)),
    }


def snap_to_step(value: float, step: int, lower: int, upper: int) -> int:
    """Snap a value to the nearest multiple of ``step`` inside ``[lower, upper]``."""
    snapped = int(math.floor(value / step + 0.5)) * step
    return max(lower, min(upper, snapped))


def memory_grid(min_memory: int, max_memory: int, step: int) -> List[int]:
    """All valid memory sizes between the bounds, inclusive."""
    return list(range(min_memory, max_memory + 1, step))


def round_up(value: float, increment: float) -> float:
    """Round a value up to the next multiple of ``increment``."""
    if increment <= 0:
        return value
    return math.ceil(value / increment) * increment


def format_duration(milliseconds: float) -> str:
    """
    Format duration in milliseconds to human-readable string.
    """
    if milliseconds is None:
        return "-"
    if milliseconds < 1000:
        return f"{milliseconds:.2f}ms"
    elif milliseconds < 60000:
        return f"{milliseconds/1000:.2f}s"
    else:
        minutes = int(milliseconds / 60000)
        seconds = (milliseconds % 60000) / 1000
        return f"{minutes}m {seconds:.2f}s"


def retry_with_backoff(
    retries: int = 3,
    backoff_in_seconds: float = 1,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
):
    """
    Decorator for retrying coroutines with exponential backoff.

    ``retries`` counts the extra attempts after the first one. Only the given
    exception types are retried; the last one is re-raised when attempts run
    out.

    Args:
        retries: Number of retry attempts
        backoff_in_seconds: Initial backoff time
        exceptions: Exception types that trigger a retry
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            x = backoff_in_seconds
            for i in range(retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if i == retries:
                        raise
                    logger.warning(f"Attempt {i+1} failed: {e}. Retrying in {x}s...")
                    await asyncio.sleep(x)
                    x *= 2

        return wrapper

    return decorator


def load_json_file(filepath: str) -> Any:
    """
    Load JSON file safely.
    """
    try:
        with open(filepath, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"File not found: {filepath}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {filepath}: {e}")


def save_json_file(data: Any, filepath: str, pretty: bool = True):
    """
    Save data to JSON file.
    """
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filepath, "w") as f:
        if pretty:
            json.dump(data, f, indent=2, default=str)
        else:
            json.dump(data, f, default=str)


def load_payload(payload: Optional[str] = None, payload_file: Optional[str] = None) -> Any:
    """Load the test event from an inline JSON string or a file."""
    if payload_file:
        return load_json_file(payload_file)
    if payload:
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON payload: {e}")
    return {}


def memory_color(size: int) -> str:
    """Display color bucket for a memory size."""
    if size > 2048:
        return "red"
    if size > 1024:
        return "yellow"
    return "green"
