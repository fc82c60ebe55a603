"""Testing utilities for the Lambda memory tuner."""

from .fakes import (
    DIMINISHING_RETURNS,
    STEEP_DIMINISHING_RETURNS,
    FakeInvoker,
    duration_curve,
)
from .mock_aws import MockLambdaClient, create_mock_boto3_session, patch_boto3_with_mock

__all__ = [
    "DIMINISHING_RETURNS",
    "STEEP_DIMINISHING_RETURNS",
    "FakeInvoker",
    "duration_curve",
    "MockLambdaClient",
    "create_mock_boto3_session",
    "patch_boto3_with_mock",
]
