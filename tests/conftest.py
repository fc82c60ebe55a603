"""
Pytest configuration and fixtures for Lambda memory tuner tests.
"""

import pytest

from lambda_memory_tuner import TunerConfig
from lambda_memory_tuner.invoker import LambdaInvoker
from lambda_memory_tuner.providers.aws import AWSLambdaProvider
from tests.utils import FakeInvoker, MockLambdaClient


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: tests spanning several modules")
    config.addinivalue_line("markers", "e2e: complete tuning runs against mocked AWS")


@pytest.fixture
def sample_config():
    """Fast configuration: no warmups, no backoff, no polling delay."""
    return TunerConfig(
        min_memory=128,
        max_memory=1024,
        memory_step=64,
        objective="balanced",
        sample_count=3,
        warmup_runs=0,
        backoff_seconds=0,
        poll_interval=0,
        update_timeout=5,
    )


@pytest.fixture
def mock_lambda_client():
    """Mock Lambda client with one function at 256MB."""
    client = MockLambdaClient()
    client.create_function(FunctionName="test-function", MemorySize=256, Timeout=30)
    return client


@pytest.fixture
def provider(mock_lambda_client):
    """AWS provider backed by the mock client."""
    return AWSLambdaProvider(client=mock_lambda_client, poll_interval=0, update_timeout=5)


@pytest.fixture
def invoker(provider, sample_config):
    """Real invoker on top of the mocked provider."""
    return LambdaInvoker.from_config(provider, sample_config)


@pytest.fixture
def fake_invoker():
    """In-memory invoker with the diminishing-returns duration curve."""
    return FakeInvoker()
