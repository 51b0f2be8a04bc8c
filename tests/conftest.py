"""
Pytest Configuration and Fixtures

Shared fakes for the backend clients plus AWS environment isolation.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError

from config import ConnectionConfig, RunnerConfig
from logger import setup_logging
from metrics import MetricsCollector


class FakeBackend:
    """
    Records every request and answers with an empty success response.

    Implements both the table and item operations so it can stand in for
    either backend. With fail_on_call=N the Nth call (1-based, counted across
    all operations) raises a ClientError instead.
    """

    def __init__(self, fail_on_call: Optional[int] = None):
        self.fail_on_call = fail_on_call
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def _handle(self, operation: str, request: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((operation, request))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise ClientError(
                {"Error": {"Code": "ProvisionedThroughputExceededException",
                           "Message": f"call {len(self.calls)} throttled"}},
                operation,
            )
        return {"ResponseMetadata": {"HTTPStatusCode": 200}, "Operation": operation}

    def create_table(self, **request):
        return self._handle("CreateTable", request)

    def delete_table(self, **request):
        return self._handle("DeleteTable", request)

    def list_tables(self, **request):
        return self._handle("ListTables", request)

    def get_item(self, **request):
        return self._handle("GetItem", request)

    def put_item(self, **request):
        return self._handle("PutItem", request)

    def query(self, **request):
        return self._handle("Query", request)

    def scan(self, **request):
        return self._handle("Scan", request)

    def close(self):
        self.closed = True

    def operations(self) -> List[str]:
        return [op for op, _ in self.calls]


class FakeClock:
    """Returns the given readings in order."""

    def __init__(self, *readings: float):
        self._readings = list(readings)

    def __call__(self) -> float:
        return self._readings.pop(0)


# ============================================================================
# Backend Fixtures
# ============================================================================

@pytest.fixture
def backend() -> FakeBackend:
    """A fake backend that never fails."""
    return FakeBackend()


@pytest.fixture
def metrics() -> MetricsCollector:
    """A metrics collector with no OpenTelemetry export."""
    return MetricsCollector()


@pytest.fixture
def echo_lines() -> List[str]:
    """Collects lines a command would print."""
    return []


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def direct_config() -> RunnerConfig:
    return RunnerConfig(
        connection=ConnectionConfig(service="direct", region="us-east-1"),
        command="put-item",
    )


@pytest.fixture
def cache_config() -> RunnerConfig:
    return RunnerConfig(
        connection=ConnectionConfig(service="cache", region="us-east-1",
                                    endpoint="my-cluster.abc123.dax-clusters.us-east-1.amazonaws.com:8111"),
        command="get-item",
    )


@pytest.fixture(autouse=True)
def aws_environment(monkeypatch, tmp_path):
    """Fake credentials and no ambient AWS or benchmark settings."""
    for name in ("AWS_REGION", "AWS_DEFAULT_REGION", "AWS_PROFILE",
                 "DAX_BENCH_SERVICE", "DAX_BENCH_COMMAND", "DAX_BENCH_VERBOSE",
                 "DAX_ENDPOINT", "CONFIG_FILE", "OUTPUT_FILE", "LOG_FILE", "LOG_LEVEL",
                 "OTEL_EXPORTER_OTLP_ENDPOINT", "RUN_ID"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "aws_config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "aws_credentials"))
    monkeypatch.setenv("AWS_EC2_METADATA_DISABLED", "true")


@pytest.fixture(autouse=True)
def fresh_logging():
    """Rebind log handlers to the current stderr for every test."""
    setup_logging("WARNING")


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: runs commands against a moto-backed DynamoDB"
    )
