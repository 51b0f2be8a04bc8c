"""
Configuration management for the DAX benchmark application.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Any
import importlib.metadata
import json

import boto3
import yaml
from botocore.utils import InstanceMetadataRegionFetcher

from errors import ConfigurationError, UnsupportedOperationError


def get_client_version() -> str:
    """Get the version of the boto3 package."""
    try:
        return importlib.metadata.version("boto3")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


class Service(str, Enum):
    """Backends a run can target."""

    DIRECT = "direct"  # DynamoDB
    CACHE = "cache"  # DAX cluster in front of DynamoDB

    @classmethod
    def names(cls) -> List[str]:
        return [s.value for s in cls]


class Command(str, Enum):
    """Fixed workloads the tool knows how to run."""

    CREATE_TABLE = "create-table"
    PUT_ITEM = "put-item"
    GET_ITEM = "get-item"
    QUERY = "query"
    SCAN = "scan"
    DELETE_TABLE = "delete-table"

    @classmethod
    def names(cls) -> List[str]:
        return [c.value for c in cls]

    @property
    def is_table_operation(self) -> bool:
        return self in (Command.CREATE_TABLE, Command.DELETE_TABLE)


SERVICES_MSG = " | ".join(Service.names())
COMMANDS_MSG = " | ".join(Command.names())

INVALID_SERVICE_MSG = f"service should be one of [{SERVICES_MSG}]"
INVALID_COMMAND_MSG = f"command should be one of [{COMMANDS_MSG}]"
ENDPOINT_REQUIRED_MSG = f"endpoint should be set for '{Service.CACHE.value}' service"
TABLE_OPS_UNSUPPORTED_MSG = (
    f"table operations unsupported on this backend; use service '{Service.DIRECT.value}'"
)


@dataclass(frozen=True)
class WorkloadSpec:
    """
    The fixed benchmark workload.

    Every run uses the same table, the same key grid and the same iteration
    count so results are comparable between backends and between runs.
    """

    table_name: str = "TryDaxTable"
    key_prefix: str = "key"
    value_prefix: str = "val"
    pk_max: int = 10
    sk_max: int = 10
    iterations: int = 25

    # Query: pk = key_<query_pk> and sk between query_sk_low and query_sk_high
    query_pk: int = 5
    query_sk_low: int = 2
    query_sk_high: int = 9

    read_capacity_units: int = 100
    write_capacity_units: int = 100

    def partition_key(self, i: int) -> str:
        return f"{self.key_prefix}_{i}"

    def value(self, i: int, j: int) -> str:
        return f"{self.value_prefix}_{i}_{j}"

    def grid(self):
        """Yield every (i, j) of the key grid in write order."""
        for i in range(self.pk_max):
            for j in range(self.sk_max):
                yield i, j

    @property
    def grid_size(self) -> int:
        return self.pk_max * self.sk_max


WORKLOAD = WorkloadSpec()


@dataclass
class ConnectionConfig:
    """Backend selection and connection settings."""

    service: str = Service.DIRECT.value
    region: Optional[str] = None
    endpoint: Optional[str] = None  # DAX cluster endpoint, e.g. dax://my-cluster.xxxx.dax-clusters.us-east-1.amazonaws.com

    # botocore settings for the direct backend
    connect_timeout: float = 5.0
    read_timeout: float = 10.0
    max_attempts: int = 3

    @property
    def is_cache(self) -> bool:
        return self.service == Service.CACHE.value


@dataclass
class RunnerConfig:
    """Main runner configuration"""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    command: Optional[str] = None
    verbose: bool = False

    # Logging and output
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    output_file: Optional[str] = None
    show_stats: bool = False

    # OpenTelemetry configuration
    otel_endpoint: Optional[str] = None
    otel_service_name: str = "dax-bench"
    otel_service_version: str = "1.0.0"
    otel_export_interval_ms: int = 5000

    # Run identification
    app_name: str = "python"
    run_id: Optional[str] = None
    version: Optional[str] = None  # boto3 version or custom version


def validate_config(config: RunnerConfig) -> Command:
    """
    Check the service/command/endpoint combination.

    Returns the parsed command. Raises ConfigurationError (or its
    UnsupportedOperationError subclass) with a stable message per rule.
    """
    service = config.connection.service
    if service not in Service.names():
        raise ConfigurationError(INVALID_SERVICE_MSG)

    if config.command not in Command.names():
        raise ConfigurationError(INVALID_COMMAND_MSG)
    command = Command(config.command)

    if config.connection.is_cache:
        if not config.connection.endpoint:
            raise ConfigurationError(ENDPOINT_REQUIRED_MSG)
        if command.is_table_operation:
            raise UnsupportedOperationError(TABLE_OPS_UNSUPPORTED_MSG)

    return command


def resolve_region(region: Optional[str] = None) -> str:
    """
    Resolve the AWS region to use.

    Order: explicit value, the default boto3 session (env vars and shared
    config), then the EC2 instance metadata service.
    """
    if region:
        return region

    session_region = boto3.session.Session().region_name
    if session_region:
        return session_region

    detected = InstanceMetadataRegionFetcher(timeout=1, num_attempts=1).retrieve_region()
    if detected:
        return detected

    raise ConfigurationError("unable to detect region: pass --region or set AWS_REGION")


def load_config_from_file(file_path: str) -> RunnerConfig:
    """Load configuration from YAML or JSON file."""
    try:
        with open(file_path, "r") as f:
            if file_path.endswith(".yaml") or file_path.endswith(".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read config file {file_path}: {e}") from e

    data = data or {}
    try:
        # Convert nested dictionaries to dataclass instances
        if "connection" in data:
            data["connection"] = ConnectionConfig(**data["connection"])
        return RunnerConfig(**data)
    except TypeError as e:
        raise ConfigurationError(f"invalid config file {file_path}: {e}") from e


def config_to_dict(config: RunnerConfig) -> Dict[str, Any]:
    return asdict(config)


def save_config_to_file(config: RunnerConfig, file_path: str):
    """Save configuration to YAML file."""
    with open(file_path, "w") as f:
        yaml.dump(config_to_dict(config), f, default_flow_style=False, indent=2)
