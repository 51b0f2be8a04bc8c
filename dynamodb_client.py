"""
DynamoDB and DAX clients behind two capability interfaces.

TableClient covers table management, ItemClient covers item reads and
writes. DynamoDB provides both; a DAX cluster only serves item operations.
"""
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import boto3
from amazondax import AmazonDaxClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import ConnectionConfig
from logger import get_logger
from metrics import MetricsCollector, get_metrics_collector


class TableClient(ABC):
    """Table management capability."""

    @abstractmethod
    def create_table(self, **request) -> Dict[str, Any]:
        pass

    @abstractmethod
    def delete_table(self, **request) -> Dict[str, Any]:
        pass

    @abstractmethod
    def list_tables(self, **request) -> Dict[str, Any]:
        pass

    def close(self):
        pass


class ItemClient(ABC):
    """Item read/write capability."""

    @abstractmethod
    def get_item(self, **request) -> Dict[str, Any]:
        pass

    @abstractmethod
    def put_item(self, **request) -> Dict[str, Any]:
        pass

    @abstractmethod
    def query(self, **request) -> Dict[str, Any]:
        pass

    @abstractmethod
    def scan(self, **request) -> Dict[str, Any]:
        pass

    def close(self):
        pass


def botocore_config(config: ConnectionConfig) -> Config:
    return Config(
        retries={"max_attempts": config.max_attempts, "mode": "standard"},
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
    )


def dax_endpoint_url(endpoint: str) -> str:
    """DAX expects a dax:// or daxs:// URL; a bare host:port is treated as dax://."""
    if "://" in endpoint:
        return endpoint
    return f"dax://{endpoint}"


class _MeteredClient:
    """Shared call path: time every backend call and record it."""

    client_label = "unknown"

    def __init__(self, config: ConnectionConfig, metrics: Optional[MetricsCollector] = None):
        self.config = config
        self.logger = get_logger()
        self.metrics = metrics or get_metrics_collector()
        self._client = None

    def _connect(self, build):
        start_time = time.time()
        try:
            self._client = build()
        except Exception as e:
            self.logger.error(f"Failed to create {self.client_label} client: {e}")
            raise

        duration = time.time() - start_time
        self.metrics.record_client_init_duration(duration, client=self.client_label)
        self.logger.info(f"Created {self.client_label} client in {duration:.3f}s")

    def _execute_with_metrics(self, operation_name: str, client_method, **request):
        """
        Run one backend call, recording duration and outcome.

        Errors are recorded and re-raised unchanged; retries are left to the
        underlying SDK.
        """
        start_time = time.time()

        try:
            result = client_method(**request)
            duration = max(0.0, time.time() - start_time)
            self.metrics.record_operation(operation_name, duration, True)
            return result

        except (ClientError, BotoCoreError) as e:
            duration = max(0.0, time.time() - start_time)
            error_type = type(e).__name__
            self.metrics.record_operation(operation_name, duration, False, error_type)
            self.logger.warning(f"{self.client_label} error for {operation_name}: {error_type} - {e}")
            raise

        except Exception as e:
            duration = max(0.0, time.time() - start_time)
            error_type = type(e).__name__
            self.metrics.record_operation(operation_name, duration, False, error_type)
            self.logger.error(f"{self.client_label} operation error for {operation_name}: {error_type} - {e}")
            raise

    def close(self):
        """Close the underlying client."""
        if self._client:
            try:
                if hasattr(self._client, 'close'):
                    self._client.close()
            except Exception as e:
                self.logger.warning(f"Error closing {self.client_label} client: {e}")
            finally:
                self._client = None


class DynamoDBClient(_MeteredClient, TableClient, ItemClient):
    """Direct DynamoDB access through boto3."""

    client_label = "direct"

    def __init__(self, config: ConnectionConfig, metrics: Optional[MetricsCollector] = None, client=None):
        super().__init__(config, metrics)
        if client is not None:
            self._client = client
        else:
            self._connect(self._build)

    def _build(self):
        session = boto3.session.Session(region_name=self.config.region)
        return session.client("dynamodb", config=botocore_config(self.config))

    def create_table(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('CreateTable', self._client.create_table, **request)

    def delete_table(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('DeleteTable', self._client.delete_table, **request)

    def list_tables(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('ListTables', self._client.list_tables, **request)

    def get_item(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('GetItem', self._client.get_item, **request)

    def put_item(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('PutItem', self._client.put_item, **request)

    def query(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('Query', self._client.query, **request)

    def scan(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('Scan', self._client.scan, **request)


class DaxClient(_MeteredClient, ItemClient):
    """
    Item access through a DAX cluster.

    Building the client runs cluster discovery against the configured
    endpoint, so an unreachable cluster fails here rather than on first use.
    """

    client_label = "cache"

    def __init__(self, config: ConnectionConfig, metrics: Optional[MetricsCollector] = None, client=None):
        super().__init__(config, metrics)
        if client is not None:
            self._client = client
        else:
            self._connect(self._build)

    def _build(self):
        return AmazonDaxClient(
            region_name=self.config.region,
            endpoint_url=dax_endpoint_url(self.config.endpoint),
        )

    def get_item(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('GetItem', self._client.get_item, **request)

    def put_item(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('PutItem', self._client.put_item, **request)

    def query(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('Query', self._client.query, **request)

    def scan(self, **request) -> Dict[str, Any]:
        return self._execute_with_metrics('Scan', self._client.scan, **request)
