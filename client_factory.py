"""
Client factory - picks the DynamoDB or DAX client for a run.
"""
from typing import Callable, Optional

from config import ConnectionConfig, Service, ENDPOINT_REQUIRED_MSG, TABLE_OPS_UNSUPPORTED_MSG
from dynamodb_client import DaxClient, DynamoDBClient, ItemClient, TableClient
from errors import ConfigurationError, UnsupportedOperationError
from logger import get_logger
from metrics import MetricsCollector


class ClientFactory:
    """
    Builds capability-specific clients for the configured backend.

    - table_client(): DynamoDB only; the cache backend raises UnsupportedOperationError
    - item_client(): DynamoDB or DAX depending on the service
    """

    def __init__(self, config: ConnectionConfig, metrics: Optional[MetricsCollector] = None,
                 direct_builder: Callable[..., DynamoDBClient] = DynamoDBClient,
                 cache_builder: Callable[..., DaxClient] = DaxClient):
        self.config = config
        self.metrics = metrics
        self.logger = get_logger()
        self._direct_builder = direct_builder
        self._cache_builder = cache_builder

    @property
    def service(self) -> Service:
        try:
            return Service(self.config.service)
        except ValueError:
            raise ConfigurationError(f"unknown service: {self.config.service}") from None

    def table_client(self) -> TableClient:
        """Get a client for table management."""
        if self.service is Service.CACHE:
            raise UnsupportedOperationError(TABLE_OPS_UNSUPPORTED_MSG)

        self.logger.info(f"Creating DynamoDB table client in {self.config.region}")
        return self._direct_builder(self.config, self.metrics)

    def item_client(self) -> ItemClient:
        """Get a client for item operations."""
        if self.service is Service.CACHE:
            if not self.config.endpoint:
                raise ConfigurationError(ENDPOINT_REQUIRED_MSG)
            self.logger.info(f"Creating DAX item client for {self.config.endpoint} in {self.config.region}")
            return self._cache_builder(self.config, self.metrics)

        self.logger.info(f"Creating DynamoDB item client in {self.config.region}")
        return self._direct_builder(self.config, self.metrics)

    def __str__(self) -> str:
        return f"ClientFactory({self.config.service}, {self.config.region})"
