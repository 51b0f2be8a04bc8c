"""
Benchmark commands: one executor per supported operation.
"""
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Type

import click

from client_factory import ClientFactory
from config import Command, RunnerConfig, WorkloadSpec, WORKLOAD
from logger import get_logger
from timing import TimingResult, run_timed


# ============================================================================
# Request builders
# ============================================================================

def build_create_table_request(workload: WorkloadSpec = WORKLOAD) -> Dict[str, Any]:
    return {
        "TableName": workload.table_name,
        "KeySchema": [
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "N"},
        ],
        "ProvisionedThroughput": {
            "ReadCapacityUnits": workload.read_capacity_units,
            "WriteCapacityUnits": workload.write_capacity_units,
        },
    }


def build_delete_table_request(workload: WorkloadSpec = WORKLOAD) -> Dict[str, Any]:
    return {"TableName": workload.table_name}


def build_key(i: int, j: int, workload: WorkloadSpec = WORKLOAD) -> Dict[str, Any]:
    return {
        "pk": {"S": workload.partition_key(i)},
        "sk": {"N": str(j)},
    }


def build_put_item_request(i: int, j: int, workload: WorkloadSpec = WORKLOAD) -> Dict[str, Any]:
    item = build_key(i, j, workload)
    item["value"] = {"S": workload.value(i, j)}
    return {"TableName": workload.table_name, "Item": item}


def build_get_item_request(i: int, j: int, workload: WorkloadSpec = WORKLOAD) -> Dict[str, Any]:
    return {"TableName": workload.table_name, "Key": build_key(i, j, workload)}


def build_query_request(workload: WorkloadSpec = WORKLOAD) -> Dict[str, Any]:
    return {
        "TableName": workload.table_name,
        "KeyConditionExpression": "pk = :pkval AND sk BETWEEN :skval1 AND :skval2",
        "ExpressionAttributeValues": {
            ":pkval": {"S": workload.partition_key(workload.query_pk)},
            ":skval1": {"N": str(workload.query_sk_low)},
            ":skval2": {"N": str(workload.query_sk_high)},
        },
    }


def build_scan_request(workload: WorkloadSpec = WORKLOAD) -> Dict[str, Any]:
    return {"TableName": workload.table_name}


def format_response(response: Any) -> str:
    return json.dumps(response, default=str)


# ============================================================================
# Commands
# ============================================================================

class BaseCommand(ABC):
    """Base class for benchmark commands."""

    command: Command
    description = ""
    requires_table_client = False

    def __init__(self, config: RunnerConfig, client, workload: WorkloadSpec = WORKLOAD,
                 echo: Callable[[str], None] = click.echo):
        self.config = config
        self.client = client
        self.workload = workload
        self.echo = echo
        self.logger = get_logger()

    @staticmethod
    def expected_calls(workload: WorkloadSpec = WORKLOAD) -> int:
        """Number of backend requests a successful run issues."""
        return 1

    def _write_verbose(self, response: Any):
        if self.config.verbose:
            self.echo(format_response(response))

    @abstractmethod
    def execute(self) -> Optional[TimingResult]:
        """Run the command. Any backend error propagates and aborts the run."""
        pass


class TimedCommand(BaseCommand):
    """A read workload repeated workload.iterations times under the timing harness."""

    def execute(self) -> TimingResult:
        result = run_timed(self.workload.iterations, self.run_iteration, clock=self.clock)
        self.echo(str(result))
        self.logger.info(f"{self.command.value}: {result}")
        return result

    @staticmethod
    def clock() -> float:
        return time.perf_counter()

    @abstractmethod
    def run_iteration(self, iteration: int):
        pass


class CreateTableCommand(BaseCommand):
    command = Command.CREATE_TABLE
    description = "Create the benchmark table (pk HASH S, sk RANGE N, 100/100 provisioned)"
    requires_table_client = True

    def execute(self) -> None:
        # Returns once the request is acknowledged; the table may still be CREATING.
        response = self.client.create_table(**build_create_table_request(self.workload))
        self._write_verbose(response)
        self.logger.info(f"Requested creation of table {self.workload.table_name}")


class DeleteTableCommand(BaseCommand):
    command = Command.DELETE_TABLE
    description = "Delete the benchmark table"
    requires_table_client = True

    def execute(self) -> None:
        response = self.client.delete_table(**build_delete_table_request(self.workload))
        self._write_verbose(response)
        self.logger.info(f"Requested deletion of table {self.workload.table_name}")


class PutItemCommand(BaseCommand):
    command = Command.PUT_ITEM
    description = "Write every item of the key grid once"

    @staticmethod
    def expected_calls(workload: WorkloadSpec = WORKLOAD) -> int:
        return workload.grid_size

    def execute(self) -> None:
        for i, j in self.workload.grid():
            response = self.client.put_item(**build_put_item_request(i, j, self.workload))
            self._write_verbose(response)
        self.logger.info(f"Wrote {self.workload.grid_size} items to {self.workload.table_name}")


class GetItemCommand(TimedCommand):
    command = Command.GET_ITEM
    description = "Read every item of the key grid, repeated per iteration (timed)"

    @staticmethod
    def expected_calls(workload: WorkloadSpec = WORKLOAD) -> int:
        return workload.grid_size * workload.iterations

    def run_iteration(self, iteration: int):
        for i, j in self.workload.grid():
            response = self.client.get_item(**build_get_item_request(i, j, self.workload))
            self._write_verbose(response)


class QueryCommand(TimedCommand):
    command = Command.QUERY
    description = "Range query on one partition, repeated per iteration (timed)"

    @staticmethod
    def expected_calls(workload: WorkloadSpec = WORKLOAD) -> int:
        return workload.iterations

    def run_iteration(self, iteration: int):
        response = self.client.query(**build_query_request(self.workload))
        self._write_verbose(response)


class ScanCommand(TimedCommand):
    command = Command.SCAN
    description = "Full table scan, repeated per iteration (timed)"

    @staticmethod
    def expected_calls(workload: WorkloadSpec = WORKLOAD) -> int:
        return workload.iterations

    def run_iteration(self, iteration: int):
        response = self.client.scan(**build_scan_request(self.workload))
        self._write_verbose(response)


COMMANDS: Dict[Command, Type[BaseCommand]] = {
    Command.CREATE_TABLE: CreateTableCommand,
    Command.PUT_ITEM: PutItemCommand,
    Command.GET_ITEM: GetItemCommand,
    Command.QUERY: QueryCommand,
    Command.SCAN: ScanCommand,
    Command.DELETE_TABLE: DeleteTableCommand,
}


class CommandFactory:
    """Factory for creating command instances."""

    @staticmethod
    def get_command_class(command: Command) -> Type[BaseCommand]:
        return COMMANDS[command]

    @staticmethod
    def create_command(command: Command, config: RunnerConfig, clients: ClientFactory,
                       workload: WorkloadSpec = WORKLOAD,
                       echo: Callable[[str], None] = click.echo) -> BaseCommand:
        """Create the command with a client of the capability it needs."""
        command_class = COMMANDS[command]
        if command_class.requires_table_client:
            client = clients.table_client()
        else:
            client = clients.item_client()
        return command_class(config, client, workload=workload, echo=echo)
