"""
Tests for the benchmark commands and their dispatch.
"""

import json

import pytest
from botocore.exceptions import ClientError

from client_factory import ClientFactory
from commands import (
    COMMANDS, CommandFactory, CreateTableCommand, DeleteTableCommand, GetItemCommand,
    PutItemCommand, QueryCommand, ScanCommand, build_create_table_request,
)
from config import Command, ConnectionConfig, RunnerConfig
from conftest import FakeBackend, FakeClock
from errors import UnsupportedOperationError


class TestCreateTable:

    def test_request_schema(self):
        request = build_create_table_request()

        assert request["TableName"] == "TryDaxTable"
        assert request["KeySchema"] == [
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ]
        assert request["AttributeDefinitions"] == [
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "N"},
        ]
        assert request["ProvisionedThroughput"] == {"ReadCapacityUnits": 100, "WriteCapacityUnits": 100}

    def test_issues_single_request(self, direct_config, backend, echo_lines):
        CreateTableCommand(direct_config, backend, echo=echo_lines.append).execute()

        assert backend.operations() == ["CreateTable"]
        assert backend.calls[0][1] == build_create_table_request()
        assert echo_lines == []


class TestDeleteTable:

    def test_issues_single_request(self, direct_config, backend, echo_lines):
        DeleteTableCommand(direct_config, backend, echo=echo_lines.append).execute()
        assert backend.calls == [("DeleteTable", {"TableName": "TryDaxTable"})]


class TestPutItem:

    def test_writes_full_grid(self, direct_config, backend, echo_lines):
        PutItemCommand(direct_config, backend, echo=echo_lines.append).execute()

        assert backend.operations() == ["PutItem"] * 100
        items = [request["Item"] for _, request in backend.calls]
        expected = [
            {"pk": {"S": f"key_{i}"}, "sk": {"N": str(j)}, "value": {"S": f"val_{i}_{j}"}}
            for i in range(10) for j in range(10)
        ]
        assert items == expected
        assert all(request["TableName"] == "TryDaxTable" for _, request in backend.calls)

    def test_aborts_on_37th_failure(self, direct_config, echo_lines):
        backend = FakeBackend(fail_on_call=37)

        with pytest.raises(ClientError) as exc_info:
            PutItemCommand(direct_config, backend, echo=echo_lines.append).execute()

        assert len(backend.calls) == 37
        assert "call 37 throttled" in str(exc_info.value)
        # 37th call is key_3 / 6
        assert backend.calls[-1][1]["Item"]["pk"] == {"S": "key_3"}
        assert backend.calls[-1][1]["Item"]["sk"] == {"N": "6"}

    def test_verbose_prints_each_response(self, direct_config, backend, echo_lines):
        direct_config.verbose = True
        PutItemCommand(direct_config, backend, echo=echo_lines.append).execute()

        assert len(echo_lines) == 100
        assert json.loads(echo_lines[0])["Operation"] == "PutItem"


class TestGetItem:

    def test_reads_grid_every_iteration(self, direct_config, backend, echo_lines):
        cmd = GetItemCommand(direct_config, backend, echo=echo_lines.append)
        cmd.clock = FakeClock(10.0, 15.0)

        result = cmd.execute()

        assert backend.operations() == ["GetItem"] * 2500
        first_pass = [request["Key"] for _, request in backend.calls[:100]]
        assert first_pass[0] == {"pk": {"S": "key_0"}, "sk": {"N": "0"}}
        assert first_pass[-1] == {"pk": {"S": "key_9"}, "sk": {"N": "9"}}
        assert [request["Key"] for _, request in backend.calls[100:200]] == first_pass

        assert result.total == pytest.approx(5.0)
        assert result.average == pytest.approx(5.0 / 25)
        assert echo_lines == ["Total Time: 5.000s, Avg Time: 200.000ms"]

    def test_real_clock_average_is_non_negative(self, direct_config, backend, echo_lines):
        result = GetItemCommand(direct_config, backend, echo=echo_lines.append).execute()

        assert result.total >= 0
        assert result.average == pytest.approx(result.total / 25)

    def test_failure_stops_timing_output(self, direct_config, echo_lines):
        backend = FakeBackend(fail_on_call=150)

        with pytest.raises(ClientError):
            GetItemCommand(direct_config, backend, echo=echo_lines.append).execute()

        assert len(backend.calls) == 150
        assert echo_lines == []


class TestQuery:

    def test_issues_fixed_range_query(self, direct_config, backend, echo_lines):
        cmd = QueryCommand(direct_config, backend, echo=echo_lines.append)
        cmd.clock = FakeClock(0.0, 0.5)

        result = cmd.execute()

        assert backend.operations() == ["Query"] * 25
        for _, request in backend.calls:
            assert request["TableName"] == "TryDaxTable"
            assert request["KeyConditionExpression"] == "pk = :pkval AND sk BETWEEN :skval1 AND :skval2"
            assert request["ExpressionAttributeValues"] == {
                ":pkval": {"S": "key_5"},
                ":skval1": {"N": "2"},
                ":skval2": {"N": "9"},
            }
        assert result.average == pytest.approx(0.02)


class TestScan:

    def test_issues_full_scans(self, direct_config, backend, echo_lines):
        cmd = ScanCommand(direct_config, backend, echo=echo_lines.append)
        cmd.clock = FakeClock(0.0, 1.0)

        cmd.execute()

        assert backend.calls == [("Scan", {"TableName": "TryDaxTable"})] * 25
        assert echo_lines == ["Total Time: 1.000s, Avg Time: 40.000ms"]

    def test_verbose_then_timing_line(self, direct_config, backend, echo_lines):
        direct_config.verbose = True
        cmd = ScanCommand(direct_config, backend, echo=echo_lines.append)
        cmd.clock = FakeClock(0.0, 1.0)

        cmd.execute()

        assert len(echo_lines) == 26
        assert echo_lines[-1].startswith("Total Time: ")


class TestDispatch:

    def test_every_command_has_an_executor(self):
        assert set(COMMANDS) == set(Command)

    @pytest.mark.parametrize("command,expected", [
        (Command.CREATE_TABLE, CreateTableCommand),
        (Command.PUT_ITEM, PutItemCommand),
        (Command.GET_ITEM, GetItemCommand),
        (Command.QUERY, QueryCommand),
        (Command.SCAN, ScanCommand),
        (Command.DELETE_TABLE, DeleteTableCommand),
    ])
    def test_command_class(self, command, expected):
        assert CommandFactory.get_command_class(command) is expected
        assert expected.command is command

    def test_expected_call_counts(self):
        assert PutItemCommand.expected_calls() == 100
        assert GetItemCommand.expected_calls() == 2500
        assert QueryCommand.expected_calls() == 25
        assert ScanCommand.expected_calls() == 25
        assert CreateTableCommand.expected_calls() == 1

    def test_table_commands_get_table_client(self, direct_config, echo_lines):
        built = []

        def direct_builder(config, metrics):
            built.append("direct")
            return FakeBackend()

        clients = ClientFactory(direct_config.connection, direct_builder=direct_builder)
        cmd = CommandFactory.create_command(Command.CREATE_TABLE, direct_config, clients, echo=echo_lines.append)

        assert isinstance(cmd, CreateTableCommand)
        assert built == ["direct"]

    def test_cache_item_commands_use_cache_client(self, cache_config, echo_lines):
        cache_backend = FakeBackend()
        clients = ClientFactory(
            cache_config.connection,
            direct_builder=lambda config, metrics: pytest.fail("direct client built for cache service"),
            cache_builder=lambda config, metrics: cache_backend,
        )

        cmd = CommandFactory.create_command(Command.SCAN, cache_config, clients, echo=echo_lines.append)

        assert cmd.client is cache_backend

    @pytest.mark.parametrize("command", [Command.CREATE_TABLE, Command.DELETE_TABLE])
    def test_cache_table_commands_rejected_by_factory(self, cache_config, command):
        clients = ClientFactory(
            cache_config.connection,
            cache_builder=lambda config, metrics: pytest.fail("cache client built for table command"),
        )

        with pytest.raises(UnsupportedOperationError, match="table operations unsupported on this backend"):
            CommandFactory.create_command(command, cache_config, clients)

    def test_command_receives_explicit_config(self, backend):
        config = RunnerConfig(connection=ConnectionConfig(region="us-east-1"), command="scan", verbose=True)
        cmd = ScanCommand(config, backend, echo=lambda line: None)
        assert cmd.config is config
