"""
Command-line interface for the DAX benchmark application.
"""
import click
import sys
import os
import uuid
from dotenv import load_dotenv

from config import (
    Command, ConnectionConfig, RunnerConfig, Service, WORKLOAD, INVALID_SERVICE_MSG,
    get_client_version, resolve_region, validate_config,
)
from errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()


def get_env_or_default(env_var: str, default_value, value_type=str):
    """Get environment variable with type conversion and default fallback."""
    env_value = os.getenv(env_var)
    if env_value is None:
        return default_value

    try:
        if value_type == bool:
            return env_value.lower() in ('true', '1', 'yes', 'on')
        elif value_type == int:
            return int(env_value)
        elif value_type == float:
            return float(env_value)
        else:
            return env_value
    except (ValueError, TypeError):
        return default_value


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """DAX Benchmark Tool - time basic DynamoDB operations directly and through a DAX cluster."""
    pass


@cli.command(name='list-commands')
def list_commands():
    """List available benchmark commands."""
    from commands import COMMANDS

    click.echo("Available commands:")
    for command, command_class in COMMANDS.items():
        click.echo(f"  {command.value}: {command_class.description}")


@cli.command(name='describe-command')
@click.argument('command_name', type=click.Choice(Command.names()))
def describe_command(command_name):
    """Describe a specific benchmark command."""
    from commands import COMMANDS, TimedCommand

    command_class = COMMANDS[Command(command_name)]
    services = [Service.DIRECT.value] if command_class.requires_table_client else Service.names()

    click.echo(f"Command: {command_name}")
    click.echo(f"Description: {command_class.description}")
    click.echo(f"Services: {', '.join(services)}")
    click.echo(f"Table: {WORKLOAD.table_name}")
    click.echo(f"Requests: {command_class.expected_calls(WORKLOAD):,}")
    click.echo(f"Timed: {'Yes' if issubclass(command_class, TimedCommand) else 'No'}")


@cli.command(name='run')
# ============================================================================
# Backend Connection Parameters
# ============================================================================
@click.option('--service', default=lambda: get_env_or_default('DAX_BENCH_SERVICE', Service.DIRECT.value), help=' | '.join(Service.names()))
@click.option('--region', default=lambda: get_env_or_default('AWS_REGION', get_env_or_default('AWS_DEFAULT_REGION', None)), help='AWS region (detected from instance metadata if not set)')
@click.option('--endpoint', default=lambda: get_env_or_default('DAX_ENDPOINT', ''), help='DAX cluster endpoint (required for the cache service)')
@click.option('--connect-timeout', type=float, default=lambda: get_env_or_default('DAX_BENCH_CONNECT_TIMEOUT', 5.0, float), help='DynamoDB connect timeout in seconds')
@click.option('--read-timeout', type=float, default=lambda: get_env_or_default('DAX_BENCH_READ_TIMEOUT', 10.0, float), help='DynamoDB read timeout in seconds')
@click.option('--max-attempts', type=int, default=lambda: get_env_or_default('DAX_BENCH_MAX_ATTEMPTS', 3, int), help='botocore retry attempts for DynamoDB calls')

# ============================================================================
# Command Parameters
# ============================================================================
@click.option('--command', 'command_name', default=lambda: get_env_or_default('DAX_BENCH_COMMAND', ''), help=' | '.join(Command.names()))
@click.option('--verbose', is_flag=True, default=lambda: get_env_or_default('DAX_BENCH_VERBOSE', False, bool), help='Print every raw response')

# ============================================================================
# Logging & Output Parameters
# ============================================================================
@click.option('--log-level', default=lambda: get_env_or_default('LOG_LEVEL', 'WARNING'), type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), help='Logging level')
@click.option('--log-file', default=lambda: get_env_or_default('LOG_FILE', None), help='Log file path')
@click.option('--output-file', default=lambda: get_env_or_default('OUTPUT_FILE', None), help='Write the final run summary (JSON) to this file')
@click.option('--stats', 'show_stats', is_flag=True, default=False, help='Print a latency summary after the run')

# ============================================================================
# OpenTelemetry Parameters
# ============================================================================
@click.option('--otel-endpoint', default=lambda: get_env_or_default('OTEL_EXPORTER_OTLP_ENDPOINT', None), help='OpenTelemetry OTLP endpoint')
@click.option('--otel-service-name', default=lambda: get_env_or_default('OTEL_SERVICE_NAME', 'dax-bench'), help='OpenTelemetry service name')
@click.option('--otel-export-interval', type=int, default=lambda: get_env_or_default('OTEL_EXPORT_INTERVAL', 5000, int), help='OpenTelemetry export interval in milliseconds')

# ============================================================================
# Run Identification Parameters
# ============================================================================
@click.option('--app-name', default=lambda: get_env_or_default('APP_NAME', 'python'), help='Application name attached to exported metrics')
@click.option('--run-id', default=lambda: get_env_or_default('RUN_ID', None), help='Unique run identifier (auto-generated if not provided)')

# ============================================================================
# Configuration File Parameters
# ============================================================================
@click.option('--config-file', default=lambda: get_env_or_default('CONFIG_FILE', None), help='Load configuration from YAML/JSON file')
@click.option('--save-config', help='Save current configuration to file')
def run(**kwargs):
    """Run one benchmark command against DynamoDB or DAX."""

    try:
        if kwargs['config_file']:
            from config import load_config_from_file
            config = load_config_from_file(kwargs['config_file'])
            click.echo(f"Loaded configuration from {kwargs['config_file']}", err=True)
        else:
            config = _build_config_from_args(kwargs)

        if kwargs['save_config']:
            from config import save_config_to_file
            save_config_to_file(config, kwargs['save_config'])
            click.echo(f"Configuration saved to {kwargs['save_config']}")
            return

        command = _validate_config(config)
    except ConfigurationError as e:
        click.echo(f"invalid input: {e}", err=True)
        sys.exit(1)

    try:
        from benchmark_runner import BenchmarkRunner
        runner = BenchmarkRunner(config)
        runner.run(command)

    except KeyboardInterrupt:
        click.echo("\nRun interrupted by user", err=True)
        sys.exit(130)
    except ConfigurationError as e:
        click.echo(f"invalid input: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"failed to execute command: {e}", err=True)
        sys.exit(1)


@cli.command(name='test-connection')
@click.option('--service', default=lambda: get_env_or_default('DAX_BENCH_SERVICE', Service.DIRECT.value), help=' | '.join(Service.names()))
@click.option('--region', default=lambda: get_env_or_default('AWS_REGION', get_env_or_default('AWS_DEFAULT_REGION', None)), help='AWS region')
@click.option('--endpoint', default=lambda: get_env_or_default('DAX_ENDPOINT', ''), help='DAX cluster endpoint')
def test_connection(service, region, endpoint):
    """Test the backend connection with current configuration."""
    try:
        connection = ConnectionConfig(service=service, region=region, endpoint=endpoint)
        if service not in Service.names():
            raise ConfigurationError(INVALID_SERVICE_MSG)
        connection.region = resolve_region(connection.region)

        from client_factory import ClientFactory
        factory = ClientFactory(connection)

        if connection.is_cache:
            client = factory.item_client()
            try:
                click.echo("✓ DAX cluster discovery successful!")
                click.echo(f"Endpoint: {connection.endpoint}")
            finally:
                client.close()
        else:
            client = factory.table_client()
            try:
                tables = client.list_tables(Limit=1)
                click.echo("✓ DynamoDB connection successful!")
                click.echo(f"Tables visible: {'yes' if tables.get('TableNames') else 'none'}")
            finally:
                client.close()
        click.echo(f"Region: {connection.region}")

    except Exception as e:
        click.echo(f"✗ Connection failed: {e}", err=True)
        sys.exit(1)


def _build_config_from_args(kwargs) -> RunnerConfig:
    """Build RunnerConfig from command line arguments."""

    connection = ConnectionConfig(
        service=kwargs['service'],
        region=kwargs['region'],
        endpoint=kwargs['endpoint'],
        connect_timeout=kwargs['connect_timeout'],
        read_timeout=kwargs['read_timeout'],
        max_attempts=kwargs['max_attempts'],
    )

    config = RunnerConfig(
        connection=connection,
        command=kwargs['command_name'],
        verbose=kwargs['verbose'],
        log_level=kwargs['log_level'],
        log_file=kwargs['log_file'],
        output_file=kwargs['output_file'],
        show_stats=kwargs['show_stats'],
        otel_endpoint=kwargs['otel_endpoint'],
        otel_service_name=kwargs['otel_service_name'],
        otel_export_interval_ms=kwargs['otel_export_interval'],
        app_name=f"{kwargs['app_name']}-{kwargs['service']}",
        run_id=kwargs['run_id'] or str(uuid.uuid4()),
        version=get_client_version(),
    )

    return config


def _validate_config(config: RunnerConfig) -> Command:
    """Validate configuration parameters."""
    return validate_config(config)


if __name__ == '__main__':
    cli()
