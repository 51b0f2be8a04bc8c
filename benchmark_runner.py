"""
Runs one benchmark command end to end.
"""
import time
from typing import Callable, Optional

import click

from client_factory import ClientFactory
from commands import CommandFactory
from config import Command, RunnerConfig, WorkloadSpec, WORKLOAD, resolve_region
from logger import setup_logging
from metrics import setup_metrics
from timing import TimingResult


class BenchmarkRunner:
    """Resolves the backend, runs the selected command and reports the outcome."""

    def __init__(self, config: RunnerConfig, workload: WorkloadSpec = WORKLOAD,
                 client_factory: Optional[Callable[..., ClientFactory]] = None,
                 echo: Callable[[str], None] = click.echo):
        self.config = config
        self.workload = workload
        self.echo = echo
        self.logger = setup_logging(config.log_level, config.log_file).get_logger()
        self.metrics = setup_metrics(
            otel_endpoint=config.otel_endpoint,
            service_name=config.otel_service_name,
            service_version=config.otel_service_version,
            otel_export_interval_ms=config.otel_export_interval_ms,
            app_name=config.app_name,
            run_id=config.run_id,
            version=config.version,
            service=config.connection.service,
            command=config.command or "unknown",
        )
        self._client_factory = client_factory or ClientFactory

    def run(self, command: Command) -> Optional[TimingResult]:
        """
        Execute the command once.

        The first error from client construction or from the backend stops
        the run and propagates to the caller.
        """
        connection = self.config.connection
        connection.region = resolve_region(connection.region)

        self.logger.info(f"Run ID: {self.metrics.run_id}")
        self.logger.info(f"Service: {connection.service}, region: {connection.region}, command: {command.value}")

        clients = self._client_factory(connection, self.metrics)
        start_time = time.time()
        cmd = None
        try:
            cmd = CommandFactory.create_command(command, self.config, clients,
                                                workload=self.workload, echo=self.echo)
            result = cmd.execute()
            self.logger.info(f"{command.value} completed in {time.time() - start_time:.3f}s")
            return result
        finally:
            if cmd is not None:
                cmd.client.close()
            self._output_final_summary()
            self.metrics.shutdown()

    def _output_final_summary(self):
        """Write the run summary to --output-file and/or stdout when asked for."""
        try:
            if self.config.output_file:
                self.metrics.export_final_summary_to_json(self.config.output_file)
                self.logger.info(f"Final run summary exported to {self.config.output_file}")
            if self.config.show_stats:
                self.metrics.print_summary()
        except OSError as e:
            self.logger.error(f"Failed to output final summary: {e}")
