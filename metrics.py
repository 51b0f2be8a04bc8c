"""
Metrics collection and export for the DAX benchmark with optional OpenTelemetry support.
"""
import time
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field, asdict
from typing import Dict, Optional, Deque
import statistics
import json
import uuid

import click
from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

from logger import get_logger


@dataclass
class OperationMetrics:
    """Metrics for a specific operation type."""
    total_count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration: float = 0.0
    latencies: Deque[float] = field(default_factory=lambda: deque(maxlen=10000))
    errors_by_type: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class Statistics:
    """Final run statistics."""
    app_name: str = "python"
    run_id: str = "unknown"
    version: str = "unknown"
    service: str = "unknown"
    command: str = "unknown"
    run_start: float = 0.0
    run_end: float = 0.0
    total_commands_count: int = 0
    successful_commands_count: int = 0
    failed_commands_count: int = 0
    overall_throughput: float = 0.0
    overall_success_rate: float = 0.0
    client_init_duration_ms: float = 0.0
    min_latency_ms: float = 0.0
    max_latency_ms: float = 0.0
    median_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0
    avg_latency_ms: float = 0.0

    def __post_init__(self):
        """Set run_start time if not provided."""
        if self.run_start == 0.0:
            self.run_start = time.time()


class MetricsCollector:
    """Per-operation metrics for DynamoDB/DAX calls, optionally pushed over OTLP."""

    def __init__(self, otel_endpoint: Optional[str] = None,
                 service_name: str = "dax-bench", service_version: str = "1.0.0",
                 otel_export_interval_ms: int = 5000, app_name: str = "python",
                 run_id: str = None, version: str = None,
                 service: str = "unknown", command: str = "unknown"):
        self.logger = get_logger()
        self.otel_endpoint = otel_endpoint
        self.service_name = service_name
        self.service_version = service_version
        self.otel_export_interval_ms = otel_export_interval_ms
        self.app_name = app_name
        self.run_id = run_id if run_id and run_id.strip() else str(uuid.uuid4())
        self.version = version or "unknown"
        self.service = service
        self.command = command

        self._lock = threading.RLock()
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._start_time = time.time()
        self._client_init_duration = 0.0

        self._meter_provider = None
        self.otel_operations_counter = None
        self.otel_operation_duration = None
        self.otel_client_init_duration = None

        if self.otel_endpoint:
            self._setup_opentelemetry()

    def _setup_opentelemetry(self):
        """Setup OpenTelemetry metrics export."""
        try:
            resource = Resource.create({
                "service.name": self.app_name,
                "service.version": self.version
            })

            metric_exporter = OTLPMetricExporter(
                endpoint=self.otel_endpoint,
                insecure=True
            )
            metric_reader = PeriodicExportingMetricReader(
                exporter=metric_exporter,
                export_interval_millis=self.otel_export_interval_ms
            )

            self._meter_provider = MeterProvider(
                resource=resource,
                metric_readers=[metric_reader]
            )
            otel_metrics.set_meter_provider(self._meter_provider)

            self.meter = otel_metrics.get_meter(self.service_name, self.service_version)

            self.otel_operations_counter = self.meter.create_counter(
                name="dynamodb_operations_total",
                description="Total number of DynamoDB/DAX operations",
                unit="1"
            )

            self.otel_operation_duration = self.meter.create_histogram(
                name="dynamodb_operation_duration",
                description="Duration of DynamoDB/DAX operations in milliseconds",
                unit="ms"
            )

            self.otel_client_init_duration = self.meter.create_histogram(
                name="dynamodb_client_init_duration",
                description="Duration of client init (session setup, DAX cluster discovery)",
                unit="ms"
            )

            self.logger.info(f"OpenTelemetry setup completed with endpoint: {self.otel_endpoint}")

        except Exception as e:
            self.logger.error(f"Failed to setup OpenTelemetry: {e}")
            raise

    def _labels(self, **extra) -> Dict[str, str]:
        labels = {
            "app_name": self.app_name,
            "run_id": self.run_id,
            "version": self.version,
            "service": self.service,
        }
        labels.update(extra)
        return labels

    def record_operation(self, operation: str, duration: float, success: bool, error_type: str = None):
        """Record metrics for a single backend call."""
        with self._lock:
            metrics = self._metrics[operation]
            metrics.total_count += 1
            metrics.total_duration += duration
            metrics.latencies.append(duration)

            if success:
                metrics.success_count += 1
            else:
                metrics.error_count += 1
                if error_type:
                    metrics.errors_by_type[error_type] += 1

        if self.otel_operations_counter is None:
            return

        status = 'success' if success else 'error'
        self.otel_operations_counter.add(
            1, self._labels(operation=operation, status=status, error_type=error_type or "none")
        )
        self.otel_operation_duration.record(
            duration * 1000, self._labels(operation=operation, status=status)
        )

    def record_client_init_duration(self, duration: float, client: str = "direct"):
        """Record the duration of a client initialization."""
        with self._lock:
            self._client_init_duration = duration

        if self.otel_client_init_duration is not None:
            self.otel_client_init_duration.record(duration * 1000, self._labels(client=client))

    def get_metrics(self) -> Dict[str, OperationMetrics]:
        """Snapshot of per-operation metrics."""
        with self._lock:
            return dict(self._metrics)

    def get_overall_stats(self) -> Dict:
        """Get overall statistics across all operations."""
        with self._lock:
            current_time = time.time()
            total_duration = current_time - self._start_time

            total_ops = sum(m.total_count for m in self._metrics.values())
            total_success = sum(m.success_count for m in self._metrics.values())
            total_errors = sum(m.error_count for m in self._metrics.values())

            return {
                'total_operations': total_ops,
                'successful_operations': total_success,
                'failed_operations': total_errors,
                'run_start': self._start_time,
                'run_end': current_time,
                'overall_throughput': total_ops / total_duration if total_duration > 0 else 0,
                'overall_success_rate': total_success / total_ops if total_ops > 0 else 0,
            }

    def get_final_test_summary(self) -> Statistics:
        """Get final run summary."""
        stats = self.get_overall_stats()

        all_latencies = []
        with self._lock:
            for metrics in self._metrics.values():
                all_latencies.extend(list(metrics.latencies))
            client_init_duration = self._client_init_duration

        latency_stats = {}
        if all_latencies:
            latencies_ms = [lat * 1000 for lat in all_latencies]
            latency_stats = {
                "min_latency_ms": round(min(latencies_ms), 2),
                "max_latency_ms": round(max(latencies_ms), 2),
                "median_latency_ms": round(statistics.median(latencies_ms), 2),
                "p95_latency_ms": round(statistics.quantiles(latencies_ms, n=20)[18] if len(latencies_ms) >= 20 else max(latencies_ms), 2),
                "p99_latency_ms": round(statistics.quantiles(latencies_ms, n=100)[98] if len(latencies_ms) >= 100 else max(latencies_ms), 2),
                "avg_latency_ms": round(sum(latencies_ms) / len(latencies_ms), 2)
            }

        summary = Statistics(self.app_name, self.run_id, self.version, self.service, self.command)
        summary.total_commands_count = stats['total_operations']
        summary.successful_commands_count = stats['successful_operations']
        summary.failed_commands_count = stats['failed_operations']
        summary.run_start = stats['run_start']
        summary.run_end = stats['run_end']
        summary.overall_throughput = round(stats['overall_throughput'], 2)
        summary.overall_success_rate = round(stats['overall_success_rate'] * 100, 2)
        summary.client_init_duration_ms = round(client_init_duration * 1000, 2)

        summary.min_latency_ms = latency_stats.get("min_latency_ms", 0.0)
        summary.max_latency_ms = latency_stats.get("max_latency_ms", 0.0)
        summary.median_latency_ms = latency_stats.get("median_latency_ms", 0.0)
        summary.p95_latency_ms = latency_stats.get("p95_latency_ms", 0.0)
        summary.p99_latency_ms = latency_stats.get("p99_latency_ms", 0.0)
        summary.avg_latency_ms = latency_stats.get("avg_latency_ms", 0.0)

        return summary

    def export_final_summary_to_json(self, file_path: str):
        """Export final run summary to JSON file."""
        summary = self.get_final_test_summary()
        with open(file_path, 'w') as f:
            json.dump(asdict(summary), f, indent=2)

    def print_summary(self):
        """Print final run summary."""
        summary = self.get_final_test_summary()

        click.echo("\n" + "=" * 60)
        click.echo("FINAL RUN SUMMARY")
        click.echo("=" * 60)
        click.echo(f"Service: {summary.service}")
        click.echo(f"Command: {summary.command}")
        click.echo(f"Total run time: {summary.run_end - summary.run_start:.2f}s")
        click.echo(f"Client init: {summary.client_init_duration_ms:.2f}ms")
        click.echo(f"Total Calls: {summary.total_commands_count:,}")
        click.echo(f"Successful Calls: {summary.successful_commands_count:,}")
        click.echo(f"Failed Calls: {summary.failed_commands_count:,}")
        click.echo(f"Success Rate: {summary.overall_success_rate}%")
        click.echo(f"Overall Throughput: {summary.overall_throughput:,} ops/sec")
        if summary.total_commands_count > 0:
            click.echo(
                f"Latency (ms): min {summary.min_latency_ms} / median {summary.median_latency_ms} / "
                f"p95 {summary.p95_latency_ms} / p99 {summary.p99_latency_ms} / max {summary.max_latency_ms}"
            )
            click.echo("Per operation:")
            for operation, op_metrics in sorted(self.get_metrics().items()):
                click.echo(
                    f"  {operation}: {op_metrics.total_count:,} calls, "
                    f"{op_metrics.error_count:,} errors, {op_metrics.total_duration:.3f}s total"
                )
        click.echo("=" * 60)

    def shutdown(self):
        """Flush and stop the OpenTelemetry exporter, if one was started."""
        if self._meter_provider is not None:
            try:
                self._meter_provider.shutdown()
            except Exception as e:
                self.logger.warning(f"Error shutting down OpenTelemetry: {e}")
            finally:
                self._meter_provider = None


# Global metrics collector instance
_metrics_collector = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def setup_metrics(otel_endpoint: Optional[str] = None,
                  service_name: str = "dax-bench", service_version: str = "1.0.0",
                  otel_export_interval_ms: int = 5000, app_name: str = "python",
                  run_id: str = None, version: str = None,
                  service: str = "unknown", command: str = "unknown") -> MetricsCollector:
    """Setup global metrics collector."""
    global _metrics_collector
    _metrics_collector = MetricsCollector(
        otel_endpoint=otel_endpoint,
        service_name=service_name,
        service_version=service_version,
        otel_export_interval_ms=otel_export_interval_ms,
        app_name=app_name,
        run_id=run_id,
        version=version,
        service=service,
        command=command
    )
    return _metrics_collector
