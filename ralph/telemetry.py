"""Telemetry setup for OpenTelemetry traces and metrics.

Exports to an OTLP collector when OTLP_ENABLED=true; otherwise falls back to
in-process providers that record nothing externally.
"""

import logging
import os

from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider

from ralph.config import RalphConfig

logger = logging.getLogger(__name__)

# Exporter retries are noisy while the collector is down
logging.getLogger("opentelemetry.exporter.otlp.proto.grpc").setLevel(logging.ERROR)


class LoopMetrics:
    """Metric instruments for the loop.

    Counters:
        ralph_iterations_total: Iterations by resolved status
        ralph_tokens_total: Tokens by direction (input/output)
        ralph_cost_usd_total: Estimated cost in USD
        ralph_retries_total: Retries by attempt class

    Histograms:
        ralph_iteration_duration_seconds: Wall time of an iteration
    """

    def __init__(self, meter: metrics.Meter) -> None:
        self.iterations = meter.create_counter(
            "ralph_iterations_total",
            description="Total iterations executed",
        )
        self.tokens = meter.create_counter(
            "ralph_tokens_total",
            description="Total tokens used",
        )
        self.cost = meter.create_counter(
            "ralph_cost_usd_total",
            description="Total estimated cost in USD",
        )
        self.retries = meter.create_counter(
            "ralph_retries_total",
            description="Total worker retries",
        )
        self.iteration_duration = meter.create_histogram(
            "ralph_iteration_duration_seconds",
            description="Iteration duration",
            unit="s",
        )


def otlp_enabled(config: RalphConfig) -> bool:
    """Whether traces and metrics should leave the process."""
    return os.getenv("OTLP_ENABLED", "false").lower() == "true" and bool(config.otlp_endpoint)


def _otlp_pipeline(endpoint: str) -> tuple[list, list]:
    """Span processors and metric readers exporting to a gRPC OTLP collector.

    The exporter package is the optional ``otlp`` extra, so it is imported
    only when export is switched on.
    """
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
        OTLPMetricExporter,
    )
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    processors = [BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint))]
    readers = [PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=endpoint))]
    return processors, readers


def setup_telemetry(config: RalphConfig) -> tuple[trace.Tracer, metrics.Meter]:
    """Install tracer and meter providers tagged with the loop's service name.

    Returns:
        Tuple of (tracer, meter) for the iteration spans and LoopMetrics
    """
    processors: list = []
    readers: list = []
    if otlp_enabled(config):
        logger.debug(f"Exporting telemetry to {config.otlp_endpoint}")
        processors, readers = _otlp_pipeline(config.otlp_endpoint)

    resource = Resource.create({"service.name": config.service_name})
    tracer_provider = TracerProvider(resource=resource)
    for processor in processors:
        tracer_provider.add_span_processor(processor)
    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=readers))

    return trace.get_tracer(config.service_name), metrics.get_meter(config.service_name)
