"""Tests for telemetry module.

These tests verify OpenTelemetry setup for traces and metrics.
"""

import os
from unittest.mock import MagicMock, patch

from ralph.config import RalphConfig
from ralph.telemetry import LoopMetrics, otlp_enabled, setup_telemetry


class TestSetupTelemetry:
    """Test setup_telemetry function."""

    def test_setup_returns_tracer_and_meter(self):
        """setup_telemetry should return a tracer and meter."""
        config = RalphConfig()

        # With OTLP disabled (default), in-process providers are used
        tracer, meter = setup_telemetry(config)

        assert tracer is not None
        assert meter is not None

    def test_otlp_disabled_by_default(self):
        """No exporter is created unless OTLP_ENABLED=true."""
        with patch.dict(os.environ, {"OTLP_ENABLED": "false"}):
            with patch(
                "opentelemetry.sdk.trace.export.BatchSpanProcessor"
            ) as mock_processor:
                setup_telemetry(RalphConfig())

        mock_processor.assert_not_called()

    def test_exports_to_configured_endpoint_when_enabled(self):
        """OTLP_ENABLED=true builds the export pipeline for the endpoint."""
        config = RalphConfig(otlp_endpoint="http://collector:4317")
        with patch.dict(os.environ, {"OTLP_ENABLED": "true"}):
            with patch(
                "ralph.telemetry._otlp_pipeline", return_value=([], [])
            ) as mock_pipeline:
                setup_telemetry(config)

        mock_pipeline.assert_called_once_with("http://collector:4317")

    def test_empty_endpoint_disables_export(self):
        with patch.dict(os.environ, {"OTLP_ENABLED": "true"}):
            assert not otlp_enabled(RalphConfig(otlp_endpoint=""))
            assert otlp_enabled(RalphConfig(otlp_endpoint="http://collector:4317"))


class TestLoopMetrics:
    """Test metric instrument creation."""

    def test_creates_instruments(self):
        """LoopMetrics should create the ralph counters and histogram."""
        meter = MagicMock()

        LoopMetrics(meter)

        counter_names = [c.args[0] for c in meter.create_counter.call_args_list]
        assert counter_names == [
            "ralph_iterations_total",
            "ralph_tokens_total",
            "ralph_cost_usd_total",
            "ralph_retries_total",
        ]
        meter.create_histogram.assert_called_once()
        assert (
            meter.create_histogram.call_args.args[0]
            == "ralph_iteration_duration_seconds"
        )

    def test_instruments_accept_measurements(self):
        """Instruments from a real meter accept measurements."""
        _, meter = setup_telemetry(RalphConfig())
        metrics = LoopMetrics(meter)

        metrics.iterations.add(1, {"status": "success"})
        metrics.tokens.add(10, {"direction": "input"})
        metrics.iteration_duration.record(1.5)
