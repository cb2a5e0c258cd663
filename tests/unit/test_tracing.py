"""Tests for MLflow span tracing."""
from unittest.mock import Mock, patch

from chronoverify.mlops.tracing import MLflowTracer


class TestTracerDisabled:

    def test_span_yields_none(self, settings):
        tracer = MLflowTracer(settings)
        with tracer.span("phase_1.clues") as span:
            assert span is None
        tracer.record(span, {"clues": "x"})


class TestTracerEnabled:

    @patch("chronoverify.mlops.tracing.mlflow")
    def test_initialization_sets_tracking_uri(self, mock_mlflow, settings):
        settings.MLFLOW_ENABLE_TRACING = True
        settings.MLFLOW_TRACKING_URI = "http://localhost:5000"
        tracer = MLflowTracer(settings)
        assert tracer.enabled is True
        mock_mlflow.set_tracking_uri.assert_called_once_with("http://localhost:5000")

    @patch("chronoverify.mlops.tracing.mlflow")
    @patch("chronoverify.mlops.tracing.time")
    def test_span_records_inputs_and_latency(self, mock_time, mock_mlflow, settings):
        settings.MLFLOW_ENABLE_TRACING = True
        tracer = MLflowTracer(settings)
        mock_span = Mock()
        mock_mlflow.start_span.return_value.__enter__.return_value = mock_span
        mock_time.time.side_effect = [1000.0, 1001.5]

        with tracer.span("phase_2.geolocate", "LLM", inputs={"region": "Gaza"}) as span:
            tracer.record(span, {"address": "Gaza City"})

        assert mock_mlflow.start_span.call_args.kwargs == {"name": "phase_2.geolocate", "span_type": "LLM"}
        mock_span.set_inputs.assert_called_once_with({"region": "Gaza"})
        mock_span.set_outputs.assert_called_once_with({"address": "Gaza City"})
        mock_span.set_attribute.assert_called_once_with("latency_ms", 1500)

    @patch("chronoverify.mlops.tracing.mlflow")
    def test_bad_tracking_uri_disables_tracing(self, mock_mlflow, settings):
        settings.MLFLOW_ENABLE_TRACING = True
        mock_mlflow.set_tracking_uri.side_effect = Exception("bad uri")
        assert MLflowTracer(settings).enabled is False
