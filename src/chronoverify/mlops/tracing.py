"""
MLflow tracing for verification runs.
Each pipeline phase becomes a span; disabled tracing costs nothing.
"""
import logging
import time
from typing import Optional, Dict, Any
from contextlib import contextmanager

import mlflow

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)


class MLflowTracer:
    """Span-per-phase tracing. Tracing failures never fail a run."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.enabled = settings.MLFLOW_ENABLE_TRACING
        if self.enabled:
            try:
                mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)
                logger.info("MLflow tracing enabled")
            except Exception as e:
                logger.warning(f"Failed to initialize MLflow tracing: {e}")
                self.enabled = False

    @contextmanager
    def span(
        self,
        name: str,
        span_type: str = "CHAIN",
        inputs: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            name: span name, e.g. "phase_2.geolocate"
            span_type: "LLM", "RETRIEVER", "CHAIN", ...
            inputs: small JSON-able summary of the phase inputs
        """
        if not self.enabled:
            yield None
            return

        with mlflow.start_span(name=name, span_type=span_type) as span:
            if inputs:
                span.set_inputs(inputs)
            start_time = time.time()
            yield span
            span.set_attribute("latency_ms", int((time.time() - start_time) * 1000))

    def record(self, span, outputs: Dict[str, Any]):
        """Attach phase outputs to a span returned by span()."""
        if span is None:
            return
        try:
            span.set_outputs(outputs)
        except Exception as e:
            logger.warning(f"Failed to record span outputs: {e}")


tracer = MLflowTracer()
