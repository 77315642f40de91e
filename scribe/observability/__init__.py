"""Logging and Prometheus metrics."""

from __future__ import annotations

from scribe.observability.logging import configure_logging
from scribe.observability.metrics import MetricsMiddleware, metrics_response

__all__ = ["MetricsMiddleware", "configure_logging", "metrics_response"]
