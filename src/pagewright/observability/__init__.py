"""Metrics and log hygiene helpers."""

from .logging_utils import redact_payload
from .metrics import MetricsRegistry, default_metrics

__all__ = ["MetricsRegistry", "default_metrics", "redact_payload"]
