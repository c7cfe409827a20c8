"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    AccountMetrics,
    get_account_metrics,
    get_metrics_handler,
)

__all__ = [
    "AccountMetrics",
    "get_account_metrics",
    "get_metrics_handler",
]
