"""Metrics sink and exposition endpoint."""

from otto.monitor.metrics import Metrics
from otto.monitor.web import create_web_app, start_metrics_server

__all__ = [
    "Metrics",
    "create_web_app",
    "start_metrics_server",
]
