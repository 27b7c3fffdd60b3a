"""Prometheus counters for probe runs and alert deliveries.

A single ``Metrics`` instance is created per process and handed to every
plugin instance at construction, so counters survive configuration reloads
without module-level state.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST


class Metrics:
    """Per-process metrics sink backed by its own ``CollectorRegistry``.

    Usage::

        metrics = Metrics()
        metrics.probe_run("http", "http-api")
        body = metrics.render()
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._probe_runs = Counter(
            "probe_runs_total",
            "Probe check runs",
            ["plugin", "name"],
            registry=self.registry,
        )
        self._probe_triggered = Counter(
            "probe_triggered_total",
            "Probe checks that found an incident",
            ["plugin", "name"],
            registry=self.registry,
        )
        self._probe_incident = Gauge(
            "probe_incident_active",
            "1 if the last check of the probe found an incident",
            ["plugin", "name"],
            registry=self.registry,
        )
        self._probe_errors = Counter(
            "probe_errors_total",
            "Probe checks that failed to run",
            ["plugin", "name"],
            registry=self.registry,
        )
        self._alert_runs = Counter(
            "alert_runs_total",
            "Alert delivery attempts",
            ["plugin", "target"],
            registry=self.registry,
        )
        self._alert_failures = Counter(
            "alert_failures_total",
            "Alert deliveries that failed",
            ["plugin", "target"],
            registry=self.registry,
        )
        self._notifications = Counter(
            "notifications_sent_total",
            "Notifications delivered to an alert sink",
            ["plugin", "name"],
            registry=self.registry,
        )

    # ── Probe side ──────────────────────────────────────────────

    def probe_run(self, plugin: str, name: str) -> None:
        self._probe_runs.labels(plugin=f"probe.{plugin}", name=name).inc()

    def probe_outcome(self, plugin: str, name: str, triggered: bool) -> None:
        labels = {"plugin": f"probe.{plugin}", "name": name}
        if triggered:
            self._probe_triggered.labels(**labels).inc()
        self._probe_incident.labels(**labels).set(1 if triggered else 0)

    def probe_error(self, plugin: str, name: str) -> None:
        self._probe_errors.labels(plugin=f"probe.{plugin}", name=name).inc()

    # ── Alert side ──────────────────────────────────────────────

    def alert_run(self, plugin: str, target: str) -> None:
        self._alert_runs.labels(plugin=f"alert.{plugin}", target=target).inc()

    def alert_failure(self, plugin: str, target: str) -> None:
        self._alert_failures.labels(plugin=f"alert.{plugin}", target=target).inc()

    def notification_sent(self, source: str, name: str) -> None:
        self._notifications.labels(plugin=f"probe.{source}", name=name).inc()

    # ── Exposition ──────────────────────────────────────────────

    def render(self) -> bytes:
        """Text exposition format of every registered metric."""
        return generate_latest(self.registry)

    def value(self, metric: str, **labels: str) -> float | None:
        """Current sample value, mainly for tests and diagnostics."""
        return self.registry.get_sample_value(metric, labels)
