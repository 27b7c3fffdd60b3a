"""Metrics endpoint — serves the prometheus text format over HTTP.

Runs as an ``aiohttp`` web server alongside the scheduler.
Exposes:
- ``GET <path>`` → prometheus exposition of the injected ``Metrics``
"""

from __future__ import annotations

import structlog
from aiohttp import web

from otto.core.config import PrometheusConfig
from otto.core.exceptions import ConfigError
from otto.monitor.metrics import Metrics

logger = structlog.get_logger(__name__)


async def _handle_metrics(request: web.Request) -> web.Response:
    metrics: Metrics = request.app["metrics"]
    return web.Response(
        body=metrics.render(),
        headers={"Content-Type": metrics.content_type},
    )


def create_web_app(metrics: Metrics, path: str = "/metrics") -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application()
    app["metrics"] = metrics
    app.router.add_get(path, _handle_metrics)
    return app


def parse_listen(listen: str) -> tuple[str, int]:
    """Split a ``host:port`` listen address."""
    host, sep, port = listen.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"invalid prometheus listen address `{listen}`")
    return host or "0.0.0.0", int(port)


async def start_metrics_server(metrics: Metrics, config: PrometheusConfig) -> web.AppRunner:
    """Start the metrics server. Returns the runner for cleanup."""
    host, port = parse_listen(config.listen)
    app = create_web_app(metrics, config.path)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    try:
        await site.start()
    except OSError as exc:
        await runner.cleanup()
        raise ConfigError(f"could not listen on {config.listen}: {exc}") from exc
    logger.info("metrics_server_listening", host=host, port=port, path=config.path)
    return runner
