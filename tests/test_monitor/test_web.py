"""Tests for the metrics endpoint — routing, content type, listen parsing."""

from __future__ import annotations

import pytest
from aiohttp import test_utils

from otto.core.config import PrometheusConfig
from otto.core.exceptions import ConfigError
from otto.monitor.metrics import Metrics
from otto.monitor.web import create_web_app, parse_listen, start_metrics_server


class TestMetricsEndpoint:
    async def test_serves_metrics(self) -> None:
        metrics = Metrics()
        metrics.probe_run("http", "http-api")
        app = create_web_app(metrics)

        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/metrics")
            assert resp.status == 200
            assert resp.headers["Content-Type"].startswith("text/plain")
            body = await resp.text()

        assert 'probe_runs_total{plugin="probe.http",name="http-api"} 1.0' in body

    async def test_custom_path(self) -> None:
        app = create_web_app(Metrics(), path="/internal/metrics")
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            assert (await client.get("/internal/metrics")).status == 200
            assert (await client.get("/metrics")).status == 404

    async def test_other_paths_404(self) -> None:
        app = create_web_app(Metrics())
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.get("/")
            assert resp.status == 404

    async def test_start_and_cleanup(self) -> None:
        runner = await start_metrics_server(Metrics(), PrometheusConfig(listen="127.0.0.1:0"))
        assert runner.addresses
        await runner.cleanup()


class TestParseListen:
    def test_host_and_port(self) -> None:
        assert parse_listen("127.0.0.1:9090") == ("127.0.0.1", 9090)

    def test_port_only(self) -> None:
        assert parse_listen(":9100") == ("0.0.0.0", 9100)

    @pytest.mark.parametrize("listen", ["localhost", "localhost:http", ""])
    def test_invalid(self, listen: str) -> None:
        with pytest.raises(ConfigError):
            parse_listen(listen)
