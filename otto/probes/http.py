"""HTTP probe — an unexpected status code or unreachable endpoint is an incident."""

from __future__ import annotations

import httpx
import structlog

from otto.alerts.fanout import AlertGroups
from otto.core.config import HttpProbeConfig
from otto.core.store import IncidentStore
from otto.core.types import Notification
from otto.monitor.metrics import Metrics
from otto.probes.base import Probe
from otto.probes.exceptions import CheckError

logger = structlog.get_logger(__name__)


class HttpProbe(Probe):
    """Sends one request per check and compares the response status."""

    kind = "http"

    def __init__(
        self,
        config: HttpProbeConfig,
        metrics: Metrics | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, metrics)
        self._http = config
        self._transport = transport

    @property
    def method(self) -> str:
        return self._http.method

    @property
    def identity(self) -> str:
        return f"http-{self._http.url}-{self.method}-{self._http.expected_code}"

    @property
    def check(self) -> str:
        return (
            f"http {self.method} request to url {self._http.url} "
            f"with expected status code {self._http.expected_code}"
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._http.timeout_secs),
            transport=self._transport,
        )

    async def probe(self) -> Notification | None:
        """Send the request; return the incident notification, if any."""
        cfg = self._http
        kwargs: dict[str, object] = {"headers": cfg.headers}
        if cfg.body is not None:
            kwargs["json"] = cfg.body

        try:
            async with self._client() as client:
                resp = await client.request(self.method.upper(), cfg.url, **kwargs)  # type: ignore[arg-type]
        except httpx.RequestError as exc:
            return self.incident(
                title=f"{self.method} {cfg.url} want {cfg.expected_code} got error {exc!r}",
                message=f"expected status code is {cfg.expected_code} and got error {exc!r}",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise CheckError(f"failed to {self.method} request {cfg.url}: {exc}") from exc

        if resp.status_code == cfg.expected_code:
            return None
        return self.incident(
            title=f"{self.method} {cfg.url} want {cfg.expected_code} got {resp.status_code}",
            message=(
                f"expected status code is {cfg.expected_code} "
                f"and actual code is {resp.status_code}"
            ),
        )

    async def observe(self, store: IncidentStore, alerts: AlertGroups) -> None:
        logger.info(
            "http_probe_running",
            method=self.method,
            url=self._http.url,
            expected_code=self._http.expected_code,
        )
        await self.record_outcome(store, alerts, await self.probe())
