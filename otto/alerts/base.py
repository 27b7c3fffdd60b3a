"""Base class for alert sinks."""

from __future__ import annotations

import abc
from typing import ClassVar

import aiohttp

from otto.core.config import AlertConfig
from otto.core.types import Notification
from otto.monitor.metrics import Metrics


class Alert(abc.ABC):
    """A configured delivery sink that turns a Notification into a message.

    Subclasses set ``kind`` and implement ``notify()`` and ``target``; the
    base class owns the namepass filter and a lazily created HTTP session.
    """

    kind: ClassVar[str]

    def __init__(self, config: AlertConfig, metrics: Metrics | None = None) -> None:
        self._config = config
        self._metrics = metrics or Metrics()
        self._session: aiohttp.ClientSession | None = None

    @property
    def config(self) -> AlertConfig:
        return self._config

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @property
    @abc.abstractmethod
    def target(self) -> str:
        """Redacted destination used in logs and metric labels."""

    def namepass(self) -> list[str] | None:
        """Glob allow-list of notification names, or None for all."""
        return list(self._config.namepass) if self._config.namepass is not None else None

    @abc.abstractmethod
    async def notify(self, notification: Notification) -> None:
        """Deliver *notification*; raise DeliveryError on failure."""

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(target={self.target!r})"
