"""Feed probes — Atom and RSS entries matching a pattern are incidents."""

from __future__ import annotations

import abc
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from html import unescape

import httpx
import structlog

from otto.alerts.fanout import AlertGroups
from otto.core.config import AtomProbeConfig, RssProbeConfig
from otto.core.store import IncidentStore
from otto.core.types import MessageEntry, Notification
from otto.monitor.metrics import Metrics
from otto.probes.base import Probe
from otto.probes.exceptions import CheckError

logger = structlog.get_logger(__name__)

ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}

# Only the newest entries are examined on each check.
_MAX_ENTRIES = 5

_MESSAGE_SEPARATOR = "\n\n------------------------------\n\n"
_HTML_SEPARATOR = "<br><br><hr><br><br>"

_BREAK_TAGS = re.compile(r"<\s*(br|/p|/div|/li|/h[1-6])\s*/?\s*>", re.IGNORECASE)
_TAGS = re.compile(r"<[^>]+>")
_BLANK_LINES = re.compile(r"\n\s*\n+")


@dataclass
class FeedEntry:
    """One entry or item from a feed."""

    title: str
    link: str
    body: str


def html_to_text(html: str) -> str:
    """Strip markup from an HTML fragment, keeping line breaks."""
    text = _BREAK_TAGS.sub("\n", html)
    text = unescape(_TAGS.sub("", text))
    return _BLANK_LINES.sub("\n\n", text).strip()


def _text(element: ET.Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def parse_atom(content: bytes) -> list[FeedEntry]:
    """Parse an Atom document into entries (document order)."""
    root = ET.fromstring(content)
    entries: list[FeedEntry] = []
    for entry in root.findall("atom:entry", ATOM_NS):
        link_el = entry.find("atom:link", ATOM_NS)
        link = link_el.get("href", "") if link_el is not None else ""
        body = _text(entry.find("atom:content", ATOM_NS)) or _text(
            entry.find("atom:summary", ATOM_NS)
        )
        entries.append(FeedEntry(title=_text(entry.find("atom:title", ATOM_NS)), link=link, body=body))
    return entries


def parse_rss(content: bytes) -> list[FeedEntry]:
    """Parse an RSS 2.0 document into items (document order)."""
    root = ET.fromstring(content)
    channel = root.find("channel")
    if channel is None:
        raise ET.ParseError("missing <channel> element")
    return [
        FeedEntry(
            title=_text(item.find("title")),
            link=_text(item.find("link")),
            body=_text(item.find("description")),
        )
        for item in channel.findall("item")
    ]


class FeedProbe(Probe):
    """Shared fetch / match / batch logic for feed probes."""

    def __init__(
        self,
        config: AtomProbeConfig | RssProbeConfig,
        metrics: Metrics | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, metrics)
        self._feed = config
        self._transport = transport

    @property
    @abc.abstractmethod
    def body_regex(self) -> str | None:
        """Pattern applied to each entry body."""

    @abc.abstractmethod
    def parse(self, content: bytes) -> list[FeedEntry]:
        """Parse the raw feed document."""

    @property
    def feed_url(self) -> str:
        return self._feed.feed_url

    @property
    def identity(self) -> str:
        return (
            f"{self.kind}-{self._feed.feed_url}-"
            f"{self._feed.title_regex or ''}-{self.body_regex or ''}"
        )

    @property
    def check(self) -> str:
        return f"Incidents from {self.kind.upper()} feed {self._feed.feed_url}"

    def _compile(self, pattern: str | None) -> re.Pattern[str] | None:
        if pattern is None:
            return None
        try:
            return re.compile(pattern)
        except re.error as exc:
            raise CheckError(f"failed parsing regex {pattern}: {exc}") from exc

    async def fetch(self) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._feed.timeout_secs),
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(self._feed.feed_url)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CheckError(
                f"feed {self._feed.feed_url} returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CheckError(f"failed fetching feed {self._feed.feed_url}: {exc}") from exc
        return response.content

    def matches(self, entry: FeedEntry) -> bool:
        """An entry matches if any configured pattern finds a hit."""
        title_re = self._compile(self._feed.title_regex)
        body_re = self._compile(self.body_regex)
        if title_re is not None and title_re.search(entry.title):
            return True
        return body_re is not None and body_re.search(entry.body) is not None

    def build_incident(self, entries: list[FeedEntry]) -> Notification:
        messages: list[str] = []
        messages_html: list[str] = []
        message_entries: list[tuple[int, MessageEntry]] = []
        for index, entry in enumerate(entries):
            body_html = entry.body or f"Found incident from {self._feed.feed_url}."
            body_text = html_to_text(body_html)
            messages.append(f"{entry.title}\n{entry.link}\n{body_text}")
            messages_html.append(f"{entry.title}<br>{entry.link}<br>{body_html}")
            message_entries.append(
                (index, MessageEntry(title=entry.title, description=f"{entry.link}\n{body_text}"))
            )
        return self.incident(
            title=f"Found {len(entries)} incident(s) from {self._feed.feed_url}",
            message=_MESSAGE_SEPARATOR.join(messages),
            message_html=_HTML_SEPARATOR.join(messages_html),
            message_entries=tuple(message_entries),
        )

    async def observe(self, store: IncidentStore, alerts: AlertGroups) -> None:
        logger.info("feed_probe_running", kind=self.kind, feed_url=self._feed.feed_url)
        content = await self.fetch()
        try:
            entries = self.parse(content)
        except ET.ParseError as exc:
            raise CheckError(f"failed parsing feed {self._feed.feed_url}: {exc}") from exc

        found = [entry for entry in entries[:_MAX_ENTRIES] if self.matches(entry)]
        if not found:
            await self.record_outcome(store, alerts, None)
            return

        logger.info(
            "feed_probe_matched",
            kind=self.kind,
            feed_url=self._feed.feed_url,
            count=len(found),
        )
        await self.record_outcome(store, alerts, self.build_incident(found))


class AtomProbe(FeedProbe):
    """Matches ``title_regex`` / ``content_regex`` against Atom entries."""

    kind = "atom"

    def __init__(
        self,
        config: AtomProbeConfig,
        metrics: Metrics | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, metrics, transport)
        self._atom = config

    @property
    def body_regex(self) -> str | None:
        return self._atom.content_regex

    def parse(self, content: bytes) -> list[FeedEntry]:
        return parse_atom(content)


class RssProbe(FeedProbe):
    """Matches ``title_regex`` / ``description_regex`` against RSS items."""

    kind = "rss"

    def __init__(
        self,
        config: RssProbeConfig,
        metrics: Metrics | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, metrics, transport)
        self._rss = config

    @property
    def body_regex(self) -> str | None:
        return self._rss.description_regex

    def parse(self, content: bytes) -> list[FeedEntry]:
        return parse_rss(content)
