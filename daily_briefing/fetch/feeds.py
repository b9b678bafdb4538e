"""
RSS/Atom feed fetching.

Feeds are fetched with an async httpx client in sequential batches and
parsed with feedparser. A failing feed only loses its own entries; the
remaining feeds in the batch are unaffected.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
import logging
from typing import Iterable
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from dateutil.parser import parse as parse_date
import feedparser
import httpx

from ..config import FeedsConfig
from ..core.dedup import dedup_by_url
from ..core.types import Article
from ..input.opml import FeedSource
from ..utils.logging import get_logger, log_event

# Abbreviations dateutil cannot resolve on its own but feeds still emit.
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
}

UNTITLED = "Untitled"
UNKNOWN_AUTHOR = "Unknown"


class FeedParseError(ValueError):
    """Raised when a feed body cannot be parsed into any entries."""


class FeedFetcher:
    """Fetch many feeds concurrently and return their entries as Articles.

    Args:
        cfg: Feed fetching configuration
        transport: Optional httpx transport (tests pass httpx.MockTransport)
        logger: Logger for fetch events
    """

    def __init__(
        self,
        cfg: FeedsConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cfg = cfg
        self._transport = transport
        self.logger = logger or get_logger("fetch")

    def fetch_all(self, sources: Iterable[FeedSource]) -> list[Article]:
        """Synchronous entry point for callers outside an event loop."""
        return asyncio.run(self.fetch_all_async(sources))

    async def fetch_all_async(self, sources: Iterable[FeedSource]) -> list[Article]:
        sources = list(sources)
        if not sources:
            return []

        batch_size = max(1, self.cfg.batch_size)
        semaphore = asyncio.Semaphore(batch_size)
        batches = [sources[i : i + batch_size] for i in range(0, len(sources), batch_size)]
        collected: list[Article] = []

        async with httpx.AsyncClient(
            timeout=self.cfg.timeout_seconds,
            headers={"User-Agent": self.cfg.user_agent},
            follow_redirects=True,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            for index, batch in enumerate(batches, start=1):
                log_event(
                    self.logger,
                    f"Fetching batch {index}/{len(batches)}",
                    event="fetch_batch",
                    batch=index,
                    batches=len(batches),
                    feeds=len(batch),
                )

                async def _bounded(source: FeedSource) -> list[Article]:
                    async with semaphore:
                        return await self.fetch_source(client, source)

                # gather() preserves input order, so first-sight dedup is stable.
                tasks = [asyncio.create_task(_bounded(source)) for source in batch]
                for entries in await asyncio.gather(*tasks):
                    collected.extend(entries)

                if index < len(batches) and self.cfg.delay_seconds > 0:
                    await asyncio.sleep(self.cfg.delay_seconds)

        unique = dedup_by_url(collected)
        log_event(
            self.logger,
            f"Fetched {len(unique)} unique articles from {len(sources)} feeds",
            event="fetch_complete",
            feeds=len(sources),
            entries=len(collected),
            unique=len(unique),
        )
        return unique

    async def fetch_source(self, client: httpx.AsyncClient, source: FeedSource) -> list[Article]:
        """Fetch one feed; every failure is logged and yields no entries."""
        try:
            resp = await client.get(source.xml_url)
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log_event(
                self.logger,
                f"Failed to fetch {source.xml_url}: {exc}",
                event="feed_fetch_failed",
                level=logging.WARNING,
                url=source.xml_url,
                error=f"{type(exc).__name__}: {exc}",
            )
            return []

        try:
            entries = parse_feed(resp.content, source, fetched_at=datetime.now(timezone.utc))
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                f"Failed to parse {source.xml_url}: {exc}",
                event="feed_parse_failed",
                level=logging.WARNING,
                url=source.xml_url,
                error=f"{type(exc).__name__}: {exc}",
            )
            return []

        log_event(
            self.logger,
            f"Fetched {len(entries)} entries from {source.xml_url}",
            event="feed_fetched",
            level=logging.DEBUG,
            url=source.xml_url,
            entries=len(entries),
        )
        return entries


def parse_feed(body: bytes | str, source: FeedSource, fetched_at: datetime) -> list[Article]:
    """Parse a feed document into Articles.

    Entries without a link are dropped. A document that feedparser flags as
    malformed is still accepted when it produced entries.

    Raises:
        FeedParseError: If the document is malformed and has no entries
    """
    parsed = feedparser.parse(body)
    if parsed.bozo and not parsed.entries:
        raise FeedParseError(str(parsed.get("bozo_exception") or "unparseable feed"))

    source_name = (
        (parsed.feed.get("title") or "").strip()
        or source.title
        or urlparse(source.xml_url).hostname
        or source.xml_url
    )

    articles: list[Article] = []
    for entry in parsed.entries:
        url = (entry.get("link") or "").strip()
        if not url:
            continue
        articles.append(
            Article(
                url=url,
                title=(entry.get("title") or "").strip() or UNTITLED,
                author=(entry.get("author") or "").strip() or UNKNOWN_AUTHOR,
                source_name=source_name,
                published_at=_entry_published(entry),
                fetched_at=fetched_at,
                content=_entry_body(entry),
            )
        )
    return articles


def _entry_published(entry) -> datetime | None:
    """Publish time of an entry, or None so the fetch time stands in."""
    raw = entry.get("published") or entry.get("updated")
    if raw:
        try:
            dt = parse_date(raw, tzinfos=TZINFOS)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
        except (ValueError, OverflowError):
            pass

    struct = entry.get("published_parsed") or entry.get("updated_parsed")
    if struct:
        return datetime(*struct[:6], tzinfo=timezone.utc)
    return None


def _entry_body(entry) -> str:
    content = entry.get("content")
    if content:
        html = content[0].get("value") or ""
    else:
        html = entry.get("summary") or entry.get("description") or ""
    return html_to_text(html)


def html_to_text(html: str) -> str:
    if not html:
        return ""
    if "<" not in html:
        return " ".join(html.split())
    soup = BeautifulSoup(html, "html.parser")
    return soup.get_text(" ", strip=True)
