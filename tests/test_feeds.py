"""Tests for RSS fetching with a mocked HTTP transport."""

from datetime import datetime, timezone
import logging

import httpx

from daily_briefing.config import FeedsConfig
from daily_briefing.fetch.feeds import FeedFetcher, html_to_text, parse_feed
from daily_briefing.input.opml import FeedSource

RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Example Feed</title>
    <link>https://example.com/</link>
    <item>
      <title>First &amp; best</title>
      <link>https://example.com/1</link>
      <pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate>
      <dc:creator>Alice</dc:creator>
      <description>&lt;p&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;</description>
    </item>
    <item>
      <link>https://example.com/2</link>
    </item>
    <item>
      <title>No link here</title>
    </item>
  </channel>
</rss>
"""

FETCHED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _cfg() -> FeedsConfig:
    return FeedsConfig(batch_size=2, delay_seconds=0, timeout_seconds=1)


def test_parse_feed_extracts_entries_with_fallbacks():
    source = FeedSource(title="OPML name", xml_url="https://example.com/rss")

    articles = parse_feed(RSS, source, fetched_at=FETCHED_AT)

    assert [a.url for a in articles] == ["https://example.com/1", "https://example.com/2"]
    first, second = articles
    assert first.title == "First & best"
    assert first.author == "Alice"
    assert first.source_name == "Example Feed"
    assert first.published_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert first.content == "Hello world"
    assert first.fetched_at == FETCHED_AT
    assert second.title == "Untitled"
    assert second.author == "Unknown"
    assert second.published_at is None
    assert second.effective_published_at == FETCHED_AT


def test_html_to_text_strips_markup():
    assert html_to_text("<div><p>One</p><p>Two &amp; three</p></div>") == "One Two & three"
    assert html_to_text("plain   text") == "plain text"
    assert html_to_text("") == ""


def test_fetch_all_isolates_failing_feeds_and_dedups():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "broken.example":
            return httpx.Response(500)
        if request.url.host == "down.example":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.host == "garbage.example":
            return httpx.Response(200, content=b"this is not a feed")
        return httpx.Response(200, content=RSS, headers={"content-type": "application/rss+xml"})

    sources = [
        FeedSource(title="A", xml_url="https://a.example/rss"),
        FeedSource(title="Broken", xml_url="https://broken.example/rss"),
        FeedSource(title="Down", xml_url="https://down.example/rss"),
        FeedSource(title="Garbage", xml_url="https://garbage.example/rss"),
        FeedSource(title="B", xml_url="https://b.example/rss"),
    ]
    fetcher = FeedFetcher(_cfg(), transport=httpx.MockTransport(handler))

    articles = fetcher.fetch_all(sources)

    assert [a.url for a in articles] == ["https://example.com/1", "https://example.com/2"]


def test_fetch_all_sends_user_agent():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["user-agent"])
        return httpx.Response(200, content=RSS)

    cfg = _cfg()
    cfg.user_agent = "briefing-test/1.0"
    fetcher = FeedFetcher(cfg, transport=httpx.MockTransport(handler))

    fetcher.fetch_all([FeedSource(title="A", xml_url="https://a.example/rss")])

    assert seen == ["briefing-test/1.0"]


def test_fetch_all_without_sources_returns_empty():
    assert FeedFetcher(_cfg()).fetch_all([]) == []


def test_fetch_all_skips_malformed_feed_url(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=RSS)

    sources = [
        FeedSource(title="Bad", xml_url="https://bad.example/r\tss"),
        FeedSource(title="A", xml_url="https://a.example/rss"),
    ]
    fetcher = FeedFetcher(_cfg(), transport=httpx.MockTransport(handler))

    with caplog.at_level(logging.WARNING, logger="daily_briefing"):
        articles = fetcher.fetch_all(sources)

    assert [a.url for a in articles] == ["https://example.com/1", "https://example.com/2"]
    failed = [r for r in caplog.records if getattr(r, "event", None) == "feed_fetch_failed"]
    assert [r.url for r in failed] == ["https://bad.example/r\tss"]
    assert "InvalidURL" in failed[0].error
