"""Tests for deduplicating ingestion."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

from daily_briefing.core.dedup import dedup_by_url
from daily_briefing.core.ingest import ingest
from daily_briefing.core.types import Article
from daily_briefing.store.sqlite import ArticleStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _article(url: str, title: str = "Title", published: datetime | None = NOW) -> Article:
    return Article(
        url=url,
        title=title,
        source_name="Example",
        fetched_at=NOW,
        published_at=published,
        content="body",
    )


def test_dedup_by_url_keeps_first_occurrence():
    articles = [
        _article("https://example.com/a", title="First"),
        _article("https://example.com/b"),
        _article("https://example.com/a", title="Second"),
    ]

    result = dedup_by_url(articles)

    assert [a.url for a in result] == ["https://example.com/a", "https://example.com/b"]
    assert result[0].title == "First"


def test_ingest_is_idempotent(tmp_path: Path):
    batch = [_article("https://example.com/a"), _article("https://example.com/b")]

    with ArticleStore(tmp_path / "briefing.db") as store:
        first = ingest(store, batch, now=NOW)
        second = ingest(store, batch, now=NOW)
        stats = store.stats()

    assert (first.fetched, first.added, first.duplicates) == (2, 2, 0)
    assert (second.fetched, second.added, second.duplicates) == (2, 0, 2)
    assert stats.total_articles == 2


def test_ingest_drops_articles_older_than_cutoff(tmp_path: Path):
    batch = [
        _article("https://example.com/old", published=NOW - timedelta(hours=25)),
        _article("https://example.com/recent", published=NOW - timedelta(hours=23)),
        _article("https://example.com/undated", published=None),
    ]

    with ArticleStore(tmp_path / "briefing.db") as store:
        report = ingest(store, batch, now=NOW)
        old = store.find_by_url("https://example.com/old")
        undated = store.find_by_url("https://example.com/undated")

    assert report.skipped_old == 1
    assert report.added == 2
    assert old is None
    assert undated is not None
    assert undated.published_at is None
    assert undated.effective_published_at == NOW


def test_explicit_cutoff_overrides_lookback(tmp_path: Path):
    batch = [_article("https://example.com/a", published=NOW - timedelta(days=3))]

    with ArticleStore(tmp_path / "briefing.db") as store:
        report = ingest(store, batch, cutoff=NOW - timedelta(days=7), now=NOW)

    assert report.added == 1


def test_same_link_with_different_titles_keeps_first(tmp_path: Path):
    batch = [
        _article("https://example.com/x", title="First title"),
        _article("https://example.com/x", title="Second title"),
    ]

    with ArticleStore(tmp_path / "briefing.db") as store:
        report = ingest(store, batch, now=NOW)
        stored = store.find_by_url("https://example.com/x")

    assert report.added == 1
    assert report.duplicates == 1
    assert stored.title == "First title"


def test_ingest_never_touches_classified_rows(tmp_path: Path):
    with ArticleStore(tmp_path / "briefing.db") as store:
        ingest(store, [_article("https://example.com/a", title="Original")], now=NOW)
        stored = store.find_by_url("https://example.com/a")
        store.update_classification(stored.id, "Summary", "Security", 8)

        ingest(store, [_article("https://example.com/a", title="Changed")], now=NOW)
        again = store.find_by_url("https://example.com/a")

    assert again.title == "Original"
    assert again.processed is True
    assert again.category == "Security"
    assert again.importance_score == 8.0
