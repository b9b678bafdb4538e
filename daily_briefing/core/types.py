"""
Core data types for the Daily Briefing pipeline.

This module defines the records passed between pipeline stages:
- Article: One ingested feed entry, identified by its URL
- Briefing: One rendered digest per calendar day
- IngestionReport: Counters returned by the ingestion stage
- ClassificationResult / ClassificationOutcome: Classifier output per article
- RenderedBriefing: The four channel representations of one briefing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .categories import Category


@dataclass
class Article:
    """Represents one feed entry, before or after classification.

    Attributes:
        url: Canonical link of the entry; the only deduplication key
        title: The article headline ("Untitled" when the feed has none)
        source_name: Display name of the originating feed
        fetched_at: When the entry was fetched
        author: Optional author name
        published_at: Optional publish time from the feed (timezone-aware)
        content: Optional plain-text body
        summary: LLM summary, set only once classified
        category: Category label, set only once classified
        importance_score: LLM importance (1-10), 0 until classified
        processed: Whether classification has been committed
        id: Store row id, None before insertion
    """

    url: str
    title: str
    source_name: str
    fetched_at: datetime
    author: str | None = None
    published_at: datetime | None = None
    content: str | None = None
    summary: str | None = None
    category: str | None = None
    importance_score: float = 0.0
    processed: bool = False
    id: int | None = None

    @property
    def effective_published_at(self) -> datetime:
        """Publish time used for cutoff filtering and day selection."""
        return self.published_at or self.fetched_at


@dataclass
class Briefing:
    """A stored daily briefing.

    Attributes:
        date: ISO calendar day (YYYY-MM-DD), one briefing per day
        content: Canonical Markdown rendering
        article_count: Number of articles included
        sent_channels: Channels the briefing was delivered to
    """

    date: str
    content: str
    article_count: int
    sent_channels: frozenset[str] = field(default_factory=frozenset)


@dataclass
class IngestionReport:
    """Counters for one ingestion pass."""

    fetched: int = 0
    added: int = 0
    skipped_old: int = 0
    duplicates: int = 0


@dataclass
class ClassificationResult:
    """Parsed classifier reply.

    Attributes:
        summary: Short summary of the article
        category: Closed category the article belongs to
        importance: Importance score between 1 and 10
        status: "ok" for a well-formed reply, "fallback" for a degraded one
        meta: Additional metadata (e.g., model name)
    """

    summary: str
    category: Category
    importance: float
    status: str = "ok"
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class ClassificationOutcome:
    """Result of dispatching one article to the classifier.

    Either result is populated (success) or error is (failure), never both.
    """

    article: Article
    result: ClassificationResult | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


@dataclass
class StoreStats:
    total_articles: int
    processed_articles: int
    total_briefings: int


@dataclass
class RenderedBriefing:
    """All channel representations of one briefing.

    Attributes:
        date: ISO calendar day of the briefing
        article_count: Number of articles included
        markdown: Full digest, every article grouped by category
        chat_text: Highlights for chat apps (Telegram HTML)
        html: Styled HTML document for email
        blocks: Slack Block Kit payload
        title: Briefing title, used for subjects and notification text
    """

    date: str
    article_count: int
    markdown: str
    chat_text: str
    html: str
    blocks: list[dict[str, Any]]
    title: str = "Daily Tech Briefing"
