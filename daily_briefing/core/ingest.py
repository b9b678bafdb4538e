"""
Deduplicating ingestion of freshly fetched articles.

Fresh entries are filtered against a recency cutoff and then inserted with
insert-if-absent semantics: a URL already in the store is never updated, so
a stored article keeps its classification across later fetches.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Iterable, Protocol

from .dates import ensure_aware
from .types import Article, IngestionReport
from ..utils.logging import get_logger, log_event

DEFAULT_LOOKBACK = timedelta(hours=24)


class ArticleSink(Protocol):
    def insert_if_absent(self, article: Article) -> bool: ...


def ingest(
    store: ArticleSink,
    fresh: Iterable[Article],
    cutoff: datetime | None = None,
    now: datetime | None = None,
    lookback: timedelta = DEFAULT_LOOKBACK,
    logger: logging.Logger | None = None,
) -> IngestionReport:
    """Insert new articles into the store.

    Args:
        store: Anything exposing insert_if_absent (normally ArticleStore)
        fresh: Articles from the current fetch pass
        cutoff: Articles published strictly before this are dropped;
            defaults to now - lookback
        now: Reference time for the default cutoff (default: current time)
        lookback: Window used when no cutoff is given
        logger: Logger for ingestion events

    Returns:
        IngestionReport with fetched/added counts. Duplicates are counted,
        never raised.
    """
    logger = logger or get_logger("ingest")
    reference = ensure_aware(now) if now else datetime.now(timezone.utc)
    effective_cutoff = ensure_aware(cutoff) if cutoff else reference - lookback

    report = IngestionReport()
    for article in fresh:
        report.fetched += 1
        if ensure_aware(article.effective_published_at) < effective_cutoff:
            report.skipped_old += 1
            continue
        if store.insert_if_absent(article):
            report.added += 1
        else:
            report.duplicates += 1

    log_event(
        logger,
        f"Ingested {report.added} new of {report.fetched} fetched articles",
        event="ingest_complete",
        fetched=report.fetched,
        added=report.added,
        skipped_old=report.skipped_old,
        duplicates=report.duplicates,
        cutoff=effective_cutoff.isoformat(),
    )
    return report
