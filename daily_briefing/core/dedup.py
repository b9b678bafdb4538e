"""
Within-pass article deduplication.

A single fetch pass can see the same link in several feeds (or twice in one
feed). Entries are collapsed on the exact URL only; titles and bodies are
never compared, so the first occurrence wins regardless of its content.
"""

from __future__ import annotations

from typing import Iterable

from .types import Article


def dedup_by_url(articles: Iterable[Article]) -> list[Article]:
    """Remove entries whose URL was already seen.

    Args:
        articles: Articles in the order they were fetched

    Returns:
        Deduplicated list of articles, preserving first-sight order
    """
    seen_urls: set[str] = set()
    kept: list[Article] = []

    for article in articles:
        if article.url in seen_urls:
            continue
        seen_urls.add(article.url)
        kept.append(article)

    return kept
