"""OPML parser for the feed subscription list.

The OPML format structure:
    <opml version="2.0">
      <body>
        <outline text="Tech">
          <outline type="rss" text="Example" title="Example Blog"
                   xmlUrl="https://example.com/feed.xml"
                   htmlUrl="https://example.com/"/>
        </outline>
      </body>
    </opml>

Outlines may be nested in folders to any depth; only outlines carrying an
xmlUrl are feeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import xml.etree.ElementTree as ET

from ..utils.logging import get_logger

logger = get_logger("input")


@dataclass(frozen=True)
class FeedSource:
    """One feed from the subscription list.

    Attributes:
        title: Display name from the outline (may be empty)
        xml_url: The RSS/Atom endpoint
        html_url: Optional website URL
    """

    title: str
    xml_url: str
    html_url: str | None = None


def parse_opml(text: str) -> list[FeedSource]:
    """Parse OPML content into a list of feed sources.

    Malformed documents are logged and yield an empty list. Duplicate
    endpoints keep their first outline.

    Args:
        text: The raw OPML document

    Returns:
        Feed sources in document order
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        logger.error("Malformed OPML document: %s", exc)
        return []

    sources: list[FeedSource] = []
    seen: set[str] = set()
    for outline in root.iter("outline"):
        xml_url = (outline.get("xmlUrl") or "").strip()
        if not xml_url or xml_url in seen:
            continue
        seen.add(xml_url)
        title = (outline.get("title") or outline.get("text") or "").strip()
        html_url = (outline.get("htmlUrl") or "").strip() or None
        sources.append(FeedSource(title=title, xml_url=xml_url, html_url=html_url))

    return sources


def load_feed_sources(path: str | Path) -> list[FeedSource]:
    """Read and parse an OPML file; a missing file yields an empty list."""
    opml_path = Path(path)
    try:
        text = opml_path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to read OPML file %s: %s", opml_path, exc)
        return []

    sources = parse_opml(text)
    logger.info("Found %d RSS feeds in %s", len(sources), opml_path)
    return sources
