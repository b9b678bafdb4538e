"""Input loading for feed subscription lists."""

from .opml import FeedSource, load_feed_sources, parse_opml

__all__ = ["FeedSource", "load_feed_sources", "parse_opml"]
