"""Feed fetching over HTTP."""

from .feeds import FeedFetcher, FeedParseError, parse_feed

__all__ = ["FeedFetcher", "FeedParseError", "parse_feed"]
