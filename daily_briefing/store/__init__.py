"""Persistent storage for articles and briefings."""

from .sqlite import ArticleStore

__all__ = ["ArticleStore"]
