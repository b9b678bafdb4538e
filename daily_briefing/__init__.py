"""
Daily Briefing - AI-classified RSS digest delivered to chat and email.

This package fetches RSS feeds listed in an OPML file, stores new articles
in SQLite, classifies them with a remote LLM (summary, category and
importance), assembles a categorized daily briefing and delivers it to
Telegram, Slack and email.

Main entry point is the CLI via `daily-briefing run`.

Example:
    $ daily-briefing run -c config.yaml
"""

__all__ = ["__version__", "Article", "Briefing", "Category", "ArticleStore"]
__version__ = "0.1.0"

from .core.categories import Category
from .core.types import Article, Briefing
from .store import ArticleStore
