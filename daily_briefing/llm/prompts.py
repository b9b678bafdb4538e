"""Prompt loading and rendering helpers for classifier providers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ..config import ClassifyConfig
from ..core.categories import Category
from ..core.types import Article


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_system_prompt(cfg: ClassifyConfig) -> str:
    return _render_template(
        "classify_system",
        language=cfg.summary_language,
        categories=", ".join(Category.labels()),
    )


def build_classify_prompt(article: Article, cfg: ClassifyConfig) -> str:
    content = (article.content or "")[: cfg.max_content_chars]
    published = article.published_at.isoformat() if article.published_at else "unknown"
    return _render_template(
        "classify",
        title=article.title,
        author=article.author or "Unknown",
        source=article.source_name or "Unknown",
        published=published,
        content=content or "(no content)",
        url=article.url,
    )
