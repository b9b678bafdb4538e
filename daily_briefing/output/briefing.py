"""
Briefing assembly: day selection, grouping and highlight ranking.

The model built here is the single input of every renderer, so all four
representations agree on grouping and ordering. Nothing in this module
reads the clock; the same articles and day always give the same model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Iterable, Protocol

from ..config import BriefingConfig
from ..core.categories import Category, display_heading
from ..core.dates import day_bounds
from ..core.types import Article

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class ArticleSource(Protocol):
    def list_by_date_range(self, start, end, limit: int = 100) -> list[Article]: ...


@dataclass
class CategoryGroup:
    """Articles sharing one category label, most important first."""

    label: str
    heading: str
    articles: list[Article] = field(default_factory=list)

    @property
    def emoji(self) -> str:
        return self.heading.split(" ", 1)[0]


@dataclass
class BriefingModel:
    """Everything the renderers need for one day's briefing.

    Attributes:
        date: ISO calendar day
        date_display: Human-readable day, e.g. "2024-05-01 (Wednesday)"
        title: Briefing title
        total: Number of articles included
        groups: Non-empty category groups in order of first appearance
        highlights: Top articles for chat channels
        footer: Footer line
    """

    date: str
    date_display: str
    title: str
    total: int
    groups: list[CategoryGroup]
    highlights: list[Article]
    footer: str


def select_for_date(
    store: ArticleSource, day: date, tz: tzinfo, limit: int = 100
) -> list[Article]:
    """Articles whose effective publish time falls on `day` in `tz`.

    Bounds are inclusive and computed fresh for each call. The store orders
    by importance descending, then publish time descending.
    """
    start, end = day_bounds(day, tz)
    return store.list_by_date_range(start, end, limit)


def group_by_category(articles: Iterable[Article]) -> list[CategoryGroup]:
    """Group articles by category label.

    Groups appear in order of their first article; within a group articles
    are stably sorted by importance descending. Unset labels become "Other".
    """
    groups: dict[str, CategoryGroup] = {}
    for article in articles:
        label = article.category or Category.OTHER.label
        group = groups.get(label)
        if group is None:
            group = groups[label] = CategoryGroup(label=label, heading=display_heading(label))
        group.articles.append(article)

    for group in groups.values():
        group.articles.sort(key=_importance_desc)
    return [group for group in groups.values() if group.articles]


def pick_highlights(
    articles: Iterable[Article], min_score: float = 7.0, limit: int = 5
) -> list[Article]:
    """Articles scoring at least `min_score`, most important first, capped at `limit`.

    Ties keep their input order.
    """
    ranked = sorted(articles, key=_importance_desc)
    return [article for article in ranked if (article.importance_score or 0) >= min_score][:limit]


def build_model(
    articles: list[Article], day: date, cfg: BriefingConfig | None = None
) -> BriefingModel:
    cfg = cfg or BriefingConfig()
    return BriefingModel(
        date=day.isoformat(),
        date_display=format_day(day),
        title=cfg.title,
        total=len(articles),
        groups=group_by_category(articles),
        highlights=pick_highlights(articles, cfg.highlights_min_score, cfg.highlights_limit),
        footer=cfg.footer,
    )


def format_day(day: date) -> str:
    return f"{day.isoformat()} ({_WEEKDAYS[day.weekday()]})"


def _importance_desc(article: Article) -> float:
    return -(article.importance_score or 0.0)
