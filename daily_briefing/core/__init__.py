"""
Core domain models and business logic.

This package contains data types and business logic that is
independent of any specific pipeline stage.
"""

from .categories import Category, display_heading
from .dedup import dedup_by_url
from .ingest import ingest
from .types import (
    Article,
    Briefing,
    ClassificationOutcome,
    ClassificationResult,
    IngestionReport,
    RenderedBriefing,
    StoreStats,
)

__all__ = [
    "Article",
    "Briefing",
    "Category",
    "ClassificationOutcome",
    "ClassificationResult",
    "IngestionReport",
    "RenderedBriefing",
    "StoreStats",
    "dedup_by_url",
    "display_heading",
    "ingest",
]
