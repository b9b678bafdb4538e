"""
Parsing of classifier replies into ClassificationResult.

Models wrap their JSON in prose or Markdown fences often enough that the
reply is searched for an object before giving up. A reply with no usable
object degrades to a fallback result instead of failing the article.
"""

from __future__ import annotations

import json
import math
from typing import Any

from ..core.categories import Category
from ..core.types import ClassificationResult

DEFAULT_IMPORTANCE = 5.0
MIN_IMPORTANCE = 1.0
MAX_IMPORTANCE = 10.0


def parse_classification(raw: str, fallback_chars: int = 200) -> ClassificationResult:
    """Turn a raw model reply into a classification.

    Args:
        raw: The model reply text (must be non-empty)
        fallback_chars: Characters of the reply kept as summary when the
            reply carries no usable summary

    Returns:
        A result with status "ok", or "fallback" when no JSON object was found
    """
    try:
        obj = _parse_json_response(raw)
    except json.JSONDecodeError:
        obj = None

    if not isinstance(obj, dict):
        return ClassificationResult(
            summary=raw[:fallback_chars],
            category=Category.OTHER,
            importance=DEFAULT_IMPORTANCE,
            status="fallback",
        )

    summary = obj.get("summary")
    summary = summary.strip() if isinstance(summary, str) else ""
    category = obj.get("category")
    return ClassificationResult(
        summary=summary or raw[:fallback_chars],
        category=Category.parse(category if isinstance(category, str) else None),
        importance=normalize_importance(obj.get("importance")),
    )


def normalize_importance(value: Any) -> float:
    """Coerce to float and clamp into [1, 10]; unusable values become 5."""
    if isinstance(value, bool):
        return DEFAULT_IMPORTANCE
    try:
        score = float(value)
    except (TypeError, ValueError):
        return DEFAULT_IMPORTANCE
    if math.isnan(score):
        return DEFAULT_IMPORTANCE
    return min(MAX_IMPORTANCE, max(MIN_IMPORTANCE, score))


def _parse_json_response(content: str) -> Any:
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        extracted = _extract_json_snippet(content)
        return json.loads(extracted)


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
