"""Tests for classifier reply parsing."""

from daily_briefing.core.categories import Category
from daily_briefing.llm.parsing import normalize_importance, parse_classification


def test_parse_direct_json():
    result = parse_classification('{"summary": "A new model", "category": "AI/ML", "importance": 8}')

    assert result.summary == "A new model"
    assert result.category is Category.AI_ML
    assert result.importance == 8.0
    assert result.status == "ok"


def test_parse_fenced_json_with_chinese_category():
    raw = 'Here you go:\n```json\n{"summary": "漏洞分析", "category": "安全", "importance": 9}\n```\n'

    result = parse_classification(raw)

    assert result.category is Category.SECURITY
    assert result.summary == "漏洞分析"
    assert result.importance == 9.0


def test_parse_json_embedded_in_prose():
    raw = 'Sure! {"summary": "Kubernetes release", "category": "Infrastructure", "importance": "6"} Hope it helps.'

    result = parse_classification(raw)

    assert result.category is Category.INFRASTRUCTURE
    assert result.importance == 6.0


def test_non_json_reply_falls_back():
    result = parse_classification("Error: rate limited")

    assert result.summary == "Error: rate limited"
    assert result.category is Category.OTHER
    assert result.importance == 5.0
    assert result.status == "fallback"


def test_fallback_summary_is_truncated():
    raw = "x" * 300

    assert parse_classification(raw).summary == "x" * 200
    assert parse_classification(raw, fallback_chars=50).summary == "x" * 50


def test_missing_fields_are_normalized():
    raw = '{"category": "Cooking"}'

    result = parse_classification(raw)

    assert result.summary == raw
    assert result.category is Category.OTHER
    assert result.importance == 5.0
    assert result.status == "ok"


def test_json_array_is_not_a_classification():
    result = parse_classification('["AI/ML", 9]')

    assert result.status == "fallback"
    assert result.category is Category.OTHER


def test_normalize_importance_clamps_and_defaults():
    assert normalize_importance(15) == 10.0
    assert normalize_importance("0") == 1.0
    assert normalize_importance(7.5) == 7.5
    assert normalize_importance("high") == 5.0
    assert normalize_importance(None) == 5.0
    assert normalize_importance(True) == 5.0
    assert normalize_importance(float("nan")) == 5.0
