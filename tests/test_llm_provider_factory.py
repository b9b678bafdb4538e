"""Tests for the classifier provider factory and the shared classify flow."""

from datetime import datetime, timezone

import httpx
import pytest

from daily_briefing.config import ClassifyConfig, LoggingConfig, ProviderConfig
from daily_briefing.core.categories import Category
from daily_briefing.core.types import Article
from daily_briefing.llm.prompts import build_classify_prompt, build_system_prompt
from daily_briefing.llm.providers.base import ClassifierError
from daily_briefing.llm.providers.factory import available_providers, create_provider
from daily_briefing.llm.providers.gemini import GeminiProvider, _extract_text
from daily_briefing.llm.providers.openai_compatible import OpenAICompatibleProvider


def _article(content: str = "Body text") -> Article:
    return Article(
        url="https://example.com/post",
        title="A post",
        source_name="Example",
        author="Alice",
        fetched_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        published_at=datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc),
        content=content,
    )


def _provider(name: str = "zhipu", **overrides):
    cfg = ProviderConfig(name=name, api_key="test-key", **overrides)
    return create_provider(cfg, ClassifyConfig(), LoggingConfig(), llm_logger=None)


def test_available_providers_contains_expected_backends():
    names = available_providers()
    assert "gemini" in names
    assert "openai" in names
    assert "openai_compatible" in names
    assert "zhipu" in names


def test_create_provider_zhipu_uses_default_endpoint():
    provider = _provider("zhipu")

    assert isinstance(provider, OpenAICompatibleProvider)
    assert provider.cfg.base_url == "https://open.bigmodel.cn/api/paas/v4"
    assert provider.cfg.model == "GLM-4.7"


def test_create_provider_gemini():
    provider = _provider("gemini", model="gemini-2.5-flash")

    assert isinstance(provider, GeminiProvider)
    assert provider.cfg.base_url == "https://generativelanguage.googleapis.com"


def test_create_provider_keeps_explicit_base_url():
    provider = _provider("openai_compatible", base_url="http://localhost:8000/v1")

    assert provider.cfg.base_url == "http://localhost:8000/v1"


def test_create_provider_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported provider"):
        _provider("unknown-provider")


def test_generic_backend_requires_base_url():
    with pytest.raises(ValueError, match="base_url"):
        _provider("openai_compatible")


def test_create_provider_requires_api_key(monkeypatch):
    monkeypatch.delenv("ZHIPU_API_KEY", raising=False)

    with pytest.raises(ValueError, match="ZHIPU_API_KEY"):
        create_provider(ProviderConfig(), ClassifyConfig(), LoggingConfig(), llm_logger=None)


def test_create_provider_reads_api_key_from_env(monkeypatch):
    monkeypatch.setenv("ZHIPU_API_KEY", "env-key")

    provider = create_provider(ProviderConfig(), ClassifyConfig(), LoggingConfig(), llm_logger=None)

    assert provider.api_key == "env-key"


def test_classify_parses_reply(monkeypatch):
    provider = _provider()
    monkeypatch.setattr(
        provider,
        "_complete",
        lambda system, prompt: '```json\n{"summary": "S", "category": "开发", "importance": 7}\n```',
    )

    result = provider.classify(_article())

    assert result.category is Category.DEVELOPMENT
    assert result.importance == 7.0
    assert result.meta["model"] == "GLM-4.7"


def test_classify_empty_reply_is_an_error(monkeypatch):
    provider = _provider()
    monkeypatch.setattr(provider, "_complete", lambda system, prompt: "   ")

    with pytest.raises(ClassifierError):
        provider.classify(_article())


def test_classify_transport_failure_is_an_error(monkeypatch):
    provider = _provider()

    def _boom(system, prompt):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(provider, "_complete", _boom)

    with pytest.raises(ClassifierError, match="ConnectError"):
        provider.classify(_article())


def test_prompts_include_article_fields_and_truncate_content():
    cfg = ClassifyConfig(max_content_chars=3000, summary_language="English")

    prompt = build_classify_prompt(_article(content="x" * 5000), cfg)
    system = build_system_prompt(cfg)

    assert "Title: A post" in prompt
    assert "Author: Alice" in prompt
    assert "Link: https://example.com/post" in prompt
    assert "x" * 3000 in prompt
    assert "x" * 3001 not in prompt
    assert "English" in system
    assert "AI/ML" in system and "Other" in system
    assert '"importance"' in system


def test_gemini_extract_text_skips_thought_parts():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "internal reasoning"},
                        {"text": '{"summary": "A"'},
                        {"text": ', "importance": 4}'},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == '{"summary": "A", "importance": 4}'
    assert _extract_text({"candidates": []}) == ""


def _gemini(handler) -> GeminiProvider:
    cfg = ProviderConfig(
        name="gemini",
        model="gemini-2.5-flash",
        base_url="https://generativelanguage.googleapis.com",
    )
    return GeminiProvider(
        cfg, ClassifyConfig(), "secret-key", LoggingConfig(), None, transport=httpx.MockTransport(handler)
    )


def test_gemini_sends_api_key_as_header():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        reply = '{"summary": "S", "category": "Security", "importance": 6}'
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": reply}]}}]})

    result = _gemini(handler).classify(_article())

    assert result.category is Category.SECURITY
    assert seen["key"] == "secret-key"
    assert seen["url"].endswith("/v1beta/models/gemini-2.5-flash:generateContent")
    assert "secret-key" not in seen["url"]


def test_gemini_http_error_does_not_leak_api_key():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "denied"}})

    with pytest.raises(ClassifierError) as excinfo:
        _gemini(handler).classify(_article())

    assert "403" in str(excinfo.value)
    assert "secret-key" not in str(excinfo.value)


def test_openai_compatible_posts_chat_completion():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        reply = '{"summary": "S", "category": "AI/ML", "importance": 8}'
        return httpx.Response(200, json={"choices": [{"message": {"content": reply}}]})

    cfg = ProviderConfig(name="openai_compatible", base_url="http://localhost:8000/v1")
    provider = OpenAICompatibleProvider(
        cfg, ClassifyConfig(), "test-key", LoggingConfig(), None, transport=httpx.MockTransport(handler)
    )

    result = provider.classify(_article())

    assert result.importance == 8.0
    assert seen["url"] == "http://localhost:8000/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
