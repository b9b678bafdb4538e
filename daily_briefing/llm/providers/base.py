"""Abstract interfaces for LLM-driven article classification."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

import httpx

from ...config import ClassifyConfig, LoggingConfig, ProviderConfig
from ...core.types import Article, ClassificationResult
from ...utils.logging import log_event, redact_text, redact_value, truncate_text
from ..parsing import parse_classification
from ..prompts import build_classify_prompt, build_system_prompt


class ClassifierError(RuntimeError):
    """Raised when the provider cannot produce a reply for an article."""


class ClassifierProvider(ABC):
    """Provider interface for summarizing, categorizing and scoring an article."""

    name: str = "provider"

    @abstractmethod
    def classify(self, article: Article) -> ClassificationResult:
        """Return the classification for one article.

        Raises:
            ClassifierError: On transport failures, error statuses or an
                empty reply. A malformed but non-empty reply is not an
                error; it yields a fallback result.
        """
        raise NotImplementedError

    @abstractmethod
    def test_connection(self) -> bool:
        """Return True if the provider answers a minimal request."""
        raise NotImplementedError


class ChatClassifierProvider(ClassifierProvider):
    """Shared classify flow for HTTP chat-style backends.

    Subclasses only implement `_complete`, which sends one system/user
    exchange and returns the reply text.
    """

    def __init__(
        self,
        cfg: ProviderConfig,
        classify_cfg: ClassifyConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError(f"Missing API key for provider '{cfg.name}' (set {cfg.api_key_env})")
        self.cfg = cfg
        self.classify_cfg = classify_cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._transport = transport

    @abstractmethod
    def _complete(self, system: str, prompt: str) -> str:
        raise NotImplementedError

    def classify(self, article: Article) -> ClassificationResult:
        system = build_system_prompt(self.classify_cfg)
        prompt = build_classify_prompt(article, self.classify_cfg)
        try:
            content = self._complete(system, prompt)
        except (httpx.HTTPError, ValueError) as exc:
            self._log_llm_response(article, "provider_error", str(exc), prompt)
            raise ClassifierError(f"{self.name} request failed: {type(exc).__name__}: {exc}") from exc

        if not content or not content.strip():
            self._log_llm_response(article, "empty_reply", "", prompt)
            raise ClassifierError(f"{self.name} returned an empty reply")

        result = parse_classification(content, self.classify_cfg.fallback_summary_chars)
        result.meta.update({"provider": self.name, "model": self.cfg.model})
        self._log_llm_response(article, result.status, content, prompt)
        return result

    def test_connection(self) -> bool:
        try:
            reply = self._complete("You are a connectivity check.", "Reply with OK.")
        except (httpx.HTTPError, ValueError):
            return False
        return bool(reply.strip())

    def _log_llm_response(self, article: Article, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        detail = self.log_cfg.llm_log_detail
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": "llm_classify",
            "status": status,
            "provider": self.name,
            "model": self.cfg.model,
            "article_title": article.title,
            "article_source": article.source_name,
            "article_url": redact_value(article.url, redaction),
            "author": redact_value(article.author, redaction),
        }
        if detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        payload["raw_response"] = truncate_text(redact_text(content, redaction))
        log_event(self.llm_logger, "LLM response", **payload)
