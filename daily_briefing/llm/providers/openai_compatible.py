"""OpenAI-compatible chat completions provider (Zhipu GLM, OpenAI, and others)."""

from __future__ import annotations

from typing import Any

import httpx

from .base import ChatClassifierProvider


class OpenAICompatibleProvider(ChatClassifierProvider):
    """Classifier backed by any `/chat/completions` endpoint."""

    name = "openai_compatible"

    def _complete(self, system: str, prompt: str) -> str:
        payload = {
            "model": self.cfg.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_tokens,
        }
        return _extract_text(self._post(payload))

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{(self.cfg.base_url or '').rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        with httpx.Client(
            timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env, transport=self._transport
        ) as client:
            resp = client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""
