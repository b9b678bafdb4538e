"""Google Gemini provider for article classification."""

from __future__ import annotations

from typing import Any

import httpx

from .base import ChatClassifierProvider


class GeminiProvider(ChatClassifierProvider):
    """Gemini-backed classifier using the generateContent endpoint."""

    name = "gemini"

    def _complete(self, system: str, prompt: str) -> str:
        payload = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.cfg.temperature,
                "maxOutputTokens": self.cfg.max_tokens,
            },
        }
        return _extract_text(self._post(payload))

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{(self.cfg.base_url or '').rstrip('/')}/v1beta/models/{self.cfg.model}:generateContent"
        headers = {"x-goog-api-key": self.api_key}
        with httpx.Client(
            timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env, transport=self._transport
        ) as client:
            resp = client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    """Join the reply text parts, skipping thinking parts when real output exists."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""

    if not isinstance(parts, list):
        return ""

    answer: list[str] = []
    everything: list[str] = []
    for part in parts:
        if not isinstance(part, dict) or not part.get("text"):
            continue
        chunk = str(part["text"])
        everything.append(chunk)
        if not part.get("thought"):
            answer.append(chunk)
    return "".join(answer or everything)
