"""Telegram Bot API channel."""

from __future__ import annotations

import os
from typing import Any

import httpx

from ..config import TelegramConfig
from ..core.types import RenderedBriefing
from .base import Channel, ChannelError


class TelegramChannel(Channel):
    """Sends the chat highlights with `sendMessage` in HTML parse mode."""

    name = "telegram"

    def __init__(
        self,
        cfg: TelegramConfig,
        token: str | None = None,
        chat_id: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self.token = token or os.getenv(cfg.bot_token_env)
        self.chat_id = chat_id or os.getenv(cfg.chat_id_env)
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.cfg.enabled and self.token and self.chat_id)

    def send_briefing(self, rendered: RenderedBriefing) -> bool:
        self._call(
            "sendMessage",
            {
                "chat_id": self.chat_id,
                "text": rendered.chat_text,
                "parse_mode": "HTML",
                "disable_web_page_preview": self.cfg.disable_web_page_preview,
            },
        )
        return True

    def test_connection(self) -> bool:
        if not self.token:
            return False
        try:
            self._call("getMe", None)
        except (httpx.HTTPError, ChannelError, ValueError):
            return False
        return True

    def _call(self, method: str, payload: dict[str, Any] | None) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/bot{self.token}/{method}"
        with httpx.Client(timeout=self.cfg.timeout_seconds, transport=self._transport) as client:
            resp = client.post(url, json=payload) if payload is not None else client.get(url)
            data = resp.json() if resp.content else {}
            if resp.status_code >= 400 or not data.get("ok"):
                description = data.get("description") or f"HTTP {resp.status_code}"
                raise ChannelError(f"Telegram {method} failed: {description}")
            return data
