"""Slack Web API channel."""

from __future__ import annotations

import os
from typing import Any

import httpx

from ..config import SlackConfig
from ..core.types import RenderedBriefing
from .base import Channel, ChannelError


class SlackChannel(Channel):
    """Posts the Block Kit briefing with `chat.postMessage`."""

    name = "slack"

    def __init__(
        self,
        cfg: SlackConfig,
        token: str | None = None,
        channel: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self.token = token or os.getenv(cfg.bot_token_env)
        self.channel = channel or os.getenv(cfg.channel_env) or cfg.channel
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.cfg.enabled and self.token and self.channel)

    def send_briefing(self, rendered: RenderedBriefing) -> bool:
        self._call(
            "chat.postMessage",
            {
                "channel": self.channel,
                "text": f"📅 {rendered.title} - {rendered.date}",
                "blocks": rendered.blocks,
            },
        )
        return True

    def test_connection(self) -> bool:
        if not self.token:
            return False
        try:
            self._call("auth.test", {})
        except (httpx.HTTPError, ChannelError, ValueError):
            return False
        return True

    def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/{method}"
        headers = {"Authorization": f"Bearer {self.token}"}
        with httpx.Client(timeout=self.cfg.timeout_seconds, transport=self._transport) as client:
            resp = client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            data = resp.json()
        # The Web API reports most failures with HTTP 200 and ok=false.
        if not data.get("ok"):
            raise ChannelError(f"Slack {method} failed: {data.get('error', 'unknown_error')}")
        return data
