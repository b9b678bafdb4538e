"""
Delivery dispatcher: pushes a rendered briefing to every channel.

Channels are independent. A missing credential, an API error or an
exception in one channel only affects that channel's result.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..config import AppConfig
from ..core.types import RenderedBriefing
from ..store.sqlite import ArticleStore
from ..utils.logging import get_logger, log_event
from .base import Channel, DeliveryStatus
from .mailer import EmailChannel
from .slack import SlackChannel
from .telegram import TelegramChannel


def build_channels(cfg: AppConfig, names: Iterable[str] | None = None) -> list[Channel]:
    """Build the delivery channels, optionally restricted to `names`."""
    channels: list[Channel] = [
        TelegramChannel(cfg.telegram),
        SlackChannel(cfg.slack),
        EmailChannel(cfg.email),
    ]
    if names is None:
        return channels
    wanted = {name.strip().lower() for name in names}
    unknown = wanted - {channel.name for channel in channels}
    if unknown:
        raise ValueError(f"Unknown channel(s): {', '.join(sorted(unknown))}")
    return [channel for channel in channels if channel.name in wanted]


class Dispatcher:
    """Deliver briefings and record which channels succeeded."""

    def __init__(self, store: ArticleStore, logger: logging.Logger | None = None) -> None:
        self.store = store
        self.logger = logger or get_logger("publish")

    def deliver(self, rendered: RenderedBriefing, channels: Iterable[Channel]) -> dict[str, bool]:
        """Attempt every channel; return channel name -> delivered.

        Each success is recorded with `set_channel_sent`; a failure to record
        is logged and does not stop the remaining channels. Flags are never
        cleared here.
        """
        results: dict[str, bool] = {}
        for channel in channels:
            status = self._deliver_one(rendered, channel)
            results[channel.name] = status is DeliveryStatus.SENT
            if status is DeliveryStatus.SENT:
                self._record_sent(rendered.date, channel.name)

        log_event(
            self.logger,
            f"Delivered briefing {rendered.date} to {sum(results.values())}/{len(results)} channels",
            event="delivery_complete",
            date=rendered.date,
            results=results,
        )
        return results

    def _record_sent(self, date: str, channel_name: str) -> None:
        try:
            self.store.set_channel_sent(date, channel_name)
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                f"Failed to record delivery of {date} to {channel_name}: {exc}",
                event="channel_record_failed",
                level=logging.ERROR,
                channel=channel_name,
                date=date,
                error=f"{type(exc).__name__}: {exc}",
            )

    def _deliver_one(self, rendered: RenderedBriefing, channel: Channel) -> DeliveryStatus:
        if not channel.is_configured:
            log_event(
                self.logger,
                f"{channel.name} not configured, skipping",
                event="channel_not_configured",
                level=logging.WARNING,
                channel=channel.name,
            )
            return DeliveryStatus.NOT_CONFIGURED

        try:
            sent = channel.send_briefing(rendered)
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                f"Failed to send briefing to {channel.name}: {exc}",
                event="channel_send_failed",
                level=logging.ERROR,
                channel=channel.name,
                date=rendered.date,
                error=f"{type(exc).__name__}: {exc}",
            )
            return DeliveryStatus.FAILED

        if not sent:
            log_event(
                self.logger,
                f"{channel.name} did not accept the briefing",
                event="channel_send_failed",
                level=logging.ERROR,
                channel=channel.name,
                date=rendered.date,
            )
            return DeliveryStatus.FAILED

        log_event(
            self.logger,
            f"Briefing sent to {channel.name}",
            event="channel_sent",
            channel=channel.name,
            date=rendered.date,
        )
        return DeliveryStatus.SENT
