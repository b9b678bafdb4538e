"""Abstract interface for briefing delivery channels."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from ..core.types import RenderedBriefing


class DeliveryStatus(str, Enum):
    SENT = "sent"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


class ChannelError(RuntimeError):
    """Raised when a channel's remote API rejects a request."""


class Channel(ABC):
    """A destination the rendered briefing can be pushed to.

    Credentials are resolved when the channel is built; a channel without
    them reports `is_configured` False and is never asked to send.
    """

    name: str = "channel"

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def send_briefing(self, rendered: RenderedBriefing) -> bool:
        """Deliver the briefing; transport failures raise."""
        raise NotImplementedError

    @abstractmethod
    def test_connection(self) -> bool:
        raise NotImplementedError
