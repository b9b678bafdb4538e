"""Delivery channels and the dispatcher that drives them."""

from .base import Channel, ChannelError, DeliveryStatus
from .dispatcher import Dispatcher, build_channels
from .mailer import EmailChannel
from .slack import SlackChannel
from .telegram import TelegramChannel

__all__ = [
    "Channel",
    "ChannelError",
    "DeliveryStatus",
    "Dispatcher",
    "EmailChannel",
    "SlackChannel",
    "TelegramChannel",
    "build_channels",
]
