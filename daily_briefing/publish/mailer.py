"""SMTP email channel."""

from __future__ import annotations

from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import os
import smtplib
from typing import Callable

from ..config import EmailConfig
from ..core.types import RenderedBriefing
from .base import Channel

SSL_PORT = 465

SmtpFactory = Callable[[str, int, float], smtplib.SMTP]


def _default_smtp_factory(host: str, port: int, timeout: float) -> smtplib.SMTP:
    if port == SSL_PORT:
        return smtplib.SMTP_SSL(host, port, timeout=timeout)
    return smtplib.SMTP(host, port, timeout=timeout)


class EmailChannel(Channel):
    """Sends the HTML briefing with a Markdown plain-text alternative.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
    """

    name = "email"

    def __init__(self, cfg: EmailConfig, smtp_factory: SmtpFactory | None = None) -> None:
        self.cfg = cfg
        self.host = os.getenv(cfg.host_env)
        self.port = _parse_port(os.getenv(cfg.port_env), cfg.default_port)
        self.user = os.getenv(cfg.user_env)
        self.password = os.getenv(cfg.password_env)
        self.sender = os.getenv(cfg.from_env) or cfg.from_address
        recipients = os.getenv(cfg.to_env) or self.user or ""
        self.recipients = [addr.strip() for addr in recipients.split(",") if addr.strip()]
        self._smtp_factory = smtp_factory or _default_smtp_factory

    @property
    def is_configured(self) -> bool:
        return bool(self.cfg.enabled and self.host and self.user and self.password and self.recipients)

    def send_briefing(self, rendered: RenderedBriefing) -> bool:
        message = build_message(rendered, self.sender, self.recipients)
        with self._connect() as smtp:
            smtp.sendmail(self.sender, self.recipients, message.as_string())
        return True

    def test_connection(self) -> bool:
        if not (self.host and self.user and self.password):
            return False
        try:
            with self._connect() as smtp:
                smtp.noop()
        except (smtplib.SMTPException, OSError):
            return False
        return True

    def _connect(self) -> smtplib.SMTP:
        smtp = self._smtp_factory(self.host or "", self.port, self.cfg.timeout_seconds)
        try:
            if self.port != SSL_PORT:
                smtp.starttls()
            smtp.login(self.user or "", self.password or "")
        except Exception:
            smtp.close()
            raise
        return smtp


def build_message(rendered: RenderedBriefing, sender: str, recipients: list[str]) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = Header(f"📅 {rendered.title} - {rendered.date}", "utf-8")
    msg["From"] = sender
    msg["To"] = ", ".join(recipients)
    # Clients render the last alternative they support, so HTML goes last.
    msg.attach(MIMEText(rendered.markdown, "plain", "utf-8"))
    msg.attach(MIMEText(rendered.html, "html", "utf-8"))
    return msg


def _parse_port(value: str | None, default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default
