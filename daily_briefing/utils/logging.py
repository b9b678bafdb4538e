"""
Logging setup for the CLI and the scheduler daemon.

Everything logs under the "daily_briefing" logger: a Rich console handler
plus an optional file (JSONL or plain text). Classifier requests and
replies go to a second JSONL file through the "daily_briefing.llm" logger,
which never propagates to the console.

Pipeline code reports through `log_event`, which attaches keyword fields
to the record so the JSONL file stays machine-readable.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from ..config import LoggingConfig

LOGGER_NAME = "daily_briefing"
LLM_LOGGER_NAME = f"{LOGGER_NAME}.llm"

_URL_RE = re.compile(r"https?://\S+")

# Attributes every LogRecord carries; anything else came in via `extra`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def setup_logging(cfg: LoggingConfig, log_dir: Path | None) -> logging.Logger:
    """Configure the package logger; calling it again replaces the handlers."""
    level = _level_from_string(cfg.level)
    logger = _reset_logger(LOGGER_NAME, level)

    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
        console.setLevel(level)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console)

    if cfg.file and log_dir is not None:
        logger.addHandler(_file_handler(log_dir / cfg.filename, level, _build_file_formatter(cfg.format)))

    return logger


def setup_llm_logger(cfg: LoggingConfig, log_dir: Path | None) -> logging.Logger | None:
    """JSONL logger for classifier traffic, or None when disabled."""
    if not cfg.llm_log_enabled or log_dir is None:
        return None

    level = _level_from_string(cfg.level)
    logger = _reset_logger(LLM_LOGGER_NAME, level)
    logger.addHandler(_file_handler(log_dir / cfg.llm_log_file, level, JsonlFormatter()))
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Child of the package logger, e.g. get_logger("fetch")."""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def log_event(logger: logging.Logger | None, message: str, **fields: Any) -> None:
    """Log `message` with `fields` as record attributes.

    A `level` field selects the log level (default INFO). A None logger
    is a no-op so optional loggers can be passed straight through.
    """
    if logger is None:
        return
    level = fields.pop("level", logging.INFO)
    logger.log(level, message, extra=fields)


# Redaction of article data written to the LLM log.
#   none                 keep everything
#   redact_content       drop prompt/reply text and identifying fields
#   redact_urls_authors  keep text with links masked, mask urls and authors


def redact_text(text: str, mode: str) -> str:
    if mode == "redact_content":
        return ""
    if mode == "redact_urls_authors":
        return _URL_RE.sub("[REDACTED_URL]", text)
    return text


def redact_value(value: str | None, mode: str) -> str | None:
    if value is None or mode == "redact_content":
        return None
    if mode == "redact_urls_authors":
        return "[REDACTED]"
    return value


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "...(truncated)"


class JsonlFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _reset_logger(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False
    return logger


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _build_file_formatter(fmt: str) -> logging.Formatter:
    if fmt == "jsonl":
        return JsonlFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
