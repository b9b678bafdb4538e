"""
Shared utility functions.

This package contains utility code used across multiple
pipeline stages.
"""

from .logging import (
    JsonlFormatter,
    get_logger,
    log_event,
    redact_text,
    redact_value,
    setup_llm_logger,
    setup_logging,
    truncate_text,
)

__all__ = [
    "setup_logging",
    "setup_llm_logger",
    "get_logger",
    "log_event",
    "redact_text",
    "redact_value",
    "truncate_text",
    "JsonlFormatter",
]
