"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FeedsConfig: OPML feed list and RSS fetching settings
- StoreConfig: SQLite database location
- ProviderConfig: LLM provider settings
- ClassifyConfig: Classification batch and prompt settings
- BriefingConfig: Briefing selection and rendering settings
- TelegramConfig / SlackConfig / EmailConfig: Delivery channel settings
- ScheduleConfig: Daemon run times
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container

Secrets (API keys, bot tokens, SMTP passwords) are never stored in YAML;
each section names the environment variable that holds them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FeedsConfig:
    """Configuration for RSS fetching.

    Attributes:
        opml_path: Path to the OPML file listing the feeds
        batch_size: Number of feeds fetched concurrently per batch
        delay_seconds: Pause between batches
        timeout_seconds: Per-feed HTTP timeout
        lookback_hours: Default ingestion cutoff window
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    opml_path: str = "data/feeds.opml"
    batch_size: int = 10
    delay_seconds: float = 0.1
    timeout_seconds: float = 10.0
    lookback_hours: int = 24
    trust_env: bool = True
    user_agent: str = "daily-briefing/0.1 (RSS reader)"


@dataclass
class StoreConfig:
    """Configuration for the SQLite store.

    Attributes:
        path: Database file path, overridden by the environment variable below
        url_env: Environment variable holding a "sqlite:<path>" URL
    """

    path: str = "data/briefing.db"
    url_env: str = "DATABASE_URL"


@dataclass
class ProviderConfig:
    """Configuration for the LLM provider.

    Attributes:
        name: Provider name ("openai_compatible", "zhipu", "openai" or "gemini")
        model: Model identifier
        base_url: Base URL for the provider API (None = the provider default)
        api_key_env: Environment variable name containing the API key
        api_key: Optional inline API key (overrides env var)
        timeout_seconds: Per-request timeout
        temperature: Sampling temperature
        max_tokens: Maximum tokens in the reply
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "zhipu"
    model: str = "GLM-4.7"
    base_url: str | None = None
    api_key_env: str = "ZHIPU_API_KEY"
    api_key: str | None = None
    timeout_seconds: float = 30.0
    temperature: float = 0.3
    max_tokens: int = 500
    trust_env: bool = True


@dataclass
class ClassifyConfig:
    """Configuration for the classification stage.

    Attributes:
        limit: Maximum unprocessed articles handled per run
        concurrency: Concurrent classifier calls (also the batch size)
        batch_pause_seconds: Pause between batches
        max_content_chars: Characters of article content sent to the LLM
        fallback_summary_chars: Characters of a non-JSON reply kept as summary
        summary_language: Language the summary should be written in
    """

    limit: int = 50
    concurrency: int = 3
    batch_pause_seconds: float = 1.0
    max_content_chars: int = 3000
    fallback_summary_chars: int = 200
    summary_language: str = "English"


@dataclass
class BriefingConfig:
    """Configuration for briefing selection and rendering.

    Attributes:
        title: Title shown on every representation
        timezone: IANA timezone used for day boundaries (None = system)
        article_limit: Maximum articles selected for one day
        highlights_limit: Maximum articles in the chat highlights
        highlights_min_score: Minimum importance for a highlight
        blocks_per_category: Linked titles per category in Slack blocks
        output_dir: Directory for rendered briefing files (None = disabled)
        footer: Footer line appended to every representation
    """

    title: str = "Daily Tech Briefing"
    timezone: str | None = "Asia/Shanghai"
    article_limit: int = 100
    highlights_limit: int = 5
    highlights_min_score: float = 7.0
    blocks_per_category: int = 3
    output_dir: str | None = "out/briefings"
    footer: str = "Generated by Daily Briefing"


@dataclass
class TelegramConfig:
    enabled: bool = True
    bot_token_env: str = "TELEGRAM_BOT_TOKEN"
    chat_id_env: str = "TELEGRAM_CHAT_ID"
    base_url: str = "https://api.telegram.org"
    timeout_seconds: float = 15.0
    disable_web_page_preview: bool = False


@dataclass
class SlackConfig:
    enabled: bool = True
    bot_token_env: str = "SLACK_BOT_TOKEN"
    channel: str = "#daily-briefing"
    channel_env: str = "SLACK_CHANNEL"
    base_url: str = "https://slack.com/api"
    timeout_seconds: float = 15.0


@dataclass
class EmailConfig:
    """Configuration for SMTP delivery.

    Attributes:
        enabled: Whether the channel is used at all
        host_env / port_env / user_env / password_env: SMTP environment variables
        from_env: Environment variable overriding the sender header
        from_address: Default sender header
        to_env: Environment variable with comma-separated recipients
            (defaults to the SMTP user when unset)
        timeout_seconds: SMTP socket timeout
    """

    enabled: bool = True
    host_env: str = "SMTP_HOST"
    port_env: str = "SMTP_PORT"
    user_env: str = "SMTP_USER"
    password_env: str = "SMTP_PASS"
    to_env: str = "EMAIL_TO"
    from_env: str = "EMAIL_FROM"
    from_address: str = "Daily Briefing <noreply@dailybriefing.local>"
    default_port: int = 587
    timeout_seconds: float = 30.0


@dataclass
class ScheduleConfig:
    """Configuration for the scheduler daemon.

    Attributes:
        timezone: IANA timezone the schedules are expressed in
        fetch_times: Schedules for the fetch step; each entry is a daily
            "HH:MM" time or a cron expression such as "0 */4 * * *"
        process_times: Schedules for the classification step
        briefing_times: Schedules for generate + publish
        poll_seconds: How often the daemon checks for due tasks
        run_on_start: Run the full pipeline once when the daemon starts
    """

    timezone: str | None = "Asia/Shanghai"
    fetch_times: list[str] = field(default_factory=lambda: ["06:00", "12:00", "18:00"])
    process_times: list[str] = field(default_factory=lambda: ["06:15", "12:15", "18:15"])
    briefing_times: list[str] = field(default_factory=lambda: ["08:00"])
    poll_seconds: float = 30.0
    run_on_start: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        directory: Directory for log files
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls_authors")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    directory: str = "logs"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls_authors"
    llm_log_file: str = "llm.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    feeds: FeedsConfig = field(default_factory=FeedsConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    classify: ClassifyConfig = field(default_factory=ClassifyConfig)
    briefing: BriefingConfig = field(default_factory=BriefingConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults.

    A missing path returns a fresh default configuration.
    """
    if not path or not os.path.exists(path):
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            known = {k: v for k, v in value.items() if k in data[key]}
            data[key].update(known)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        feeds=FeedsConfig(**data["feeds"]),
        store=StoreConfig(**data["store"]),
        provider=ProviderConfig(**data["provider"]),
        classify=ClassifyConfig(**data["classify"]),
        briefing=BriefingConfig(**data["briefing"]),
        telegram=TelegramConfig(**data["telegram"]),
        slack=SlackConfig(**data["slack"]),
        email=EmailConfig(**data["email"]),
        schedule=ScheduleConfig(**data["schedule"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)


def get_database_path(cfg: StoreConfig) -> str:
    """Resolve the SQLite path, honoring a "sqlite:" URL in the environment."""
    url = os.getenv(cfg.url_env)
    if url:
        return url.removeprefix("sqlite:")
    return cfg.path
