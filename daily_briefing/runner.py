"""
Pipeline steps: fetch, process, briefing.

Each step opens nothing itself; callers pass in the ArticleStore so one
handle serves the whole process. The CLI and the scheduler both drive the
pipeline through these functions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from pathlib import Path
from typing import Iterable

from .analyzers.classifier import ClassificationCoordinator
from .config import AppConfig
from .core.dates import resolve_timezone, today
from .core.ingest import ingest
from .core.types import Briefing, ClassificationOutcome, IngestionReport, RenderedBriefing
from .fetch.feeds import FeedFetcher
from .input.opml import load_feed_sources
from .llm.providers.base import ClassifierProvider
from .llm.providers.factory import create_provider
from .output.briefing import select_for_date
from .output.renderer import assemble, write_briefing_files
from .publish.base import Channel
from .publish.dispatcher import Dispatcher, build_channels
from .store.sqlite import ArticleStore
from .utils.logging import get_logger, log_event


@dataclass
class BriefingRun:
    """Outcome of one briefing step.

    Attributes:
        date: ISO day the briefing covers
        article_count: Articles selected (0 means nothing was stored or sent)
        rendered: The rendered briefing, None when no articles were selected
        deliveries: Channel name -> delivered, empty when sending was skipped
        output_dir: Folder the rendered files were written to, if any
    """

    date: str
    article_count: int
    rendered: RenderedBriefing | None = None
    deliveries: dict[str, bool] = field(default_factory=dict)
    output_dir: Path | None = None


@dataclass
class PipelineResult:
    ingestion: IngestionReport
    outcomes: list[ClassificationOutcome]
    briefing: BriefingRun


def fetch_step(
    cfg: AppConfig,
    store: ArticleStore,
    fetcher: FeedFetcher | None = None,
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> IngestionReport:
    """Fetch every feed in the OPML list and ingest new articles."""
    logger = logger or get_logger("runner")
    sources = load_feed_sources(cfg.feeds.opml_path)
    if not sources:
        log_event(
            logger,
            "No feeds configured",
            event="fetch_skipped",
            level=logging.WARNING,
            opml_path=cfg.feeds.opml_path,
        )
        return IngestionReport()

    fetcher = fetcher or FeedFetcher(cfg.feeds)
    articles = fetcher.fetch_all(sources)
    return ingest(
        store,
        articles,
        now=now,
        lookback=timedelta(hours=cfg.feeds.lookback_hours),
        logger=get_logger("ingest"),
    )


def build_provider(cfg: AppConfig, llm_logger: logging.Logger | None = None) -> ClassifierProvider:
    return create_provider(cfg.provider, cfg.classify, cfg.logging, llm_logger)


def process_step(
    cfg: AppConfig,
    store: ArticleStore,
    provider: ClassifierProvider | None = None,
    limit: int | None = None,
    llm_logger: logging.Logger | None = None,
) -> list[ClassificationOutcome]:
    """Classify pending articles.

    Raises:
        ValueError: If no provider is given and the configured one cannot
            be built (unknown name or missing API key)
    """
    provider = provider or build_provider(cfg, llm_logger)
    coordinator = ClassificationCoordinator(store, provider, cfg.classify)
    return coordinator.classify_pending(limit)


def briefing_step(
    cfg: AppConfig,
    store: ArticleStore,
    day: date | None = None,
    send: bool = True,
    channels: Iterable[Channel] | None = None,
    dispatcher: Dispatcher | None = None,
    now: datetime | None = None,
    logger: logging.Logger | None = None,
) -> BriefingRun:
    """Assemble, store and deliver the briefing for `day` (default: today).

    A day without articles produces no briefing row and no delivery.
    """
    logger = logger or get_logger("runner")
    tz = resolve_timezone(cfg.briefing.timezone)
    day = day or today(tz, now)
    articles = select_for_date(store, day, tz, cfg.briefing.article_limit)

    if not articles:
        log_event(
            logger,
            f"No articles for {day.isoformat()}, skipping briefing",
            event="briefing_skipped",
            level=logging.WARNING,
            date=day.isoformat(),
        )
        return BriefingRun(date=day.isoformat(), article_count=0)

    rendered = assemble(articles, day, cfg.briefing)
    store.upsert_briefing(
        Briefing(date=rendered.date, content=rendered.markdown, article_count=rendered.article_count)
    )
    log_event(
        logger,
        f"Briefing {rendered.date} generated with {rendered.article_count} articles",
        event="briefing_generated",
        date=rendered.date,
        article_count=rendered.article_count,
    )

    run = BriefingRun(date=rendered.date, article_count=rendered.article_count, rendered=rendered)
    if cfg.briefing.output_dir:
        run.output_dir = write_briefing_files(rendered, Path(cfg.briefing.output_dir))

    if send:
        targets = list(channels) if channels is not None else build_channels(cfg)
        dispatcher = dispatcher or Dispatcher(store)
        run.deliveries = dispatcher.deliver(rendered, targets)
    return run


def run_pipeline(
    cfg: AppConfig,
    store: ArticleStore,
    provider: ClassifierProvider | None = None,
    send: bool = True,
    llm_logger: logging.Logger | None = None,
    logger: logging.Logger | None = None,
) -> PipelineResult:
    """Run fetch, process and briefing in order."""
    logger = logger or get_logger("runner")
    log_event(logger, "Pipeline start", event="pipeline_start")
    ingestion = fetch_step(cfg, store, logger=logger)
    outcomes = process_step(cfg, store, provider=provider, llm_logger=llm_logger)
    briefing = briefing_step(cfg, store, send=send, logger=logger)
    log_event(
        logger,
        "Pipeline complete",
        event="pipeline_complete",
        added=ingestion.added,
        classified=sum(1 for outcome in outcomes if outcome.ok),
        briefing_articles=briefing.article_count,
    )
    return PipelineResult(ingestion=ingestion, outcomes=outcomes, briefing=briefing)
