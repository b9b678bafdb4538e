"""
Command-line interface for the Daily Briefing system.

Uses Typer to expose each pipeline step as a command, plus a daemon mode
driven by the in-process scheduler. Loads a .env file for secrets.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
import typer

from .config import AppConfig, get_database_path, load_config
from .core.dates import parse_day, resolve_timezone
from .llm.providers.factory import create_provider
from .publish.dispatcher import build_channels
from .runner import briefing_step, fetch_step, process_step, run_pipeline
from .scheduler import TaskScheduler
from .store.sqlite import ArticleStore
from .utils.logging import get_logger, log_event, setup_llm_logger, setup_logging

app = typer.Typer(add_completion=False, help="Fetch, classify and deliver a daily tech briefing.")
console = Console()

ConfigOption = typer.Option(Path("config.yaml"), "--config", "-c", help="Path to YAML config.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")


def _bootstrap(config: Path | None, log_level: str | None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging, Path(cfg.logging.directory))
    return cfg


def _open_store(cfg: AppConfig) -> ArticleStore:
    return ArticleStore(get_database_path(cfg.store)).open()


@app.command()
def fetch(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Fetch all feeds and store new articles."""
    cfg = _bootstrap(config, log_level)
    with _open_store(cfg) as store:
        report = fetch_step(cfg, store)
    console.print(
        f"Fetched {report.fetched} entries: {report.added} new, "
        f"{report.duplicates} already stored, {report.skipped_old} too old"
    )


@app.command()
def process(
    limit: int | None = typer.Option(None, "--limit", "-n", help="Maximum articles to classify."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Classify unprocessed articles with the configured LLM provider."""
    cfg = _bootstrap(config, log_level)
    llm_logger = setup_llm_logger(cfg.logging, Path(cfg.logging.directory))
    with _open_store(cfg) as store:
        try:
            outcomes = process_step(cfg, store, limit=limit, llm_logger=llm_logger)
        except ValueError as exc:
            console.print(f"[red]Provider error:[/red] {exc}")
            raise typer.Exit(code=1)
    succeeded = sum(1 for outcome in outcomes if outcome.ok)
    console.print(f"Classified {succeeded}/{len(outcomes)} articles")


@app.command()
def briefing(
    date: str | None = typer.Option(None, "--date", "-d", help="Day to brief (YYYY-MM-DD)."),
    send: bool = typer.Option(True, "--send/--no-send", help="Deliver to channels."),
    channel: list[str] | None = typer.Option(
        None, "--channel", help="Restrict delivery to these channels (repeatable)."
    ),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Generate the briefing for a day and deliver it."""
    cfg = _bootstrap(config, log_level)
    try:
        day = parse_day(date) if date else None
        channels = build_channels(cfg, channel) if channel else None
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=2)

    with _open_store(cfg) as store:
        outcome = briefing_step(cfg, store, day=day, send=send, channels=channels)

    if outcome.rendered is None:
        console.print(f"No articles for {outcome.date}; nothing generated")
        return
    console.print(f"Briefing {outcome.date}: {outcome.article_count} articles")
    if outcome.output_dir:
        console.print(f"Files written to {outcome.output_dir}")
    for name, delivered in outcome.deliveries.items():
        mark = "[green]sent[/green]" if delivered else "[yellow]not sent[/yellow]"
        console.print(f"  {name}: {mark}")


@app.command()
def run(
    send: bool = typer.Option(True, "--send/--no-send", help="Deliver to channels."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Run fetch, process and briefing once."""
    cfg = _bootstrap(config, log_level)
    llm_logger = setup_llm_logger(cfg.logging, Path(cfg.logging.directory))
    with _open_store(cfg) as store:
        try:
            result = run_pipeline(cfg, store, send=send, llm_logger=llm_logger)
        except ValueError as exc:
            console.print(f"[red]Pipeline failed:[/red] {exc}")
            raise typer.Exit(code=1)
    console.print(
        f"Added {result.ingestion.added} articles, classified "
        f"{sum(1 for outcome in result.outcomes if outcome.ok)}, "
        f"briefing has {result.briefing.article_count} articles"
    )


@app.command()
def schedule(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Run as a daemon on the configured schedule."""
    cfg = _bootstrap(config, log_level)
    llm_logger = setup_llm_logger(cfg.logging, Path(cfg.logging.directory))
    logger = get_logger()
    store = _open_store(cfg)

    scheduler = TaskScheduler(
        resolve_timezone(cfg.schedule.timezone),
        poll_seconds=cfg.schedule.poll_seconds,
    )
    scheduler.register("fetch", cfg.schedule.fetch_times, lambda: fetch_step(cfg, store))
    scheduler.register(
        "process",
        cfg.schedule.process_times,
        lambda: process_step(cfg, store, llm_logger=llm_logger),
    )
    scheduler.register("briefing", cfg.schedule.briefing_times, lambda: briefing_step(cfg, store))

    if cfg.schedule.run_on_start:
        try:
            run_pipeline(cfg, store, llm_logger=llm_logger)
        except Exception:  # noqa: BLE001
            logger.exception("Initial pipeline run failed")

    for task in scheduler.tasks():
        console.print(f"  {task.name}: next run {task.next_run:%Y-%m-%d %H:%M %Z}")
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        log_event(logger, "Interrupted, shutting down", event="scheduler_interrupted")
    finally:
        store.close()


@app.command()
def test(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Check the LLM provider and every delivery channel."""
    cfg = _bootstrap(config, log_level)
    table = Table(title="Connection checks")
    table.add_column("Component")
    table.add_column("Status")

    try:
        provider = create_provider(cfg.provider, cfg.classify, cfg.logging, None)
        ok = provider.test_connection()
        table.add_row(f"provider ({cfg.provider.name})", _status(ok))
    except ValueError as exc:
        table.add_row(f"provider ({cfg.provider.name})", f"[red]{exc}[/red]")

    for channel in build_channels(cfg):
        if not channel.is_configured:
            table.add_row(channel.name, "[yellow]not configured[/yellow]")
            continue
        table.add_row(channel.name, _status(channel.test_connection()))

    console.print(table)


@app.command()
def stats(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Show article and briefing counts."""
    cfg = _bootstrap(config, log_level)
    with _open_store(cfg) as store:
        counts = store.stats()
        latest = store.latest_briefing()

    table = Table(title="Daily Briefing stats")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total articles", str(counts.total_articles))
    table.add_row("Processed articles", str(counts.processed_articles))
    table.add_row("Pending articles", str(counts.total_articles - counts.processed_articles))
    table.add_row("Briefings", str(counts.total_briefings))
    if latest is not None:
        sent = ", ".join(sorted(latest.sent_channels)) or "-"
        table.add_row("Latest briefing", f"{latest.date} ({latest.article_count} articles, sent: {sent})")
    console.print(table)


def _status(ok: bool) -> str:
    return "[green]ok[/green]" if ok else "[red]failed[/red]"


if __name__ == "__main__":
    app()
