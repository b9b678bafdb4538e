"""
Briefing rendering for every delivery channel.

One BriefingModel is rendered four ways:
- Markdown digest (stored as the canonical briefing content)
- Chat highlights (Telegram HTML)
- HTML document via a Jinja2 template (email)
- Slack Block Kit blocks
"""

from __future__ import annotations

from datetime import date
import html
import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import BriefingConfig
from ..core.categories import display_heading
from ..core.types import Article, RenderedBriefing
from .briefing import BriefingModel, build_model

CHAT_SUMMARY_CHARS = 100


def assemble(
    articles: list[Article], day: date, cfg: BriefingConfig | None = None
) -> RenderedBriefing:
    """Build the model for `articles` and render all representations."""
    cfg = cfg or BriefingConfig()
    model = build_model(articles, day, cfg)
    return RenderedBriefing(
        date=model.date,
        article_count=model.total,
        markdown=render_markdown(model),
        chat_text=render_chat_text(model),
        html=render_html(model),
        blocks=render_blocks(model, cfg.blocks_per_category),
        title=model.title,
    )


def render_markdown(model: BriefingModel) -> str:
    lines = [
        f"# {model.title} - {model.date_display}",
        "",
        f"{model.total} articles today",
        "",
        "---",
        "",
    ]
    for group in model.groups:
        lines.append(f"## {group.heading}")
        lines.append("")
        for article in group.articles:
            lines.append(f"### {article.title}")
            meta = f"**Source**: {article.source_name}"
            if article.author:
                meta = f"**Author**: {article.author} | {meta}"
            lines.append(meta)
            lines.append("")
            if article.summary:
                lines.append(article.summary)
                lines.append("")
            lines.append(f"[Read more]({article.url})")
            lines.append("")
            lines.append("---")
            lines.append("")
    lines.append(f"_{model.footer}_")
    return "\n".join(lines) + "\n"


def render_chat_text(model: BriefingModel) -> str:
    """Telegram HTML with highlights and per-category counts.

    Only <b>, <i> and <a> are emitted; every user-sourced string is escaped,
    so titles and summaries can hold any character.
    """
    lines = [
        f"📅 <b>{_escape_chat(model.title)} - {model.date_display}</b>",
        "",
        f"{model.total} articles today",
        "",
    ]
    if model.highlights:
        lines.append("🔥 <b>Highlights</b>")
        lines.append("")
        for article in model.highlights:
            emoji = display_heading(article.category).split(" ", 1)[0]
            lines.append(f"{emoji} <b>{_escape_chat(article.title)}</b>")
            if article.summary:
                lines.append(f"<i>{_escape_chat(_truncate(article.summary, CHAT_SUMMARY_CHARS))}</i>")
            lines.append(f'<a href="{html.escape(article.url, quote=True)}">Read</a>')
            lines.append("")

    for group in model.groups:
        lines.append(f"{group.emoji} <b>{_escape_chat(group.label)}</b>: {len(group.articles)}")
    lines.append("")
    lines.append(f"<i>{_escape_chat(model.footer)}</i>")
    return "\n".join(lines)


def render_html(model: BriefingModel) -> str:
    env = Environment(
        loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
        autoescape=select_autoescape(["html"]),
    )
    template = env.get_template("briefing.html")
    return template.render(
        title=model.title,
        date_display=model.date_display,
        total=model.total,
        groups=model.groups,
        footer=model.footer,
    )


def render_blocks(model: BriefingModel, per_category: int = 3) -> list[dict[str, Any]]:
    """Slack Block Kit payload; each category lists at most `per_category` titles."""
    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"📅 {model.title} - {model.date_display}",
                "emoji": True,
            },
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*{model.total}* articles today"},
        },
        {"type": "divider"},
    ]
    for group in model.groups:
        lines = [f"{group.emoji} *{_escape_slack(group.label)}* ({len(group.articles)})"]
        for article in group.articles[:per_category]:
            lines.append(f"• <{article.url}|{_escape_slack(article.title)}>")
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(lines)}})

    blocks.append(
        {"type": "context", "elements": [{"type": "mrkdwn", "text": _escape_slack(model.footer)}]}
    )
    return blocks


def write_briefing_files(rendered: RenderedBriefing, output_dir: Path) -> Path:
    """Write every representation under `output_dir/<date>/` and return that folder."""
    folder = Path(output_dir) / rendered.date
    folder.mkdir(parents=True, exist_ok=True)
    (folder / "briefing.md").write_text(rendered.markdown, encoding="utf-8")
    (folder / "briefing.html").write_text(rendered.html, encoding="utf-8")
    (folder / "briefing.txt").write_text(rendered.chat_text, encoding="utf-8")
    (folder / "blocks.json").write_text(
        json.dumps(rendered.blocks, ensure_ascii=False, indent=2), encoding="utf-8"
    )
    return folder


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def _escape_chat(text: str) -> str:
    # Telegram HTML mode only understands &lt; &gt; &amp; and numeric entities.
    return html.escape(text, quote=False)


def _escape_slack(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
