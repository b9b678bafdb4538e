"""Briefing assembly and rendering."""

from .briefing import (
    BriefingModel,
    CategoryGroup,
    build_model,
    group_by_category,
    pick_highlights,
    select_for_date,
)
from .renderer import (
    assemble,
    render_blocks,
    render_chat_text,
    render_html,
    render_markdown,
    write_briefing_files,
)

__all__ = [
    "BriefingModel",
    "CategoryGroup",
    "assemble",
    "build_model",
    "group_by_category",
    "pick_highlights",
    "render_blocks",
    "render_chat_text",
    "render_html",
    "render_markdown",
    "select_for_date",
    "write_briefing_files",
]
