"""
Closed set of briefing categories with their display metadata.

The classifier answers with free-form labels; Category.parse maps them onto
one of the members below, falling back to OTHER.
"""

from __future__ import annotations

from enum import Enum

from rapidfuzz import fuzz, process

FUZZY_THRESHOLD = 85


class Category(Enum):
    """Article category bound to an immutable (label, emoji) pair."""

    AI_ML = ("AI/ML", "🤖")
    STARTUP = ("Startup", "💼")
    SECURITY = ("Security", "🔒")
    DEVELOPMENT = ("Development", "💻")
    INFRASTRUCTURE = ("Infrastructure", "🏗️")
    DATA = ("Data", "📊")
    OTHER = ("Other", "📚")

    def __init__(self, label: str, emoji: str) -> None:
        self.label = label
        self.emoji = emoji

    @property
    def heading(self) -> str:
        return f"{self.emoji} {self.label}"

    @classmethod
    def labels(cls) -> list[str]:
        return [member.label for member in cls]

    @classmethod
    def parse(cls, raw: str | None) -> Category:
        """Map a classifier label onto a category.

        Matching is tried in order: exact label or alias (case-insensitive),
        then a fuzzy match against labels and aliases. Anything else is OTHER.

        Examples:
            >>> Category.parse("ai/ml")
            <Category.AI_ML: ('AI/ML', '🤖')>
            >>> Category.parse("安全")
            <Category.SECURITY: ('Security', '🔒')>
            >>> Category.parse("cooking")
            <Category.OTHER: ('Other', '📚')>
        """
        if not raw:
            return cls.OTHER
        key = _normalize(raw)
        if not key:
            return cls.OTHER
        lookup = _alias_table()
        if key in lookup:
            return lookup[key]
        match = process.extractOne(key, list(lookup), scorer=fuzz.ratio)
        if match is not None and match[1] >= FUZZY_THRESHOLD:
            return lookup[match[0]]
        return cls.OTHER

    @classmethod
    def from_label(cls, label: str | None) -> Category | None:
        """Return the member whose label is exactly `label`, if any."""
        for member in cls:
            if member.label == label:
                return member
        return None


def display_heading(label: str | None) -> str:
    """Emoji-decorated heading for a stored category label.

    Unknown labels keep their text and borrow OTHER's emoji.
    """
    label = label or Category.OTHER.label
    member = Category.from_label(label)
    emoji = member.emoji if member else Category.OTHER.emoji
    return f"{emoji} {label}"


# Includes the Chinese labels used by earlier prompt versions.
_ALIASES: dict[Category, tuple[str, ...]] = {
    Category.AI_ML: ("ai", "ml", "ai ml", "machine learning", "artificial intelligence", "llm"),
    Category.STARTUP: ("startups", "business", "entrepreneurship", "创业"),
    Category.SECURITY: ("infosec", "cybersecurity", "安全"),
    Category.DEVELOPMENT: ("dev", "programming", "software development", "开发"),
    Category.INFRASTRUCTURE: ("infra", "devops", "cloud", "基础设施"),
    Category.DATA: ("data analysis", "analytics", "data science", "数据分析"),
    Category.OTHER: ("misc", "general", "其他"),
}


def _normalize(value: str) -> str:
    return " ".join(value.strip().lower().replace("/", " ").replace("&", " ").split())


def _alias_table() -> dict[str, Category]:
    table: dict[str, Category] = {}
    for member in Category:
        table[_normalize(member.label)] = member
        for alias in _ALIASES.get(member, ()):
            table[_normalize(alias)] = member
    return table
