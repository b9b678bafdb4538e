"""
SQLite-backed store for articles, briefings and delivery flags.

One ArticleStore is opened per process and passed to the components that
need it. Every write touches a single row keyed by a unique identity (url
for articles, date for briefings, (date, channel) for deliveries) and is
committed immediately, so a crash never leaves a half-written row behind.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import sqlite3
import threading

from ..core.dates import from_epoch, to_epoch
from ..core.types import Article, Briefing, StoreStats
from ..utils.logging import get_logger

logger = get_logger("store")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL,
    author TEXT,
    source_name TEXT,
    published_at INTEGER,
    fetched_at INTEGER NOT NULL,
    content TEXT,
    summary TEXT,
    category TEXT,
    importance_score REAL NOT NULL DEFAULT 0,
    processed INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now')),
    updated_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now'))
);

CREATE TABLE IF NOT EXISTS briefings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT UNIQUE NOT NULL,
    content TEXT NOT NULL,
    article_count INTEGER NOT NULL,
    created_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now')),
    updated_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now'))
);

CREATE TABLE IF NOT EXISTS briefing_deliveries (
    date TEXT NOT NULL,
    channel TEXT NOT NULL,
    sent_at INTEGER NOT NULL DEFAULT (strftime('%s', 'now')),
    PRIMARY KEY (date, channel)
);

CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_at DESC);
CREATE INDEX IF NOT EXISTS idx_articles_processed ON articles(processed);
CREATE INDEX IF NOT EXISTS idx_articles_category ON articles(category);
"""

# Day selection and recency ordering fall back to fetch time for entries
# whose feed omitted a publish date.
_EFFECTIVE_PUBLISHED = "COALESCE(published_at, fetched_at)"


class ArticleStore:
    """Thread-safe SQLite wrapper that stays open for the process lifetime."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    # Lifecycle

    def open(self) -> ArticleStore:
        if self._conn is not None:
            return self
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.executescript(_SCHEMA)
        conn.commit()
        self._conn = conn
        logger.debug("SQLite ready at %s", self.db_path)
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None

    def __enter__(self) -> ArticleStore:
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("ArticleStore is not open")
        return self._conn

    def _write(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            cur = self.conn.execute(sql, params)
            self.conn.commit()
            return cur

    def _read(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    # Articles

    def insert_if_absent(self, article: Article) -> bool:
        """Insert an article unless its URL is already stored.

        Returns:
            True if a new row was created, False if the URL existed
        """
        cur = self._write(
            """
            INSERT OR IGNORE INTO articles (
                url, title, author, source_name, published_at, fetched_at, content
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                article.url,
                article.title,
                article.author,
                article.source_name,
                to_epoch(article.published_at),
                to_epoch(article.fetched_at or datetime.now(timezone.utc)),
                article.content,
            ),
        )
        return cur.rowcount == 1

    def find_by_url(self, url: str) -> Article | None:
        rows = self._read("SELECT * FROM articles WHERE url = ?", (url,))
        return _row_to_article(rows[0]) if rows else None

    def list_unprocessed(self, limit: int = 50) -> list[Article]:
        rows = self._read(
            f"""
            SELECT * FROM articles
            WHERE processed = 0
            ORDER BY {_EFFECTIVE_PUBLISHED} DESC, id ASC
            LIMIT ?
            """,
            (limit,),
        )
        return [_row_to_article(row) for row in rows]

    def update_classification(
        self, article_id: int, summary: str, category: str, score: float
    ) -> bool:
        """Store a classification and mark the article processed.

        All four columns change in one UPDATE statement.
        """
        cur = self._write(
            """
            UPDATE articles
            SET summary = ?, category = ?, importance_score = ?, processed = 1,
                updated_at = strftime('%s', 'now')
            WHERE id = ?
            """,
            (summary, category, float(score), article_id),
        )
        return cur.rowcount == 1

    def list_by_date_range(
        self, start: datetime, end: datetime, limit: int = 100
    ) -> list[Article]:
        """Articles published within [start, end], most important first."""
        rows = self._read(
            f"""
            SELECT * FROM articles
            WHERE {_EFFECTIVE_PUBLISHED} >= ? AND {_EFFECTIVE_PUBLISHED} <= ?
            ORDER BY importance_score DESC, {_EFFECTIVE_PUBLISHED} DESC, id ASC
            LIMIT ?
            """,
            (to_epoch(start), to_epoch(end), limit),
        )
        return [_row_to_article(row) for row in rows]

    # Briefings

    def upsert_briefing(self, briefing: Briefing) -> None:
        """Create or replace the briefing for a date.

        Delivery flags live in their own table and survive the replacement.
        """
        self._write(
            """
            INSERT INTO briefings (date, content, article_count)
            VALUES (?, ?, ?)
            ON CONFLICT(date) DO UPDATE SET
                content = excluded.content,
                article_count = excluded.article_count,
                updated_at = strftime('%s', 'now')
            """,
            (briefing.date, briefing.content, briefing.article_count),
        )

    def find_briefing_by_date(self, date: str) -> Briefing | None:
        rows = self._read("SELECT * FROM briefings WHERE date = ?", (date,))
        if not rows:
            return None
        return self._row_to_briefing(rows[0])

    def latest_briefing(self) -> Briefing | None:
        rows = self._read("SELECT * FROM briefings ORDER BY date DESC LIMIT 1")
        if not rows:
            return None
        return self._row_to_briefing(rows[0])

    def set_channel_sent(self, date: str, channel: str) -> None:
        self._write(
            "INSERT OR IGNORE INTO briefing_deliveries (date, channel) VALUES (?, ?)",
            (date, channel),
        )

    def clear_channel_sent(self, date: str) -> None:
        self._write("DELETE FROM briefing_deliveries WHERE date = ?", (date,))

    def sent_channels(self, date: str) -> frozenset[str]:
        rows = self._read(
            "SELECT channel FROM briefing_deliveries WHERE date = ? ORDER BY channel", (date,)
        )
        return frozenset(row["channel"] for row in rows)

    # Stats

    def stats(self) -> StoreStats:
        rows = self._read(
            """
            SELECT
                (SELECT COUNT(*) FROM articles) AS total_articles,
                (SELECT COUNT(*) FROM articles WHERE processed = 1) AS processed_articles,
                (SELECT COUNT(*) FROM briefings) AS total_briefings
            """
        )
        row = rows[0]
        return StoreStats(
            total_articles=row["total_articles"],
            processed_articles=row["processed_articles"],
            total_briefings=row["total_briefings"],
        )

    def _row_to_briefing(self, row: sqlite3.Row) -> Briefing:
        return Briefing(
            date=row["date"],
            content=row["content"],
            article_count=row["article_count"],
            sent_channels=self.sent_channels(row["date"]),
        )


def _row_to_article(row: sqlite3.Row) -> Article:
    return Article(
        id=row["id"],
        url=row["url"],
        title=row["title"],
        author=row["author"],
        source_name=row["source_name"] or "",
        published_at=from_epoch(row["published_at"]),
        fetched_at=from_epoch(row["fetched_at"]),
        content=row["content"],
        summary=row["summary"],
        category=row["category"],
        importance_score=row["importance_score"] or 0.0,
        processed=bool(row["processed"]),
    )
