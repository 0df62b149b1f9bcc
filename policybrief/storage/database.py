import json
import sqlite3
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from policybrief.models import Article, ArticleStatus, Edition, EditionStatus, count_words


SCHEMA = """
CREATE TABLE IF NOT EXISTS editions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    edition_date TEXT NOT NULL UNIQUE,
    issue_number INTEGER NOT NULL UNIQUE,
    status TEXT NOT NULL DEFAULT 'published'
        CHECK (status IN ('published', 'sent')),
    featured_headline TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT
);
CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    edition_id INTEGER NOT NULL REFERENCES editions(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT,
    url TEXT NOT NULL,
    image_url TEXT,
    source_name TEXT,
    published_at TEXT,
    ordinal INTEGER,
    analysis_text TEXT,
    analysis_generated_at TEXT,
    word_count INTEGER NOT NULL DEFAULT 0,
    score INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'queue'
        CHECK (status IN ('published', 'draft', 'queue', 'rejected')),
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_articles_edition ON articles(edition_id);
CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(status);
CREATE TABLE IF NOT EXISTS tracked_analyses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category TEXT NOT NULL,
    tracked_on TEXT NOT NULL,
    title TEXT NOT NULL,
    beneficiaries TEXT NOT NULL DEFAULT '[]',
    affected TEXT NOT NULL DEFAULT '[]',
    reversal TEXT
);
CREATE INDEX IF NOT EXISTS idx_tracked_category ON tracked_analyses(category, tracked_on);
CREATE TABLE IF NOT EXISTS issue_sequence (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    last_issue INTEGER NOT NULL
);
-- Seeded from existing editions; never decreases afterwards
INSERT OR IGNORE INTO issue_sequence (id, last_issue)
    SELECT 1, COALESCE(MAX(issue_number), 0) FROM editions;
"""


class EditionExistsError(Exception):
    """An edition for this date is already stored."""

    def __init__(self, edition_date: date):
        super().__init__(f"Edition for {edition_date.isoformat()} already exists")
        self.edition_date = edition_date


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _parse_dt(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


class Database:
    def __init__(self, db_path: str):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        self.conn.executescript(SCHEMA)
        self.conn.commit()

    # ------------------------------------------------------------------
    # Editions
    # ------------------------------------------------------------------

    def find_by_date(self, edition_date: date, with_articles: bool = True) -> Optional[Edition]:
        row = self.conn.execute(
            "SELECT * FROM editions WHERE edition_date = ?", (edition_date.isoformat(),)
        ).fetchone()
        return self._row_to_edition(row, with_articles) if row else None

    def get_edition(self, edition_id: int, with_articles: bool = True) -> Optional[Edition]:
        row = self.conn.execute(
            "SELECT * FROM editions WHERE id = ?", (edition_id,)
        ).fetchone()
        return self._row_to_edition(row, with_articles) if row else None

    def next_issue_number(self) -> int:
        """The number the next allocated edition will get. Never reused after deletes."""
        row = self.conn.execute(
            "SELECT last_issue FROM issue_sequence WHERE id = 1"
        ).fetchone()
        return row["last_issue"] + 1

    def insert_edition(self, edition: Edition) -> Edition:
        """Insert an edition row. Raises EditionExistsError on a date conflict.

        An edition without an issue number gets the next one from the
        sequence, in the same transaction as the insert, so a failed insert
        does not consume a number.
        """
        try:
            with self.conn:
                if edition.issue_number is None:
                    self.conn.execute(
                        "UPDATE issue_sequence SET last_issue = last_issue + 1 WHERE id = 1"
                    )
                else:
                    self.conn.execute(
                        "UPDATE issue_sequence SET last_issue = MAX(last_issue, ?) WHERE id = 1",
                        (edition.issue_number,),
                    )
                issue_number = edition.issue_number
                if issue_number is None:
                    issue_number = self.conn.execute(
                        "SELECT last_issue FROM issue_sequence WHERE id = 1"
                    ).fetchone()["last_issue"]
                cursor = self.conn.execute(
                    """INSERT INTO editions
                       (edition_date, issue_number, status, featured_headline, created_at)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        edition.edition_date.isoformat(),
                        issue_number,
                        EditionStatus(edition.status).value,
                        edition.featured_headline,
                        edition.created_at.isoformat(),
                    ),
                )
        except sqlite3.IntegrityError:
            if self.find_by_date(edition.edition_date, with_articles=False):
                raise EditionExistsError(edition.edition_date)
            raise
        edition.id = cursor.lastrowid
        edition.issue_number = issue_number
        return edition

    def delete_edition(self, edition_id: int) -> bool:
        """Delete an edition; its articles go with it."""
        cursor = self.conn.execute("DELETE FROM editions WHERE id = ?", (edition_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    def set_edition_status(self, edition_id: int, status: str):
        status = EditionStatus(status).value
        cursor = self.conn.execute(
            "UPDATE editions SET status = ?, updated_at = ? WHERE id = ?",
            (status, _now(), edition_id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise LookupError(f"No edition with id {edition_id}")

    def recent_editions(self, days: int = 7, today: Optional[date] = None) -> list[Edition]:
        today = today or datetime.now(timezone.utc).date()
        since = (today - timedelta(days=days)).isoformat()
        rows = self.conn.execute(
            "SELECT * FROM editions WHERE edition_date >= ? ORDER BY edition_date DESC",
            (since,),
        ).fetchall()
        return [self._row_to_edition(r) for r in rows]

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    def bulk_insert_articles(self, edition_id: int, articles: list[Article]) -> int:
        """Insert all articles of an edition in one transaction."""
        rows = [
            (
                edition_id,
                a.title,
                a.description,
                a.url,
                a.image_url,
                a.source,
                _iso(a.published),
                a.ordinal,
                a.analysis,
                _iso(a.analysis_generated_at),
                a.word_count,
                a.score,
                ArticleStatus(a.status).value,
            )
            for a in articles
        ]
        with self.conn:
            self.conn.executemany(
                """INSERT INTO articles
                   (edition_id, title, description, url, image_url, source_name, published_at,
                    ordinal, analysis_text, analysis_generated_at, word_count, score, status)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                rows,
            )
        for a in articles:
            a.edition_id = edition_id
        return len(rows)

    def get_articles(self, edition_id: int, status: Optional[str] = None) -> list[Article]:
        sql = "SELECT * FROM articles WHERE edition_id = ?"
        params: list = [edition_id]
        if status:
            sql += " AND status = ?"
            params.append(ArticleStatus(status).value)
        sql += " ORDER BY ordinal IS NULL, ordinal, score DESC, id"
        rows = self.conn.execute(sql, params).fetchall()
        return [self._row_to_article(r) for r in rows]

    def get_article(self, article_id: int) -> Optional[Article]:
        row = self.conn.execute(
            "SELECT * FROM articles WHERE id = ?", (article_id,)
        ).fetchone()
        return self._row_to_article(row) if row else None

    def update_article_status(self, article_id: int, status: str):
        status = ArticleStatus(status).value
        cursor = self.conn.execute(
            "UPDATE articles SET status = ?, updated_at = ? WHERE id = ?",
            (status, _now(), article_id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise LookupError(f"No article with id {article_id}")

    def update_analysis(self, article_id: int, analysis: str) -> int:
        """Replace an article's analysis. Returns the new word count."""
        wc = count_words(analysis)
        now = _now()
        cursor = self.conn.execute(
            """UPDATE articles
               SET analysis_text = ?, word_count = ?, analysis_generated_at = ?, updated_at = ?
               WHERE id = ?""",
            (analysis, wc, now, now, article_id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise LookupError(f"No article with id {article_id}")
        return wc

    def remove_article(self, article_id: int) -> bool:
        cursor = self.conn.execute("DELETE FROM articles WHERE id = ?", (article_id,))
        self.conn.commit()
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Trend tracking
    # ------------------------------------------------------------------

    def insert_tracked_analysis(
        self,
        category: str,
        tracked_on: date,
        title: str,
        beneficiaries: list[str],
        affected: list[str],
        reversal: Optional[str],
    ) -> int:
        cursor = self.conn.execute(
            """INSERT INTO tracked_analyses
               (category, tracked_on, title, beneficiaries, affected, reversal)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                category,
                tracked_on.isoformat(),
                title,
                json.dumps(beneficiaries),
                json.dumps(affected),
                reversal,
            ),
        )
        self.conn.commit()
        return cursor.lastrowid

    def delete_tracked_on(self, tracked_on: date) -> int:
        cursor = self.conn.execute(
            "DELETE FROM tracked_analyses WHERE tracked_on = ?", (tracked_on.isoformat(),)
        )
        self.conn.commit()
        return cursor.rowcount

    def tracked_between(
        self, start: date, end: date, category: Optional[str] = None,
    ) -> list[dict]:
        """Tracked analyses with start <= tracked_on < end."""
        sql = "SELECT * FROM tracked_analyses WHERE tracked_on >= ? AND tracked_on < ?"
        params: list = [start.isoformat(), end.isoformat()]
        if category:
            sql += " AND category = ?"
            params.append(category)
        sql += " ORDER BY tracked_on DESC, id DESC"
        rows = self.conn.execute(sql, params).fetchall()
        return [
            {
                "category": r["category"],
                "tracked_on": date.fromisoformat(r["tracked_on"]),
                "title": r["title"],
                "beneficiaries": json.loads(r["beneficiaries"]),
                "affected": json.loads(r["affected"]),
                "reversal": r["reversal"],
            }
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _row_to_edition(self, row: sqlite3.Row, with_articles: bool = True) -> Edition:
        edition = Edition(
            id=row["id"],
            edition_date=date.fromisoformat(row["edition_date"]),
            issue_number=row["issue_number"],
            status=EditionStatus(row["status"]),
            featured_headline=row["featured_headline"],
            created_at=_parse_dt(row["created_at"]) or datetime.now(timezone.utc),
            updated_at=_parse_dt(row["updated_at"]),
        )
        if with_articles:
            edition.articles = self.get_articles(edition.id)
        return edition

    def _row_to_article(self, row: sqlite3.Row) -> Article:
        return Article(
            id=row["id"],
            edition_id=row["edition_id"],
            title=row["title"],
            description=row["description"],
            url=row["url"],
            image_url=row["image_url"],
            source=row["source_name"] or "",
            published=_parse_dt(row["published_at"]),
            ordinal=row["ordinal"],
            analysis=row["analysis_text"],
            analysis_generated_at=_parse_dt(row["analysis_generated_at"]),
            word_count=row["word_count"],
            score=row["score"],
            status=ArticleStatus(row["status"]),
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.conn.close()
