"""Editorial actions on stored editions: review, promote/demote, edit, remove, stats."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from policybrief.analysis.retry import FALLBACK_TEXT
from policybrief.models import Article, ArticleStatus
from policybrief.storage.database import Database

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(timezone.utc).date()


def articles_by_status(db: Database, edition_date: Optional[date] = None) -> dict[str, list[Article]]:
    """The edition's articles grouped under every status, empty when no edition exists."""
    grouped: dict[str, list[Article]] = {s.value: [] for s in ArticleStatus}
    edition = db.find_by_date(edition_date or _today())
    if edition is None:
        return grouped
    for article in edition.articles:
        grouped[article.status.value].append(article)
    return grouped


def set_article_status(db: Database, article_id: int, status: str):
    try:
        status = ArticleStatus(status)
    except ValueError:
        valid = ", ".join(s.value for s in ArticleStatus)
        raise ValueError(f"Invalid status {status!r}. Must be one of: {valid}") from None
    db.update_article_status(article_id, status)
    logger.info(f"Updated article {article_id} status to {status.value}")


def replace_analysis(db: Database, article_id: int, text: str) -> int:
    text = (text or "").strip()
    if not text:
        raise ValueError("Analysis text must not be empty")
    wc = db.update_analysis(article_id, text)
    logger.info(f"Updated analysis for article {article_id}, word count: {wc}")
    return wc


def remove_article(db: Database, article_id: int):
    if not db.remove_article(article_id):
        raise LookupError(f"No article with id {article_id}")
    logger.info(f"Removed article {article_id}")


def is_fallback(article: Article) -> bool:
    return article.analysis == FALLBACK_TEXT


def get_stats(db: Database, days: int = 7, today: Optional[date] = None) -> dict:
    """Summary of recent editions."""
    editions = db.recent_editions(days=days, today=today)
    articles = [a for e in editions for a in e.articles]
    analyzed = [a for a in articles if a.analysis]
    fallbacks = [a for a in analyzed if is_fallback(a)]
    avg_words = sum(a.word_count for a in analyzed) / len(analyzed) if analyzed else 0
    return {
        "editions": len(editions),
        "articles": len(articles),
        "analyzed": len(analyzed),
        "fallbacks": len(fallbacks),
        "avg_word_count": round(avg_words, 1),
        "sources": len({a.source for a in articles if a.source}),
        "recent": [
            {
                "date": e.edition_date.isoformat(),
                "issue_number": e.issue_number,
                "status": e.status.value,
                "articles": len(e.articles),
            }
            for e in editions
        ],
    }
