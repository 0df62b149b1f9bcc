from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


class ArticleStatus(str, Enum):
    PUBLISHED = "published"
    DRAFT = "draft"
    QUEUE = "queue"
    REJECTED = "rejected"


class EditionStatus(str, Enum):
    PUBLISHED = "published"
    SENT = "sent"


@dataclass
class Candidate:
    """A news item as fetched from a source, before selection."""
    title: str
    url: str
    source: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    published: Optional[datetime] = None
    fetched_via: str = ""  # "gnews", "gnews_search" or "rss"


@dataclass
class ScoredCandidate:
    """A candidate that survived selection, with its relevance score."""
    candidate: Candidate
    score: int = 0


@dataclass
class Article:
    """An item stored within an edition. Only analyzed items carry an ordinal."""
    title: str
    url: str
    source: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    published: Optional[datetime] = None
    ordinal: Optional[int] = None
    analysis: Optional[str] = None
    analysis_generated_at: Optional[datetime] = None
    word_count: int = 0
    score: int = 0
    status: ArticleStatus = ArticleStatus.QUEUE
    edition_id: Optional[int] = None
    id: Optional[int] = None

    @classmethod
    def from_candidate(
        cls,
        scored: ScoredCandidate,
        ordinal: Optional[int] = None,
        analysis: Optional[str] = None,
        generated_at: Optional[datetime] = None,
    ) -> "Article":
        c = scored.candidate
        return cls(
            title=c.title, url=c.url, source=c.source,
            description=c.description, image_url=c.image_url, published=c.published,
            ordinal=ordinal,
            analysis=analysis,
            analysis_generated_at=generated_at if analysis else None,
            word_count=count_words(analysis),
            score=scored.score,
            status=ArticleStatus.PUBLISHED if analysis else ArticleStatus.QUEUE,
        )


@dataclass
class Edition:
    """One day's curated batch of articles."""
    edition_date: date
    issue_number: Optional[int] = None
    status: EditionStatus = EditionStatus.PUBLISHED
    featured_headline: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
    id: Optional[int] = None
    articles: list[Article] = field(default_factory=list)


def count_words(text: Optional[str]) -> int:
    """Whitespace-token count; 0 for missing text."""
    if not text:
        return 0
    return len(text.split())
