"""Edition curation: fetch, select, analyze the top K, persist as a dated edition."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import anthropic

from policybrief.analysis.generator import NarrativeGenerator, TextGenerator
from policybrief.analysis.retry import RetryController
from policybrief.analysis.sanitizer import Sanitizer
from policybrief.analysis.trends import TrendTracker
from policybrief.fetchers.sources import NewsSource, build_source
from policybrief.models import Article, Candidate, Edition, EditionStatus, ScoredCandidate
from policybrief.processing.selector import DEFAULT_MAX_CANDIDATES, select_candidates
from policybrief.storage.database import Database, EditionExistsError

logger = logging.getLogger(__name__)

DEFAULT_NUM_ANALYZED = 6


@dataclass
class RunStats:
    fetched: int = 0
    selected: int = 0
    analyzed: int = 0
    fallbacks: int = 0
    reused_existing: bool = False


class EditionCurator:
    """Builds at most one edition per date.

    A second call for a date that already has an edition returns the stored
    edition untouched; pass force=True to delete it and curate again.
    """

    def __init__(
        self,
        db: Database,
        source: NewsSource,
        analyzer: RetryController,
        trend_tracker: Optional[TrendTracker] = None,
        num_analyzed: int = DEFAULT_NUM_ANALYZED,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        dedup_threshold: float = 0.75,
    ):
        self.db = db
        self.source = source
        self.analyzer = analyzer
        self.trend_tracker = trend_tracker
        self.num_analyzed = num_analyzed
        self.max_candidates = max_candidates
        self.dedup_threshold = dedup_threshold
        self.stats = RunStats()

    def curate(
        self,
        edition_date: Optional[date] = None,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> Edition:
        now = now or datetime.now(timezone.utc)
        edition_date = edition_date or now.date()
        self.stats = RunStats()

        if force and self.reset(edition_date):
            logger.info(f"  Force requested: deleted existing edition for {edition_date}")

        existing = self.db.find_by_date(edition_date)
        if existing:
            logger.info(f"  Edition #{existing.issue_number} already exists for {edition_date}, returning it")
            self.stats.reused_existing = True
            return existing

        candidates = self.fetch(edition_date)
        selected = select_candidates(
            candidates,
            max_candidates=self.max_candidates,
            dedup_threshold=self.dedup_threshold,
            now=now,
        )
        self.stats.selected = len(selected)

        accepted: list[tuple[Candidate, str]] = []
        articles = self.analyze(selected, now, accepted)
        edition = self.persist(edition_date, articles)
        if not self.stats.reused_existing:
            self.track(edition_date, accepted)
        return edition

    def fetch(self, edition_date: date) -> list[Candidate]:
        """Pull raw candidates. A failing source counts as zero candidates."""
        try:
            candidates = self.source.fetch(date_range=(edition_date - timedelta(days=1), edition_date))
        except Exception as e:
            logger.warning(f"  Fetch failed, continuing with no candidates: {e}")
            candidates = []
        if not candidates:
            logger.warning(f"  No candidates fetched for {edition_date}; edition will have no articles")
        self.stats.fetched = len(candidates)
        return candidates

    def analyze(
        self,
        selected: list[ScoredCandidate],
        now: datetime,
        accepted: Optional[list[tuple[Candidate, str]]] = None,
    ) -> list[Article]:
        """Analyze the first K candidates in rank order; queue the rest.

        Non-fallback analyses are appended to ``accepted`` for trend tracking
        once the edition is stored.
        """
        articles = []
        for i, scored in enumerate(selected):
            if i >= self.num_analyzed:
                articles.append(Article.from_candidate(scored))
                continue

            logger.info(f"  Analyzing article {i + 1}: {scored.candidate.title[:60]}...")
            result = self.analyzer.analyze(scored.candidate, now=now)
            self.stats.analyzed += 1
            if result.used_fallback:
                self.stats.fallbacks += 1
            elif accepted is not None:
                accepted.append((scored.candidate, result.text))

            articles.append(Article.from_candidate(
                scored, ordinal=i + 1, analysis=result.text, generated_at=now,
            ))
        return articles

    def track(self, edition_date: date, accepted: list[tuple[Candidate, str]]):
        if self.trend_tracker is None:
            return
        for candidate, text in accepted:
            self.trend_tracker.track(candidate, text, tracked_on=edition_date)

    def persist(self, edition_date: date, articles: list[Article]) -> Edition:
        """Insert the edition and its articles. Storage errors propagate."""
        featured = next((a.title for a in articles if a.ordinal == 1), None)
        edition = Edition(
            edition_date=edition_date,
            status=EditionStatus.PUBLISHED,
            featured_headline=featured,
        )
        try:
            edition = self.db.insert_edition(edition)
        except EditionExistsError:
            logger.warning(f"  Another run created the {edition_date} edition first, using it")
            self.stats.reused_existing = True
            return self.db.find_by_date(edition_date)

        try:
            self.db.bulk_insert_articles(edition.id, articles)
        except sqlite3.Error:
            # Drop the bare edition row so a rerun can rebuild this date
            self.db.delete_edition(edition.id)
            raise
        logger.info(
            f"  Created edition #{edition.issue_number} for {edition_date} "
            f"with {len(articles)} articles ({self.stats.analyzed} analyzed)"
        )
        return self.db.get_edition(edition.id)

    def reset(self, edition_date: date) -> bool:
        """Delete the edition for a date, its articles and its tracked analyses."""
        self.db.delete_tracked_on(edition_date)
        existing = self.db.find_by_date(edition_date, with_articles=False)
        if not existing:
            return False
        return self.db.delete_edition(existing.id)

    def publish(self, edition_id: int):
        self.db.set_edition_status(edition_id, EditionStatus.PUBLISHED)
        logger.info(f"  Edition {edition_id} published")

    def mark_sent(self, edition_id: int):
        """Flag the newsletter as sent. Failure here is only a warning."""
        try:
            self.db.set_edition_status(edition_id, EditionStatus.SENT)
        except (LookupError, sqlite3.Error) as e:
            logger.warning(f"  Failed to mark edition {edition_id} as sent: {e}")
            return
        logger.info(f"  Edition {edition_id} marked as sent")

    def run_daily(
        self,
        edition_date: Optional[date] = None,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> Edition:
        """Curate, publish and mark sent. An already sent edition is left alone."""
        edition = self.curate(edition_date, force=force, now=now)
        if self.stats.reused_existing and edition.status == EditionStatus.SENT:
            logger.info(f"  Edition #{edition.issue_number} was already sent, nothing to do")
            return edition
        self.publish(edition.id)
        self.mark_sent(edition.id)
        return self.db.get_edition(edition.id)


def build_curator(cfg: dict, db: Database) -> EditionCurator:
    """Wire a curator from a loaded config."""
    client = anthropic.Anthropic(api_key=cfg["anthropic_api_key"])
    tracker = TrendTracker(db) if cfg.get("track_trends", True) else None
    generator = NarrativeGenerator(
        TextGenerator(client, cfg["model"]),
        trend_tracker=tracker,
        max_tokens=cfg["max_tokens"],
        temperature=cfg["temperature"],
    )
    analyzer = RetryController(
        generator,
        Sanitizer(cfg["min_words"], cfg["max_words"], cfg["year_lookback"]),
        max_retries=cfg["max_retries"],
        retry_delay=cfg["retry_delay"],
    )
    return EditionCurator(
        db,
        build_source(cfg),
        analyzer,
        trend_tracker=tracker,
        num_analyzed=cfg["num_analyzed"],
        max_candidates=cfg["max_candidates"],
        dedup_threshold=cfg["dedup_threshold"],
    )
