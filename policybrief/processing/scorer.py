"""Keyword-weighted relevance scoring for policy news candidates."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from policybrief.models import Candidate, ScoredCandidate


HIGH_VALUE_PHRASES = (
    "executive order", "supreme court", "bill signed", "congress passes",
    "senate votes", "federal ruling", "white house",
)

MEDIUM_VALUE_KEYWORDS = (
    "regulation", "congress", "senate", "federal", "government", "policy",
    "legislation", "court", "judge", "ruling", "election", "lawmakers",
)

EXCLUSION_KEYWORDS = (
    "celebrity", "entertainment", "sports", "nfl", "nba", "movie",
    "music", "kardashian", "box office",
)

HIGH_TRUST_SOURCES = (
    "reuters", "associated press", "ap news", "bloomberg", "wall street journal",
    "washington post", "new york times", "politico", "npr", "pbs",
)

HIGH_VALUE_POINTS = 10
MEDIUM_VALUE_POINTS = 5
EXCLUSION_PENALTY = 15
DAY_BONUS = 5
HALF_DAY_BONUS = 3
SOURCE_BONUS = 3


def _word_start(phrases):
    return [re.compile(r"\b" + re.escape(p)) for p in phrases]


_HIGH_VALUE = _word_start(HIGH_VALUE_PHRASES)
_MEDIUM_VALUE = _word_start(MEDIUM_VALUE_KEYWORDS)
# Whole words only: "nfl" must not hit "inflation"
_EXCLUSIONS = [re.compile(r"\b" + re.escape(k) + r"\b") for k in EXCLUSION_KEYWORDS]


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def score_candidate(candidate: Candidate, now: Optional[datetime] = None) -> int:
    """Score a candidate's policy relevance. Always >= 0.

    Each listed phrase counts once when it occurs in the lower-cased
    title + description. Recency bonuses stack: +5 inside 24 hours and
    a further +3 inside 12 hours.
    """
    text = f"{candidate.title} {candidate.description or ''}".lower()
    score = 0

    score += HIGH_VALUE_POINTS * sum(1 for p in _HIGH_VALUE if p.search(text))
    score += MEDIUM_VALUE_POINTS * sum(1 for k in _MEDIUM_VALUE if k.search(text))
    score -= EXCLUSION_PENALTY * sum(1 for k in _EXCLUSIONS if k.search(text))

    if candidate.published is not None:
        now = _as_utc(now or datetime.now(timezone.utc))
        age = max(now - _as_utc(candidate.published), timedelta(0))
        if age < timedelta(hours=24):
            score += DAY_BONUS
        if age < timedelta(hours=12):
            score += HALF_DAY_BONUS

    source = (candidate.source or "").lower()
    if any(s in source for s in HIGH_TRUST_SOURCES):
        score += SOURCE_BONUS

    return max(0, score)


def score_candidates(
    candidates: list[Candidate], now: Optional[datetime] = None,
) -> list[ScoredCandidate]:
    now = now or datetime.now(timezone.utc)
    return [ScoredCandidate(candidate=c, score=score_candidate(c, now)) for c in candidates]
