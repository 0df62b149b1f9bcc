"""Pick the top policy candidates: filter, deduplicate, score, rank, cap."""

import logging
import re
from datetime import datetime
from typing import Optional

from policybrief.models import Candidate, ScoredCandidate
from policybrief.processing.deduplicator import DEFAULT_THRESHOLD, deduplicate, drop_duplicate_urls
from policybrief.processing.scorer import score_candidates

logger = logging.getLogger(__name__)

DEFAULT_MAX_CANDIDATES = 20

POLICY_PATTERN = re.compile(
    r"\b(bills?|laws?|courts?|legislat\w*|governors?|congress\w*|senat\w*|regulat\w*|rules?|"
    r"polic(?:y|ies)|executive|signed|passe[sd]|approves?|supreme|federal|judges?|rulings?|"
    r"agency|agencies|white house|lawmakers?|tariffs?|epa|fda|irs)\b",
    re.IGNORECASE,
)

EXCLUSION_PATTERN = re.compile(
    r"\b(golf|nfl|nba|ncaa|sports|celebrity|stocks|earnings|rapper|music|movies?|entertainment)\b",
    re.IGNORECASE,
)


def is_complete(candidate: Candidate) -> bool:
    title = (candidate.title or "").strip()
    return bool(title and (candidate.description or "").strip()) and "[Removed]" not in title


def is_policy_relevant(candidate: Candidate) -> bool:
    """Policy terms are required; a title exclusion hit then vetoes."""
    if not POLICY_PATTERN.search(f"{candidate.title} {candidate.description or ''}"):
        return False
    return not EXCLUSION_PATTERN.search(candidate.title)


def select_candidates(
    candidates: list[Candidate],
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    dedup_threshold: float = DEFAULT_THRESHOLD,
    now: Optional[datetime] = None,
) -> list[ScoredCandidate]:
    """Return a ranked, deduplicated and capped candidate list.

    Ties in score keep their original fetch order.
    """
    complete = [c for c in candidates if is_complete(c)]
    relevant = [c for c in complete if is_policy_relevant(c)]
    logger.info(
        f"  Filter: {len(candidates)} fetched, {len(complete)} complete, "
        f"{len(relevant)} policy-relevant"
    )

    unique = deduplicate(drop_duplicate_urls(relevant), threshold=dedup_threshold)
    logger.info(f"  Dedup: {len(unique)} unique of {len(relevant)}")

    scored = score_candidates(unique, now=now)
    ranked = sorted(scored, key=lambda s: -s.score)
    selected = ranked[:max(0, max_candidates)]
    logger.info(f"  Selected top {len(selected)} (cap {max_candidates})")
    return selected
