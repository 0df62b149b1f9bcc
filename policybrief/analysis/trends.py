"""Trend tracking across editions, persisted in the database."""

import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from policybrief.models import Candidate
from policybrief.storage.database import Database

logger = logging.getLogger(__name__)


CATEGORY_KEYWORDS = {
    "environmental": ("epa", "climate", "emission", "renewable", "pollution", "carbon", "environment"),
    "immigration": ("border", "deportation", "visa", "asylum", "immigrant", "migration"),
    "healthcare": ("medicare", "medicaid", "insurance", "drug", "hospital", "health"),
    "financial": ("bank", "sec ", "crypto", "finance", "trading", "wall street"),
    "energy": ("oil", "gas", "pipeline", "drilling", "fracking", "energy", "coal"),
    "tech": ("social media", "algorithm", "artificial intelligence", " ai ", "privacy", "tech", "platform"),
    "trade": ("tariff", "import", "export", "trade", "wto", "commerce"),
    "education": ("school", "university", "student", "education", "teacher", "college"),
}
DEFAULT_CATEGORY = "policy"

BENEFICIARY_TERMS = (
    "oil companies", "gas companies", "energy companies", "fossil fuel",
    "banks", "wall street", "financial firms", "insurance companies",
    "pharmaceutical", "private prisons", "defense contractors", "tech companies",
    "manufacturers", "corporations", "developers", "landlords",
)

AFFECTED_TERMS = (
    "consumers", "workers", "families", "patients", "students", "immigrants",
    "low-income", "elderly", "children", "renters", "unions", "small businesses",
)

REVERSAL_KEYWORDS = ("reverses", "overturns", "cancels", "rescinds", "rolls back", "repeals", "eliminates")


def _text(candidate: Candidate) -> str:
    return f" {candidate.title} {candidate.description or ''} ".lower()


def detect_category(candidate: Candidate) -> str:
    text = _text(candidate)
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(k in text for k in keywords):
            return category
    return DEFAULT_CATEGORY


def extract_terms(analysis: str, terms: tuple[str, ...]) -> list[str]:
    text = analysis.lower()
    return [t for t in terms if t in text]


def detect_reversal(candidate: Candidate) -> Optional[str]:
    text = _text(candidate)
    if not any(k in text for k in REVERSAL_KEYWORDS):
        return None
    if "biden" in text:
        return "Biden-era"
    if "obama" in text:
        return "Obama-era"
    return "previous administration"


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


class TrendTracker:
    def __init__(self, db: Database, today: Optional[date] = None):
        self.db = db
        self._today = today

    @property
    def today(self) -> date:
        return self._today or datetime.now(timezone.utc).date()

    def track(self, candidate: Candidate, analysis: str, tracked_on: Optional[date] = None) -> str:
        """Record an accepted analysis. Returns the detected category."""
        category = detect_category(candidate)
        self.db.insert_tracked_analysis(
            category=category,
            tracked_on=tracked_on or self.today,
            title=candidate.title,
            beneficiaries=extract_terms(analysis, BENEFICIARY_TERMS),
            affected=extract_terms(analysis, AFFECTED_TERMS),
            reversal=detect_reversal(candidate),
        )
        return category

    def _recent(self, days: int, category: Optional[str] = None) -> list[dict]:
        end = self.today + timedelta(days=1)
        return self.db.tracked_between(end - timedelta(days=days + 1), end, category)

    def top_beneficiaries(self, category: str, days: int = 60) -> list[str]:
        counts = Counter(b for row in self._recent(days, category) for b in row["beneficiaries"])
        return [term for term, n in counts.most_common() if n > 1]

    def weekly_pace(self, category: str) -> float:
        return len(self._recent(28, category)) / 4

    def trend_context(self, candidate: Candidate) -> str:
        """A few sentences of context from earlier analyses, or ''."""
        category = detect_category(candidate)
        context = []

        similar = self._recent(30, category)
        if len(similar) > 1:
            context.append(
                f"This is the {_ordinal(len(similar) + 1)} {category} story analyzed in the past month"
            )

        beneficiaries = self.top_beneficiaries(category)
        if beneficiaries:
            context.append(
                f"{beneficiaries[0].capitalize()} appeared as beneficiaries in several recent {category} analyses"
            )

        reversals = [r for r in self._recent(30) if r["reversal"]]
        if len(reversals) > 2:
            context.append(
                f"{len(reversals)} stories analyzed this month involved reversing earlier policies"
            )

        pace = self.weekly_pace(category)
        if pace > 1:
            context.append(f"{category.capitalize()} stories are arriving at about {pace:.1f} per week")

        return ". ".join(context) + "." if context else ""
