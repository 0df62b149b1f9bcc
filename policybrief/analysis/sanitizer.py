import logging
import re
from datetime import datetime, timezone
from typing import Optional

from policybrief.models import Candidate, count_words

logger = logging.getLogger(__name__)

_LIST_MARKER = re.compile(r"^\s*(?:[-*]|\d+\.)\s", re.MULTILINE)
_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")


def normalize_text(text: str) -> str:
    """Strip carriage returns, trim lines, drop blanks, rejoin with blank lines."""
    lines = (line.strip() for line in text.replace("\r", "").split("\n"))
    return "\n\n".join(line for line in lines if line)


def source_material(candidate: Candidate) -> str:
    published = candidate.published.isoformat() if candidate.published else ""
    return " ".join((candidate.title or "", candidate.description or "", published))


class Sanitizer:
    """Cleans generated analysis text, returning None when it fails a gate.

    Gates run in order and stop at the first failure: word count,
    prose-only formatting, then unsourced recent or future years.
    """

    def __init__(self, min_words: int = 100, max_words: int = 250, year_lookback: int = 5):
        self.min_words = min_words
        self.max_words = max_words
        self.year_lookback = year_lookback

    def sanitize(
        self, candidate: Candidate, text: str, now: Optional[datetime] = None,
    ) -> Optional[str]:
        normalized = normalize_text(text or "")

        wc = count_words(normalized)
        if wc < self.min_words or wc > self.max_words:
            self._reject("word_count", f"{wc} words (need {self.min_words}-{self.max_words})")
            return None

        if _LIST_MARKER.search(normalized):
            self._reject("formatting", "bullet points/numbered lists detected")
            return None

        current_year = (now or datetime.now(timezone.utc)).year
        unsourced = self.unsourced_years(candidate, normalized, current_year)
        if unsourced:
            self._reject("unsourced_year", f"years not in source: {', '.join(unsourced)}")
            return None

        logger.info(f"  Sanitize passed: {wc} words, format OK, dates OK")
        return normalized

    def unsourced_years(self, candidate: Candidate, text: str, current_year: int) -> list[str]:
        """Years from the lookback window onward that the source never mentions."""
        material = source_material(candidate)
        earliest = current_year - self.year_lookback
        missing = []
        for year in dict.fromkeys(_YEAR.findall(text)):
            if int(year) >= earliest and year not in material:
                missing.append(year)
        return missing

    def _reject(self, reason: str, details: str):
        logger.info(f"  Analysis rejected [{reason}]: {details}")
