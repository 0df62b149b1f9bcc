from __future__ import annotations

import logging
import re
from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from policybrief.models import Candidate

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.75

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
})

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(text: str) -> str:
    """Lower-case, strip punctuation and stop words, collapse whitespace."""
    text = _PUNCTUATION.sub("", (text or "").lower())
    words = [w for w in text.split() if w not in STOP_WORDS]
    return _WHITESPACE.sub(" ", " ".join(words)).strip()


def _tokens(normalized: str) -> set[str]:
    return {w for w in normalized.split(" ") if len(w) > 2}


def jaccard(a: str, b: str) -> float:
    """Jaccard similarity of the token sets of two normalized strings."""
    wa = _tokens(a)
    wb = _tokens(b)
    union = wa | wb
    if not union:
        return 0.0
    return len(wa & wb) / len(union)


def title_similarity(title_a: str, title_b: str) -> float:
    return jaccard(normalize_title(title_a), normalize_title(title_b))


def normalize_url(url: str) -> str:
    """Normalize a URL for comparison: lowercase host, strip tracking params, trailing slashes."""
    try:
        parsed = urlparse(url.strip())
        scheme = parsed.scheme.lower()
        netloc = parsed.netloc.lower()
        if netloc.startswith("www."):
            netloc = netloc[4:]
        tracking_params = {"utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term", "ref", "source"}
        params = parse_qs(parsed.query)
        filtered = {k: v for k, v in params.items() if k.lower() not in tracking_params}
        query = urlencode(filtered, doseq=True) if filtered else ""
        path = parsed.path.rstrip("/")
        return urlunparse((scheme, netloc, path, parsed.params, query, ""))
    except ValueError:
        return url.strip().lower()


def drop_duplicate_urls(items: list[Candidate]) -> list[Candidate]:
    """Remove items whose normalized URL was already seen. First seen wins."""
    seen: set[str] = set()
    unique: list[Candidate] = []
    for item in items:
        if item.url:
            norm = normalize_url(item.url)
            if norm in seen:
                continue
            seen.add(norm)
        unique.append(item)
    return unique


def deduplicate(
    items: list[Candidate],
    threshold: float = DEFAULT_THRESHOLD,
    existing_titles: list[str] | None = None,
) -> list[Candidate]:
    """Drop near-duplicate titles, keeping the first occurrence.

    Args:
        items: Candidates in their original order.
        threshold: An item is a duplicate when its similarity to any
            accepted title is strictly greater than this.
        existing_titles: Raw titles to seed the accepted set with, e.g.
            titles already published in an earlier edition.

    Returns:
        The accepted items, order preserved.
    """
    seen: list[str] = [normalize_title(t) for t in (existing_titles or [])]
    unique: list[Candidate] = []

    for item in items:
        norm = normalize_title(item.title)
        is_dup = False
        for kept in seen:
            sim = jaccard(norm, kept)
            if sim > threshold:
                logger.debug(f"  Duplicate detected: {item.title[:50]!r} ({sim:.0%} similar)")
                is_dup = True
                break
        if is_dup:
            continue
        seen.append(norm)
        unique.append(item)

    return unique
