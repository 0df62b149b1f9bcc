"""RSS/Atom feed source for extra policy outlets."""

import logging
import re
from datetime import date, datetime, timezone
from typing import Optional

import feedparser
import httpx
from dateutil import parser as dateparser

from policybrief.models import Candidate

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": "policybrief/0.1 (+https://example.com/policybrief)",
    "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
}

_TAGS = re.compile(r"<[^>]+>")
SUMMARY_LIMIT = 500


class RssSource:
    """Fetch configured feeds. Feed-level failures are logged and skipped."""

    def __init__(self, feeds: list[dict], timeout: int = 15, max_items: int = 20,
                 client: Optional[httpx.Client] = None):
        self.feeds = feeds
        self.max_items = max_items
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True, headers=_HEADERS)

    def fetch(self, query=None, date_range=None) -> list[Candidate]:
        candidates: list[Candidate] = []
        for feed in self.feeds:
            if not feed.get("enabled", True):
                logger.info(f"  [RSS]  {feed['name']} disabled, skipping")
                continue
            candidates.extend(
                c for c in self._read_feed(feed["name"], feed["url"]) if _in_range(c, date_range)
            )
        return candidates

    def _read_feed(self, name: str, url: str) -> list[Candidate]:
        try:
            resp = self.client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"  [RSS]  {name} unreachable: {e}")
            return []

        parsed = feedparser.parse(resp.text)
        if parsed.bozo and not parsed.entries:
            logger.warning(f"  [RSS]  {name} is not a readable feed: {parsed.bozo_exception}")
            return []

        candidates = [
            c for c in (_to_candidate(e, name) for e in parsed.entries[:self.max_items]) if c
        ]
        logger.info(f"  [RSS]  {name}: {len(candidates)} items")
        return candidates


def _in_range(candidate: Candidate, date_range: Optional[tuple[date, date]]) -> bool:
    # Undated items are kept; the selection stage decides on them
    if not date_range or candidate.published is None:
        return True
    start, end = date_range
    return start <= candidate.published.date() <= end


def _to_candidate(entry, source_name: str) -> Optional[Candidate]:
    title = (entry.get("title") or "").strip()
    url = (entry.get("link") or "").strip()
    if not (title and url):
        return None

    summary = _TAGS.sub("", entry.get("summary") or entry.get("description") or "").strip()
    image = next((m["url"] for m in entry.get("media_content") or [] if m.get("url")), None)

    return Candidate(
        title=title,
        url=url,
        source=source_name,
        description=summary[:SUMMARY_LIMIT] or None,
        image_url=image,
        published=_published(entry),
        fetched_via="rss",
    )


def _published(entry) -> Optional[datetime]:
    """Entry timestamp in UTC, from feedparser's parsed struct or the raw string."""
    for key in ("published", "updated"):
        parsed = entry.get(f"{key}_parsed")
        if parsed:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
        raw = entry.get(key)
        if raw:
            try:
                dt = dateparser.parse(raw)
            except (ValueError, OverflowError):
                continue
            return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return None
