"""GNews API source: top headlines plus politics, or a keyword search."""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, time as dtime, timezone
from typing import Callable, Optional

import httpx
from dateutil import parser as dateparser

from policybrief.models import Candidate

logger = logging.getLogger(__name__)

BASE_URL = "https://gnews.io/api/v4"

DateRange = tuple[date, date]


def _parse_published(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return dateparser.parse(raw)
    except (ValueError, OverflowError):
        return None


def _to_candidates(articles: list[dict], fetched_via: str) -> list[Candidate]:
    items = []
    for a in articles:
        title = (a.get("title") or "").strip()
        url = (a.get("url") or "").strip()
        if not title or not url:
            continue
        items.append(Candidate(
            title=title,
            url=url,
            source=((a.get("source") or {}).get("name") or "").strip(),
            description=(a.get("description") or "").strip() or None,
            image_url=a.get("image") or None,
            published=_parse_published(a.get("publishedAt")),
            fetched_via=fetched_via,
        ))
    return items


class GNewsSource:
    """Fetch candidates from gnews.io. Never raises; failures yield []."""

    def __init__(
        self,
        api_key: str,
        lang: str = "en",
        country: str = "us",
        general_max: int = 20,
        politics_max: int = 6,
        timeout: int = 15,
        request_delay: float = 1.0,
        query: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.lang = lang
        self.country = country
        self.general_max = general_max
        self.politics_max = politics_max
        self.request_delay = request_delay
        self.query = query
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self.sleep = sleep

    @classmethod
    def from_config(cls, cfg: dict) -> "GNewsSource":
        g = cfg["gnews"]
        return cls(
            cfg.get("gnews_api_key", ""),
            lang=g["lang"], country=g["country"],
            general_max=g["general_max"], politics_max=g["politics_max"],
            timeout=g["timeout"], request_delay=g["request_delay"], query=g.get("query"),
        )

    def fetch(self, query: Optional[str] = None, date_range: Optional[DateRange] = None) -> list[Candidate]:
        if not self.api_key:
            logger.warning("  [GNews] No GNEWS_API_KEY configured, skipping")
            return []

        query = query or self.query
        if query:
            return self._search(query, date_range)
        return self._headlines()

    def _headlines(self) -> list[Candidate]:
        general = self._get("top-headlines", {"max": self.general_max}, "general")
        if self.request_delay:
            self.sleep(self.request_delay)
        politics = self._get(
            "top-headlines", {"category": "politics", "max": self.politics_max}, "politics",
        )

        if not general and not politics:
            logger.info("  [GNews] Both headline calls came back empty, trying fallback...")
            general = self._get("top-headlines", {"max": self.general_max}, "fallback")

        logger.info(
            f"  [GNews] Combined: {len(general) + len(politics)} articles "
            f"({len(general)} general + {len(politics)} politics)"
        )
        return _to_candidates(general, "gnews") + _to_candidates(politics, "gnews")

    def _search(self, query: str, date_range: Optional[DateRange]) -> list[Candidate]:
        params: dict = {"q": query, "max": self.general_max}
        if date_range:
            start, end = date_range
            params["from"] = datetime.combine(start, dtime.min, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            params["to"] = datetime.combine(end, dtime.max, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return _to_candidates(self._get("search", params, "search"), "gnews_search")

    def _get(self, endpoint: str, params: dict, label: str) -> list[dict]:
        full = {"lang": self.lang, "country": self.country, "token": self.api_key, **params}
        try:
            resp = self.client.get(f"{BASE_URL}/{endpoint}", params=full)
        except httpx.HTTPError as e:
            logger.warning(f"  [GNews] {label} request error: {e}")
            return []
        if resp.status_code != 200:
            logger.warning(f"  [GNews] {label} failed: HTTP {resp.status_code}")
            return []
        try:
            data = resp.json()
        except ValueError as e:
            logger.warning(f"  [GNews] {label} returned invalid JSON: {e}")
            return []
        articles = (data.get("articles") if isinstance(data, dict) else None) or []
        logger.info(f"  [GNews] {label}: {len(articles)} articles")
        return articles
