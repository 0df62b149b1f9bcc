import logging
from typing import Optional, Protocol

from policybrief.fetchers.gnews_fetcher import DateRange, GNewsSource
from policybrief.fetchers.rss_fetcher import RssSource
from policybrief.models import Candidate

logger = logging.getLogger(__name__)


class NewsSource(Protocol):
    def fetch(self, query: Optional[str] = None, date_range: Optional[DateRange] = None) -> list[Candidate]:
        ...


class CombinedSource:
    """Concatenate several sources in order. One failing source never sinks the rest."""

    def __init__(self, sources: list[NewsSource]):
        self.sources = sources

    def fetch(self, query: Optional[str] = None, date_range: Optional[DateRange] = None) -> list[Candidate]:
        items: list[Candidate] = []
        for source in self.sources:
            name = type(source).__name__
            try:
                fetched = source.fetch(query=query, date_range=date_range)
            except Exception as e:
                logger.warning(f"  [Fetch] {name} failed: {e}")
                continue
            logger.info(f"  [Fetch] {name}: {len(fetched)} items")
            items.extend(fetched)
        return items


def build_source(cfg: dict) -> CombinedSource:
    """GNews first, then any configured RSS feeds."""
    sources: list[NewsSource] = [GNewsSource.from_config(cfg)]
    if cfg.get("feeds"):
        sources.append(RssSource(
            cfg["feeds"], timeout=cfg["feed_timeout"], max_items=cfg["max_items_per_feed"],
        ))
    return CombinedSource(sources)
