"""
Official updates aggregation: merged, classified, filtered and cached feed items.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Protocol

from .cache_store import CacheStore, TTL_DECLARATIONS, TTL_OFFICIAL_UPDATES, TTL_STATS
from .feed_client import FEMA_RSS_FEEDS
from .models import AggregationQuery, DisasterStats, FeedItem, FeedType, StatsMetadata, TypeStats
from .taxonomy import DISASTER_KEYWORDS, classify, keywords_for, matches_any

logger = logging.getLogger(__name__)

# Item count statistics are computed over
STATS_SAMPLE_SIZE = 100


class FeedSource(Protocol):
    async def fetch(self, feed_url: str, feed_type: FeedType) -> List[FeedItem]:
        ...


def _newest_first(items: List[FeedItem]) -> List[FeedItem]:
    return sorted(items, key=lambda item: item.published_at, reverse=True)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def apply_filters(items: List[FeedItem], query: AggregationQuery) -> List[FeedItem]:
    """
    Filter items by a query.

    Filters run in a fixed order (disaster type, keyword, state, date) and
    all must pass. Within one filter any of its terms is enough.
    """
    filtered = items

    if query.disaster_types:
        filtered = [
            item for item in filtered
            if any(matches_any(item.search_text, keywords_for(t)) for t in query.disaster_types)
        ]

    if query.keywords:
        filtered = [item for item in filtered if matches_any(item.search_text, query.keywords)]

    if query.states:
        filtered = [item for item in filtered if matches_any(item.search_text, query.states)]

    if query.date_from is not None:
        date_from = _as_aware(query.date_from)
        filtered = [item for item in filtered if _as_aware(item.published_at) >= date_from]

    return filtered


class OfficialUpdatesAggregator:
    """
    Combines the configured official feeds behind the cache.

    No method raises: feed failures shrink the result, and an unexpected
    error inside aggregation is logged and answered with an empty result.
    """

    def __init__(
        self,
        cache: CacheStore,
        feed_client: FeedSource,
        feeds: Optional[Mapping[FeedType, str]] = None,
    ):
        """
        Args:
            cache: Cache store for results
            feed_client: Anything with an async fetch(feed_url, feed_type)
            feeds: Feed URLs by type, defaults to the FEMA feeds
        """
        self.cache = cache
        self.feed_client = feed_client
        self.feeds: Dict[FeedType, str] = dict(feeds or FEMA_RSS_FEEDS)

    async def _ingest(self, feed_types: List[FeedType]) -> List[FeedItem]:
        """Fetch the given feeds concurrently and merge whatever arrived."""
        results = await asyncio.gather(
            *(self.feed_client.fetch(self.feeds[t], t) for t in feed_types),
            return_exceptions=True,
        )

        items: List[FeedItem] = []
        for feed_type, result in zip(feed_types, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error("Feed %s failed: %s", feed_type.value, result)
                continue
            items.extend(result)
        return items

    async def get_latest(self, count: int = 10) -> List[FeedItem]:
        """
        Newest disaster declarations.

        Args:
            count: Number of declarations to return

        Returns:
            Declarations sorted newest first
        """
        key = f"latest-disasters:{count}"
        cached_items = self.cache.get(key)
        if cached_items is not None:
            return [FeedItem.model_validate(i) for i in cached_items]

        if FeedType.DISASTERS not in self.feeds:
            logger.warning("No disasters feed configured")
            return []

        try:
            disasters = await self._ingest([FeedType.DISASTERS])
            if not disasters:
                logger.warning("No disasters found in feed")
                return []

            latest = _newest_first(disasters)[:count]
        except Exception as e:
            logger.error("Error getting latest disasters: %s", e)
            return []

        self.cache.set(key, [i.model_dump(mode="json") for i in latest], TTL_DECLARATIONS)
        logger.info("Cached %d of %d latest disasters", len(latest), len(disasters))
        return latest

    async def get_updates(self, query: Optional[AggregationQuery] = None) -> List[FeedItem]:
        """
        Filtered official updates from every configured feed.

        Args:
            query: Filters and result cap, defaults to the 10 newest

        Returns:
            Matching items sorted newest first
        """
        query = query or AggregationQuery()
        key = f"official-updates:{query.cache_key()}"

        cached_items = self.cache.get(key)
        if cached_items is not None:
            return [FeedItem.model_validate(i) for i in cached_items]

        logger.info("Fetching official updates for %s", query.cache_key())

        try:
            all_items = await self._ingest(list(self.feeds))
            if not all_items:
                logger.warning("No official updates found")
                return []

            filtered = apply_filters(all_items, query)
            updates = _newest_first(filtered)[:query.count]
        except Exception as e:
            logger.error("Error getting official updates: %s", e)
            return []

        self.cache.set(key, [i.model_dump(mode="json") for i in updates], TTL_OFFICIAL_UPDATES)
        logger.info(
            "Official updates: %d found, %d after filters, %d returned",
            len(all_items), len(filtered), len(updates)
        )
        return updates

    async def get_stats(self) -> DisasterStats:
        """
        Item counts and latest publication per disaster type.

        An item counts toward every type it matches.
        """
        key = "disaster-stats"
        cached_stats = self.cache.get(key)
        if cached_stats is not None:
            return DisasterStats.model_validate(cached_stats)

        try:
            updates = await self.get_updates(AggregationQuery(count=STATS_SAMPLE_SIZE))

            types = {disaster_type: TypeStats() for disaster_type in DISASTER_KEYWORDS}
            for item in updates:
                for disaster_type in classify(item.search_text):
                    entry = types[disaster_type]
                    entry.count += 1
                    if entry.latest_date is None or item.published_at > entry.latest_date:
                        entry.latest_date = item.published_at

            stats = DisasterStats(
                types=types,
                metadata=StatsMetadata(
                    total_items=len(updates),
                    total_disaster_types=sum(1 for s in types.values() if s.count > 0),
                ),
            )
        except Exception as e:
            logger.error("Error calculating disaster stats: %s", e)
            return DisasterStats(metadata=StatsMetadata(error=str(e)))

        self.cache.set(key, stats.model_dump(mode="json"), TTL_STATS)
        logger.info(
            "Disaster stats: %d types over %d items",
            stats.metadata.total_disaster_types, stats.metadata.total_items
        )
        return stats
