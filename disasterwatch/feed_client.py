"""
HTTP client for official syndication feeds.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx

from .errors import FeedError
from .feed_parser import parse_feed
from .models import FeedItem, FeedType

logger = logging.getLogger(__name__)

FEMA_RSS_FEEDS: Dict[FeedType, str] = {
    FeedType.DISASTERS: "https://www.fema.gov/news/disasters_rss.fema",
    FeedType.PRESS_RELEASES: "https://www.fema.gov/feeds/news.rss",
}

_FEED_HEADERS = {
    "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml",
    "User-Agent": "disasterwatch/0.1",
}


class FeedClient:
    """
    Fetches one feed at a time and normalizes it into FeedItem models.

    A broken feed never raises: it is logged and contributes no items, so
    it cannot abort aggregation of the others.
    """

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize feed client.

        Args:
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def fetch(self, feed_url: str, feed_type: FeedType) -> List[FeedItem]:
        """
        Fetch and parse a feed.

        Args:
            feed_url: Feed endpoint
            feed_type: Which configured feed this is

        Returns:
            Parsed items, or an empty list on any failure
        """
        logger.info("Fetching %s feed from %s", feed_type.value, feed_url)

        try:
            response = await self.client.get(feed_url, headers=_FEED_HEADERS)

            if response.status_code != 200:
                logger.error(
                    "Failed to fetch %s feed: HTTP %s from %s",
                    feed_type.value, response.status_code, feed_url
                )
                return []

            items = parse_feed(response.content, feed_type, datetime.now(timezone.utc))

        except httpx.HTTPError as e:
            logger.error("Error fetching %s feed from %s: %s", feed_type.value, feed_url, e)
            return []
        except FeedError as e:
            logger.error("Error parsing %s feed from %s: %s", feed_type.value, feed_url, e)
            return []

        logger.info("Parsed %d items from %s feed", len(items), feed_type.value)
        return items
