"""
Social media aggregation: cached, scored Bluesky search with synthetic fallback.
"""

import logging
import random
from typing import List, Optional, Sequence

from .bluesky_client import BlueskyClient
from .cache_store import CacheStore, TTL_SOCIAL_FALLBACK, TTL_SOCIAL_LIVE, TTL_TRENDING
from .fallback import TRENDING_HASHTAGS, fallback_posts
from .models import SocialPost, SortMode
from .social_parser import build_query, parse_posts

logger = logging.getLogger(__name__)

DEFAULT_LANG = "en"


class SocialMediaAggregator:
    """
    Keyword search over Bluesky that always answers.

    Live results are cached for a few minutes. When the live call fails or
    finds nothing, synthetic posts are cached for one minute instead so
    the next request soon retries the live source.
    """

    def __init__(self, cache: CacheStore, client: BlueskyClient, rng: Optional[random.Random] = None):
        self.cache = cache
        self.client = client
        self.rng = rng

    @staticmethod
    def cache_key(keywords: Sequence[str], sort: str, lang: Optional[str]) -> str:
        return f"bluesky:{'-'.join(keywords)}:{sort}:{lang or ''}"

    async def search(
        self,
        keywords: Sequence[str],
        max_results: int = 25,
        sort: SortMode = SortMode.LATEST,
        lang: Optional[str] = DEFAULT_LANG,
    ) -> List[SocialPost]:
        """
        Search posts for disaster keywords.

        Args:
            keywords: Keywords in priority order
            max_results: Requested cap, clipped to the API ceiling
            sort: "latest" or "top"
            lang: Optional language filter

        Returns:
            Posts ranked by relevance, or synthetic posts flagged is_synthetic
        """
        keywords = list(keywords)
        sort = SortMode(sort)
        key = self.cache_key(keywords, sort.value, lang)

        cached_posts = self.cache.get(key)
        if cached_posts is not None:
            logger.info("Returning cached Bluesky data for %s", keywords)
            return [SocialPost.model_validate(p) for p in cached_posts]

        query = build_query(keywords)
        logger.info("Searching Bluesky for %s with query %r", keywords, query)

        try:
            response = await self.client.search_posts(query, limit=max_results, sort=sort, lang=lang)
            posts = parse_posts(response, keywords)
        except Exception as e:
            logger.error("Bluesky search failed, falling back to synthetic data: %s", e)
            return self._fallback(key, keywords)

        if not posts:
            logger.info("No Bluesky posts found for %r, using synthetic data", query)
            return self._fallback(key, keywords)

        self.cache.set(key, [p.model_dump(mode="json") for p in posts], TTL_SOCIAL_LIVE)
        logger.info("Fetched %d Bluesky posts for %s", len(posts), keywords)
        return posts

    def _fallback(self, key: str, keywords: Sequence[str]) -> List[SocialPost]:
        logger.warning("Using synthetic fallback posts for %s", keywords)
        posts = fallback_posts(keywords, self.rng)
        self.cache.set(key, [p.model_dump(mode="json") for p in posts], TTL_SOCIAL_FALLBACK)
        return posts

    async def trending_hashtags(self) -> List[str]:
        """
        Disaster-related hashtags.

        Bluesky exposes no trending-topics query, so this is the fixed list
        of common disaster hashtags, cached like any other result.
        """
        key = "bluesky:trending:disaster"
        cached_tags = self.cache.get(key)
        if cached_tags is not None:
            return cached_tags

        hashtags = list(TRENDING_HASHTAGS)
        self.cache.set(key, hashtags, TTL_TRENDING)
        return hashtags
