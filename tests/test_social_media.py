"""Tests for cached social search with synthetic fallback."""

import asyncio
import random

import pytest
from sqlalchemy.orm import sessionmaker

from disasterwatch import cache_store
from disasterwatch.db_models import CacheEntry
from disasterwatch.errors import BlueskyAPIError
from disasterwatch.fallback import TRENDING_HASHTAGS, fallback_posts, scenario_posts
from disasterwatch.models import SortMode
from disasterwatch.social_media import SocialMediaAggregator

from conftest import FixedClock, raw_post


class FakeBlueskyClient:
    """Stands in for BlueskyClient, returning a canned response or raising."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def search_posts(self, query, limit=25, sort=SortMode.LATEST, lang=None):
        self.calls.append({"query": query, "limit": limit, "sort": sort, "lang": lang})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def clock(monkeypatch) -> FixedClock:
    clock = FixedClock()
    monkeypatch.setattr(cache_store, "time", clock)
    return clock


def ttl_of(engine, key, clock):
    with sessionmaker(bind=engine)() as db:
        return db.get(CacheEntry, key).expires_at - clock.now


class TestLiveSearch:

    def test_results_ranked_and_cached_for_three_minutes(self, cache, engine, clock):
        client = FakeBlueskyClient({"posts": [
            raw_post("just chatting", uri="at://x/p/1"),
            raw_post("Need shelter near #flood area", uri="at://x/p/2"),
        ]})
        aggregator = SocialMediaAggregator(cache, client)

        posts = asyncio.run(aggregator.search(["flood"]))

        assert [p.text for p in posts] == ["Need shelter near #flood area", "just chatting"]
        assert posts[0].relevance_score >= 55
        assert posts[1].relevance_score == 0
        assert not any(p.is_synthetic for p in posts)
        assert client.calls[0]["query"] == "#flood OR flood"
        assert ttl_of(engine, "bluesky:flood:latest:en", clock) == 180

    def test_cache_hit_skips_api(self, cache, clock):
        client = FakeBlueskyClient({"posts": [raw_post("flood")]})
        aggregator = SocialMediaAggregator(cache, client)

        first = asyncio.run(aggregator.search(["flood", "texas"], sort=SortMode.TOP))
        second = asyncio.run(aggregator.search(["flood", "texas"], sort="top"))

        assert first == second
        assert len(client.calls) == 1

    def test_live_results_expire_after_three_minutes(self, cache, clock):
        client = FakeBlueskyClient({"posts": [raw_post("flood")]})
        aggregator = SocialMediaAggregator(cache, client)

        asyncio.run(aggregator.search(["flood"]))
        clock.now += 181
        asyncio.run(aggregator.search(["flood"]))

        assert len(client.calls) == 2

    def test_requested_max_is_passed_and_capped(self, cache, clock):
        client = FakeBlueskyClient({"posts": [raw_post(f"flood {i}", uri=f"at://x/p/{i}") for i in range(60)]})
        aggregator = SocialMediaAggregator(cache, client)

        posts = asyncio.run(aggregator.search(["flood"], max_results=80, lang=None))

        assert client.calls[0]["limit"] == 80
        assert client.calls[0]["lang"] is None
        assert len(posts) == 25


class TestFallback:

    def test_api_failure_returns_synthetic_posts_cached_for_a_minute(self, cache, engine, clock):
        client = FakeBlueskyClient(error=BlueskyAPIError("boom", 500))
        aggregator = SocialMediaAggregator(cache, client)

        posts = asyncio.run(aggregator.search(["flood"]))

        assert 3 <= len(posts) <= 5
        assert all(p.is_synthetic for p in posts)
        assert all("flood" in p.text for p in posts)
        assert ttl_of(engine, "bluesky:flood:latest:en", clock) == 60

    def test_empty_result_returns_synthetic_posts(self, cache, clock):
        client = FakeBlueskyClient({"posts": [raw_post("")]})
        aggregator = SocialMediaAggregator(cache, client)

        posts = asyncio.run(aggregator.search(["earthquake"]))

        assert 3 <= len(posts) <= 5
        assert all(p.is_synthetic and "earthquake" in p.text for p in posts)

    def test_fallback_retries_live_source_after_a_minute(self, cache, clock):
        client = FakeBlueskyClient(error=BlueskyAPIError("boom", None))
        aggregator = SocialMediaAggregator(cache, client)

        asyncio.run(aggregator.search(["flood"]))
        asyncio.run(aggregator.search(["flood"]))
        assert len(client.calls) == 1

        client.error = None
        client.response = {"posts": [raw_post("flood rescue")]}
        clock.now += 61
        posts = asyncio.run(aggregator.search(["flood"]))

        assert len(client.calls) == 2
        assert [p.is_synthetic for p in posts] == [False]

    def test_one_invalid_post_does_not_discard_the_batch(self, cache, clock):
        good = [raw_post(f"flood {i}", uri=f"at://x/p/{i}") for i in range(10)]
        client = FakeBlueskyClient({"posts": good + [raw_post("flood bad", likeCount=-1)]})
        aggregator = SocialMediaAggregator(cache, client)

        posts = asyncio.run(aggregator.search(["flood"]))

        assert len(posts) == 10
        assert not any(p.is_synthetic for p in posts)
        assert "flood bad" not in [p.text for p in posts]

    def test_all_posts_invalid_falls_back(self, cache, clock):
        client = FakeBlueskyClient({"posts": [raw_post("flood", likeCount=-3)]})
        aggregator = SocialMediaAggregator(cache, client)

        posts = asyncio.run(aggregator.search(["flood"]))
        assert all(p.is_synthetic for p in posts)

    @pytest.mark.parametrize("response", [
        {"posts": 5},
        {"posts": [{"record": "oops"}]},
        {"posts": [{"record": {"text": "flood"}, "author": ["not", "a", "dict"]}]},
        ["not", "a", "dict"],
    ])
    def test_malformed_shapes_fall_back(self, cache, clock, response):
        aggregator = SocialMediaAggregator(cache, FakeBlueskyClient(response))

        posts = asyncio.run(aggregator.search(["flood"]))

        assert 3 <= len(posts) <= 5
        assert all(p.is_synthetic for p in posts)

    def test_unexpected_client_error_falls_back(self, cache, clock):
        client = FakeBlueskyClient(error=TypeError("unexpected payload"))
        aggregator = SocialMediaAggregator(cache, client)

        posts = asyncio.run(aggregator.search(["flood"]))
        assert all(p.is_synthetic for p in posts)


class TestFallbackCatalog:

    def test_keywords_fill_primary_and_secondary_slots(self):
        catalog = scenario_posts(["flood", "texas"])

        assert len(catalog) == 6
        assert all("#flood" in p.text for p in catalog)
        assert any("#texas" in p.text for p in catalog)

        swapped = scenario_posts(["texas", "flood"])
        assert all("#texas" in p.text for p in swapped)

    def test_defaults_when_keywords_missing(self):
        catalog = scenario_posts([])
        assert all("#disaster" in p.text for p in catalog)
        assert any("#emergency" in p.text for p in catalog)

    @pytest.mark.parametrize("seed", range(10))
    def test_subset_size_and_membership(self, seed):
        posts = fallback_posts(["flood"], random.Random(seed))
        catalog_ids = {p.id for p in scenario_posts(["flood"])}

        assert 3 <= len(posts) <= 5
        assert {p.id for p in posts} <= catalog_ids
        assert len({p.id for p in posts}) == len(posts)


def test_trending_hashtags_cached(cache, clock):
    aggregator = SocialMediaAggregator(cache, FakeBlueskyClient())

    first = asyncio.run(aggregator.trending_hashtags())
    cache.set("bluesky:trending:disaster", ["#changed"], 60)

    assert first == list(TRENDING_HASHTAGS)
    assert asyncio.run(aggregator.trending_hashtags()) == ["#changed"]
