"""
Shared fixtures: a throwaway SQLite cache and sample feed documents.
"""

from datetime import datetime, timezone
from typing import Dict, List

import pytest

from disasterwatch.cache_store import CacheStore
from disasterwatch.database import create_db_engine, create_session_factory, init_db
from disasterwatch.models import FeedItem, FeedType

RSS_DOCUMENT = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>FEMA Disaster Declarations</title>
    <link>https://www.fema.gov</link>
    <description>Declarations</description>
    <item>
      <title>Wildfire declared in County X</title>
      <description>&lt;p&gt;Fire Management Assistance &lt;b&gt;approved&lt;/b&gt; for County X.&lt;/p&gt;</description>
      <link>https://www.fema.gov/disaster/1</link>
      <guid>https://www.fema.gov/disaster/1</guid>
      <pubDate>Mon, 06 Oct 2025 14:00:00 GMT</pubDate>
    </item>
    <item>
      <title>Texas Severe Storms and Flooding</title>
      <description>Major disaster declaration for Texas flooding.</description>
      <link>https://www.fema.gov/disaster/2</link>
      <pubDate>Wed, 08 Oct 2025 09:30:00 GMT</pubDate>
    </item>
    <item>
      <title>Undated notice</title>
      <description>No date on this one.</description>
      <link>https://www.fema.gov/disaster/3</link>
    </item>
  </channel>
</rss>
"""

ATOM_DOCUMENT = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>FEMA Press Releases</title>
  <id>urn:fema:press</id>
  <updated>2025-10-07T12:00:00Z</updated>
  <entry>
    <title>Hurricane recovery centers open in Florida</title>
    <link href="https://www.fema.gov/press-release/10"/>
    <id>urn:fema:press:10</id>
    <published>2025-10-07T12:00:00Z</published>
    <summary type="html">&lt;div&gt;Centers open after the hurricane.&lt;/div&gt;</summary>
  </entry>
  <entry>
    <title>Earthquake preparedness week</title>
    <link href="https://www.fema.gov/press-release/11"/>
    <id>urn:fema:press:11</id>
    <updated>2025-10-01T08:00:00Z</updated>
    <summary>Get ready for the next tremor.</summary>
  </entry>
</feed>
"""


@pytest.fixture
def engine(tmp_path):
    """SQLite engine on a temp file with the cache table created."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'cache.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def cache(engine) -> CacheStore:
    return CacheStore(create_session_factory(engine))


def make_item(
    title: str,
    published_at: datetime,
    description: str = "",
    feed_type: FeedType = FeedType.PRESS_RELEASES,
    item_id: str = "",
) -> FeedItem:
    return FeedItem(
        id=item_id or f"{feed_type.value}-{title}",
        title=title,
        description=description or "No description",
        link="https://example.gov/item",
        published_at=published_at,
        source_label=f"FEMA {feed_type.value}",
        feed_type=feed_type,
        ingested_at=datetime(2025, 10, 10, tzinfo=timezone.utc),
    )


class FakeFeedSource:
    """Feed source returning canned items per feed type and counting fetches."""

    def __init__(self, items: Dict[FeedType, List[FeedItem]], failing: tuple = ()):
        self.items = items
        self.failing = failing
        self.calls: List[FeedType] = []

    async def fetch(self, feed_url: str, feed_type: FeedType) -> List[FeedItem]:
        self.calls.append(feed_type)
        if feed_type in self.failing:
            raise RuntimeError(f"{feed_type.value} is down")
        return list(self.items.get(feed_type, []))


class FixedClock:
    """Stand-in for the time module with a settable time()."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def time(self) -> float:
        return self.now


def raw_post(text, uri="at://did:plc:abc/app.bsky.feed.post/3k1", handle="someone.bsky.social", **extra):
    """A searchPosts result entry."""
    post = {
        "uri": uri,
        "cid": "bafy",
        "author": {"handle": handle, "displayName": "Some One", "avatar": "https://cdn.example/a.jpg"},
        "record": {"text": text, "createdAt": "2025-10-08T09:30:00.000Z"},
        "likeCount": 4,
        "repostCount": 2,
        "replyCount": 1,
    }
    post.update(extra)
    return post
