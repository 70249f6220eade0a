"""
Data models for official updates, social posts and aggregate statistics.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

BLUESKY_PLATFORM = "bluesky"


class FeedType(str, Enum):
    """Kinds of official syndication feeds."""
    DISASTERS = "disasters"
    PRESS_RELEASES = "pressReleases"


class SortMode(str, Enum):
    """Sort modes accepted by the search API."""
    LATEST = "latest"
    TOP = "top"


class FeedItem(BaseModel):
    """One normalized entry from an official feed."""
    id: str
    title: str
    description: str
    link: str
    published_at: datetime = Field(alias="publishedAt")
    source_label: str = Field(alias="source")
    feed_type: FeedType = Field(alias="feedType")
    ingested_at: datetime = Field(alias="ingestedAt")

    class Config:
        populate_by_name = True

    @property
    def search_text(self) -> str:
        """Lowercased title and description, the text keyword filters look at."""
        return f"{self.title} {self.description}".lower()


class Engagement(BaseModel):
    """Post engagement counters."""
    likes: int = Field(default=0, ge=0)
    reposts: int = Field(default=0, ge=0)
    replies: int = Field(default=0, ge=0)


class SocialPost(BaseModel):
    """A post returned by social search, or a synthetic stand-in."""
    id: str
    text: str
    author_handle: str = Field(alias="user")
    author_display_name: str = Field(default="", alias="userDisplayName")
    author_avatar_url: Optional[str] = Field(default=None, alias="userAvatar")
    posted_at: datetime = Field(alias="timestamp")
    engagement: Engagement = Field(default_factory=Engagement)
    relevance_score: int = Field(default=0, alias="relevanceScore")
    platform: str = BLUESKY_PLATFORM
    url: str = ""
    is_synthetic: bool = Field(default=False, alias="isSynthetic")

    class Config:
        populate_by_name = True

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_score(cls, value) -> int:
        return max(0, min(100, int(value)))


class AggregationQuery(BaseModel):
    """Filter set for official updates. Its canonical JSON is the cache key."""
    count: int = Field(default=10, ge=0)
    disaster_types: List[str] = Field(default_factory=list, alias="disasterTypes")
    keywords: List[str] = Field(default_factory=list)
    date_from: Optional[datetime] = Field(default=None, alias="dateFrom")
    states: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @field_validator("date_from")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def cache_key(self) -> str:
        """Canonical string form of the query, stable across field order."""
        return json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


class TypeStats(BaseModel):
    """Count and most recent publication for one disaster type."""
    count: int = 0
    latest_date: Optional[datetime] = Field(default=None, alias="latestDate")

    class Config:
        populate_by_name = True


class StatsMetadata(BaseModel):
    """Totals describing a statistics run."""
    total_items: int = Field(default=0, alias="totalItems")
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="generatedAt")
    total_disaster_types: int = Field(default=0, alias="totalDisasterTypes")
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class DisasterStats(BaseModel):
    """Per-type statistics over current official updates."""
    types: Dict[str, TypeStats] = Field(default_factory=dict)
    metadata: StatsMetadata = Field(default_factory=StatsMetadata)


class ImageVerdict(BaseModel):
    """Authenticity verdict for a disaster image."""
    is_authentic: bool
    disaster_context: str = ""
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    raw_analysis: str = ""
