"""
Runtime configuration from environment variables.

A `.dev.env` file in the working directory is loaded first when present.
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv

from .feed_client import FEMA_RSS_FEEDS
from .models import FeedType


@dataclass
class Settings:
    """Settings for the aggregation services."""
    database_url: str = "sqlite:///./disasterwatch.db"
    disasters_feed: str = FEMA_RSS_FEEDS[FeedType.DISASTERS]
    press_releases_feed: str = FEMA_RSS_FEEDS[FeedType.PRESS_RELEASES]
    bluesky_identifier: Optional[str] = None
    bluesky_password: Optional[str] = None
    feed_timeout: float = 10.0
    search_timeout: float = 15.0
    log_level: str = "INFO"

    @property
    def feeds(self) -> Dict[FeedType, str]:
        return {
            FeedType.DISASTERS: self.disasters_feed,
            FeedType.PRESS_RELEASES: self.press_releases_feed,
        }


def load_settings(env_path: str = ".dev.env") -> Settings:
    """Build Settings from the environment, after loading env_path if it exists."""
    if os.path.exists(env_path):
        load_dotenv(env_path)

    defaults = Settings()
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        disasters_feed=os.getenv("FEMA_DISASTERS_FEED", defaults.disasters_feed),
        press_releases_feed=os.getenv("FEMA_PRESS_RELEASES_FEED", defaults.press_releases_feed),
        bluesky_identifier=os.getenv("BLUESKY_IDENTIFIER") or None,
        bluesky_password=os.getenv("BLUESKY_PASSWORD") or None,
        feed_timeout=float(os.getenv("FEED_TIMEOUT_SECONDS", defaults.feed_timeout)),
        search_timeout=float(os.getenv("SEARCH_TIMEOUT_SECONDS", defaults.search_timeout)),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
    )
