"""
Synthetic posts served when live social search is down or comes back empty.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from .models import BLUESKY_PLATFORM, Engagement, SocialPost

# (id, text template, handle, display name, minutes ago, likes, reposts, replies, score)
_SCENARIOS = (
    (
        "synthetic-urgent-1",
        "URGENT: #{primary} - Need medical supplies and clean water near downtown area. "
        "Red Cross station overwhelmed. Anyone have extras? #emergency #help",
        "localhelper.bsky.social", "Community Helper", 3, 18, 12, 5, 95,
    ),
    (
        "synthetic-shelter-2",
        "UPDATE: Emergency shelter at Lincoln High School (456 Oak Ave) has space for 150 more "
        "people. Hot meals available. Pet-friendly! #{primary} #shelter #relief",
        "emergencycoord.bsky.social", "Emergency Coordinator", 7, 67, 45, 8, 90,
    ),
    (
        "synthetic-volunteer-3",
        "Volunteers needed at Community Center! We're organizing supply distribution for "
        "#{primary} relief. Shifts 8am-2pm & 2pm-8pm. #volunteer #{secondary}",
        "volunteers4good.bsky.social", "Volunteer Network", 10, 34, 28, 15, 85,
    ),
    (
        "synthetic-resources-4",
        "Free resources available at 789 Maple Street: blankets, non-perishables, baby supplies, "
        "phone charging station. Open 24/7 during #{primary} response. #help #community",
        "mutualaid.bsky.social", "Mutual Aid Network", 15, 52, 38, 22, 80,
    ),
    (
        "synthetic-transport-5",
        "Transportation help: Running shuttle service from Park & Main to evacuation centers "
        "every 30 mins. Free rides during #{primary}. Look for blue van. #evacuation #transport",
        "rideshare.bsky.social", "Community Rides", 20, 41, 29, 11, 75,
    ),
    (
        "synthetic-info-6",
        "INFO: For #{primary} updates, tune to emergency radio 1610 AM or text ALERTS to 67283. "
        "Official evacuation routes posted at city website. Stay safe everyone! #info #safety",
        "cityemergency.bsky.social", "City Emergency Services", 25, 89, 67, 18, 70,
    ),
)

MIN_FALLBACK_POSTS = 3
MAX_FALLBACK_POSTS = 5

TRENDING_HASHTAGS = (
    "#emergency", "#disaster", "#earthquake", "#flood", "#fire",
    "#evacuation", "#shelter", "#relief", "#help", "#urgent",
    "#safety", "#rescue", "#firstaid", "#volunteer", "#community",
)


def scenario_posts(keywords: Sequence[str], now: Optional[datetime] = None) -> List[SocialPost]:
    """
    The full synthetic catalog with keywords filled in.

    The first keyword fills the primary slot, the second the secondary one.
    """
    primary = keywords[0] if len(keywords) > 0 and keywords[0] else "disaster"
    secondary = keywords[1] if len(keywords) > 1 and keywords[1] else "emergency"
    now = now or datetime.now(timezone.utc)

    posts = []
    for post_id, template, handle, name, minutes, likes, reposts, replies, score in _SCENARIOS:
        posts.append(SocialPost(
            id=post_id,
            text=template.format(primary=primary, secondary=secondary),
            author_handle=handle,
            author_display_name=name,
            posted_at=now - timedelta(minutes=minutes),
            engagement=Engagement(likes=likes, reposts=reposts, replies=replies),
            relevance_score=score,
            platform=BLUESKY_PLATFORM,
            url=f"https://bsky.app/profile/{handle}/post/{post_id}",
            is_synthetic=True,
        ))
    return posts


def fallback_posts(keywords: Sequence[str], rng: Optional[random.Random] = None) -> List[SocialPost]:
    """A random subset of three to five synthetic posts, in random order."""
    rng = rng or random.Random()
    catalog = scenario_posts(keywords)
    size = rng.randint(MIN_FALLBACK_POSTS, MAX_FALLBACK_POSTS)
    return rng.sample(catalog, size)
