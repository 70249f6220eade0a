"""
Bluesky search response parser.
Builds search queries, scores post relevance and converts raw posts to SocialPost models.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .models import BLUESKY_PLATFORM, Engagement, SocialPost

logger = logging.getLogger(__name__)

# Posts kept per search, whatever the caller asked for
MAX_POSTS = 25

DEFAULT_KEYWORD = "disaster"

EMERGENCY_TERMS = ("urgent", "emergency", "help", "sos", "evacuation", "shelter", "relief", "rescue")
LOCATION_TERMS = ("at", "near", "location", "address", "street", "building")
RESOURCE_TERMS = ("available", "offering", "need", "looking for", "contact")

_TERM_WEIGHTS = (
    (EMERGENCY_TERMS, 15),
    (LOCATION_TERMS, 10),
    (RESOURCE_TERMS, 8),
)

# Indicator terms match whole words; "at" must not fire inside "chatting"
_TERM_PATTERNS = {
    term: re.compile(rf"\b{re.escape(term)}\b")
    for terms, _ in _TERM_WEIGHTS
    for term in terms
}


def build_query(keywords: Sequence[str]) -> str:
    """
    Build a search query from keywords.

    Several keywords search the exact phrase, each keyword as a hashtag,
    and the loose phrase. A single keyword searches its hashtag and the
    bare word.
    """
    keywords = [k.strip() for k in keywords if k and k.strip()] or [DEFAULT_KEYWORD]

    if len(keywords) > 1:
        full_phrase = " ".join(keywords)
        hashtag_query = " OR ".join(f"#{keyword}" for keyword in keywords)
        return f'"{full_phrase}" OR {hashtag_query} OR {full_phrase}'

    keyword = keywords[0]
    return f"#{keyword} OR {keyword}"


def relevance_score(text: str, keywords: Sequence[str]) -> int:
    """
    Score a post from 0 to 100.

    +20 per keyword present, +10 more if present as a hashtag, then
    +15/+10/+8 per emergency/location/resource term present.
    """
    lower_text = (text or "").lower()
    if not lower_text:
        return 0

    score = 0
    for keyword in keywords:
        keyword_lower = keyword.lower().strip()
        if not keyword_lower:
            continue
        if keyword_lower in lower_text:
            score += 20
        if f"#{keyword_lower}" in lower_text:
            score += 10

    for terms, weight in _TERM_WEIGHTS:
        for term in terms:
            if _TERM_PATTERNS[term].search(lower_text):
                score += weight

    return max(0, min(score, 100))


def _parse_timestamp(timestamp_str: str) -> datetime:
    """Parse an ISO 8601 timestamp, falling back to now."""
    try:
        return datetime.fromisoformat(timestamp_str.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.now(timezone.utc)


def _post_url(handle: str, uri: str) -> str:
    """Web URL for a post from its at:// URI."""
    rkey = uri.rstrip("/").split("/")[-1] if uri else ""
    return f"https://bsky.app/profile/{handle}/post/{rkey}"


def _parse_post(post_data: Any, keywords: Sequence[str]) -> Optional[SocialPost]:
    """Convert one raw post, or None when it has no usable text or author."""
    if not isinstance(post_data, dict):
        return None

    record = post_data.get("record") or {}
    author = post_data.get("author") or {}
    if not isinstance(record, dict) or not isinstance(author, dict):
        return None

    text = record.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    handle = author.get("handle") or author.get("displayName") or "anonymous"
    uri = post_data.get("uri", "")

    return SocialPost(
        id=uri or post_data.get("cid", ""),
        text=text,
        author_handle=handle,
        author_display_name=author.get("displayName") or "",
        author_avatar_url=author.get("avatar"),
        posted_at=_parse_timestamp(record.get("createdAt") or post_data.get("indexedAt", "")),
        engagement=Engagement(
            likes=post_data.get("likeCount") or 0,
            reposts=post_data.get("repostCount") or 0,
            replies=post_data.get("replyCount") or 0,
        ),
        relevance_score=relevance_score(text, keywords),
        platform=BLUESKY_PLATFORM,
        url=_post_url(handle, uri),
        is_synthetic=False,
    )


def parse_posts(search_response: Dict[str, Any], keywords: Sequence[str]) -> List[SocialPost]:
    """
    Parse a searchPosts response into ranked posts.

    Posts without text and posts that fail validation are dropped, one at
    a time. The rest are sorted by relevance, highest first, and capped at
    MAX_POSTS.

    Args:
        search_response: Raw searchPosts JSON
        keywords: Search keywords, used for scoring

    Returns:
        Ranked list of SocialPost
    """
    if not isinstance(search_response, dict):
        return []

    raw_posts = search_response.get("posts")
    if not isinstance(raw_posts, list):
        return []

    posts = []
    for post_data in raw_posts:
        try:
            post = _parse_post(post_data, keywords)
        except (ValidationError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed Bluesky post: %s", e)
            continue
        if post is not None:
            posts.append(post)

    posts.sort(key=lambda p: p.relevance_score, reverse=True)
    return posts[:MAX_POSTS]
