"""
Syndication feed parser.
Converts RSS and Atom documents to FeedItem models.
"""

import html
import re
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

import feedparser

from .errors import FeedError
from .models import FeedItem, FeedType

# A closed tag: "<" followed directly by a name, "/" or "!"
_TAG_RE = re.compile(r"</?[A-Za-z!][^<>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_html(value: str) -> str:
    """Return plain text: tags removed, entities decoded, whitespace collapsed."""
    text = _TAG_RE.sub(" ", value)
    text = html.unescape(text)
    # Double-escaped markup only becomes tags after decoding
    text = _TAG_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _parse_published(entry: Mapping[str, Any], fallback: datetime) -> datetime:
    """Publication time from pubDate/published/updated, else the fallback."""
    for key in ("published_parsed", "updated_parsed"):
        value = entry.get(key)
        if value:
            try:
                return datetime(*value[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue
    return fallback


def _parse_link(entry: Mapping[str, Any]) -> str:
    """Entry link from either a plain RSS link or an Atom link element."""
    link = entry.get("link")
    if isinstance(link, str) and link.strip():
        return link.strip()

    for candidate in entry.get("links", []) or []:
        href = candidate.get("href") if isinstance(candidate, Mapping) else None
        if href:
            return href
    return "#"


def _parse_description(entry: Mapping[str, Any]) -> str:
    for key in ("description", "summary"):
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            text = strip_html(value)
            if text:
                return text

    for content in entry.get("content", []) or []:
        value = content.get("value") if isinstance(content, Mapping) else None
        if isinstance(value, str) and value.strip():
            text = strip_html(value)
            if text:
                return text

    return "No description"


def parse_feed(
    document: Union[str, bytes],
    feed_type: FeedType,
    ingested_at: Optional[datetime] = None,
) -> List[FeedItem]:
    """
    Parse an RSS or Atom document into feed items.

    Args:
        document: Raw feed XML
        feed_type: Which configured feed the document came from
        ingested_at: Ingestion timestamp, defaults to now

    Returns:
        List of FeedItem in document order

    Raises:
        FeedError: If the document is not a recognizable feed
    """
    ingested_at = ingested_at or datetime.now(timezone.utc)
    parsed = feedparser.parse(document)

    if not parsed.get("version") and not parsed.entries:
        reason = parsed.get("bozo_exception") or "no rss channel or atom feed element"
        raise FeedError(f"Invalid feed structure for {feed_type.value}: {reason}")

    ingested_ms = int(ingested_at.timestamp() * 1000)
    seen_ids = set()
    items = []

    for index, entry in enumerate(parsed.entries):
        entry_id = (entry.get("id") or "").strip()
        if not entry_id or entry_id in seen_ids:
            entry_id = f"{feed_type.value}_{index}_{ingested_ms}"
        seen_ids.add(entry_id)

        title = strip_html(entry.get("title") or "") or "No title"

        items.append(FeedItem(
            id=entry_id,
            title=title,
            description=_parse_description(entry),
            link=_parse_link(entry),
            published_at=_parse_published(entry, ingested_at),
            source_label=f"FEMA {feed_type.value}",
            feed_type=feed_type,
            ingested_at=ingested_at,
        ))

    return items
