"""
Cache-aside store backed by a SQL table, with a TTL on every write.
"""

import json
import logging
import time
from functools import wraps
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from disasterwatch.database import session_scope
from disasterwatch.db_models import CacheEntry

logger = logging.getLogger(__name__)

# TTL policy in seconds, per kind of cached result
TTL_DECLARATIONS = 1800
TTL_OFFICIAL_UPDATES = 3600
TTL_STATS = 7200
TTL_SOCIAL_LIVE = 180
TTL_SOCIAL_FALLBACK = 60
TTL_TRENDING = 1800
TTL_IMAGE_VERIFICATION = 3600


class CacheStore:
    """
    Persistent key/value cache with explicit expiry.

    Every operation fails soft: a broken backing store looks like a cold
    cache to readers and like a no-op to writers. Callers never see an
    exception from here.
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Initialize cache.

        Args:
            session_factory: SQLAlchemy session factory for the backing store
        """
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if not expired.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired/unreadable
        """
        try:
            with session_scope(self.session_factory) as db:
                entry = db.get(CacheEntry, key)
                if entry is None:
                    return None

                if entry.expires_at <= time.time():
                    logger.info("Cache stale: %s", key)
                    return None

                value = json.loads(entry.value)
        except (SQLAlchemyError, ValueError) as e:
            logger.error("Error getting %s from cache: %s", key, e)
            return None

        logger.info("Cache hit: %s", key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: float):
        """
        Store a value, replacing any existing entry for the key.

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            ttl_seconds: Seconds from now until the entry expires
        """
        try:
            value_json = json.dumps(value)
            expires_at = time.time() + ttl_seconds

            try:
                with session_scope(self.session_factory) as db:
                    entry = db.get(CacheEntry, key)

                    if entry:
                        entry.value = value_json
                        entry.expires_at = expires_at
                    else:
                        db.add(CacheEntry(key=key, value=value_json, expires_at=expires_at))
            except IntegrityError:
                # A concurrent writer inserted the key first; overwrite it
                with session_scope(self.session_factory) as db:
                    db.merge(CacheEntry(key=key, value=value_json, expires_at=expires_at))
        except (SQLAlchemyError, TypeError, ValueError) as e:
            logger.error("Error setting %s in cache: %s", key, e)
            return

        logger.info("Cache set: %s (ttl %ss)", key, ttl_seconds)

    def delete(self, key: str):
        """
        Delete a specific cache entry.

        Args:
            key: Cache key to delete
        """
        try:
            with session_scope(self.session_factory) as db:
                entry = db.get(CacheEntry, key)
                if entry:
                    db.delete(entry)
        except SQLAlchemyError as e:
            logger.error("Error deleting %s from cache: %s", key, e)

    def purge_expired(self) -> int:
        """Remove expired entries. Returns the number of rows deleted."""
        try:
            with session_scope(self.session_factory) as db:
                removed = db.query(CacheEntry).filter(
                    CacheEntry.expires_at <= time.time()
                ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            logger.error("Error purging expired cache entries: %s", e)
            return 0

        logger.info("Purged %d expired cache entries", removed)
        return removed

    def clear_all(self):
        """Clear all cache entries."""
        try:
            with session_scope(self.session_factory) as db:
                db.query(CacheEntry).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            logger.error("Error clearing cache: %s", e)


def cached(cache_getter: Callable[[], CacheStore], key_fn: Callable, ttl: float):
    """
    Decorator to cache async function results.

    The wrapped function must return a JSON-compatible value.

    Args:
        cache_getter: Callable that returns the CacheStore instance (evaluated at runtime)
        key_fn: Function that takes the call's args/kwargs and returns cache key
        ttl: Seconds a stored result stays valid

    Example:
        @cached(lambda: store, lambda url: f"verify-image:{url}", 3600)
        async def analyze(url: str):
            return await run_analysis(url)
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            cache_instance = cache_getter()
            key = key_fn(*args, **kwargs)

            cached_value = cache_instance.get(key)
            if cached_value is not None:
                return cached_value

            result = await func(*args, **kwargs)
            cache_instance.set(key, result, ttl)

            return result
        return wrapper
    return decorator
