"""
Exception types raised by the upstream clients.

They never cross an aggregator boundary: aggregators catch them and fall
back to empty or synthetic results.
"""

from typing import Optional


class FeedError(Exception):
    """A syndication feed could not be fetched or parsed."""
    pass


class BlueskyAPIError(Exception):
    """Bluesky API error."""
    def __init__(self, message: str, status_code: Optional[int]):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(BlueskyAPIError):
    """Rate limit exceeded."""
    pass


class VerificationError(Exception):
    """An image could not be downloaded or analyzed."""
    pass
