"""
Bluesky XRPC API client.

Runs anonymously against the public AppView unless credentials are given,
in which case a session is created on first use and requests carry the
session's bearer token.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from authlib.integrations.httpx_client import OAuth2Auth

from .errors import BlueskyAPIError, RateLimitError
from .models import SortMode

logger = logging.getLogger(__name__)

_PUBLIC_XRPC = "https://public.api.bsky.app/xrpc"
_PDS_XRPC = "https://bsky.social/xrpc"

_CREATE_SESSION = "com.atproto.server.createSession"
_SEARCH_POSTS = "app.bsky.feed.searchPosts"

# Hard ceiling the search endpoint accepts for `limit`
MAX_SEARCH_LIMIT = 100


class BlueskyClient:
    """
    Bluesky search client.

    The session is established lazily. A missing or rejected login leaves
    the client in anonymous mode; `authenticated` says which one is active.
    """

    def __init__(
        self,
        identifier: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Bluesky client.

        Args:
            identifier: Account handle or email, optional
            password: App password, optional
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self.identifier = identifier
        self.password = password
        self.auth: Optional[OAuth2Auth] = None
        self._session_attempted = False

        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def authenticated(self) -> bool:
        """True when requests are signed with a session token."""
        return self.auth is not None

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    def _get_headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "user-agent": "disasterwatch/0.1",
        }

    async def ensure_session(self) -> bool:
        """
        Log in once if credentials are configured.

        Returns:
            Whether the client is authenticated afterwards
        """
        if self._session_attempted:
            return self.authenticated
        self._session_attempted = True

        if not (self.identifier and self.password):
            logger.info("No Bluesky credentials configured, using anonymous mode")
            return False

        try:
            response = await self.client.post(
                f"{_PDS_XRPC}/{_CREATE_SESSION}",
                json={"identifier": self.identifier, "password": self.password},
                headers=self._get_headers(),
            )
            response.raise_for_status()
            access_jwt = response.json()["accessJwt"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.warning("Failed to authenticate with Bluesky, using anonymous mode: %s", e)
            return False

        self.auth = OAuth2Auth({"access_token": access_jwt, "token_type": "Bearer"})
        logger.info("Authenticated with Bluesky as %s", self.identifier)
        return True

    async def _fetch(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Call an XRPC query method.

        Args:
            method: XRPC method id
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            BlueskyAPIError: On API errors
            RateLimitError: On rate limit
        """
        await self.ensure_session()
        base = _PDS_XRPC if self.authenticated else _PUBLIC_XRPC

        try:
            response = await self.client.get(
                f"{base}/{method}",
                params=params,
                headers=self._get_headers(),
                auth=self.auth if self.auth is not None else httpx.USE_CLIENT_DEFAULT,
            )

            if response.status_code == 429:
                raise RateLimitError("Rate limit exceeded", 429)

            response.raise_for_status()

            return response.json()

        except httpx.HTTPStatusError as e:
            raise BlueskyAPIError(
                f"{e.response.status_code}: {e.response.text if e.response.text else 'HTTP error'}",
                status_code=e.response.status_code
            )
        except httpx.RequestError as e:
            raise BlueskyAPIError(f"Request error: {str(e)}", None)
        except ValueError as e:
            raise BlueskyAPIError(f"Invalid JSON in response: {str(e)}", None)

    async def search_posts(
        self,
        query: str,
        limit: int = 25,
        sort: SortMode = SortMode.LATEST,
        lang: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Full-text post search.

        Args:
            query: Search query string
            limit: Result cap, clipped to the API ceiling
            sort: "latest" or "top"
            lang: Optional language filter

        Returns:
            Raw searchPosts response with a "posts" list
        """
        params: Dict[str, Any] = {
            "q": query,
            "limit": max(1, min(limit, MAX_SEARCH_LIMIT)),
            "sort": SortMode(sort).value,
        }
        if lang:
            params["lang"] = lang

        return await self._fetch(_SEARCH_POSTS, params)
