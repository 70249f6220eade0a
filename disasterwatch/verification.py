"""
Image authenticity checks, cached by image URL.

The analysis itself (an AI model) is an injected collaborator; this module
downloads the image, hands the bytes over and caches the verdict.
"""

import logging
import mimetypes
from typing import Optional, Protocol

import httpx

from .cache_store import CacheStore, TTL_IMAGE_VERIFICATION, cached
from .errors import VerificationError
from .models import ImageVerdict

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


class ImageAnalyzer(Protocol):
    async def analyze(self, image: bytes, mime_type: str) -> ImageVerdict:
        ...


def guess_mime_type(image_url: str) -> str:
    """MIME type from the URL's extension, defaulting to JPEG."""
    mime_type, _ = mimetypes.guess_type(image_url.split("?", 1)[0])
    return mime_type or DEFAULT_MIME_TYPE


class ImageVerifier:
    """Downloads images and runs them through an analyzer, behind the cache."""

    def __init__(
        self,
        cache: CacheStore,
        analyzer: ImageAnalyzer,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.analyzer = analyzer
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

        self._analyze_url = cached(
            lambda: self.cache,
            lambda image_url: f"verify-image:{image_url}",
            TTL_IMAGE_VERIFICATION,
        )(self._download_and_analyze)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def _download(self, image_url: str) -> bytes:
        try:
            response = await self.client.get(image_url)
        except httpx.RequestError as e:
            raise VerificationError(f"Failed to download image: {e}")

        if response.status_code != 200:
            logger.error("Image download failed: HTTP %s for %s", response.status_code, image_url)
            raise VerificationError(f"Failed to download image: {response.status_code}")

        return response.content

    async def _download_and_analyze(self, image_url: str) -> dict:
        image = await self._download(image_url)
        mime_type = guess_mime_type(image_url)
        logger.info("Analyzing %d-byte %s image from %s", len(image), mime_type, image_url)

        try:
            verdict = await self.analyzer.analyze(image, mime_type)
        except VerificationError:
            raise
        except Exception as e:
            raise VerificationError(f"Image analysis failed: {e}") from e

        return verdict.model_dump(mode="json")

    async def verify(self, image_url: str) -> ImageVerdict:
        """
        Verdict for the image at a URL.

        Raises:
            VerificationError: If the image cannot be downloaded or analyzed
        """
        return ImageVerdict.model_validate(await self._analyze_url(image_url))
