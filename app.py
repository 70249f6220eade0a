from fastapi import FastAPI, HTTPException, Query, Request
from typing import List, Optional
from datetime import datetime
import logging
from contextlib import asynccontextmanager
from disasterwatch.config import load_settings
from disasterwatch.database import create_db_engine, create_session_factory, init_db
from disasterwatch.cache_store import CacheStore
from disasterwatch.feed_client import FeedClient
from disasterwatch.bluesky_client import BlueskyClient
from disasterwatch.official_updates import OfficialUpdatesAggregator
from disasterwatch.social_media import SocialMediaAggregator
from disasterwatch.errors import VerificationError
from disasterwatch.models import AggregationQuery, DisasterStats, FeedItem, ImageVerdict, SocialPost, SortMode


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler - runs on startup and shutdown."""
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup: cache backing store and upstream clients
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    cache = CacheStore(create_session_factory(engine))

    feed_client = FeedClient(timeout=settings.feed_timeout)
    bluesky_client = BlueskyClient(
        identifier=settings.bluesky_identifier,
        password=settings.bluesky_password,
        timeout=settings.search_timeout,
    )

    app.state.updates = OfficialUpdatesAggregator(cache, feed_client, settings.feeds)
    app.state.social = SocialMediaAggregator(cache, bluesky_client)
    # Image checks need an analyzer; embedders attach an ImageVerifier here
    app.state.verifier = None

    yield

    # Shutdown: release HTTP connections
    await feed_client.close()
    await bluesky_client.close()
    if app.state.verifier is not None:
        await app.state.verifier.close()
    engine.dispose()


app = FastAPI(
    title="disasterwatch",
    description="Aggregated official disaster updates and social media reports",
    version="0.1.0",
    lifespan=lifespan
)


@app.get("/")
def read_root():
    return {
        "message": "disasterwatch API",
        "docs": "/docs",
        "endpoints": {
            "official_updates": "/official-updates",
            "latest_disasters": "/official-updates/latest",
            "disaster_stats": "/official-updates/stats",
            "social_media": "/social-media?keywords=flood",
            "trending_hashtags": "/social-media/trending",
            "verify_image": "/verify-image?imageUrl=...",
        }
    }


@app.get("/official-updates")
async def get_official_updates(
    request: Request,
    count: int = Query(10, ge=1, le=100),
    disaster_types: List[str] = Query([], alias="disasterTypes"),
    keywords: List[str] = Query([]),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    states: List[str] = Query([]),
) -> List[FeedItem]:
    """
    Official updates from every configured feed, filtered.

    All filters must match; any value within one filter is enough.
    """
    query = AggregationQuery(
        count=count,
        disaster_types=disaster_types,
        keywords=keywords,
        date_from=date_from,
        states=states,
    )
    return await request.app.state.updates.get_updates(query)


@app.get("/official-updates/latest")
async def get_latest_disasters(
    request: Request,
    count: int = Query(10, ge=1, le=100)
) -> List[FeedItem]:
    """Newest disaster declarations."""
    return await request.app.state.updates.get_latest(count)


@app.get("/official-updates/stats")
async def get_disaster_stats(request: Request) -> DisasterStats:
    """Item counts and latest publication per disaster type."""
    return await request.app.state.updates.get_stats()


@app.get("/social-media")
async def get_social_media(
    request: Request,
    keywords: List[str] = Query(..., min_length=1),
    max_results: int = Query(25, ge=1, le=100, alias="maxResults"),
    sort: SortMode = Query(SortMode.LATEST),
    lang: Optional[str] = Query("en"),
) -> List[SocialPost]:
    """
    Social media reports for keywords.

    Falls back to synthetic posts (isSynthetic) when the live search is
    unavailable or finds nothing.
    """
    return await request.app.state.social.search(keywords, max_results=max_results, sort=sort, lang=lang)


@app.get("/social-media/trending")
async def get_trending_hashtags(request: Request) -> List[str]:
    """Disaster-related hashtags."""
    return await request.app.state.social.trending_hashtags()


@app.get("/verify-image")
async def verify_image(
    request: Request,
    image_url: str = Query(..., alias="imageUrl"),
) -> ImageVerdict:
    """
    Authenticity verdict for an image, cached by URL.

    Raises:
        HTTPException: 503 if no image analyzer is configured, 502 if the
            image cannot be downloaded or analyzed
    """
    verifier = request.app.state.verifier
    if verifier is None:
        raise HTTPException(503, "Image verification is not configured")

    try:
        return await verifier.verify(image_url)
    except VerificationError as e:
        raise HTTPException(502, str(e))
