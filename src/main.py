"""FastAPI app entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api.routes import router
from src.cache.redis import RetryConfig, SiteTreeCache, create_redis_client
from src.config import get_settings
from src.links.processor import LinksProcessor
from src.links.scrape import build_default_registry
from src.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Configure logging before anything else logs
    setup_logging(settings.log_level)
    logger.info("starting sitetree service")

    redis_client = None
    cache = None
    if settings.links_cache_enabled:
        redis_client = await create_redis_client(settings.redis_url)
        cache = SiteTreeCache(
            redis_client,
            freshness_seconds=settings.links_cache_freshness_seconds,
            ttl_seconds=settings.links_cache_ttl_seconds,
            retry=RetryConfig(
                max_attempts=settings.cache_put_max_attempts,
                base_delay=settings.cache_put_initial_delay,
            ),
        )

    processor = LinksProcessor(
        build_default_registry(settings),
        cache,
        max_kin_limit=settings.max_kin_limit,
        max_visited_urls=settings.max_visited_urls_limit,
    )

    app.state.settings = settings
    app.state.processor = processor

    logger.info(
        "sitetree service ready",
        extra={
            "links_cache_enabled": settings.links_cache_enabled,
            "freshness_seconds": settings.links_cache_freshness_seconds,
            "max_kin_limit": settings.max_kin_limit,
            "firecrawl_enabled": bool(settings.firecrawl_api_key),
        },
    )

    yield

    logger.info("shutting down sitetree service")
    if redis_client is not None:
        await redis_client.aclose()


app = FastAPI(title="Sitetree Service", lifespan=lifespan)
app.include_router(router)


@app.get("/health")
async def health():
    return {"status": "ok"}
