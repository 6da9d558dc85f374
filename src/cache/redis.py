"""Redis-backed site-tree cache: one hash per tree root, with TTL."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import redis.asyncio as redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from src.api.schemas import CacheMetadata, Tree
from src.links.timing import parse_iso

logger = logging.getLogger(__name__)

KEY_PREFIX = "links:"
MIN_TTL_SECONDS = 60


@dataclass(frozen=True)
class RetryConfig:
    """Exponential-backoff retry for cache writes."""

    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 30.0


@dataclass
class CachedTree:
    tree: Tree
    metadata: CacheMetadata


def _strip_cleaned_html(node: dict[str, Any]) -> dict[str, Any]:
    node.pop("cleanedHtml", None)
    for child in node.get("children") or ():
        _strip_cleaned_html(child)
    return node


class SiteTreeCache:
    """Last built site tree per root URL, reusable inside a freshness window.

    Entries live for ``ttl_seconds`` in Redis but are only handed out while
    younger than ``freshness_seconds``; older ones read as a miss. Concurrent
    writers for the same root race and the last write wins.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        freshness_seconds: int = 86400,
        ttl_seconds: int = 86400 * 4,
        retry: RetryConfig = RetryConfig(),
    ) -> None:
        self._client = client
        self._freshness = timedelta(seconds=freshness_seconds)
        self._ttl = max(MIN_TTL_SECONDS, ttl_seconds)
        self._retry = retry

    def is_fresh(self, timestamp: str | None, now: datetime | None = None) -> bool:
        written = parse_iso(timestamp)
        if written is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now - written < self._freshness

    async def read(self, root_key: str) -> CachedTree | None:
        """Return the fresh entry for *root_key*, or ``None`` on miss, stale entry or error."""
        key = f"{KEY_PREFIX}{root_key}"
        try:
            raw = await self._client.hgetall(key)
            if not raw or "value" not in raw:
                logger.debug("cache miss", extra={"cache_key": key})
                return None
            metadata = CacheMetadata.model_validate_json(raw.get("metadata") or "{}")
            if not self.is_fresh(metadata.timestamp):
                logger.debug("cache stale", extra={"cache_key": key, "cached_at": metadata.timestamp})
                return None
            tree = Tree.model_validate_json(raw["value"])
        except redis.RedisError:
            logger.warning("cache read failed", extra={"cache_key": key}, exc_info=True)
            return None
        except ValueError:
            logger.warning("cache entry undecodable", extra={"cache_key": key}, exc_info=True)
            return None

        logger.debug("cache hit", extra={"cache_key": key, "cached_at": metadata.timestamp})
        return CachedTree(tree=tree, metadata=metadata)

    async def write(self, root_key: str, tree: Tree, metadata: CacheMetadata) -> bool:
        """Store *tree* without cleaned HTML. Returns ``False`` when every attempt failed."""
        key = f"{KEY_PREFIX}{root_key}"
        value = json.dumps(_strip_cleaned_html(tree.model_dump(by_alias=True, exclude_none=True, mode="json")))
        meta = metadata.model_dump_json(by_alias=True, exclude_none=True)

        attempts = max(1, self._retry.max_attempts)
        for attempt in range(attempts):
            try:
                async with self._client.pipeline(transaction=True) as pipe:
                    pipe.hset(key, mapping={"value": value, "metadata": meta})
                    pipe.expire(key, self._ttl)
                    await pipe.execute()
                logger.debug("cache set", extra={"cache_key": key, "ttl": self._ttl})
                return True
            except (redis.ConnectionError, redis.TimeoutError) as exc:
                if attempt < attempts - 1:
                    delay = min(self._retry.base_delay * (2 ** attempt), self._retry.max_delay)
                    logger.warning(
                        "cache set failed (attempt %d/%d), retrying in %.1fs: %s",
                        attempt + 1, attempts, delay, exc,
                        extra={"cache_key": key},
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.warning(
                        "cache set failed after %d attempts", attempts,
                        extra={"cache_key": key}, exc_info=True,
                    )
            except redis.RedisError:
                logger.warning("cache set failed (non-retryable)", extra={"cache_key": key}, exc_info=True)
                return False
        return False


async def create_redis_client(redis_url: str) -> redis.Redis:
    # Strip credentials for logging (everything before @ if present)
    safe_url = redis_url.split("@")[-1] if "@" in redis_url else redis_url
    logger.info("connecting to redis", extra={"redis_url": safe_url})
    retry = Retry(ExponentialBackoff(), retries=3)
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
        retry=retry,
        retry_on_error=[redis.ConnectionError, redis.TimeoutError],
    )
