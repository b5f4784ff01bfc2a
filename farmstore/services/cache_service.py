"""
Redis cache for shopper order views.

Each shopper has a generation counter; cached views live under the current
generation, so invalidating is a single INCR and stale entries simply expire.

    {prefix}:orders:user:{user_id}:gen             -> int
    {prefix}:orders:user:{user_id}:g{gen}:{view}   -> JSON

When Redis is disabled or unreachable every call degrades to a miss.
"""

import logging
import json
from typing import Any, Optional, Callable

import redis
from redis.exceptions import RedisError
from flask import Flask

logger = logging.getLogger(__name__)


class CacheService:
    """Cache-aside storage for per-user order read models."""

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._prefix: str = ""
        self._ttl: int = 60

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Connect to Redis from app config; stay disabled on failure."""
        self._prefix = app.config.get('CACHE_KEY_PREFIX', 'farmstore')
        self._ttl = app.config.get('CACHE_DEFAULT_TTL', 60)

        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] Cache is DISABLED via config")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://localhost:6379/0')
        try:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis connection failed: {e}. Cache DISABLED.")
            return

        self.client = client
        logger.info(f"[CACHE] Redis connected: {redis_url}")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _user_key(self, user_id: int) -> str:
        return f"{self._prefix}:orders:user:{user_id}"

    def _generation(self, user_id: int) -> int:
        return int(self.client.get(f"{self._user_key(user_id)}:gen") or 0)

    def _view_key(self, user_id: int, generation: int, view: str) -> str:
        return f"{self._user_key(user_id)}:g{generation}:{view}"

    def get_or_load(self, user_id: int, view: str, loader_fn: Callable[[], Any]) -> Any:
        """
        Return the cached view, or build it with loader_fn and store it.

        Redis errors fall back to loader_fn; loader errors propagate.
        """
        if not self.enabled:
            return loader_fn()

        try:
            generation = self._generation(user_id)
            key = self._view_key(user_id, generation, view)
            cached = self.client.get(key)
        except RedisError as e:
            logger.warning(f"[CACHE] Read failed for user {user_id} {view}: {e}")
            return loader_fn()

        if cached is not None:
            return json.loads(cached)

        value = loader_fn()
        try:
            self.client.setex(key, self._ttl, json.dumps(value))
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Write failed for user {user_id} {view}: {e}")
        return value

    def invalidate_user(self, user_id: int) -> None:
        """Move the user to a new generation; older views are never read again."""
        if not self.enabled:
            return
        try:
            self.client.incr(f"{self._user_key(user_id)}:gen")
            logger.info(f"[CACHE] INVALIDATE orders for user {user_id}")
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate failed for user {user_id}: {e}")


_cache_service: Optional[CacheService] = None


def init_cache(app: Flask) -> None:
    global _cache_service
    _cache_service = CacheService(app)
    app.extensions['cache'] = _cache_service


def get_cache() -> Optional[CacheService]:
    """Cache service instance, or None outside an initialized app."""
    return _cache_service


def invalidate_user_orders(user_id: Optional[int]) -> None:
    """Drop the cached order views of one shopper."""
    cache = get_cache()
    if cache is None or user_id is None:
        return
    cache.invalidate_user(user_id)
