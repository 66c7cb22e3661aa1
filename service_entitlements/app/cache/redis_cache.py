"""
Redis caching layer for Entitlements Service.
"""

import json
from typing import Optional

import redis.asyncio as redis

from shared.logging import get_logger
from shared.errors import AccessLayerException
from ..models import EffectiveEntitlement


class EntitlementCache:
    """Redis cache for resolved entitlements.

    Entries are keyed by user and a per-user version token. Invalidation
    bumps the token instead of scanning for keys, so stale entries simply
    stop being addressed and expire on their own TTL.
    """

    ENTITLEMENT_PREFIX = "entitlement:"
    VERSION_PREFIX = "entitlement_version:"

    def __init__(self, redis_url: str, ttl_seconds: int = 300):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("entitlements.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis cache."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            await self.redis.ping()

            self.logger.info("Redis cache started", ttl_seconds=self.ttl_seconds)

        except Exception as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise AccessLayerException("REDIS_START_FAILED", str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    async def current_version(self, user_id: str) -> Optional[int]:
        """Version token to read and write under; None when Redis is unavailable."""
        try:
            return await self._current_version(user_id)
        except Exception as e:
            self.logger.error("Error reading entitlement version", user_id=user_id, error=str(e))
            return None

    async def get(self, user_id: str, version: Optional[int] = None) -> Optional[EffectiveEntitlement]:
        """Return the cached entitlement for a version (default: the current one)."""
        try:
            if version is None:
                version = await self._current_version(user_id)
            cached_data = await self.redis.get(self._entry_key(user_id, version))
            if not cached_data:
                return None

            return EffectiveEntitlement.from_dict(json.loads(cached_data))

        except Exception as e:
            # Unreadable entries count as a miss
            self.logger.error("Error getting cached entitlement", user_id=user_id, error=str(e))
            return None

    async def set(self, user_id: str, entitlement: EffectiveEntitlement, version: Optional[int] = None) -> bool:
        """Store an entitlement under the version it was resolved against.

        A result computed before an invalidate() lands on the superseded
        version and is never read.
        """
        try:
            if version is None:
                version = await self._current_version(user_id)
            await self.redis.setex(
                self._entry_key(user_id, version),
                self.ttl_seconds,
                json.dumps(entitlement.to_dict())
            )
            self.logger.debug("Cached entitlement", user_id=user_id, version=version)
            return True

        except Exception as e:
            self.logger.error("Error caching entitlement", user_id=user_id, error=str(e))
            return False

    async def invalidate(self, user_id: str) -> bool:
        """Bump the user's version token so earlier entries are never read again."""
        try:
            version = await self.redis.incr(self._version_key(user_id))
            self.logger.info("Invalidated user entitlements", user_id=user_id, version=version)
            return True

        except Exception as e:
            self.logger.error("Error invalidating user entitlements", user_id=user_id, error=str(e))
            return False

    async def _current_version(self, user_id: str) -> int:
        raw = await self.redis.get(self._version_key(user_id))
        return int(raw) if raw else 0

    def _version_key(self, user_id: str) -> str:
        return f"{self.VERSION_PREFIX}{user_id}"

    def _entry_key(self, user_id: str, version: int) -> str:
        return f"{self.ENTITLEMENT_PREFIX}user:{user_id}:v{version}"

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self.redis.ping()
            return True
        except Exception:
            return False
