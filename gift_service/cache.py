"""
Usage cache for Storage Gift Service

Maps an account id to its last fetched usage record. The in-memory backend
is a bounded LRU with optional TTL, the Redis backend shares entries across
worker processes.
"""
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Callable, Optional, Tuple
import json
import logging
import time

import redis.asyncio as redis

from .config import settings
from .domain.models import UsageRecord

logger = logging.getLogger(__name__)


class UsageCache(ABC):
    """Usage cache interface"""

    async def connect(self):
        """Prepare the backend"""

    async def disconnect(self):
        """Release the backend"""

    @abstractmethod
    async def get(self, account_id: int) -> Optional[UsageRecord]:
        """Get cached usage, None when absent or expired"""
        pass

    @abstractmethod
    async def put(self, account_id: int, record: UsageRecord) -> None:
        """Cache usage for an account"""
        pass


class InMemoryUsageCache(UsageCache):
    """Process local LRU cache with optional TTL"""

    def __init__(
        self,
        max_entries: int = 10000,
        ttl: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[int, Tuple[float, UsageRecord]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, account_id: int) -> Optional[UsageRecord]:
        entry = self._entries.get(account_id)
        if entry is None:
            return None

        stored_at, record = entry
        if self.ttl and self._clock() - stored_at >= self.ttl:
            del self._entries[account_id]
            return None

        self._entries.move_to_end(account_id)
        return record

    async def put(self, account_id: int, record: UsageRecord) -> None:
        self._entries[account_id] = (self._clock(), record)
        self._entries.move_to_end(account_id)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted usage cache entry for account {evicted}")

    def clear(self):
        self._entries.clear()


class RedisUsageCache(UsageCache):
    """Redis backed usage cache"""

    def __init__(self, ttl: int = 0, client: Optional[redis.Redis] = None):
        self.ttl = ttl
        self.redis: Optional[redis.Redis] = client

    async def connect(self):
        """Connect to Redis"""
        if self.redis is not None:
            return

        try:
            self.redis = await redis.from_url(
                f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.REDIS_DB}",
                password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.redis.ping()
            logger.info("Connected to Redis successfully")
        except Exception as e:
            logger.warning(f"Failed to connect to Redis: {e}. Continuing without cache.")
            self.redis = None

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.close()
            logger.info("Disconnected from Redis")

    def _usage_key(self, account_id: int) -> str:
        return f"gift:usage:{account_id}"

    async def get(self, account_id: int) -> Optional[UsageRecord]:
        if not self.redis:
            return None

        key = self._usage_key(account_id)
        try:
            value = await self.redis.get(key)
            if value:
                return UsageRecord.from_dict(json.loads(value))
            return None
        except Exception as e:
            logger.error(f"Error getting cache key {key}: {e}")
            return None

    async def put(self, account_id: int, record: UsageRecord) -> None:
        if not self.redis:
            return

        key = self._usage_key(account_id)
        try:
            value = json.dumps(record.to_dict())
            if self.ttl:
                await self.redis.setex(key, self.ttl, value)
            else:
                await self.redis.set(key, value)
        except Exception as e:
            logger.error(f"Error setting cache key {key}: {e}")


def build_usage_cache() -> UsageCache:
    """Create the cache backend selected in settings"""
    if settings.USAGE_CACHE_BACKEND == "redis":
        return RedisUsageCache(ttl=settings.USAGE_CACHE_TTL)
    if settings.USAGE_CACHE_BACKEND != "memory":
        raise ValueError(f"Unknown usage cache backend: {settings.USAGE_CACHE_BACKEND}")
    return InMemoryUsageCache(
        max_entries=settings.USAGE_CACHE_MAX_ENTRIES,
        ttl=settings.USAGE_CACHE_TTL,
    )


# Global cache instance
usage_cache = build_usage_cache()


async def get_usage_cache() -> UsageCache:
    """Dependency for getting cache instance"""
    return usage_cache
