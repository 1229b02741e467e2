"""
Redis-backed TTL cache for booking configuration values.

Lifetime and invalidation are explicit: the owner passes ``ttl_seconds`` at
construction and calls ``invalidate`` after every admin write. Redis errors
never reach callers; a failed read is a miss and a failed write is dropped.
"""
import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "booking:config:"


class ConfigCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be non-negative")
        self.client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(config_key: str) -> str:
        return f"{KEY_PREFIX}{config_key.upper()}"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
        if raw is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        if not self.ttl_seconds:
            return
        try:
            self.client.setex(key, self.ttl_seconds, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one key, or every config key when ``key`` is None."""
        try:
            if key is not None:
                self.client.delete(key)
            else:
                keys = list(self.client.scan_iter(match=f"{KEY_PREFIX}*"))
                if keys:
                    self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Cache invalidate failed for %s: %s", key or "*", e)
            return
        logger.debug("Cache INVALIDATE: %s", key or "*")
