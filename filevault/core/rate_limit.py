from __future__ import annotations

import logging
import threading
from time import monotonic, time
from typing import Dict, Optional, Tuple

import redis

logger = logging.getLogger("filevault")


class RateLimiter:
    """Fixed window rate limiter per client, kept in Redis when configured."""

    def __init__(self, limit: int, window_seconds: int = 60, redis_url: str = "") -> None:
        self.limit = max(limit, 1)
        self.window_seconds = window_seconds
        self._clients: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._redis: Optional[redis.Redis] = self._connect(redis_url)

    @property
    def use_redis(self) -> bool:
        return self._redis is not None

    def _connect(self, redis_url: str) -> Optional[redis.Redis]:
        if not redis_url:
            return None
        try:
            client = redis.from_url(redis_url)
            client.ping()
        except redis.RedisError as exc:
            logger.warning("event=rate_limit_redis_unavailable error=%s", exc)
            return None
        return client

    def hit(self, key: str) -> Tuple[bool, int]:
        """
        Register a hit for the given key.
        Returns (allowed, retry_after_seconds).
        """
        if self._redis is not None:
            try:
                return self._hit_redis(key)
            except redis.RedisError as exc:
                logger.warning("event=rate_limit_redis_error error=%s", exc)
        return self._hit_memory(key)

    def _hit_redis(self, key: str) -> Tuple[bool, int]:
        now = time()
        count_key = f"rate_limit:{key}:count"
        reset_key = f"rate_limit:{key}:reset"

        pipe = self._redis.pipeline()
        pipe.get(count_key)
        pipe.get(reset_key)
        current_count_raw, reset_raw = pipe.execute()

        reset_at = float(reset_raw) if reset_raw else now + self.window_seconds
        if current_count_raw is None or now > reset_at:
            count = 1
            reset_at = now + self.window_seconds
        else:
            count = int(current_count_raw) + 1

        retry_after = max(0, int(reset_at - now))
        if count > self.limit:
            return False, retry_after or 1

        ttl = max(1, int(reset_at - now) + 1)
        pipe = self._redis.pipeline()
        pipe.setex(count_key, ttl, str(count))
        pipe.setex(reset_key, ttl, str(reset_at))
        pipe.execute()
        return True, retry_after

    def _hit_memory(self, key: str) -> Tuple[bool, int]:
        now = monotonic()
        with self._lock:
            window = self._clients.get(key)
            if window is None or now > window[1]:
                window = (0, now + self.window_seconds)
            count, reset_at = window
            retry_after = max(0, int(reset_at - now))
            if count >= self.limit:
                return False, retry_after or 1
            self._clients[key] = (count + 1, reset_at)
            return True, retry_after
