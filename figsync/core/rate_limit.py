"""
Per-user rate limiting for the sync endpoints.

A sliding window kept in a Redis sorted set per user: every request adds a
member scored with its timestamp, members older than the window are trimmed,
and the remaining count decides whether the request may proceed.
"""

import math
import time
import uuid
from dataclasses import dataclass
from typing import Callable

import redis

from figsync.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int  # seconds until a slot frees up; 0 when allowed


class SyncRateLimiter:
    """Sliding-window request limiter backed by Redis."""

    def __init__(
        self,
        client: redis.Redis,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "sync_rate_limit",
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.clock = clock

    def key(self, user_id: str) -> str:
        return f"{self.key_prefix}:sync:{user_id}"

    def hit(self, user_id: str) -> RateLimitResult:
        """
        Record a request for ``user_id`` and report whether it is allowed.

        If Redis is unavailable the request is allowed and a warning logged;
        imports must not fail because the limiter is down.
        """
        key = self.key(user_id)
        now = self.clock()

        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(key, 0, now - self.window_seconds)
            pipe.zcard(key)
            pipe.zadd(key, {f"{now}-{uuid.uuid4().hex}": now})
            pipe.expire(key, self.window_seconds)
            results = pipe.execute()
            count = int(results[1])

            if count < self.max_requests:
                return RateLimitResult(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - count - 1,
                    retry_after=0,
                )

            oldest = self.client.zrange(key, 0, 0, withscores=True)
        except redis.RedisError as e:
            logger.warning(
                "Rate limiter unavailable, allowing request",
                extra={"extra_fields": {"user_id": user_id, "error": str(e)}},
            )
            return RateLimitResult(
                allowed=True, limit=self.max_requests, remaining=self.max_requests, retry_after=0
            )

        if oldest:
            retry_after = max(1, math.ceil(oldest[0][1] + self.window_seconds - now))
        else:
            retry_after = self.window_seconds

        logger.warning(
            f"Rate limit exceeded for {user_id}",
            extra={"extra_fields": {"user_id": user_id, "requests": count}},
        )
        return RateLimitResult(
            allowed=False, limit=self.max_requests, remaining=0, retry_after=retry_after
        )
