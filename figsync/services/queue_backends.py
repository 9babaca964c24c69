"""
Redis-backed job queue and status store.

The queue is a Redis list: the API pushes jobs on the left, the worker pops
them from the right. A popped job is gone from Redis, so completed and
failed jobs are never retained.
"""

import json
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import redis

from figsync.core.config import get_settings
from figsync.services.exceptions import JobQueueError, StatusStoreError


@lru_cache
def get_redis_client() -> redis.Redis:
    return redis.Redis.from_url(get_settings().REDIS_URL, decode_responses=True)


class RedisJobQueue:
    def __init__(
        self,
        client: redis.Redis,
        queue_name: str,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.client = client
        self.queue_name = queue_name
        self.id_factory = id_factory

    def enqueue(self, payload: dict[str, Any]) -> str:
        job_id = self.id_factory()
        message = json.dumps(
            {
                "id": job_id,
                "data": payload,
                "enqueuedAt": datetime.now(timezone.utc).isoformat(),
            }
        )
        try:
            self.client.lpush(self.queue_name, message)
        except redis.RedisError as e:
            raise JobQueueError("Failed to queue CSV sync job") from e
        return job_id


class RedisStatusStore:
    def __init__(self, client: redis.Redis):
        self.client = client

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as e:
            raise StatusStoreError(f"Failed to write {key}") from e

    def get(self, key: str) -> str | None:
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            raise StatusStoreError(f"Failed to read {key}") from e
