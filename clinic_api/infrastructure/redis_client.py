"""Factories for the Redis clients used as cache and pub/sub backend."""

from __future__ import annotations

from redis import Redis
from redis.asyncio import Redis as AsyncRedis
from redis.asyncio.retry import Retry as AsyncRetry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

RECONNECT_BACKOFF_BASE_SECONDS = 0.05
RECONNECT_BACKOFF_CAP_SECONDS = 2.0
COMMAND_RETRIES = 3


def reconnect_backoff() -> ExponentialBackoff:
    """Return the capped exponential backoff applied to every reconnect."""

    return ExponentialBackoff(
        cap=RECONNECT_BACKOFF_CAP_SECONDS, base=RECONNECT_BACKOFF_BASE_SECONDS
    )


def create_redis(url: str) -> Redis:
    """Build a synchronous client (analytics cache)."""

    return Redis.from_url(
        url,
        decode_responses=True,
        retry=Retry(reconnect_backoff(), COMMAND_RETRIES),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )


def create_async_redis(url: str) -> AsyncRedis:
    """Build an asyncio client (relay publisher or subscriber)."""

    return AsyncRedis.from_url(
        url,
        decode_responses=True,
        retry=AsyncRetry(reconnect_backoff(), COMMAND_RETRIES),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )


__all__ = [
    "COMMAND_RETRIES",
    "RECONNECT_BACKOFF_BASE_SECONDS",
    "RECONNECT_BACKOFF_CAP_SECONDS",
    "create_async_redis",
    "create_redis",
    "reconnect_backoff",
]
