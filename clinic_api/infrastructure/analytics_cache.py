"""Tenant scoped Redis cache for computed analytics reports."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

KEY_PREFIX = "analytics"
DASHBOARD_TTL_SECONDS = 60
DEFAULT_TTL_SECONDS = 60
GRANULARITY_TTL_SECONDS = {
    "daily": 300,
    "weekly": 900,
    "monthly": 3600,
}


def build_cache_key(tenant_id: str, report: str, params: Mapping[str, Any]) -> str:
    """Return ``analytics:{tenant}:{report}:{k:v:...}`` with sorted params.

    Parameters whose value is ``None`` are left out so that omitted and
    explicitly empty filters share an entry.
    """

    parts = [
        f"{name}:{params[name]}" for name in sorted(params) if params[name] is not None
    ]
    return f"{KEY_PREFIX}:{tenant_id}:{report}:{':'.join(parts)}"


def ttl_for_granularity(granularity: str | None) -> int:
    if granularity is None:
        return DEFAULT_TTL_SECONDS
    return GRANULARITY_TTL_SECONDS.get(granularity, DEFAULT_TTL_SECONDS)


class AnalyticsCache:
    """Store report payloads as JSON with a time-to-live.

    Entries are advisory. Any backend or decoding error is logged and treated
    as a miss, so the caller simply recomputes the report.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    def get(self, key: str) -> Any | None:
        try:
            raw = self._client.get(key)
        except RedisError:
            logger.warning("Analytics cache read failed for %s", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable analytics cache entry %s", key)
            return None

    def set(self, key: str, value: Any, granularity: str | None = None) -> None:
        self._store(key, value, ttl_for_granularity(granularity))

    def set_dashboard(self, key: str, value: Any) -> None:
        self._store(key, value, DASHBOARD_TTL_SECONDS)

    def invalidate(self, tenant_id: str, report: str | None = None) -> int:
        """Delete every entry of ``tenant_id`` (optionally one report) and count them."""

        pattern = f"{KEY_PREFIX}:{tenant_id}:{report or '*'}:*"
        deleted = 0
        try:
            keys = list(self._client.scan_iter(match=pattern))
            if keys:
                deleted = self._client.delete(*keys)
        except RedisError:
            logger.warning("Analytics cache invalidation failed for %s", pattern, exc_info=True)
        return deleted

    def _store(self, key: str, value: Any, ttl: int) -> None:
        try:
            self._client.set(key, json.dumps(value), ex=ttl)
        except RedisError:
            logger.warning("Analytics cache write failed for %s", key, exc_info=True)


__all__ = [
    "AnalyticsCache",
    "DASHBOARD_TTL_SECONDS",
    "DEFAULT_TTL_SECONDS",
    "GRANULARITY_TTL_SECONDS",
    "build_cache_key",
    "ttl_for_granularity",
]
