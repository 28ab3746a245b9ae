# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Fixed-window usage counters backing COUNT_BASED policies.

Every backend increments atomically: SQLite through a single
``INSERT ... ON CONFLICT DO UPDATE ... RETURNING`` statement, Redis through
``INCR`` inside a transaction pipeline.  No read-then-write paths exist.
"""

from __future__ import annotations

import abc
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import aiosqlite

from credproxy.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger("credproxy.policies.counter")

_KEY_PREFIX = "credproxy:usage:"

try:
    import redis.asyncio as aioredis

    _REDIS_AVAILABLE = True
except ImportError:  # pragma: no cover
    aioredis = None  # type: ignore[assignment]
    _REDIS_AVAILABLE = False


def redis_available() -> bool:
    """Return ``True`` if the ``redis`` package is installed."""
    return _REDIS_AVAILABLE


def window_key(
    policy_id: str,
    credential_id: str,
    window_seconds: int,
    now: datetime,
    operation: str | None = None,
) -> str:
    """Build the counter key for the window bucket containing *now*."""
    bucket = int(now.timestamp()) // window_seconds
    parts = [policy_id, credential_id]
    if operation is not None:
        parts.append(operation)
    parts.append(str(bucket))
    return ":".join(parts)


class UsageCounter(abc.ABC):
    """Abstract atomic counter keyed by window bucket."""

    @abc.abstractmethod
    async def increment(self, key: str, window_seconds: int) -> int:
        """Atomically add one to *key* and return the new count.

        The key expires ``window_seconds`` after it is first created.
        """

    @abc.abstractmethod
    async def peek(self, key: str) -> int:
        """Return the current count for *key* without changing it."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""


class MemoryUsageCounter(UsageCounter):
    """Process-local counter.  Atomic because it never yields mid-update.

    Expired buckets are swept at most once per ``cleanup_interval`` seconds.
    """

    def __init__(
        self,
        *,
        cleanup_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._counts: dict[str, tuple[int, float]] = {}
        self._cleanup_interval = cleanup_interval
        self._clock = clock
        self._last_cleanup = clock()

    def __len__(self) -> int:
        return len(self._counts)

    async def increment(self, key: str, window_seconds: int) -> int:
        now = self._clock()
        if now - self._last_cleanup >= self._cleanup_interval:
            self._evict(now)
        count, expires_at = self._counts.get(key, (0, now + window_seconds))
        if now > expires_at:
            count, expires_at = 0, now + window_seconds
        count += 1
        self._counts[key] = (count, expires_at)
        return count

    async def peek(self, key: str) -> int:
        entry = self._counts.get(key)
        if entry is None or self._clock() > entry[1]:
            return 0
        return entry[0]

    def _evict(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._counts.items() if now > expires_at]
        for key in expired:
            del self._counts[key]
        self._last_cleanup = now


class SQLiteUsageCounter(UsageCounter):
    """Counter stored in the ``usage_counters`` table."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def increment(self, key: str, window_seconds: int) -> int:
        now = datetime.now(UTC)
        expires_at = (now + timedelta(seconds=window_seconds)).isoformat()
        await self._db.execute(
            "DELETE FROM usage_counters WHERE expires_at < ?", (now.isoformat(),)
        )
        # Fetched in the same call so the statement completes before any
        # other coroutine touches the connection.
        rows = await self._db.execute_fetchall(
            """
            INSERT INTO usage_counters (key, count, expires_at) VALUES (?, 1, ?)
            ON CONFLICT(key) DO UPDATE SET count = count + 1
            RETURNING count
            """,
            (key, expires_at),
        )
        await self._db.commit()
        return int(list(rows)[0][0])

    async def peek(self, key: str) -> int:
        cursor = await self._db.execute(
            "SELECT count FROM usage_counters WHERE key = ? AND expires_at >= ?",
            (key, datetime.now(UTC).isoformat()),
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0


class RedisUsageCounter(UsageCounter):
    """Counter shared across processes through Redis.

    Args:
        redis_url: Redis connection URL (e.g. ``redis://localhost:6379/0``).
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0") -> None:
        if not _REDIS_AVAILABLE:
            raise ConfigurationError(
                "The 'redis' package is required for the Redis counter backend. "
                "Install it with: pip install 'credproxy[redis]'"
            )
        self._client: Redis = aioredis.from_url(redis_url, decode_responses=True)

    async def increment(self, key: str, window_seconds: int) -> int:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(self._prefixed(key))
            pipe.expire(self._prefixed(key), window_seconds)
            count, _ = await pipe.execute()
        return int(count)

    async def peek(self, key: str) -> int:
        result = await self._client.get(self._prefixed(key))
        return int(result) if result is not None else 0

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _prefixed(key: str) -> str:
        return f"{_KEY_PREFIX}{key}"


def create_counter(
    backend: str, *, db: aiosqlite.Connection | None = None, redis_url: str = ""
) -> UsageCounter:
    """Build the counter named by the ``counter_backend`` setting."""
    if backend == "redis":
        logger.info("Using Redis usage counter at %s", redis_url)
        return RedisUsageCounter(redis_url)
    if backend == "sqlite":
        if db is None:
            raise ConfigurationError("sqlite counter backend requires a database connection")
        return SQLiteUsageCounter(db)
    if backend == "memory":
        return MemoryUsageCounter()
    raise ConfigurationError(f"Unknown counter backend: {backend}")
