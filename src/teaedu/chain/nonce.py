"""Serialization of outgoing transfers from the shared distributor account.

Two claims signing with the same key must not read the same pending nonce.
An in-process lock covers concurrent requests in one worker; a Redis lock
covers several workers when Redis is available.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from redis.exceptions import LockError

from teaedu.chain.client import ChainError
from teaedu.redis_client import get_redis_optional

logger = structlog.get_logger()

NONCE_LOCK_KEY = "chain:distributor:nonce"


class DistributorNonceLock:
    """Held from nonce lookup until the signed transaction is broadcast."""

    def __init__(self, timeout: int = 60, key: str = NONCE_LOCK_KEY) -> None:
        self.timeout = timeout
        self.key = key
        self._local = asyncio.Lock()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        async with self._local:
            redis = get_redis_optional()
            if redis is None:
                yield
                return

            lock = redis.lock(self.key, timeout=self.timeout, blocking_timeout=self.timeout)
            if not await lock.acquire():
                msg = "Timed out waiting for the distributor nonce lock"
                raise ChainError(msg)
            try:
                yield
            finally:
                try:
                    await lock.release()
                except LockError:
                    # Lock expired while held; the next holder reads a fresh pending nonce
                    logger.warning("nonce_lock_expired", key=self.key)
