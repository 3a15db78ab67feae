"""Redis Client for Identity Service

Provides async Redis client management for the credential store and the
session backend.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from identity_service.config.settings import Settings
from identity_service.domain.errors import AuthUnavailableError

logger = logging.getLogger(__name__)


class RedisClient:
    """Async Redis client wrapper"""

    def __init__(self, settings: Settings):
        """Initialize Redis client

        Args:
            settings: Application settings holding the Redis connection details
        """
        self.settings = settings
        self._client: Optional[redis.Redis] = None

    async def connect(self):
        """Establish Redis connection

        Environment Variables:
            REDIS_HOST, REDIS_PORT, REDIS_DB, REDIS_PASSWORD
        """
        if not self._client:
            self._client = redis.from_url(
                self.settings.redis_url,
                decode_responses=True,
                socket_timeout=self.settings.store_timeout_seconds,
                socket_connect_timeout=self.settings.store_timeout_seconds,
            )
            await self._client.ping()
            logger.info(
                f"Connected to Redis: "
                f"{self.settings.redis_host}:{self.settings.redis_port}/{self.settings.redis_db}"
            )

    async def disconnect(self):
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Redis")

    def get_client(self) -> redis.Redis:
        """Get the underlying Redis client

        Returns:
            Redis client instance

        Raises:
            RuntimeError: If client not connected
        """
        if not self._client:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    async def health_check(self) -> bool:
        """Check Redis connection health

        Returns:
            True if Redis is responsive, False otherwise
        """
        try:
            if not self._client:
                return False
            await self._client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False


async def bounded_call(op: str, key: str, awaitable: Awaitable[Any], timeout_seconds: float) -> Any:
    """Run one Redis command under a timeout

    Raises:
        AuthUnavailableError: On timeout or any Redis error
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        logger.error(f"Redis {op} timed out for key {key}")
        raise AuthUnavailableError("Backing store timed out") from e
    except RedisError as e:
        logger.error(f"Redis {op} failed for key {key}: {e}")
        raise AuthUnavailableError("Backing store unavailable") from e
