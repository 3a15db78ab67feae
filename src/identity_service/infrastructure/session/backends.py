"""Session storage backends

Sessions are keyed by the SHA-256 hash of the token, so the storage never
holds a usable token.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from redis.asyncio import Redis

from identity_service.domain.models import SessionRecord
from identity_service.infrastructure.redis.client import bounded_call

logger = logging.getLogger(__name__)


class SessionBackend(ABC):
    """Storage for SessionRecord values keyed by token hash."""

    @abstractmethod
    async def put(self, token_hash: str, record: SessionRecord, ttl_seconds: int) -> None:
        """Store a session for ttl_seconds."""

    @abstractmethod
    async def get(self, token_hash: str) -> Optional[SessionRecord]:
        """Return the live session or None."""

    @abstractmethod
    async def delete(self, token_hash: str) -> bool:
        """Remove a session; True if one existed."""


class RedisSessionBackend(SessionBackend):
    """Redis-backed sessions; expiry is delegated to the key TTL.

    Storage Schema:
    - auth:session:{token_hash} -> {session_json}
    """

    def __init__(self, redis_client: Redis, timeout_seconds: float = 5.0):
        self.redis = redis_client
        self.timeout_seconds = timeout_seconds
        self.session_key_pattern = "auth:session:{}"

    async def put(self, token_hash: str, record: SessionRecord, ttl_seconds: int) -> None:
        key = self.session_key_pattern.format(token_hash)
        await bounded_call(
            "SETEX", key, self.redis.setex(key, ttl_seconds, json.dumps(record.to_dict())),
            self.timeout_seconds,
        )

    async def get(self, token_hash: str) -> Optional[SessionRecord]:
        key = self.session_key_pattern.format(token_hash)
        data = await bounded_call("GET", key, self.redis.get(key), self.timeout_seconds)
        if not data:
            return None
        return SessionRecord.from_dict(json.loads(data))

    async def delete(self, token_hash: str) -> bool:
        key = self.session_key_pattern.format(token_hash)
        deleted = await bounded_call("DELETE", key, self.redis.delete(key), self.timeout_seconds)
        return bool(deleted)


class InMemorySessionBackend(SessionBackend):
    """Process-local sessions.

    WARNING: This only works for single-instance deployments!
    """

    def __init__(self):
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()

    async def put(self, token_hash: str, record: SessionRecord, ttl_seconds: int) -> None:
        async with self._lock:
            expired = [h for h, r in self._sessions.items() if r.is_expired]
            for expired_hash in expired:
                del self._sessions[expired_hash]
            if expired:
                logger.debug(f"Purged {len(expired)} expired sessions from memory")

            self._sessions[token_hash] = record
            logger.debug(f"Session stored in memory (size: {len(self._sessions)})")

    async def get(self, token_hash: str) -> Optional[SessionRecord]:
        async with self._lock:
            record = self._sessions.get(token_hash)
            if record is None:
                return None
            if record.is_expired:
                del self._sessions[token_hash]
                return None
            return record

    async def delete(self, token_hash: str) -> bool:
        async with self._lock:
            return self._sessions.pop(token_hash, None) is not None
