"""Redis Credential Store

Purpose: Identity storage with uniqueness enforced by Redis itself

Uniqueness is never checked with a read-then-write. Each unique key
(username, provider link) is claimed with SET NX; the first writer wins and
every other writer gets DuplicateKeyError. The identity record is written
before its index keys are claimed, so an index key always points at an
existing record. A failed claim releases the keys claimed so far, newest
first, and deletes the record last.

Storage Schema:
- auth:identity:{id} -> {identity_json}
- auth:username:{username_lower} -> {id}
- auth:provider:{provider}:{external_id} -> {id}
- auth:identity_list -> {id, ...}
- auth:lock:identity:{id} -> update lock
"""

import json
import logging
import uuid
from typing import Any, Awaitable, List, Optional

from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from redis.exceptions import LockError, RedisError

from identity_service.domain.errors import (
    AuthError,
    AuthUnavailableError,
    DuplicateKeyError,
    NotFoundError,
)
from identity_service.domain.models import Identity, IdentityPatch, NewIdentity, utc_now
from identity_service.infrastructure.redis.client import bounded_call
from identity_service.infrastructure.store.base import (
    DEFAULT_CONFLICT_RETRIES,
    CredentialStore,
    check_link_replacement,
    username_key,
)

logger = logging.getLogger(__name__)


class RedisCredentialStore(CredentialStore):
    """Identity storage backed by Redis

    Every Redis call is bounded by ``timeout_seconds``; timeouts and Redis
    errors surface as AuthUnavailableError.
    """

    def __init__(
        self,
        redis_client: Redis,
        timeout_seconds: float = 5.0,
        conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
    ):
        """Initialize identity store

        Args:
            redis_client: Redis connection (decode_responses=True)
            timeout_seconds: Upper bound for each Redis call
            conflict_retries: Re-reads allowed when find-or-create loses a race
        """
        self.redis = redis_client
        self.timeout_seconds = timeout_seconds
        self.conflict_retries = conflict_retries

        # Redis key patterns
        self.identity_key_pattern = "auth:identity:{}"
        self.username_key_pattern = "auth:username:{}"
        self.provider_key_pattern = "auth:provider:{}:{}"
        self.lock_key_pattern = "auth:lock:identity:{}"
        self.identity_list_key = "auth:identity_list"

    async def create(self, new_identity: NewIdentity) -> Identity:
        identity = Identity(
            id=str(uuid.uuid4()),
            username=new_identity.username.strip() if new_identity.username else None,
            credential_secret=new_identity.credential_secret,
            provider_links=dict(new_identity.provider_links),
            display_name=new_identity.display_name or new_identity.username,
        )
        identity_key = self.identity_key_pattern.format(identity.id)

        await self._redis_set(identity_key, json.dumps(identity.to_dict()))

        claimed: List[str] = []
        try:
            if identity.username is not None:
                key = self.username_key_pattern.format(username_key(identity.username))
                await self._claim(key, identity.id, f"Username '{identity.username}' already exists")
                claimed.append(key)

            for provider, external_id in identity.provider_links.items():
                key = self.provider_key_pattern.format(provider, external_id)
                await self._claim(key, identity.id, f"{provider} id {external_id} is already linked")
                claimed.append(key)

            await self._redis_sadd(self.identity_list_key, identity.id)

        except AuthError:
            await self._rollback([*reversed(claimed), identity_key])
            raise

        logger.info(f"Created identity {identity.id}")
        return identity

    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        if not identity_id:
            return None

        data = await self._redis_get(self.identity_key_pattern.format(identity_id))
        if not data:
            return None

        return Identity.from_dict(json.loads(data))

    async def find_by_username(self, username: str) -> Optional[Identity]:
        if not username:
            return None

        identity_id = await self._redis_get(
            self.username_key_pattern.format(username_key(username))
        )
        return await self.find_by_id(identity_id) if identity_id else None

    async def find_by_provider_id(self, provider: str, external_id: str) -> Optional[Identity]:
        if not provider or not external_id:
            return None

        identity_id = await self._redis_get(
            self.provider_key_pattern.format(provider, external_id)
        )
        return await self.find_by_id(identity_id) if identity_id else None

    async def update(self, identity_id: str, patch: IdentityPatch) -> Identity:
        lock = self.redis.lock(
            self.lock_key_pattern.format(identity_id),
            timeout=self.timeout_seconds * 2,
            blocking_timeout=self.timeout_seconds,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.error(f"Redis failure while locking identity {identity_id}: {e}")
            raise AuthUnavailableError("Credential store unavailable") from e
        if not acquired:
            logger.error(f"Could not lock identity {identity_id} within {self.timeout_seconds}s")
            raise AuthUnavailableError(f"Identity {identity_id} is busy")

        try:
            return await self._apply_patch(identity_id, patch)
        finally:
            await self._release(lock, identity_id)

    async def count(self) -> int:
        return await self._call("SCARD", self.identity_list_key, self.redis.scard(self.identity_list_key))

    async def _apply_patch(self, identity_id: str, patch: IdentityPatch) -> Identity:
        identity = await self.find_by_id(identity_id)
        if not identity:
            raise NotFoundError(f"Identity {identity_id} not found")

        claimed: List[str] = []
        try:
            for provider, external_id in (patch.provider_links or {}).items():
                check_link_replacement(identity, provider, external_id)
                if identity.provider_links.get(provider) == external_id:
                    continue
                key = self.provider_key_pattern.format(provider, external_id)
                await self._claim(key, identity_id, f"{provider} id {external_id} is already linked")
                claimed.append(key)
                identity.provider_links[provider] = external_id

            if patch.secret_note is not None:
                identity.secret_note = patch.secret_note
            if patch.display_name is not None:
                identity.display_name = patch.display_name
            identity.updated_at = utc_now()

            await self._redis_set(
                self.identity_key_pattern.format(identity_id), json.dumps(identity.to_dict())
            )
        except AuthError:
            await self._rollback(list(reversed(claimed)))
            raise

        logger.info(f"Updated identity {identity_id}")
        return identity

    async def _claim(self, key: str, identity_id: str, message: str) -> None:
        """Claim a unique index key or raise DuplicateKeyError"""
        claimed = await self._call("SET NX", key, self.redis.set(key, identity_id, nx=True))
        if not claimed:
            logger.info(f"Unique key already owned: {key}")
            raise DuplicateKeyError(message, key=key)

    async def _release(self, lock: Lock, identity_id: str) -> None:
        """Release an update lock; the patch outcome stands either way"""
        try:
            await lock.release()
        except LockError as e:
            # Lock expired before release; the write has already happened
            logger.warning(f"Update lock for identity {identity_id} expired before release: {e}")
        except RedisError as e:
            logger.error(f"Could not release update lock for identity {identity_id}: {e}")

    async def _rollback(self, keys: List[str]) -> None:
        """Undo a partially applied write"""
        for key in keys:
            try:
                await self._redis_delete(key)
            except AuthUnavailableError:
                logger.error(f"Rollback failed for key {key}; manual cleanup required")

    # Redis async wrapper methods
    async def _call(self, op: str, key: str, awaitable: Awaitable[Any]) -> Any:
        return await bounded_call(op, key, awaitable, self.timeout_seconds)

    async def _redis_set(self, key: str, value: str) -> None:
        """Set Redis key"""
        await self._call("SET", key, self.redis.set(key, value))

    async def _redis_get(self, key: str) -> Optional[str]:
        """Get Redis key value"""
        result = await self._call("GET", key, self.redis.get(key))
        return result if result else None

    async def _redis_delete(self, key: str) -> None:
        """Delete Redis key"""
        await self._call("DELETE", key, self.redis.delete(key))

    async def _redis_sadd(self, key: str, value: str) -> None:
        """Add to Redis set"""
        await self._call("SADD", key, self.redis.sadd(key, value))
