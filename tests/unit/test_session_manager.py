"""Unit tests for SessionManager and session backends"""

import hashlib
import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from identity_service.domain.errors import AuthUnavailableError, InvalidSessionError
from identity_service.domain.models import Identity, NewIdentity, SessionRecord, utc_now
from identity_service.infrastructure.session import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionManager,
)


@pytest.mark.unit
class TestSessionManager:
    """Test establish / resolve / invalidate"""

    @pytest.mark.asyncio
    async def test_establish_then_resolve(self, store, sessions):
        """Happy path: a fresh token resolves to its identity"""
        identity = await store.create(NewIdentity(username="alice", credential_secret="h"))

        token = await sessions.establish(identity)

        assert len(token) >= 43
        assert identity.id not in token
        assert (await sessions.resolve(token)).id == identity.id
        assert await sessions.is_authenticated(token) is True

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, store, sessions):
        identity = await store.create(NewIdentity(username="alice", credential_secret="h"))

        assert await sessions.establish(identity) != await sessions.establish(identity)

    @pytest.mark.asyncio
    async def test_backend_stores_hash_not_token(self, store, sessions, session_backend):
        identity = await store.create(NewIdentity(username="alice", credential_secret="h"))

        token = await sessions.establish(identity)

        assert token not in session_backend._sessions
        assert hashlib.sha256(token.encode()).hexdigest() in session_backend._sessions

    @pytest.mark.asyncio
    async def test_resolve_empty_token(self, sessions):
        with pytest.raises(InvalidSessionError) as exc_info:
            await sessions.resolve(None)

        assert exc_info.value.reason == InvalidSessionError.UNKNOWN_SESSION

    @pytest.mark.asyncio
    async def test_resolve_unknown_token(self, sessions):
        with pytest.raises(InvalidSessionError):
            await sessions.resolve("never-issued")

        assert await sessions.is_authenticated("never-issued") is False

    @pytest.mark.asyncio
    async def test_expired_session(self, store, session_backend):
        """Edge case: an expired record no longer authenticates"""
        identity = await store.create(NewIdentity(username="alice", credential_secret="h"))
        sessions = SessionManager(session_backend, store, ttl_seconds=0)

        token = await sessions.establish(identity)

        assert await sessions.is_authenticated(token) is False

    @pytest.mark.asyncio
    async def test_identity_gone(self, sessions, session_backend):
        """Edge case: a session for a vanished identity is dropped"""
        token = await sessions.establish(Identity(id="ghost"))

        with pytest.raises(InvalidSessionError) as exc_info:
            await sessions.resolve(token)

        assert exc_info.value.reason == InvalidSessionError.IDENTITY_MISSING
        assert session_backend._sessions == {}

    @pytest.mark.asyncio
    async def test_invalidate(self, store, sessions):
        identity = await store.create(NewIdentity(username="alice", credential_secret="h"))
        token = await sessions.establish(identity)

        await sessions.invalidate(token)

        assert await sessions.is_authenticated(token) is False

    @pytest.mark.asyncio
    async def test_invalidate_is_idempotent(self, sessions):
        await sessions.invalidate("never-issued")
        await sessions.invalidate("never-issued")
        await sessions.invalidate(None)

    @pytest.mark.asyncio
    async def test_backend_failure_propagates(self, store):
        backend = AsyncMock()
        backend.get.side_effect = AuthUnavailableError("Backing store unavailable")
        sessions = SessionManager(backend, store)

        with pytest.raises(AuthUnavailableError):
            await sessions.resolve("some-token")


@pytest.mark.unit
class TestInMemorySessionBackend:
    """Test process-local session storage"""

    @pytest.mark.asyncio
    async def test_put_get_delete(self):
        backend = InMemorySessionBackend()
        now = utc_now()
        record = SessionRecord("id-1", now, now + timedelta(hours=1))

        await backend.put("hash-1", record, 3600)

        assert await backend.get("hash-1") == record
        assert await backend.delete("hash-1") is True
        assert await backend.delete("hash-1") is False
        assert await backend.get("hash-1") is None

    @pytest.mark.asyncio
    async def test_put_purges_abandoned_sessions(self):
        """Expired records are dropped even if nobody looks them up again"""
        backend = InMemorySessionBackend()
        now = utc_now()
        stale = SessionRecord("id-1", now - timedelta(hours=2), now - timedelta(hours=1))
        live = SessionRecord("id-2", now, now + timedelta(hours=1))

        await backend.put("stale", stale, 3600)
        await backend.put("live", live, 3600)

        assert set(backend._sessions) == {"live"}


@pytest.mark.unit
class TestRedisSessionBackend:
    """Test Redis session storage with mocked Redis"""

    @pytest.fixture
    def mock_redis(self):
        redis = AsyncMock()
        redis.setex = AsyncMock(return_value=True)
        redis.get = AsyncMock(return_value=None)
        redis.delete = AsyncMock(return_value=1)
        return redis

    @pytest.mark.asyncio
    async def test_put_uses_ttl(self, mock_redis):
        backend = RedisSessionBackend(mock_redis, timeout_seconds=1.0)
        now = utc_now()
        record = SessionRecord("id-1", now, now + timedelta(hours=1))

        await backend.put("hash-1", record, 3600)

        key, ttl, value = mock_redis.setex.call_args.args
        assert key == "auth:session:hash-1"
        assert ttl == 3600
        assert json.loads(value)["identity_id"] == "id-1"

    @pytest.mark.asyncio
    async def test_get_existing(self, mock_redis):
        now = utc_now()
        record = SessionRecord("id-1", now, now + timedelta(hours=1))
        mock_redis.get.return_value = json.dumps(record.to_dict())

        assert await RedisSessionBackend(mock_redis).get("hash-1") == record

    @pytest.mark.asyncio
    async def test_delete_reports_existence(self, mock_redis):
        backend = RedisSessionBackend(mock_redis)

        assert await backend.delete("hash-1") is True
        mock_redis.delete.return_value = 0
        assert await backend.delete("hash-1") is False

    @pytest.mark.asyncio
    async def test_redis_down(self, mock_redis):
        mock_redis.get.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(AuthUnavailableError):
            await RedisSessionBackend(mock_redis).get("hash-1")
