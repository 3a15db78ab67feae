"""Session Management

Purpose: Tie requests to identities through opaque server-side sessions

Key Features:
- Random opaque tokens (the cookie value carries no identity data)
- SHA-256 token hashing for storage
- Only the identity id is serialized into the session
- Automatic expiration after the configured TTL
- Idempotent invalidation

Security Considerations:
- Original tokens never stored in plaintext
- A session whose identity has disappeared is dropped on first use
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional

from identity_service.domain.errors import InvalidSessionError
from identity_service.domain.models import Identity, SessionRecord, utc_now
from identity_service.infrastructure.session.backends import SessionBackend
from identity_service.infrastructure.store.base import CredentialStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Serializes identities to session tokens and back."""

    def __init__(
        self,
        backend: SessionBackend,
        store: CredentialStore,
        ttl_seconds: int = 24 * 60 * 60,
    ):
        """Initialize session manager

        Args:
            backend: Storage for session records
            store: Credential store used to resolve identity ids
            ttl_seconds: Session lifetime
        """
        self.backend = backend
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def establish(self, identity: Identity) -> str:
        """Create a session for an authenticated identity

        Returns:
            Opaque session token

        Raises:
            AuthUnavailableError: If the session cannot be stored
        """
        token = secrets.token_urlsafe(32)
        now = utc_now()
        record = SessionRecord(
            identity_id=identity.id,
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )

        await self.backend.put(self._hash_token(token), record, self.ttl_seconds)

        logger.info(f"Established session for identity {identity.id}")
        return token

    async def resolve(self, token: Optional[str]) -> Identity:
        """Resolve a session token to its identity

        Raises:
            InvalidSessionError: Unknown/expired token, or identity no longer exists
            AuthUnavailableError: If storage is unreachable
        """
        if not token:
            raise InvalidSessionError("Session token is empty")

        token_hash = self._hash_token(token)
        record = await self.backend.get(token_hash)
        if record is None:
            raise InvalidSessionError("Session not found or expired")

        identity = await self.store.find_by_id(record.identity_id)
        if identity is None:
            logger.warning(f"Session references missing identity {record.identity_id}; dropping it")
            await self.backend.delete(token_hash)
            raise InvalidSessionError(
                "Identity no longer exists", reason=InvalidSessionError.IDENTITY_MISSING
            )

        return identity

    async def is_authenticated(self, token: Optional[str]) -> bool:
        """True iff the token resolves to an existing identity"""
        try:
            await self.resolve(token)
        except InvalidSessionError:
            return False
        return True

    async def invalidate(self, token: Optional[str]) -> None:
        """Invalidate a session; unknown tokens are a no-op"""
        if not token:
            return

        if await self.backend.delete(self._hash_token(token)):
            logger.info("Session invalidated")
        else:
            logger.debug("Invalidate called for unknown session")

    def _hash_token(self, token: str) -> str:
        """Generate SHA-256 hash of token"""
        return hashlib.sha256(token.encode()).hexdigest()
