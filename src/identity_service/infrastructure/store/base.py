"""Credential store contract

Both backends uphold the same invariants: a username is owned by at most one
identity, a (provider, external id) pair is owned by at most one identity,
and a failed create leaves no record behind.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from identity_service.domain.errors import AuthUnavailableError, DuplicateKeyError
from identity_service.domain.models import (
    Identity,
    IdentityPatch,
    NewIdentity,
    profile_display_name,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFLICT_RETRIES = 3


class CredentialStore(ABC):
    """Persistent mapping of identity records.

    All methods raise AuthUnavailableError on backend failure or timeout.
    """

    conflict_retries: int = DEFAULT_CONFLICT_RETRIES

    @abstractmethod
    async def create(self, new_identity: NewIdentity) -> Identity:
        """Create an identity.

        Raises:
            DuplicateKeyError: If the username or any provider link is taken
        """

    @abstractmethod
    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        """Find identity by id."""

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[Identity]:
        """Find local identity by username (case-insensitive)."""

    @abstractmethod
    async def find_by_provider_id(self, provider: str, external_id: str) -> Optional[Identity]:
        """Find identity owning the (provider, external_id) pair."""

    @abstractmethod
    async def update(self, identity_id: str, patch: IdentityPatch) -> Identity:
        """Apply a partial update.

        Raises:
            NotFoundError: If the identity does not exist
            DuplicateKeyError: If an added provider link belongs to another identity
        """

    @abstractmethod
    async def count(self) -> int:
        """Number of stored identities."""

    async def find_or_create_by_provider_id(
        self,
        provider: str,
        external_id: str,
        profile: Optional[Dict[str, Any]] = None,
    ) -> Identity:
        """Return the identity for (provider, external_id), creating it if needed.

        Creation races are settled by the unique claim inside create(): the
        loser gets DuplicateKeyError and re-reads the winner's record.

        Raises:
            AuthUnavailableError: If no identity could be read or created
                within the retry budget
        """
        display_name = profile_display_name(profile)

        for attempt in range(self.conflict_retries + 1):
            existing = await self.find_by_provider_id(provider, external_id)
            if existing:
                return existing

            try:
                return await self.create(
                    NewIdentity(
                        provider_links={provider: external_id},
                        display_name=display_name,
                    )
                )
            except DuplicateKeyError:
                logger.info(
                    f"Concurrent create for {provider}:{external_id}, "
                    f"re-reading (attempt {attempt + 1})"
                )

        logger.error(f"Find-or-create exhausted retries for {provider}:{external_id}")
        raise AuthUnavailableError(
            f"Could not resolve identity for {provider}:{external_id} "
            f"after {self.conflict_retries + 1} attempts"
        )


def username_key(username: str) -> str:
    """Normalized uniqueness key for a username"""
    return username.strip().lower()


def check_link_replacement(identity: Identity, provider: str, external_id: str) -> None:
    """Links are additive only: an existing provider link is never re-pointed."""
    current = identity.provider_links.get(provider)
    if current is not None and current != external_id:
        raise DuplicateKeyError(
            f"Identity {identity.id} is already linked to another {provider} account",
            key=f"{provider}:{current}",
        )
