"""In-memory credential store for development and tests.

A single asyncio.Lock serializes every mutation, so the uniqueness checks and
the writes they guard happen as one step. Only valid for single-process
deployments.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from typing import Dict, Optional, Tuple

from identity_service.domain.errors import DuplicateKeyError, NotFoundError
from identity_service.domain.models import Identity, IdentityPatch, NewIdentity, utc_now
from identity_service.infrastructure.store.base import (
    DEFAULT_CONFLICT_RETRIES,
    CredentialStore,
    check_link_replacement,
    username_key,
)

logger = logging.getLogger(__name__)


class InMemoryCredentialStore(CredentialStore):
    """In-memory implementation of CredentialStore."""

    def __init__(self, conflict_retries: int = DEFAULT_CONFLICT_RETRIES) -> None:
        self.conflict_retries = conflict_retries
        self._identities: Dict[str, Identity] = {}
        self._by_username: Dict[str, str] = {}
        self._by_provider: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def create(self, new_identity: NewIdentity) -> Identity:
        async with self._lock:
            if new_identity.username is not None:
                key = username_key(new_identity.username)
                if key in self._by_username:
                    raise DuplicateKeyError(
                        f"Username '{new_identity.username}' already exists", key=key
                    )

            for provider, external_id in new_identity.provider_links.items():
                if (provider, external_id) in self._by_provider:
                    raise DuplicateKeyError(
                        f"{provider} id {external_id} is already linked",
                        key=f"{provider}:{external_id}",
                    )

            identity = Identity(
                id=str(uuid.uuid4()),
                username=new_identity.username,
                credential_secret=new_identity.credential_secret,
                provider_links=dict(new_identity.provider_links),
                display_name=new_identity.display_name or new_identity.username,
            )
            self._identities[identity.id] = identity
            if identity.username is not None:
                self._by_username[username_key(identity.username)] = identity.id
            for provider, external_id in identity.provider_links.items():
                self._by_provider[(provider, external_id)] = identity.id

        logger.info(f"Created identity {identity.id}")
        return replace(identity, provider_links=dict(identity.provider_links))

    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        identity = self._identities.get(identity_id)
        if identity is None:
            return None
        return replace(identity, provider_links=dict(identity.provider_links))

    async def find_by_username(self, username: str) -> Optional[Identity]:
        if not username:
            return None
        identity_id = self._by_username.get(username_key(username))
        return await self.find_by_id(identity_id) if identity_id else None

    async def find_by_provider_id(self, provider: str, external_id: str) -> Optional[Identity]:
        identity_id = self._by_provider.get((provider, external_id))
        return await self.find_by_id(identity_id) if identity_id else None

    async def update(self, identity_id: str, patch: IdentityPatch) -> Identity:
        async with self._lock:
            identity = self._identities.get(identity_id)
            if identity is None:
                raise NotFoundError(f"Identity {identity_id} not found")

            links = dict(identity.provider_links)
            for provider, external_id in (patch.provider_links or {}).items():
                check_link_replacement(identity, provider, external_id)
                owner = self._by_provider.get((provider, external_id))
                if owner is not None and owner != identity_id:
                    raise DuplicateKeyError(
                        f"{provider} id {external_id} is already linked",
                        key=f"{provider}:{external_id}",
                    )
                links[provider] = external_id

            updated = replace(
                identity,
                provider_links=links,
                secret_note=patch.secret_note if patch.secret_note is not None else identity.secret_note,
                display_name=patch.display_name if patch.display_name is not None else identity.display_name,
                updated_at=utc_now(),
            )
            self._identities[identity_id] = updated
            for provider, external_id in links.items():
                self._by_provider[(provider, external_id)] = identity_id

        logger.info(f"Updated identity {identity_id}")
        return replace(updated, provider_links=dict(updated.provider_links))

    async def count(self) -> int:
        return len(self._identities)
