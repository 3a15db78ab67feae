"""Local authentication strategy (username/password).

Verifies a password against the credential_secret stored on the identity,
using whichever CredentialProtector the process was configured with.
"""

import logging

from identity_service.core.auth.credentials import CredentialProtector
from identity_service.core.auth.strategy import AuthStrategy
from identity_service.domain.errors import (
    BadPasswordError,
    MissingCredentialError,
    NoSuchUserError,
)
from identity_service.domain.models import Identity, LocalCredentials
from identity_service.infrastructure.store.base import CredentialStore

logger = logging.getLogger(__name__)


class LocalStrategy(AuthStrategy):
    """Username/password authentication against the credential store."""

    name = "local"

    def __init__(self, store: CredentialStore, protector: CredentialProtector):
        """
        Args:
            store: Credential store holding local identities
            protector: Hash or cipher variant used when the secret was stored
        """
        self.store = store
        self.protector = protector

    async def verify(self, credential: LocalCredentials) -> Identity:
        """Authenticate with username and password.

        Raises:
            MissingCredentialError: If username or password is empty
            NoSuchUserError: If no identity has this username
            BadPasswordError: If the password does not validate
        """
        if not credential.username or not credential.password:
            raise MissingCredentialError("Username and password are required")

        identity = await self.store.find_by_username(credential.username)
        if not identity:
            logger.warning(f"Login failed: User not found (username: {credential.username})")
            raise NoSuchUserError(f"No user named '{credential.username}'")

        # Identities created by a provider have no local secret to check against
        if not identity.credential_secret:
            logger.warning(f"Login failed: No local credential (username: {credential.username})")
            raise BadPasswordError("Password is incorrect")

        if not self.protector.verify(credential.password, identity.credential_secret):
            logger.warning(f"Login failed: Invalid password (username: {credential.username})")
            raise BadPasswordError("Password is incorrect")

        logger.info(f"User authenticated successfully: {identity.username} ({identity.id})")
        return identity
