"""Delegated identity-provider strategies (Google, Facebook).

The OAuth handshake (redirect, code exchange, token validation) is performed
by an external collaborator that hands over a trusted ProviderAssertion. The
strategy only turns that assertion into an Identity through find-or-create,
so revisiting the provider login never creates a second record.

Example Configuration:
    # Google
    GOOGLE_CLIENT_ID=xxx.apps.googleusercontent.com
    GOOGLE_CLIENT_SECRET=GOCSPX-xxx
    GOOGLE_CALLBACK_URL=https://example.com/api/v1/auth/google/callback

    # Facebook
    FACEBOOK_APP_ID=xxx
    FACEBOOK_APP_SECRET=xxx
    FACEBOOK_CALLBACK_URL=https://example.com/api/v1/auth/facebook/callback
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlencode

from identity_service.core.auth.strategy import AuthStrategy
from identity_service.domain.errors import AuthFailureError, AuthUnavailableError
from identity_service.domain.models import Identity, ProviderAssertion
from identity_service.infrastructure.store.base import CredentialStore

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
FACEBOOK_AUTHORIZATION_ENDPOINT = "https://www.facebook.com/v19.0/dialog/oauth"


@dataclass
class ProviderConfig:
    """OAuth client registration for one provider"""
    name: str
    authorization_endpoint: str
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    callback_url: Optional[str] = None
    scopes: List[str] = field(default_factory=list)

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.callback_url)


class DelegatedProviderStrategy(AuthStrategy):
    """Authentication delegated to a third-party identity provider."""

    def __init__(self, config: ProviderConfig, store: CredentialStore):
        """
        Args:
            config: Provider client registration
            store: Credential store used for find-or-create
        """
        self.config = config
        self.name = config.name
        self.store = store

        if not config.is_configured:
            logger.warning(
                f"{config.name} provider has no client credentials; "
                "callbacks are accepted but login redirects are unavailable"
            )

    def authorization_url(self, state: str) -> str:
        """Build the provider authorization URL.

        Args:
            state: CSRF protection state, checked by the handshake collaborator

        Raises:
            AuthUnavailableError: If the provider is not configured
        """
        if not self.config.is_configured:
            raise AuthUnavailableError(f"{self.name} login is not configured")

        params = {
            "client_id": self.config.client_id,
            "response_type": "code",
            "redirect_uri": self.config.callback_url,
            "state": state,
        }
        if self.config.scopes:
            params["scope"] = " ".join(self.config.scopes)

        return f"{self.config.authorization_endpoint}?{urlencode(params)}"

    async def verify(self, credential: ProviderAssertion) -> Identity:
        """Resolve or create the identity for a verified assertion.

        Raises:
            AuthFailureError: If the assertion is for another provider or has no subject
            AuthUnavailableError: If the credential store fails
        """
        if credential.provider != self.name:
            raise AuthFailureError(
                f"Assertion from '{credential.provider}' presented to {self.name} strategy"
            )
        if not credential.external_id:
            raise AuthFailureError(f"{self.name} assertion has no external id")

        identity = await self.store.find_or_create_by_provider_id(
            self.name, credential.external_id, credential.profile
        )

        logger.info(f"{self.name} identity resolved: {identity.id}")
        return identity


def google_config(
    client_id: Optional[str], client_secret: Optional[str], callback_url: Optional[str]
) -> ProviderConfig:
    return ProviderConfig(
        name="google",
        authorization_endpoint=GOOGLE_AUTHORIZATION_ENDPOINT,
        client_id=client_id,
        client_secret=client_secret,
        callback_url=callback_url,
        scopes=["profile"],
    )


def facebook_config(
    app_id: Optional[str], app_secret: Optional[str], callback_url: Optional[str]
) -> ProviderConfig:
    return ProviderConfig(
        name="facebook",
        authorization_endpoint=FACEBOOK_AUTHORIZATION_ENDPOINT,
        client_id=app_id,
        client_secret=app_secret,
        callback_url=callback_url,
    )
