"""Authentication gateway

Orchestrates registration, login, provider callbacks, logout and gated
access to protected resources. One instance is built at startup (see
core.auth.factory.build_gateway) and shared by all request handlers.

Every operation returns a GatewayResult; typed failures from the store, the
strategies and the session manager are converted to outcomes here and never
propagate to the transport layer.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from identity_service.core.auth.credentials import CredentialProtector
from identity_service.core.auth.registry import StrategyRegistry
from identity_service.domain.errors import (
    AuthFailureError,
    AuthUnavailableError,
    BadPasswordError,
    DuplicateKeyError,
    InvalidSessionError,
    MissingCredentialError,
    NoSuchUserError,
    NotFoundError,
)
from identity_service.domain.models import (
    AuthOutcome,
    GatewayResult,
    Identity,
    IdentityPatch,
    LocalCredentials,
    NewIdentity,
    ProviderAssertion,
)
from identity_service.infrastructure.session import SessionManager
from identity_service.infrastructure.store import CredentialStore

logger = logging.getLogger(__name__)

ResourceHandler = Callable[[Identity], Awaitable[Any]]


class AuthGateway:
    """Entry point for every authentication-related request."""

    def __init__(
        self,
        store: CredentialStore,
        registry: StrategyRegistry,
        sessions: SessionManager,
        protector: CredentialProtector,
    ):
        self.store = store
        self.registry = registry
        self.sessions = sessions
        self.protector = protector

    async def register(self, username: str, password: str) -> GatewayResult:
        """Create a local identity and log it in.

        Returns:
            AUTHENTICATED with identity and token, REGISTRATION_FAILED on a
            taken username or missing fields, AUTH_UNAVAILABLE on store failure
        """
        if not username or not username.strip() or not password:
            return GatewayResult(
                AuthOutcome.REGISTRATION_FAILED,
                error=MissingCredentialError("Username and password are required"),
            )

        try:
            await self.store.create(
                NewIdentity(
                    username=username.strip(),
                    credential_secret=self.protector.protect(password),
                )
            )
        except DuplicateKeyError as e:
            logger.warning(f"Registration attempt for existing user: {username}")
            return GatewayResult(AuthOutcome.REGISTRATION_FAILED, error=e)
        except AuthUnavailableError as e:
            logger.error(f"Registration failed, store unavailable: {e}")
            return GatewayResult(AuthOutcome.AUTH_UNAVAILABLE, error=e)

        logger.info(f"User registration: {username}")

        # Registration logs the new user straight in
        return await self._authenticate_local(username, password, AuthOutcome.REGISTRATION_FAILED)

    async def login(
        self, username: str, password: str, current_token: Optional[str] = None
    ) -> GatewayResult:
        """Authenticate with username and password.

        A failed login leaves any existing session untouched. A successful one
        issues a fresh token and invalidates current_token, if given.
        """
        return await self._authenticate_local(
            username, password, AuthOutcome.LOGIN_FAILED, current_token
        )

    async def provider_callback(
        self,
        provider: str,
        assertion: ProviderAssertion,
        current_token: Optional[str] = None,
    ) -> GatewayResult:
        """Complete a delegated login with a verified provider assertion.

        Returns:
            AUTHENTICATED (existing or newly created identity), LOGIN_FAILED if
            the assertion is rejected, AUTH_UNAVAILABLE on store failure
        """
        try:
            strategy = self.registry.provider(provider)
            identity = await strategy.verify(assertion)
        except AuthFailureError as e:
            logger.warning(f"{provider} callback rejected: {e}")
            return GatewayResult(AuthOutcome.LOGIN_FAILED, error=e)
        except AuthUnavailableError as e:
            logger.error(f"{provider} callback failed, store unavailable: {e}")
            return GatewayResult(AuthOutcome.AUTH_UNAVAILABLE, error=e)

        return await self._start_session(identity, current_token)

    def authorization_url(self, provider: str, state: str) -> str:
        """URL that starts the provider handshake.

        Raises:
            AuthFailureError: If the provider is unknown
            AuthUnavailableError: If the provider is not configured
        """
        return self.registry.provider(provider).authorization_url(state)

    async def is_authenticated(self, token: Optional[str]) -> bool:
        return await self.sessions.is_authenticated(token)

    async def protected_access(
        self, token: Optional[str], handler: ResourceHandler
    ) -> GatewayResult:
        """Run handler with the session's identity, or refuse access.

        Returns:
            GRANTED with the handler's return value as payload,
            UNAUTHENTICATED if the token does not resolve,
            AUTH_UNAVAILABLE on store failure
        """
        try:
            identity = await self.sessions.resolve(token)
        except InvalidSessionError as e:
            logger.debug(f"Protected access refused: {e.reason}")
            return GatewayResult(AuthOutcome.UNAUTHENTICATED, error=e)
        except AuthUnavailableError as e:
            logger.error(f"Protected access failed, store unavailable: {e}")
            return GatewayResult(AuthOutcome.AUTH_UNAVAILABLE, error=e)

        try:
            payload = await handler(identity)
        except NotFoundError as e:
            # Identity disappeared between resolve and the handler's write
            logger.warning(f"Identity {identity.id} vanished during protected access")
            return GatewayResult(AuthOutcome.UNAUTHENTICATED, error=e)
        except AuthUnavailableError as e:
            logger.error(f"Protected handler failed, store unavailable: {e}")
            return GatewayResult(AuthOutcome.AUTH_UNAVAILABLE, identity=identity, error=e)

        return GatewayResult(AuthOutcome.GRANTED, identity=identity, payload=payload)

    async def submit_secret(self, token: Optional[str], note: str) -> GatewayResult:
        """Attach a secret note to the session's identity."""

        async def save(identity: Identity) -> Identity:
            return await self.store.update(identity.id, IdentityPatch(secret_note=note))

        result = await self.protected_access(token, save)
        if result.outcome is AuthOutcome.GRANTED:
            result.identity = result.payload
            logger.info(f"Secret note updated for identity {result.identity.id}")
        return result

    async def logout(self, token: Optional[str]) -> GatewayResult:
        """Invalidate the session. Unknown tokens are accepted silently."""
        try:
            await self.sessions.invalidate(token)
        except AuthUnavailableError as e:
            logger.error(f"Logout failed, store unavailable: {e}")
            return GatewayResult(AuthOutcome.AUTH_UNAVAILABLE, error=e)

        return GatewayResult(AuthOutcome.LOGGED_OUT)

    async def _authenticate_local(
        self,
        username: str,
        password: str,
        failure: AuthOutcome,
        current_token: Optional[str] = None,
    ) -> GatewayResult:
        try:
            identity = await self.registry.local.verify(LocalCredentials(username, password))
        except (NoSuchUserError, BadPasswordError, MissingCredentialError, AuthFailureError) as e:
            return GatewayResult(failure, error=e)
        except AuthUnavailableError as e:
            logger.error(f"Local authentication failed, store unavailable: {e}")
            return GatewayResult(AuthOutcome.AUTH_UNAVAILABLE, error=e)

        return await self._start_session(identity, current_token)

    async def _start_session(
        self, identity: Identity, current_token: Optional[str] = None
    ) -> GatewayResult:
        try:
            token = await self.sessions.establish(identity)
            if current_token:
                await self.sessions.invalidate(current_token)
        except AuthUnavailableError as e:
            logger.error(f"Could not establish session for {identity.id}: {e}")
            return GatewayResult(AuthOutcome.AUTH_UNAVAILABLE, identity=identity, error=e)

        return GatewayResult(AuthOutcome.AUTHENTICATED, identity=identity, token=token)
