"""Authentication wiring.

Builds the strategy registry and the AuthGateway from settings. Called once
at startup; the resulting gateway is passed to request handlers by
reference.
"""

import logging
from typing import Optional

from redis.asyncio import Redis

from identity_service.config.settings import Settings
from identity_service.core.auth.credentials import CredentialProtector, build_protector
from identity_service.core.auth.delegated import (
    DelegatedProviderStrategy,
    facebook_config,
    google_config,
)
from identity_service.core.auth.local import LocalStrategy
from identity_service.core.auth.registry import StrategyRegistry
from identity_service.infrastructure.session import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionManager,
)
from identity_service.infrastructure.store import (
    CredentialStore,
    InMemoryCredentialStore,
    RedisCredentialStore,
)

logger = logging.getLogger(__name__)


def build_strategy_registry(
    settings: Settings, store: CredentialStore, protector: CredentialProtector
) -> StrategyRegistry:
    """Register the local strategy and the Google and Facebook providers."""
    registry = StrategyRegistry()
    registry.register(LocalStrategy(store, protector))
    registry.register(
        DelegatedProviderStrategy(
            google_config(
                settings.google_client_id,
                settings.google_client_secret,
                settings.google_callback_url,
            ),
            store,
        )
    )
    registry.register(
        DelegatedProviderStrategy(
            facebook_config(
                settings.facebook_app_id,
                settings.facebook_app_secret,
                settings.facebook_callback_url,
            ),
            store,
        )
    )
    return registry


def build_gateway(settings: Settings, redis_client: Optional[Redis] = None):
    """Assemble an AuthGateway for the configured backend.

    Args:
        settings: Application settings
        redis_client: Connected Redis client, required when STORE_BACKEND=redis

    Returns:
        Configured AuthGateway instance

    Raises:
        ValueError: If the configuration is inconsistent
    """
    from identity_service.core.gateway import AuthGateway

    logger.info(f"Initializing identity store backend: {settings.store_backend}")

    if settings.store_backend == "redis":
        if redis_client is None:
            raise ValueError("STORE_BACKEND=redis requires a connected Redis client")
        store: CredentialStore = RedisCredentialStore(
            redis_client,
            timeout_seconds=settings.store_timeout_seconds,
            conflict_retries=settings.store_conflict_retries,
        )
        session_backend = RedisSessionBackend(
            redis_client, timeout_seconds=settings.store_timeout_seconds
        )
    else:
        logger.warning(
            "Using in-memory identity store. "
            "WARNING: This only works for single-instance deployments!"
        )
        store = InMemoryCredentialStore(conflict_retries=settings.store_conflict_retries)
        session_backend = InMemorySessionBackend()

    protector = build_protector(settings)
    registry = build_strategy_registry(settings, store, protector)
    sessions = SessionManager(session_backend, store, ttl_seconds=settings.session_ttl_seconds)

    gateway = AuthGateway(
        store=store,
        registry=registry,
        sessions=sessions,
        protector=protector,
    )
    logger.info(
        f"Auth gateway initialized: strategies={registry.names()}, "
        f"credential_protection={protector.name}"
    )
    return gateway
