"""Strategy registry

Holds the authentication strategies available to one AuthGateway. Built
explicitly at startup and passed by reference; there is no module-level
registry.
"""

import logging
from typing import Dict, List

from identity_service.core.auth.delegated import DelegatedProviderStrategy
from identity_service.core.auth.local import LocalStrategy
from identity_service.core.auth.strategy import AuthStrategy
from identity_service.domain.errors import AuthFailureError

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """Name -> AuthStrategy mapping"""

    def __init__(self):
        self._strategies: Dict[str, AuthStrategy] = {}

    def register(self, strategy: AuthStrategy) -> None:
        """Add a strategy under its name

        Raises:
            ValueError: If a strategy with the same name is already registered
        """
        if strategy.name in self._strategies:
            raise ValueError(f"Strategy '{strategy.name}' is already registered")
        self._strategies[strategy.name] = strategy
        logger.info(f"Registered auth strategy: {strategy.name} ({strategy.__class__.__name__})")

    def get(self, name: str) -> AuthStrategy:
        """
        Raises:
            AuthFailureError: If no strategy has this name
        """
        strategy = self._strategies.get(name)
        if strategy is None:
            raise AuthFailureError(f"Unknown authentication strategy: {name}")
        return strategy

    def provider(self, name: str) -> DelegatedProviderStrategy:
        """Get a delegated provider strategy

        Raises:
            AuthFailureError: If the name is unknown or not a delegated provider
        """
        strategy = self.get(name)
        if not isinstance(strategy, DelegatedProviderStrategy):
            raise AuthFailureError(f"'{name}' is not an identity provider")
        return strategy

    @property
    def local(self) -> LocalStrategy:
        strategy = self.get(LocalStrategy.name)
        if not isinstance(strategy, LocalStrategy):
            raise AuthFailureError("Local strategy is not registered")
        return strategy

    def names(self) -> List[str]:
        return sorted(self._strategies)

    def __contains__(self, name: str) -> bool:
        return name in self._strategies
