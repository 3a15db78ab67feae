"""Abstract authentication strategy interface.

This module defines the contract that all authentication strategies must
implement. A strategy verifies one kind of presented credential and produces
(or resolves) the matching Identity.
"""

from abc import ABC, abstractmethod
from typing import Any

from identity_service.domain.models import Identity


class AuthStrategy(ABC):
    """Pluggable verifier for one authentication method.

    Strategies are registered by name in a StrategyRegistry:
        local     -> LocalStrategy (username/password)
        google    -> DelegatedProviderStrategy
        facebook  -> DelegatedProviderStrategy
    """

    name: str

    @abstractmethod
    async def verify(self, credential: Any) -> Identity:
        """Verify a presented credential or identity assertion.

        Args:
            credential: Strategy-specific input (LocalCredentials or ProviderAssertion)

        Returns:
            The authenticated Identity

        Raises:
            NoSuchUserError: Local strategy, unknown username
            BadPasswordError: Local strategy, password does not validate
            AuthFailureError: Delegated strategy, assertion rejected
            AuthUnavailableError: Credential store failure
        """
        pass
