"""Authentication strategy layer.

Supports multiple authentication methods via pluggable strategies:
- local: Username/password against the credential store
- google, facebook: Delegated identity providers (find-or-create)
"""

from .credentials import (
    BcryptProtector,
    CipherProtector,
    CredentialProtector,
    SecretCodec,
    build_protector,
)
from .delegated import DelegatedProviderStrategy, ProviderConfig
from .factory import build_gateway, build_strategy_registry
from .local import LocalStrategy
from .registry import StrategyRegistry
from .strategy import AuthStrategy

__all__ = [
    "AuthStrategy",
    "LocalStrategy",
    "DelegatedProviderStrategy",
    "ProviderConfig",
    "StrategyRegistry",
    "SecretCodec",
    "CredentialProtector",
    "BcryptProtector",
    "CipherProtector",
    "build_protector",
    "build_gateway",
    "build_strategy_registry",
]
