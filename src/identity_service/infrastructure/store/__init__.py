"""Credential store backends"""

from identity_service.infrastructure.store.base import CredentialStore
from identity_service.infrastructure.store.memory_store import InMemoryCredentialStore
from identity_service.infrastructure.store.redis_store import RedisCredentialStore

__all__ = [
    "CredentialStore",
    "InMemoryCredentialStore",
    "RedisCredentialStore",
]
