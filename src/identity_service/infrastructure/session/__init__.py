"""Server-side sessions"""

from identity_service.infrastructure.session.backends import (
    InMemorySessionBackend,
    RedisSessionBackend,
    SessionBackend,
)
from identity_service.infrastructure.session.token_manager import SessionManager

__all__ = [
    "SessionBackend",
    "RedisSessionBackend",
    "InMemorySessionBackend",
    "SessionManager",
]
