"""Authentication error taxonomy

Every failure raised by the credential store, the strategies and the session
manager is one of these types. The gateway converts them into outcomes; no
raw backend exception is allowed to cross the store boundary.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for authentication failures."""

    code = "auth_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class DuplicateKeyError(AuthError):
    """Username or (provider, external id) pair is already owned."""

    code = "duplicate_key"

    def __init__(self, message: str = "", key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class NotFoundError(AuthError):
    """Identity id does not exist in the store."""

    code = "not_found"


class NoSuchUserError(AuthError):
    """No local identity for the given username."""

    code = "no_such_user"


class BadPasswordError(AuthError):
    """Stored secret does not validate the presented password."""

    code = "bad_password"


class MissingCredentialError(AuthError):
    """Username or password was empty."""

    code = "missing_credential"


class InvalidSessionError(AuthError):
    """Session token cannot be resolved to an identity.

    ``reason`` is ``unknown_session`` for tokens that were never issued,
    expired or were invalidated, and ``identity_missing`` when the token is
    live but its identity no longer exists in the store.
    """

    code = "invalid_session"

    UNKNOWN_SESSION = "unknown_session"
    IDENTITY_MISSING = "identity_missing"

    def __init__(self, message: str = "", reason: str = UNKNOWN_SESSION):
        super().__init__(message)
        self.reason = reason


class AuthUnavailableError(AuthError):
    """Store or network failure (including timeouts)."""

    code = "auth_unavailable"


class AuthFailureError(AuthError):
    """Generic rejection of a provider assertion."""

    code = "auth_failure"
