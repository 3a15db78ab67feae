"""Gateway outcomes

AuthGateway never raises for authentication failures; every call returns a
GatewayResult whose outcome maps onto one of the user-visible response kinds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from identity_service.domain.errors import AuthError
from identity_service.domain.models.identity import Identity


class ResponseKind(Enum):
    """What the transport layer should do with an outcome"""
    OK = "ok"
    RETRY_FORM = "retry_form"
    REDIRECT_LOGIN = "redirect_login"
    HARD_FAILURE = "hard_failure"


class AuthOutcome(Enum):
    """Result of a gateway operation"""
    AUTHENTICATED = "authenticated"
    GRANTED = "granted"
    LOGGED_OUT = "logged_out"
    REGISTRATION_FAILED = "registration_failed"
    LOGIN_FAILED = "login_failed"
    UNAUTHENTICATED = "unauthenticated"
    AUTH_UNAVAILABLE = "auth_unavailable"

    @property
    def response_kind(self) -> ResponseKind:
        return _RESPONSE_KINDS[self]


_RESPONSE_KINDS = {
    AuthOutcome.AUTHENTICATED: ResponseKind.OK,
    AuthOutcome.GRANTED: ResponseKind.OK,
    AuthOutcome.LOGGED_OUT: ResponseKind.OK,
    AuthOutcome.REGISTRATION_FAILED: ResponseKind.RETRY_FORM,
    AuthOutcome.LOGIN_FAILED: ResponseKind.RETRY_FORM,
    AuthOutcome.UNAUTHENTICATED: ResponseKind.REDIRECT_LOGIN,
    AuthOutcome.AUTH_UNAVAILABLE: ResponseKind.HARD_FAILURE,
}


@dataclass
class GatewayResult:
    """Outcome of one gateway call

    Attributes:
        outcome: What happened
        identity: Authenticated identity (on success)
        token: Session token established by this call, if any
        error: The typed failure behind a non-OK outcome
        payload: Value returned by a protected resource handler
    """
    outcome: AuthOutcome
    identity: Optional[Identity] = None
    token: Optional[str] = None
    error: Optional[AuthError] = None
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome.response_kind is ResponseKind.OK

    @property
    def response_kind(self) -> ResponseKind:
        return self.outcome.response_kind

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None
