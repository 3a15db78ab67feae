"""Domain models for Identity Service"""

from identity_service.domain.models.api_models import (
    AuthorizationUrlResponse,
    CredentialsRequest,
    IdentityProfile,
    LogoutResponse,
    ProviderCallbackRequest,
    SecretNoteRequest,
    SecretResponse,
    SessionResponse,
)
from identity_service.domain.models.identity import (
    Identity,
    IdentityPatch,
    LocalCredentials,
    NewIdentity,
    ProviderAssertion,
    SessionRecord,
    parse_utc_timestamp,
    profile_display_name,
    to_json_compatible,
    utc_now,
)
from identity_service.domain.models.outcome import AuthOutcome, GatewayResult, ResponseKind

__all__ = [
    # Identity models
    "Identity",
    "NewIdentity",
    "IdentityPatch",
    "SessionRecord",
    "LocalCredentials",
    "ProviderAssertion",
    "parse_utc_timestamp",
    "profile_display_name",
    "to_json_compatible",
    "utc_now",
    # Outcomes
    "AuthOutcome",
    "GatewayResult",
    "ResponseKind",
    # API models
    "CredentialsRequest",
    "ProviderCallbackRequest",
    "SecretNoteRequest",
    "IdentityProfile",
    "SessionResponse",
    "AuthorizationUrlResponse",
    "SecretResponse",
    "LogoutResponse",
]
