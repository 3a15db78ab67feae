"""Authentication API Models

Purpose: Request/response models for the HTTP surface

These models validate already-parsed form fields before they reach the
gateway and shape what is returned to clients. Secrets never appear in
responses.

Key Components:
- CredentialsRequest: Registration and login input
- ProviderCallbackRequest: Verified assertion from the provider handshake
- IdentityProfile: Public identity information
- SessionResponse: Result of a successful authentication
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from identity_service.domain.models.identity import Identity, to_json_compatible

_USERNAME_PATTERN = re.compile(r"^([^@]+@[^@]+\.[^@]+|[a-zA-Z0-9._-]+)$")


class CredentialsRequest(BaseModel):
    """Username/password pair for register and login"""

    username: str = Field(
        ...,
        min_length=3,
        max_length=50,
        description="Username or email address (3-50 chars)",
        examples=["alice"],
    )
    password: str = Field(..., min_length=1, max_length=256, description="Password")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        """Validate username format (allows email addresses)"""
        v = v.strip()
        if not _USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username must be a valid email address or contain only letters, "
                "numbers, dots, underscores, and hyphens"
            )
        return v

    def __repr__(self) -> str:
        return f"CredentialsRequest(username={self.username!r}, password='***')"


class ProviderCallbackRequest(BaseModel):
    """Assertion handed over by the provider handshake collaborator

    The handshake has already validated the authorization code; external_id is
    the provider's stable subject identifier.
    """

    external_id: str = Field(..., min_length=1, max_length=255, examples=["1234567890"])
    profile: Dict[str, Any] = Field(default_factory=dict)


class SecretNoteRequest(BaseModel):
    """Free-text secret attached to the current identity"""

    secret: str = Field(..., min_length=1, max_length=2000)


class IdentityProfile(BaseModel):
    """Public identity information

    Excludes the credential secret and the secret note itself.
    """

    id: str = Field(..., description="Unique identity identifier")
    username: Optional[str] = Field(None, description="Username (local identities only)")
    display_name: Optional[str] = Field(None, description="Display name")
    providers: List[str] = Field(default_factory=list, description="Linked providers")
    has_secret_note: bool = Field(default=False)
    created_at: str = Field(..., description="Creation timestamp (ISO format)")

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityProfile":
        return cls(
            id=identity.id,
            username=identity.username,
            display_name=identity.display_name,
            providers=sorted(identity.provider_links),
            has_secret_note=identity.secret_note is not None,
            created_at=to_json_compatible(identity.created_at),
        )


class SessionResponse(BaseModel):
    """Successful authentication

    The session token itself travels only in the HttpOnly cookie.
    """

    authenticated: bool = True
    expires_in: int = Field(..., description="Session lifetime in seconds", examples=[86400])
    user: IdentityProfile


class AuthorizationUrlResponse(BaseModel):
    """Where to send the browser to start a provider login"""

    provider: str
    authorization_url: str
    state: str


class SecretResponse(BaseModel):
    """Secret note of the current identity"""

    user: IdentityProfile
    secret: Optional[str] = None


class LogoutResponse(BaseModel):
    """Logout response model"""

    message: str = Field(default="Logged out successfully")
