"""Identity Data Models

Purpose: Define data structures for identities and sessions

Key Components:
- Identity: Durable authenticated-subject record
- NewIdentity: Fields accepted by CredentialStore.create
- IdentityPatch: Fields accepted by CredentialStore.update
- SessionRecord: Server-side session pointing at one identity id
- LocalCredentials / ProviderAssertion: Strategy inputs
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def parse_utc_timestamp(timestamp_str: str) -> datetime:
    """Parse UTC timestamp string to datetime object"""
    if isinstance(timestamp_str, datetime):
        return timestamp_str
    return datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))


def to_json_compatible(value):
    """Convert datetime to JSON-compatible ISO format string"""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def profile_display_name(profile: Optional[Dict[str, Any]]) -> Optional[str]:
    """Display name from a provider profile

    Passport-style profiles carry `name` as an object ({givenName, familyName}),
    so only string values are taken.
    """
    for key in ("displayName", "name"):
        value = (profile or {}).get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


@dataclass
class Identity:
    """Authenticated subject

    Attributes:
        id: Unique identifier (UUID format), immutable
        username: Login name for local identities, None for provider identities
        credential_secret: Protected password verifier (hash or ciphertext)
        provider_links: Provider name -> provider-assigned external id
        secret_note: Free text attached by the user after authentication
        display_name: Human-readable name
        created_at: Creation timestamp
        updated_at: Last mutation timestamp
    """
    id: str
    username: Optional[str] = None
    credential_secret: Optional[str] = None
    provider_links: Dict[str, str] = field(default_factory=dict)
    secret_note: Optional[str] = None
    display_name: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "username": self.username,
            "credential_secret": self.credential_secret,
            "provider_links": dict(self.provider_links),
            "secret_note": self.secret_note,
            "display_name": self.display_name,
            "created_at": to_json_compatible(self.created_at),
            "updated_at": to_json_compatible(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Identity':
        """Create from dictionary (JSON deserialization)"""
        return cls(
            id=data["id"],
            username=data.get("username"),
            credential_secret=data.get("credential_secret"),
            provider_links=dict(data.get("provider_links") or {}),
            secret_note=data.get("secret_note"),
            display_name=data["display_name"] if isinstance(data.get("display_name"), str) else None,
            created_at=parse_utc_timestamp(data["created_at"]),
            updated_at=parse_utc_timestamp(data["updated_at"]) if data.get("updated_at") else None,
        )


@dataclass
class NewIdentity:
    """Fields for a record that does not exist yet (the store assigns the id)."""
    username: Optional[str] = None
    credential_secret: Optional[str] = None
    provider_links: Dict[str, str] = field(default_factory=dict)
    display_name: Optional[str] = None


@dataclass
class IdentityPatch:
    """Partial update; None means "leave unchanged".

    provider_links is additive: listed links are added, existing ones kept.
    """
    secret_note: Optional[str] = None
    display_name: Optional[str] = None
    provider_links: Optional[Dict[str, str]] = None

    def is_empty(self) -> bool:
        return (
            self.secret_note is None
            and self.display_name is None
            and not self.provider_links
        )


@dataclass
class SessionRecord:
    """Server-side session

    Holds only the identity id so a leaked record exposes nothing else.
    """
    identity_id: str
    created_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        return utc_now() >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "identity_id": self.identity_id,
            "created_at": to_json_compatible(self.created_at),
            "expires_at": to_json_compatible(self.expires_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionRecord':
        return cls(
            identity_id=data["identity_id"],
            created_at=parse_utc_timestamp(data["created_at"]),
            expires_at=parse_utc_timestamp(data["expires_at"]),
        )


@dataclass
class LocalCredentials:
    """Username/password pair presented to the local strategy."""
    username: str
    password: str

    def __repr__(self) -> str:
        return f"LocalCredentials(username={self.username!r}, password='***')"


@dataclass
class ProviderAssertion:
    """Externally verified identity assertion.

    Produced by the OAuth handshake collaborator after it has exchanged the
    authorization code; external_id is the provider's stable subject id.
    """
    provider: str
    external_id: str
    profile: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> Optional[str]:
        return profile_display_name(self.profile)
