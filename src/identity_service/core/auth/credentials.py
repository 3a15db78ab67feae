"""Credential protection

Two interchangeable ways of protecting a local password at rest. A process
uses exactly one of them, selected by CREDENTIAL_PROTECTION:

- hash:   bcrypt with a per-record salt over the SHA-256 digest of the
          password, so passwords longer than bcrypt's 72-byte input limit
          are neither rejected nor truncated. Verification uses bcrypt's
          constant-time check and the password can never be recovered.
- cipher: legacy reversible variant. The password is encrypted with Fernet
          under a key derived from CIPHER_SECRET and decrypted at login for a
          plain string comparison. The comparison is not constant-time and
          the plaintext sits in memory while comparing; keep it only for
          stores that were written this way.

Identities created by a delegated provider carry no secret at all.
"""

import base64
import hashlib
import logging
from abc import ABC, abstractmethod

import bcrypt
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from identity_service.config.settings import Settings

logger = logging.getLogger(__name__)

# Fixed so every process derives the same key from the same CIPHER_SECRET
_KDF_SALT = b"identity-service-cipher-v1"
_KDF_ITERATIONS = 100000


class SecretCodec:
    """Reversible field-level protection keyed by a process-wide secret."""

    def __init__(self, secret: str):
        """
        Args:
            secret: Process-wide cipher secret (CIPHER_SECRET)
        """
        if not secret:
            raise ValueError("SecretCodec requires a non-empty secret")
        self.cipher = self._get_cipher(secret)

    @staticmethod
    def _get_cipher(secret: str) -> Fernet:
        """Derive a Fernet key from the secret string with PBKDF2"""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=_KDF_SALT,
            iterations=_KDF_ITERATIONS,
        )
        derived_key = base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))
        return Fernet(derived_key)

    def encrypt(self, plaintext: str) -> str:
        return self.cipher.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """
        Raises:
            ValueError: If the ciphertext was not produced with this secret
        """
        try:
            return self.cipher.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise ValueError("Ciphertext is invalid or was encrypted with another secret") from e


class CredentialProtector(ABC):
    """Turns a password into a stored verifier and checks passwords against it."""

    name: str

    @abstractmethod
    def protect(self, password: str) -> str:
        """Return the value to persist as credential_secret."""

    @abstractmethod
    def verify(self, password: str, stored: str) -> bool:
        """True if password matches the stored verifier."""


class BcryptProtector(CredentialProtector):
    """One-way bcrypt hashing (recommended)."""

    name = "hash"

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def protect(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(self._prehash(password), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, stored: str) -> bool:
        try:
            return bcrypt.checkpw(self._prehash(password), stored.encode("utf-8"))
        except ValueError:
            logger.error("Stored credential is not a valid bcrypt hash")
            return False

    @staticmethod
    def _prehash(password: str) -> bytes:
        """Fixed 44-byte bcrypt input (base64 SHA-256, no NUL bytes)"""
        return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


class CipherProtector(CredentialProtector):
    """Reversible encryption with plaintext comparison (legacy, timing-unsafe)."""

    name = "cipher"

    def __init__(self, codec: SecretCodec):
        self.codec = codec

    def protect(self, password: str) -> str:
        return self.codec.encrypt(password)

    def verify(self, password: str, stored: str) -> bool:
        try:
            return self.codec.decrypt(stored) == password
        except ValueError as e:
            logger.error(f"Stored credential could not be decrypted: {e}")
            return False


def build_protector(settings: Settings) -> CredentialProtector:
    """Select the credential protection variant from settings

    Raises:
        ValueError: If the cipher variant is selected without CIPHER_SECRET
    """
    if settings.credential_protection == "cipher":
        if not settings.cipher_secret:
            raise ValueError("CREDENTIAL_PROTECTION=cipher requires CIPHER_SECRET")
        logger.warning(
            "Using reversible cipher credential protection. "
            "Passwords are decrypted for comparison; prefer CREDENTIAL_PROTECTION=hash."
        )
        return CipherProtector(SecretCodec(settings.cipher_secret))

    return BcryptProtector(rounds=settings.bcrypt_rounds)
