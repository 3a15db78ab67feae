"""Configuration Settings for Identity Service

Manages environment variables and application configuration.

Provider and cipher keys are read from the environment using their
conventional names (CIPHER_SECRET, GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET,
GOOGLE_CALLBACK_URL, FACEBOOK_APP_ID, FACEBOOK_APP_SECRET,
FACEBOOK_CALLBACK_URL); matching is case-insensitive.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Service info
    service_name: str = "identity-service"
    service_version: str = "1.0.0"
    environment: str = "development"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Redis configuration
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components"""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Credential store
    store_backend: Literal["redis", "memory"] = "redis"
    store_timeout_seconds: float = 5.0
    store_conflict_retries: int = 3

    # Sessions
    session_ttl_seconds: int = 24 * 60 * 60  # 24 hours
    session_cookie_name: str = "session_id"
    session_cookie_secure: bool = False

    # Credential protection: "hash" (bcrypt) or "cipher" (legacy Fernet)
    credential_protection: Literal["hash", "cipher"] = "hash"
    bcrypt_rounds: int = 12
    cipher_secret: Optional[str] = None

    # Google strategy
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_callback_url: Optional[str] = None

    # Facebook strategy
    facebook_app_id: Optional[str] = None
    facebook_app_secret: Optional[str] = None
    facebook_callback_url: Optional[str] = None

    # CORS configuration
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance

    Returns:
        Settings instance
    """
    return Settings()
