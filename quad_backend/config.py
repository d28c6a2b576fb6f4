"""
Runtime configuration.
Reads every setting from the environment (and .env) once at startup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load .env only once here
load_dotenv()

LEGACY_PASSWORD_SALT = "the-quad-salt"
PASSWORD_HASHERS = ("legacy", "argon2")


@dataclass(frozen=True)
class Settings:
    """
    Application settings.

    Attributes:
        database_url (str): PostgreSQL DSN.
        jwt_secret (str, optional): When set, tokens are HS256-signed.
            When unset, tokens carry the fixed placeholder signature.
        token_expiration_minutes (int): Token lifetime.
        password_salt (str): Salt for legacy SHA-256 password hashes.
        password_hasher (str): "legacy" or "argon2" for newly stored hashes.
        storage_bucket (str, optional): Blob store bucket. No bucket means
            no storage binding.
    """

    database_url: str
    jwt_secret: Optional[str] = None
    token_expiration_minutes: int = 1440
    password_salt: str = LEGACY_PASSWORD_SALT
    password_hasher: str = "legacy"
    storage_bucket: Optional[str] = None
    storage_endpoint_url: Optional[str] = None
    storage_region: Optional[str] = None
    storage_access_key_id: Optional[str] = None
    storage_secret_access_key: Optional[str] = None
    log_level: str = "INFO"
    gateway_port: int = 5050

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")

        password_hasher = os.getenv("PASSWORD_HASHER", "legacy").lower()
        if password_hasher not in PASSWORD_HASHERS:
            raise RuntimeError(f"PASSWORD_HASHER must be one of: {', '.join(PASSWORD_HASHERS)}")

        return cls(
            database_url=database_url,
            jwt_secret=os.getenv("JWT_SECRET") or None,
            token_expiration_minutes=int(os.getenv("TOKEN_EXPIRATION_MINUTES", 1440)),  # Default 24 hours
            password_salt=os.getenv("PASSWORD_SALT", LEGACY_PASSWORD_SALT),
            password_hasher=password_hasher,
            storage_bucket=os.getenv("STORAGE_BUCKET") or None,
            storage_endpoint_url=os.getenv("STORAGE_ENDPOINT_URL") or None,
            storage_region=os.getenv("STORAGE_REGION") or None,
            storage_access_key_id=os.getenv("STORAGE_ACCESS_KEY_ID") or None,
            storage_secret_access_key=os.getenv("STORAGE_SECRET_ACCESS_KEY") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            gateway_port=int(os.getenv("GATEWAY_PORT", 5050)),
        )
