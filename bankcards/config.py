"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The .env file is gitignored; .env.example provides a safe template.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from bankcards.config import settings
    print(settings.CARD_ENCRYPTION_KEY)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Bank Cards API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
      - CARD_ENCRYPTION_KEY: AES key for encrypting card numbers at rest
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Bank Cards API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./bankcards.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Card encryption ---
    # Raw AES key as text: 16, 24 or 32 characters (AES-128/192/256).
    CARD_ENCRYPTION_KEY: str

    # --- Card engine ---
    CARD_NUMBER_MAX_ATTEMPTS: int = 1000
    TRANSFER_MAX_ATTEMPTS: int = 5
    # Seconds between expiry sweeps; 0 disables the background task
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 3600

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s   %(name)-32s %(levelname)-8s %(message)s"
    # Optional path to a YAML logging dictConfig; overrides LOG_LEVEL/LOG_FORMAT
    LOG_CONFIG: str | None = None

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @field_validator("CARD_ENCRYPTION_KEY")
    @classmethod
    def card_key_must_be_aes_sized(cls, value: str) -> str:
        if len(value.encode("utf-8")) not in (16, 24, 32):
            raise ValueError("CARD_ENCRYPTION_KEY must be 16, 24 or 32 bytes long")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def log_level_must_be_known(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {value}")
        return value


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
