"""slidebind configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Native library
    OPENSLIDE_LIBRARY_PATH: str | None = None  # None = search system paths

    # Pixel decoding
    WORD_ORDER: Literal["native", "big", "little"] = "native"
    VERIFY_WORD_ORDER: bool = False  # Run the calibration check on open

    # Guardrails
    MAX_READ_PIXELS: int = Field(default=100_000_000, gt=0)  # 10000 x 10000 RGBA = 400MB
    SLIDE_CACHE_SIZE: int = Field(default=8, gt=0)


# Singleton instance for import convenience
settings = Settings()
