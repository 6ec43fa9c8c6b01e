"""
Sketchlab settings.

Values can be overridden with environment variables prefixed ``SKETCHLAB_``
(for example ``SKETCHLAB_DELIVERY_INTERVAL=0.25``) or a ``.env`` file.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_SIZE, DEFAULT_THRESHOLD, SIZE_CATALOG


class Settings(BaseSettings):
    """Application configuration"""

    # Processing defaults
    default_threshold: int = Field(default=DEFAULT_THRESHOLD, ge=0, le=255)
    default_size: int = Field(default=DEFAULT_SIZE, gt=0)
    default_format: str = "png"
    sizes: List[int] = Field(default_factory=lambda: list(SIZE_CATALOG))

    # Delivery
    delivery_interval: float = Field(default=0.1, ge=0.0)  # seconds between downloads
    release_delay: float = Field(default=0.1, ge=0.0)  # seconds before temp files go away
    output_dir: Path = Path("exports")

    # Logging
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(env_prefix="SKETCHLAB_", env_file=".env", extra="ignore")

    @field_validator("sizes")
    @classmethod
    def _positive_sizes(cls, value: List[int]) -> List[int]:
        if not value or any(size <= 0 for size in value):
            raise ValueError("sizes must be a non-empty list of positive widths")
        return value

    @field_validator("default_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value.lower() not in ("png", "svg"):
            raise ValueError("default_format must be 'png' or 'svg'")
        return value.lower()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
