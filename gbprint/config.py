"""Configuration for the GBPrint agent using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_ENDPOINT = "http://localhost:4000/v1/label-printer/count"


class Settings(BaseSettings):
    """Agent settings loaded from environment variables.

    Polling:
        api_endpoint: URL returning the pending label count as JSON.
        poll_interval: Milliseconds between polls while healthy.
        max_retries: Consecutive poll failures before a warning is logged.
            Does not change the backoff.
        retry_delay: Base delay in milliseconds for exponential backoff.
        request_timeout: Seconds before a poll request is abandoned.

    Printing:
        printer_name: CUPS queue name (None = system default).
        label_media: CUPS media name (None = ask the printer).
        image_dir: Directory for rendered label images.
        keep_images: Keep rendered images after printing.

    Process:
        shutdown_timeout: Seconds to wait for a running batch on shutdown.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        environment: Deployment environment name.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Polling
    api_endpoint: str = DEFAULT_API_ENDPOINT
    poll_interval: int = Field(default=15000, gt=0)
    max_retries: int = Field(default=5, ge=1)
    retry_delay: int = Field(default=5000, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)

    # Printing
    printer_name: str | None = None
    label_media: str | None = None
    image_dir: Path = Path("images")
    keep_images: bool = False

    # Process
    shutdown_timeout: float = Field(default=60.0, ge=0)
    log_level: str = "INFO"
    environment: Literal["development", "production"] = "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Agent settings.
    """
    return Settings()
