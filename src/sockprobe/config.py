"""Configuration management for sockprobe."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .logging_utils import configure_logging


class Settings(BaseSettings):
    """Probe settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOCKPROBE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Endpoint Configuration
    web_socket_uri: Optional[str] = Field(None, description="URI of the server endpoint under test")
    open_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for the opening handshake")

    # Expectation Configuration
    expect_timeout_seconds: float = Field(default=3.0, gt=0, description="Default deadline for expect_message")
    no_message_window_seconds: float = Field(default=0.5, ge=0, description="Default window for expect_no_message")

    # Runtime Configuration
    mailbox_size: int = Field(default=1000, gt=0, description="Capacity of every unit mailbox")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: Literal["default", "console"] = Field(default="default", description="Log output profile")


def get_settings(**overrides: object) -> Settings:
    """Get probe settings.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        Settings instance
    """
    settings = Settings(**overrides)

    configure_logging(profile=settings.log_profile, level=settings.log_level)

    return settings
