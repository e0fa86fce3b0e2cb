"""Configuration and environment settings for the mailbox state tools."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ImapSettings(BaseSettings):
    """IMAP connection settings used by the ``inspect`` command."""

    model_config = SettingsConfigDict(extra="forbid")

    host: Annotated[str, Field(min_length=1)]
    port: Annotated[int, Field(ge=1, le=65535)] = 993
    username: Annotated[str, Field(min_length=1)]
    app_password: Annotated[str, Field(min_length=1, repr=False)]
    ssl: bool = True
    timeout_seconds: Annotated[float, Field(gt=0)] = 120.0

    @field_validator("host")
    @classmethod
    def _host_not_blank(cls, value: str) -> str:
        """Normalize and validate the host name.

        Args:
            value: Raw host value.

        Returns:
            Stripped host.

        Raises:
            ValueError: If the host is blank.
        """
        stripped = value.strip()
        if not stripped:
            raise ValueError("host must not be blank")
        return stripped


class ParserSettings(BaseSettings):
    """Response parser behaviour."""

    model_config = SettingsConfigDict(extra="forbid")

    strict_numbers: bool = False


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(extra="forbid")

    level: Annotated[str, Field(min_length=1)] = "INFO"
    json_logs: bool = True


class AppSettings(BaseSettings):
    """Top-level application settings."""

    model_config = SettingsConfigDict(
        env_prefix="MBX_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid",
    )

    imap: ImapSettings | None = None
    parser: ParserSettings = Field(default_factory=ParserSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(*, env_file: Path | None) -> AppSettings:
    """Load validated settings from environment and optional file.

    Args:
        env_file: Optional .env file path.

    Returns:
        Validated AppSettings instance.
    """
    if env_file is None:
        return AppSettings()
    return AppSettings(_env_file=env_file)  # type: ignore[call-arg]
