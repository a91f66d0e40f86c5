"""Configuration management for the D&D 5E character roster.

Centralized settings built on pydantic-settings, read from environment
variables and an optional ``.env`` file.

Example:
    >>> from dnd_roster.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.api.base_url
    'http://localhost:3000'

Environment Variables:
    DND_ROSTER_API_BASE_URL: Backend base URL
    DND_ROSTER_API_TIMEOUT_SECONDS: Request timeout
    DND_ROSTER_RULES_DATA_DIR: Directory holding the rule JSON tables
    DND_ROSTER_RULES_ENFORCE_MULTICLASS_PREREQUISITES: Gate multiclassing on ability scores
    DND_ROSTER_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dnd_roster.core.exceptions import ConfigurationError


BUNDLED_DATA_DIR = Path(__file__).resolve().parent.parent / "rules" / "data"


class ApiSettings(BaseSettings):
    """Configuration for the backend REST API.

    Attributes:
        base_url: Scheme and host of the backend, without the ``/api`` prefix.
        timeout_seconds: Per-request timeout.
        max_avatar_bytes: Largest avatar image accepted for upload.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_ROSTER_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(
        default="http://localhost:3000",
        description="Backend base URL",
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=300,
        description="API request timeout",
    )
    max_avatar_bytes: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Maximum avatar upload size",
    )

    @field_validator("base_url", mode="after")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an http(s) URL and drop any trailing slash.

        Raises:
            ConfigurationError: If the URL has no http or https scheme.
        """
        if not value.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"API base URL must start with http:// or https://, got {value!r}",
                config_key="base_url",
            )
        return value.rstrip("/")


class RulesSettings(BaseSettings):
    """Configuration for rule data and rule enforcement.

    Attributes:
        data_dir: Directory containing races.json, classes.json, etc.
        enforce_multiclass_prerequisites: When False, multiclass options
            are offered regardless of ability scores and the requirement
            check is informational only.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_ROSTER_RULES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(
        default=BUNDLED_DATA_DIR,
        description="Rule table directory",
    )
    enforce_multiclass_prerequisites: bool = Field(
        default=True,
        description="Block multiclassing when ability prerequisites fail",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def ensure_data_dir_exists(cls, value: Path) -> Path:
        """Ensure the rule data directory exists.

        Raises:
            ConfigurationError: If the directory is missing.
        """
        if not value.is_dir():
            raise ConfigurationError(
                f"Rule data directory not found: {value}",
                config_key="data_dir",
            )
        return value


class UISettings(BaseSettings):
    """Configuration for the Streamlit UI."""

    model_config = SettingsConfigDict(
        env_prefix="DND_ROSTER_UI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    theme: Literal["light", "dark", "auto"] = Field(
        default="dark",
        description="UI theme",
    )
    page_title: str = Field(
        default="D&D Character Roster",
        description="Browser page title",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Emit JSON log lines instead of console output.
        api: Backend API settings.
        rules: Rule data settings.
        ui: UI settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DND_ROSTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="D&D Character Roster",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON",
    )

    api: ApiSettings = Field(default_factory=ApiSettings)
    rules: RulesSettings = Field(default_factory=RulesSettings)
    ui: UISettings = Field(default_factory=UISettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "BUNDLED_DATA_DIR",
    "ApiSettings",
    "RulesSettings",
    "UISettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
