"""Configuration settings for platform_build.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

RESOURCES_DIR = Path(__file__).parent / "resources"


def _default_settings_template() -> Path:
    """Return the bundled Drupal settings.php template."""
    return RESOURCES_DIR / "drupal" / "settings.php"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the PLATFORM_BUILD_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="PLATFORM_BUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # External tool
    drush_command: str = Field(
        default="drush",
        min_length=1,
        description="Drush executable used for drush make",
    )

    # Paths
    settings_template: Path = Field(
        default_factory=_default_settings_template,
        description="Template copied to sites/default/settings.php when missing",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    keep_builds: int = Field(
        default=5,
        ge=1,
        description="Number of builds kept by clean",
    )

    # Timeouts (in seconds)
    build_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Timeout for each drush make invocation (None = no timeout)",
    )
    lock_timeout: float | None = Field(
        default=300,
        ge=0,
        description="Timeout waiting for the project build lock (None = blocking)",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["RESOURCES_DIR", "Settings", "get_settings", "print_settings_json"]
