"""
Onchange Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Command-line flags are layered on top with Settings.with_overrides().
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


class WatcherSettings(BaseSettings):
    """File watcher configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    pattern: str = Field(
        default=".",
        description="Regular expression matched against full changed-file paths",
    )
    test_file_pattern: str = Field(
        default=r"_test\.go",
        description="Paths matching this are test files and reset error dedup",
    )
    watch_standard: bool = Field(
        default=False,
        description="Follow imports into standard library packages",
    )


class BuildSettings(BaseSettings):
    """Go toolchain configuration settings."""

    model_config = SettingsConfigDict(env_prefix="BUILD_")

    go_binary: str = Field(default="go", description="The go command to invoke")
    install: bool = Field(default=True, description="Install packages on change")
    install_all: bool = Field(
        default=True,
        description="Install the synthetic 'all' target instead of the changed package",
    )
    run_tests: bool = Field(default=True, description="Run tests after restart")


class SupervisorSettings(BaseSettings):
    """Supervised process configuration settings."""

    model_config = SettingsConfigDict(env_prefix="SUPERVISOR_")

    clear_screen: bool = Field(default=True, description="Clear terminal on restart")
    restart_command: str | None = Field(
        default=None,
        description="Named executable on PATH to run instead of the built binary",
    )

    @field_validator("restart_command", mode="before")
    @classmethod
    def parse_restart_command(cls, v: str | None) -> str | None:
        """Treat an empty value as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"
    verbose: bool = Field(default=False)


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="onchange")
    app_version: str = Field(default="0.1.0")

    # Sub-settings
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    supervisor: SupervisorSettings = Field(default_factory=SupervisorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def with_overrides(self, **groups: dict[str, Any]) -> "Settings":
        """
        Return a copy with selected values replaced.

        Values of None are ignored so unset command-line flags fall
        back to the environment.

        Args:
            **groups: Sub-settings name mapped to field overrides,
                e.g. ``build={"install": False}``

        Returns:
            New Settings instance; self is left untouched
        """
        updates: dict[str, Any] = {}
        for group, values in groups.items():
            current = getattr(self, group)
            changed = {key: value for key, value in values.items() if value is not None}
            updates[group] = current.model_copy(update=changed)
        return self.model_copy(update=updates)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()
