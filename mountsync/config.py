"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """rclone-mount-sync settings."""

    model_config = SettingsConfigDict(
        env_prefix="RCLONE_MOUNT_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    debug: bool = False

    # Config store
    config_file: Path | None = None

    # Overrides for resolved unit paths
    unit_dir: Path | None = None
    rclone_binary: str | None = None
    rclone_config: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("RCLONE_MOUNT_SYNC_RCLONE_CONFIG", "RCLONE_CONFIG"),
    )

    # XDG base directories
    xdg_config_home: Path | None = Field(default=None, validation_alias="XDG_CONFIG_HOME")
    xdg_state_home: Path | None = Field(default=None, validation_alias="XDG_STATE_HOME")

    # Service manager
    systemctl_path: str | None = None
    systemctl_timeout: float = Field(default=30.0, gt=0)

    @field_validator(
        "config_file",
        "unit_dir",
        "rclone_binary",
        "rclone_config",
        "xdg_config_home",
        "xdg_state_home",
        "systemctl_path",
        mode="before",
    )
    @classmethod
    def empty_string_is_unset(cls, v: object) -> object:
        """Treat ``FOO=`` in the environment the same as an unset variable."""
        _ = cls
        if isinstance(v, str) and not v.strip():
            return None
        return v
