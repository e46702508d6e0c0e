"""Resolution of the filesystem paths unit generation depends on."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mountsync.config import Settings

logger = logging.getLogger(__name__)

APP_NAME = "rclone-mount-sync"

DEFAULT_RCLONE_PATH = "/usr/bin/rclone"
FALLBACK_LOG_DIR = Path("/tmp")


@dataclass(frozen=True)
class UnitPaths:
    """Paths resolved once and shared by everything that renders units."""

    unit_dir: Path
    rclone_path: str
    config_path: str
    log_dir: Path


def expand_path(path: str) -> str:
    """Expand a leading ``~`` to the user's home directory."""
    if path == "~" or path.startswith("~/"):
        try:
            return str(Path.home() / path[2:])
        except RuntimeError:
            return path
    return path


def _home() -> Path | None:
    try:
        return Path.home()
    except RuntimeError:
        return None


def resolve_unit_dir(settings: Settings) -> Path:
    """Return the per-user systemd unit directory."""
    if settings.unit_dir is not None:
        return settings.unit_dir
    if settings.xdg_config_home is not None:
        return settings.xdg_config_home / "systemd" / "user"
    home = _home()
    if home is None:
        # HOME unset and no passwd entry
        return Path(".config") / "systemd" / "user"
    return home / ".config" / "systemd" / "user"


def resolve_rclone_path(settings: Settings) -> str:
    """Explicit override, then ``rclone`` on PATH, then the distro default."""
    if settings.rclone_binary:
        return settings.rclone_binary
    found = shutil.which("rclone")
    if found:
        return found
    logger.warning("rclone not found on PATH, using %s", DEFAULT_RCLONE_PATH)
    return DEFAULT_RCLONE_PATH


def resolve_rclone_config_path(settings: Settings) -> str:
    """Explicit override (``RCLONE_CONFIG``), then rclone's default location."""
    if settings.rclone_config is not None:
        return str(settings.rclone_config)
    home = _home()
    if home is None:
        home = Path("/home") / os.environ.get("USER", "")
    return str(home / ".config" / "rclone" / "rclone.conf")


def resolve_log_dir(settings: Settings) -> Path:
    """Return (and create) the log directory, falling back to /tmp."""
    if settings.xdg_state_home is not None:
        log_dir = settings.xdg_state_home / APP_NAME
    else:
        home = _home()
        if home is None:
            logger.warning("Cannot determine home directory, logging to %s", FALLBACK_LOG_DIR)
            return FALLBACK_LOG_DIR
        log_dir = home / ".local" / "state" / APP_NAME

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning(
            "Failed to create log directory %s: %s. Logging to %s",
            log_dir,
            exc,
            FALLBACK_LOG_DIR,
        )
        return FALLBACK_LOG_DIR
    return log_dir


def resolve_unit_paths(settings: Settings) -> UnitPaths:
    """Resolve every auxiliary path once. Never raises."""
    return UnitPaths(
        unit_dir=resolve_unit_dir(settings),
        rclone_path=resolve_rclone_path(settings),
        config_path=resolve_rclone_config_path(settings),
        log_dir=resolve_log_dir(settings),
    )
