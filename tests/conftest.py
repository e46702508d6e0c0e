"""Shared test fixtures for rclone-mount-sync."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from mountsync.exceptions import ServiceManagerError
from mountsync.schemas.mount import MountOptions, MountSpec
from mountsync.schemas.status import ServiceStatus, UnitListing
from mountsync.schemas.sync import Schedule, SyncJobSpec, SyncOptions
from mountsync.services.generator_service import UnitGenerator
from mountsync.services.paths_service import UnitPaths
from mountsync.services.reconcile_service import Reconciler

if TYPE_CHECKING:
    from pathlib import Path

RCLONE_PATH = "/usr/bin/rclone"
RCLONE_CONFIG_PATH = "/home/user/.config/rclone/rclone.conf"
FIXED_TIME = datetime(2026, 1, 1, tzinfo=UTC)

# Environment variables read by Settings
SETTINGS_ENV_VARS = (
    "RCLONE_MOUNT_SYNC_DEBUG",
    "RCLONE_MOUNT_SYNC_CONFIG_FILE",
    "RCLONE_MOUNT_SYNC_UNIT_DIR",
    "RCLONE_MOUNT_SYNC_RCLONE_BINARY",
    "RCLONE_MOUNT_SYNC_RCLONE_CONFIG",
    "RCLONE_MOUNT_SYNC_SYSTEMCTL_PATH",
    "RCLONE_MOUNT_SYNC_SYSTEMCTL_TIMEOUT",
    "RCLONE_CONFIG",
    "XDG_CONFIG_HOME",
    "XDG_STATE_HOME",
)


class FakeServiceManager:
    """In-memory stand-in for SystemctlService that records every call."""

    def __init__(self) -> None:
        self.active: set[str] = set()
        self.enabled: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self.failed: set[str] = set()
        self.statuses: dict[str, ServiceStatus] = {}
        self.available = True

    def _record(self, op: str, name: str = "") -> None:
        self.calls.append((op, name))
        if op in self.fail_on:
            raise ServiceManagerError(["systemctl", "--user", op, name], 1, f"{op} failed")

    def is_active(self, name: str) -> bool:
        return name in self.active

    def is_enabled(self, name: str) -> bool:
        return name in self.enabled

    def stop(self, name: str) -> None:
        self._record("stop", name)
        self.active.discard(name)

    def disable(self, name: str) -> None:
        self._record("disable", name)
        self.enabled.discard(name)

    def enable(self, name: str) -> None:
        self._record("enable", name)
        self.enabled.add(name)

    def start(self, name: str) -> None:
        self._record("start", name)
        self.active.add(name)

    def restart(self, name: str) -> None:
        self._record("restart", name)
        self.active.add(name)

    def reset_failed(self, name: str) -> None:
        self._record("reset-failed", name)
        self.failed.discard(name)

    def is_available(self) -> bool:
        return self.available

    def list_failed_units(self) -> list[str]:
        return sorted(self.failed)

    def get_detailed_status(self, name: str) -> ServiceStatus:
        return self.statuses.get(name, ServiceStatus(name=name))

    def list_units(self) -> list[UnitListing]:
        names = sorted(self.active | self.enabled)
        return [UnitListing(name=n, enabled=n in self.enabled) for n in names]

    def daemon_reload(self) -> None:
        self._record("daemon-reload")


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def unit_paths(tmp_path: Path) -> UnitPaths:
    """Resolved paths pointing into a temporary directory."""
    return UnitPaths(
        unit_dir=tmp_path / "systemd" / "user",
        rclone_path=RCLONE_PATH,
        config_path=RCLONE_CONFIG_PATH,
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def generator(unit_paths: UnitPaths) -> UnitGenerator:
    return UnitGenerator(unit_paths)


@pytest.fixture
def fake_manager() -> FakeServiceManager:
    return FakeServiceManager()


@pytest.fixture
def reconciler(generator: UnitGenerator, fake_manager: FakeServiceManager) -> Reconciler:
    return Reconciler(generator, fake_manager)


@pytest.fixture
def mount_spec() -> MountSpec:
    return MountSpec(
        id="a1b2c3d4",
        name="Google Drive",
        remote="gdrive:",
        remote_path="/Photos",
        mount_point="/mnt/gdrive",
        mount_options=MountOptions(vfs_cache_mode="full", allow_other=True, uid=1000),
        created_at=FIXED_TIME,
        modified_at=FIXED_TIME,
    )


@pytest.fixture
def sync_job() -> SyncJobSpec:
    return SyncJobSpec(
        id="e5f6g7h8",
        name="Photo Backup",
        source="gdrive:/Photos",
        destination="/home/user/Backup/Photos",
        sync_options=SyncOptions(direction="copy", transfers=4, checksum=True),
        schedule=Schedule(type="timer", on_calendar="*-*-* 02:00:00", persistent=True),
        created_at=FIXED_TIME,
        modified_at=FIXED_TIME,
    )
