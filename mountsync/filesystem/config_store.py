"""TOML configuration store for mounts and sync jobs."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w
from pydantic import BaseModel, Field, ValidationError

from mountsync.schemas.mount import MountSpec
from mountsync.schemas.sync import SyncJobSpec
from mountsync.services.identity_service import generate_id
from mountsync.services.paths_service import APP_NAME

if TYPE_CHECKING:
    from mountsync.config import Settings
    from mountsync.services.reconcile_service import ImportedConfig

logger = logging.getLogger(__name__)

CONFIG_VERSION = "1.0"
CONFIG_FILENAME = "config.toml"
IMPORTED_NAME_SUFFIX = "-imported"


class AppConfig(BaseModel):
    """Persisted application configuration."""

    version: str = CONFIG_VERSION
    mounts: list[MountSpec] = Field(default_factory=list)
    sync_jobs: list[SyncJobSpec] = Field(default_factory=list)

    def known_mount_ids(self) -> set[str]:
        return {m.id for m in self.mounts}

    def known_sync_ids(self) -> set[str]:
        return {j.id for j in self.sync_jobs}

    def find_mount(self, id_or_name: str) -> MountSpec | None:
        """Find a mount by id, falling back to name."""
        for mount in self.mounts:
            if mount.id == id_or_name:
                return mount
        for mount in self.mounts:
            if mount.name == id_or_name:
                return mount
        return None

    def find_sync_job(self, id_or_name: str) -> SyncJobSpec | None:
        """Find a sync job by id, falling back to name."""
        for job in self.sync_jobs:
            if job.id == id_or_name:
                return job
        for job in self.sync_jobs:
            if job.name == id_or_name:
                return job
        return None

    def add_mount(self, mount: MountSpec) -> None:
        if mount.id in self.known_mount_ids():
            msg = f"Mount id {mount.id!r} already exists"
            raise ValueError(msg)
        self.mounts.append(mount)

    def add_sync_job(self, job: SyncJobSpec) -> None:
        if job.id in self.known_sync_ids():
            msg = f"Sync job id {job.id!r} already exists"
            raise ValueError(msg)
        self.sync_jobs.append(job)

    def remove_mount(self, mount_id: str) -> None:
        """Drop a mount by id. Unknown ids raise ValueError."""
        if mount_id not in self.known_mount_ids():
            msg = f"Mount id {mount_id!r} not found"
            raise ValueError(msg)
        self.mounts = [m for m in self.mounts if m.id != mount_id]

    def remove_sync_job(self, job_id: str) -> None:
        """Drop a sync job by id. Unknown ids raise ValueError."""
        if job_id not in self.known_sync_ids():
            msg = f"Sync job id {job_id!r} not found"
            raise ValueError(msg)
        self.sync_jobs = [j for j in self.sync_jobs if j.id != job_id]

    def merge_imported(self, imported: ImportedConfig) -> MountSpec | SyncJobSpec:
        """Add an imported spec, keeping ids and names unique. Returns the stored spec."""
        if imported.mount is not None:
            mount = imported.mount
            while mount.id in self.known_mount_ids():
                mount.id = generate_id()
            if any(m.name == mount.name for m in self.mounts):
                mount.name += IMPORTED_NAME_SUFFIX
            self.mounts.append(mount)
            return mount

        if imported.sync_job is not None:
            job = imported.sync_job
            while job.id in self.known_sync_ids():
                job.id = generate_id()
            if any(j.name == job.name for j in self.sync_jobs):
                job.name += IMPORTED_NAME_SUFFIX
            self.sync_jobs.append(job)
            return job

        msg = f"Imported unit {imported.unit.name} carries no configuration"
        raise ValueError(msg)


def default_config_path(settings: Settings) -> Path:
    """Return the config file path: explicit override, then the XDG location."""
    if settings.config_file is not None:
        return settings.config_file
    if settings.xdg_config_home is not None:
        return settings.xdg_config_home / APP_NAME / CONFIG_FILENAME
    return Path.home() / ".config" / APP_NAME / CONFIG_FILENAME


def load_config(path: Path) -> AppConfig:
    """Load the config file. A missing file is an empty configuration."""
    if not path.exists():
        return AppConfig()

    try:
        data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Failed to parse config file {path}: {exc}"
        raise ValueError(msg) from exc
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid config file {path}: {exc}"
        raise ValueError(msg) from exc


def save_config(path: Path, config: AppConfig) -> None:
    """Write the config file atomically, keeping the previous version as ``.bak``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        shutil.copy2(path, path.with_name(path.name + ".bak"))

    # TOML has no null; unset optional fields are left out
    content = tomli_w.dumps(config.model_dump(mode="json", exclude_none=True)).encode("utf-8")
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        Path(tmp_name).replace(path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Saved configuration to %s", path)
