"""Generator service: writes and removes unit files in the unit directory."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from mountsync.exceptions import UnitConfigError, UnitFileError
from mountsync.services.identity_service import (
    UnitType,
    service_filename,
    timer_filename,
    unit_name,
)
from mountsync.services.paths_service import expand_path
from mountsync.services.template_service import (
    render_mount_service,
    render_sync_service,
    render_sync_timer,
)

if TYPE_CHECKING:
    from pathlib import Path

    from mountsync.schemas.mount import MountSpec
    from mountsync.schemas.sync import SyncJobSpec
    from mountsync.services.paths_service import UnitPaths

logger = logging.getLogger(__name__)


class UnitGenerator:
    """Renders mount/sync specs into unit files under the identity-scheme names.

    Stateless apart from the paths it was constructed with.
    """

    def __init__(self, paths: UnitPaths) -> None:
        self.paths = paths

    @property
    def unit_dir(self) -> Path:
        return self.paths.unit_dir

    @staticmethod
    def unit_name(unit_id: str, unit_type: UnitType | str) -> str:
        """Return ``rclone-{type}-{id}`` (no suffix)."""
        return unit_name(unit_id, unit_type)

    def render_mount_service(self, spec: MountSpec) -> str:
        return render_mount_service(spec, self.paths)

    def render_sync_service(self, job: SyncJobSpec) -> str:
        return render_sync_service(job, self.paths)

    def render_sync_timer(self, job: SyncJobSpec) -> str:
        return render_sync_timer(job)

    def write_mount_service(self, spec: MountSpec) -> Path:
        """Render and write a mount's service unit. Returns the unit file path."""
        mount_point = expand_path(spec.mount_point)
        if not os.path.isabs(mount_point):
            msg = (
                f"Mount point for '{spec.name}' must be an absolute path, "
                f"got {spec.mount_point!r}"
            )
            raise UnitConfigError(msg)

        content = self.render_mount_service(spec)
        return self.write_unit_file(service_filename(spec.id, UnitType.MOUNT), content)

    def write_sync_units(self, job: SyncJobSpec) -> tuple[Path, Path | None]:
        """Render and write a sync job's service and, unless manual, its timer.

        Returns ``(service_path, timer_path)``; ``timer_path`` is None for
        manual jobs, and any timer left over from an earlier schedule is removed.
        """
        if not job.source or not job.destination:
            msg = f"Sync job '{job.name}' needs both a source and a destination"
            raise UnitConfigError(msg)

        service_path = self.write_unit_file(
            service_filename(job.id, UnitType.SYNC), self.render_sync_service(job)
        )

        timer_name = timer_filename(job.id, UnitType.SYNC)
        if job.schedule.type == "manual":
            self.remove_unit(timer_name)
            return service_path, None

        timer_path = self.write_unit_file(timer_name, self.render_sync_timer(job))
        return service_path, timer_path

    def write_unit_file(self, filename: str, content: str) -> Path:
        """Write a unit file, creating the unit directory if needed."""
        try:
            self.unit_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise UnitFileError("Failed to create unit directory", self.unit_dir) from exc

        path = self.unit_dir / filename
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise UnitFileError("Failed to write unit file", path) from exc
        logger.info("Wrote unit file %s", path)
        return path

    def remove_unit(self, filename: str) -> None:
        """Delete a unit file. A file that is already gone is not an error."""
        path = self.unit_dir / filename
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise UnitFileError("Failed to remove unit file", path) from exc
        logger.info("Removed unit file %s", path)
