"""Reconcile service: orphan detection, removal and import.

An orphan is a ``rclone-{mount,sync}-*.service`` file in the unit directory
whose id is not known to the current configuration. Orphans may carry an
identity-scheme id (deleted from config but not from disk) or a legacy
name-derived id (written by an older release). A typed name with no id at all
(``rclone-mount-.service``) cannot be tracked or imported and is reported in
``ReconciliationResult.errors`` instead.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from mountsync.exceptions import (
    MountSyncError,
    ServiceManagerError,
    UnitFileError,
    UnitImportError,
)
from mountsync.filesystem.unit_file import (
    extract_description_name,
    extract_exec_start,
    has_ac_power_condition,
    has_unmetered_condition,
    parse_mount_command,
    parse_sync_command,
    parse_timer_schedule,
    recover_mount_options,
    recover_sync_options,
    split_remote,
)
from mountsync.schemas.mount import MountOptions, MountSpec
from mountsync.schemas.sync import Schedule, SyncJobSpec, SyncOptions
from mountsync.services.identity_service import (
    SERVICE_SUFFIX,
    TIMER_SUFFIX,
    UNIT_PREFIX,
    UnitIdentity,
    UnitType,
    generate_id,
    parse_unit_name,
)

if TYPE_CHECKING:
    from collections.abc import Container, Iterable

    from mountsync.services.generator_service import UnitGenerator

logger = logging.getLogger(__name__)

_TYPED_PREFIXES = tuple(f"{UNIT_PREFIX}{unit_type}-" for unit_type in UnitType)


class ServiceManager(Protocol):
    """The subset of service-manager operations reconciliation needs."""

    def is_active(self, name: str) -> bool: ...

    def is_enabled(self, name: str) -> bool: ...

    def stop(self, name: str) -> None: ...

    def disable(self, name: str) -> None: ...

    def daemon_reload(self) -> None: ...


@dataclass
class OrphanedUnit:
    """A unit file on disk with no matching id in the configuration."""

    name: str  # e.g. "rclone-mount-mydrive.service"
    unit_type: UnitType
    id: str
    is_legacy: bool
    path: Path

    @property
    def timer_path(self) -> Path:
        return self.path.with_name(self.name.removesuffix(SERVICE_SUFFIX) + TIMER_SUFFIX)


@dataclass
class ImportedConfig:
    """Configuration recovered from an orphan. Exactly one of mount/sync_job is set."""

    unit: OrphanedUnit
    mount: MountSpec | None = None
    sync_job: SyncJobSpec | None = None


@dataclass
class ReconciliationResult:
    """Orphans found by a scan, plus entries that could not be inspected."""

    orphans: list[OrphanedUnit] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class ImportReport:
    """Outcome of importing a batch of orphans."""

    imported: list[ImportedConfig] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class Reconciler:
    """Compares the unit directory with configured ids and resolves drift."""

    def __init__(self, generator: UnitGenerator, manager: ServiceManager) -> None:
        self.generator = generator
        self.manager = manager

    def scan_for_orphans(
        self,
        valid_mount_ids: Container[str],
        valid_sync_ids: Container[str],
    ) -> ReconciliationResult:
        """List orphaned service units in the unit directory.

        Timer files are skipped; they are handled together with their service.
        A unit directory that does not exist yields an empty result.
        """
        result = ReconciliationResult()
        unit_dir = self.generator.unit_dir
        try:
            with os.scandir(unit_dir) as it:
                entries = sorted(it, key=lambda e: e.name)
        except FileNotFoundError:
            return result
        except OSError as exc:
            raise UnitFileError("Failed to read unit directory", unit_dir) from exc

        for entry in entries:
            name = entry.name
            if not name.startswith(UNIT_PREFIX) or not name.endswith(SERVICE_SUFFIX):
                continue
            try:
                if not entry.is_file():
                    continue
            except OSError as exc:
                result.errors.append(f"{entry.path}: {exc}")
                continue

            identity = parse_unit_name(name)
            if not isinstance(identity, UnitIdentity):
                if name.startswith(_TYPED_PREFIXES):
                    # rclone-mount-.service and the like: ours, but without an id
                    result.errors.append(f"{entry.path}: unit name has no id")
                else:
                    logger.debug("Skipping unrecognized unit %s", name)
                continue

            valid_ids = (
                valid_mount_ids if identity.unit_type is UnitType.MOUNT else valid_sync_ids
            )
            if identity.id in valid_ids:
                continue

            result.orphans.append(
                OrphanedUnit(
                    name=name,
                    unit_type=identity.unit_type,
                    id=identity.id,
                    is_legacy=identity.is_legacy,
                    path=Path(entry.path),
                )
            )

        logger.info("Found %d orphaned unit(s) in %s", len(result.orphans), unit_dir)
        return result

    def stop_and_disable(self, unit: str) -> None:
        """Stop and disable a unit, tolerating units that are already down."""
        try:
            if self.manager.is_active(unit):
                self.manager.stop(unit)
        except ServiceManagerError as exc:
            logger.warning("Failed to stop %s: %s", unit, exc)
        try:
            if self.manager.is_enabled(unit):
                self.manager.disable(unit)
        except ServiceManagerError as exc:
            logger.warning("Failed to disable %s: %s", unit, exc)

    def remove_orphan(self, orphan: OrphanedUnit) -> None:
        """Stop, disable and delete an orphan (and its timer), then reload.

        Raises UnitFileError if a unit file cannot be deleted and
        ServiceManagerError if the reload fails.
        """
        if orphan.unit_type is UnitType.SYNC and orphan.timer_path.exists():
            self.stop_and_disable(orphan.timer_path.name)
            self.generator.remove_unit(orphan.timer_path.name)

        self.stop_and_disable(orphan.name)
        self.generator.remove_unit(orphan.name)

        self.manager.daemon_reload()
        logger.info("Removed orphaned unit %s", orphan.name)

    def import_orphan(self, orphan: OrphanedUnit) -> ImportedConfig:
        """Recover a best-effort spec from an orphan's unit file(s).

        The recovered spec always gets a freshly minted id. Fields that cannot
        be parsed are left empty for a human to fill in.
        """
        try:
            content = orphan.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise UnitImportError("Failed to read unit file", orphan.path) from exc

        result = ImportedConfig(unit=orphan)
        if orphan.unit_type is UnitType.MOUNT:
            result.mount = self._parse_mount_unit(content)
        else:
            result.sync_job = self._parse_sync_unit(content, orphan)
        logger.info("Imported %s unit %s", orphan.unit_type, orphan.name)
        return result

    def import_orphans(self, orphans: Iterable[OrphanedUnit]) -> ImportReport:
        """Import each orphan, collecting failures instead of stopping at the first."""
        report = ImportReport()
        for orphan in orphans:
            try:
                report.imported.append(self.import_orphan(orphan))
            except MountSyncError as exc:
                logger.warning("Failed to import %s: %s", orphan.name, exc)
                report.errors.append(str(exc))
        return report

    def _parse_mount_unit(self, content: str) -> MountSpec:
        mount = MountSpec(
            id=generate_id(),
            name=extract_description_name(content) or f"imported-{UnitType.MOUNT}",
        )

        exec_start = extract_exec_start(content)
        command = parse_mount_command(exec_start) if exec_start else None
        if command is not None:
            mount.remote, mount.remote_path = split_remote(command.source)
            mount.mount_point = command.mount_point
            mount.mount_options = MountOptions(
                **recover_mount_options(command.flags, self.generator.paths.config_path)
            )
        return mount

    def _parse_sync_unit(self, content: str, orphan: OrphanedUnit) -> SyncJobSpec:
        job = SyncJobSpec(
            id=generate_id(),
            name=extract_description_name(content) or f"imported-{UnitType.SYNC}",
            schedule=Schedule(type="manual"),
        )

        exec_start = extract_exec_start(content)
        command = parse_sync_command(exec_start) if exec_start else None
        if command is not None:
            job.source = command.source
            job.destination = command.destination
            job.sync_options = SyncOptions(
                direction=command.direction,
                **recover_sync_options(command.flags, self.generator.paths.config_path),
            )

        try:
            timer_content = orphan.timer_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Ignoring unreadable timer %s: %s", orphan.timer_path, exc)
        else:
            job.schedule = parse_timer_schedule(timer_content)

        job.schedule.require_ac_power = has_ac_power_condition(content)
        job.schedule.require_unmetered = has_unmetered_condition(content)
        return job
