"""CLI for generating and reconciling rclone systemd units."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from mountsync.config import Settings
from mountsync.exceptions import MountSyncError
from mountsync.filesystem.config_store import (
    AppConfig,
    default_config_path,
    load_config,
    save_config,
)
from mountsync.services.datetime_service import format_iso
from mountsync.services.generator_service import UnitGenerator
from mountsync.services.identity_service import (
    SERVICE_SUFFIX,
    TIMER_SUFFIX,
    UnitIdentity,
    UnitType,
    parse_unit_name,
    service_filename,
    timer_filename,
)
from mountsync.services.paths_service import resolve_unit_paths
from mountsync.services.reconcile_service import Reconciler
from mountsync.services.systemctl_service import SystemctlService

if TYPE_CHECKING:
    from mountsync.schemas.mount import MountSpec
    from mountsync.schemas.sync import SyncJobSpec
    from mountsync.services.reconcile_service import OrphanedUnit

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure CLI logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


class UnitCli:
    """Wires settings, config store, generator and service manager together."""

    def __init__(self, settings: Settings, config_path: Path) -> None:
        self.config_path = config_path
        self.config: AppConfig = load_config(config_path)
        self.generator = UnitGenerator(resolve_unit_paths(settings))
        self.manager = SystemctlService(settings.systemctl_path, settings.systemctl_timeout)
        self.reconciler = Reconciler(self.generator, self.manager)

    def generate(self) -> int:
        """Write units for every configured mount and sync job, then activate them."""
        for mount in self.config.mounts:
            self.generator.write_mount_service(mount)
        timers: dict[str, bool] = {}
        for job in self.config.sync_jobs:
            stale_timer = timer_filename(job.id, UnitType.SYNC)
            if job.schedule.type == "manual" and (self.generator.unit_dir / stale_timer).exists():
                # Deleting the file does not stop a loaded timer
                self.reconciler.stop_and_disable(stale_timer)
            _, timer_path = self.generator.write_sync_units(job)
            timers[job.id] = timer_path is not None

        self.manager.daemon_reload()

        for mount in self.config.mounts:
            service = service_filename(mount.id, UnitType.MOUNT)
            if mount.enabled:
                self.manager.enable(service)
            if mount.auto_start:
                self.manager.start(service)
        for job in self.config.sync_jobs:
            if not timers[job.id]:
                continue
            timer = timer_filename(job.id, UnitType.SYNC)
            if job.enabled:
                self.manager.enable(timer)
            if job.auto_start:
                self.manager.start(timer)

        total = len(self.config.mounts) + len(self.config.sync_jobs)
        print(f"Generated units for {total} configured item(s) in {self.generator.unit_dir}")
        return 0

    def _orphans(self, names: list[str]) -> list[OrphanedUnit]:
        scan = self.reconciler.scan_for_orphans(
            self.config.known_mount_ids(), self.config.known_sync_ids()
        )
        for error in scan.errors:
            print(f"  Warning: {error}")
        if not names:
            return scan.orphans
        wanted = {n if n.endswith(SERVICE_SUFFIX) else n + SERVICE_SUFFIX for n in names}
        missing = wanted - {o.name for o in scan.orphans}
        for name in sorted(missing):
            print(f"  Not an orphan: {name}")
        return [o for o in scan.orphans if o.name in wanted]

    def list_orphans(self) -> int:
        orphans = self._orphans([])
        if not orphans:
            print("No orphaned units.")
            return 0
        print(f"Orphaned units ({len(orphans)}):")
        for orphan in orphans:
            legacy = " (legacy)" if orphan.is_legacy else ""
            print(f"  {orphan.name}  [{orphan.unit_type}] id={orphan.id}{legacy}")
        return 0

    def remove_orphans(self, names: list[str]) -> int:
        failures = 0
        for orphan in self._orphans(names):
            try:
                self.reconciler.remove_orphan(orphan)
            except MountSyncError as exc:
                failures += 1
                print(f"  Failed: {orphan.name}: {exc}")
            else:
                print(f"  Removed: {orphan.name}")
        return 1 if failures else 0

    def import_orphans(self, names: list[str]) -> int:
        """Import orphans into the config, regenerate them under new ids, drop the old units."""
        report = self.reconciler.import_orphans(self._orphans(names))
        failures = len(report.errors)
        for error in report.errors:
            print(f"  Failed: {error}")

        for imported in report.imported:
            spec = self.config.merge_imported(imported)
            print(f"  Imported: {imported.unit.name} as '{spec.name}' (ID: {spec.id})")
            try:
                if imported.mount is not None:
                    self.generator.write_mount_service(imported.mount)
                elif imported.sync_job is not None:
                    self.generator.write_sync_units(imported.sync_job)
            except MountSyncError as exc:
                # Keep the old unit until the recovered spec can replace it
                failures += 1
                print(f"    Not regenerated ({exc}); edit the config and run 'generate'")
                continue
            try:
                self.reconciler.remove_orphan(imported.unit)
            except MountSyncError as exc:
                failures += 1
                print(f"    Old unit not removed: {exc}")

        if report.imported:
            save_config(self.config_path, self.config)
        return 1 if failures else 0

    def status(self) -> int:
        units = self.manager.list_units()
        if not units:
            print("No rclone units installed.")
            return 0
        for unit in units:
            active = "active" if self.manager.is_active(unit.name) else "inactive"
            enabled = "enabled" if unit.enabled else "disabled"
            print(f"  {unit.name:<40} {active:<10} {enabled}")
        return 0

    def _require_manager(self) -> None:
        if not self.manager.is_available():
            msg = "systemd user session is not available"
            raise MountSyncError(msg)

    def _find_mount(self, name: str) -> MountSpec:
        mount = self.config.find_mount(name)
        if mount is None:
            msg = f"Mount '{name}' not found"
            raise MountSyncError(msg)
        return mount

    def _find_sync_job(self, name: str) -> SyncJobSpec:
        job = self.config.find_sync_job(name)
        if job is None:
            msg = f"Sync job '{name}' not found"
            raise MountSyncError(msg)
        return job

    def _reset_failed(self, unit: str) -> None:
        try:
            self.manager.reset_failed(unit)
        except MountSyncError as exc:
            logger.debug("reset-failed %s: %s", unit, exc)

    def delete_mount(self, name: str) -> int:
        """Stop and remove a mount's unit, then drop it from the config."""
        mount = self._find_mount(name)
        service = service_filename(mount.id, UnitType.MOUNT)
        self.reconciler.stop_and_disable(service)
        self._reset_failed(service)
        self.generator.remove_unit(service)
        self.manager.daemon_reload()

        self.config.remove_mount(mount.id)
        save_config(self.config_path, self.config)
        print(f"Mount '{mount.name}' deleted")
        return 0

    def delete_sync_job(self, name: str) -> int:
        """Stop and remove a sync job's service and timer, then drop it from the config."""
        job = self._find_sync_job(name)
        service = service_filename(job.id, UnitType.SYNC)
        timer = timer_filename(job.id, UnitType.SYNC)
        self.reconciler.stop_and_disable(timer)
        self.reconciler.stop_and_disable(service)
        self._reset_failed(service)
        self.generator.remove_unit(service)
        self.generator.remove_unit(timer)
        self.manager.daemon_reload()

        self.config.remove_sync_job(job.id)
        save_config(self.config_path, self.config)
        print(f"Sync job '{job.name}' deleted")
        return 0

    def control_mount(self, name: str, action: str) -> int:
        """Start, stop or restart a configured mount."""
        mount = self._find_mount(name)
        service = service_filename(mount.id, UnitType.MOUNT)
        actions = {
            "start": self.manager.start,
            "stop": self.manager.stop,
            "restart": self.manager.restart,
        }
        actions[action](service)
        print(f"Mount '{mount.name}': {action} done ({service})")
        return 0

    def run_sync_job(self, name: str) -> int:
        """Start a sync job's service now, outside its schedule."""
        job = self._find_sync_job(name)
        service = service_filename(job.id, UnitType.SYNC)
        self.manager.start(service)
        print(f"Sync job '{job.name}' started ({service})")
        return 0

    def cleanup(self) -> int:
        """Clear the failed state of rclone units whose unit file is gone."""
        self._require_manager()
        cleaned = 0
        for name in self.manager.list_failed_units():
            if not isinstance(parse_unit_name(name), UnitIdentity):
                continue
            if (self.generator.unit_dir / name).exists():
                continue
            try:
                self.manager.reset_failed(name)
            except MountSyncError as exc:
                print(f"  Warning: {name}: {exc}")
                continue
            cleaned += 1
            print(f"  Cleaned up: {name}")

        if not cleaned:
            print("No orphaned failed units.")
        else:
            print(f"Cleaned up {cleaned} unit(s).")
        return 0

    def service_status(self, name: str) -> int:
        """Print the detailed state of one unit, by unit name or configured name."""
        self._require_manager()
        mount = self.config.find_mount(name)
        job = self.config.find_sync_job(name)
        if mount is not None:
            unit = service_filename(mount.id, UnitType.MOUNT)
        elif job is not None:
            unit = service_filename(job.id, UnitType.SYNC)
        elif name.endswith((SERVICE_SUFFIX, TIMER_SUFFIX)):
            unit = name
        else:
            unit = name + SERVICE_SUFFIX

        status = self.manager.get_detailed_status(unit)
        rows = [
            ("Name", status.name),
            ("Type", status.unit_type or "unknown"),
            ("Load State", status.load_state),
            ("Active State", status.active_state),
            ("Sub State", status.sub_state),
            ("Enabled", "yes" if status.enabled else "no"),
        ]
        if status.main_pid > 0:
            rows.append(("Main PID", str(status.main_pid)))
        if status.exit_code > 0:
            rows.append(("Exit Code", str(status.exit_code)))
        if status.activated_at is not None:
            rows.append(("Activated", format_iso(status.activated_at)))
        if status.inactive_at is not None:
            rows.append(("Inactive Since", format_iso(status.inactive_at)))
        if status.unit_type == UnitType.SYNC:
            rows.append(("Timer Active", "yes" if status.timer_active else "no"))
            if status.next_run is not None:
                rows.append(("Next Run", format_iso(status.next_run)))

        for label, value in rows:
            print(f"  {label + ':':<16} {value}")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rclone-mount-sync",
        description="Generate and reconcile systemd units for rclone mounts and sync jobs",
    )
    parser.add_argument("--config", "-c", help="Config file (default: XDG config dir)")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("generate", help="Write units for all configured items")
    subparsers.add_parser("status", help="Show installed units")

    orphans = subparsers.add_parser("orphans", help="Find and resolve orphaned units")
    orphan_commands = orphans.add_subparsers(dest="orphan_command")
    orphan_commands.add_parser("list", help="List orphaned units")
    remove = orphan_commands.add_parser("remove", help="Stop, disable and delete orphans")
    remove.add_argument("units", nargs="*", help="Unit names (default: all orphans)")
    import_ = orphan_commands.add_parser("import", help="Recover orphans into the config")
    import_.add_argument("units", nargs="*", help="Unit names (default: all orphans)")

    mount = subparsers.add_parser("mount", help="Manage a configured mount")
    mount_commands = mount.add_subparsers(dest="mount_command", required=True)
    for action, help_text in (
        ("delete", "Stop and remove the mount's unit and drop it from the config"),
        ("start", "Start the mount"),
        ("stop", "Stop the mount"),
        ("restart", "Restart the mount"),
    ):
        command = mount_commands.add_parser(action, help=help_text)
        command.add_argument("name", help="Mount name or id")

    sync = subparsers.add_parser("sync", help="Manage a configured sync job")
    sync_commands = sync.add_subparsers(dest="sync_command", required=True)
    for action, help_text in (
        ("delete", "Stop and remove the job's units and drop it from the config"),
        ("run", "Run the job now"),
    ):
        command = sync_commands.add_parser(action, help=help_text)
        command.add_argument("name", help="Sync job name or id")

    subparsers.add_parser("cleanup", help="Reset failed rclone units whose files are gone")

    services = subparsers.add_parser("services", help="Inspect individual units")
    service_commands = services.add_subparsers(dest="services_command", required=True)
    service_status = service_commands.add_parser("status", help="Show detailed unit status")
    service_status.add_argument("name", help="Unit name, or a configured mount or job")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(args.debug or settings.debug)
    config_path = Path(args.config) if args.config else default_config_path(settings)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        app = UnitCli(settings, config_path)
        if args.command == "generate":
            code = app.generate()
        elif args.command == "status":
            code = app.status()
        elif args.command == "cleanup":
            code = app.cleanup()
        elif args.command == "services":
            code = app.service_status(args.name)
        elif args.command == "mount":
            if args.mount_command == "delete":
                code = app.delete_mount(args.name)
            else:
                code = app.control_mount(args.name, args.mount_command)
        elif args.command == "sync":
            if args.sync_command == "delete":
                code = app.delete_sync_job(args.name)
            else:
                code = app.run_sync_job(args.name)
        elif args.orphan_command == "remove":
            code = app.remove_orphans(args.units)
        elif args.orphan_command == "import":
            code = app.import_orphans(args.units)
        else:
            code = app.list_orphans()
    except (MountSyncError, ValueError, OSError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
