"""Systemctl service: user-unit control via the systemctl CLI."""

from __future__ import annotations

import logging
import shutil
import subprocess

from mountsync.exceptions import ServiceManagerError
from mountsync.schemas.status import ServiceStatus, UnitListing
from mountsync.services.datetime_service import parse_systemd_timestamp
from mountsync.services.identity_service import (
    SERVICE_SUFFIX,
    TIMER_SUFFIX,
    UNIT_PREFIX,
    UnitIdentity,
    parse_unit_name,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEMCTL_PATH = "/usr/bin/systemctl"
DEFAULT_TIMEOUT_SECONDS = 30.0

_STATUS_PROPERTIES = (
    "LoadState",
    "ActiveState",
    "SubState",
    "MainPID",
    "ExecMainStatus",
    "ActiveEnterTimestamp",
    "InactiveEnterTimestamp",
)


def parse_properties(output: str) -> dict[str, str]:
    """Parse ``systemctl show`` key=value output."""
    properties: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if not sep:
            continue
        properties[key.strip()] = value.strip()
    return properties


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


class SystemctlService:
    """Wraps ``systemctl --user`` operations on generated units."""

    def __init__(
        self,
        systemctl_path: str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.systemctl_path = (
            systemctl_path or shutil.which("systemctl") or DEFAULT_SYSTEMCTL_PATH
        )
        self.timeout = timeout

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run a systemctl --user command.

        Raises ServiceManagerError if systemctl cannot be run or times out,
        and on non-zero exit when ``check`` is set.
        """
        command = [self.systemctl_path, "--user", *args]
        logger.debug("Running %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ServiceManagerError(command, None, str(exc)) from exc
        if check and result.returncode != 0:
            raise ServiceManagerError(
                command, result.returncode, (result.stderr or "") + (result.stdout or "")
            )
        return result

    def is_available(self) -> bool:
        """Return True if the user service manager answers."""
        try:
            result = self._run("is-system-running", check=False)
        except ServiceManagerError:
            return False
        # degraded/starting etc. still mean a reachable manager
        return bool(result.stdout.strip()) and result.stdout.strip() != "offline"

    def daemon_reload(self) -> None:
        self._run("daemon-reload")

    def enable(self, name: str) -> None:
        self._run("enable", name)

    def disable(self, name: str) -> None:
        self._run("disable", name)

    def start(self, name: str) -> None:
        self._run("start", name)

    def stop(self, name: str) -> None:
        self._run("stop", name)

    def restart(self, name: str) -> None:
        self._run("restart", name)

    def reset_failed(self, name: str) -> None:
        self._run("reset-failed", name)

    def is_enabled(self, name: str) -> bool:
        """Return True if the unit is enabled. Any failure reads as False."""
        try:
            result = self._run("is-enabled", name, check=False)
        except ServiceManagerError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "enabled"

    def is_active(self, name: str) -> bool:
        """Return True if the unit is active. Any failure reads as False."""
        try:
            result = self._run("is-active", name, check=False)
        except ServiceManagerError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "active"

    def list_units(self, pattern: str = f"{UNIT_PREFIX}*") -> list[UnitListing]:
        """List installed unit files matching ``pattern`` with their enabled state."""
        try:
            result = self._run("list-unit-files", "--no-legend", "--no-pager", pattern)
        except ServiceManagerError as exc:
            # list-unit-files exits non-zero when nothing matches
            logger.debug("No units listed for %s: %s", pattern, exc)
            return []

        units: list[UnitListing] = []
        for line in result.stdout.splitlines():
            parts = line.split()
            if not parts:
                continue
            units.append(
                UnitListing(name=parts[0], enabled=len(parts) > 1 and parts[1] == "enabled")
            )
        return units

    def list_failed_units(self, pattern: str = f"{UNIT_PREFIX}*") -> list[str]:
        """Return the names of loaded units matching ``pattern`` in the failed state."""
        try:
            result = self._run(
                "list-units", "--state=failed", "--no-legend", "--plain", "--no-pager", pattern
            )
        except ServiceManagerError as exc:
            logger.debug("No failed units listed for %s: %s", pattern, exc)
            return []
        return [line.split()[0] for line in result.stdout.splitlines() if line.strip()]

    def get_detailed_status(self, name: str) -> ServiceStatus:
        """Return load/active state, PID, exit code and timestamps for a unit.

        For sync services the companion timer's state and next run are included.
        """
        status = ServiceStatus(name=name)
        identity = parse_unit_name(name)
        if isinstance(identity, UnitIdentity):
            status.unit_type = identity.unit_type.value

        result = self._run(
            "show",
            name,
            f"--property={','.join(_STATUS_PROPERTIES)}",
            "--timestamp=unix",
        )
        props = parse_properties(result.stdout)
        status.load_state = props.get("LoadState", "")
        status.active_state = props.get("ActiveState", "")
        status.sub_state = props.get("SubState", "")
        status.main_pid = _to_int(props.get("MainPID", "0"))
        status.exit_code = _to_int(props.get("ExecMainStatus", "0"))
        status.activated_at = parse_systemd_timestamp(props.get("ActiveEnterTimestamp", ""))
        status.inactive_at = parse_systemd_timestamp(props.get("InactiveEnterTimestamp", ""))
        status.enabled = self.is_enabled(name)

        if status.unit_type == "sync":
            base = name.removesuffix(SERVICE_SUFFIX)
            timer_name = base + TIMER_SUFFIX
            status.timer_active = self.is_active(timer_name)
            try:
                timer = self._run(
                    "show", timer_name, "--property=NextElapseUSecRealtime", "--timestamp=unix"
                )
            except ServiceManagerError as exc:
                logger.debug("No timer information for %s: %s", timer_name, exc)
            else:
                next_elapse = parse_properties(timer.stdout).get("NextElapseUSecRealtime", "")
                status.next_run = parse_systemd_timestamp(next_elapse)

        return status
