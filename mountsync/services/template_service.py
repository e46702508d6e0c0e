"""Systemd unit bodies for mounts, sync services and sync timers.

The skeletons are fixed; only field substitution varies. Optional directives
(run conditions) are emitted as whole lines or not at all.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mountsync.services.identity_service import UnitType, unit_name
from mountsync.services.options_service import (
    render_mount_options,
    render_sync_options,
    render_timer_directives,
)
from mountsync.services.paths_service import expand_path

if TYPE_CHECKING:
    from mountsync.schemas.mount import MountSpec
    from mountsync.schemas.sync import SyncJobSpec
    from mountsync.services.paths_service import UnitPaths

UNIT_PATH_ENV = 'Environment="PATH=/usr/local/bin:/usr/bin:/bin"'

AC_POWER_CONDITION = "ConditionACPower=true"

# Skips the run (exit 1 from ExecCondition) when NetworkManager reports a metered link.
UNMETERED_CONDITION = (
    "ExecCondition=/bin/sh -c 'test \"$(dbus-send --system --print-reply=literal "
    "--dest=org.freedesktop.NetworkManager /org/freedesktop/NetworkManager "
    "org.freedesktop.DBus.Properties.Get string:org.freedesktop.NetworkManager "
    "string:Metered 2>/dev/null | grep -o \"\\\"[0-9]*\\\"\" | tr -d \"\\\"\")\" "
    "!= \"4\" || exit 0; exit 1'"
)


def log_file_path(paths: UnitPaths, unit_id: str, unit_type: UnitType) -> str:
    return str(paths.log_dir / f"{unit_name(unit_id, unit_type)}.log")


def render_mount_service(spec: MountSpec, paths: UnitPaths) -> str:
    """Render the service unit for a mount."""
    mount_point = expand_path(spec.mount_point)
    options = render_mount_options(spec.mount_options, paths.config_path)
    log_file = log_file_path(paths, spec.id, UnitType.MOUNT)
    return f"""[Unit]
Description=Rclone mount: {spec.name}
Documentation=man:rclone(1)
After=network-online.target
Wants=network-online.target
StartLimitIntervalSec=30
StartLimitBurst=5

[Service]
Type=notify
ExecStartPre=/bin/mkdir -p {mount_point}
ExecStart={paths.rclone_path} mount \\
    {spec.remote}{spec.remote_path} \\
    {mount_point} \\
    {options}
ExecStop=/bin/fusermount -u {mount_point}
ExecStopPost=/bin/rmdir {mount_point}
Restart=on-failure
RestartSec=5s
{UNIT_PATH_ENV}
Environment="RCLONE_LOG_FILE={log_file}"
NoNewPrivileges=true

[Install]
WantedBy=default.target
"""


def render_sync_service(job: SyncJobSpec, paths: UnitPaths) -> str:
    """Render the oneshot service unit for a sync job."""
    options = render_sync_options(job.sync_options, paths.config_path)
    log_file = log_file_path(paths, job.id, UnitType.SYNC)
    unit_conditions = f"{AC_POWER_CONDITION}\n" if job.schedule.require_ac_power else ""
    exec_conditions = f"{UNMETERED_CONDITION}\n" if job.schedule.require_unmetered else ""
    return f"""[Unit]
Description=Rclone sync: {job.name}
Documentation=man:rclone(1)
After=network-online.target
Wants=network-online.target
{unit_conditions}
[Service]
Type=oneshot
{exec_conditions}ExecStart={paths.rclone_path} {job.sync_options.direction} \\
    {job.source} \\
    {expand_path(job.destination)} \\
    {options}
{UNIT_PATH_ENV}
Environment="RCLONE_LOG_FILE={log_file}"
MemoryMax=1G
CPUQuota=50%

[Install]
WantedBy=default.target
"""


def render_sync_timer(job: SyncJobSpec) -> str:
    """Render the timer unit that triggers a sync job's service."""
    directives = render_timer_directives(job.schedule)
    return f"""[Unit]
Description=Timer for rclone sync: {job.name}
Documentation=man:rclone(1)

[Timer]
{directives}

[Install]
WantedBy=timers.target
"""
