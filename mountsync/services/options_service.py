"""Rendering of rclone flags and systemd timer directives.

All functions here are pure. Flags are emitted in a fixed order with the
config path first, so identical input always renders byte-identical output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Literal

if TYPE_CHECKING:
    from pydantic import BaseModel

    from mountsync.schemas.mount import MountOptions
    from mountsync.schemas.sync import Schedule, SyncOptions

FlagKind = Literal["str", "bool", "int"]

# Separator between flags inside a multi-line ExecStart
ARG_SEPARATOR = " \\\n    "

CONFIG_FLAG = "--config"
DELETE_FLAG = "--delete-after"
CREATE_EMPTY_SRC_DIRS_FLAG = "--create-empty-src-dirs"

# (field name, flag, kind) in emission order, excluding --config and extra args
MOUNT_FLAGS: Final[tuple[tuple[str, str, FlagKind], ...]] = (
    ("vfs_cache_mode", "--vfs-cache-mode", "str"),
    ("vfs_cache_max_age", "--vfs-cache-max-age", "str"),
    ("vfs_cache_max_size", "--vfs-cache-max-size", "str"),
    ("vfs_read_chunk_size", "--vfs-read-chunk-size", "str"),
    ("vfs_write_back", "--vfs-write-back", "str"),
    ("buffer_size", "--buffer-size", "str"),
    ("dir_cache_time", "--dir-cache-time", "str"),
    ("allow_other", "--allow-other", "bool"),
    ("allow_root", "--allow-root", "bool"),
    ("umask", "--umask", "str"),
    ("uid", "--uid", "int"),
    ("gid", "--gid", "int"),
    ("no_modtime", "--no-modtime", "bool"),
    ("no_checksum", "--no-checksum", "bool"),
    ("read_only", "--read-only", "bool"),
    ("connect_timeout", "--connect-timeout", "str"),
    ("timeout", "--timeout", "str"),
    ("log_level", "--log-level", "str"),
)

SYNC_FLAGS: Final[tuple[tuple[str, str, FlagKind], ...]] = (
    ("include_pattern", "--include", "str"),
    ("exclude_pattern", "--exclude", "str"),
    ("max_age", "--max-age", "str"),
    ("min_age", "--min-age", "str"),
    ("transfers", "--transfers", "int"),
    ("checkers", "--checkers", "int"),
    ("bandwidth_limit", "--bwlimit", "str"),
    ("checksum", "--checksum", "bool"),
    ("dry_run", "--dry-run", "bool"),
    ("log_level", "--log-level", "str"),
)


def _render_flags(
    opts: BaseModel, table: tuple[tuple[str, str, FlagKind], ...]
) -> list[str]:
    args: list[str] = []
    for field_name, flag, kind in table:
        value = getattr(opts, field_name)
        if kind == "bool":
            if value:
                args.append(flag)
        elif kind == "int":
            if value > 0:
                args.append(f"{flag}={value}")
        elif value:
            args.append(f"{flag}={value}")
    return args


def render_mount_options(opts: MountOptions, default_config_path: str) -> str:
    """Render mount options as continuation-joined rclone flags."""
    args = [f"{CONFIG_FLAG}={opts.config or default_config_path}"]
    args.extend(_render_flags(opts, MOUNT_FLAGS))
    if opts.extra_args:
        args.append(opts.extra_args)
    return ARG_SEPARATOR.join(args)


def render_sync_options(opts: SyncOptions, default_config_path: str) -> str:
    """Render sync options as continuation-joined rclone flags.

    Deletion always renders as ``--delete-after``: ``delete_after`` does not
    change the emitted flag, only ``delete_extraneous`` does. Empty source
    directories are always recreated on the destination.
    """
    args = [f"{CONFIG_FLAG}={opts.config or default_config_path}"]
    if opts.delete_extraneous:
        args.append(DELETE_FLAG)
    args.extend(_render_flags(opts, SYNC_FLAGS))
    args.append(CREATE_EMPTY_SRC_DIRS_FLAG)
    if opts.extra_args:
        args.append(opts.extra_args)
    return ARG_SEPARATOR.join(args)


def render_timer_directives(schedule: Schedule) -> str:
    """Render the ``[Timer]`` section body for a schedule.

    Falls back to ``OnCalendar=daily`` so a timer is never empty.
    """
    directives: list[str] = []

    if schedule.type == "timer" and schedule.on_calendar:
        directives.append(f"OnCalendar={schedule.on_calendar}")
    elif schedule.type == "onboot" and schedule.on_boot_sec:
        directives.append(f"OnBootSec={schedule.on_boot_sec}")

    if schedule.on_active_sec:
        directives.append(f"OnUnitActiveSec={schedule.on_active_sec}")
    if schedule.randomized_delay_sec:
        directives.append(f"RandomizedDelaySec={schedule.randomized_delay_sec}")
    if schedule.persistent:
        directives.append("Persistent=true")

    if not directives:
        directives.append("OnCalendar=daily")

    return "\n".join(directives)
