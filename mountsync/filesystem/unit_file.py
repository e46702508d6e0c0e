"""Best-effort extraction of configuration from existing unit file text.

Unit files found on disk may have been written by any earlier release or by
hand, so every extractor returns None (or an empty value) for anything it
cannot find instead of raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mountsync.schemas.sync import Schedule
from mountsync.services.options_service import (
    CONFIG_FLAG,
    CREATE_EMPTY_SRC_DIRS_FLAG,
    DELETE_FLAG,
    MOUNT_FLAGS,
    SYNC_FLAGS,
    FlagKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

_DESCRIPTION_RE = re.compile(r"^Description=Rclone\s+(?:mount|sync):\s*(.+)$", re.IGNORECASE)
_MOUNT_COMMAND_RE = re.compile(r"^\S+\s+mount\s+(\S+)\s+(\S+)(.*)$")
_SYNC_COMMAND_RE = re.compile(r"^\S+\s+(sync|copy|move)\s+(\S+)\s+(\S+)(.*)$")
_SECTION_RE = re.compile(r"^\[(.+)\]$")

_METERED_MARKER = "string:Metered"


@dataclass
class MountCommand:
    """Positional arguments and trailing flags of an ``rclone mount`` invocation."""

    source: str
    mount_point: str
    flags: list[str] = field(default_factory=list)


@dataclass
class SyncCommand:
    """Positional arguments and trailing flags of ``rclone sync|copy|move``."""

    direction: str
    source: str
    destination: str
    flags: list[str] = field(default_factory=list)


def _iter_stripped(content: str) -> Iterator[str]:
    for line in content.splitlines():
        yield line.strip()


def extract_description_name(content: str) -> str | None:
    """Return the human name from ``Description=Rclone mount|sync: <name>``."""
    for line in _iter_stripped(content):
        match = _DESCRIPTION_RE.match(line)
        if match:
            name = match.group(1).strip()
            return name or None
    return None


def extract_exec_start(content: str) -> str | None:
    """Return the ``ExecStart=`` command with continuation lines joined.

    Continuation lines are the indented lines directly after ``ExecStart=``;
    trailing backslashes are dropped.
    """
    parts: list[str] = []
    in_exec_start = False
    for line in content.splitlines():
        if line.startswith("ExecStart="):
            in_exec_start = True
            parts.append(line.removeprefix("ExecStart="))
        elif in_exec_start and line[:1] in (" ", "\t"):
            parts.append(line)
        elif in_exec_start:
            break

    if not parts:
        return None
    cleaned = [part.strip().removesuffix("\\").strip() for part in parts]
    return " ".join(p for p in cleaned if p)


def parse_mount_command(exec_start: str) -> MountCommand | None:
    """Parse ``<rclone> mount <remote>:<path> <mountpoint> [flags...]``."""
    match = _MOUNT_COMMAND_RE.match(exec_start)
    if match is None:
        return None
    return MountCommand(
        source=match.group(1),
        mount_point=match.group(2),
        flags=match.group(3).split(),
    )


def parse_sync_command(exec_start: str) -> SyncCommand | None:
    """Parse ``<rclone> <direction> <source> <destination> [flags...]``."""
    match = _SYNC_COMMAND_RE.match(exec_start)
    if match is None:
        return None
    return SyncCommand(
        direction=match.group(1),
        source=match.group(2),
        destination=match.group(3),
        flags=match.group(4).split(),
    )


def split_remote(source: str) -> tuple[str, str]:
    """Split ``gdrive:/Photos`` into ``("gdrive:", "/Photos")`` at the first colon.

    A source without a colon is taken as a remote name rooted at ``/``.
    """
    remote, sep, path = source.partition(":")
    if not sep:
        return source, "/"
    return remote + sep, path


def parse_flags(
    flags: list[str],
    table: tuple[tuple[str, str, FlagKind], ...],
) -> tuple[dict[str, object], list[str]]:
    """Map rendered flags back onto option field values.

    Returns ``(values, leftovers)``; leftovers are tokens not in ``table``.
    """
    by_flag = {flag: (field_name, kind) for field_name, flag, kind in table}
    values: dict[str, object] = {}
    leftovers: list[str] = []
    for token in flags:
        flag, sep, raw = token.partition("=")
        entry = by_flag.get(flag)
        if entry is None:
            leftovers.append(token)
            continue
        field_name, kind = entry
        if kind == "bool" and not sep:
            values[field_name] = True
        elif kind == "int" and sep and raw.isdigit():
            values[field_name] = int(raw)
        elif kind == "str" and sep and raw:
            values[field_name] = raw
        else:
            leftovers.append(token)
    return values, leftovers


def recover_mount_options(flags: list[str], default_config_path: str) -> dict[str, object]:
    """Recover ``MountOptions`` field values from rendered mount flags."""
    config, remaining = _take_config(flags, default_config_path)
    values, leftovers = parse_flags(remaining, MOUNT_FLAGS)
    if config:
        values["config"] = config
    if leftovers:
        values["extra_args"] = " ".join(leftovers)
    return values


def recover_sync_options(flags: list[str], default_config_path: str) -> dict[str, object]:
    """Recover ``SyncOptions`` field values from rendered sync flags."""
    config, remaining = _take_config(flags, default_config_path)
    delete = DELETE_FLAG in remaining
    remaining = [f for f in remaining if f not in (DELETE_FLAG, CREATE_EMPTY_SRC_DIRS_FLAG)]
    values, leftovers = parse_flags(remaining, SYNC_FLAGS)
    if delete:
        values["delete_extraneous"] = True
    if config:
        values["config"] = config
    if leftovers:
        values["extra_args"] = " ".join(leftovers)
    return values


def _take_config(flags: list[str], default_config_path: str) -> tuple[str, list[str]]:
    config = ""
    remaining: list[str] = []
    for token in flags:
        if token.startswith(f"{CONFIG_FLAG}="):
            value = token.removeprefix(f"{CONFIG_FLAG}=")
            if value != default_config_path:
                config = value
            continue
        remaining.append(token)
    return config, remaining


def has_ac_power_condition(content: str) -> bool:
    return any(line == "ConditionACPower=true" for line in _iter_stripped(content))


def has_unmetered_condition(content: str) -> bool:
    return any(
        line.startswith("ExecCondition=") and _METERED_MARKER in line
        for line in _iter_stripped(content)
    )


def parse_timer_schedule(content: str) -> Schedule:
    """Build a Schedule from the ``[Timer]`` section of a timer unit."""
    values: dict[str, str] = {}
    persistent = False
    section = ""
    for line in _iter_stripped(content):
        header = _SECTION_RE.match(line)
        if header:
            section = header.group(1)
            continue
        if section != "Timer":
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        if key == "Persistent":
            persistent = value.strip() == "true"
        else:
            values[key] = value.strip()

    on_calendar = values.get("OnCalendar", "")
    on_boot_sec = values.get("OnBootSec", "")
    schedule_type = "onboot" if on_boot_sec and not on_calendar else "timer"
    return Schedule(
        type=schedule_type,
        on_calendar=on_calendar,
        on_boot_sec=on_boot_sec,
        on_active_sec=values.get("OnUnitActiveSec", ""),
        randomized_delay_sec=values.get("RandomizedDelaySec", ""),
        persistent=persistent,
    )
