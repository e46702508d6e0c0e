"""Unit naming: how an on-disk unit name encodes its type and owner id.

Generated units are named ``rclone-{type}-{id}.{service|timer}`` where ``id``
is an 8-character lowercase alphanumeric identifier minted once per spec.
Older releases derived the id from a sanitized human name instead; those
"legacy" names are still recognized so they can be reconciled.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from enum import StrEnum

UNIT_PREFIX = "rclone-"
SERVICE_SUFFIX = ".service"
TIMER_SUFFIX = ".timer"

ID_LENGTH = 8
_IDENTITY_ID_RE = re.compile(r"[a-z0-9]{8}")


class UnitType(StrEnum):
    """Logical kind of a generated unit."""

    MOUNT = "mount"
    SYNC = "sync"


@dataclass(frozen=True)
class UnitIdentity:
    """A unit name decoded into its type and id."""

    unit_type: UnitType
    id: str

    @property
    def is_legacy(self) -> bool:
        return not is_identity_id(self.id)


@dataclass(frozen=True)
class UnrecognizedUnit:
    """A unit name that does not follow the ``rclone-{type}-{id}`` scheme."""

    name: str


def is_identity_id(value: str) -> bool:
    """Return True for an identity-scheme id: exactly 8 of ``[a-z0-9]``."""
    return _IDENTITY_ID_RE.fullmatch(value) is not None


def generate_id() -> str:
    """Mint a fresh identity-scheme id."""
    return uuid.uuid4().hex[:ID_LENGTH]


def unit_name(unit_id: str, unit_type: UnitType | str) -> str:
    """Format the base unit name (no suffix) for a mount or sync job id."""
    return f"{UNIT_PREFIX}{UnitType(unit_type)}-{unit_id}"


def service_filename(unit_id: str, unit_type: UnitType | str) -> str:
    return unit_name(unit_id, unit_type) + SERVICE_SUFFIX


def timer_filename(unit_id: str, unit_type: UnitType | str) -> str:
    return unit_name(unit_id, unit_type) + TIMER_SUFFIX


def parse_unit_name(name: str) -> UnitIdentity | UnrecognizedUnit:
    """Decode a unit file name (with or without suffix).

    Anything that is not ``rclone-mount-<id>`` or ``rclone-sync-<id>`` with a
    non-empty id comes back as ``UnrecognizedUnit``; callers must handle it.
    """
    base = name.removesuffix(SERVICE_SUFFIX).removesuffix(TIMER_SUFFIX)
    for unit_type in UnitType:
        prefix = f"{UNIT_PREFIX}{unit_type}-"
        if base.startswith(prefix):
            unit_id = base.removeprefix(prefix)
            if unit_id:
                return UnitIdentity(unit_type=unit_type, id=unit_id)
    return UnrecognizedUnit(name=name)
