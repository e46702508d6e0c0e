"""Application-level exception types.

Convention:
- ``UnitConfigError``: a spec cannot be turned into a valid unit (bad mount point).
- ``UnitFileError``: reading, writing or deleting a unit file failed. The
  original ``OSError`` is chained as ``__cause__``.
- ``ServiceManagerError``: ``systemctl`` could not be run, timed out, or exited
  non-zero. Captured output is kept for display.
- ``UnitImportError``: an orphaned unit could not be read for import. Parse
  problems inside a readable unit are never errors; they leave fields empty.

A missing unit directory is the normal "nothing generated yet" state and is not
represented by any of these.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class MountSyncError(Exception):
    """Base class for errors raised by the unit lifecycle engine."""


class UnitConfigError(MountSyncError, ValueError):
    """Raised when a mount or sync spec cannot be rendered into a usable unit."""


class UnitFileError(MountSyncError):
    """Raised when a unit file operation fails on disk."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class ServiceManagerError(MountSyncError):
    """Raised when a service-manager command fails."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int | None,
        output: str = "",
    ) -> None:
        joined = " ".join(command)
        if returncode is None:
            message = f"{joined} could not be run"
        else:
            message = f"{joined} failed (exit {returncode})"
        detail = output.strip()
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.command = tuple(command)
        self.returncode = returncode
        self.output = output


class UnitImportError(MountSyncError):
    """Raised when an orphaned unit file cannot be read for import."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path
