"""Service-manager status schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UnitListing(BaseModel):
    """One row of ``systemctl list-unit-files``."""

    name: str
    enabled: bool = False


class ServiceStatus(BaseModel):
    """Detailed runtime state of a generated unit."""

    name: str
    unit_type: str = ""  # "mount", "sync", or "" for foreign units

    load_state: str = ""  # "loaded", "not-found", ...
    active_state: str = ""  # "active", "inactive", "failed", ...
    sub_state: str = ""  # "running", "exited", "dead", ...

    enabled: bool = False
    main_pid: int = 0
    exit_code: int = 0

    activated_at: datetime | None = None
    inactive_at: datetime | None = None

    # Sync jobs only
    timer_active: bool = False
    next_run: datetime | None = None
