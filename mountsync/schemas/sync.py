"""Sync job schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from mountsync.services.datetime_service import now_utc

SyncDirection = Literal["sync", "copy", "move"]
ScheduleType = Literal["timer", "onboot", "manual"]


class SyncOptions(BaseModel):
    """rclone sync/copy/move flags. Unset fields are not emitted."""

    direction: SyncDirection = "sync"

    # Deletion
    delete_extraneous: bool = False
    delete_after: bool = False

    # Filtering
    include_pattern: str = ""
    exclude_pattern: str = ""
    max_age: str = ""
    min_age: str = ""

    # Performance
    transfers: int = 0
    checkers: int = 0
    bandwidth_limit: str = ""

    # Verification
    checksum: bool = False
    dry_run: bool = False

    # Logging
    log_level: str = ""

    # Escape hatch
    config: str = ""
    extra_args: str = ""


class Schedule(BaseModel):
    """When a sync job runs. Manual jobs never own a timer unit."""

    type: ScheduleType = "timer"

    on_calendar: str = ""  # e.g. "daily", "*-*-* 02:00:00"
    on_boot_sec: str = ""  # e.g. "5min"
    on_active_sec: str = ""
    randomized_delay_sec: str = ""
    persistent: bool = False

    # Run conditions
    require_ac_power: bool = False
    require_unmetered: bool = False


class SyncJobSpec(BaseModel):
    """A configured rclone sync job."""

    id: str
    name: str
    description: str = ""

    source: str = ""  # e.g. "gdrive:/Photos"
    destination: str = ""

    sync_options: SyncOptions = Field(default_factory=SyncOptions)
    schedule: Schedule = Field(default_factory=Schedule)

    enabled: bool = False
    auto_start: bool = False

    created_at: datetime = Field(default_factory=now_utc)
    modified_at: datetime = Field(default_factory=now_utc)
    last_run: datetime | None = None
