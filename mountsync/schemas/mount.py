"""Mount schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from mountsync.services.datetime_service import now_utc


class MountOptions(BaseModel):
    """rclone mount flags. Unset (empty, False, zero) fields are not emitted."""

    # FUSE
    allow_other: bool = False
    allow_root: bool = False
    umask: str = ""
    uid: int = 0
    gid: int = 0

    # Performance
    buffer_size: str = ""
    dir_cache_time: str = ""
    vfs_cache_mode: str = ""
    vfs_cache_max_age: str = ""
    vfs_cache_max_size: str = ""
    vfs_read_chunk_size: str = ""
    vfs_write_back: str = ""

    # Behavior
    no_modtime: bool = False
    no_checksum: bool = False
    read_only: bool = False

    # Network
    connect_timeout: str = ""
    timeout: str = ""

    # Logging
    log_level: str = ""

    # Escape hatch
    config: str = ""
    extra_args: str = ""


class MountSpec(BaseModel):
    """A configured rclone mount."""

    id: str
    name: str
    description: str = ""

    remote: str = ""  # e.g. "gdrive:"
    remote_path: str = ""  # e.g. "/Photos"
    mount_point: str = ""

    mount_options: MountOptions = Field(default_factory=MountOptions)

    enabled: bool = False
    auto_start: bool = False

    created_at: datetime = Field(default_factory=now_utc)
    modified_at: datetime = Field(default_factory=now_utc)
