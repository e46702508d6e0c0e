"""Tests for the TOML configuration store."""

from __future__ import annotations

import tomllib
from typing import TYPE_CHECKING

import pytest

from mountsync.config import Settings
from mountsync.filesystem.config_store import (
    AppConfig,
    default_config_path,
    load_config,
    save_config,
)
from mountsync.services.identity_service import UnitType
from mountsync.services.reconcile_service import ImportedConfig, OrphanedUnit

if TYPE_CHECKING:
    from pathlib import Path

    from mountsync.schemas.mount import MountSpec
    from mountsync.schemas.sync import SyncJobSpec


def _imported(
    tmp_path: Path, *, mount: MountSpec | None = None, job: SyncJobSpec | None = None
) -> ImportedConfig:
    unit_type = UnitType.MOUNT if mount is not None else UnitType.SYNC
    orphan = OrphanedUnit(
        name=f"rclone-{unit_type}-legacy.service",
        unit_type=unit_type,
        id="legacy",
        is_legacy=True,
        path=tmp_path / f"rclone-{unit_type}-legacy.service",
    )
    return ImportedConfig(unit=orphan, mount=mount, sync_job=job)


class TestLoadSave:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.toml")
        assert config.mounts == []
        assert config.sync_jobs == []

    def test_empty_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == AppConfig()

    def test_round_trip(
        self, tmp_path: Path, mount_spec: MountSpec, sync_job: SyncJobSpec
    ) -> None:
        path = tmp_path / "nested" / "config.toml"
        config = AppConfig(mounts=[mount_spec], sync_jobs=[sync_job])

        save_config(path, config)
        loaded = load_config(path)

        assert loaded.mounts[0].id == mount_spec.id
        assert loaded.mounts[0].mount_options == mount_spec.mount_options
        assert loaded.mounts[0].created_at == mount_spec.created_at
        assert loaded.sync_jobs[0].schedule == sync_job.schedule
        assert loaded.sync_jobs[0].last_run is None

    def test_written_as_plain_toml(self, tmp_path: Path, mount_spec: MountSpec) -> None:
        path = tmp_path / "config.toml"
        save_config(path, AppConfig(mounts=[mount_spec]))
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == "1.0"
        assert data["mounts"][0]["name"] == "Google Drive"
        assert data["mounts"][0]["mount_options"]["uid"] == 1000
        assert data["sync_jobs"] == []

    def test_unset_last_run_omitted(self, tmp_path: Path, sync_job: SyncJobSpec) -> None:
        path = tmp_path / "config.toml"
        save_config(path, AppConfig(sync_jobs=[sync_job]))
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        assert "last_run" not in data["sync_jobs"][0]

    def test_backup_of_previous_version(self, tmp_path: Path, mount_spec: MountSpec) -> None:
        path = tmp_path / "config.toml"
        save_config(path, AppConfig())
        save_config(path, AppConfig(mounts=[mount_spec]))

        backup = tmp_path / "config.toml.bak"
        assert load_config(backup).mounts == []
        assert len(load_config(path).mounts) == 1
        assert sorted(p.name for p in tmp_path.iterdir()) == ["config.toml", "config.toml.bak"]

    def test_invalid_entry_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text('[[mounts]]\nname = "missing id"\n', encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid config file"):
            load_config(path)

    def test_malformed_toml_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("mounts = [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Failed to parse"):
            load_config(path)


class TestAppConfig:
    def test_find_by_id_then_name(self, mount_spec: MountSpec, sync_job: SyncJobSpec) -> None:
        config = AppConfig(mounts=[mount_spec], sync_jobs=[sync_job])
        assert config.find_mount("a1b2c3d4") is config.mounts[0]
        assert config.find_mount("Google Drive") is config.mounts[0]
        assert config.find_mount("missing") is None
        assert config.find_sync_job("Photo Backup") is config.sync_jobs[0]
        assert config.find_sync_job("e5f6g7h8") is config.sync_jobs[0]

    def test_known_ids(self, mount_spec: MountSpec, sync_job: SyncJobSpec) -> None:
        config = AppConfig(mounts=[mount_spec], sync_jobs=[sync_job])
        assert config.known_mount_ids() == {"a1b2c3d4"}
        assert config.known_sync_ids() == {"e5f6g7h8"}

    def test_duplicate_id_rejected(self, mount_spec: MountSpec, sync_job: SyncJobSpec) -> None:
        config = AppConfig(mounts=[mount_spec], sync_jobs=[sync_job])
        with pytest.raises(ValueError, match="already exists"):
            config.add_mount(mount_spec.model_copy())
        with pytest.raises(ValueError, match="already exists"):
            config.add_sync_job(sync_job.model_copy())

    def test_remove_by_id(self, mount_spec: MountSpec, sync_job: SyncJobSpec) -> None:
        config = AppConfig(mounts=[mount_spec], sync_jobs=[sync_job])
        config.remove_mount("a1b2c3d4")
        config.remove_sync_job("e5f6g7h8")
        assert config.mounts == []
        assert config.sync_jobs == []

    def test_remove_unknown_id_rejected(self, mount_spec: MountSpec) -> None:
        config = AppConfig(mounts=[mount_spec])
        with pytest.raises(ValueError, match="not found"):
            config.remove_mount("Google Drive")
        with pytest.raises(ValueError, match="not found"):
            config.remove_sync_job("e5f6g7h8")
        assert len(config.mounts) == 1


class TestMergeImported:
    def test_adds_mount(self, tmp_path: Path, mount_spec: MountSpec) -> None:
        config = AppConfig()
        stored = config.merge_imported(_imported(tmp_path, mount=mount_spec))
        assert stored is mount_spec
        assert config.mounts == [mount_spec]

    def test_clashing_id_and_name_renamed(self, tmp_path: Path, mount_spec: MountSpec) -> None:
        config = AppConfig(mounts=[mount_spec.model_copy()])
        stored = config.merge_imported(_imported(tmp_path, mount=mount_spec.model_copy()))
        assert stored.id != "a1b2c3d4"
        assert stored.name == "Google Drive-imported"
        assert len(config.mounts) == 2

    def test_adds_sync_job(self, tmp_path: Path, sync_job: SyncJobSpec) -> None:
        config = AppConfig()
        config.merge_imported(_imported(tmp_path, job=sync_job))
        assert config.known_sync_ids() == {"e5f6g7h8"}

    def test_empty_import_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="no configuration"):
            AppConfig().merge_imported(_imported(tmp_path))


class TestDefaultConfigPath:
    def test_explicit_file(self, tmp_path: Path) -> None:
        settings = Settings(config_file=tmp_path / "c.toml", _env_file=None)
        assert default_config_path(settings) == tmp_path / "c.toml"

    def test_xdg_config_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("RCLONE_MOUNT_SYNC_CONFIG_FILE", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        settings = Settings(_env_file=None)
        assert default_config_path(settings) == tmp_path / "rclone-mount-sync" / "config.toml"
