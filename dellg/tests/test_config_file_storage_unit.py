#!/usr/bin/env python3
"""Unit tests for the settings file helpers (atomic writes, retries, migration)."""

from __future__ import annotations

import json
import logging

import pytest

from dellg.core.config.file_storage import load_config_settings, save_config_settings_atomic
from dellg.core.utils.exceptions import PersistenceError


@pytest.fixture
def temp_config_dir(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


class TestLoadConfigSettings:
    def test_load_returns_none_when_file_missing(self, temp_config_dir):
        result = load_config_settings(
            config_file=temp_config_dir / "missing.json",
            defaults={"power_mode": "balanced"},
            logger=logging.getLogger(),
        )

        assert result is None

    def test_load_merges_defaults_with_loaded_data(self, temp_config_dir):
        config_file = temp_config_dir / "config.json"
        config_file.write_text(json.dumps({"cpu_fan_target": 75}))

        result = load_config_settings(
            config_file=config_file,
            defaults={"cpu_fan_target": 50, "gpu_fan_target": 50},
            logger=logging.getLogger(),
        )

        assert result == {"cpu_fan_target": 75, "gpu_fan_target": 50}

    def test_load_migrates_legacy_camelcase_record(self, temp_config_dir):
        config_file = temp_config_dir / "config.json"
        config_file.write_text(
            json.dumps(
                {
                    "currentMode": "USTT_Performance",
                    "selectedPreset": "Turbo",
                    "cpuFan": 85,
                    "gpuFan": 80,
                    "red": 10,
                    "green": 20,
                    "blue": 30,
                    "duration": 500,
                    "currentLedMode": "Morph",
                    "isTurbo": True,
                    "zone0": [1, 1, 1],
                    "zone3": [4, 4, 4],
                }
            )
        )

        result = load_config_settings(config_file=config_file, defaults={}, logger=logging.getLogger())

        assert result["power_mode"] == "performance"
        assert result["selected_fan_preset"] == "Turbo"
        assert result["cpu_fan_target"] == 85
        assert result["gpu_fan_target"] == 80
        assert result["color"] == [10, 20, 30]
        assert result["duration_ms"] == 500
        assert result["lighting_mode"] == "morph"
        assert result["turbo_active"] is True
        assert result["zone_colors"] == [[1, 1, 1], None, None, [4, 4, 4]]
        for legacy in ("red", "currentMode", "zone0", "isTurbo"):
            assert legacy not in result

    def test_load_retries_on_json_decode_error_then_raises(self, temp_config_dir, monkeypatch):
        config_file = temp_config_dir / "config.json"
        config_file.write_text("{not json")

        sleeps = []
        monkeypatch.setattr("dellg.core.config.file_storage.time.sleep", lambda s: sleeps.append(s))

        with pytest.raises(PersistenceError):
            load_config_settings(
                config_file=config_file,
                defaults={},
                retries=3,
                retry_delay=0.01,
                logger=logging.getLogger(),
            )

        assert sleeps == [0.01, 0.01, 0.01]

    def test_load_rejects_non_object_record(self, temp_config_dir):
        config_file = temp_config_dir / "config.json"
        config_file.write_text("[1, 2, 3]")

        with pytest.raises(PersistenceError):
            load_config_settings(config_file=config_file, defaults={}, logger=logging.getLogger())


class TestSaveConfigSettingsAtomic:
    def test_save_writes_json_and_leaves_no_temp_files(self, temp_config_dir):
        config_file = temp_config_dir / "config.json"

        ok = save_config_settings_atomic(
            config_dir=temp_config_dir,
            config_file=config_file,
            settings={"power_mode": "quiet"},
            logger=logging.getLogger(),
        )

        assert ok is True
        assert json.loads(config_file.read_text()) == {"power_mode": "quiet"}
        assert [p.name for p in temp_config_dir.iterdir()] == ["config.json"]

    def test_save_creates_missing_directory(self, tmp_path):
        config_dir = tmp_path / "nested" / "dir"

        ok = save_config_settings_atomic(
            config_dir=config_dir,
            config_file=config_dir / "config.json",
            settings={},
            logger=logging.getLogger(),
        )

        assert ok is True
        assert (config_dir / "config.json").exists()

    def test_save_returns_false_and_cleans_up_when_replace_fails(self, temp_config_dir, monkeypatch, caplog):
        def boom(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr("dellg.core.config.file_storage.os.replace", boom)

        with caplog.at_level(logging.WARNING):
            ok = save_config_settings_atomic(
                config_dir=temp_config_dir,
                config_file=temp_config_dir / "config.json",
                settings={"a": 1},
                logger=logging.getLogger("test"),
            )

        assert ok is False
        assert list(temp_config_dir.iterdir()) == []
        assert "Failed to save settings" in caplog.text
