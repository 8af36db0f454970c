"""Settings persistence: defaults, typed record, atomic JSON store."""

from __future__ import annotations

from .defaults import DEFAULTS
from .file_storage import load_config_settings, save_config_settings_atomic
from .model import Configuration, LightingSettings, default_configuration
from .paths import config_dir, config_file_path
from .store import SettingsStore


__all__ = [
    "DEFAULTS",
    "Configuration",
    "LightingSettings",
    "SettingsStore",
    "config_dir",
    "config_file_path",
    "default_configuration",
    "load_config_settings",
    "save_config_settings_atomic",
]
