from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any

from ..catalog import PowerMode
from ..utils.exceptions import PersistenceError

# camelCase keys written by older releases -> current keys.
_LEGACY_KEYS = {
    "currentMode": "power_mode",
    "selectedPreset": "selected_fan_preset",
    "cpuFan": "cpu_fan_target",
    "gpuFan": "gpu_fan_target",
    "duration": "duration_ms",
    "currentLedMode": "lighting_mode",
    "isTurbo": "turbo_active",
}


def _migrate_legacy(loaded: dict[str, Any]) -> dict[str, Any]:
    out = dict(loaded)

    for old, new in _LEGACY_KEYS.items():
        if old in out:
            value = out.pop(old)
            out.setdefault(new, value)

    if any(k in out for k in ("red", "green", "blue")) and "color" not in out:
        out["color"] = [out.get("red", 0), out.get("green", 0), out.get("blue", 0)]
    for k in ("red", "green", "blue"):
        out.pop(k, None)

    zone_keys = [f"zone{i}" for i in range(4)]
    if any(k in out for k in zone_keys):
        zones = out.get("zone_colors")
        if not isinstance(zones, list):
            zones = [None, None, None, None]
            for i, k in enumerate(zone_keys):
                zones[i] = out.get(k)
            out["zone_colors"] = zones
    for k in zone_keys:
        out.pop(k, None)

    mode = out.get("power_mode")
    if isinstance(mode, str):
        parsed = PowerMode.parse(mode)
        out["power_mode"] = parsed.value if parsed is not None else mode.lower()

    if isinstance(out.get("lighting_mode"), str):
        out["lighting_mode"] = out["lighting_mode"].strip().lower()

    return out


def load_config_settings(
    *,
    config_file: Path,
    defaults: dict[str, Any],
    retries: int = 3,
    retry_delay: float = 0.02,
    logger,
) -> dict[str, Any] | None:
    """Load settings JSON with retries for transient partial writes.

    Returns a merged dict of `{**defaults, **loaded}` when successful.
    Returns None when the file does not exist.
    Raises PersistenceError when loading fails after retries.
    """

    if not config_file.exists():
        return None

    last_error: Exception | None = None
    for _ in range(max(1, retries)):
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                raise PersistenceError(f"settings record is not an object: {type(loaded).__name__}")

            return {**defaults, **_migrate_legacy(loaded)}
        except json.JSONDecodeError as e:
            # A writer may have truncated the file just before rewriting it.
            last_error = e
            time.sleep(retry_delay)
        except Exception as e:
            last_error = e
            break

    logger.warning("Failed to load settings from %s: %s", config_file, last_error)
    raise PersistenceError(str(last_error)) from last_error


def save_config_settings_atomic(*, config_dir: Path, config_file: Path, settings: dict[str, Any], logger) -> bool:
    """Save settings JSON atomically (write temp file then replace).

    Returns False (and logs) when the write failed.
    """

    try:
        config_dir.mkdir(parents=True, exist_ok=True)

        tmp_fd, tmp_path = tempfile.mkstemp(prefix="config.", suffix=".tmp", dir=str(config_dir))
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                json.dump(settings, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, config_file)
        finally:
            try:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
            except OSError as exc:
                logger.debug("Failed to remove temp settings file %s: %s", tmp_path, exc)

    except Exception as e:
        logger.warning("Failed to save settings: %s", e)
        return False
    return True
