"""Default settings record.

Written out on first run and used whenever the stored record is missing or
unreadable.
"""

from __future__ import annotations

DEFAULTS: dict = {
    # quiet | balanced | performance | manual
    "power_mode": "balanced",
    "turbo_active": False,
    # Fan preset display name (see catalog.FanPreset) or None.
    "selected_fan_preset": None,
    # Manual fan targets, percent (0-100).
    "cpu_fan_target": 50,
    "gpu_fan_target": 50,
    # static | morph | breathing | spectrum | rainbow | zone | off
    "lighting_mode": "static",
    "color": [255, 0, 0],
    # Animation duration for morph/breathing/spectrum/rainbow (255-1000 ms).
    "duration_ms": 1000,
    # Per-zone colors; only read in zone mode but always persisted.
    "zone_colors": [[255, 0, 0], [0, 255, 0], [0, 0, 255], [255, 255, 255]],
    # None until the user has been asked once.
    "notifications_allowed": None,
}
