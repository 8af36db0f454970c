"""Typed view of the persisted settings record."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from ..catalog import (
    DEFAULT_ZONE_COLORS,
    DURATION_MAX_MS,
    DURATION_MIN_MS,
    RGB,
    ZONE_COUNT,
    FanPreset,
    LightingMode,
    PowerMode,
)
from .defaults import DEFAULTS


def clamp_int(value: Any, *, default: int, min_v: int, max_v: int) -> int:
    try:
        v = int(value)
    except Exception:
        v = int(default)
    return max(int(min_v), min(int(max_v), v))


def coerce_rgb(value: Any, *, default: RGB = (0, 0, 0)) -> RGB:
    try:
        r, g, b = value
    except Exception:
        return default
    return (
        clamp_int(r, default=0, min_v=0, max_v=255),
        clamp_int(g, default=0, min_v=0, max_v=255),
        clamp_int(b, default=0, min_v=0, max_v=255),
    )


def coerce_zone_colors(value: Any) -> tuple[RGB, RGB, RGB, RGB]:
    items = list(value) if isinstance(value, (list, tuple)) else []
    zones = []
    for i in range(ZONE_COUNT):
        raw = items[i] if i < len(items) else None
        zones.append(coerce_rgb(raw, default=DEFAULT_ZONE_COLORS[i]))
    return tuple(zones)  # type: ignore[return-value]


def _coerce_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    try:
        return bool(value)
    except Exception:
        return default


@dataclass(frozen=True)
class LightingSettings:
    mode: LightingMode = LightingMode.STATIC
    color: RGB = (255, 0, 0)
    duration_ms: int = 1000
    zone_colors: tuple[RGB, RGB, RGB, RGB] = DEFAULT_ZONE_COLORS

    @property
    def red(self) -> int:
        return self.color[0]

    @property
    def green(self) -> int:
        return self.color[1]

    @property
    def blue(self) -> int:
        return self.color[2]


@dataclass(frozen=True)
class Configuration:
    """The reconciled, persisted user configuration.

    Instances are immutable; transitions build a new record with
    `dataclasses.replace` (see `with_changes`).
    """

    power_mode: PowerMode = PowerMode.BALANCED
    turbo_active: bool = False
    selected_fan_preset: Optional[FanPreset] = None
    cpu_fan_target: int = 50
    gpu_fan_target: int = 50
    lighting: LightingSettings = field(default_factory=LightingSettings)
    notifications_allowed: Optional[bool] = None

    def with_changes(self, **changes: Any) -> "Configuration":
        return replace(self, **changes)

    def with_lighting(self, **changes: Any) -> "Configuration":
        return replace(self, lighting=replace(self.lighting, **changes))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Configuration":
        """Build a record from a flat settings dict, coercing every field.

        Unknown enum values fall back to defaults; a preset name missing from
        the catalog is treated as "no preset".
        """

        merged = {**DEFAULTS, **(data or {})}

        power_mode = PowerMode.parse(merged.get("power_mode")) or PowerMode.BALANCED
        lighting_mode = LightingMode.parse(merged.get("lighting_mode")) or LightingMode.STATIC

        allowed = merged.get("notifications_allowed")
        notifications_allowed = None if allowed is None else _coerce_bool(allowed, default=False)

        return cls(
            power_mode=power_mode,
            turbo_active=_coerce_bool(merged.get("turbo_active"), default=False),
            selected_fan_preset=FanPreset.from_name(merged.get("selected_fan_preset")),
            cpu_fan_target=clamp_int(merged.get("cpu_fan_target"), default=50, min_v=0, max_v=100),
            gpu_fan_target=clamp_int(merged.get("gpu_fan_target"), default=50, min_v=0, max_v=100),
            lighting=LightingSettings(
                mode=lighting_mode,
                color=coerce_rgb(merged.get("color"), default=(255, 0, 0)),
                duration_ms=clamp_int(
                    merged.get("duration_ms"),
                    default=1000,
                    min_v=DURATION_MIN_MS,
                    max_v=DURATION_MAX_MS,
                ),
                zone_colors=coerce_zone_colors(merged.get("zone_colors")),
            ),
            notifications_allowed=notifications_allowed,
        )

    def to_dict(self) -> dict[str, Any]:
        """Flat JSON-friendly representation (the on-disk layout)."""

        return {
            "power_mode": self.power_mode.value,
            "turbo_active": bool(self.turbo_active),
            "selected_fan_preset": (
                self.selected_fan_preset.display_name if self.selected_fan_preset is not None else None
            ),
            "cpu_fan_target": int(self.cpu_fan_target),
            "gpu_fan_target": int(self.gpu_fan_target),
            "lighting_mode": self.lighting.mode.value,
            "color": list(self.lighting.color),
            "duration_ms": int(self.lighting.duration_ms),
            "zone_colors": [list(c) for c in self.lighting.zone_colors],
            "notifications_allowed": self.notifications_allowed,
        }


def default_configuration() -> Configuration:
    return Configuration.from_dict(DEFAULTS)
