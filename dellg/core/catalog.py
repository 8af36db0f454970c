"""Closed catalogs for power modes, fan presets, lighting modes and colors.

Persisted values are the lowercase enum values; backend names (the strings
the ACPI layer understands) live next to them so nothing matches free-form
strings at runtime.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

RGB = tuple[int, int, int]


class PowerMode(str, Enum):
    QUIET = "quiet"
    BALANCED = "balanced"
    PERFORMANCE = "performance"
    MANUAL = "manual"

    @property
    def backend_name(self) -> str:
        return _POWER_MODE_BACKEND_NAMES[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: object) -> Optional["PowerMode"]:
        """Parse a stored or backend mode name; returns None when unknown."""

        if isinstance(value, PowerMode):
            return value
        try:
            s = str(value).strip()
        except Exception:
            return None
        if not s:
            return None

        for mode, backend in _POWER_MODE_BACKEND_NAMES.items():
            if s == backend:
                return mode

        s = s.lower()
        if s.startswith("ustt_"):
            s = s[5:]
        try:
            return cls(s)
        except ValueError:
            return None


_POWER_MODE_BACKEND_NAMES: dict[PowerMode, str] = {
    PowerMode.QUIET: "USTT_Quiet",
    PowerMode.BALANCED: "USTT_Balanced",
    PowerMode.PERFORMANCE: "USTT_Performance",
    PowerMode.MANUAL: "Manual",
}


class FanPreset(Enum):
    """Named (cpu %, gpu %) pairs applied as a unit."""

    SILENT = ("Silent", 0, 0)
    NORMAL = ("Normal", 50, 50)
    TURBO = ("Turbo", 85, 85)
    MAX = ("Max", 100, 100)

    def __init__(self, display_name: str, cpu: int, gpu: int) -> None:
        self.display_name = display_name
        self.cpu = cpu
        self.gpu = gpu

    @classmethod
    def from_name(cls, name: object) -> Optional["FanPreset"]:
        """Look up a preset by display name (case-insensitive).

        Names outside the catalog resolve to None, which callers treat as
        "no preset selected".
        """

        if name is None:
            return None
        if isinstance(name, FanPreset):
            return name
        key = str(name).strip().lower()
        for preset in cls:
            if preset.display_name.lower() == key or preset.name.lower() == key:
                return preset
        return None


class LightingMode(str, Enum):
    STATIC = "static"
    MORPH = "morph"
    BREATHING = "breathing"
    SPECTRUM = "spectrum"
    RAINBOW = "rainbow"
    ZONE = "zone"
    OFF = "off"

    @classmethod
    def parse(cls, value: object) -> Optional["LightingMode"]:
        if isinstance(value, LightingMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


# Modes whose animation speed is driven by `duration_ms`.
DURATION_MODES = frozenset(
    {LightingMode.MORPH, LightingMode.BREATHING, LightingMode.SPECTRUM, LightingMode.RAINBOW}
)

# Modes the LED controller has no command for.
UNSUPPORTED_LIGHTING_MODES = frozenset({LightingMode.SPECTRUM, LightingMode.RAINBOW})

DURATION_MIN_MS = 255
DURATION_MAX_MS = 1000

ZONE_COUNT = 4

DEFAULT_ZONE_COLORS: tuple[RGB, RGB, RGB, RGB] = (
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 255),
)

PRESET_COLORS: tuple[tuple[str, RGB], ...] = (
    ("Red", (255, 0, 0)),
    ("Green", (0, 255, 0)),
    ("Blue", (0, 0, 255)),
    ("Yellow", (255, 255, 0)),
    ("Cyan", (0, 255, 255)),
    ("Magenta", (255, 0, 255)),
    ("White", (255, 255, 255)),
    ("Orange", (255, 128, 0)),
    ("Purple", (128, 0, 255)),
    ("Pink", (255, 128, 192)),
)
