from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ..catalog import RGB


@dataclass(frozen=True)
class DeviceCapabilities:
    """What the backend reported usable at startup.

    Never patched: a new probe produces a new instance.
    """

    model: str
    keyboard_supported: bool
    power_supported: bool
    fan_control_limited: bool = False
    turbo_initially_enabled: bool = False
    power_modes: tuple[str, ...] = ()

    @classmethod
    def unavailable(cls, model: str = "Unknown") -> "DeviceCapabilities":
        return cls(model=model, keyboard_supported=False, power_supported=False)


@dataclass(frozen=True)
class SensorSnapshot:
    """Live telemetry; replaced wholesale on every poll."""

    fan1_rpm: int
    fan2_rpm: int
    cpu_temp: float
    gpu_temp: float


class DeviceBackend(Protocol):
    """Hardware command surface.

    Every call either returns its value (a human-readable status string for
    state-changing commands) or raises; the gateway turns exceptions into
    status lines.
    """

    def init_device(self) -> DeviceCapabilities: ...

    def check_usb_devices(self) -> list[str]: ...

    def check_permissions(self) -> str: ...

    def run_setup_script(self) -> str: ...

    def set_static_color(self, color: RGB) -> str: ...

    def set_morph(self, color: RGB, duration_ms: int) -> str: ...

    def set_pulse_effect(self, color: RGB, speed: int) -> str: ...

    def set_zone_colors(self, colors: Sequence[RGB]) -> str: ...

    def turn_off_leds(self) -> str: ...

    def set_dim(self, level: int) -> str: ...

    def set_power_mode(self, mode_name: str) -> str: ...

    def set_fan_boost(self, cpu_percent: int, gpu_percent: int) -> str: ...

    def toggle_turbo(self) -> str: ...

    def get_sensors(self) -> SensorSnapshot: ...
