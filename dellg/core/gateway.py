"""Command Gateway: the single seam between the core and a device backend.

State-changing commands never raise; they come back as a `CommandResult`
carrying the backend's status line or a readable failure reason. Queries
(probe steps, sensor reads) raise the typed errors from
`dellg.core.utils.exceptions` so their callers can branch on them.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Sequence, TypeVar

from .backends.base import DeviceBackend, DeviceCapabilities, SensorSnapshot
from .catalog import RGB
from .utils.exceptions import (
    CommandError,
    DellGError,
    DevicePermissionError,
    InitializationError,
    SetupError,
    TransientCommandError,
    is_device_disconnected,
    is_permission_denied,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    message: str

    @classmethod
    def success(cls, message: str) -> "CommandResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "CommandResult":
        return cls(ok=False, message=message)


def describe_error(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or type(exc).__name__


class CommandGateway:
    def __init__(self, backend: DeviceBackend) -> None:
        self.backend = backend
        # One hardware command at a time, whichever thread issued it.
        self._lock = threading.Lock()

    # ---- action commands

    def _dispatch(self, name: str, fn: Callable[..., Any], *args: Any) -> CommandResult:
        logger.debug("Command %s%r", name, args)
        try:
            with self._lock:
                message = fn(*args)
        except Exception as exc:
            if is_device_disconnected(exc):
                logger.warning("Command %s failed; device disconnected: %s", name, exc)
                return CommandResult.failure(f"Device disconnected: {describe_error(exc)}")
            logger.warning("Command %s failed: %s", name, exc)
            return CommandResult.failure(describe_error(exc))
        return CommandResult.success(str(message))

    def set_static_color(self, color: RGB) -> CommandResult:
        return self._dispatch("set_static_color", self.backend.set_static_color, tuple(color))

    def set_morph(self, color: RGB, duration_ms: int) -> CommandResult:
        return self._dispatch("set_morph", self.backend.set_morph, tuple(color), int(duration_ms))

    def set_pulse_effect(self, color: RGB, speed: int) -> CommandResult:
        return self._dispatch("set_pulse_effect", self.backend.set_pulse_effect, tuple(color), int(speed))

    def set_zone_colors(self, colors: Sequence[RGB]) -> CommandResult:
        return self._dispatch("set_zone_colors", self.backend.set_zone_colors, [tuple(c) for c in colors])

    def turn_off_leds(self) -> CommandResult:
        return self._dispatch("turn_off_leds", self.backend.turn_off_leds)

    def set_dim(self, level: int) -> CommandResult:
        return self._dispatch("set_dim", self.backend.set_dim, int(level))

    def set_power_mode(self, mode_name: str) -> CommandResult:
        return self._dispatch("set_power_mode", self.backend.set_power_mode, str(mode_name))

    def set_fan_boost(self, cpu_percent: int, gpu_percent: int) -> CommandResult:
        return self._dispatch("set_fan_boost", self.backend.set_fan_boost, int(cpu_percent), int(gpu_percent))

    def toggle_turbo(self) -> CommandResult:
        return self._dispatch("toggle_turbo", self.backend.toggle_turbo)

    # ---- queries

    def _query(self, name: str, fn: Callable[[], T], error_type: type[DellGError]) -> T:
        logger.debug("Query %s", name)
        try:
            with self._lock:
                return fn()
        except DellGError:
            raise
        except Exception as exc:
            if is_permission_denied(exc):
                raise DevicePermissionError(describe_error(exc), detail=name) from exc
            raise error_type(describe_error(exc)) from exc

    def init_device(self) -> DeviceCapabilities:
        return self._query("init_device", self.backend.init_device, InitializationError)

    def check_usb_devices(self) -> list[str]:
        return list(self._query("check_usb_devices", self.backend.check_usb_devices, CommandError))

    def check_permissions(self) -> str:
        return str(self._query("check_permissions", self.backend.check_permissions, CommandError))

    def run_setup_script(self) -> str:
        return str(self._query("run_setup_script", self.backend.run_setup_script, SetupError))

    def get_sensors(self) -> SensorSnapshot:
        return self._query("get_sensors", self.backend.get_sensors, TransientCommandError)
