from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import pytest


def _hardware_opted_in() -> bool:
    return os.environ.get("DELLG_ALLOW_HARDWARE") == "1"


# Safety default: during pytest, never touch the user's real config, USB bus
# or input devices.
if not _hardware_opted_in():
    os.environ.setdefault("DELLG_CONFIG_DIR", tempfile.mkdtemp(prefix="dellg-test-config-"))
    os.environ.setdefault("DELLG_DISABLE_USB_SCAN", "1")
    os.environ.setdefault("DELLG_DISABLE_EVDEV", "1")


class FakeBackend:
    """In-memory DeviceBackend recording every call.

    Put an exception in `failures[<method name>]` to make that method raise.
    """

    def __init__(self, capabilities=None) -> None:
        from dellg.core.backends.base import DeviceCapabilities, SensorSnapshot

        self.capabilities = capabilities or DeviceCapabilities(
            model="G15 5530",
            keyboard_supported=True,
            power_supported=True,
        )
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, Exception] = {}
        self.usb_devices: list[str] = ["187c:0550"]
        self.permissions = "configured"
        self.sensors = SensorSnapshot(fan1_rpm=2100, fan2_rpm=2300, cpu_temp=55.0, gpu_temp=48.0)

    def _call(self, name: str, *args: Any, result: Any = None) -> Any:
        self.calls.append((name, args))
        exc = self.failures.get(name)
        if exc is not None:
            raise exc
        return result if result is not None else f"{name} ok"

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def init_device(self):
        return self._call("init_device", result=self.capabilities)

    def check_usb_devices(self):
        return self._call("check_usb_devices", result=list(self.usb_devices))

    def check_permissions(self):
        return self._call("check_permissions", result=self.permissions)

    def run_setup_script(self):
        return self._call("run_setup_script", result="Setup complete")

    def set_static_color(self, color):
        return self._call("set_static_color", color)

    def set_morph(self, color, duration_ms):
        return self._call("set_morph", color, duration_ms)

    def set_pulse_effect(self, color, speed):
        return self._call("set_pulse_effect", color, speed)

    def set_zone_colors(self, colors):
        return self._call("set_zone_colors", colors)

    def turn_off_leds(self):
        return self._call("turn_off_leds")

    def set_dim(self, level):
        return self._call("set_dim", level)

    def set_power_mode(self, mode_name):
        return self._call("set_power_mode", mode_name)

    def set_fan_boost(self, cpu_percent, gpu_percent):
        return self._call("set_fan_boost", cpu_percent, gpu_percent)

    def toggle_turbo(self):
        return self._call("toggle_turbo")

    def get_sensors(self):
        return self._call("get_sensors", result=self.sensors)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    return tmp_path / "config" / "config.json"


@pytest.fixture
def store(settings_file: Path):
    from dellg.core.config.store import SettingsStore

    return SettingsStore(config_file=settings_file)


@pytest.fixture
def gateway(fake_backend: FakeBackend):
    from dellg.core.gateway import CommandGateway

    return CommandGateway(fake_backend)


@pytest.fixture
def make_engine(store, gateway, fake_backend: FakeBackend):
    """Build an initialized engine; pass capabilities to override the fake's."""

    from dellg.core.engine import ReconciliationEngine

    def _make(capabilities=None, notify=None) -> "ReconciliationEngine":
        caps = capabilities if capabilities is not None else fake_backend.capabilities
        engine = ReconciliationEngine(store=store, gateway=gateway, notify=notify)
        engine.initialize(caps)
        fake_backend.calls.clear()
        return engine

    return _make

