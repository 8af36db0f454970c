from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from ..catalog import RGB
from ..utils.exceptions import CommandError, InitializationError, SetupError, TransientCommandError
from . import acpi as acpi_mod
from .acpi import AcpiController, LaptopModel, percent_to_boost
from .base import DeviceCapabilities, SensorSnapshot
from .keyboard import ElcKeyboard, find_keyboard_usb_ids

logger = logging.getLogger(__name__)

UDEV_RULES_PATH = Path("/etc/udev/rules.d/99-dell-g-series.rules")
POLKIT_RULES_PATH = Path("/etc/polkit-1/rules.d/50-dell-acpi-nopasswd.rules")

_SETUP_SCRIPT_NAME = "setup-acpi.sh"


def _candidate_setup_scripts() -> list[Path]:
    paths: list[Path] = []

    env = os.environ.get("DELLG_SETUP_SCRIPT")
    if env:
        paths.append(Path(env))

    # Source checkout: <repo>/scripts/setup-acpi.sh
    start = Path(__file__).resolve()
    for parent in start.parents:
        cand = parent / "scripts" / _SETUP_SCRIPT_NAME
        if cand not in paths:
            paths.append(cand)

    for sys_cand in (
        Path("/usr/share/dellg") / _SETUP_SCRIPT_NAME,
        Path("/usr/local/share/dellg") / _SETUP_SCRIPT_NAME,
    ):
        if sys_cand not in paths:
            paths.append(sys_cand)
    return paths


def find_setup_script() -> Optional[Path]:
    for p in _candidate_setup_scripts():
        if p.is_file():
            return p
    return None


class SystemBackend:
    """Production backend: ACPI for power/fans, LED helper for the keyboard."""

    name = "system"

    def __init__(
        self,
        *,
        acpi: Optional[AcpiController] = None,
        keyboard: Optional[ElcKeyboard] = None,
    ) -> None:
        self._acpi = acpi
        self._keyboard = keyboard

    # ---- setup / discovery

    def init_device(self) -> DeviceCapabilities:
        acpi = self._acpi
        if acpi is None and acpi_mod.is_supported():
            acpi = AcpiController()
        if acpi is not None:
            acpi.detect_model()
        self._acpi = acpi

        if self._keyboard is None and ElcKeyboard.is_present():
            self._keyboard = ElcKeyboard()

        if acpi is None and self._keyboard is None:
            raise InitializationError(
                "No supported hardware found (acpi_call not loaded and no 187c:0550/0551 keyboard)"
            )

        model = acpi.model if acpi is not None else LaptopModel.UNKNOWN
        turbo = bool(acpi.get_g_mode()) if acpi is not None else False

        return DeviceCapabilities(
            model=model.value,
            keyboard_supported=self._keyboard is not None,
            power_supported=acpi is not None,
            fan_control_limited=bool(acpi.fan_control_limited) if acpi is not None else False,
            turbo_initially_enabled=turbo,
            power_modes=tuple(sorted(acpi.power_modes)) if acpi is not None else (),
        )

    def check_usb_devices(self) -> list[str]:
        devices = find_keyboard_usb_ids()
        if not devices:
            raise CommandError("No compatible Dell keyboard controller found. Check USB permissions.")
        return devices

    def check_permissions(self) -> str:
        missing = []
        if not UDEV_RULES_PATH.exists():
            missing.append("udev")
        if not POLKIT_RULES_PATH.exists():
            missing.append("polkit")
        if not missing:
            return "configured"
        return "missing:" + ",".join(missing)

    def run_setup_script(self) -> str:
        script = find_setup_script()
        if script is None:
            raise SetupError(f"Setup script {_SETUP_SCRIPT_NAME} not found")

        pkexec = shutil.which("pkexec")
        argv = ["bash", str(script)] if os.geteuid() == 0 or not pkexec else [pkexec, "bash", str(script)]
        try:
            cp = subprocess.run(argv, check=False, capture_output=True, text=True)
        except OSError as exc:
            raise SetupError(f"Could not run setup script: {exc}") from exc

        if cp.returncode != 0:
            raise SetupError(f"Setup failed: {str(cp.stderr or '').strip()}")
        return "Setup complete. Restart the system to apply the changes."

    # ---- keyboard

    def _kb(self) -> ElcKeyboard:
        if self._keyboard is None:
            raise CommandError("Keyboard not available")
        return self._keyboard

    def set_static_color(self, color: RGB) -> str:
        self._kb().set_static(color)
        r, g, b = color
        return f"Color applied: RGB({r}, {g}, {b})"

    def set_morph(self, color: RGB, duration_ms: int) -> str:
        self._kb().set_morph(color, duration_ms)
        return "Morph mode applied"

    def set_pulse_effect(self, color: RGB, speed: int) -> str:
        self._kb().set_pulse(color, speed)
        return "Breathing mode applied"

    def set_zone_colors(self, colors: Sequence[RGB]) -> str:
        self._kb().set_zones(colors)
        return "Zone colors applied"

    def turn_off_leds(self) -> str:
        self._kb().remove_all_animations()
        return "LEDs turned off"

    def set_dim(self, level: int) -> str:
        self._kb().set_dim(level)
        return f"Brightness set: {int(level)}%"

    # ---- power

    def _power(self) -> AcpiController:
        if self._acpi is None:
            raise CommandError("ACPI not available")
        return self._acpi

    def set_power_mode(self, mode_name: str) -> str:
        acpi = self._power()
        acpi.set_power_mode(mode_name)

        if mode_name == "USTT_Performance":
            ok, errors = acpi.set_both_fans(0xFF, 0xFF)
            if ok:
                return f"Performance mode enabled - fans at 100% ({ok}/2 succeeded)"
            return f"Performance mode enabled (fan boost not supported: {', '.join(errors)})"

        return f"Power mode: {mode_name}"

    def set_fan_boost(self, cpu_percent: int, gpu_percent: int) -> str:
        ok, errors = self._power().set_both_fans(percent_to_boost(cpu_percent), percent_to_boost(gpu_percent))
        if not ok:
            raise CommandError(
                "Manual fan control is not available on this system. Errors: " + ", ".join(errors)
            )
        return f"Fans set: CPU {int(cpu_percent)}%, GPU {int(gpu_percent)}% ({ok}/2 succeeded)"

    def toggle_turbo(self) -> str:
        self._power().toggle_g_mode()
        return "Turbo (G mode) toggled"

    def get_sensors(self) -> SensorSnapshot:
        acpi = self._power()
        values: dict[str, int] = {}
        failures: list[str] = []
        for key, read in (
            ("fan1_rpm", lambda: acpi.get_fan_rpm(1)),
            ("fan2_rpm", lambda: acpi.get_fan_rpm(2)),
            ("cpu_temp", lambda: acpi.get_temp("cpu")),
            ("gpu_temp", lambda: acpi.get_temp("gpu")),
        ):
            try:
                values[key] = int(read())
            except Exception as exc:
                failures.append(f"{key}: {exc}")
                values[key] = 0

        if len(failures) == 4:
            raise TransientCommandError("Sensor read failed: " + "; ".join(failures))
        if failures:
            logger.debug("Partial sensor read: %s", "; ".join(failures))

        return SensorSnapshot(
            fan1_rpm=values["fan1_rpm"],
            fan2_rpm=values["fan2_rpm"],
            cpu_temp=float(values["cpu_temp"]),
            gpu_temp=float(values["gpu_temp"]),
        )
