"""Power mode, fan and thermal control through the acpi_call kernel module.

Commands are written to `/proc/acpi/call` by a privileged shell (pkexec, or a
plain shell when already root) and the reply is read back from the same node.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..utils.exceptions import CommandError, DevicePermissionError, is_authorization_dismissed

logger = logging.getLogger(__name__)

_ACPI_CALL_DEFAULT = Path("/proc/acpi/call")
_DMI_PRODUCT_DEFAULT = Path("/sys/class/dmi/id/product_name")

INTEL_WMAX_PATH = r"\_SB.AMWW.WMAX"
AMD_WMAX_PATH = r"\_SB.AMW3.WMAX"

# Reply used by the firmware for "sensor not available".
_UNAVAILABLE_REPLY = "0xffffffff"

# command -> fixed WMAX arguments; missing trailing args come from the caller.
_ACPI_CALLS: dict[str, tuple[str, ...]] = {
    "get_laptop_model": ("0x1a", "0x02", "0x02"),
    "get_power_mode": ("0x14", "0x0b", "0x00"),
    "set_power_mode": ("0x15", "0x01"),
    "toggle_g_mode": ("0x25", "0x01"),
    "get_g_mode": ("0x25", "0x02"),
    "set_fan1_boost": ("0x15", "0x02", "0x32"),
    "get_fan1_boost": ("0x14", "0x0c", "0x32"),
    "get_fan1_rpm": ("0x14", "0x05", "0x32"),
    "get_cpu_temp": ("0x14", "0x04", "0x01"),
    "set_fan2_boost": ("0x15", "0x02", "0x33"),
    "get_fan2_boost": ("0x14", "0x0c", "0x33"),
    "get_fan2_rpm": ("0x14", "0x05", "0x33"),
    "get_gpu_temp": ("0x14", "0x04", "0x06"),
}

_BASE_POWER_MODES: dict[str, str] = {
    "USTT_Balanced": "0xa0",
    "USTT_Performance": "0xa1",
    "USTT_Quiet": "0xa3",
    "USTT_FullSpeed": "0xa4",
    "USTT_BatterySaver": "0xa5",
    "G Mode": "0xab",
    "Manual": "0x0",
}


class LaptopModel(str, Enum):
    G15_5530 = "G15 5530"
    G15_5520 = "G15 5520"
    G15_5525 = "G15 5525"
    G15_5515 = "G15 5515"
    G15_5511 = "G15 5511"
    G16_7620 = "G16 7620"
    G16_7630 = "G16 7630"
    UNKNOWN = "Unknown"

    @property
    def supports_keyboard(self) -> bool:
        return self not in (LaptopModel.G16_7630, LaptopModel.UNKNOWN)


# (product-name tokens, model, is_amd)
_DMI_MODELS: tuple[tuple[tuple[str, str], LaptopModel, bool], ...] = (
    (("g15", "5530"), LaptopModel.G15_5530, False),
    (("g15", "5520"), LaptopModel.G15_5520, False),
    (("g15", "5525"), LaptopModel.G15_5525, True),
    (("g15", "5515"), LaptopModel.G15_5515, True),
    (("g15", "5511"), LaptopModel.G15_5511, False),
    (("g16", "7630"), LaptopModel.G16_7630, False),
    (("g16", "7620"), LaptopModel.G16_7620, False),
)

# get_laptop_model replies, per WMAX path.
_INTEL_MODEL_REPLIES = {"0x0": LaptopModel.G15_5530, "0x12c0": LaptopModel.G15_5520, "0xc80": LaptopModel.G15_5511}
_AMD_MODEL_REPLIES = {"0x12c0": LaptopModel.G15_5525, "0xc80": LaptopModel.G15_5515}


def acpi_call_path() -> Path:
    p = os.environ.get("DELLG_ACPI_CALL")
    return Path(p) if p else _ACPI_CALL_DEFAULT


def dmi_product_path() -> Path:
    p = os.environ.get("DELLG_DMI_PRODUCT")
    return Path(p) if p else _DMI_PRODUCT_DEFAULT


def is_supported() -> bool:
    """True when the acpi_call interface is present."""

    return acpi_call_path().exists()


def _privileged_argv(script: str) -> list[str]:
    if os.geteuid() == 0:
        return ["sh", "-c", script]

    pkexec = shutil.which("pkexec")
    if pkexec:
        return [pkexec, "sh", "-c", script]

    sudo = shutil.which("sudo")
    if sudo:
        return [sudo, "-n", "sh", "-c", script]

    raise DevicePermissionError("Neither pkexec nor sudo is available to reach /proc/acpi/call", detail="polkit")


def _run(argv: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(argv, check=False, capture_output=True, text=True)


def parse_hex_reply(reply: str) -> int:
    """Parse an acpi_call hex reply such as `0x1f40` (trailing junk ignored)."""

    text = str(reply or "").strip().strip("\x00").strip()
    if text == _UNAVAILABLE_REPLY:
        return 0
    if text.lower().startswith("0x"):
        text = text[2:]
    digits = ""
    for ch in text:
        if ch in "0123456789abcdefABCDEF":
            digits += ch
        else:
            break
    if not digits:
        raise CommandError(f"unexpected ACPI reply: {reply!r}")
    return int(digits, 16)


def percent_to_boost(percent: int) -> int:
    """Convert a 0-100 fan percentage to the firmware's 0-255 boost scale."""

    p = max(0, min(100, int(percent)))
    return int((p / 100.0) * 255.0)


@dataclass
class AcpiController:
    runner: Callable[[list[str]], subprocess.CompletedProcess] = _run
    wmax_path: str = INTEL_WMAX_PATH
    model: LaptopModel = LaptopModel.UNKNOWN

    def __post_init__(self) -> None:
        self.power_modes: dict[str, str] = dict(_BASE_POWER_MODES)

    # ---- model detection

    def detect_model(self) -> LaptopModel:
        """Detect the laptop model (DMI first, then WMAX probing)."""

        try:
            product = dmi_product_path().read_text(encoding="utf-8").strip().lower()
        except OSError:
            product = ""

        if product:
            logger.info("DMI product name: %s", product)
            for tokens, model, is_amd in _DMI_MODELS:
                if all(t in product for t in tokens):
                    self._set_model(model, is_amd=is_amd)
                    return model
            if "g15" in product or "g16" in product:
                logger.info("Generic Dell G-series detected, probing ACPI interface...")

        for path, replies, is_amd in (
            (INTEL_WMAX_PATH, _INTEL_MODEL_REPLIES, False),
            (AMD_WMAX_PATH, _AMD_MODEL_REPLIES, True),
        ):
            self.wmax_path = path
            try:
                reply = self.acpi_call("get_laptop_model").strip()
            except Exception as exc:
                logger.debug("ACPI model probe (%s) failed: %s", path, exc)
                continue
            model = replies.get(reply)
            if model is not None:
                self._set_model(model, is_amd=is_amd)
                return model

        logger.info("Could not determine the laptop model; using generic configuration")
        self.wmax_path = INTEL_WMAX_PATH
        return self.model

    def _set_model(self, model: LaptopModel, *, is_amd: bool) -> None:
        self.model = model
        self.wmax_path = AMD_WMAX_PATH if is_amd else INTEL_WMAX_PATH
        self.power_modes = dict(_BASE_POWER_MODES)

        if model in (LaptopModel.G15_5530, LaptopModel.G15_5520, LaptopModel.G16_7630):
            self.power_modes.pop("USTT_FullSpeed", None)
        elif model == LaptopModel.G15_5515:
            for name in ("USTT_Balanced", "USTT_Performance", "USTT_Quiet", "USTT_FullSpeed", "USTT_BatterySaver"):
                self.power_modes.pop(name, None)
        elif model == LaptopModel.G15_5511:
            self.power_modes.pop("USTT_FullSpeed", None)
            self.power_modes.pop("USTT_BatterySaver", None)
            self.power_modes["USTT_Cool"] = "0xa2"

        logger.info("Model detected: %s (%s)", model.value, "AMD" if is_amd else "Intel")

    @property
    def fan_control_limited(self) -> bool:
        # The EC on this model overrides manual fan targets.
        return self.model == LaptopModel.G15_5515

    # ---- raw calls

    def _payload(self, cmd: str, arg1: Optional[str], arg2: Optional[str]) -> str:
        args = _ACPI_CALLS.get(cmd)
        if args is None:
            raise CommandError(f"Unknown ACPI command: {cmd}")

        if len(args) == 3:
            values = (args[0], args[1], args[2], arg1 or "0x00")
        else:
            values = (args[0], args[1], arg1 or "0x00", arg2 or "0x00")
        return f"{self.wmax_path} 0 {values[0]} {{{values[1]}, {values[2]}, {values[3]}, 0x00}}"

    def acpi_call(self, cmd: str, arg1: Optional[str] = None, arg2: Optional[str] = None) -> str:
        """Run one WMAX method and return the trimmed reply."""

        node = acpi_call_path()
        payload = self._payload(cmd, arg1, arg2)
        script = f"echo {shlex.quote(payload)} > {shlex.quote(str(node))}; cat {shlex.quote(str(node))}"
        logger.debug("ACPI command [%s]: %s", cmd, payload)

        cp = self.runner(_privileged_argv(script))
        if cp.returncode != 0:
            stderr = str(cp.stderr or "").strip()
            if is_authorization_dismissed(stderr):
                raise DevicePermissionError(
                    "Authorization cancelled. Accept the authorization prompt to continue.",
                    detail="polkit",
                )
            logger.error("ACPI call '%s' failed: %s", cmd, stderr)
            raise CommandError(f"ACPI command '{cmd}' failed: {stderr}")

        lines = str(cp.stdout or "").strip().splitlines()
        if not lines:
            raise CommandError(f"No reply from ACPI command '{cmd}'")
        reply = lines[-1].strip().rstrip("%").strip("'")
        logger.debug("ACPI result [%s]: %s", cmd, reply)
        return reply

    # ---- power

    def set_power_mode(self, mode_name: str) -> None:
        value = self.power_modes.get(mode_name)
        if value is None:
            raise CommandError(
                f"Unknown mode '{mode_name}'. Available modes: {', '.join(sorted(self.power_modes))}"
            )
        logger.info("Power mode '%s' -> ACPI value %s (path %s)", mode_name, value, self.wmax_path)
        self.acpi_call("set_power_mode", value)

    def get_power_mode(self) -> str:
        return self.acpi_call("get_power_mode")

    def toggle_g_mode(self) -> None:
        self.acpi_call("toggle_g_mode")

    def get_g_mode(self) -> Optional[bool]:
        try:
            return parse_hex_reply(self.acpi_call("get_g_mode")) == 1
        except Exception as exc:
            logger.debug("G mode query failed: %s", exc)
            return None

    # ---- fans

    def set_fan_boost(self, fan_id: int, boost: int) -> None:
        cmd = "set_fan1_boost" if int(fan_id) == 1 else "set_fan2_boost"
        b = max(0, min(255, int(boost)))
        self.acpi_call(cmd, f"0x{b:02X}")

    def set_both_fans(self, cpu_boost: int, gpu_boost: int) -> tuple[int, list[str]]:
        """Set both fans; returns (successes, error messages)."""

        ok = 0
        errors: list[str] = []
        for label, fan_id, boost in (("CPU fan", 1, cpu_boost), ("GPU fan", 2, gpu_boost)):
            try:
                self.set_fan_boost(fan_id, boost)
                ok += 1
            except Exception as exc:
                errors.append(f"{label}: {exc}")
        return ok, errors

    def get_fan_rpm(self, fan_id: int) -> int:
        return parse_hex_reply(self.acpi_call("get_fan1_rpm" if int(fan_id) == 1 else "get_fan2_rpm"))

    def get_temp(self, sensor: str) -> int:
        if sensor not in ("cpu", "gpu"):
            raise CommandError(f"Invalid sensor: {sensor}")
        return parse_hex_reply(self.acpi_call(f"get_{sensor}_temp"))
