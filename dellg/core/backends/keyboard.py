"""RGB keyboard (Dell ELC) access.

Detection uses pyusb without opening the device. Lighting commands are
delegated to an external LED helper executable that speaks the controller
protocol; it is elevated the same way the ACPI calls are.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import Callable, Sequence

from ..catalog import RGB
from ..utils.exceptions import CommandError, DevicePermissionError, is_authorization_dismissed

logger = logging.getLogger(__name__)

VENDOR_ID = 0x187C
PRODUCT_IDS: tuple[int, ...] = (0x0550, 0x0551)

_DEFAULT_HELPER = "/usr/local/bin/dellg-led-helper"


def led_helper_path() -> str:
    return os.environ.get("DELLG_LED_HELPER", _DEFAULT_HELPER)


def usb_scan_disabled() -> bool:
    return os.environ.get("DELLG_DISABLE_USB_SCAN") == "1"


def find_keyboard_usb_ids() -> list[str]:
    """Return `vvvv:pppp` ids of connected ELC keyboard controllers.

    Returns an empty list when scanning is disabled or pyusb is unusable.
    """

    if usb_scan_disabled():
        logger.debug("USB scan disabled via DELLG_DISABLE_USB_SCAN")
        return []

    try:
        import usb.core  # type: ignore
    except Exception as exc:
        logger.debug("pyusb unavailable: %s", exc)
        return []

    found: list[str] = []
    for pid in PRODUCT_IDS:
        try:
            dev = usb.core.find(idVendor=VENDOR_ID, idProduct=int(pid))
        except Exception as exc:
            logger.debug("usb.core.find failed for 0x%04x:0x%04x: %s", VENDOR_ID, pid, exc)
            continue
        if dev is not None:
            found.append(f"{VENDOR_ID:04x}:{int(pid):04x}")
    return found


def _run(argv: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(argv, check=False, capture_output=True, text=True)


def _rgb_args(color: RGB) -> list[str]:
    r, g, b = color
    return [str(int(r)), str(int(g)), str(int(b))]


class ElcKeyboard:
    """LED command front-end for the keyboard controller."""

    def __init__(self, *, runner: Callable[[list[str]], subprocess.CompletedProcess] = _run) -> None:
        self._runner = runner

    @staticmethod
    def is_present() -> bool:
        return bool(find_keyboard_usb_ids())

    def _helper_argv(self, args: list[str]) -> list[str]:
        helper = led_helper_path()
        if not os.path.exists(helper):
            raise CommandError(f"LED helper not found at {helper}")

        argv = [helper, *args]
        if os.geteuid() == 0:
            return argv

        pkexec = shutil.which("pkexec")
        if pkexec:
            return [pkexec, *argv]

        sudo = shutil.which("sudo")
        if sudo:
            return [sudo, "-n", *argv]

        # Works when udev rules already grant the user access.
        return argv

    def _apply(self, args: list[str]) -> None:
        argv = self._helper_argv(args)
        logger.debug("LED helper: %s", " ".join(args))
        cp = self._runner(argv)
        if cp.returncode == 0:
            return

        stderr = str(cp.stderr or "").strip()
        if is_authorization_dismissed(stderr):
            raise DevicePermissionError("Authorization cancelled for the LED helper.", detail="polkit")
        raise CommandError(f"LED helper '{args[0]}' failed: {stderr or cp.returncode}")

    def set_static(self, color: RGB) -> None:
        self._apply(["static", *_rgb_args(color)])

    def set_morph(self, color: RGB, duration_ms: int) -> None:
        self._apply(["morph", *_rgb_args(color), str(int(duration_ms))])

    def set_pulse(self, color: RGB, speed: int) -> None:
        self._apply(["pulse", *_rgb_args(color), str(int(speed))])

    def set_zones(self, colors: Sequence[RGB]) -> None:
        if len(colors) != 4:
            raise CommandError(f"expected 4 zone colors, got {len(colors)}")
        args = ["zones"]
        for c in colors:
            args += _rgb_args(c)
        self._apply(args)

    def remove_all_animations(self) -> None:
        self._apply(["off"])

    def set_dim(self, level: int) -> None:
        self._apply(["dim", str(max(0, min(100, int(level))))])
