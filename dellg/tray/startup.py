from __future__ import annotations

import logging
import os
import sys

from .. import __version__
from ..core.backends import acpi
from ..core.backends.keyboard import find_keyboard_usb_ids, led_helper_path
from ..core.config.paths import config_file_path
from . import runtime


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging once; handlers a caller installed are kept."""

    if logging.getLogger().handlers:
        return

    level = logging.DEBUG if os.environ.get("DELLG_DEBUG") else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def log_startup_diagnostics_if_debug() -> None:
    """Dump the environment the app will talk to when DELLG_DEBUG is set.

    Never fails startup.
    """

    if not os.environ.get("DELLG_DEBUG"):
        return

    try:
        lines = [
            f"version: {__version__}",
            f"config: {config_file_path()}",
            f"acpi_call: {acpi.acpi_call_path()} (present={acpi.is_supported()})",
            f"led helper: {led_helper_path()} (present={os.path.exists(led_helper_path())})",
            f"keyboard usb: {', '.join(find_keyboard_usb_ids()) or 'none'}",
        ]
    except Exception as exc:
        logger.debug("Startup diagnostics failed: %s", exc)
        return
    logger.debug("Startup diagnostics:\n  %s", "\n  ".join(lines))


def acquire_single_instance_or_exit() -> None:
    """Acquire the single-instance lock or exit with code 0."""

    if runtime.acquire_single_instance_lock():
        return

    logger.error("Dell G Control is already running (lock held). Not starting a second instance.")
    sys.exit(0)
