from __future__ import annotations

import importlib
import importlib.util
import logging
import os
import sys
from contextlib import suppress
from pathlib import Path
from typing import Any, Optional

from ..core.config.paths import config_dir


_pystray_mod = None
_pystray_item = None
_instance_lock_fh = None

LOCK_FILE_NAME = "dellg.lock"

logger = logging.getLogger(__name__)


def _gi_is_working() -> bool:
    """Return True if PyGObject looks usable (needed by the AppIndicator backend)."""

    try:
        spec = importlib.util.find_spec("gi")
        if spec is None:
            return False
        gi = importlib.import_module("gi")
        return hasattr(gi, "require_version")
    except Exception:
        return False


def _clear_failed_import(name: str) -> None:
    # A failed import can leave a half-initialized module behind.
    sys.modules.pop(name, None)


def get_pystray() -> tuple[Any, Any]:
    """Import pystray only when the tray is actually started.

    Importing it may connect to an X display right away, which breaks headless
    test runs that only need the tray modules importable.
    """

    global _pystray_mod, _pystray_item

    if _pystray_mod is not None and _pystray_item is not None:
        return _pystray_mod, _pystray_item

    explicit_backend = "PYSTRAY_BACKEND" in os.environ

    if not explicit_backend and _gi_is_working():
        os.environ["PYSTRAY_BACKEND"] = "appindicator"
        logger.info("pystray backend: appindicator (auto)")
        try:
            _pystray_mod = importlib.import_module("pystray")
        except Exception:
            _clear_failed_import("pystray")
            os.environ["PYSTRAY_BACKEND"] = "xorg"
            logger.info("pystray backend: xorg (fallback)")
            _pystray_mod = importlib.import_module("pystray")
    else:
        if explicit_backend:
            logger.info("pystray backend: %s (explicit)", os.environ.get("PYSTRAY_BACKEND"))
        try:
            _pystray_mod = importlib.import_module("pystray")
        except Exception as exc:
            raise RuntimeError(
                "pystray could not be initialized. The tray icon needs a desktop session (X11/Wayland)."
            ) from exc

    _pystray_item = getattr(_pystray_mod, "MenuItem")
    return _pystray_mod, _pystray_item


def acquire_single_instance_lock(lock_dir: Optional[Path] = None) -> bool:
    """Ensure only one instance drives the ACPI interface and the keyboard."""

    global _instance_lock_fh

    try:
        import fcntl  # Linux/Unix
    except ImportError:
        return True

    directory = lock_dir if lock_dir is not None else config_dir()
    with suppress(OSError):
        directory.mkdir(parents=True, exist_ok=True)
    lock_path = directory / LOCK_FILE_NAME

    fh = None
    try:
        fh = open(lock_path, "a+")
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        fh.seek(0)
        fh.truncate()
        fh.write(f"pid={os.getpid()}\n")
        fh.flush()
    except OSError:
        if fh is not None:
            fh.close()
        return False

    _instance_lock_fh = fh
    return True


def release_single_instance_lock() -> None:
    global _instance_lock_fh

    fh, _instance_lock_fh = _instance_lock_fh, None
    if fh is not None:
        with suppress(OSError):
            fh.close()
