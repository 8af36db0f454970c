"""Turbo hotkey monitor built on python-evdev.

One reader thread per physical keyboard; each press of the target key fires
a zero-payload callback.
"""

from __future__ import annotations

import logging
import os
import select
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TURBO_KEY = "KEY_F9"

_KEYBOARD_KEYS = ("KEY_A", "KEY_Z", "KEY_ENTER")
_KEY_PRESS = 1
_SELECT_TIMEOUT_S = 0.5


def evdev_disabled() -> bool:
    return str(os.environ.get("DELLG_DISABLE_EVDEV", "")).strip().lower() in {"1", "true", "yes"}


def turbo_key_name() -> str:
    name = str(os.environ.get("DELLG_TURBO_KEY", "") or "").strip().upper()
    return name or DEFAULT_TURBO_KEY


def _import_evdev() -> Optional[Any]:
    try:
        import evdev  # type: ignore
    except Exception as exc:
        logger.info("evdev unavailable; turbo hotkey disabled: %s", exc)
        return None
    return evdev


def find_keyboards(evdev: Any, key_code: int) -> list:
    """Open every input device that looks like a keyboard and has *key_code*."""

    required = [int(evdev.ecodes.ecodes[name]) for name in _KEYBOARD_KEYS]

    out = []
    for path in evdev.list_devices():
        try:
            dev = evdev.InputDevice(path)
        except OSError as exc:
            logger.debug("Cannot open %s: %s", path, exc)
            continue

        try:
            keys = set(dev.capabilities(verbose=False).get(evdev.ecodes.EV_KEY, []))
        except Exception:
            keys = set()

        if all(k in keys for k in required) and int(key_code) in keys:
            logger.info("Keyboard found: %s - '%s'", path, getattr(dev, "name", "unknown"))
            out.append(dev)
        else:
            dev.close()
    return out


class HotkeyMonitor:
    def __init__(self, on_hotkey: Callable[[], None], *, key_name: Optional[str] = None) -> None:
        self._on_hotkey = on_hotkey
        self.key_name = key_name or turbo_key_name()

        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._devices: list = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> bool:
        """Start monitoring. Returns False when no keyboard could be watched."""

        if self.running:
            return True
        # Readers that died on a read error leave their devices open.
        self._release()
        if evdev_disabled():
            logger.info("Turbo hotkey disabled via DELLG_DISABLE_EVDEV")
            return False

        evdev = _import_evdev()
        if evdev is None:
            return False

        key_code = evdev.ecodes.ecodes.get(self.key_name)
        if key_code is None:
            logger.warning("Unknown hotkey name %s; turbo hotkey disabled", self.key_name)
            return False

        try:
            devices = find_keyboards(evdev, int(key_code))
        except OSError as exc:
            logger.warning("Cannot scan /dev/input: %s", exc)
            return False
        if not devices:
            logger.info("No keyboard with %s found in /dev/input (missing input group permissions?)", self.key_name)
            return False

        self._stop_event.clear()
        self._devices = devices
        for dev in devices:
            t = threading.Thread(
                target=self._read_loop,
                args=(evdev, dev, int(key_code)),
                name=f"dellg-hotkey-{os.path.basename(str(getattr(dev, 'path', 'dev')))}",
                daemon=True,
            )
            self._threads.append(t)
            t.start()
        return True

    def _read_loop(self, evdev: Any, dev: Any, key_code: int) -> None:
        path = getattr(dev, "path", "?")
        logger.info("Watching '%s' for %s at %s", getattr(dev, "name", "unknown"), self.key_name, path)

        while not self._stop_event.is_set():
            try:
                ready, _, _ = select.select([dev], [], [], _SELECT_TIMEOUT_S)
                if not ready:
                    continue
                events = list(dev.read())
            except (OSError, ValueError) as exc:
                if not self._stop_event.is_set():
                    logger.error("Error reading events from %s: %s", path, exc)
                return

            for event in events:
                if event.type != evdev.ecodes.EV_KEY:
                    continue
                if event.code == key_code and event.value == _KEY_PRESS:
                    logger.info("Hotkey %s detected on %s", self.key_name, path)
                    try:
                        self._on_hotkey()
                    except Exception:
                        logger.exception("Hotkey handler failed")

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        self._release(timeout)

    def _release(self, timeout: float = 2.0) -> None:
        threads, self._threads = self._threads, []
        for t in threads:
            if t is not threading.current_thread():
                t.join(timeout=timeout)

        devices, self._devices = self._devices, []
        for dev in devices:
            try:
                dev.close()
            except OSError as exc:
                logger.debug("Closing %s failed: %s", getattr(dev, "path", "?"), exc)
