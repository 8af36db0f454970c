"""Sensor Feed: fixed-cadence telemetry polling for display only."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .backends.base import SensorSnapshot
from .gateway import CommandGateway, describe_error
from .logging_utils import log_throttled
from .utils.exceptions import DellGError

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 3.0


class SensorFeed:
    """Poll `get_sensors` every few seconds while power control is usable.

    A failed tick reports through `on_error` and keeps the previous snapshot;
    the next tick tries again.
    """

    def __init__(
        self,
        gateway: CommandGateway,
        *,
        on_snapshot: Callable[[SensorSnapshot], None],
        on_error: Optional[Callable[[str], None]] = None,
        interval_s: float = POLL_INTERVAL_S,
    ) -> None:
        self._gateway = gateway
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self.interval_s = float(interval_s)

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_snapshot: Optional[SensorSnapshot] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll(self) -> Optional[SensorSnapshot]:
        """Run one tick. Returns the fresh snapshot, or None on failure."""

        try:
            snapshot = self._gateway.get_sensors()
        except DellGError as exc:
            message = f"Sensor read failed: {describe_error(exc)}"
            log_throttled(logger, "sensors.poll", interval_s=60, level=logging.WARNING, msg=message)
            if self._on_error is not None:
                self._on_error(message)
            return None

        self.last_snapshot = snapshot
        self._on_snapshot(snapshot)
        return snapshot

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll()
            except Exception:
                # A broken display callback must not end polling.
                logger.exception("Sensor feed callback failed")
            if self._stop_event.wait(self.interval_s):
                break

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="dellg-sensors", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
