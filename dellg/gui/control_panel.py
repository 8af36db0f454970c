#!/usr/bin/env python3
"""Dell G-series control panel window.

Presentation only: every decision goes through the ReconciliationEngine, and
every backend call runs off the Tk thread (see `utils.tk_async`).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

import tkinter as tk
from tkinter import messagebox, ttk

from ..core.backends.base import SensorSnapshot
from ..core.config.model import Configuration
from ..core.engine import TURBO_DISPLAY, ReconciliationEngine
from ..core.gateway import CommandResult, describe_error
from ..core.hotkey import HotkeyMonitor
from ..core.notifications import Notifier
from ..core.probe import CapabilityProbe, ProbeOutcome
from ..core.sensors import SensorFeed
from .keyboard_section import KeyboardSection
from .power_section import PowerSection
from .utils import apply_dark_theme, run_in_thread

logger = logging.getLogger(__name__)


class ControlPanel:
    def __init__(
        self,
        root: tk.Tk,
        *,
        engine: ReconciliationEngine,
        probe: CapabilityProbe,
        notifier: Optional[Notifier] = None,
        hotkey: Optional[HotkeyMonitor] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.root = root
        self.engine = engine
        self.probe = probe
        self.notifier = notifier
        self.hotkey = hotkey
        self._on_close = on_close
        self._closed = False

        self.root.title("Dell G Control")
        self.root.minsize(560, 600)
        apply_dark_theme(self.root)

        main = ttk.Frame(self.root, padding=16)
        main.pack(fill="both", expand=True)

        self._header = ttk.Label(main, text="Dell G Control", style="Header.TLabel")
        self._header.pack(anchor="w", pady=(0, 8))

        self._banner = ttk.Frame(main)
        ttk.Label(self._banner, text="System setup required", style="Error.TLabel").pack(side="left")
        ttk.Button(self._banner, text="Check again", command=self.check_setup).pack(side="right")
        self._setup_btn = ttk.Button(self._banner, text="Run setup", command=self.run_setup)
        self._setup_btn.pack(side="right", padx=(0, 6))

        self.keyboard = KeyboardSection(main, engine=engine, run_bg=self._run_bg, on_check_setup=self.check_setup)
        self.keyboard.frame.pack(fill="x", pady=(8, 8))

        self.power = PowerSection(main, engine=engine, run_bg=self._run_bg, on_check_setup=self.check_setup)
        self.power.frame.pack(fill="x", pady=(0, 8))

        self._status = ttk.Label(main, text="Initializing...", style="Muted.TLabel", wraplength=520)
        self._status.pack(side="bottom", anchor="w", pady=(8, 0))

        self._feed = SensorFeed(
            engine.gateway,
            on_snapshot=lambda snap: self._on_ui(lambda: self._show_sensors(snap)),
            on_error=lambda msg: self._on_ui(lambda: self.show_status(msg, is_error=True)),
        )
        self._unsubscribe: Optional[Callable[[], None]] = engine.subscribe(
            on_status=lambda result: self._on_ui(lambda: self._show_result(result)),
            on_change=lambda cfg: self._on_ui(lambda: self._refresh(cfg)),
        )

        self.root.protocol("WM_DELETE_WINDOW", self.on_close_requested)

    # ---- threading helpers

    def _on_ui(self, fn: Callable[[], None]) -> None:
        """Schedule *fn* on the Tk thread (callbacks arrive from workers)."""

        if self._closed:
            return
        try:
            self.root.after(0, fn)
        except (RuntimeError, tk.TclError):
            logger.debug("UI update dropped; window is gone")

    def _run_bg(self, work: Callable[[], Any]) -> None:
        run_in_thread(
            self.root,
            work,
            lambda _result: None,
            on_error=lambda exc: self.show_status(f"Error: {describe_error(exc)}", is_error=True),
        )

    # ---- status

    def show_status(self, message: str, *, is_error: bool = False) -> None:
        self._status.configure(text=message, style="Error.TLabel" if is_error else "TLabel")

    def _show_result(self, result: CommandResult) -> None:
        self.show_status(result.message, is_error=not result.ok)

    def _show_sensors(self, snapshot: SensorSnapshot) -> None:
        self.power.show_sensors(snapshot)

    def _refresh(self, cfg: Configuration) -> None:
        self.keyboard.refresh(cfg)
        self.power.refresh(cfg, TURBO_DISPLAY if cfg.turbo_active else cfg.power_mode.value)

    # ---- startup / setup

    def start(self) -> None:
        self.check_setup()

    def check_setup(self) -> None:
        """(Re-)run the capability probe and rebuild the view from its result."""

        self.show_status("Checking system...")

        def work() -> ProbeOutcome:
            outcome = self.probe.probe()
            self.engine.initialize(outcome.capabilities)
            return outcome

        run_in_thread(
            self.root,
            work,
            self._on_probe_done,
            on_error=lambda exc: self.show_status(f"Initialization error: {describe_error(exc)}", is_error=True),
        )

    def _on_probe_done(self, outcome: ProbeOutcome) -> None:
        caps = outcome.capabilities
        self._header.configure(text=f"Dell {caps.model}" if caps.model and caps.model != "Unknown" else "Dell G Control")

        if outcome.setup_needed:
            self._banner.pack(fill="x", pady=(0, 4), after=self._header)
        else:
            self._banner.pack_forget()

        self.keyboard.set_available(caps.keyboard_supported)
        self.power.set_capabilities(caps)
        self._refresh(self.engine.current())
        self.show_status(outcome.status, is_error=outcome.is_error)

        if caps.power_supported:
            self._feed.start()
            if self.hotkey is not None:
                self.hotkey.start()
        else:
            self._feed.stop()
            if self.hotkey is not None:
                self.hotkey.stop()

        if self.notifier is not None and self.notifier.allowed is None:
            self.notifier.request_permission()

    def run_setup(self) -> None:
        self.show_status("Running system setup...")
        self._setup_btn.state(["disabled"])

        def done(message: str) -> None:
            self._setup_btn.state(["!disabled"])
            self.show_status(message)
            messagebox.showinfo("Setup complete", message, parent=self.root)

        def failed(exc: BaseException) -> None:
            self._setup_btn.state(["!disabled"])
            self.show_status(f"Setup error: {describe_error(exc)}", is_error=True)

        run_in_thread(self.root, self.probe.run_setup, done, on_error=failed)

    # ---- window lifecycle

    def show(self) -> None:
        self.root.deiconify()
        self.root.lift()

    def on_close_requested(self) -> None:
        if self._on_close is not None:
            self._on_close()
            return
        self.close()
        self.root.destroy()

    def close(self) -> None:
        """Release the sensor feed, the hotkey monitor and engine listeners."""

        if self._closed:
            return
        self._closed = True
        self._feed.stop()
        if self.hotkey is not None:
            self.hotkey.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


def main() -> None:
    from ..tray.entrypoint import main_panel

    main_panel()


if __name__ == "__main__":
    main()
