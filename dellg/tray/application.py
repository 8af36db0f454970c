"""Application wiring: store, backend, engine, control panel and tray icon."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import tkinter as tk
from tkinter import messagebox

from ..core.backends.base import DeviceBackend
from ..core.backends.system import SystemBackend
from ..core.catalog import LightingMode
from ..core.config.model import Configuration
from ..core.config.store import SettingsStore
from ..core.engine import ReconciliationEngine
from ..core.gateway import CommandGateway
from ..core.hotkey import HotkeyMonitor
from ..core.notifications import Notifier
from ..core.probe import CapabilityProbe
from ..gui.control_panel import ControlPanel
from . import runtime
from .icon import create_icon_image
from .menu import build_menu

logger = logging.getLogger(__name__)


class DellGApplication:
    def __init__(
        self,
        *,
        with_tray: bool = True,
        backend: Optional[DeviceBackend] = None,
        store: Optional[SettingsStore] = None,
    ) -> None:
        self.with_tray = bool(with_tray)
        self.store = store if store is not None else SettingsStore()
        self.gateway = CommandGateway(backend if backend is not None else SystemBackend())
        self.probe = CapabilityProbe(self.gateway)
        self.notifier = Notifier(self.store, ask=self._ask_notifications)
        self.engine = ReconciliationEngine(store=self.store, gateway=self.gateway, notify=self.notifier.notify)
        self.hotkey = HotkeyMonitor(self.engine.on_turbo_toggled_externally)

        self.root: Optional[tk.Tk] = None
        self.panel: Optional[ControlPanel] = None
        self.icon: Any = None
        self._pystray: Any = None
        self._item: Any = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._shut_down = False

    # ---- run / teardown

    def run(self) -> None:
        self.root = tk.Tk()
        self.panel = ControlPanel(
            self.root,
            engine=self.engine,
            probe=self.probe,
            notifier=self.notifier,
            hotkey=self.hotkey,
            on_close=self._on_window_close,
        )
        self._unsubscribe = self.engine.subscribe(on_change=self._on_config_changed)

        if self.with_tray:
            self._start_tray()

        self.panel.start()
        try:
            self.root.mainloop()
        finally:
            self.shutdown()

    def _start_tray(self) -> None:
        try:
            pystray, item = runtime.get_pystray()
        except RuntimeError as exc:
            logger.warning("Tray icon disabled: %s", exc)
            return

        self._pystray, self._item = pystray, item
        icon = pystray.Icon(
            "dellg",
            self._icon_image(self.store.current()),
            "Dell G Control",
            menu=build_menu(self, pystray=pystray, item=item),
        )

        run_detached = getattr(icon, "run_detached", None)
        if not callable(run_detached):
            logger.warning("This pystray backend cannot run beside Tk; continuing without a tray icon")
            return

        run_detached()
        self.icon = icon
        self.notifier.set_icon(icon)
        logger.info("Tray icon started")

    def shutdown(self) -> None:
        """Stop the feed, the hotkey monitor, listeners and the tray icon."""

        if self._shut_down:
            return
        self._shut_down = True

        if self.panel is not None:
            self.panel.close()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        icon, self.icon = self.icon, None
        self.notifier.set_icon(None)
        if icon is not None:
            try:
                icon.stop()
            except Exception as exc:
                logger.debug("Stopping tray icon failed: %s", exc)

        runtime.release_single_instance_lock()
        logger.info("Shut down")

    def quit(self) -> None:
        root = self.root
        if root is None:
            return
        try:
            root.after(0, root.destroy)
        except (RuntimeError, tk.TclError):
            logger.debug("Tk root already gone")

    # ---- callbacks

    def _on_window_close(self) -> None:
        # With a tray icon, closing the window only hides it.
        if self.icon is not None and self.root is not None:
            self.root.withdraw()
            return
        self.quit()

    def show_panel(self) -> None:
        if self.root is None or self.panel is None:
            return
        try:
            self.root.after(0, self.panel.show)
        except (RuntimeError, tk.TclError):
            logger.debug("Cannot show panel; Tk root is gone")

    def dispatch(self, work: Callable[[], Any]) -> None:
        """Run a tray action off the tray thread."""

        def runner() -> None:
            try:
                work()
            except Exception:
                logger.exception("Tray action failed")

        threading.Thread(target=runner, daemon=True).start()

    def _on_config_changed(self, cfg: Configuration) -> None:
        icon = self.icon
        if icon is None:
            return
        try:
            icon.icon = self._icon_image(cfg)
            icon.menu = build_menu(self, pystray=self._pystray, item=self._item)
            icon.update_menu()
        except Exception as exc:
            logger.debug("Tray refresh failed: %s", exc)

    @staticmethod
    def _icon_image(cfg: Configuration):
        return create_icon_image(
            cfg.lighting.color,
            turbo=bool(cfg.turbo_active),
            lit=cfg.lighting.mode != LightingMode.OFF,
        )

    def _ask_notifications(self) -> bool:
        return bool(
            messagebox.askyesno(
                "Notifications",
                "Show desktop notifications when turbo mode changes?",
                parent=self.root,
            )
        )
