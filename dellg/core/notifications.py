"""Permission-gated desktop notifications."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Any, Callable, Optional

from .config.store import SettingsStore

logger = logging.getLogger(__name__)


class Notifier:
    """Deliver notifications once the user has allowed them.

    The user is asked at most once (through *ask*); the answer is stored in
    `notifications_allowed`. Delivery tries the tray icon first, then
    `notify-send`.
    """

    def __init__(self, store: SettingsStore, *, ask: Optional[Callable[[], bool]] = None) -> None:
        self._store = store
        self._ask = ask
        self.icon: Any = None

    def set_icon(self, icon: Any) -> None:
        self.icon = icon

    @property
    def allowed(self) -> Optional[bool]:
        return self._store.current().notifications_allowed

    def request_permission(self) -> bool:
        """Ask the user if nobody has yet; returns the remembered answer.

        Must be called from the thread that owns the *ask* UI.
        """

        allowed = self.allowed
        if allowed is not None:
            return bool(allowed)
        if self._ask is None:
            return False

        answer = bool(self._ask())
        self._store.update("notifications_allowed", answer)
        logger.info("Notifications %s by the user", "allowed" if answer else "declined")
        return answer

    def notify(self, title: str, message: str) -> bool:
        """Send a notification; returns True if one was delivered."""

        if not self.allowed:
            logger.debug("Notification suppressed (not allowed): %s", title)
            return False

        icon = self.icon
        notify_fn = getattr(icon, "notify", None) if icon is not None else None
        if callable(notify_fn):
            try:
                notify_fn(str(message), str(title))
                return True
            except Exception as exc:
                logger.debug("Tray notification failed: %s", exc)

        notify_send = shutil.which("notify-send")
        if not notify_send:
            logger.debug("No notification surface available for: %s", title)
            return False

        try:
            subprocess.run(
                [notify_send, str(title), str(message)],
                check=False,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            logger.debug("notify-send failed: %s", exc)
            return False
        return True
