from __future__ import annotations

import logging
from collections.abc import Callable
from threading import Thread
from typing import Optional, TypeVar

import tkinter as tk


T = TypeVar("T")

logger = logging.getLogger(__name__)


def run_in_thread(
    root: tk.Misc,
    work: Callable[[], T],
    on_done: Callable[[T], None],
    *,
    on_error: Optional[Callable[[BaseException], None]] = None,
    delay_ms: int = 0,
) -> None:
    """Run *work* in a daemon thread and call on_done(result) on Tk's thread.

    Backend calls block (pkexec prompts, ACPI round-trips); this keeps the
    window responsive. An exception in *work* goes to *on_error* on Tk's
    thread, or to the log when no handler is given.
    """

    def deliver(fn: Callable[[], None]) -> None:
        try:
            root.after(0, fn)
        except (RuntimeError, tk.TclError):
            # Window already destroyed.
            logger.debug("Dropping background result; Tk root is gone")

    def worker() -> None:
        try:
            result = work()
        except Exception as exc:
            if on_error is None:
                logger.exception("Background task failed")
                return
            deliver(lambda err=exc: on_error(err))
            return
        deliver(lambda: on_done(result))

    if delay_ms and delay_ms > 0:
        root.after(delay_ms, lambda: Thread(target=worker, daemon=True).start())
    else:
        Thread(target=worker, daemon=True).start()
