"""Startup entrypoint.

Owns the startup sequence (logging, diagnostics, single instance) and then
launches the application.
"""

from __future__ import annotations

import logging
import sys

from .application import DellGApplication
from .startup import acquire_single_instance_or_exit, configure_logging, log_startup_diagnostics_if_debug

logger = logging.getLogger(__name__)


def _run(*, with_tray: bool) -> None:
    try:
        configure_logging()
        log_startup_diagnostics_if_debug()
        acquire_single_instance_or_exit()

        app = DellGApplication(with_tray=with_tray)
        app.run()

    except KeyboardInterrupt:
        logger.info("Shutting down...")
        sys.exit(0)
    except Exception as exc:
        logger.exception("Unhandled error: %s", exc)
        sys.exit(1)


def main() -> None:
    _run(with_tray=True)


def main_panel() -> None:
    """Control panel without the tray icon."""

    _run(with_tray=False)
