"""Settings Store: durable key/value record of the user configuration.

All writes go through one lock so every update is derived from the most
recently returned record, never from a copy cached by a caller.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ..catalog import FanPreset
from ..utils.exceptions import PersistenceError
from .defaults import DEFAULTS
from .file_storage import load_config_settings, save_config_settings_atomic
from .model import Configuration, default_configuration
from .paths import config_file_path

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Convert enums/tuples into JSON-friendly values."""

    if isinstance(value, FanPreset):
        return value.display_name
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


class SettingsStore:
    def __init__(self, *, config_file: Optional[Path] = None) -> None:
        # Resolved lazily so test harnesses can point env vars at a temp dir.
        self._config_file = config_file
        self._lock = threading.RLock()
        self._current: Optional[Configuration] = None

    @property
    def config_file(self) -> Path:
        return self._config_file if self._config_file is not None else config_file_path()

    def load(self, *, retries: int = 3, retry_delay: float = 0.02) -> Configuration:
        """Load the persisted record.

        A missing record yields the defaults (and writes them out). A corrupt
        record also yields the defaults; that failure is logged, never raised.
        """

        with self._lock:
            try:
                loaded = load_config_settings(
                    config_file=self.config_file,
                    defaults=DEFAULTS,
                    retries=retries,
                    retry_delay=retry_delay,
                    logger=logger,
                )
            except PersistenceError:
                logger.warning("Using default settings; stored record at %s is unreadable", self.config_file)
                self._current = default_configuration()
                return self._current

            if loaded is None:
                logger.info("No stored settings at %s; writing defaults", self.config_file)
                cfg = default_configuration()
                self._persist(cfg)
            else:
                cfg = Configuration.from_dict(loaded)

            self._current = cfg
            return cfg

    def current(self) -> Configuration:
        """Return the most recently loaded or written record."""

        with self._lock:
            if self._current is None:
                return self.load()
            return self._current

    def update(self, key: str, value: Any) -> Configuration:
        """Merge one field into the current record and persist the result.

        The merge is shallow: sibling fields are untouched.
        """

        if key not in DEFAULTS:
            raise KeyError(f"unknown settings key: {key!r}")

        with self._lock:
            data = self.current().to_dict()
            data[key] = _plain(value)
            cfg = Configuration.from_dict(data)
            self._persist(cfg)
            self._current = cfg
            return cfg

    def mutate(self, transition: Callable[[Configuration], Configuration]) -> Configuration:
        """Apply *transition* to the latest record and persist the result.

        Transitions run one at a time, each seeing the result of the previous
        one.
        """

        with self._lock:
            cfg = transition(self.current())
            self._persist(cfg)
            self._current = cfg
            return cfg

    def _persist(self, cfg: Configuration) -> None:
        path = self.config_file
        ok = save_config_settings_atomic(
            config_dir=path.parent,
            config_file=path,
            settings=cfg.to_dict(),
            logger=logger,
        )
        if not ok:
            # Keep running on the in-memory record; the next write retries.
            logger.warning("Settings kept in memory only (write to %s failed)", path)
