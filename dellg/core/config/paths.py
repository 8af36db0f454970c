"""Config path helpers."""

from __future__ import annotations

import os
from pathlib import Path


def config_dir() -> Path:
    """Return the directory used for dellg configuration.

    Priority:
    - DELLG_CONFIG_DIR
    - XDG_CONFIG_HOME/dellg
    - ~/.config/dellg
    """

    p = os.environ.get("DELLG_CONFIG_DIR")
    if p:
        return Path(p)

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "dellg"

    return Path.home() / ".config" / "dellg"


def config_file_path() -> Path:
    """Return the settings file path.

    Priority:
    - DELLG_CONFIG_PATH (explicit file override)
    - config_dir()/config.json
    """

    p = os.environ.get("DELLG_CONFIG_PATH")
    if p:
        return Path(p)
    return config_dir() / "config.json"
