from __future__ import annotations

from .base import DeviceBackend, DeviceCapabilities, SensorSnapshot
from .system import SystemBackend

__all__ = [
    "DeviceBackend",
    "DeviceCapabilities",
    "SensorSnapshot",
    "SystemBackend",
]
