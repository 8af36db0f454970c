"""Capability Probe: one-shot startup detection of usable hardware.

Every path ends in exactly one terminal status: a success line, or an error
line with `setup_needed` set. Nothing here raises to the caller except
`run_setup`, whose failure the UI reports itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .backends.base import DeviceCapabilities
from .gateway import CommandGateway, describe_error
from .utils.exceptions import DellGError, SetupError

logger = logging.getLogger(__name__)

PERMISSIONS_CONFIGURED = "configured"
_MISSING_PREFIX = "missing:"


@dataclass(frozen=True)
class ProbeOutcome:
    capabilities: DeviceCapabilities
    status: str
    is_error: bool = False
    setup_needed: bool = False


class CapabilityProbe:
    def __init__(self, gateway: CommandGateway) -> None:
        self._gateway = gateway

    def probe(self) -> ProbeOutcome:
        capabilities: Optional[DeviceCapabilities] = None
        init_error: Optional[str] = None

        try:
            capabilities = self._gateway.init_device()
        except DellGError as exc:
            init_error = describe_error(exc)
            logger.warning("Device initialization failed: %s", init_error)

        if capabilities is not None and capabilities.power_supported:
            logger.info(
                "Device ready: model=%s keyboard=%s power=%s fan_limited=%s turbo=%s",
                capabilities.model,
                capabilities.keyboard_supported,
                capabilities.power_supported,
                capabilities.fan_control_limited,
                capabilities.turbo_initially_enabled,
            )
            return ProbeOutcome(capabilities=capabilities, status=f"System ready: Dell {capabilities.model}")

        caps = capabilities if capabilities is not None else DeviceCapabilities.unavailable()

        devices = self._usb_devices()
        if devices:
            return self._configured(caps, devices)

        try:
            permissions = self._gateway.check_permissions()
        except DellGError as exc:
            logger.warning("Permission check failed: %s", exc)
            return ProbeOutcome(
                capabilities=caps,
                status=f"Permission check failed: {describe_error(exc)}",
                is_error=True,
                setup_needed=True,
            )

        if permissions == PERMISSIONS_CONFIGURED:
            devices = self._usb_devices()
            if devices:
                return self._configured(caps, devices)
            detail = f" ({init_error})" if init_error else ""
            return ProbeOutcome(
                capabilities=caps,
                status=f"No compatible Dell device found{detail}. Connect the device or check permissions.",
                is_error=True,
                setup_needed=True,
            )

        missing = permissions[len(_MISSING_PREFIX):] if permissions.startswith(_MISSING_PREFIX) else permissions
        logger.info("System setup required; missing: %s", missing)
        return ProbeOutcome(
            capabilities=caps,
            status=f"Permissions not configured ({missing}). Run the system setup.",
            is_error=True,
            setup_needed=True,
        )

    def _usb_devices(self) -> list[str]:
        try:
            return self._gateway.check_usb_devices()
        except DellGError as exc:
            logger.debug("USB check failed: %s", exc)
            return []

    @staticmethod
    def _configured(caps: DeviceCapabilities, devices: list[str]) -> ProbeOutcome:
        return ProbeOutcome(capabilities=caps, status=f"System configured. Devices: {', '.join(devices)}")

    def run_setup(self) -> str:
        """Run the privileged setup script; a restart is needed afterwards.

        Raises SetupError on failure.
        """

        try:
            message = self._gateway.run_setup_script()
        except SetupError:
            raise
        except DellGError as exc:
            raise SetupError(describe_error(exc)) from exc
        logger.info("Setup finished: %s", message)
        return message
