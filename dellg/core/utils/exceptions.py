from __future__ import annotations


class DellGError(Exception):
    """Base class for errors raised by the control panel core."""


class InitializationError(DellGError):
    """The device could not be initialized (triggers the setup flow)."""


class DevicePermissionError(DellGError):
    """OS-level grants (udev/polkit rules) are missing."""

    def __init__(self, message: str, *, detail: str = "") -> None:
        super().__init__(message)
        self.detail = detail


class SetupError(DellGError):
    """The privileged setup script could not be run or failed."""


class CommandError(DellGError):
    """A single gateway command failed."""


class TransientCommandError(CommandError):
    """A retryable gateway call failed (e.g. one sensor read)."""


class PersistenceError(DellGError):
    """Settings could not be read or written."""


def is_device_disconnected(exc: Exception) -> bool:
    """Best-effort check for a disappeared device.

    Disconnects surface as OSError, usb.core.USBError, RuntimeError, etc, so
    this only looks at errno and the message.
    """

    errno = getattr(exc, "errno", None)
    if errno == 19:
        return True

    try:
        msg = str(exc)
    except Exception:
        return False

    return "No such device" in msg


def is_permission_denied(exc: Exception) -> bool:
    """Best-effort check for permission/authorization failures.

    Used to detect when hardware writes fail due to missing udev/polkit rules.
    """

    if isinstance(exc, (PermissionError, DevicePermissionError)):
        return True

    errno = getattr(exc, "errno", None)
    if errno in (1, 13):
        # EPERM=1, EACCES=13
        return True

    try:
        msg = str(exc).lower()
    except Exception:
        return False

    return "permission denied" in msg or "access denied" in msg or "not permitted" in msg


def is_authorization_dismissed(stderr: str) -> bool:
    """Return True when pkexec reports that the user cancelled the auth dialog."""

    text = str(stderr or "")
    return "dismissed" in text or "Not authorized" in text
