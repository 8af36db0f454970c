from __future__ import annotations

import threading
import time

import pytest

from dellg.core.gateway import CommandGateway, CommandResult, describe_error
from dellg.core.utils.exceptions import (
    CommandError,
    DevicePermissionError,
    InitializationError,
    SetupError,
    TransientCommandError,
)


def test_action_commands_return_backend_status(gateway, fake_backend) -> None:
    result = gateway.set_static_color([1, 2, 3])

    assert result == CommandResult(ok=True, message="set_static_color ok")
    assert fake_backend.calls == [("set_static_color", ((1, 2, 3),))]


def test_action_command_failures_become_results(gateway, fake_backend, caplog) -> None:
    fake_backend.failures["set_dim"] = CommandError("Keyboard not found")

    result = gateway.set_dim(40)

    assert result.ok is False
    assert result.message == "Keyboard not found"
    assert "Command set_dim failed" in caplog.text


def test_disconnected_keyboard_is_named_in_result(gateway, fake_backend, caplog) -> None:
    fake_backend.failures["set_static_color"] = OSError(19, "No such device")

    result = gateway.set_static_color((0, 0, 255))

    assert result.ok is False
    assert result.message.startswith("Device disconnected: ")
    assert "device disconnected" in caplog.text


def test_empty_exception_message_falls_back_to_type_name() -> None:
    assert describe_error(RuntimeError()) == "RuntimeError"
    assert describe_error(ValueError("  bad  ")) == "bad"


def test_init_failure_raises_initialization_error(gateway, fake_backend) -> None:
    fake_backend.failures["init_device"] = RuntimeError("no ACPI")

    with pytest.raises(InitializationError, match="no ACPI"):
        gateway.init_device()


def test_typed_errors_pass_through_unchanged(gateway, fake_backend) -> None:
    fake_backend.failures["check_usb_devices"] = TransientCommandError("bus busy")

    with pytest.raises(TransientCommandError):
        gateway.check_usb_devices()


def test_permission_denied_is_classified(gateway, fake_backend) -> None:
    fake_backend.failures["check_permissions"] = PermissionError(13, "Permission denied")

    with pytest.raises(DevicePermissionError) as info:
        gateway.check_permissions()

    assert info.value.detail == "check_permissions"


def test_sensor_failures_are_transient(gateway, fake_backend) -> None:
    fake_backend.failures["get_sensors"] = OSError("EC timeout")

    with pytest.raises(TransientCommandError):
        gateway.get_sensors()


def test_setup_failures_raise_setup_error(gateway, fake_backend) -> None:
    fake_backend.failures["run_setup_script"] = RuntimeError("script exited 1")

    with pytest.raises(SetupError):
        gateway.run_setup_script()


def test_hardware_calls_are_serialized() -> None:
    active = 0
    peak = 0
    guard = threading.Lock()

    class SlowBackend:
        def set_dim(self, level):
            nonlocal active, peak
            with guard:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with guard:
                active -= 1
            return "ok"

    gw = CommandGateway(SlowBackend())
    threads = [threading.Thread(target=gw.set_dim, args=(i,)) for i in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert peak == 1
