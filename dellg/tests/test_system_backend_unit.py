from __future__ import annotations

import subprocess

import pytest

from dellg.core.backends import acpi as acpi_mod
from dellg.core.backends import system as system_mod
from dellg.core.backends.acpi import AcpiController
from dellg.core.backends.keyboard import ElcKeyboard
from dellg.core.backends.system import SystemBackend
from dellg.core.utils.exceptions import CommandError, InitializationError, SetupError, TransientCommandError

from acpi_fakes import ScriptedAcpi


@pytest.fixture(autouse=True)
def _as_root(monkeypatch, tmp_path):
    monkeypatch.setattr(acpi_mod.os, "geteuid", lambda: 0)
    monkeypatch.setenv("DELLG_DISABLE_USB_SCAN", "1")
    monkeypatch.setenv("DELLG_DMI_PRODUCT", str(tmp_path / "product_name"))
    (tmp_path / "product_name").write_text("Dell G15 5530\n")


def _backend(runner=None, keyboard=None) -> SystemBackend:
    return SystemBackend(acpi=AcpiController(runner=runner or ScriptedAcpi()), keyboard=keyboard)


def test_init_device_reports_capabilities() -> None:
    runner = ScriptedAcpi(replies={"get_g_mode": "0x1"})
    backend = _backend(runner, keyboard=ElcKeyboard())

    caps = backend.init_device()

    assert caps.model == "G15 5530"
    assert caps.power_supported is True
    assert caps.keyboard_supported is True
    assert caps.fan_control_limited is False
    assert caps.turbo_initially_enabled is True
    assert "USTT_Performance" in caps.power_modes


def test_init_device_without_keyboard() -> None:
    caps = _backend().init_device()

    assert caps.keyboard_supported is False
    assert caps.turbo_initially_enabled is False


def test_init_device_without_any_hardware_fails(monkeypatch) -> None:
    monkeypatch.setattr(acpi_mod, "is_supported", lambda: False)

    with pytest.raises(InitializationError):
        SystemBackend().init_device()


def test_check_usb_devices_raises_when_none(monkeypatch) -> None:
    monkeypatch.setattr(system_mod, "find_keyboard_usb_ids", lambda: [])
    with pytest.raises(CommandError):
        SystemBackend().check_usb_devices()

    monkeypatch.setattr(system_mod, "find_keyboard_usb_ids", lambda: ["187c:0550"])
    assert SystemBackend().check_usb_devices() == ["187c:0550"]


def test_check_permissions(monkeypatch, tmp_path) -> None:
    udev = tmp_path / "99-dell-g-series.rules"
    polkit = tmp_path / "50-dell-acpi-nopasswd.rules"
    monkeypatch.setattr(system_mod, "UDEV_RULES_PATH", udev)
    monkeypatch.setattr(system_mod, "POLKIT_RULES_PATH", polkit)

    assert SystemBackend().check_permissions() == "missing:udev,polkit"
    udev.write_text("")
    assert SystemBackend().check_permissions() == "missing:polkit"
    polkit.write_text("")
    assert SystemBackend().check_permissions() == "configured"


def test_performance_mode_also_maxes_fans() -> None:
    runner = ScriptedAcpi()
    backend = _backend(runner)

    message = backend.set_power_mode("USTT_Performance")

    assert runner.commands == ["set_power_mode", "set_fan1_boost", "set_fan2_boost"]
    assert "0xFF" in runner.scripts[1]
    assert message == "Performance mode enabled - fans at 100% (2/2 succeeded)"


def test_plain_power_mode_message() -> None:
    assert _backend().set_power_mode("USTT_Quiet") == "Power mode: USTT_Quiet"


def test_fan_boost_partial_success_is_reported() -> None:
    backend = _backend(ScriptedAcpi(failures={"set_fan2_boost": "AE_ERROR"}))

    assert backend.set_fan_boost(50, 60) == "Fans set: CPU 50%, GPU 60% (1/2 succeeded)"


def test_fan_boost_total_failure_raises() -> None:
    backend = _backend(ScriptedAcpi(failures={"set_fan1_boost": "AE_ERROR", "set_fan2_boost": "AE_ERROR"}))

    with pytest.raises(CommandError, match="Manual fan control is not available"):
        backend.set_fan_boost(50, 60)


def test_get_sensors_reads_all_four_values() -> None:
    runner = ScriptedAcpi(
        replies={"get_fan1_rpm": "0x834", "get_fan2_rpm": "0x8fc", "get_cpu_temp": "0x37", "get_gpu_temp": "0x30"}
    )

    snap = _backend(runner).get_sensors()

    assert (snap.fan1_rpm, snap.fan2_rpm, snap.cpu_temp, snap.gpu_temp) == (2100, 2300, 55.0, 48.0)


def test_get_sensors_tolerates_partial_failures() -> None:
    runner = ScriptedAcpi(replies={"get_cpu_temp": "0x40"}, failures={"get_fan2_rpm": "AE_ERROR"})

    snap = _backend(runner).get_sensors()

    assert snap.fan2_rpm == 0
    assert snap.cpu_temp == 64.0


def test_get_sensors_all_failed_is_transient() -> None:
    failures = {name: "AE_ERROR" for name in ("get_fan1_rpm", "get_fan2_rpm", "get_cpu_temp", "get_gpu_temp")}

    with pytest.raises(TransientCommandError):
        _backend(ScriptedAcpi(failures=failures)).get_sensors()


def test_commands_without_hardware_raise() -> None:
    backend = SystemBackend()

    with pytest.raises(CommandError, match="Keyboard not available"):
        backend.set_static_color((1, 2, 3))
    with pytest.raises(CommandError, match="ACPI not available"):
        backend.toggle_turbo()


def test_static_color_message() -> None:
    class _Kb:
        def set_static(self, color):
            self.color = color

    kb = _Kb()
    backend = SystemBackend(keyboard=kb)

    assert backend.set_static_color((1, 2, 3)) == "Color applied: RGB(1, 2, 3)"
    assert kb.color == (1, 2, 3)


def test_run_setup_script(monkeypatch, tmp_path) -> None:
    script = tmp_path / "setup-acpi.sh"
    script.write_text("#!/bin/bash\n")
    monkeypatch.setenv("DELLG_SETUP_SCRIPT", str(script))
    monkeypatch.setattr(system_mod.os, "geteuid", lambda: 0)
    argvs = []

    def run(argv, **_kw):
        argvs.append(argv)
        return subprocess.CompletedProcess(argv, 0, stdout="", stderr="")

    monkeypatch.setattr(system_mod.subprocess, "run", run)

    assert SystemBackend().run_setup_script() == "Setup complete. Restart the system to apply the changes."
    assert argvs == [["bash", str(script)]]


def test_run_setup_script_failure(monkeypatch, tmp_path) -> None:
    script = tmp_path / "setup-acpi.sh"
    script.write_text("#!/bin/bash\n")
    monkeypatch.setenv("DELLG_SETUP_SCRIPT", str(script))
    monkeypatch.setattr(system_mod.os, "geteuid", lambda: 0)
    monkeypatch.setattr(
        system_mod.subprocess,
        "run",
        lambda argv, **_kw: subprocess.CompletedProcess(argv, 126, stdout="", stderr="Request dismissed"),
    )

    with pytest.raises(SetupError, match="Request dismissed"):
        SystemBackend().run_setup_script()


def test_run_setup_script_missing(monkeypatch) -> None:
    monkeypatch.setattr(system_mod, "find_setup_script", lambda: None)

    with pytest.raises(SetupError, match="not found"):
        SystemBackend().run_setup_script()
