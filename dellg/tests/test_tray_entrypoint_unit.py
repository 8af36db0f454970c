from __future__ import annotations

import pytest

pytest.importorskip("tkinter")

import dellg.gui.control_panel as control_panel  # noqa: E402
import dellg.tray.entrypoint as entry  # noqa: E402


@pytest.fixture
def startup_log(monkeypatch):
    """Record the startup steps in order; the app stand-in records its mode."""

    steps = []
    monkeypatch.setattr(entry, "configure_logging", lambda: steps.append("logging"))
    monkeypatch.setattr(entry, "log_startup_diagnostics_if_debug", lambda: steps.append("diagnostics"))
    monkeypatch.setattr(entry, "acquire_single_instance_or_exit", lambda: steps.append("lock"))

    class _App:
        def __init__(self, *, with_tray):
            steps.append(("app", with_tray))

        def run(self):
            steps.append("run")

    monkeypatch.setattr(entry, "DellGApplication", _App)
    return steps


@pytest.mark.parametrize(
    ("launch", "with_tray"),
    [(entry.main, True), (entry.main_panel, False)],
    ids=["tray", "panel-only"],
)
def test_entry_points_share_startup_sequence(startup_log, launch, with_tray) -> None:
    launch()

    assert startup_log == ["logging", "diagnostics", "lock", ("app", with_tray), "run"]


def test_panel_script_runs_without_tray(startup_log) -> None:
    control_panel.main()

    assert ("app", False) in startup_log


def test_second_instance_never_builds_the_app(startup_log, monkeypatch) -> None:
    def _already_running():
        startup_log.append("lock")
        raise SystemExit(0)

    monkeypatch.setattr(entry, "acquire_single_instance_or_exit", _already_running)

    with pytest.raises(SystemExit) as info:
        entry.main_panel()

    assert info.value.code == 0
    assert startup_log == ["logging", "diagnostics", "lock"]


@pytest.mark.parametrize(
    ("error", "code"),
    [(KeyboardInterrupt(), 0), (RuntimeError("Tk display unavailable"), 1)],
    ids=["ctrl-c", "crash"],
)
def test_run_failures_map_to_exit_codes(startup_log, monkeypatch, caplog, error, code) -> None:
    class _FailingApp:
        def __init__(self, *, with_tray):
            pass

        def run(self):
            raise error

    monkeypatch.setattr(entry, "DellGApplication", _FailingApp)

    with pytest.raises(SystemExit) as info:
        entry.main()

    assert info.value.code == code
    if code:
        assert "Unhandled error: Tk display unavailable" in caplog.text
