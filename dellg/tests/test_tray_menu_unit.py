from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

from dellg.core.catalog import FanPreset, PowerMode
from dellg.tray.menu import build_menu, build_menu_items


class _Item:
    def __init__(self, text, action=None, checked=None, radio=False, default=False, enabled=True):
        self.text = text
        self.action = action
        self.checked = checked
        self.radio = radio
        self.default = default
        self.enabled = enabled


class _Menu:
    SEPARATOR = "---"

    def __init__(self, *items):
        self.items = list(items)


_pystray = SimpleNamespace(Menu=_Menu)


class _App:
    def __init__(self, engine) -> None:
        self.engine = engine
        self.shown = 0
        self.quit_calls = 0

    def dispatch(self, work) -> None:
        work()

    def show_panel(self) -> None:
        self.shown += 1

    def quit(self) -> None:
        self.quit_calls += 1


def _by_text(items):
    return {i.text: i for i in items if isinstance(i, _Item)}


def test_menu_lists_power_controls_when_supported(make_engine) -> None:
    items = build_menu_items(_App(make_engine()), pystray=_pystray, item=_Item)
    named = _by_text(items)

    assert list(named) == ["Show control panel", "Turbo", "Power mode", "Fan preset", "Quit"]
    assert named["Show control panel"].default is True
    assert [i.text for i in named["Power mode"].action.items] == ["Quiet", "Balanced", "Performance", "Manual"]
    assert [i.text for i in named["Fan preset"].action.items] == [
        "Silent (0%)",
        "Normal (50%)",
        "Turbo (85%)",
        "Max (100%)",
    ]


def test_menu_without_power_support(make_engine, fake_backend) -> None:
    engine = make_engine(capabilities=replace(fake_backend.capabilities, power_supported=False))

    named = _by_text(build_menu_items(_App(engine), pystray=_pystray, item=_Item))

    assert "Turbo" not in named
    assert named["Power control unavailable"].enabled is False


def test_menu_actions_go_through_engine(make_engine, store, fake_backend) -> None:
    app = _App(make_engine())
    named = _by_text(build_menu_items(app, pystray=_pystray, item=_Item))

    quiet = named["Power mode"].action.items[0]
    quiet.action(None, quiet)
    assert store.current().power_mode == PowerMode.QUIET
    assert quiet.checked(quiet) is True

    max_item = named["Fan preset"].action.items[3]
    max_item.action(None, max_item)
    assert store.current().selected_fan_preset is FanPreset.MAX
    assert max_item.checked(max_item) is True

    turbo = named["Turbo"]
    turbo.action(None, turbo)
    assert turbo.checked(turbo) is True
    # Turbo overrides the displayed mode.
    assert quiet.checked(quiet) is False

    named["Show control panel"].action(None, None)
    named["Quit"].action(None, None)
    assert (app.shown, app.quit_calls) == (1, 1)
    assert fake_backend.names() == ["set_power_mode", "set_fan_boost", "toggle_turbo"]


def test_build_menu_wraps_items(make_engine) -> None:
    menu = build_menu(_App(make_engine()), pystray=_pystray, item=_Item)

    assert isinstance(menu, _Menu)
    assert menu.items[-1].text == "Quit"


def test_menu_disables_modes_the_model_rejects(make_engine, fake_backend) -> None:
    # G15 5515: only G mode and Manual.
    caps = replace(fake_backend.capabilities, model="G15 5515", power_modes=("G Mode", "Manual"))
    engine = make_engine(capabilities=caps)

    named = _by_text(build_menu_items(_App(engine), pystray=_pystray, item=_Item))

    enabled = {i.text: i.enabled for i in named["Power mode"].action.items}
    assert enabled == {"Quiet": False, "Balanced": False, "Performance": False, "Manual": True}
