from __future__ import annotations

import logging
from typing import Any

from ..core.catalog import FanPreset, PowerMode
from ..core.engine import TURBO_DISPLAY


logger = logging.getLogger(__name__)


def build_menu_items(app: Any, *, pystray: Any, item: Any) -> list[Any]:
    """Menu items for the tray icon; rebuilt on every configuration change."""

    engine = app.engine
    caps = engine.capabilities

    def _checked_mode(mode: PowerMode):
        def _checked(_item):
            return engine.display_power_mode() == mode.value

        return _checked

    def _checked_preset(preset: FanPreset):
        def _checked(_item):
            return engine.current().selected_fan_preset == preset

        return _checked

    def _set_mode(mode: PowerMode):
        def _cb(_icon, _item):
            app.dispatch(lambda: engine.apply_power_mode(mode))

        return _cb

    def _set_preset(preset: FanPreset):
        def _cb(_icon, _item):
            app.dispatch(lambda: engine.apply_fan_preset(preset))

        return _cb

    items: list[Any] = [
        item("Show control panel", lambda _icon, _item: app.show_panel(), default=True),
        pystray.Menu.SEPARATOR,
    ]

    if caps.power_supported:
        supported = engine.supported_power_modes()
        power_menu = pystray.Menu(
            *[
                item(
                    mode.label,
                    _set_mode(mode),
                    checked=_checked_mode(mode),
                    radio=True,
                    enabled=mode in supported,
                )
                for mode in PowerMode
            ]
        )
        fan_menu = pystray.Menu(
            *[
                item(f"{p.display_name} ({p.cpu}%)", _set_preset(p), checked=_checked_preset(p), radio=True)
                for p in FanPreset
            ]
        )
        items += [
            item(
                "Turbo",
                lambda _icon, _item: app.dispatch(engine.toggle_turbo),
                checked=lambda _i: engine.display_power_mode() == TURBO_DISPLAY,
            ),
            item("Power mode", power_menu),
            item("Fan preset", fan_menu),
        ]
    else:
        items.append(item("Power control unavailable", None, enabled=False))

    items += [
        pystray.Menu.SEPARATOR,
        item("Quit", lambda _icon, _item: app.quit()),
    ]
    return items


def build_menu(app: Any, *, pystray: Any, item: Any) -> Any:
    return pystray.Menu(*build_menu_items(app, pystray=pystray, item=item))
