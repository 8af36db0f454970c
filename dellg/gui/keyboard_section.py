"""Keyboard lighting section of the control panel."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import tkinter as tk
from tkinter import colorchooser, ttk

from ..core.catalog import DURATION_MAX_MS, DURATION_MIN_MS, DURATION_MODES, PRESET_COLORS, RGB, ZONE_COUNT, LightingMode
from ..core.config.model import Configuration
from ..core.engine import ReconciliationEngine

RunInBackground = Callable[[Callable[[], Any]], None]

_MODE_LABELS: dict[LightingMode, str] = {
    LightingMode.STATIC: "Static",
    LightingMode.MORPH: "Morph",
    LightingMode.BREATHING: "Breathing",
    LightingMode.SPECTRUM: "Spectrum",
    LightingMode.RAINBOW: "Rainbow",
    LightingMode.ZONE: "Zones",
    LightingMode.OFF: "Off",
}


def rgb_to_hex(color: RGB) -> str:
    r, g, b = color
    return f"#{int(r):02x}{int(g):02x}{int(b):02x}"


class KeyboardSection:
    def __init__(
        self,
        parent: tk.Misc,
        *,
        engine: ReconciliationEngine,
        run_bg: RunInBackground,
        on_check_setup: Callable[[], None],
    ) -> None:
        self._engine = engine
        self._run_bg = run_bg

        self.frame = ttk.LabelFrame(parent, text="Keyboard", padding=12)

        self._unavailable = ttk.Frame(self.frame)
        ttk.Label(self._unavailable, text="Keyboard lighting is not available.").pack(anchor="w")
        ttk.Label(
            self._unavailable,
            text="Connect the keyboard controller or run the system setup.",
            style="Muted.TLabel",
        ).pack(anchor="w", pady=(2, 8))
        ttk.Button(self._unavailable, text="Check again", command=on_check_setup).pack(anchor="w")

        self._controls = ttk.Frame(self.frame)
        self._build_controls(self._controls)
        self._unavailable.pack(fill="x")

    # ---- layout

    def _build_controls(self, body: ttk.Frame) -> None:
        ttk.Label(body, text="Quick colors").pack(anchor="w")
        quick = ttk.Frame(body)
        quick.pack(fill="x", pady=(4, 10))
        for name, rgb in PRESET_COLORS:
            btn = tk.Button(
                quick,
                width=2,
                bg=rgb_to_hex(rgb),
                activebackground=rgb_to_hex(rgb),
                relief="flat",
                command=lambda c=rgb: self._run_bg(lambda: self._engine.apply_preset_color(c)),
            )
            btn.pack(side="left", padx=2)
            _Tooltip(btn, name)

        mode_row = ttk.Frame(body)
        mode_row.pack(fill="x", pady=(0, 8))
        ttk.Label(mode_row, text="Mode").pack(side="left")
        self._mode_var = tk.StringVar(value=_MODE_LABELS[LightingMode.STATIC])
        self._mode_combo = ttk.Combobox(
            mode_row,
            textvariable=self._mode_var,
            values=[_MODE_LABELS[m] for m in LightingMode],
            state="readonly",
            width=14,
        )
        self._mode_combo.pack(side="left", padx=(8, 0))
        self._mode_combo.bind("<<ComboboxSelected>>", self._on_mode_selected)

        # Single color (static / morph / breathing)
        self._color_frame = ttk.Frame(body)
        self._rgb_vars = [tk.IntVar(value=0) for _ in range(3)]
        for label, var in zip(("R", "G", "B"), self._rgb_vars):
            row = ttk.Frame(self._color_frame)
            row.pack(fill="x")
            ttk.Label(row, text=label, width=2).pack(side="left")
            scale = ttk.Scale(row, from_=0, to=255, variable=var, orient="horizontal")
            scale.pack(side="left", fill="x", expand=True, padx=(4, 4))
            scale.configure(command=lambda _v: self._update_swatch())
            scale.bind("<ButtonRelease-1>", lambda _e: self._commit_color())
            ttk.Label(row, textvariable=var, width=4).pack(side="left")
        self._swatch = tk.Label(self._color_frame, text="", width=6, relief="flat")
        self._swatch.pack(anchor="w", pady=(4, 0))

        # Zones
        self._zone_frame = ttk.Frame(body)
        self._zone_buttons: list[tk.Button] = []
        for i in range(ZONE_COUNT):
            btn = tk.Button(
                self._zone_frame,
                text=f"Zone {i + 1}",
                width=8,
                relief="flat",
                command=lambda idx=i: self._pick_zone_color(idx),
            )
            btn.pack(side="left", padx=3)
            self._zone_buttons.append(btn)

        # Duration
        self._duration_frame = ttk.Frame(body)
        ttk.Label(self._duration_frame, text="Duration (ms)").pack(side="left")
        self._duration_var = tk.IntVar(value=DURATION_MAX_MS)
        duration = ttk.Scale(
            self._duration_frame,
            from_=DURATION_MIN_MS,
            to=DURATION_MAX_MS,
            variable=self._duration_var,
            orient="horizontal",
        )
        duration.pack(side="left", fill="x", expand=True, padx=(8, 4))
        duration.bind(
            "<ButtonRelease-1>",
            lambda _e: self._engine.update_lighting(duration_ms=int(self._duration_var.get())),
        )
        ttk.Label(self._duration_frame, textvariable=self._duration_var, width=5).pack(side="left")

        self._brightness_frame = ttk.Frame(body)
        ttk.Label(self._brightness_frame, text="Brightness").pack(side="left")
        self._brightness_var = tk.IntVar(value=100)
        brightness = ttk.Scale(
            self._brightness_frame, from_=0, to=100, variable=self._brightness_var, orient="horizontal"
        )
        brightness.pack(side="left", fill="x", expand=True, padx=(8, 4))
        brightness.bind("<ButtonRelease-1>", lambda _e: self._on_brightness())

        self._apply_btn = ttk.Button(body, text="Apply", command=self._on_apply)
        self._dynamic = (self._color_frame, self._zone_frame, self._duration_frame)

    # ---- state

    def set_available(self, available: bool) -> None:
        if available:
            self._unavailable.pack_forget()
            self._controls.pack(fill="x")
        else:
            self._controls.pack_forget()
            self._unavailable.pack(fill="x")

    def refresh(self, cfg: Configuration) -> None:
        lighting = cfg.lighting
        self._mode_var.set(_MODE_LABELS[lighting.mode])
        for var, value in zip(self._rgb_vars, lighting.color):
            var.set(int(value))
        self._duration_var.set(int(lighting.duration_ms))
        for btn, rgb in zip(self._zone_buttons, lighting.zone_colors):
            btn.configure(bg=rgb_to_hex(rgb), activebackground=rgb_to_hex(rgb))
        self._update_swatch()
        self._layout_for_mode(lighting.mode)

    def _layout_for_mode(self, mode: LightingMode) -> None:
        for frame in self._dynamic:
            frame.pack_forget()
        self._brightness_frame.pack_forget()
        self._apply_btn.pack_forget()

        if mode in (LightingMode.STATIC, LightingMode.MORPH, LightingMode.BREATHING):
            self._color_frame.pack(fill="x", pady=(0, 8))
        elif mode == LightingMode.ZONE:
            self._zone_frame.pack(fill="x", pady=(0, 8))
        if mode in DURATION_MODES:
            self._duration_frame.pack(fill="x", pady=(0, 8))

        self._brightness_frame.pack(fill="x", pady=(0, 8))
        self._apply_btn.pack(anchor="e")

    def _current_rgb(self) -> RGB:
        r, g, b = (int(float(v.get())) for v in self._rgb_vars)
        return (r, g, b)

    def _update_swatch(self) -> None:
        for var in self._rgb_vars:
            var.set(int(float(var.get())))
        self._swatch.configure(bg=rgb_to_hex(self._current_rgb()))

    # ---- events

    def _selected_mode(self) -> LightingMode:
        label = self._mode_var.get()
        for mode, text in _MODE_LABELS.items():
            if text == label:
                return mode
        return LightingMode.STATIC

    def _on_mode_selected(self, _event: object = None) -> None:
        mode = self._selected_mode()
        self._engine.update_lighting(mode=mode)
        self._layout_for_mode(mode)

    def _commit_color(self) -> None:
        self._update_swatch()
        self._engine.update_lighting(color=self._current_rgb())

    def _pick_zone_color(self, index: int) -> None:
        current = self._engine.current().lighting.zone_colors[index]
        picked = colorchooser.askcolor(color=rgb_to_hex(current), title=f"Zone {index + 1} color")
        if not picked or picked[0] is None:
            return
        r, g, b = (int(round(c)) for c in picked[0])
        self._engine.set_zone_color(index, (r, g, b))

    def _on_brightness(self) -> None:
        level = int(float(self._brightness_var.get()))
        self._run_bg(lambda: self._engine.set_brightness(level))

    def _on_apply(self) -> None:
        mode = self._selected_mode()
        color = self._current_rgb()
        duration = int(float(self._duration_var.get()))
        self._run_bg(lambda: self._engine.apply_lighting(mode, color=color, duration_ms=duration))


class _Tooltip:
    """Minimal hover label for the quick color swatches."""

    def __init__(self, widget: tk.Widget, text: str) -> None:
        self._widget = widget
        self._text = text
        self._tip: tk.Toplevel | None = None
        widget.bind("<Enter>", self._show)
        widget.bind("<Leave>", self._hide)

    def _show(self, _event: object = None) -> None:
        if self._tip is not None:
            return
        x = self._widget.winfo_rootx() + 10
        y = self._widget.winfo_rooty() + self._widget.winfo_height() + 4
        self._tip = tk.Toplevel(self._widget)
        self._tip.wm_overrideredirect(True)
        self._tip.wm_geometry(f"+{x}+{y}")
        tk.Label(self._tip, text=self._text, bg="#404040", fg="#e0e0e0", padx=4, pady=1).pack()

    def _hide(self, _event: object = None) -> None:
        if self._tip is not None:
            self._tip.destroy()
            self._tip = None
