"""Power, turbo, fan and sensor section of the control panel."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

import tkinter as tk
from tkinter import ttk

from ..core.backends.base import DeviceCapabilities, SensorSnapshot
from ..core.catalog import FanPreset, PowerMode
from ..core.config.model import Configuration
from ..core.engine import TURBO_DISPLAY, ReconciliationEngine

RunInBackground = Callable[[Callable[[], Any]], None]


def format_sensors(snapshot: Optional[SensorSnapshot]) -> dict[str, str]:
    if snapshot is None:
        return {"cpu_temp": "--", "gpu_temp": "--", "fan1_rpm": "--", "fan2_rpm": "--"}
    return {
        "cpu_temp": f"{snapshot.cpu_temp:.0f} °C",
        "gpu_temp": f"{snapshot.gpu_temp:.0f} °C",
        "fan1_rpm": f"{int(snapshot.fan1_rpm)} RPM",
        "fan2_rpm": f"{int(snapshot.fan2_rpm)} RPM",
    }


class PowerSection:
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
        self._fan_limited = False
        self._synced_targets: Optional[tuple[int, int]] = None
        self._manual_shown = False

        self.frame = ttk.LabelFrame(parent, text="Power", padding=12)

        self._unavailable = ttk.Frame(self.frame)
        ttk.Label(self._unavailable, text="ACPI is not available.").pack(anchor="w")
        ttk.Label(self._unavailable, text="Run the system setup script.", style="Muted.TLabel").pack(
            anchor="w", pady=(2, 8)
        )
        ttk.Button(self._unavailable, text="Check again", command=on_check_setup).pack(anchor="w")

        self._controls = ttk.Frame(self.frame)
        self._build_controls(self._controls)
        self._unavailable.pack(fill="x")

    def _build_controls(self, body: ttk.Frame) -> None:
        ttk.Label(body, text="Power mode").pack(anchor="w")
        modes = ttk.Frame(body)
        modes.pack(fill="x", pady=(4, 6))
        self._mode_buttons: dict[PowerMode, ttk.Button] = {}
        for mode in PowerMode:
            btn = ttk.Button(modes, text=mode.label, command=lambda m=mode: self._run_bg(lambda: self._engine.apply_power_mode(m)))
            btn.pack(side="left", padx=(0, 4))
            self._mode_buttons[mode] = btn

        self._turbo_btn = ttk.Button(body, text="Turbo: off", command=lambda: self._run_bg(self._engine.toggle_turbo))
        self._turbo_btn.pack(anchor="w", pady=(0, 10))

        sensors = ttk.Frame(body)
        sensors.pack(fill="x", pady=(0, 10))
        self._sensor_vars: dict[str, tk.StringVar] = {}
        for col, (key, label) in enumerate(
            (("cpu_temp", "CPU"), ("gpu_temp", "GPU"), ("fan1_rpm", "CPU fan"), ("fan2_rpm", "GPU fan"))
        ):
            ttk.Label(sensors, text=label, style="Muted.TLabel").grid(row=0, column=col, sticky="w", padx=(0, 16))
            var = tk.StringVar(value="--")
            ttk.Label(sensors, textvariable=var).grid(row=1, column=col, sticky="w", padx=(0, 16))
            self._sensor_vars[key] = var

        ttk.Label(body, text="Fan presets").pack(anchor="w")
        presets = ttk.Frame(body)
        presets.pack(fill="x", pady=(4, 8))
        self._preset_buttons: dict[FanPreset, ttk.Button] = {}
        for preset in FanPreset:
            btn = ttk.Button(
                presets,
                text=f"{preset.display_name} ({preset.cpu}%)",
                command=lambda p=preset: self._run_bg(lambda: self._engine.apply_fan_preset(p)),
            )
            btn.pack(side="left", padx=(0, 4))
            self._preset_buttons[preset] = btn

        self._manual = ttk.Frame(body)
        self._cpu_var = tk.IntVar(value=50)
        self._gpu_var = tk.IntVar(value=50)
        self._fan_scales: list[ttk.Scale] = []
        for label, var in (("CPU fan %", self._cpu_var), ("GPU fan %", self._gpu_var)):
            row = ttk.Frame(self._manual)
            row.pack(fill="x")
            ttk.Label(row, text=label, width=10).pack(side="left")
            scale = ttk.Scale(
                row,
                from_=0,
                to=100,
                variable=var,
                orient="horizontal",
                command=lambda _v, v=var: v.set(int(float(v.get()))),
            )
            scale.pack(side="left", fill="x", expand=True, padx=(4, 4))
            ttk.Label(row, textvariable=var, width=4).pack(side="left")
            self._fan_scales.append(scale)
        self._limited_note = ttk.Label(
            self._manual,
            text="Manual fan control is limited on this model.",
            style="Muted.TLabel",
        )
        self._apply_fans_btn = ttk.Button(self._manual, text="Apply fan speeds", command=self._on_apply_fans)
        self._apply_fans_btn.pack(anchor="e", pady=(6, 0))

    # ---- state

    def set_capabilities(self, caps: DeviceCapabilities) -> None:
        if caps.power_supported:
            self._unavailable.pack_forget()
            self._controls.pack(fill="x")
        else:
            self._controls.pack_forget()
            self._unavailable.pack(fill="x")

        supported = self._engine.supported_power_modes()
        for mode, btn in self._mode_buttons.items():
            btn.state(["!disabled"] if mode in supported else ["disabled"])

        self._fan_limited = bool(caps.fan_control_limited)
        state = ["disabled"] if self._fan_limited else ["!disabled"]
        for scale in self._fan_scales:
            scale.state(state)
        self._apply_fans_btn.state(state)
        if self._fan_limited:
            self._limited_note.pack(anchor="w", pady=(4, 0))
        else:
            self._limited_note.pack_forget()

    def refresh(self, cfg: Configuration, display_mode: str) -> None:
        turbo = display_mode == TURBO_DISPLAY
        for mode, btn in self._mode_buttons.items():
            btn.configure(style="Active.TButton" if (not turbo and cfg.power_mode == mode) else "TButton")
        self._turbo_btn.configure(
            text="Turbo: on" if turbo else "Turbo: off",
            style="Active.TButton" if turbo else "TButton",
        )
        for preset, btn in self._preset_buttons.items():
            btn.configure(style="Active.TButton" if cfg.selected_fan_preset == preset else "TButton")

        manual = cfg.power_mode == PowerMode.MANUAL
        targets = (int(cfg.cpu_fan_target), int(cfg.gpu_fan_target))
        # Unsaved slider positions survive unrelated changes.
        if targets != self._synced_targets or (manual and not self._manual_shown):
            self._cpu_var.set(targets[0])
            self._gpu_var.set(targets[1])
            self._synced_targets = targets

        if manual:
            self._manual.pack(fill="x", pady=(4, 0))
        else:
            self._manual.pack_forget()
        self._manual_shown = manual

    def show_sensors(self, snapshot: Optional[SensorSnapshot]) -> None:
        for key, text in format_sensors(snapshot).items():
            self._sensor_vars[key].set(text)

    def _on_apply_fans(self) -> None:
        cpu = int(float(self._cpu_var.get()))
        gpu = int(float(self._gpu_var.get()))
        self._run_bg(lambda: self._engine.apply_manual_fan_speeds(cpu, gpu))
