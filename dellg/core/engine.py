"""Reconciliation Engine.

Owns the authoritative configuration (held by the Settings Store), applies
user intents through the Command Gateway and folds in backend-pushed turbo
events. Every transition goes through `SettingsStore.mutate`, so each one is
derived from the latest record and no update is lost to a stale copy.

Operations return a `CommandResult` and also post it to status listeners;
none of them raise for hardware failures.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Union

from .backends.base import DeviceCapabilities
from .catalog import (
    DURATION_MAX_MS,
    DURATION_MIN_MS,
    RGB,
    UNSUPPORTED_LIGHTING_MODES,
    ZONE_COUNT,
    FanPreset,
    LightingMode,
    PowerMode,
)
from .config.model import Configuration, clamp_int, coerce_zone_colors, coerce_rgb
from .config.store import SettingsStore
from .gateway import CommandGateway, CommandResult

logger = logging.getLogger(__name__)

StatusListener = Callable[[CommandResult], None]
ChangeListener = Callable[[Configuration], None]
NotifyFn = Callable[[str, str], None]

TURBO_DISPLAY = "turbo"

_LIGHTING_FIELDS = frozenset({"mode", "color", "duration_ms", "zone_colors"})


class TurboCell:
    """Reference to the live turbo flag.

    The value lives in the Settings Store record; `get` and `flip` always go
    to the latest record, never to a value captured earlier.
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    def get(self) -> bool:
        return bool(self._store.current().turbo_active)

    def flip(self) -> Configuration:
        return self._store.mutate(lambda cfg: cfg.with_changes(turbo_active=not cfg.turbo_active))

    def set(self, value: bool) -> Configuration:
        return self._store.mutate(lambda cfg: cfg.with_changes(turbo_active=bool(value)))


def normalize_lighting_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate and coerce lighting fields (mode, color, duration_ms, zone_colors)."""

    unknown = set(fields) - _LIGHTING_FIELDS
    if unknown:
        raise KeyError(f"unknown lighting field(s): {', '.join(sorted(unknown))}")

    out: dict[str, Any] = {}
    if "mode" in fields:
        mode = LightingMode.parse(fields["mode"])
        if mode is None:
            raise ValueError(f"unknown lighting mode: {fields['mode']!r}")
        out["mode"] = mode
    if "color" in fields:
        out["color"] = coerce_rgb(fields["color"])
    if "duration_ms" in fields:
        out["duration_ms"] = clamp_int(
            fields["duration_ms"], default=DURATION_MAX_MS, min_v=DURATION_MIN_MS, max_v=DURATION_MAX_MS
        )
    if "zone_colors" in fields:
        out["zone_colors"] = coerce_zone_colors(fields["zone_colors"])
    return out


class ReconciliationEngine:
    def __init__(
        self,
        *,
        store: SettingsStore,
        gateway: CommandGateway,
        capabilities: Optional[DeviceCapabilities] = None,
        notify: Optional[NotifyFn] = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.turbo = TurboCell(store)
        self._capabilities = capabilities or DeviceCapabilities.unavailable()
        self._notify = notify

        self._listeners_lock = threading.Lock()
        self._status_listeners: list[StatusListener] = []
        self._change_listeners: list[ChangeListener] = []
        self._change_pending = False
        self._delivering = False

    # ---- lifecycle

    @property
    def capabilities(self) -> DeviceCapabilities:
        return self._capabilities

    def initialize(self, capabilities: Optional[DeviceCapabilities] = None) -> Configuration:
        """Load the stored configuration and merge in the startup capabilities.

        The backend-reported turbo state wins over the stored flag.
        """

        if capabilities is not None:
            self._capabilities = capabilities

        cfg = self.store.load()
        caps = self._capabilities
        if caps.power_supported and bool(cfg.turbo_active) != bool(caps.turbo_initially_enabled):
            logger.info(
                "Stored turbo=%s differs from hardware turbo=%s; using hardware state",
                cfg.turbo_active,
                caps.turbo_initially_enabled,
            )
            cfg = self.turbo.set(bool(caps.turbo_initially_enabled))

        self._changed()
        return cfg

    # ---- observers

    def subscribe(
        self,
        *,
        on_status: Optional[StatusListener] = None,
        on_change: Optional[ChangeListener] = None,
    ) -> Callable[[], None]:
        """Register listeners; returns a callable that unregisters them."""

        with self._listeners_lock:
            if on_status is not None:
                self._status_listeners.append(on_status)
            if on_change is not None:
                self._change_listeners.append(on_change)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if on_status is not None and on_status in self._status_listeners:
                    self._status_listeners.remove(on_status)
                if on_change is not None and on_change in self._change_listeners:
                    self._change_listeners.remove(on_change)

        return unsubscribe

    def post_status(self, result: CommandResult) -> CommandResult:
        with self._listeners_lock:
            listeners = list(self._status_listeners)
        for cb in listeners:
            try:
                cb(result)
            except Exception:
                logger.exception("Status listener failed")
        return result

    def _changed(self) -> None:
        """Tell change listeners the record moved on.

        One thread delivers at a time and keeps going while commits arrive,
        reading the store on each round, so the last notice always carries
        the latest record. Threads that find a delivery running only leave a
        pending mark. No lock is held while listeners run.
        """

        with self._listeners_lock:
            self._change_pending = True
            if self._delivering:
                return
            self._delivering = True

        try:
            while True:
                with self._listeners_lock:
                    if not self._change_pending:
                        self._delivering = False
                        return
                    self._change_pending = False
                    listeners = list(self._change_listeners)

                cfg = self.store.current()
                for cb in listeners:
                    try:
                        cb(cfg)
                    except Exception:
                        logger.exception("Configuration listener failed")
        except BaseException:
            with self._listeners_lock:
                self._delivering = False
            raise

    def _mutate(self, transition: Callable[[Configuration], Configuration]) -> Configuration:
        cfg = self.store.mutate(transition)
        self._changed()
        return cfg

    def _send_notification(self, title: str, message: str) -> None:
        if self._notify is None:
            return
        try:
            self._notify(title, message)
        except Exception:
            logger.exception("Notification failed")

    # ---- reads

    def current(self) -> Configuration:
        return self.store.current()

    def display_power_mode(self) -> str:
        """Mode shown by the UI: turbo overrides the stored mode."""

        cfg = self.store.current()
        return TURBO_DISPLAY if cfg.turbo_active else cfg.power_mode.value

    def supported_power_modes(self) -> tuple[PowerMode, ...]:
        """Power modes the detected model accepts (all of them when it reported none)."""

        names = set(self._capabilities.power_modes)
        if not names:
            return tuple(PowerMode)
        return tuple(mode for mode in PowerMode if mode.backend_name in names)

    # ---- gating

    def _require_power(self) -> Optional[CommandResult]:
        if self._capabilities.power_supported:
            return None
        return self.post_status(CommandResult.failure("Power control is not available (ACPI not configured)"))

    def _require_keyboard(self) -> Optional[CommandResult]:
        if self._capabilities.keyboard_supported:
            return None
        return self.post_status(CommandResult.failure("Keyboard lighting is not available on this device"))

    # ---- power / fans

    def apply_power_mode(self, mode: Union[PowerMode, str]) -> CommandResult:
        """Switch the power mode; the configuration changes only if the backend accepts it."""

        refused = self._require_power()
        if refused is not None:
            return refused

        target = PowerMode.parse(mode)
        if target is None:
            return self.post_status(CommandResult.failure(f"Unknown power mode: {mode}"))

        result = self.gateway.set_power_mode(target.backend_name)
        if not result.ok:
            return self.post_status(CommandResult.failure(f"Power mode not changed: {result.message}"))

        def transition(cfg: Configuration) -> Configuration:
            changes: dict[str, Any] = {"power_mode": target, "turbo_active": False}
            if target != PowerMode.MANUAL:
                changes["selected_fan_preset"] = None
            return cfg.with_changes(**changes)

        self._mutate(transition)
        return self.post_status(result)

    def apply_fan_preset(self, preset: Union[FanPreset, str]) -> CommandResult:
        """Apply a fan preset.

        The selection and targets are recorded before the backend call and
        are kept even when the call fails.
        """

        refused = self._require_power()
        if refused is not None:
            return refused

        resolved = FanPreset.from_name(preset)
        if resolved is None:
            return self.post_status(CommandResult.failure(f"Unknown fan preset: {preset}"))

        self._mutate(
            lambda cfg: cfg.with_changes(
                selected_fan_preset=resolved,
                cpu_fan_target=resolved.cpu,
                gpu_fan_target=resolved.gpu,
            )
        )

        result = self.gateway.set_fan_boost(resolved.cpu, resolved.gpu)
        if not result.ok:
            logger.warning("Fan preset %s not applied by the backend: %s", resolved.display_name, result.message)
        return self.post_status(result)

    def apply_manual_fan_speeds(self, cpu: int, gpu: int) -> CommandResult:
        refused = self._require_power()
        if refused is not None:
            return refused

        if self._capabilities.fan_control_limited:
            return self.post_status(
                CommandResult.failure("Manual fan control is limited on this model; the firmware overrides fan speeds")
            )

        cpu_v = clamp_int(cpu, default=50, min_v=0, max_v=100)
        gpu_v = clamp_int(gpu, default=50, min_v=0, max_v=100)

        if self.store.current().power_mode != PowerMode.MANUAL:
            switched = self.apply_power_mode(PowerMode.MANUAL)
            if not switched.ok:
                return switched

        self._mutate(lambda cfg: cfg.with_changes(cpu_fan_target=cpu_v, gpu_fan_target=gpu_v))

        result = self.gateway.set_fan_boost(cpu_v, gpu_v)
        return self.post_status(result)

    def toggle_turbo(self) -> CommandResult:
        """Toggle turbo through the backend; the local flag flips either way."""

        refused = self._require_power()
        if refused is not None:
            return refused

        result = self.gateway.toggle_turbo()
        cfg = self.turbo.flip()
        self._changed()
        state = "enabled" if cfg.turbo_active else "disabled"

        if not result.ok:
            logger.warning("Turbo toggle failed at the backend: %s", result.message)
            return self.post_status(CommandResult.failure(f"Turbo toggle failed: {result.message}"))

        self._send_notification("Turbo mode", f"Turbo {state}")
        return self.post_status(CommandResult.success(f"Turbo {state}"))

    def on_turbo_toggled_externally(self) -> None:
        """Handle the hardware turbo hotkey.

        The hardware already switched; only the local flag follows.
        """

        cfg = self.turbo.flip()
        self._changed()
        state = "enabled" if cfg.turbo_active else "disabled"
        logger.info("Turbo hotkey pressed; turbo %s", state)
        self._send_notification("Turbo mode", f"Turbo {state} (hotkey)")
        self.post_status(CommandResult.success(f"Turbo {state} (hotkey)"))

    # ---- lighting

    def update_lighting(self, **fields: Any) -> Configuration:
        """Record lighting selections without sending anything to the keyboard."""

        changes = normalize_lighting_fields(fields)
        return self._mutate(lambda cfg: cfg.with_lighting(**changes))

    def set_zone_color(self, index: int, color: RGB) -> Configuration:
        if not 0 <= int(index) < ZONE_COUNT:
            raise IndexError(f"zone index out of range: {index}")
        rgb = coerce_rgb(color)

        def transition(cfg: Configuration) -> Configuration:
            zones = list(cfg.lighting.zone_colors)
            zones[int(index)] = rgb
            return cfg.with_lighting(zone_colors=tuple(zones))

        return self._mutate(transition)

    def apply_lighting(self, mode: Union[LightingMode, str, None] = None, **params: Any) -> CommandResult:
        """Record the lighting selection and send it to the keyboard.

        `params` may carry color, duration_ms and zone_colors; anything not
        given comes from the stored record.
        """

        refused = self._require_keyboard()
        if refused is not None:
            return refused

        fields = dict(params)
        if mode is not None:
            fields["mode"] = mode
        try:
            changes = normalize_lighting_fields(fields)
        except (KeyError, ValueError) as exc:
            return self.post_status(CommandResult.failure(str(exc)))

        lighting = self._mutate(lambda cfg: cfg.with_lighting(**changes)).lighting
        m = lighting.mode

        if m == LightingMode.STATIC:
            result = self.gateway.set_static_color(lighting.color)
        elif m == LightingMode.MORPH:
            result = self.gateway.set_morph(lighting.color, lighting.duration_ms)
        elif m == LightingMode.BREATHING:
            result = self.gateway.set_pulse_effect(lighting.color, lighting.duration_ms)
        elif m == LightingMode.ZONE:
            result = self.gateway.set_zone_colors(lighting.zone_colors)
        elif m in UNSUPPORTED_LIGHTING_MODES:
            logger.warning("Lighting mode %s has no keyboard command; turning LEDs off", m.value)
            off = self.gateway.turn_off_leds()
            note = "LEDs turned off" if off.ok else f"turning LEDs off failed: {off.message}"
            result = CommandResult.failure(f"{m.value.capitalize()} mode is not supported by this keyboard ({note})")
        else:
            result = self.gateway.turn_off_leds()

        return self.post_status(result)

    def apply_preset_color(self, color: RGB) -> CommandResult:
        refused = self._require_keyboard()
        if refused is not None:
            return refused

        rgb = coerce_rgb(color)
        self._mutate(lambda cfg: cfg.with_lighting(color=rgb, mode=LightingMode.STATIC))
        return self.post_status(self.gateway.set_static_color(rgb))

    def set_brightness(self, level: int) -> CommandResult:
        refused = self._require_keyboard()
        if refused is not None:
            return refused

        return self.post_status(self.gateway.set_dim(clamp_int(level, default=100, min_v=0, max_v=100)))
