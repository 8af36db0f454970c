from __future__ import annotations

from dellg.core.catalog import DEFAULT_ZONE_COLORS, FanPreset, LightingMode, PowerMode
from dellg.core.config.defaults import DEFAULTS
from dellg.core.config.model import Configuration, coerce_rgb, default_configuration


def test_default_configuration_matches_documented_defaults() -> None:
    cfg = default_configuration()

    assert cfg.power_mode == PowerMode.BALANCED
    assert cfg.turbo_active is False
    assert cfg.selected_fan_preset is None
    assert cfg.cpu_fan_target == 50
    assert cfg.gpu_fan_target == 50
    assert cfg.lighting.mode == LightingMode.STATIC
    assert cfg.lighting.color == (255, 0, 0)
    assert cfg.lighting.zone_colors == DEFAULT_ZONE_COLORS
    assert cfg.notifications_allowed is None


def test_from_dict_clamps_out_of_range_values() -> None:
    cfg = Configuration.from_dict(
        {
            "cpu_fan_target": 250,
            "gpu_fan_target": -4,
            "color": [300, -1, "12"],
            "duration_ms": 5,
        }
    )

    assert cfg.cpu_fan_target == 100
    assert cfg.gpu_fan_target == 0
    assert cfg.lighting.color == (255, 0, 12)
    assert cfg.lighting.duration_ms == 255


def test_from_dict_treats_unknown_preset_as_unset() -> None:
    cfg = Configuration.from_dict({"selected_fan_preset": "Hurricane"})
    assert cfg.selected_fan_preset is None

    cfg = Configuration.from_dict({"selected_fan_preset": "turbo"})
    assert cfg.selected_fan_preset is FanPreset.TURBO


def test_from_dict_falls_back_on_unknown_enum_values() -> None:
    cfg = Configuration.from_dict({"power_mode": "ludicrous", "lighting_mode": "disco"})

    assert cfg.power_mode == PowerMode.BALANCED
    assert cfg.lighting.mode == LightingMode.STATIC


def test_from_dict_accepts_backend_power_mode_names() -> None:
    assert Configuration.from_dict({"power_mode": "USTT_Quiet"}).power_mode == PowerMode.QUIET
    assert Configuration.from_dict({"power_mode": "Manual"}).power_mode == PowerMode.MANUAL


def test_from_dict_pads_short_zone_lists_with_defaults() -> None:
    cfg = Configuration.from_dict({"zone_colors": [[1, 2, 3]]})

    assert cfg.lighting.zone_colors[0] == (1, 2, 3)
    assert cfg.lighting.zone_colors[1:] == DEFAULT_ZONE_COLORS[1:]


def test_to_dict_round_trip_preserves_every_field() -> None:
    cfg = Configuration.from_dict(
        {
            "power_mode": "manual",
            "turbo_active": True,
            "selected_fan_preset": "Max",
            "cpu_fan_target": 70,
            "gpu_fan_target": 30,
            "lighting_mode": "zone",
            "color": [1, 2, 3],
            "duration_ms": 600,
            "zone_colors": [[1, 1, 1], [2, 2, 2], [3, 3, 3], [4, 4, 4]],
            "notifications_allowed": False,
        }
    )

    data = cfg.to_dict()
    assert set(data) == set(DEFAULTS)
    assert Configuration.from_dict(data) == cfg


def test_with_lighting_keeps_sibling_fields() -> None:
    cfg = default_configuration().with_lighting(mode=LightingMode.MORPH)

    assert cfg.lighting.mode == LightingMode.MORPH
    assert cfg.lighting.color == (255, 0, 0)
    assert cfg.lighting.zone_colors == DEFAULT_ZONE_COLORS


def test_coerce_rgb_uses_default_for_garbage() -> None:
    assert coerce_rgb(42, default=(9, 9, 9)) == (9, 9, 9)
    assert coerce_rgb([1, 2], default=(9, 9, 9)) == (9, 9, 9)
