from __future__ import annotations

from dellg.tray.icon import create_icon_image


def test_icon_is_64px_rgba_filled_with_lighting_color() -> None:
    img = create_icon_image((0, 128, 255))

    assert img.size == (64, 64)
    assert img.mode == "RGBA"
    # Body fill, away from the key rows.
    assert img.getpixel((30, 44)) == (0, 128, 255, 255)
    # Transparent corner.
    assert img.getpixel((0, 0))[3] == 0


def test_icon_unlit_uses_grey_fill() -> None:
    img = create_icon_image((0, 128, 255), lit=False)

    assert img.getpixel((30, 44)) == (60, 60, 60, 255)


def test_icon_turbo_bar() -> None:
    plain = create_icon_image((255, 0, 0))
    turbo = create_icon_image((255, 0, 0), turbo=True)

    assert plain.getpixel((32, 57))[3] == 0
    assert turbo.getpixel((32, 57)) == (255, 140, 0, 255)
