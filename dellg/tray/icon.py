from __future__ import annotations

from PIL import Image, ImageDraw

from ..core.catalog import RGB


_ICON_SIZE = (64, 64)
_OUTLINE = (224, 224, 224, 255)
_TURBO = (255, 140, 0, 255)


def create_icon_image(color: RGB = (255, 0, 0), *, turbo: bool = False, lit: bool = True) -> Image.Image:
    """Draw the tray glyph: a keyboard outline filled with the lighting color.

    An orange bar along the bottom marks turbo.
    """

    img = Image.new("RGBA", _ICON_SIZE, color=(0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    r, g, b = (max(0, min(255, int(c))) for c in color)
    fill = (r, g, b, 255) if lit else (60, 60, 60, 255)

    draw.rounded_rectangle((4, 14, 60, 48), radius=6, fill=fill, outline=_OUTLINE, width=3)

    # Key rows.
    for row, y in enumerate((21, 29)):
        for col in range(6):
            x = 10 + col * 8 + (2 if row else 0)
            draw.rectangle((x, y, x + 4, y + 4), fill=(0, 0, 0, 110))
    draw.rectangle((18, 37, 46, 41), fill=(0, 0, 0, 110))

    if turbo:
        draw.rectangle((8, 54, 56, 60), fill=_TURBO)

    return img
