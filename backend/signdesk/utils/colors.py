"""Color helpers shared by the API schemas and the embedding serializer."""

from typing import Any, Sequence, Tuple

from reportlab.lib.colors import HexColor

RGB = Tuple[int, int, int]

# Palette offered by the signature controls
COLOR_OPTIONS = {
    "blue": "#1e40af",
    "black": "#000000",
    "red": "#dc2626",
    "green": "#16a34a",
    "purple": "#7c3aed",
}


def parse_color(value: Any) -> RGB:
    """Parse '#rrggbb', a palette name, or an [r, g, b] sequence into a 0-255 triple."""
    if isinstance(value, str):
        raw = value.strip()
        raw = COLOR_OPTIONS.get(raw.lower(), raw)
        if not raw.startswith("#") or len(raw) != 7:
            raise ValueError(f"Color must be '#rrggbb', got {value!r}")
        try:
            color = HexColor(raw)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid hex color {value!r}: {e}")
        return (
            int(round(color.red * 255)),
            int(round(color.green * 255)),
            int(round(color.blue * 255)),
        )

    if isinstance(value, Sequence) and len(value) == 3:
        channels = []
        for channel in value:
            if isinstance(channel, bool) or not isinstance(channel, (int, float)):
                raise ValueError(f"Color channels must be numbers, got {value!r}")
            if channel < 0 or channel > 255:
                raise ValueError(f"Color channels must be within 0-255, got {value!r}")
            channels.append(int(round(channel)))
        return channels[0], channels[1], channels[2]

    raise ValueError(f"Unsupported color value: {value!r}")


def to_native_color(rgb: RGB) -> Tuple[float, float, float]:
    """Normalize a 0-255 triple to the 0-1 channel triple PDF operators expect."""
    r, g, b = rgb
    return r / 255.0, g / 255.0, b / 255.0


def to_hex(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)
