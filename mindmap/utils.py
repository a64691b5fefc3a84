from typing import Optional, Tuple


def hex_to_rgb(hex_color: str) -> Optional[Tuple[int, int, int]]:
    """Parse '#rrggbb' (leading '#' optional). Returns None when malformed."""
    if not isinstance(hex_color, str):
        return None
    h = hex_color.lstrip("#")
    if len(h) != 6:
        return None
    try:
        return tuple(int(h[i:i+2], 16) for i in (0, 2, 4))
    except ValueError:
        return None


def rgb_to_hex(r: float, g: float, b: float) -> str:
    clamp = lambda v: max(0, min(255, int(round(v))))
    return '#{:02x}{:02x}{:02x}'.format(clamp(r), clamp(g), clamp(b))


def lighten_hex(hex_color: str, amount: float = 0.5) -> str:
    """Lightens a hex color by mixing it with white. Malformed input is returned as is."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return hex_color
    r, g, b = rgb
    return rgb_to_hex(r + (255 - r) * amount, g + (255 - g) * amount, b + (255 - b) * amount)
