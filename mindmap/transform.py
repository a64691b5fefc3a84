"""
Screen <-> world coordinate mapping for the canvas.

Screen points are raw pointer coordinates (page space). ``origin`` is where the
drawing surface starts in that space, ``pan`` is the surface-local offset of the
world origin, and ``zoom`` scales world units to pixels.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

ZOOM_MIN = 0.3
ZOOM_MAX = 2.5
ZOOM_IN_FACTOR = 1.05
ZOOM_OUT_FACTOR = 0.95
DEFAULT_PAN = (120.0, 120.0)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass
class Viewport:
    pan_x: float = DEFAULT_PAN[0]
    pan_y: float = DEFAULT_PAN[1]
    zoom: float = 1.0
    origin_x: float = 0.0
    origin_y: float = 0.0
    zoom_min: float = ZOOM_MIN
    zoom_max: float = ZOOM_MAX

    def to_world(self, sx: float, sy: float) -> Tuple[float, float]:
        return (
            (sx - self.origin_x - self.pan_x) / self.zoom,
            (sy - self.origin_y - self.pan_y) / self.zoom,
        )

    def to_screen(self, wx: float, wy: float, zoom: Optional[float] = None) -> Tuple[float, float]:
        """World point to surface-local coordinates at ``zoom`` (current zoom by default)."""
        z = self.zoom if zoom is None else zoom
        return (wx * z + self.pan_x, wy * z + self.pan_y)

    def set_zoom(self, zoom: float, anchor: Optional[Tuple[float, float]] = None) -> float:
        """
        Change zoom, keeping the world point under ``anchor`` (a screen point)
        fixed. Without an anchor the pan is left alone.
        """
        new_zoom = clamp(zoom, self.zoom_min, self.zoom_max)
        if anchor is not None:
            wx, wy = self.to_world(*anchor)
            bx, by = self.to_screen(wx, wy, self.zoom)
            ax, ay = self.to_screen(wx, wy, new_zoom)
            self.pan_x += bx - ax
            self.pan_y += by - ay
        self.zoom = new_zoom
        return new_zoom

    def zoom_at(self, sx: float, sy: float, zoom_in: bool) -> float:
        """One wheel step centered on the pointer."""
        factor = ZOOM_IN_FACTOR if zoom_in else ZOOM_OUT_FACTOR
        return self.set_zoom(self.zoom * factor, anchor=(sx, sy))

    def pan_to(self, x: float, y: float) -> None:
        self.pan_x, self.pan_y = float(x), float(y)

    def reset(self) -> None:
        self.pan_x, self.pan_y = DEFAULT_PAN
        self.zoom = 1.0

    def transform_attr(self) -> str:
        return f"translate({self.pan_x:g},{self.pan_y:g}) scale({self.zoom:g})"
