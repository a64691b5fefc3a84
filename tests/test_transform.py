"""
Tests for the screen/world viewport mapping.
"""

import pytest

from mindmap.transform import ZOOM_MAX, ZOOM_MIN, Viewport, clamp


class TestViewport:
    def test_default_pan_maps_origin(self):
        vp = Viewport()
        assert vp.to_world(120, 120) == (0, 0)
        assert vp.to_screen(0, 0) == (120, 120)

    def test_round_trip(self):
        vp = Viewport(pan_x=-40, pan_y=15, zoom=1.7)
        wx, wy = vp.to_world(300, 200)
        assert vp.to_screen(wx, wy) == pytest.approx((300, 200))

    def test_surface_origin_is_subtracted(self):
        vp = Viewport(origin_x=10, origin_y=20)
        assert vp.to_world(130, 140) == (0, 0)

    @pytest.mark.parametrize("zoom_in", [True, False])
    def test_zoom_keeps_anchor_fixed(self, zoom_in):
        vp = Viewport(pan_x=33, pan_y=-12, zoom=1.2, origin_x=5, origin_y=7)
        before = vp.to_world(400, 300)
        vp.zoom_at(400, 300, zoom_in=zoom_in)
        assert vp.to_world(400, 300) == pytest.approx(before)
        assert vp.zoom == pytest.approx(1.2 * (1.05 if zoom_in else 0.95))

    def test_zoom_is_clamped(self):
        vp = Viewport()
        assert vp.set_zoom(10) == ZOOM_MAX
        assert vp.set_zoom(0.01) == ZOOM_MIN
        for _ in range(100):
            vp.zoom_at(0, 0, zoom_in=False)
        assert vp.zoom == ZOOM_MIN

    def test_set_zoom_without_anchor_keeps_pan(self):
        vp = Viewport()
        vp.set_zoom(2.0)
        assert (vp.pan_x, vp.pan_y, vp.zoom) == (120, 120, 2.0)

    def test_pan_and_reset(self):
        vp = Viewport()
        vp.pan_to(5, 6)
        vp.set_zoom(2.0)
        assert vp.transform_attr() == "translate(5,6) scale(2)"
        vp.reset()
        assert vp.transform_attr() == "translate(120,120) scale(1)"


def test_clamp():
    assert clamp(5, 0, 1) == 1
    assert clamp(-5, 0, 1) == 0
    assert clamp(0.5, 0, 1) == 0.5
