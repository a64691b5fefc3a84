"""
Edit Handlers - NiceGUI event wiring for the canvas in app.py

Turns raw browser events (interactive image mouse events, wheel, keyboard)
into InteractionController calls so app.py stays focused on layout.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from nicegui import ui

from mindmap.edit.controller import Editing, InteractionController

logger = logging.getLogger(__name__)


def normalize_pointer_payload(raw: Any) -> Optional[Tuple[float, float]]:
    """
    Extract surface-local (x, y) from the payload shapes NiceGUI emits:
    MouseEventArguments (image_x/image_y), a generic event dict
    (offsetX/offsetY or x/y) or a plain [x, y] pair.
    """
    if hasattr(raw, 'image_x') and hasattr(raw, 'image_y'):
        return float(raw.image_x), float(raw.image_y)
    if isinstance(raw, dict):
        x = raw.get('offsetX', raw.get('image_x', raw.get('x')))
        y = raw.get('offsetY', raw.get('image_y', raw.get('y')))
        if x is None or y is None:
            return None
        return float(x), float(y)
    if isinstance(raw, (list, tuple)) and len(raw) >= 2:
        return float(raw[0]), float(raw[1])
    return None


def normalize_wheel_payload(raw: Any, surface_size: Optional[Tuple[float, float]] = None
                            ) -> Optional[Tuple[float, float, float]]:
    """
    (x, y, delta_y) for a wheel event. When the payload reports the rendered
    element size (``width``/``height``) the point is rescaled to the surface's
    natural size, the same space interactive_image mouse events use.
    """
    if not isinstance(raw, dict):
        return None
    point = normalize_pointer_payload(raw)
    if point is None:
        return None
    x, y = point
    width, height = raw.get('width'), raw.get('height')
    if surface_size and width and height:
        x *= surface_size[0] / float(width)
        y *= surface_size[1] / float(height)
    return x, y, float(raw.get('deltaY', 0) or 0)


def normalize_key(key: Any) -> str:
    """NiceGUI KeyboardKey (or a plain string) to a DOM key name."""
    name = getattr(key, 'name', key)
    return str(name) if name is not None else ''


def setup_edit_handlers(
    controller: InteractionController,
    refresh_canvas: Callable[[], None],
    on_edit_start: Optional[Callable[[str, str], None]] = None,
    surface_size: Optional[Tuple[float, float]] = None,
) -> Dict[str, Callable]:
    """
    Set up the canvas event handlers.

    Args:
        controller: InteractionController instance
        refresh_canvas: Function to redraw after view-only changes (pan, zoom, mode)
        on_edit_start: Called with (node_id, text) when inline text editing begins
        surface_size: Natural (width, height) of the canvas image

    Returns:
        Dict with handler functions for binding to UI events
    """

    def on_controller_change(ctrl: InteractionController):
        if isinstance(ctrl.mode, Editing) and on_edit_start:
            on_edit_start(ctrl.mode.node_id, ctrl.mode.draft)
        refresh_canvas()

    controller.set_on_change(on_controller_change)

    def handle_mouse(e):
        """interactive_image on_mouse callback."""
        point = normalize_pointer_payload(e)
        if point is None:
            return
        sx, sy = point
        if e.type == 'mousedown':
            controller.pointer_down(sx, sy)
        elif e.type == 'mousemove':
            controller.pointer_move(sx, sy)
        elif e.type == 'mouseup':
            controller.pointer_up()
        elif e.type == 'dblclick':
            node_id, badge = controller.hit_test(sx, sy)
            if node_id and badge is None:
                controller.double_click_node(node_id)

    def handle_wheel(event):
        raw = event.args if hasattr(event, 'args') else event
        wheel = normalize_wheel_payload(raw, surface_size)
        if wheel is None:
            return
        controller.wheel(*wheel)

    # set while the zoom slider is updated from code, so its on_change is ignored
    syncing_slider = {'active': False}

    def sync_zoom_slider(slider):
        """Mirror the live zoom into the slider without zooming again."""
        if slider is None or slider.value == controller.viewport.zoom:
            return
        syncing_slider['active'] = True
        try:
            slider.value = controller.viewport.zoom
        finally:
            syncing_slider['active'] = False

    def handle_zoom_slider(e):
        if syncing_slider['active']:
            return
        value = float(e.value)
        if value == controller.viewport.zoom:
            return
        center = (surface_size[0] / 2, surface_size[1] / 2) if surface_size else None
        controller.viewport.set_zoom(value, anchor=center)
        refresh_canvas()

    def handle_keyboard(e):
        if not e.action.keydown:
            return
        ctrl = bool(e.modifiers.ctrl or e.modifiers.meta)
        controller.key_down(normalize_key(e.key), ctrl=ctrl)

    def handle_mouse_leave(_event=None):
        # releasing outside the surface still ends a drag or pan
        controller.pointer_up()

    def run_command(command: Callable[[], Any], failure: str = 'Edit failed'):
        try:
            return command()
        except ValueError as e:
            logger.warning(f"{failure}: {e}")
            ui.notify(f'{failure}: {e}', type='negative', position='bottom')
            return None

    return {
        'handle_mouse': handle_mouse,
        'handle_wheel': handle_wheel,
        'handle_zoom_slider': handle_zoom_slider,
        'sync_zoom_slider': sync_zoom_slider,
        'handle_keyboard': handle_keyboard,
        'handle_mouse_leave': handle_mouse_leave,
        'run_command': run_command,
    }
