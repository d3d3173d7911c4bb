from __future__ import annotations

import json

import pytest
from _support import capture_logs
from PIL import Image

from digit_recognizer.config import CanvasConfig
from digit_recognizer.drawing import DrawingCanvas, DrawState


def _is_blank(img: Image.Image) -> bool:
    return img.convert("L").getextrema() == (0, 0)


def test_new_canvas_is_idle_and_black() -> None:
    c = DrawingCanvas(120, 80)
    assert c.state is DrawState.idle
    img = c.get_current_drawing()
    assert img.size == (120, 80) and img.mode == "RGBA"
    assert _is_blank(img)
    assert img.getpixel((0, 0)) == (0, 0, 0, 255)


def test_stroke_is_committed_on_release() -> None:
    c = DrawingCanvas(200, 200)
    c.press(20, 100)
    assert c.state is DrawState.drawing
    c.move(180, 100)
    c.release()
    assert c.state is DrawState.idle
    img = c.get_current_drawing()
    assert img.getpixel((100, 100)) == (255, 255, 255, 255)
    assert img.getpixel((100, 20)) == (0, 0, 0, 255)


def test_in_progress_stroke_is_visible() -> None:
    c = DrawingCanvas(200, 200)
    c.press(100, 20)
    c.move(100, 180)
    img = c.get_current_drawing()
    assert img.getpixel((100, 100)) == (255, 255, 255, 255)
    assert c.state is DrawState.drawing


def test_small_moves_below_tolerance_are_dropped() -> None:
    c = DrawingCanvas(100, 100, touch_tolerance=4.0)
    c.press(50, 50)
    c.move(52, 53)
    c.release()
    assert _is_blank(c.get_current_drawing())


def test_move_while_idle_is_ignored() -> None:
    c = DrawingCanvas(100, 100)
    c.move(10, 10)
    c.move(90, 90)
    c.release()
    assert c.state is DrawState.idle
    assert _is_blank(c.get_current_drawing())


def test_press_while_drawing_keeps_previous_stroke() -> None:
    c = DrawingCanvas(200, 200, stroke_width=8)
    c.press(10, 50)
    c.move(190, 50)
    c.press(10, 150)
    c.move(190, 150)
    c.release()
    img = c.get_current_drawing()
    assert img.getpixel((100, 50))[0] == 255
    assert img.getpixel((100, 150))[0] == 255


def test_reset_clears_everything() -> None:
    c = DrawingCanvas(100, 100)
    c.press(10, 10)
    c.move(90, 90)
    c.release()
    c.press(10, 90)
    c.move(90, 10)
    c.reset()
    assert c.state is DrawState.idle
    assert _is_blank(c.get_current_drawing())


def test_reset_emits_debug_event() -> None:
    c = DrawingCanvas(120, 80)
    with capture_logs() as buf:
        c.reset()
    payload = json.loads(buf.getvalue().strip().splitlines()[-1])
    assert payload["message"] == "drawing_reset"
    assert payload["level"] == "DEBUG"
    assert payload["width"] == 120 and payload["height"] == 80


def test_returned_image_is_a_snapshot() -> None:
    c = DrawingCanvas(100, 100)
    before = c.get_current_drawing()
    c.press(10, 50)
    c.move(90, 50)
    c.release()
    assert _is_blank(before)


def test_from_config() -> None:
    c = DrawingCanvas.from_config(CanvasConfig(width=64, height=32, stroke_width=4))
    assert c.size == (64, 32)


@pytest.mark.parametrize("size", [(0, 10), (10, 0)])
def test_invalid_dimensions_rejected(size: tuple[int, int]) -> None:
    with pytest.raises(ValueError):
        DrawingCanvas(size[0], size[1])
