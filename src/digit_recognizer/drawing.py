from __future__ import annotations

import logging
from enum import Enum
from typing import Final, Protocol

from PIL import Image, ImageDraw

from .config import CanvasConfig
from .inference.types import RasterImage
from .logging import log_event

# White strokes on black match the MNIST training distribution
_BACKGROUND: Final[tuple[int, int, int, int]] = (0, 0, 0, 255)
_INK: Final[tuple[int, int, int, int]] = (255, 255, 255, 255)

Point = tuple[float, float]


class DrawingSource(Protocol):
    def get_current_drawing(self) -> RasterImage: ...
    def reset(self) -> None: ...


class DrawState(str, Enum):
    idle = "idle"
    drawing = "drawing"


class DrawingCanvas:
    """Touch-driven raster surface: press, move and release build strokes.

    Moves shorter than ``touch_tolerance`` on both axes are dropped. A stroke
    is committed to the raster on release; ``get_current_drawing`` also
    renders the stroke in progress.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        stroke_width: int = 24,
        touch_tolerance: float = 4.0,
    ) -> None:
        if width < 1 or height < 1:
            raise ValueError("canvas dimensions must be >= 1")
        if stroke_width < 1:
            raise ValueError("stroke_width must be >= 1")
        self._size = (int(width), int(height))
        self._stroke_width = int(stroke_width)
        self._tolerance = float(touch_tolerance)
        self._committed = Image.new("RGBA", self._size, _BACKGROUND)
        self._stroke: list[Point] = []
        self._state = DrawState.idle

    @classmethod
    def from_config(cls, cfg: CanvasConfig) -> DrawingCanvas:
        return cls(
            cfg.width,
            cfg.height,
            stroke_width=cfg.stroke_width,
            touch_tolerance=cfg.touch_tolerance,
        )

    @property
    def state(self) -> DrawState:
        return self._state

    @property
    def size(self) -> tuple[int, int]:
        return self._size

    def press(self, x: float, y: float) -> None:
        if self._state is DrawState.drawing:
            self._commit()
        self._stroke = [(x, y)]
        self._state = DrawState.drawing

    def move(self, x: float, y: float) -> None:
        if self._state is not DrawState.drawing:
            return
        last_x, last_y = self._stroke[-1]
        if abs(x - last_x) >= self._tolerance or abs(y - last_y) >= self._tolerance:
            self._stroke.append((x, y))

    def release(self) -> None:
        if self._state is not DrawState.drawing:
            return
        self._commit()
        self._state = DrawState.idle

    def get_current_drawing(self) -> RasterImage:
        img = self._committed.copy()
        if self._stroke:
            _draw_stroke(img, self._stroke, self._stroke_width)
        return img

    def reset(self) -> None:
        self._committed = Image.new("RGBA", self._size, _BACKGROUND)
        self._stroke = []
        self._state = DrawState.idle
        log_event(
            "drawing_reset",
            {"width": self._size[0], "height": self._size[1]},
            level=logging.DEBUG,
        )

    def _commit(self) -> None:
        _draw_stroke(self._committed, self._stroke, self._stroke_width)
        self._stroke = []


def _draw_stroke(img: Image.Image, points: list[Point], width: int) -> None:
    if len(points) < 2:
        return
    ImageDraw.Draw(img).line(points, fill=_INK, width=width, joint="curve")
