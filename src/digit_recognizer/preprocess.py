from __future__ import annotations

import io
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

import torch
from PIL import Image

from .errors import InvalidImage
from .inference.types import (
    INPUT_HEIGHT,
    INPUT_WIDTH,
    NormalizedTensor,
    PreprocessOutput,
    RasterImage,
)

_PREPROCESS_SIGNATURE: Final[str] = "v1/rgb+resize28bilinear+luma601trunc+unit"
# ITU-R BT.601 luma weights scaled by 1000 so truncation stays exact
_LUMA_R: Final[int] = 299
_LUMA_G: Final[int] = 587
_LUMA_B: Final[int] = 114
_LUMA_SCALE: Final[int] = 1000


@dataclass(frozen=True)
class PreprocessOptions:
    visualize: bool = False
    visualize_max_kb: int = 16


def preprocess(image: RasterImage) -> NormalizedTensor:
    return run_preprocess(image, PreprocessOptions()).tensor


def run_preprocess(image: RasterImage, opts: PreprocessOptions) -> PreprocessOutput:
    if not isinstance(image, Image.Image):
        raise InvalidImage("expected a PIL image")
    width, height = image.size
    if width <= 0 or height <= 0:
        raise InvalidImage(f"image dimensions must be positive, got {width}x{height}")
    try:
        rgb = image.convert("RGB")
        resized = rgb.resize((INPUT_WIDTH, INPUT_HEIGHT), resample=Image.Resampling.BILINEAR)
        buf: bytes = resized.tobytes()
    except (ValueError, OSError) as exc:
        raise InvalidImage(str(exc)) from exc

    lum = [luminance(buf[i], buf[i + 1], buf[i + 2]) for i in range(0, len(buf), 3)]
    values = torch.tensor([v / 255.0 for v in lum], dtype=torch.float32)
    visual: bytes | None = None
    if opts.visualize:
        gray = Image.frombytes("L", (INPUT_WIDTH, INPUT_HEIGHT), bytes(lum))
        visual = _visualize_png(gray, opts.visualize_max_kb)
    return PreprocessOutput(tensor=NormalizedTensor(values=values), visual_png=visual)


def luminance(r: int, g: int, b: int) -> int:
    """Weighted sum ``0.299 R + 0.587 G + 0.114 B`` truncated to an int in [0, 255]."""
    return (_LUMA_R * r + _LUMA_G * g + _LUMA_B * b) // _LUMA_SCALE


def raster_from_argb(pixels: Sequence[int], width: int, height: int) -> RasterImage:
    """Build an RGBA image from packed 32-bit ARGB integers in row-major order."""
    if width <= 0 or height <= 0:
        raise InvalidImage(f"image dimensions must be positive, got {width}x{height}")
    if len(pixels) != width * height:
        raise InvalidImage(f"expected {width * height} pixels, got {len(pixels)}")
    data = bytearray(4 * len(pixels))
    for i, color in enumerate(pixels):
        o = 4 * i
        data[o] = (color >> 16) & 0xFF
        data[o + 1] = (color >> 8) & 0xFF
        data[o + 2] = color & 0xFF
        data[o + 3] = (color >> 24) & 0xFF
    return Image.frombytes("RGBA", (width, height), bytes(data))


def preprocess_signature() -> str:
    return _PREPROCESS_SIGNATURE


def _visualize_png(img: Image.Image, max_kb: int) -> bytes | None:
    scale = 4
    vis = img.resize((img.size[0] * scale, img.size[1] * scale), resample=Image.Resampling.NEAREST)
    buf = io.BytesIO()
    vis.save(buf, format="PNG", optimize=True)
    b = buf.getvalue()
    if len(b) > max_kb * 1024:
        return None
    return b
