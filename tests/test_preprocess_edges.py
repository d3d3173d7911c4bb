from __future__ import annotations

import pytest
from PIL import Image

from digit_recognizer.errors import InvalidImage
from digit_recognizer.preprocess import preprocess, raster_from_argb


def test_raster_from_argb_unpacks_channels() -> None:
    img = raster_from_argb([0xFF102030, 0x80FFFFFF, 0xFF000000, 0x00ABCDEF], 2, 2)
    assert img.mode == "RGBA" and img.size == (2, 2)
    assert img.getpixel((0, 0)) == (0x10, 0x20, 0x30, 0xFF)
    assert img.getpixel((1, 0)) == (0xFF, 0xFF, 0xFF, 0x80)
    assert img.getpixel((0, 1)) == (0, 0, 0, 0xFF)
    assert img.getpixel((1, 1)) == (0xAB, 0xCD, 0xEF, 0)


def test_raster_from_argb_rejects_bad_dimensions() -> None:
    with pytest.raises(InvalidImage):
        raster_from_argb([], 0, 0)
    with pytest.raises(InvalidImage):
        raster_from_argb([0xFFFFFFFF], 1, -1)


def test_raster_from_argb_rejects_pixel_count_mismatch() -> None:
    with pytest.raises(InvalidImage):
        raster_from_argb([0xFFFFFFFF] * 3, 2, 2)


def test_argb_surface_pixels_through_preprocess() -> None:
    side = 56
    white = 0xFFFFFFFF
    black = 0xFF000000
    row = [white if side // 4 <= x < 3 * side // 4 else black for x in range(side)]
    pixels = row * side
    t = preprocess(raster_from_argb(pixels, side, side))
    vals = t.values.tolist()
    # Columns well inside the band are pure white, far outside pure black
    assert vals[14 * 28 + 14] == 1.0
    assert vals[14 * 28 + 1] == 0.0


def test_palette_image_is_accepted() -> None:
    img = Image.new("RGB", (30, 30), (255, 255, 255)).convert("P")
    vals = preprocess(img).values.tolist()
    assert all(v == 1.0 for v in vals)


def test_one_pixel_image_is_upscaled() -> None:
    img = Image.new("RGB", (1, 1), (0, 0, 0))
    t = preprocess(img)
    assert len(t) == 784 and float(t.values.max().item()) == 0.0
