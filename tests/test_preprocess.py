from __future__ import annotations

import pytest
import torch
from PIL import Image

from digit_recognizer.errors import ErrorCode, InvalidImage
from digit_recognizer.inference.types import INPUT_NUMEL
from digit_recognizer.preprocess import (
    PreprocessOptions,
    luminance,
    preprocess,
    preprocess_signature,
    run_preprocess,
)


def _make_pattern(width: int, height: int) -> Image.Image:
    img = Image.new("RGB", (width, height))
    for y in range(height):
        for x in range(width):
            img.putpixel((x, y), ((x * 7) % 256, (y * 13) % 256, (x * y) % 256))
    return img


def test_tensor_has_784_values_in_unit_range() -> None:
    t = preprocess(_make_pattern(97, 61))
    assert len(t) == INPUT_NUMEL == 784
    assert t.values.ndim == 1
    assert str(t.values.dtype) == "torch.float32"
    assert float(t.values.min().item()) >= 0.0
    assert float(t.values.max().item()) <= 1.0


def test_buffer_is_3136_bytes() -> None:
    t = preprocess(_make_pattern(40, 40))
    assert len(t.to_bytes()) == 1 * 28 * 28 * 1 * 4


def test_preprocess_is_deterministic() -> None:
    img = _make_pattern(300, 200)
    a = preprocess(img).to_bytes()
    b = preprocess(img.copy()).to_bytes()
    assert a == b


def test_white_maps_to_one_and_black_to_zero() -> None:
    white = preprocess(Image.new("RGB", (64, 48), (255, 255, 255)))
    black = preprocess(Image.new("RGB", (64, 48), (0, 0, 0)))
    assert all(v == 1.0 for v in white.values.tolist())
    assert all(v == 0.0 for v in black.values.tolist())


def test_luminance_weights_truncate() -> None:
    assert luminance(255, 255, 255) == 255
    assert luminance(0, 0, 0) == 0
    assert luminance(255, 0, 0) == 76
    assert luminance(0, 255, 0) == 149
    assert luminance(0, 0, 255) == 29
    assert luminance(10, 10, 10) == 10


def test_elements_are_row_major_over_height_then_width() -> None:
    img = Image.new("RGB", (28, 28), (0, 0, 0))
    img.putpixel((5, 2), (255, 255, 255))
    vals = preprocess(img).values.tolist()
    assert vals[2 * 28 + 5] == 1.0
    assert sum(vals) == 1.0


def test_alpha_channel_is_ignored() -> None:
    img = Image.new("RGBA", (28, 28), (255, 255, 255, 0))
    vals = preprocess(img).values.tolist()
    assert all(v == 1.0 for v in vals)


def test_grayscale_input_keeps_its_level() -> None:
    img = Image.new("L", (28, 28), 128)
    vals = preprocess(img).values.tolist()
    expected = float(torch.tensor(128 / 255.0, dtype=torch.float32).item())
    assert all(v == expected for v in vals)


def test_downscaled_stroke_survives() -> None:
    img = Image.new("RGB", (560, 560), (0, 0, 0))
    for y in range(140, 420):
        for x in range(260, 300):
            img.putpixel((x, y), (255, 255, 255))
    t = preprocess(img)
    assert float(t.values.max().item()) > 0.5
    assert float(t.values.sum().item()) > 0.0


@pytest.mark.parametrize("size", [(0, 0), (0, 10), (10, 0)])
def test_zero_size_raises_invalid_image(size: tuple[int, int]) -> None:
    with pytest.raises(InvalidImage) as ei:
        preprocess(Image.new("RGB", size))
    assert ei.value.code is ErrorCode.invalid_image


def test_non_image_raises_invalid_image() -> None:
    bad: object = b"not an image"
    with pytest.raises(InvalidImage):
        preprocess(bad)


def test_visualize_returns_png_or_none() -> None:
    img = _make_pattern(50, 50)
    out = run_preprocess(img, PreprocessOptions(visualize=True, visualize_max_kb=64))
    assert out.visual_png is not None and out.visual_png.startswith(b"\x89PNG")
    capped = run_preprocess(img, PreprocessOptions(visualize=True, visualize_max_kb=0))
    assert capped.visual_png is None
    plain = run_preprocess(img, PreprocessOptions())
    assert plain.visual_png is None


def test_signature_names_pipeline() -> None:
    sig = preprocess_signature()
    assert sig.startswith("v1/") and "resize28" in sig
