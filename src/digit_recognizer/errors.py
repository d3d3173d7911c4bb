from __future__ import annotations

from enum import Enum
from typing import Final


class ErrorCode(str, Enum):
    invalid_image = "invalid_image"
    model_load_failed = "model_load_failed"
    shape_mismatch = "shape_mismatch"


_DEFAULT_MESSAGE: Final[dict[ErrorCode, str]] = {
    ErrorCode.invalid_image: "Drawing could not be converted. Please redraw.",
    ErrorCode.model_load_failed: "Model artifact could not be loaded.",
    ErrorCode.shape_mismatch: "Input tensor does not match the model input shape.",
}

_RECOVERABLE: Final[frozenset[ErrorCode]] = frozenset({ErrorCode.invalid_image})


class AppError(Exception):
    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        msg = message if message is not None else default_message(code)
        super().__init__(msg)
        self.code = code
        self.message = msg

    @property
    def recoverable(self) -> bool:
        return is_recoverable(self.code)


class InvalidImage(AppError):
    """Malformed or zero-size raster; the caller should prompt a redraw."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorCode.invalid_image, message)


class ModelLoadError(AppError):
    """Model artifact missing, unreadable or invalid; fatal for the process."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorCode.model_load_failed, message)


class ShapeMismatch(AppError):
    """Tensor handed to the engine does not match its configured input."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorCode.shape_mismatch, message)


def default_message(code: ErrorCode) -> str:
    return _DEFAULT_MESSAGE.get(code, "")


def is_recoverable(code: ErrorCode) -> bool:
    return code in _RECOVERABLE
