from __future__ import annotations

import array
from dataclasses import dataclass
from typing import Final, Protocol

from PIL import Image
from torch import Tensor

INPUT_BATCH: Final[int] = 1
INPUT_WIDTH: Final[int] = 28
INPUT_HEIGHT: Final[int] = 28
INPUT_CHANNELS: Final[int] = 1
INPUT_NUMEL: Final[int] = INPUT_BATCH * INPUT_WIDTH * INPUT_HEIGHT * INPUT_CHANNELS
NUM_DIGITS: Final[int] = 10
# Returned by select() when no probability exceeds the 0.0 baseline
NO_PREDICTION: Final[int] = -1

RasterImage = Image.Image
ProbabilityVector = tuple[float, ...]
PredictedLabel = int


@dataclass(frozen=True)
class NormalizedTensor:
    """Flat float32 tensor of 784 values in [0, 1], row-major over height then width."""

    values: Tensor

    def __len__(self) -> int:
        return int(self.values.numel())

    def to_bytes(self) -> bytes:
        # array("f") is C float, written in native byte order
        return array.array("f", [float(v) for v in self.values.tolist()]).tobytes()


@dataclass(frozen=True)
class PreprocessOutput:
    tensor: NormalizedTensor
    visual_png: bytes | None


@dataclass(frozen=True)
class PredictOutput:
    digit: int
    confidence: float
    probs: ProbabilityVector  # length 10
    model_id: str


class ProbabilityEngine(Protocol):
    @property
    def model_id(self) -> str: ...

    def infer(self, tensor: NormalizedTensor) -> ProbabilityVector: ...
