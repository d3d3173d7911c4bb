from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Final, Protocol

import torch
from torch import Tensor, nn

ARCHES: Final[tuple[str, ...]] = ("small_cnn", "resnet18")


class TorchModel(Protocol):
    def eval(self) -> object: ...
    def __call__(self, x: Tensor) -> Tensor: ...
    def load_state_dict(self, sd: Mapping[str, Tensor], strict: bool = True) -> object: ...
    def state_dict(self) -> dict[str, Tensor]: ...
    def to(self, device: torch.device) -> object: ...


class SmallCNN(nn.Module):
    """Two conv blocks and a two-layer head over 1x28x28 input."""

    def __init__(self, num_classes: int = 10) -> None:
        super().__init__()
        self.conv1 = nn.Conv2d(1, 32, 3, padding=1)
        self.conv2 = nn.Conv2d(32, 64, 3, padding=1)
        self.pool = nn.MaxPool2d(2, 2)
        self.drop = nn.Dropout(0.3)
        self.fc1 = nn.Linear(64 * 7 * 7, 128)
        self.fc2 = nn.Linear(128, num_classes)

    def forward(self, x: Tensor) -> Tensor:
        x = self.pool(torch.relu(self.conv1(x)))
        x = self.pool(torch.relu(self.conv2(x)))
        x = self.drop(x)
        x = torch.flatten(x, 1)
        x = torch.relu(self.fc1(x))
        out: Tensor = self.fc2(x)
        return out


if TYPE_CHECKING:

    def build_model(arch: str, n_classes: int) -> TorchModel: ...
else:

    def build_model(arch: str, n_classes: int) -> TorchModel:
        if arch == "small_cnn":
            return SmallCNN(num_classes=int(n_classes))
        if arch == "resnet18":
            import importlib

            tv_models = importlib.import_module("torchvision.models")
            fn_obj = getattr(tv_models, "resnet18", None)
            if not callable(fn_obj):
                raise RuntimeError("torchvision.models.resnet18 is not callable")
            inner = fn_obj(weights=None, num_classes=int(n_classes))
            # CIFAR-style stem with a single input channel
            if hasattr(inner, "conv1"):
                inner.conv1 = nn.Conv2d(1, 64, kernel_size=3, stride=1, padding=1, bias=False)
            if hasattr(inner, "maxpool"):
                inner.maxpool = nn.Identity()
            return inner
        raise ValueError(f"unknown model arch: {arch}")


def build_fresh_state_dict(arch: str, n_classes: int) -> dict[str, Tensor]:
    m = build_model(arch=arch, n_classes=n_classes)
    sd_obj = m.state_dict()
    out: dict[str, Tensor] = {}
    for k, v in sd_obj.items():
        if isinstance(k, str) and torch.is_tensor(v):
            out[k] = v
        else:
            raise RuntimeError("invalid state dict entry from model")
    return out
