from __future__ import annotations

import pickle
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

import torch
from torch import Tensor

from ..errors import ModelLoadError
from ..logging import get_logger
from .manifest import ModelManifest

_LOAD_ERRORS: Final[tuple[type[BaseException], ...]] = (
    OSError,
    ValueError,
    RuntimeError,
    TypeError,
    EOFError,
    pickle.UnpicklingError,
    zipfile.BadZipFile,
)


@dataclass(frozen=True)
class ModelArtifact:
    path: Path
    manifest: ModelManifest
    state_dict: dict[str, Tensor]


def load_artifact(path: Path) -> ModelArtifact:
    """Load a single-file checkpoint ``{"manifest": {...}, "state_dict": {...}}``.

    Tensor storages are memory-mapped from the file rather than read up front.
    Every failure is reported as ``ModelLoadError``.
    """
    if not path.exists():
        raise ModelLoadError(f"model artifact not found: {path}")
    if not path.is_file():
        raise ModelLoadError(f"model artifact is not a file: {path}")
    try:
        obj = _torch_load_mmap(path)
    except _LOAD_ERRORS as exc:
        get_logger().info("artifact_load_failed path=%s error=%s", path.as_posix(), exc)
        raise ModelLoadError(f"failed to load model artifact: {path}") from exc
    if not isinstance(obj, dict):
        raise ModelLoadError("model artifact did not contain a dict")
    man_obj = obj.get("manifest")
    sd_obj = obj.get("state_dict")
    if not isinstance(man_obj, dict):
        raise ModelLoadError("model artifact is missing its manifest")
    if not isinstance(sd_obj, dict):
        raise ModelLoadError("model artifact is missing its state_dict")
    try:
        manifest = ModelManifest.from_dict({str(k): v for k, v in man_obj.items()})
    except (KeyError, ValueError) as exc:
        raise ModelLoadError(f"invalid manifest: {exc}") from exc
    state: dict[str, Tensor] = {}
    for k, v in sd_obj.items():
        if isinstance(k, str) and torch.is_tensor(v):
            state[k] = v
        else:
            raise ModelLoadError("invalid state dict entry")
    return ModelArtifact(path=path, manifest=manifest, state_dict=state)


def write_artifact(path: Path, manifest: ModelManifest, state_dict: dict[str, Tensor]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    torch.save({"manifest": manifest.to_dict(), "state_dict": state_dict}, path.as_posix())
    get_logger().info("artifact_saved path=%s size_bytes=%d", path.as_posix(), path.stat().st_size)
    return path


if TYPE_CHECKING:

    def _torch_load_mmap(path: Path) -> object: ...
else:

    def _torch_load_mmap(path: Path) -> object:
        return torch.load(
            path.as_posix(),
            map_location=torch.device("cpu"),
            weights_only=True,
            mmap=True,
        )
