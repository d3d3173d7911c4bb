from __future__ import annotations

import logging
from pathlib import Path

import torch
from torch import Tensor

from ..config import ClassifierConfig
from ..errors import ModelLoadError, ShapeMismatch
from ..logging import get_logger, log_event
from ..preprocess import preprocess_signature
from .artifact import load_artifact
from .manifest import ModelManifest
from .models import TorchModel, build_model
from .types import (
    INPUT_BATCH,
    INPUT_CHANNELS,
    INPUT_HEIGHT,
    INPUT_NUMEL,
    INPUT_WIDTH,
    NUM_DIGITS,
    NormalizedTensor,
    ProbabilityVector,
)


class InferenceRunner:
    """Owns a loaded digit model for the lifetime of the process.

    Construction either yields a ready runner or raises ``ModelLoadError``;
    there is no half-loaded state. ``infer`` is synchronous and not safe for
    concurrent calls; callers serialize access.
    """

    def __init__(self, model_path: Path, config: ClassifierConfig) -> None:
        self._logger = get_logger()
        artifact = load_artifact(model_path)
        man = artifact.manifest
        if man.preprocess_hash != preprocess_signature():
            raise ModelLoadError(
                f"model expects preprocessing {man.preprocess_hash!r}, "
                f"pipeline provides {preprocess_signature()!r}"
            )
        try:
            model = build_model(arch=man.arch, n_classes=int(man.n_classes))
        except (ValueError, RuntimeError) as exc:
            raise ModelLoadError(str(exc)) from exc
        try:
            model.load_state_dict(artifact.state_dict, strict=True)
        except RuntimeError as exc:
            self._logger.info("state_dict_invalid arch=%s", man.arch)
            raise ModelLoadError(f"state dict does not fit arch {man.arch}") from exc
        model.eval()
        torch.set_num_threads(int(config.threads))
        self._device = _place_model(model, accelerate=config.accelerate)
        self._model: TorchModel = model
        self._manifest = man
        self._threads = int(config.threads)
        log_event(
            "model_loaded",
            {"model_id": man.model_id, "device": self._device.type, "threads": self._threads},
        )

    @property
    def manifest(self) -> ModelManifest:
        return self._manifest

    @property
    def model_id(self) -> str:
        return self._manifest.model_id

    @property
    def device(self) -> torch.device:
        return self._device

    def infer(self, tensor: NormalizedTensor) -> ProbabilityVector:
        values = tensor.values
        if values.ndim != 1 or int(values.numel()) != INPUT_NUMEL:
            raise ShapeMismatch(
                f"expected flat tensor of {INPUT_NUMEL} values, got shape {tuple(values.shape)}"
            )
        if not values.is_floating_point():
            raise ShapeMismatch(f"expected floating point tensor, got {values.dtype}")
        batch = values.reshape(INPUT_BATCH, INPUT_CHANNELS, INPUT_HEIGHT, INPUT_WIDTH).to(
            device=self._device, dtype=torch.float32
        )
        with torch.inference_mode():
            out = self._model(batch)
        return _to_probability_vector(out, self._manifest)


def _to_probability_vector(out: Tensor, man: ModelManifest) -> ProbabilityVector:
    if out.ndim != 2 or int(out.shape[0]) != INPUT_BATCH or int(out.shape[1]) != NUM_DIGITS:
        raise ShapeMismatch(f"model produced shape {tuple(out.shape)}, expected (1, {NUM_DIGITS})")
    if man.output == "logits":
        vec = torch.softmax(out / float(man.temperature), dim=1)[0]
    else:
        vec = out[0]
    # tolist() copies out of engine-owned storage
    return tuple(float(x) for x in vec.detach().cpu().tolist())


def _accelerator_device() -> torch.device | None:
    if torch.cuda.is_available():
        return torch.device("cuda")
    mps = getattr(torch.backends, "mps", None)
    if mps is not None and mps.is_available():
        return torch.device("mps")
    return None


def _place_model(model: TorchModel, *, accelerate: bool) -> torch.device:
    cpu = torch.device("cpu")
    if not accelerate:
        return cpu
    device = _accelerator_device()
    if device is None:
        log_event("accelerator_fallback", {"device": "cpu", "reason": "unavailable"})
        return cpu
    try:
        model.to(device)
    except RuntimeError as exc:
        # Degraded mode, never fatal: keep serving on CPU
        log_event(
            "accelerator_fallback",
            {"device": "cpu", "reason": f"{device.type}_failed"},
            level=logging.WARNING,
        )
        get_logger().debug("accelerator_error error=%s", exc)
        model.to(cpu)
        return cpu
    return device
