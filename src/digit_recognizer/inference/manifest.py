from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final, Literal

from .types import NUM_DIGITS

OutputKind = Literal["logits", "probs"]

_ALLOWED_SCHEMA_VERSIONS: Final[tuple[str, ...]] = ("v1",)


@dataclass(frozen=True)
class ModelManifest:
    schema_version: str
    model_id: str
    arch: str
    n_classes: int
    version: str
    created_at: datetime
    preprocess_hash: str
    output: OutputKind
    temperature: float

    @staticmethod
    def from_dict(d: dict[str, object]) -> ModelManifest:
        created_at_str = str(d["created_at"]) if "created_at" in d else ""
        created = datetime.fromisoformat(created_at_str) if created_at_str else datetime.now(UTC)
        n_classes = int(str(d.get("n_classes", NUM_DIGITS)))
        temperature = float(str(d.get("temperature", 1.0)))
        if n_classes != NUM_DIGITS:
            raise ValueError(f"n_classes must be {NUM_DIGITS}")
        if not math.isfinite(temperature) or temperature <= 0.0:
            raise ValueError("temperature must be finite and > 0")
        schema_version = str(d.get("schema_version", "")).strip()
        model_id = str(d.get("model_id", "")).strip()
        arch = str(d.get("arch", "")).strip()
        version = str(d.get("version", "")).strip()
        preprocess_hash = str(d.get("preprocess_hash", "")).strip()
        output_raw = str(d.get("output", "logits")).strip()
        if not schema_version or not model_id or not arch or not version or not preprocess_hash:
            raise ValueError("manifest is missing required fields")
        if schema_version not in _ALLOWED_SCHEMA_VERSIONS:
            raise ValueError("unsupported manifest schema version")
        output: OutputKind
        if output_raw == "logits":
            output = "logits"
        elif output_raw == "probs":
            output = "probs"
        else:
            raise ValueError(f"unsupported output kind: {output_raw}")
        return ModelManifest(
            schema_version=schema_version,
            model_id=model_id,
            arch=arch,
            n_classes=n_classes,
            version=version,
            created_at=created,
            preprocess_hash=preprocess_hash,
            output=output,
            temperature=temperature,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "schema_version": self.schema_version,
            "model_id": self.model_id,
            "arch": self.arch,
            "n_classes": self.n_classes,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "preprocess_hash": self.preprocess_hash,
            "output": self.output,
            "temperature": self.temperature,
        }
