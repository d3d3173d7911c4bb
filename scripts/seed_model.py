from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import torch

from digit_recognizer.config import Settings
from digit_recognizer.inference.artifact import write_artifact
from digit_recognizer.inference.manifest import ModelManifest
from digit_recognizer.inference.models import ARCHES, build_fresh_state_dict
from digit_recognizer.inference.types import NUM_DIGITS
from digit_recognizer.logging import init_logging_from
from digit_recognizer.preprocess import preprocess_signature


@dataclass(frozen=True)
class SeedArgs:
    model_id: str
    arch: str
    out: Path
    seed: int
    config: Path | None = None


def parse_args(argv: list[str] | None = None) -> SeedArgs:
    ap = argparse.ArgumentParser(
        description="Write an untrained, correctly shaped model artifact for wiring checks"
    )
    ap.add_argument("--model-id", default="seed_small_cnn", help="Model id recorded in manifest")
    ap.add_argument("--arch", default="small_cnn", choices=list(ARCHES), help="Architecture")
    ap.add_argument("--out", default="./assets/mnist.pt", help="Destination artifact path")
    ap.add_argument("--seed", type=int, default=0, help="Weight initialization seed")
    ap.add_argument("--config", default=None, help="TOML settings file for the [logging] table")
    a = ap.parse_args(argv)
    return SeedArgs(
        model_id=str(a.model_id),
        arch=str(a.arch),
        out=Path(str(a.out)),
        seed=int(a.seed),
        config=Path(str(a.config)) if a.config is not None else None,
    )


def write_seed(args: SeedArgs) -> Path:
    torch.manual_seed(args.seed)
    sd = build_fresh_state_dict(args.arch, NUM_DIGITS)
    manifest = ModelManifest(
        schema_version="v1",
        model_id=args.model_id,
        arch=args.arch,
        n_classes=NUM_DIGITS,
        version="0.0.0",
        created_at=datetime.now(UTC),
        preprocess_hash=preprocess_signature(),
        output="logits",
        temperature=1.0,
    )
    out = write_artifact(args.out, manifest, sd)
    logging.getLogger("digit_recognizer").info(
        "seed_model_written model_id=%s arch=%s out=%s",
        args.model_id,
        args.arch,
        out.as_posix(),
    )
    return out


def main(argv: list[str] | None = None) -> Path:
    args = parse_args(argv)
    init_logging_from(Settings.load(args.config).logging)
    return write_seed(args)


if __name__ == "__main__":
    main()
