from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Final

_DEFAULT_CONFIG_PATH: Final[Path] = Path("config/digit_recognizer.toml")
_LOG_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_LOG_STYLES: Final[frozenset[str]] = frozenset({"json", "pretty", "auto"})


@dataclass(frozen=True)
class ClassifierConfig:
    model_path: Path = Path("assets/mnist.pt")
    # Intra-op parallelism hint for a single inference call
    threads: int = 3
    accelerate: bool = True


@dataclass(frozen=True)
class PreprocessConfig:
    visualize: bool = False
    visualize_max_kb: int = 16


@dataclass(frozen=True)
class CanvasConfig:
    width: int = 560
    height: int = 560
    stroke_width: int = 24
    touch_tolerance: float = 4.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    style: str = "auto"


@dataclass(frozen=True)
class Settings:
    classifier: ClassifierConfig
    preprocess: PreprocessConfig
    canvas: CanvasConfig
    logging: LoggingConfig

    @classmethod
    def defaults(cls) -> Settings:
        return cls(
            classifier=ClassifierConfig(),
            preprocess=PreprocessConfig(),
            canvas=CanvasConfig(),
            logging=LoggingConfig(),
        )

    @classmethod
    def load(cls, path: Path | None = None) -> Settings:
        """Build settings from defaults, overridden by a TOML file if present.

        Relative ``model_path`` values are resolved against the TOML file's
        directory so a config can ship next to its model.
        """
        base = cls.defaults()
        cfg_path = path if path is not None else _DEFAULT_CONFIG_PATH
        if not cfg_path.exists():
            return base
        try:
            raw: object = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise RuntimeError(f"Failed to read config TOML: {cfg_path}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise RuntimeError(f"Invalid TOML config: {cfg_path}") from exc
        classifier_in = _toml_table(raw, "classifier")
        classifier = _merge_classifier(base.classifier, classifier_in)
        if "model_path" in classifier_in and not classifier.model_path.is_absolute():
            classifier = replace(classifier, model_path=cfg_path.parent / classifier.model_path)
        return cls(
            classifier=classifier,
            preprocess=_merge_preprocess(base.preprocess, _toml_table(raw, "preprocess")),
            canvas=_merge_canvas(base.canvas, _toml_table(raw, "canvas")),
            logging=_merge_logging(base.logging, _toml_table(raw, "logging")),
        )


def _toml_table(raw: object, key: str) -> dict[str, object]:
    if isinstance(raw, dict):
        tab: object = raw.get(key, {})
        if isinstance(tab, dict):
            return {str(k): v for k, v in tab.items()}
    return {}


def _merge_classifier(base: ClassifierConfig, data: dict[str, object]) -> ClassifierConfig:
    out = base
    if "model_path" in data:
        out = replace(out, model_path=Path(str(data["model_path"])))
    if "threads" in data:
        threads = int(str(data["threads"]))
        if threads < 1:
            raise RuntimeError("classifier.threads must be >= 1")
        out = replace(out, threads=threads)
    if "accelerate" in data:
        out = replace(out, accelerate=bool(data["accelerate"]))
    return out


def _merge_preprocess(base: PreprocessConfig, data: dict[str, object]) -> PreprocessConfig:
    out = base
    if "visualize" in data:
        out = replace(out, visualize=bool(data["visualize"]))
    if "visualize_max_kb" in data:
        out = replace(out, visualize_max_kb=int(str(data["visualize_max_kb"])))
    return out


def _merge_canvas(base: CanvasConfig, data: dict[str, object]) -> CanvasConfig:
    out = base
    if "width" in data:
        out = replace(out, width=int(str(data["width"])))
    if "height" in data:
        out = replace(out, height=int(str(data["height"])))
    if "stroke_width" in data:
        out = replace(out, stroke_width=int(str(data["stroke_width"])))
    if "touch_tolerance" in data:
        out = replace(out, touch_tolerance=float(str(data["touch_tolerance"])))
    if out.width < 1 or out.height < 1:
        raise RuntimeError("canvas dimensions must be >= 1")
    if out.stroke_width < 1:
        raise RuntimeError("canvas.stroke_width must be >= 1")
    if out.touch_tolerance < 0.0:
        raise RuntimeError("canvas.touch_tolerance must be >= 0")
    return out


def _merge_logging(base: LoggingConfig, data: dict[str, object]) -> LoggingConfig:
    out = base
    if "level" in data:
        level = str(data["level"]).strip().upper()
        if level not in _LOG_LEVELS:
            raise RuntimeError(f"unknown log level: {level}")
        out = replace(out, level=level)
    if "style" in data:
        style = str(data["style"]).strip().lower()
        if style not in _LOG_STYLES:
            raise RuntimeError(f"unknown log style: {style}")
        out = replace(out, style=style)
    return out
