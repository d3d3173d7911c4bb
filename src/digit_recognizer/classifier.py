from __future__ import annotations

import threading
import time

from .config import Settings
from .inference.engine import InferenceRunner
from .inference.types import (
    PredictedLabel,
    PredictOutput,
    ProbabilityEngine,
    RasterImage,
)
from .logging import log_event
from .preprocess import PreprocessOptions, run_preprocess
from .select import confidence_of, select


class DigitClassifier:
    """Runs preprocess, inference and selection for one drawing at a time.

    The engine is not reentrant, so each pipeline run holds the lock for its
    whole duration.
    """

    def __init__(self, engine: ProbabilityEngine, options: PreprocessOptions | None = None) -> None:
        self._engine = engine
        self._options = options if options is not None else PreprocessOptions()
        self._lock = threading.Lock()
        self._last_visual: bytes | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> DigitClassifier:
        runner = InferenceRunner(settings.classifier.model_path, settings.classifier)
        opts = PreprocessOptions(
            visualize=settings.preprocess.visualize,
            visualize_max_kb=settings.preprocess.visualize_max_kb,
        )
        return cls(runner, opts)

    @property
    def engine(self) -> ProbabilityEngine:
        return self._engine

    @property
    def last_visual(self) -> bytes | None:
        """PNG of the last 28x28 model input, when visualization is enabled."""
        return self._last_visual

    def classify(self, image: RasterImage) -> PredictedLabel:
        return self.predict(image).digit

    def predict(self, image: RasterImage) -> PredictOutput:
        with self._lock:
            t0 = time.perf_counter()
            pre = run_preprocess(image, self._options)
            probs = self._engine.infer(pre.tensor)
            digit = select(probs)
            self._last_visual = pre.visual_png
            latency_ms = int((time.perf_counter() - t0) * 1000)
        out = PredictOutput(
            digit=digit,
            confidence=confidence_of(probs, digit),
            probs=probs,
            model_id=self._engine.model_id,
        )
        log_event(
            "classify_done",
            {
                "latency_ms": latency_ms,
                "digit": out.digit,
                "confidence": out.confidence,
                "model_id": out.model_id,
            },
        )
        return out
