from __future__ import annotations

from typing import Protocol

from .classifier import DigitClassifier
from .drawing import DrawingSource
from .errors import InvalidImage
from .inference.types import NO_PREDICTION, PredictedLabel
from .logging import get_logger, log_event


class LabelDisplay(Protocol):
    def show_label(self, label: PredictedLabel) -> None: ...
    def clear(self) -> None: ...


class RecognizerSession:
    """Binds the classify and reset actions of a UI shell to the pipeline."""

    def __init__(
        self, source: DrawingSource, classifier: DigitClassifier, display: LabelDisplay
    ) -> None:
        self._source = source
        self._classifier = classifier
        self._display = display

    def on_classify(self) -> PredictedLabel:
        image = self._source.get_current_drawing()
        try:
            label = self._classifier.classify(image)
        except InvalidImage as exc:
            # Recoverable: show no prediction so the user can redraw
            log_event("classify_invalid_image", {"reason": exc.code.value})
            get_logger().debug("invalid_image detail=%s", exc.message)
            label = NO_PREDICTION
        self._display.show_label(label)
        return label

    def on_reset(self) -> None:
        self._source.reset()
        self._display.clear()
