from __future__ import annotations

from collections.abc import Sequence

from .inference.types import NO_PREDICTION, PredictedLabel


def select(probs: Sequence[float]) -> PredictedLabel:
    """Return the index of the largest probability, or ``NO_PREDICTION``.

    The scan starts from a 0.0 baseline and an entry only wins when it is
    strictly greater than the current best. Consequences:

    - on exact ties the lowest index wins;
    - vectors with no positive entry (all zero, all negative, NaN) yield
      ``NO_PREDICTION``.
    """
    best_idx = NO_PREDICTION
    best = 0.0
    for i, p in enumerate(probs):
        if p > best:
            best = p
            best_idx = i
    return best_idx


def confidence_of(probs: Sequence[float], label: PredictedLabel) -> float:
    if label == NO_PREDICTION:
        return 0.0
    return float(probs[label])
