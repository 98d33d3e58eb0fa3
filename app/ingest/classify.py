from __future__ import annotations

import enum
import math

LANDSCAPE_MIN_RATIO = 1.7
PORTRAIT_MAX_RATIO = 0.6


class AspectClassification(str, enum.Enum):
    landscape = "landscape"
    portrait = "portrait"
    other = "other"


def classify(ratio: float) -> AspectClassification:
    """Bucket a width/height ratio; both thresholds themselves fall into ``other``."""
    if not math.isfinite(ratio) or ratio <= 0:
        raise ValueError(f"ratio must be positive and finite, got {ratio!r}")
    if ratio > LANDSCAPE_MIN_RATIO:
        return AspectClassification.landscape
    if ratio < PORTRAIT_MAX_RATIO:
        return AspectClassification.portrait
    return AspectClassification.other


__all__ = ["AspectClassification", "LANDSCAPE_MIN_RATIO", "PORTRAIT_MAX_RATIO", "classify"]
