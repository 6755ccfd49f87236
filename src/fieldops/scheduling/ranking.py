"""
Ordering and filtering of resolution candidates.

Both operations are pure and return new lists.
"""

from typing import Iterable, List

from .exceptions import InputValidationError
from .models import ConflictResolution

DEFAULT_CONFIDENCE_THRESHOLD = 70


def rank_resolutions(resolutions: Iterable[ConflictResolution]) -> List[ConflictResolution]:
    """Sort by descending confidence, then by lower cost impact. Stable."""
    return sorted(resolutions, key=lambda r: (-r.confidence, r.impact.cost_impact))


def filter_by_confidence(
    resolutions: Iterable[ConflictResolution],
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> List[ConflictResolution]:
    """
    Keep resolutions whose confidence is at least `threshold`.

    Input order is preserved. An empty result is valid and means every
    candidate fell below the threshold, not that there were no conflicts.

    Raises:
        InputValidationError: threshold is not a number in [0, 100]
    """
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise InputValidationError(f"Confidence threshold must be a number, got {threshold!r}")
    if not 0 <= threshold <= 100:
        raise InputValidationError(f"Confidence threshold must be between 0 and 100, got {threshold}")

    return [r for r in resolutions if r.confidence >= threshold]
