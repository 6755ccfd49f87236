"""
Tests for resolution ranking and confidence filtering.
"""

import pytest

from fieldops.scheduling.exceptions import InputValidationError
from fieldops.scheduling.models import ConflictResolution, ResolutionImpact, ResolutionType
from fieldops.scheduling.ranking import filter_by_confidence, rank_resolutions


def _resolution(resolution_id: str, confidence: int, cost: float = 0.0) -> ConflictResolution:
    return ConflictResolution(
        id=resolution_id,
        conflict_id="conflict-1",
        type=ResolutionType.RESCHEDULE,
        description=resolution_id,
        confidence=confidence,
        impact=ResolutionImpact(affected_assignments=1, cost_impact=cost),
    )


class TestRankResolutions:

    def test_confidence_then_cost(self):
        resolutions = [
            _resolution("low", 70),
            _resolution("pricey", 90, cost=10.0),
            _resolution("cheap", 90, cost=-5.0),
        ]

        ranked = rank_resolutions(resolutions)

        assert [r.id for r in ranked] == ["cheap", "pricey", "low"]
        assert [r.id for r in resolutions] == ["low", "pricey", "cheap"]

    def test_ties_keep_input_order(self):
        ranked = rank_resolutions([_resolution("first", 80), _resolution("second", 80)])
        assert [r.id for r in ranked] == ["first", "second"]

    def test_confidence_is_clamped(self):
        assert _resolution("over", 120).confidence == 100
        assert _resolution("under", -3).confidence == 0


class TestFilterByConfidence:

    def test_threshold_is_inclusive_and_order_preserved(self):
        resolutions = [_resolution("a", 85), _resolution("b", 60), _resolution("c", 70)]

        kept = filter_by_confidence(resolutions, 70)

        assert [r.id for r in kept] == ["a", "c"]

    def test_default_threshold(self):
        kept = filter_by_confidence([_resolution("a", 69), _resolution("b", 70)])
        assert [r.id for r in kept] == ["b"]

    def test_nothing_passes(self):
        assert filter_by_confidence([_resolution("a", 60)], 95) == []

    @pytest.mark.parametrize("threshold", [-1, 100.5, True, "70", None])
    def test_invalid_threshold(self, threshold):
        with pytest.raises(InputValidationError):
            filter_by_confidence([_resolution("a", 80)], threshold)
