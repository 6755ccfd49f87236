"""
Impact estimation for resolution candidates and detected conflicts.

The default estimator returns fixed heuristic values per conflict type and
strategy. A data-driven estimator (real travel deltas, historical success
rates) can be injected into the ResolutionGenerator without changing the
detector or generator contracts, as long as more specific conflict types keep
a higher baseline confidence than the manual-review fallback.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, NamedTuple

from .models import SchedulingConflict, Severity


class Strategy(str, Enum):
    """Resolution strategies the generator can propose."""
    RESCHEDULE = "reschedule"
    REASSIGN = "reassign"
    REDISTRIBUTE = "redistribute"
    REASSIGN_CLOSER = "reassign_closer"
    MANUAL_REVIEW = "manual_review"


class ImpactEstimator(ABC):
    """Estimates cost, time and confidence of applying a strategy to a conflict."""

    @abstractmethod
    def estimate_cost(self, conflict: SchedulingConflict, strategy: Strategy) -> float:
        """Signed currency delta; negative values are savings."""

    @abstractmethod
    def estimate_time(self, conflict: SchedulingConflict, strategy: Strategy) -> int:
        """Signed minutes delta; negative values are savings."""

    @abstractmethod
    def estimate_confidence(self, conflict: SchedulingConflict, strategy: Strategy) -> int:
        """Confidence 0-100 that the strategy resolves the conflict."""


class _Heuristic(NamedTuple):
    confidence: int
    time: int
    cost: float


class HeuristicImpactEstimator(ImpactEstimator):
    """Fixed per-strategy estimates."""

    HEURISTICS: Dict[Strategy, _Heuristic] = {
        Strategy.RESCHEDULE: _Heuristic(confidence=85, time=15, cost=0.0),
        Strategy.REASSIGN: _Heuristic(confidence=78, time=10, cost=0.0),
        Strategy.REDISTRIBUTE: _Heuristic(confidence=92, time=5, cost=0.0),
        # Savings are placeholders until real distance data is wired in
        Strategy.REASSIGN_CLOSER: _Heuristic(confidence=88, time=-30, cost=-50.0),
        Strategy.MANUAL_REVIEW: _Heuristic(confidence=60, time=20, cost=0.0),
    }

    def estimate_cost(self, conflict: SchedulingConflict, strategy: Strategy) -> float:
        return self.HEURISTICS[strategy].cost

    def estimate_time(self, conflict: SchedulingConflict, strategy: Strategy) -> int:
        return self.HEURISTICS[strategy].time

    def estimate_confidence(self, conflict: SchedulingConflict, strategy: Strategy) -> int:
        return self.HEURISTICS[strategy].confidence


SEVERITY_BASE_SCORE = {
    Severity.LOW: 20.0,
    Severity.MEDIUM: 45.0,
    Severity.HIGH: 70.0,
    Severity.CRITICAL: 90.0,
}


def score_conflict(conflict: SchedulingConflict) -> float:
    """
    Impact score 0-100 for a conflict.

    Severity sets the base; every additional affected job or team member adds
    5 points, and conflicts that cannot be auto-resolved add 5 more.
    """
    score = SEVERITY_BASE_SCORE[conflict.severity]
    score += 5.0 * max(0, len(conflict.affected_jobs) - 1)
    score += 5.0 * max(0, len(conflict.affected_team_members) - 1)
    if not conflict.auto_resolvable:
        score += 5.0
    return min(100.0, score)
