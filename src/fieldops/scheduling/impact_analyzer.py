"""
Impact Analyzer

Aggregates the expected effect of a set of resolutions before they are
applied, and measures how many conflicts a changed schedule actually clears.

Usage:
    analyzer = ImpactAnalyzer()

    report = analyzer.assess(resolutions, assignments, conflicts)
    metrics = analyzer.resolution_metrics(conflicts, updated_assignments, date_range, team)
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from fieldops.platform.config import Settings

from .base import SchedulerBase
from .conflict_detector import ConflictDetector
from .models import (
    Assignment,
    ConflictResolution,
    DateRange,
    ImpactLevel,
    SchedulingConflict,
    TeamMember,
    _jsonable,
    utc_now,
)

CUSTOMER_IMPACT_SCORES = {
    ImpactLevel.NONE: 0,
    ImpactLevel.LOW: -5,
    ImpactLevel.MEDIUM: -15,
    ImpactLevel.HIGH: -30,
}

# Monetary value of one minute of saved time
TIME_VALUE_PER_MINUTE = 0.5
IMPLEMENTATION_COST_PER_RESOLUTION = 10.0


@dataclass
class ImpactReport:
    """Impact assessment for a set of resolutions."""
    impact_level: ImpactLevel
    summary: str
    resolution_count: int

    total_cost_impact: float = 0.0
    total_time_impact: int = 0
    customer_satisfaction_score: float = 100.0
    team_utilization_change: float = 0.0
    operational_risk: str = "low"
    conflict_resolution_rate: float = 0.0
    estimated_roi: float = 0.0

    high_risk_resolutions: List[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable({f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class ResolutionMetrics:
    """Before/after conflict counts for a changed schedule."""
    original_conflict_count: int
    resolved_conflict_count: int
    resolution_rate: float
    remaining_conflicts: List[SchedulingConflict] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_conflict_count": self.original_conflict_count,
            "resolved_conflict_count": self.resolved_conflict_count,
            "resolution_rate": self.resolution_rate,
            "remaining_conflicts": [c.to_dict() for c in self.remaining_conflicts],
        }


class ImpactAnalyzer(SchedulerBase):
    """Assesses resolution sets and re-checks schedules after changes."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        detector: Optional[ConflictDetector] = None,
    ):
        super().__init__(settings)
        self.detector = detector or ConflictDetector(settings=self.settings)

    def assess(
        self,
        resolutions: Sequence[ConflictResolution],
        assignments: Sequence[Assignment],
        conflicts: Sequence[SchedulingConflict],
    ) -> ImpactReport:
        """
        Assess the combined impact of applying `resolutions`.

        Args:
            resolutions: Resolutions under consideration
            assignments: Current assignment snapshot
            conflicts: Conflicts the resolutions address

        Returns:
            ImpactReport with cost, time, satisfaction, risk and ROI figures
        """
        if not resolutions:
            return ImpactReport(
                impact_level=ImpactLevel.NONE,
                summary="No resolutions selected",
                resolution_count=0,
            )

        total_cost = sum(r.impact.cost_impact for r in resolutions)
        total_time = sum(r.impact.time_impact for r in resolutions)

        customer_scores = [CUSTOMER_IMPACT_SCORES[r.impact.customer_impact] for r in resolutions]
        satisfaction = max(0.0, 100 + sum(customer_scores) / len(customer_scores))

        affected = sum(r.impact.affected_assignments for r in resolutions)
        utilization_change = (affected / len(assignments)) * 100 if assignments else 0.0

        high_risk = [
            r.id for r in resolutions
            if ImpactLevel.HIGH in (r.impact.customer_impact, r.impact.team_impact)
        ]
        if not high_risk:
            risk = "low"
        elif len(high_risk) <= 2:
            risk = "medium"
        else:
            risk = "high"

        resolvable = [c for c in conflicts if c.auto_resolvable]
        resolution_rate = min(len(resolutions) / len(resolvable) * 100, 100.0) if resolvable else 0.0

        savings = -total_cost + (-total_time * TIME_VALUE_PER_MINUTE)
        implementation_cost = len(resolutions) * IMPLEMENTATION_COST_PER_RESOLUTION
        roi = ((savings - implementation_cost) / implementation_cost) * 100

        impact_level = self._determine_impact_level(risk, satisfaction, utilization_change)
        summary = (
            f"{len(resolutions)} resolutions affecting {affected} assignments: "
            f"{total_time:+} minutes, {total_cost:+.2f} cost, {risk} operational risk"
        )
        self.logger.info(f"Impact assessment: {summary}")

        return ImpactReport(
            impact_level=impact_level,
            summary=summary,
            resolution_count=len(resolutions),
            total_cost_impact=total_cost,
            total_time_impact=total_time,
            customer_satisfaction_score=round(satisfaction, 2),
            team_utilization_change=round(utilization_change, 2),
            operational_risk=risk,
            conflict_resolution_rate=round(resolution_rate, 2),
            estimated_roi=round(roi, 2),
            high_risk_resolutions=high_risk,
            generated_at=self.now(),
        )

    def resolution_metrics(
        self,
        original_conflicts: Sequence[SchedulingConflict],
        assignments: Iterable[Assignment],
        date_range: DateRange,
        team_members: Optional[Iterable[TeamMember]] = None,
    ) -> ResolutionMetrics:
        """Re-run detection on an updated schedule and compare with the original conflicts."""
        remaining = self.detector.detect_conflicts(assignments, date_range, team_members)
        original_count = len(original_conflicts)
        resolved = original_count - len(remaining)

        rate = (resolved / original_count) * 100 if original_count else 100.0

        return ResolutionMetrics(
            original_conflict_count=original_count,
            resolved_conflict_count=resolved,
            resolution_rate=round(rate, 2),
            remaining_conflicts=remaining,
        )

    def _determine_impact_level(
        self,
        risk: str,
        satisfaction: float,
        utilization_change: float,
    ) -> ImpactLevel:
        """Overall impact level from risk, satisfaction and utilisation shift."""
        if risk == "high" or satisfaction < 80:
            return ImpactLevel.HIGH
        if risk == "medium" or satisfaction < 95 or abs(utilization_change) > 15:
            return ImpactLevel.MEDIUM
        return ImpactLevel.LOW
