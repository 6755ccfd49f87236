"""
Resolution Generator

Builds candidate resolutions for a detected conflict, dispatched on the
conflict type:

- time_overlap: reschedule the first job after the job it collides with, and
  (with more than one team member available) reassign it
- capacity_exceeded: redistribute roughly half of the overloaded jobs
- travel_distance: reassign to a member whose travel radius covers the leg
- anything else: a manual-review candidate

Confidence, cost and time come from an injectable ImpactEstimator. Concrete
slots and member ids are filled from the conflict details when the detector
recorded them; otherwise the changes carry human-readable placeholders.

Usage:
    generator = ResolutionGenerator()
    candidates = generator.generate_resolutions(conflict, team_members)
"""

import math
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from fieldops.platform.config import Settings

from .base import SchedulerBase
from .impact import HeuristicImpactEstimator, ImpactEstimator, Strategy
from .models import (
    ConflictResolution,
    ConflictType,
    ImpactLevel,
    ModifyChange,
    ProposedChange,
    ReassignChange,
    RescheduleChange,
    ResolutionImpact,
    ResolutionType,
    SchedulingConflict,
    TeamMember,
)


class ResolutionGenerator(SchedulerBase):
    """
    Generates ranked resolution candidates per conflict.

    Candidates for the same conflict are alternatives; applying one makes the
    others stale.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        estimator: Optional[ImpactEstimator] = None,
    ):
        super().__init__(settings)
        self.estimator = estimator or HeuristicImpactEstimator()
        self._strategies: Dict[ConflictType, Callable[..., List[ConflictResolution]]] = {
            ConflictType.TIME_OVERLAP: self._resolve_time_overlap,
            ConflictType.CAPACITY_EXCEEDED: self._resolve_capacity_exceeded,
            ConflictType.TRAVEL_DISTANCE: self._resolve_travel_distance,
        }

    def generate_resolutions(
        self,
        conflict: SchedulingConflict,
        available_team_members: Optional[Sequence[TeamMember]] = None,
    ) -> List[ConflictResolution]:
        """
        Generate resolution candidates for one conflict.

        Args:
            conflict: Detected conflict
            available_team_members: Members that may take over reassigned work

        Returns:
            Candidates sorted by descending confidence; ties keep generation order
        """
        team = list(available_team_members or [])
        strategy = self._strategies.get(conflict.type, self._resolve_manual_review)
        resolutions = strategy(conflict, team)

        resolutions.sort(key=lambda r: -r.confidence)
        self.logger.debug(
            f"Generated {len(resolutions)} resolutions for {conflict.id}",
            conflict_type=conflict.type.value,
        )
        return resolutions

    def generate_for_conflicts(
        self,
        conflicts: Iterable[SchedulingConflict],
        available_team_members: Optional[Sequence[TeamMember]] = None,
    ) -> List[ConflictResolution]:
        """Generate candidates for every conflict, in conflict order."""
        resolutions = []
        for conflict in conflicts:
            resolutions.extend(self.generate_resolutions(conflict, available_team_members))
        return resolutions

    # =========================================================================
    # Strategies
    # =========================================================================

    def _resolve_time_overlap(
        self,
        conflict: SchedulingConflict,
        team: List[TeamMember],
    ) -> List[ConflictResolution]:
        job = conflict.affected_jobs[0]
        other_job = conflict.affected_jobs[1] if len(conflict.affected_jobs) > 1 else None

        current_start = self._slot_start(conflict, job)
        blocking_end = self._slot_end(conflict, other_job) if other_job else None

        reschedule = RescheduleChange(
            installation_id=job,
            assignment_id=self._assignment_id(conflict, job),
            reason="Move to next available slot to avoid overlap",
            current_date=current_start.date() if current_start else None,
            current_time=current_start.time() if current_start else None,
            proposed_date=blocking_end.date() if blocking_end else None,
            proposed_time=blocking_end.time() if blocking_end else None,
        )

        resolutions = [self._build(
            conflict,
            Strategy.RESCHEDULE,
            resolution_id=f"reschedule-{conflict.id}",
            resolution_type=ResolutionType.RESCHEDULE,
            description="Reschedule one of the overlapping assignments to a different time slot",
            affected_assignments=len(conflict.affected_jobs),
            customer_impact=ImpactLevel.LOW,
            team_impact=ImpactLevel.LOW,
            changes=[reschedule],
        )]

        if len(team) > 1:
            reassign = self._reassign_change(
                conflict, job, team,
                reason="Reassign to team member with available capacity",
                proposed_label="Alternative team member",
            )
            if reassign.proposed_member_id is None:
                self.logger.debug(f"No free team member to take over {job}", conflict_id=conflict.id)
            else:
                resolutions.append(self._build(
                    conflict,
                    Strategy.REASSIGN,
                    resolution_id=f"reassign-{conflict.id}",
                    resolution_type=ResolutionType.REASSIGN,
                    description="Reassign one assignment to a different available team member",
                    affected_assignments=1,
                    customer_impact=ImpactLevel.NONE,
                    team_impact=ImpactLevel.LOW,
                    changes=[reassign],
                ))

        return resolutions

    def _resolve_capacity_exceeded(
        self,
        conflict: SchedulingConflict,
        team: List[TeamMember],
    ) -> List[ConflictResolution]:
        job = conflict.affected_jobs[0]
        return [self._build(
            conflict,
            Strategy.REDISTRIBUTE,
            resolution_id=f"redistribute-{conflict.id}",
            resolution_type=ResolutionType.REASSIGN,
            description="Redistribute excess assignments to team members with available capacity",
            affected_assignments=math.ceil(len(conflict.affected_jobs) / 2),
            customer_impact=ImpactLevel.NONE,
            team_impact=ImpactLevel.MEDIUM,
            changes=[self._reassign_change(
                conflict, job, team,
                reason="Balance workload across available team members",
                current_label="Overloaded team member",
                proposed_label="Team member with capacity",
            )],
        )]

    def _resolve_travel_distance(
        self,
        conflict: SchedulingConflict,
        team: List[TeamMember],
    ) -> List[ConflictResolution]:
        job = conflict.affected_jobs[0]
        distance = conflict.details.get('travel', {}).get('distance')

        # Prefer members whose radius covers the leg
        reachable = [m for m in team if distance is not None and m.travel_radius
                     and m.travel_radius >= distance]
        candidates = reachable + [m for m in team if m not in reachable]

        return [self._build(
            conflict,
            Strategy.REASSIGN_CLOSER,
            resolution_id=f"reassign-closer-{conflict.id}",
            resolution_type=ResolutionType.REASSIGN,
            description="Reassign to team member located closer to the job site",
            affected_assignments=1,
            customer_impact=ImpactLevel.NONE,
            team_impact=ImpactLevel.LOW,
            changes=[self._reassign_change(
                conflict, job, candidates,
                reason="Reduce travel time and costs",
                proposed_label="Geographically closer team member",
            )],
        )]

    def _resolve_manual_review(
        self,
        conflict: SchedulingConflict,
        team: List[TeamMember],
    ) -> List[ConflictResolution]:
        job = conflict.affected_jobs[0]
        return [self._build(
            conflict,
            Strategy.MANUAL_REVIEW,
            resolution_id=f"generic-{conflict.id}",
            resolution_type=ResolutionType.RESCHEDULE,
            description="Manual review and resolution required",
            affected_assignments=len(conflict.affected_jobs),
            customer_impact=ImpactLevel.LOW,
            team_impact=ImpactLevel.LOW,
            changes=[ModifyChange(
                installation_id=job,
                assignment_id=self._assignment_id(conflict, job),
                reason="Requires human review for optimal resolution",
                current_label="Current configuration",
                proposed_label="Manual adjustment needed",
            )],
            requires_manual_review=True,
        )]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _build(
        self,
        conflict: SchedulingConflict,
        strategy: Strategy,
        resolution_id: str,
        resolution_type: ResolutionType,
        description: str,
        affected_assignments: int,
        customer_impact: ImpactLevel,
        team_impact: ImpactLevel,
        changes: List[ProposedChange],
        requires_manual_review: bool = False,
    ) -> ConflictResolution:
        return ConflictResolution(
            id=resolution_id,
            conflict_id=conflict.id,
            type=resolution_type,
            description=description,
            confidence=self.estimator.estimate_confidence(conflict, strategy),
            impact=ResolutionImpact(
                affected_assignments=affected_assignments,
                customer_impact=customer_impact,
                team_impact=team_impact,
                cost_impact=self.estimator.estimate_cost(conflict, strategy),
                time_impact=self.estimator.estimate_time(conflict, strategy),
            ),
            proposed_changes=changes,
            requires_manual_review=requires_manual_review,
        )

    def _reassign_change(
        self,
        conflict: SchedulingConflict,
        job: str,
        candidates: List[TeamMember],
        reason: str,
        proposed_label: str,
        current_label: str = "Current team member",
    ) -> ReassignChange:
        """Move the first affected member off `job`, onto the first free candidate."""
        roles = conflict.details.get('roles', {}).get(job, {})
        role = 'lead'
        current_member = None
        for member_id in conflict.affected_team_members:
            if member_id == roles.get('lead'):
                current_member = member_id
                break
            if member_id == roles.get('assistant'):
                role = 'assistant'
                current_member = member_id
                break

        busy = set(conflict.affected_team_members) | {m for m in roles.values() if m}
        target = next((m.id for m in candidates if m.id not in busy), None)

        return ReassignChange(
            installation_id=job,
            assignment_id=self._assignment_id(conflict, job),
            reason=reason,
            current_label=current_label,
            proposed_label=proposed_label,
            role=role,
            current_member_id=current_member,
            proposed_member_id=target,
        )

    @staticmethod
    def _assignment_id(conflict: SchedulingConflict, job: str) -> Optional[str]:
        return conflict.details.get('assignments', {}).get(job)

    @staticmethod
    def _slot(conflict: SchedulingConflict, job: Optional[str], edge: str) -> Optional[datetime]:
        slot: Dict[str, Any] = conflict.details.get('slots', {}).get(job) or {}
        value = slot.get(edge)
        return datetime.fromisoformat(value) if value else None

    def _slot_start(self, conflict: SchedulingConflict, job: Optional[str]) -> Optional[datetime]:
        return self._slot(conflict, job, 'start')

    def _slot_end(self, conflict: SchedulingConflict, job: Optional[str]) -> Optional[datetime]:
        return self._slot(conflict, job, 'end')
