"""
Scheduling Service

Tenant-scoped orchestration of the engine over a DataStore: fetch a snapshot,
detect, suggest, recommend and apply. Used by the API layer.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from fieldops.platform.config import Settings

from .applier import ResolutionApplier
from .base import SchedulerBase
from .conflict_detector import ConflictDetector
from .exceptions import DataAccessError, InputValidationError, StaleResolutionError
from .impact import ImpactEstimator
from .impact_analyzer import ImpactAnalyzer, ImpactReport
from .models import (
    ApplyResult,
    Assignment,
    ConflictResolution,
    DateRange,
    Recommendation,
    SchedulingConflict,
    TeamMember,
    WorkloadData,
)
from .ranking import filter_by_confidence, rank_resolutions
from .recommendations import RecommendationScorer, RecommendationSynthesizer
from .resolution_generator import ResolutionGenerator
from .store import DataStore
from .workload import WorkloadDistribution, compute_workloads, summarize_workloads


@dataclass
class ScheduleSnapshot:
    """Assignments and roster of one project for a date range."""
    organization_id: str
    project_id: str
    date_range: DateRange
    assignments: List[Assignment] = field(default_factory=list)
    team_members: List[TeamMember] = field(default_factory=list)


@dataclass
class ResolutionPlan:
    """Conflicts of a snapshot with their filtered candidates and combined impact."""
    conflicts: List[SchedulingConflict]
    resolutions: List[ConflictResolution]
    threshold: float
    impact: ImpactReport


class SchedulingService(SchedulerBase):
    """Runs the scheduling engine against a project's current data."""

    def __init__(
        self,
        store: DataStore,
        settings: Optional[Settings] = None,
        estimator: Optional[ImpactEstimator] = None,
        scorer: Optional[RecommendationScorer] = None,
    ):
        super().__init__(settings)
        self.store = store
        self.detector = ConflictDetector(settings=self.settings)
        self.generator = ResolutionGenerator(settings=self.settings, estimator=estimator)
        self.synthesizer = RecommendationSynthesizer(settings=self.settings, scorer=scorer)
        self.applier = ResolutionApplier(store, settings=self.settings)
        self.analyzer = ImpactAnalyzer(settings=self.settings, detector=self.detector)

    # =========================================================================
    # Snapshot
    # =========================================================================

    async def load_snapshot(
        self,
        organization_id: str,
        project_id: str,
        date_range: DateRange,
    ) -> ScheduleSnapshot:
        """Fetch assignments and roster for a project."""
        self._validate_tenant(organization_id, project_id)

        try:
            assignments = await self.store.fetch_assignments(organization_id, project_id, date_range)
            team_members = await self.store.fetch_team_members(organization_id, project_id)
        except DataAccessError:
            raise
        except Exception as e:
            raise DataAccessError(f"Failed to load schedule: {e}", operation="load_snapshot") from e

        return ScheduleSnapshot(
            organization_id=organization_id,
            project_id=project_id,
            date_range=date_range,
            assignments=list(assignments),
            team_members=list(team_members),
        )

    # =========================================================================
    # Detection
    # =========================================================================

    async def detect_project_conflicts(
        self,
        organization_id: str,
        project_id: str,
        date_range: DateRange,
    ) -> List[SchedulingConflict]:
        """Detect conflicts in a project's current schedule."""
        snapshot = await self.load_snapshot(organization_id, project_id, date_range)
        return self.detector.detect_conflicts(
            snapshot.assignments, date_range, snapshot.team_members
        )

    async def project_workloads(
        self,
        organization_id: str,
        project_id: str,
        date_range: DateRange,
    ) -> Tuple[List[WorkloadData], WorkloadDistribution]:
        """Per-member daily workloads and their distribution summary."""
        snapshot = await self.load_snapshot(organization_id, project_id, date_range)
        workloads = compute_workloads(snapshot.assignments, date_range, snapshot.team_members)
        return workloads, summarize_workloads(workloads)

    # =========================================================================
    # Resolutions
    # =========================================================================

    def suggest_resolutions(
        self,
        conflicts: Sequence[SchedulingConflict],
        team_members: Sequence[TeamMember],
        threshold: Optional[float] = None,
    ) -> List[ConflictResolution]:
        """
        Generate, filter and rank candidates for every conflict.

        Each conflict's `suggested_resolutions` is populated with its full,
        unfiltered candidate list.

        Returns:
            Candidates at or above the threshold, best first
        """
        if threshold is None:
            threshold = self.settings.DEFAULT_CONFIDENCE_THRESHOLD

        candidates = []
        for conflict in conflicts:
            conflict.suggested_resolutions = self.generator.generate_resolutions(conflict, team_members)
            candidates.extend(conflict.suggested_resolutions)

        return rank_resolutions(filter_by_confidence(candidates, threshold))

    async def resolution_plan(
        self,
        organization_id: str,
        project_id: str,
        date_range: DateRange,
        threshold: Optional[float] = None,
    ) -> ResolutionPlan:
        """Detect, suggest and assess in one pass over a fresh snapshot."""
        if threshold is None:
            threshold = self.settings.DEFAULT_CONFIDENCE_THRESHOLD

        snapshot = await self.load_snapshot(organization_id, project_id, date_range)
        conflicts = self.detector.detect_conflicts(
            snapshot.assignments, date_range, snapshot.team_members
        )
        resolutions = self.suggest_resolutions(conflicts, snapshot.team_members, threshold)

        # Assess only the best candidate per conflict; the rest are alternatives
        best: Dict[str, ConflictResolution] = {}
        for resolution in resolutions:
            best.setdefault(resolution.conflict_id, resolution)

        return ResolutionPlan(
            conflicts=conflicts,
            resolutions=resolutions,
            threshold=threshold,
            impact=self.assess(list(best.values()), snapshot, conflicts),
        )

    async def recommend(
        self,
        conflicts: Sequence[SchedulingConflict],
        timeout: Optional[float] = None,
    ) -> List[Recommendation]:
        return await self.synthesizer.synthesize_recommendations(conflicts, timeout=timeout)

    def assess(
        self,
        resolutions: Sequence[ConflictResolution],
        snapshot: ScheduleSnapshot,
        conflicts: Sequence[SchedulingConflict],
    ) -> ImpactReport:
        return self.analyzer.assess(resolutions, snapshot.assignments, conflicts)

    # =========================================================================
    # Apply
    # =========================================================================

    async def apply(
        self,
        resolutions: Sequence[ConflictResolution],
        performed_by: str = "system",
        candidates: Optional[Iterable[ConflictResolution]] = None,
    ) -> ApplyResult:
        return await self.applier.apply_resolutions(
            resolutions, performed_by=performed_by, candidates=candidates
        )

    async def apply_selected(
        self,
        organization_id: str,
        project_id: str,
        date_range: DateRange,
        resolution_ids: Sequence[str],
        performed_by: str = "system",
    ) -> ApplyResult:
        """
        Apply resolutions selected by id against the current schedule.

        Conflicts and candidates are recomputed from a fresh snapshot, so a
        selection made against older data is rejected instead of applied.

        Raises:
            InputValidationError: No resolutions selected
            StaleResolutionError: A selected id is not a current candidate
        """
        if not resolution_ids:
            raise InputValidationError("At least one resolution must be selected")

        snapshot = await self.load_snapshot(organization_id, project_id, date_range)
        conflicts = self.detector.detect_conflicts(
            snapshot.assignments, date_range, snapshot.team_members
        )

        candidates: Dict[str, ConflictResolution] = {}
        for conflict in conflicts:
            for resolution in self.generator.generate_resolutions(conflict, snapshot.team_members):
                candidates[resolution.id] = resolution

        missing = [rid for rid in resolution_ids if rid not in candidates]
        if missing:
            raise StaleResolutionError(missing)

        selected = [candidates[rid] for rid in dict.fromkeys(resolution_ids)]
        self.logger.info(
            f"Applying {len(selected)} selected resolutions",
            organization_id=organization_id,
            project_id=project_id,
        )
        return await self.apply(selected, performed_by=performed_by, candidates=candidates.values())

    @staticmethod
    def _validate_tenant(organization_id: str, project_id: str) -> None:
        if not organization_id or not str(organization_id).strip():
            raise InputValidationError("organization_id is required")
        if not project_id or not str(project_id).strip():
            raise InputValidationError("project_id is required")
