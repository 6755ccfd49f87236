"""
Resolution Applier

Executes chosen resolutions against the data store and records an audit
entry for every assignment touched.

Batches are best-effort: each resolution runs in its own store transaction,
and a failure does not roll back resolutions applied before it. Applying a
resolution marks it applied and discards its pending alternatives.
"""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Sequence

from fieldops.platform.config import Settings

from .base import SchedulerBase
from .exceptions import DataAccessError, ResolutionApplyError, SchedulingError
from .models import (
    ApplyFailure,
    ApplyResult,
    AssignmentAction,
    AssignmentHistoryEntry,
    AssignmentStatus,
    ConflictResolution,
    InstallationStatus,
    ModifyChange,
    ProposedChange,
    ReassignChange,
    RescheduleChange,
    ResolutionStatus,
)
from .store import DataStore


class ResolutionApplier(SchedulerBase):
    """Applies resolutions through a DataStore."""

    def __init__(self, store: DataStore, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.store = store

    async def apply_resolutions(
        self,
        resolutions: Sequence[ConflictResolution],
        performed_by: str = "system",
        candidates: Optional[Iterable[ConflictResolution]] = None,
    ) -> ApplyResult:
        """
        Apply resolutions in order.

        Args:
            resolutions: Resolutions chosen by the caller
            performed_by: Recorded on every history entry
            candidates: Other candidates from the same run; pending siblings of
                an applied resolution are marked discarded

        Returns:
            ApplyResult listing applied ids and per-resolution failures
        """
        result = ApplyResult()
        pool: List[ConflictResolution] = list(resolutions)
        for candidate in candidates or []:
            if not any(candidate is r for r in pool):
                pool.append(candidate)

        for resolution in resolutions:
            if resolution.status != ResolutionStatus.PENDING:
                result.failed.append(ApplyFailure(
                    resolution_id=resolution.id,
                    error=f"Resolution {resolution.id} is already {resolution.status.value}",
                ))
                continue

            try:
                async with self.store.transaction():
                    await self._apply_one(resolution, performed_by)
            except Exception as e:
                error = e if isinstance(e, SchedulingError) else DataAccessError(
                    f"Data store failed while applying {resolution.id}: {e}",
                    operation="apply_resolution",
                )
                self.logger.error(
                    f"Failed to apply resolution {resolution.id}: {error}",
                    conflict_id=resolution.conflict_id,
                )
                result.failed.append(ApplyFailure(resolution_id=resolution.id, error=str(error)))
                continue

            resolution.status = ResolutionStatus.APPLIED
            result.applied.append(resolution.id)
            self._discard_siblings(resolution, pool)

        self.logger.info(
            f"Applied {result.success_count} resolutions, {result.failure_count} failed",
            performed_by=performed_by,
        )
        return result

    async def _apply_one(self, resolution: ConflictResolution, performed_by: str) -> None:
        if not resolution.proposed_changes:
            raise ResolutionApplyError(
                f"Resolution {resolution.id} has no proposed changes",
                resolution_id=resolution.id,
            )

        touched: Dict[str, List[ProposedChange]] = OrderedDict()
        for change in resolution.proposed_changes:
            if not change.assignment_id:
                raise ResolutionApplyError(
                    f"Change for installation {change.installation_id} has no assignment",
                    resolution_id=resolution.id,
                )
            await self._apply_change(resolution, change)
            touched.setdefault(change.assignment_id, []).append(change)

        for assignment_id, changes in touched.items():
            await self.store.append_history(assignment_id, AssignmentHistoryEntry(
                assignment_id=assignment_id,
                action=self._history_action(changes),
                performed_by=performed_by,
                previous_value=self._values(changes, 'current'),
                new_value=self._values(changes, 'proposed'),
                reason="; ".join(c.reason for c in changes),
                notes=f"Resolution {resolution.id} for conflict {resolution.conflict_id}",
            ))

    async def _apply_change(self, resolution: ConflictResolution, change: ProposedChange) -> None:
        if isinstance(change, RescheduleChange):
            if change.proposed_date is None or change.proposed_time is None:
                raise ResolutionApplyError(
                    f"No concrete slot proposed for installation {change.installation_id}",
                    resolution_id=resolution.id,
                )
            await self.store.update_installation(change.installation_id, {
                'scheduled_date': change.proposed_date,
                'scheduled_time': change.proposed_time,
                'status': InstallationStatus.RESCHEDULED.value,
            })
            # Moved jobs need to be accepted again
            await self.store.update_assignment(change.assignment_id, {
                'status': AssignmentStatus.ASSIGNED.value,
            })

        elif isinstance(change, ReassignChange):
            if not change.proposed_member_id:
                raise ResolutionApplyError(
                    f"No team member available to take over installation {change.installation_id}",
                    resolution_id=resolution.id,
                )
            field_name = 'assistant_id' if change.role == 'assistant' else 'lead_id'
            await self.store.update_installation(change.installation_id, {
                field_name: change.proposed_member_id,
            })
            await self.store.update_assignment(change.assignment_id, {
                field_name: change.proposed_member_id,
                'status': AssignmentStatus.ASSIGNED.value,
            })

        elif isinstance(change, ModifyChange):
            if change.patch:
                await self.store.update_installation(change.installation_id, dict(change.patch))

        else:
            raise ResolutionApplyError(
                f"Unsupported change type {type(change).__name__}",
                resolution_id=resolution.id,
            )

    @staticmethod
    def _history_action(changes: List[ProposedChange]) -> AssignmentAction:
        if all(isinstance(c, RescheduleChange) for c in changes):
            return AssignmentAction.RESCHEDULED
        if all(isinstance(c, ReassignChange) for c in changes):
            return AssignmentAction.REASSIGNED
        return AssignmentAction.CONFLICT_RESOLVED

    @staticmethod
    def _values(changes: List[ProposedChange], side: str) -> Any:
        values = [getattr(c, f"{side}_value") for c in changes]
        return values[0] if len(values) == 1 else values

    def _discard_siblings(self, applied: ConflictResolution, pool: List[ConflictResolution]) -> None:
        for other in pool:
            if other is applied or other.conflict_id != applied.conflict_id:
                continue
            if other.status == ResolutionStatus.PENDING:
                other.status = ResolutionStatus.DISCARDED
                self.logger.debug(f"Discarded {other.id} after applying {applied.id}")
