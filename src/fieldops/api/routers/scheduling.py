"""
Router for scheduling conflict endpoints.

All routes are scoped to an organization and project and read the schedule
for an inclusive date range.
"""

from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from prometheus_client import Counter

from fieldops.api import schemas
from fieldops.api.dependencies import get_scheduling_service
from fieldops.platform.logging import get_logger
from fieldops.scheduling.exceptions import (
    DataAccessError,
    InputValidationError,
    SchedulingError,
    StaleResolutionError,
)
from fieldops.scheduling.models import DateRange
from fieldops.scheduling.service import SchedulingService

logger = get_logger(__name__)

router = APIRouter()

CONFLICTS_DETECTED = Counter(
    "fieldops_conflicts_detected_total",
    "Scheduling conflicts detected, by type",
    ["type"],
)
RESOLUTIONS_APPLIED = Counter(
    "fieldops_resolutions_applied_total",
    "Resolutions submitted for apply, by outcome",
    ["outcome"],
)


def _http_error(e: SchedulingError) -> HTTPException:
    if isinstance(e, InputValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, StaleResolutionError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "resolution_ids": e.resolution_ids},
        )
    if isinstance(e, DataAccessError):
        logger.error("Scheduling data unavailable", error=str(e), operation=e.operation)
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    logger.error("Scheduling request failed", error=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def _date_range(start: date, end: date) -> DateRange:
    try:
        return DateRange(start, end)
    except InputValidationError as e:
        raise _http_error(e)


@router.get("/{organization_id}/{project_id}/conflicts", response_model=schemas.ConflictListResponse)
async def list_conflicts(
    organization_id: str,
    project_id: str,
    service: Annotated[SchedulingService, Depends(get_scheduling_service)],
    start: date = Query(..., description="First scheduled date (inclusive)"),
    end: date = Query(..., description="Last scheduled date (inclusive)"),
):
    """
    Detect conflicts in the project's schedule.

    An empty list means the schedule is clean; a detection failure is a 503.
    """
    date_range = _date_range(start, end)
    try:
        conflicts = await service.detect_project_conflicts(organization_id, project_id, date_range)
    except SchedulingError as e:
        raise _http_error(e)

    for conflict in conflicts:
        CONFLICTS_DETECTED.labels(type=conflict.type.value).inc()

    summary = service.detector.summarize(conflicts)
    return schemas.ConflictListResponse(
        organization_id=organization_id,
        project_id=project_id,
        date_range=date_range.to_dict(),
        conflicts=[c.to_dict() for c in conflicts],
        summary=schemas.ConflictSummaryResponse(
            total_conflicts=summary.total_conflicts,
            by_type=summary.by_type,
            by_severity=summary.by_severity,
            critical_issues=len(summary.critical_issues),
            auto_resolvable=summary.auto_resolvable,
        ),
    )


@router.get("/{organization_id}/{project_id}/workloads", response_model=schemas.WorkloadListResponse)
async def list_workloads(
    organization_id: str,
    project_id: str,
    service: Annotated[SchedulingService, Depends(get_scheduling_service)],
    start: date = Query(...),
    end: date = Query(...),
):
    """Per-member daily workloads with a distribution summary."""
    date_range = _date_range(start, end)
    try:
        workloads, distribution = await service.project_workloads(organization_id, project_id, date_range)
    except SchedulingError as e:
        raise _http_error(e)

    return schemas.WorkloadListResponse(
        date_range=date_range.to_dict(),
        workloads=[w.to_dict() for w in workloads],
        distribution=schemas.WorkloadDistributionResponse.model_validate(distribution),
    )


@router.get("/{organization_id}/{project_id}/resolutions", response_model=schemas.ResolutionListResponse)
async def list_resolutions(
    organization_id: str,
    project_id: str,
    service: Annotated[SchedulingService, Depends(get_scheduling_service)],
    start: date = Query(...),
    end: date = Query(...),
    threshold: Optional[float] = Query(None, description="Minimum confidence (0-100)"),
):
    """
    Candidate resolutions at or above the confidence threshold, best first.
    """
    date_range = _date_range(start, end)
    try:
        plan = await service.resolution_plan(organization_id, project_id, date_range, threshold)
    except SchedulingError as e:
        raise _http_error(e)

    return schemas.ResolutionListResponse(
        threshold=plan.threshold,
        conflict_count=len(plan.conflicts),
        resolutions=[r.to_dict() for r in plan.resolutions],
        impact=plan.impact.to_dict(),
    )


@router.get(
    "/{organization_id}/{project_id}/recommendations",
    response_model=schemas.RecommendationListResponse,
)
async def list_recommendations(
    organization_id: str,
    project_id: str,
    service: Annotated[SchedulingService, Depends(get_scheduling_service)],
    start: date = Query(...),
    end: date = Query(...),
    timeout: Optional[float] = Query(None, ge=0, description="Seconds allowed for scoring"),
):
    """Cross-conflict recommendations."""
    date_range = _date_range(start, end)
    try:
        conflicts = await service.detect_project_conflicts(organization_id, project_id, date_range)
        recommendations = await service.recommend(conflicts, timeout=timeout)
    except SchedulingError as e:
        raise _http_error(e)

    return schemas.RecommendationListResponse(
        conflict_count=len(conflicts),
        recommendations=[r.to_dict() for r in recommendations],
    )


@router.post(
    "/{organization_id}/{project_id}/resolutions/apply",
    response_model=schemas.ApplyResponse,
)
async def apply_resolutions(
    organization_id: str,
    project_id: str,
    request: schemas.ApplyRequest,
    service: Annotated[SchedulingService, Depends(get_scheduling_service)],
):
    """
    Apply selected resolutions against the current schedule.

    Resolutions are applied best-effort; per-resolution failures are listed in
    the response. Selections that no longer match the schedule return 409.
    """
    date_range = _date_range(request.start, request.end)
    try:
        result = await service.apply_selected(
            organization_id,
            project_id,
            date_range,
            request.resolution_ids,
            performed_by=request.performed_by,
        )
    except SchedulingError as e:
        raise _http_error(e)

    RESOLUTIONS_APPLIED.labels(outcome="applied").inc(result.success_count)
    RESOLUTIONS_APPLIED.labels(outcome="failed").inc(result.failure_count)
    logger.info(
        "Resolutions applied",
        organization_id=organization_id,
        project_id=project_id,
        applied=result.success_count,
        failed=result.failure_count,
    )
    return result.to_dict()
