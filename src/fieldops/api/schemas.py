from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# --- Shared ---

class DateRangeSchema(BaseModel):
    start: date
    end: date

# --- Conflicts ---

class ConflictResponse(BaseModel):
    id: str
    type: str
    severity: str
    description: str
    affected_jobs: List[str]
    affected_team_members: List[str]
    auto_resolvable: bool
    impact_score: float
    scheduled_date: Optional[date] = None
    detected_at: datetime
    details: Dict[str, Any] = Field(default_factory=dict)

class ConflictSummaryResponse(BaseModel):
    total_conflicts: int
    by_type: Dict[str, int]
    by_severity: Dict[str, int]
    critical_issues: int
    auto_resolvable: int

class ConflictListResponse(BaseModel):
    organization_id: str
    project_id: str
    date_range: DateRangeSchema
    conflicts: List[ConflictResponse]
    summary: ConflictSummaryResponse

# --- Workloads ---

class WorkloadResponse(BaseModel):
    team_member_id: str
    date: date
    capacity_minutes: int
    assigned_minutes: int
    travel_minutes: float
    buffer_minutes: int
    assignments: List[str]
    job_count: int
    utilization_percentage: float
    status: str
    overtime_minutes: int
    overtime_hours: float

class WorkloadDistributionResponse(BaseModel):
    total: int
    overloaded: int
    critical: int
    optimal: int
    underutilized: int
    average_utilization: float
    variance: float
    standard_deviation: float
    balance_score: float
    redistribution_opportunities: int
    overloaded_members: List[str] = Field(default_factory=list)
    underutilized_members: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True

class WorkloadListResponse(BaseModel):
    date_range: DateRangeSchema
    workloads: List[WorkloadResponse]
    distribution: WorkloadDistributionResponse

# --- Resolutions ---

class ResolutionImpactResponse(BaseModel):
    affected_assignments: int
    customer_impact: str
    team_impact: str
    cost_impact: float
    time_impact: int

class ResolutionResponse(BaseModel):
    id: str
    conflict_id: str
    type: str
    description: str
    confidence: int
    impact: ResolutionImpactResponse
    # Tagged by "type": reschedule, reassign or modify
    proposed_changes: List[Dict[str, Any]]
    requires_manual_review: bool
    status: str

class ImpactReportResponse(BaseModel):
    impact_level: str
    summary: str
    resolution_count: int
    total_cost_impact: float
    total_time_impact: int
    customer_satisfaction_score: float
    team_utilization_change: float
    operational_risk: str
    conflict_resolution_rate: float
    estimated_roi: float
    high_risk_resolutions: List[str] = Field(default_factory=list)

class ResolutionListResponse(BaseModel):
    threshold: float
    conflict_count: int
    resolutions: List[ResolutionResponse]
    impact: ImpactReportResponse

# --- Recommendations ---

class RecommendationResponse(BaseModel):
    id: str
    conflict_ids: List[str]
    type: str
    title: str
    description: str
    confidence: int
    estimated_benefit: str
    complexity: str
    suggested_actions: List[str] = Field(default_factory=list)

class RecommendationListResponse(BaseModel):
    conflict_count: int
    recommendations: List[RecommendationResponse]

# --- Apply ---

class ApplyRequest(BaseModel):
    start: date
    end: date
    resolution_ids: List[str] = Field(..., min_length=1, description="Resolutions to apply, in order")
    performed_by: str = Field("system", min_length=1)

class ApplyFailureResponse(BaseModel):
    resolution_id: str
    error: str

class ApplyResponse(BaseModel):
    applied: List[str]
    failed: List[ApplyFailureResponse]
    success_count: int
    failure_count: int
