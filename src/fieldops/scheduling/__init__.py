"""
FieldOps Scheduling Engine

Conflict detection, resolution generation, recommendations and apply for
installation schedules. Components:
- ConflictDetector: finds overlaps, overload, travel and availability problems
- ResolutionGenerator: proposes candidate fixes per conflict
- RecommendationSynthesizer: cross-conflict strategies
- ResolutionApplier: executes chosen fixes with an audit trail
- ImpactAnalyzer: aggregate impact and resolution metrics
- SchedulingService: tenant-scoped orchestration over a DataStore
"""

from .applier import ResolutionApplier
from .conflict_detector import ConflictDetector, ConflictSummary
from .exceptions import (
    DataAccessError,
    InputValidationError,
    ResolutionApplyError,
    SchedulingError,
    StaleResolutionError,
)
from .impact import HeuristicImpactEstimator, ImpactEstimator, Strategy, score_conflict
from .impact_analyzer import ImpactAnalyzer, ImpactReport, ResolutionMetrics
from .ranking import filter_by_confidence, rank_resolutions
from .recommendations import RecommendationSynthesizer
from .resolution_generator import ResolutionGenerator
from .service import ResolutionPlan, ScheduleSnapshot, SchedulingService
from .store import DataStore

__all__ = [
    'ConflictDetector',
    'ConflictSummary',
    'ResolutionGenerator',
    'ImpactEstimator',
    'HeuristicImpactEstimator',
    'Strategy',
    'score_conflict',
    'rank_resolutions',
    'filter_by_confidence',
    'RecommendationSynthesizer',
    'ResolutionApplier',
    'ImpactAnalyzer',
    'ImpactReport',
    'ResolutionMetrics',
    'SchedulingService',
    'ScheduleSnapshot',
    'ResolutionPlan',
    'DataStore',
    'SchedulingError',
    'InputValidationError',
    'DataAccessError',
    'ResolutionApplyError',
    'StaleResolutionError',
]
