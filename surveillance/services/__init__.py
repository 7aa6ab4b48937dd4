"""
Services - analysis orchestration and its external collaborators.
"""
from .analysis import TrendAnalysisService, build_data_source_summaries, build_summary
from .collaborators import (
    AnalysisStore,
    DiskAnalysisStore,
    IdentityVerifier,
    InMemoryAnalysisStore,
    PlanService,
    StaticPlanService,
    StaticTokenVerifier,
    StoredAnalysis,
    UsageStats,
    collaborators_from_dev_users,
)

__all__ = [
    "TrendAnalysisService",
    "build_data_source_summaries",
    "build_summary",
    "AnalysisStore",
    "DiskAnalysisStore",
    "IdentityVerifier",
    "InMemoryAnalysisStore",
    "PlanService",
    "StaticPlanService",
    "StaticTokenVerifier",
    "StoredAnalysis",
    "UsageStats",
    "collaborators_from_dev_users",
]
