"""
Surveillance Core - region resolution, syndrome mapping, data source adapters,
correlation scoring, prompt augmentation and PDF reporting.
"""
from .types import (
    Syndrome,
    GeoLevel,
    TrendDirection,
    Tier,
    AlertLevel,
    SourceStatus,
    ResolvedRegion,
    SurveillanceDataPoint,
    ScoreComponents,
    ClinicalCorrelation,
    TrendAlert,
    DataSourceError,
    DataSourceSummary,
    TrendAnalysisResult,
)

__all__ = [
    "Syndrome",
    "GeoLevel",
    "TrendDirection",
    "Tier",
    "AlertLevel",
    "SourceStatus",
    "ResolvedRegion",
    "SurveillanceDataPoint",
    "ScoreComponents",
    "ClinicalCorrelation",
    "TrendAlert",
    "DataSourceError",
    "DataSourceSummary",
    "TrendAnalysisResult",
]
