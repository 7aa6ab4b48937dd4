"""
Correlation Engine - scores candidate conditions against regional surveillance data.
"""
from .engine import (
    ABSENCE_SCORE_CEILING,
    CO_CIRCULATION_MIN,
    CRITICAL_RISE_PCT,
    WARNING_RISE_PCT,
    CorrelationContext,
    aggregate_trend,
    classify_tier,
    compute_correlations,
    conditions_match,
    detect_alerts,
)
from .tables import PATHOGEN_ALIASES, PATHOGEN_SYMPTOM_MAP, SEASONAL_PEAKS, canonical_pathogen

__all__ = [
    "ABSENCE_SCORE_CEILING",
    "CO_CIRCULATION_MIN",
    "CRITICAL_RISE_PCT",
    "WARNING_RISE_PCT",
    "CorrelationContext",
    "aggregate_trend",
    "classify_tier",
    "compute_correlations",
    "conditions_match",
    "detect_alerts",
    "PATHOGEN_ALIASES",
    "PATHOGEN_SYMPTOM_MAP",
    "SEASONAL_PEAKS",
    "canonical_pathogen",
]
