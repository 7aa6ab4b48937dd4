"""
Clinical Correlation Engine

Scores how well current regional surveillance supports each candidate
condition. Five integer components sum to a 0-100 score:

    symptomMatch          0-40  chief complaint vs pathogen symptom profile
    differentialMatch     0-20  position of the condition on the differential
    epidemiologicSignal   0-25  trend direction and magnitude
    seasonalPlausibility  0-10  reference month vs pathogen peak season
    geographicRelevance   0-5   finest geographic level of the data

Deterministic, no LLM calls.

Usage:
    context = CorrelationContext(chief_complaint="fever and cough")
    correlations = compute_correlations(["Influenza", "COVID-19"], data_points, context)
    alerts = detect_alerts(correlations)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from surveillance.core.syndromes import map_to_syndromes
from surveillance.core.types import (
    AlertLevel,
    ClinicalCorrelation,
    GeoLevel,
    ScoreComponents,
    SurveillanceDataPoint,
    Syndrome,
    Tier,
    TrendAlert,
    TrendDirection,
)
from surveillance.utils import get_logger

from .tables import PATHOGEN_SYMPTOM_MAP, SEASONAL_PEAKS, canonical_pathogen, symptom_present

logger = get_logger(__name__)

# Tier lower bounds, highest first
TIER_THRESHOLDS: List[Tuple[int, Tier]] = [
    (80, Tier.CRITICAL),
    (60, Tier.HIGH),
    (40, Tier.MODERATE),
    (20, Tier.LOW),
]

ABSENCE_SCORE_CEILING = 39

WARNING_RISE_PCT = 30
CRITICAL_RISE_PCT = 100
CO_CIRCULATION_MIN = 3

MIN_MATCH_CHARS = 3

UNKNOWN_PATHOGEN_SYMPTOM_SCORE = 5
UNKNOWN_SEASONALITY_SCORE = 5

GEO_LEVEL_SCORES: Dict[GeoLevel, int] = {
    GeoLevel.COUNTY: 5,
    GeoLevel.STATE: 4,
    GeoLevel.HHS_REGION: 3,
    GeoLevel.NATIONAL: 1,
}


@dataclass
class CorrelationContext:
    """Per-request inputs that are not data points."""
    chief_complaint: str = ""
    reference_date: date = field(default_factory=date.today)


def classify_tier(score: int) -> Tier:
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return Tier.BACKGROUND


# ---- Matching ----

def _direct_match(a: str, b: str) -> bool:
    a, b = a.strip().lower(), b.strip().lower()
    if len(a) < MIN_MATCH_CHARS or len(b) < MIN_MATCH_CHARS:
        return False
    return a in b or b in a


def _alias_match(a: str, b: str) -> bool:
    canonical = canonical_pathogen(a)
    return canonical is not None and canonical == canonical_pathogen(b)


def conditions_match(a: str, b: str) -> bool:
    """Same condition by name containment or shared pathogen alias family."""
    return _direct_match(a, b) or _alias_match(a, b)


def _profile_key(condition: str) -> Optional[str]:
    lowered = condition.strip().lower()
    for key in PATHOGEN_SYMPTOM_MAP:
        if key.lower() == lowered:
            return key
    return canonical_pathogen(condition)


# ---- Component scores ----

def score_symptom_match(condition: str, chief_complaint: str) -> int:
    """Share of the pathogen's symptom profile present in the chief complaint (0-40)."""
    key = _profile_key(condition)
    symptoms = PATHOGEN_SYMPTOM_MAP.get(key) if key else None
    if not symptoms:
        return UNKNOWN_PATHOGEN_SYMPTOM_SCORE
    text = (chief_complaint or "").lower()
    matches = sum(1 for s in symptoms if symptom_present(s, text))
    return round(matches / len(symptoms) * 40)


def score_differential_match(condition: str, differential: Sequence[str]) -> int:
    """
    Position of the condition on the differential (0-20).

    A direct name match at rank r scores max(20 - 2r, 12); an alias-family
    match (e.g. "flu" for Influenza) scores max(15 - 2r, 8).
    """
    best = 0
    for rank, entry in enumerate(differential):
        if _direct_match(condition, entry):
            best = max(best, max(20 - 2 * rank, 12))
        elif _alias_match(condition, entry):
            best = max(best, max(15 - 2 * rank, 8))
    return best


def score_epidemiologic_signal(data_points: Sequence[SurveillanceDataPoint]) -> int:
    """Trend-driven signal strength (0-25)."""
    if not data_points:
        return 0

    rising = [dp for dp in data_points if dp.trend == TrendDirection.RISING]
    if rising:
        avg = sum(dp.trend_magnitude or 0 for dp in rising) / len(rising)
        if avg > 50:
            return 25
        if avg > 25:
            return 20
        if avg > 10:
            return 15
        return 10

    if any(dp.trend == TrendDirection.STABLE for dp in data_points):
        return 5
    if any(dp.trend == TrendDirection.FALLING for dp in data_points):
        return 2
    return 3


def score_seasonal_plausibility(condition: str, reference_date: date) -> int:
    """Peak month 10, adjacent month 7 (December/January wrap), off-season 2 (0-10)."""
    key = _profile_key(condition)
    peaks = SEASONAL_PEAKS.get(key) if key else None
    if not peaks:
        return UNKNOWN_SEASONALITY_SCORE

    month = reference_date.month
    if month in peaks:
        return 10
    for peak in peaks:
        distance = abs(peak - month)
        if min(distance, 12 - distance) == 1:
            return 7
    return 2


def score_geographic_relevance(data_points: Sequence[SurveillanceDataPoint]) -> int:
    if not data_points:
        return 0
    return max(GEO_LEVEL_SCORES.get(dp.geo_level, 1) for dp in data_points)


def _cap_absence(components: ScoreComponents) -> ScoreComponents:
    # Remove the excess from symptom, then seasonal, then differential
    excess = components.total - ABSENCE_SCORE_CEILING
    for attr in ("symptom_match", "seasonal_plausibility", "differential_match"):
        if excess <= 0:
            break
        current = getattr(components, attr)
        cut = min(current, excess)
        setattr(components, attr, current - cut)
        excess -= cut
    return components


# ---- Trend aggregation and wording ----

def aggregate_trend(data_points: Sequence[SurveillanceDataPoint]) -> Tuple[TrendDirection, Optional[int]]:
    """Majority of rising vs falling points; ties among trended points are stable."""
    trended = [dp for dp in data_points if dp.trend is not None]
    if not trended:
        return TrendDirection.UNKNOWN, None

    rising = [dp for dp in trended if dp.trend == TrendDirection.RISING]
    falling = [dp for dp in trended if dp.trend == TrendDirection.FALLING]
    if len(rising) > len(falling):
        direction, agreeing = TrendDirection.RISING, rising
    elif len(falling) > len(rising):
        direction, agreeing = TrendDirection.FALLING, falling
    else:
        direction = TrendDirection.STABLE
        agreeing = [dp for dp in trended if dp.trend == TrendDirection.STABLE]

    magnitudes = [dp.trend_magnitude for dp in agreeing if dp.trend_magnitude is not None]
    magnitude = round(sum(magnitudes) / len(magnitudes)) if magnitudes else None
    return direction, magnitude


def build_summary(
    condition: str,
    tier: Tier,
    direction: TrendDirection,
    magnitude: Optional[int],
    has_data: bool,
) -> str:
    if not has_data:
        return f"No regional surveillance signal for {condition}; activity is not currently elevated in the region."
    relevance = f"Clinical relevance: {tier.value}."
    if direction == TrendDirection.RISING:
        return f"{condition} is trending upward (~{magnitude or 0}% increase) in the region. {relevance}"
    if direction == TrendDirection.FALLING:
        return f"{condition} is trending downward (~{magnitude or 0}% decrease) in the region. {relevance}"
    if direction == TrendDirection.STABLE:
        return f"{condition} has stable activity in the region. {relevance}"
    return f"{condition} has regional surveillance data available. {relevance}"


# ---- Condition set ----

def _collect_conditions(
    differential: Sequence[str],
    data_points: Sequence[SurveillanceDataPoint],
) -> List[Tuple[str, List[SurveillanceDataPoint]]]:
    """
    Ordered (condition, data points) pairs.

    Data conditions are grouped case-insensitively. Differential entries
    pull in their matching data conditions in differential order; entries
    with no matching data become absence conditions. Remaining data
    conditions follow in data order.
    """
    grouped: Dict[str, Tuple[str, List[SurveillanceDataPoint]]] = {}
    for dp in data_points:
        key = dp.condition.strip().lower()
        if key not in grouped:
            grouped[key] = (dp.condition.strip(), [])
        grouped[key][1].append(dp)

    ordered: List[Tuple[str, List[SurveillanceDataPoint]]] = []
    seen = set()
    for entry in differential:
        entry = entry.strip()
        if not entry:
            continue
        matched = [key for key, (name, _) in grouped.items() if conditions_match(name, entry)]
        if matched:
            for key in matched:
                if key not in seen:
                    seen.add(key)
                    ordered.append(grouped[key])
            continue
        key = entry.lower()
        if key not in seen:
            seen.add(key)
            ordered.append((entry, []))

    for key, pair in grouped.items():
        if key not in seen:
            seen.add(key)
            ordered.append(pair)
    return ordered


def _syndromes_of(condition: str, data_points: Sequence[SurveillanceDataPoint]) -> List[Syndrome]:
    if not data_points:
        return map_to_syndromes("", [condition])
    syndromes: List[Syndrome] = []
    for dp in data_points:
        for s in dp.syndromes:
            if s not in syndromes:
                syndromes.append(s)
    return syndromes


def compute_correlations(
    differential: Sequence[str],
    data_points: Sequence[SurveillanceDataPoint],
    context: Optional[CorrelationContext] = None,
) -> List[ClinicalCorrelation]:
    """
    Score every candidate condition against the regional data.

    Returns one correlation per distinct condition, sorted by score
    descending (ties keep input order). Absence findings are capped at
    ABSENCE_SCORE_CEILING.
    """
    context = context or CorrelationContext()
    differential = list(differential or [])

    correlations = []
    for condition, points in _collect_conditions(differential, data_points):
        components = ScoreComponents(
            symptom_match=score_symptom_match(condition, context.chief_complaint),
            differential_match=score_differential_match(condition, differential),
            epidemiologic_signal=score_epidemiologic_signal(points),
            seasonal_plausibility=score_seasonal_plausibility(condition, context.reference_date),
            geographic_relevance=score_geographic_relevance(points),
        )
        if not points:
            components = _cap_absence(components)

        score = components.total
        tier = classify_tier(score)
        direction, magnitude = aggregate_trend(points)

        correlations.append(ClinicalCorrelation(
            condition=condition,
            syndromes=_syndromes_of(condition, points),
            overall_score=score,
            tier=tier,
            components=components,
            trend_direction=direction,
            trend_magnitude=magnitude,
            data_points=list(points),
            summary=build_summary(condition, tier, direction, magnitude, bool(points)),
        ))

    correlations.sort(key=lambda c: -c.overall_score)
    logger.debug(f"Computed {len(correlations)} correlations")
    return correlations


# ---- Alerts ----

def detect_alerts(correlations: Sequence[ClinicalCorrelation]) -> List[TrendAlert]:
    """
    Derive alerts from ranked correlations.

    - warning: rising more than WARNING_RISE_PCT
    - critical: rising more than CRITICAL_RISE_PCT, or any positive
      bioterrorism sentinel observation
    - info: CO_CIRCULATION_MIN or more conditions with data at moderate tier or above

    At most one alert per (condition, level); criticals come first.
    """
    alerts: List[TrendAlert] = []
    keys = set()

    def add(alert: TrendAlert) -> None:
        key = (alert.condition, alert.level)
        if key not in keys:
            keys.add(key)
            alerts.append(alert)

    for corr in correlations:
        magnitude = corr.trend_magnitude or 0
        source = corr.data_points[0].source if corr.data_points else None

        if Syndrome.BIOTERRORISM_SENTINEL in corr.syndromes:
            positive = [dp for dp in corr.data_points if dp.value > 0]
            if positive:
                add(TrendAlert(
                    level=AlertLevel.CRITICAL,
                    title=f"Bioterrorism sentinel condition detected: {corr.condition}",
                    description=(
                        f"Surveillance data reports {corr.condition} activity in the region. "
                        f"Verify with local public health authorities."
                    ),
                    condition=corr.condition,
                    source=positive[0].source,
                ))

        if corr.trend_direction != TrendDirection.RISING:
            continue
        if magnitude > CRITICAL_RISE_PCT:
            add(TrendAlert(
                level=AlertLevel.CRITICAL,
                title=f"Surge in {corr.condition}",
                description=(
                    f"{corr.condition} has increased ~{magnitude}% in the region. "
                    f"Strongly consider in differential."
                ),
                condition=corr.condition,
                source=source,
            ))
        elif magnitude > WARNING_RISE_PCT:
            add(TrendAlert(
                level=AlertLevel.WARNING,
                title=f"Rapid increase in {corr.condition}",
                description=f"{corr.condition} has increased ~{magnitude}% in the region. Consider in differential.",
                condition=corr.condition,
                source=source,
            ))

    active = [c for c in correlations if c.data_points and c.tier.rank >= Tier.MODERATE.rank]
    if len(active) >= CO_CIRCULATION_MIN:
        add(TrendAlert(
            level=AlertLevel.INFO,
            title="Multiple co-circulating conditions",
            description=(
                f"{len(active)} conditions show moderate or higher regional relevance "
                f"({', '.join(c.condition for c in active[:5])}). Consider broadening the differential."
            ),
        ))

    alerts.sort(key=lambda a: -a.level.rank)
    return alerts
