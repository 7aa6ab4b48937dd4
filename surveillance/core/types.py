"""
Surveillance Layer — Base Types

Defines the data contracts shared by the region resolver, the source adapters,
the correlation engine, the prompt augmenter and the report generator.

Every type serialises to the camelCase shape used on the wire and in the
persisted analysis document (``to_dict``) and can be rebuilt from it
(``from_dict``).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Syndrome(str, Enum):
    """Coarse clinical category used to pick relevant surveillance sources."""
    RESPIRATORY_UPPER     = "respiratory_upper"
    RESPIRATORY_LOWER     = "respiratory_lower"
    GASTROINTESTINAL      = "gastrointestinal"
    NEUROLOGICAL          = "neurological"
    FEBRILE_RASH          = "febrile_rash"
    HEMORRHAGIC           = "hemorrhagic"
    SEPSIS_SHOCK          = "sepsis_shock"
    CARDIOVASCULAR        = "cardiovascular"
    VECTOR_BORNE          = "vector_borne"
    BIOTERRORISM_SENTINEL = "bioterrorism_sentinel"


class GeoLevel(str, Enum):
    COUNTY     = "county"
    STATE      = "state"
    HHS_REGION = "hhs_region"
    NATIONAL   = "national"


class TrendDirection(str, Enum):
    """
    Direction of change between the two most recent periods.

    UNKNOWN is only used on correlations whose data carries no trend.
    """
    RISING  = "rising"
    FALLING = "falling"
    STABLE  = "stable"
    UNKNOWN = "unknown"


class Tier(str, Enum):
    """Ordinal bucket of a correlation's overall score."""
    BACKGROUND = "background"
    LOW        = "low"
    MODERATE   = "moderate"
    HIGH       = "high"
    CRITICAL   = "critical"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {
    Tier.BACKGROUND: 0,
    Tier.LOW:        1,
    Tier.MODERATE:   2,
    Tier.HIGH:       3,
    Tier.CRITICAL:   4,
}


class AlertLevel(str, Enum):
    INFO     = "info"
    WARNING  = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return {AlertLevel.INFO: 0, AlertLevel.WARNING: 1, AlertLevel.CRITICAL: 2}[self]


class SourceStatus(str, Enum):
    DATA        = "data"
    NO_DATA     = "no_data"
    ERROR       = "error"
    NOT_QUERIED = "not_queried"


def _drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


@dataclass(frozen=True)
class ResolvedRegion:
    """Canonical region of one analysis request."""
    state: str                       # full name, e.g. "Texas"
    state_abbrev: str                # e.g. "TX"
    hhs_region: int                  # 1..10
    geo_level: GeoLevel
    county: Optional[str] = None
    zip_code: Optional[str] = None
    fips_code: Optional[str] = None

    @property
    def label(self) -> str:
        """Human-readable region label used in prompts and reports."""
        if self.county:
            return f"{self.county}, {self.state_abbrev} area — HHS Region {self.hhs_region}"
        return f"{self.state} — HHS Region {self.hhs_region}"

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "state": self.state,
            "stateAbbrev": self.state_abbrev,
            "hhsRegion": self.hhs_region,
            "geoLevel": self.geo_level.value,
            "county": self.county,
            "zipCode": self.zip_code,
            "fipsCode": self.fips_code,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedRegion":
        return cls(
            state=data["state"],
            state_abbrev=data["stateAbbrev"],
            hhs_region=int(data["hhsRegion"]),
            geo_level=GeoLevel(data["geoLevel"]),
            county=data.get("county"),
            zip_code=data.get("zipCode"),
            fips_code=data.get("fipsCode"),
        )


@dataclass
class SurveillanceDataPoint:
    """One normalised observation from any data source."""
    source: str
    condition: str
    syndromes: List[Syndrome]
    region: str
    geo_level: GeoLevel
    period_start: str                # ISO date or MMWR week ("2026-W05")
    period_end: str
    value: float
    unit: str
    trend: Optional[TrendDirection] = None
    trend_magnitude: Optional[int] = None   # percent change vs prior period
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "source": self.source,
            "condition": self.condition,
            "syndromes": [s.value for s in self.syndromes],
            "region": self.region,
            "geoLevel": self.geo_level.value,
            "periodStart": self.period_start,
            "periodEnd": self.period_end,
            "value": self.value,
            "unit": self.unit,
            "trend": self.trend.value if self.trend else None,
            "trendMagnitude": self.trend_magnitude,
        }
        payload = _drop_none(payload)
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SurveillanceDataPoint":
        trend = data.get("trend")
        return cls(
            source=data["source"],
            condition=data["condition"],
            syndromes=[Syndrome(s) for s in data.get("syndromes", [])],
            region=data.get("region", ""),
            geo_level=GeoLevel(data.get("geoLevel", GeoLevel.NATIONAL.value)),
            period_start=data.get("periodStart", ""),
            period_end=data.get("periodEnd", ""),
            value=float(data.get("value", 0.0)),
            unit=data.get("unit", ""),
            trend=TrendDirection(trend) if trend and trend != TrendDirection.UNKNOWN.value else None,
            trend_magnitude=data.get("trendMagnitude"),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class ScoreComponents:
    """The five independent sub-scores of a correlation."""
    symptom_match: int = 0           # 0-40
    differential_match: int = 0      # 0-20
    epidemiologic_signal: int = 0    # 0-25
    seasonal_plausibility: int = 0   # 0-10
    geographic_relevance: int = 0    # 0-5

    @property
    def total(self) -> int:
        return (
            self.symptom_match
            + self.differential_match
            + self.epidemiologic_signal
            + self.seasonal_plausibility
            + self.geographic_relevance
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "symptomMatch": self.symptom_match,
            "differentialMatch": self.differential_match,
            "epidemiologicSignal": self.epidemiologic_signal,
            "seasonalPlausibility": self.seasonal_plausibility,
            "geographicRelevance": self.geographic_relevance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreComponents":
        return cls(
            symptom_match=int(data.get("symptomMatch", 0)),
            differential_match=int(data.get("differentialMatch", 0)),
            epidemiologic_signal=int(data.get("epidemiologicSignal", 0)),
            seasonal_plausibility=int(data.get("seasonalPlausibility", 0)),
            geographic_relevance=int(data.get("geographicRelevance", 0)),
        )


@dataclass
class ClinicalCorrelation:
    """
    Surveillance relevance of one candidate condition.

    ``data_points`` is empty for an absence finding: the condition was on the
    differential but no source reported activity for it.
    """
    condition: str
    syndromes: List[Syndrome]
    overall_score: int
    tier: Tier
    components: ScoreComponents
    trend_direction: TrendDirection
    summary: str
    trend_magnitude: Optional[int] = None
    data_points: List[SurveillanceDataPoint] = field(default_factory=list)

    @property
    def is_absence(self) -> bool:
        return not self.data_points

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "condition": self.condition,
            "syndromes": [s.value for s in self.syndromes],
            "overallScore": self.overall_score,
            "tier": self.tier.value,
            "components": self.components.to_dict(),
            "trendDirection": self.trend_direction.value,
            "trendMagnitude": self.trend_magnitude,
            "dataPoints": [dp.to_dict() for dp in self.data_points],
            "summary": self.summary,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClinicalCorrelation":
        return cls(
            condition=data["condition"],
            syndromes=[Syndrome(s) for s in data.get("syndromes", [])],
            overall_score=int(data.get("overallScore", 0)),
            tier=Tier(data.get("tier", Tier.BACKGROUND.value)),
            components=ScoreComponents.from_dict(data.get("components") or {}),
            trend_direction=TrendDirection(data.get("trendDirection", TrendDirection.UNKNOWN.value)),
            trend_magnitude=data.get("trendMagnitude"),
            data_points=[SurveillanceDataPoint.from_dict(dp) for dp in data.get("dataPoints", [])],
            summary=data.get("summary", ""),
        )


@dataclass
class TrendAlert:
    """Alert derived from one or more correlations."""
    level: AlertLevel
    title: str
    description: str
    condition: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "level": self.level.value,
            "title": self.title,
            "description": self.description,
            "condition": self.condition,
            "source": self.source,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrendAlert":
        return cls(
            level=AlertLevel(data["level"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            condition=data.get("condition"),
            source=data.get("source"),
        )


@dataclass
class DataSourceError:
    """A single adapter failure, folded into the analysis result."""
    source: str
    error: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "error": self.error, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataSourceError":
        return cls(source=data["source"], error=data.get("error", ""), timestamp=data.get("timestamp", ""))


@dataclass
class DataSourceSummary:
    """What one registered data source contributed to an analysis."""
    source: str
    label: str
    status: SourceStatus
    highlights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "label": self.label,
            "status": self.status.value,
            "highlights": list(self.highlights),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataSourceSummary":
        return cls(
            source=data["source"],
            label=data.get("label", data["source"]),
            status=SourceStatus(data.get("status", SourceStatus.NOT_QUERIED.value)),
            highlights=list(data.get("highlights", [])),
        )


@dataclass
class TrendAnalysisResult:
    """The persisted unit produced by one analyze request."""
    analysis_id: str
    region: ResolvedRegion
    region_label: str
    ranked_findings: List[ClinicalCorrelation]
    alerts: List[TrendAlert]
    summary: str
    data_sources_queried: List[str]
    data_source_errors: List[DataSourceError]
    data_source_summaries: List[DataSourceSummary]
    analyzed_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysisId": self.analysis_id,
            "region": self.region.to_dict(),
            "regionLabel": self.region_label,
            "rankedFindings": [f.to_dict() for f in self.ranked_findings],
            "alerts": [a.to_dict() for a in self.alerts],
            "summary": self.summary,
            "dataSourcesQueried": list(self.data_sources_queried),
            "dataSourceErrors": [e.to_dict() for e in self.data_source_errors],
            "dataSourceSummaries": [s.to_dict() for s in self.data_source_summaries],
            "analyzedAt": self.analyzed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrendAnalysisResult":
        return cls(
            analysis_id=data["analysisId"],
            region=ResolvedRegion.from_dict(data["region"]),
            region_label=data.get("regionLabel", ""),
            ranked_findings=[ClinicalCorrelation.from_dict(f) for f in data.get("rankedFindings", [])],
            alerts=[TrendAlert.from_dict(a) for a in data.get("alerts", [])],
            summary=data.get("summary", ""),
            data_sources_queried=list(data.get("dataSourcesQueried", [])),
            data_source_errors=[DataSourceError.from_dict(e) for e in data.get("dataSourceErrors", [])],
            data_source_summaries=[DataSourceSummary.from_dict(s) for s in data.get("dataSourceSummaries", [])],
            analyzed_at=data.get("analyzedAt", ""),
        )
