"""
Analysis document schema.

Validates a client-supplied analysis (the ``analysis`` object returned by
/v1/surveillance/analyze) before it is rebuilt into a TrendAnalysisResult.
Strings are strict so a number never stands in for a condition name.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from surveillance.core.types import (
    AlertLevel,
    GeoLevel,
    SourceStatus,
    Syndrome,
    Tier,
    TrendDirection,
)


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RegionDocument(_Document):
    state: StrictStr
    state_abbrev: StrictStr = Field(..., alias="stateAbbrev")
    hhs_region: int = Field(..., alias="hhsRegion", ge=1, le=10)
    geo_level: GeoLevel = Field(..., alias="geoLevel")
    county: Optional[StrictStr] = None
    zip_code: Optional[StrictStr] = Field(None, alias="zipCode")
    fips_code: Optional[StrictStr] = Field(None, alias="fipsCode")


class DataPointDocument(_Document):
    source: StrictStr
    condition: StrictStr
    syndromes: List[Syndrome] = []
    region: StrictStr = ""
    geo_level: GeoLevel = Field(GeoLevel.NATIONAL, alias="geoLevel")
    period_start: StrictStr = Field("", alias="periodStart")
    period_end: StrictStr = Field("", alias="periodEnd")
    value: float = Field(0.0, allow_inf_nan=False)
    unit: StrictStr = ""
    trend: Optional[TrendDirection] = None
    trend_magnitude: Optional[int] = Field(None, alias="trendMagnitude")
    metadata: Dict[str, Any] = {}


class ComponentsDocument(_Document):
    symptom_match: int = Field(0, alias="symptomMatch")
    differential_match: int = Field(0, alias="differentialMatch")
    epidemiologic_signal: int = Field(0, alias="epidemiologicSignal")
    seasonal_plausibility: int = Field(0, alias="seasonalPlausibility")
    geographic_relevance: int = Field(0, alias="geographicRelevance")


class FindingDocument(_Document):
    condition: StrictStr
    syndromes: List[Syndrome] = []
    overall_score: int = Field(0, alias="overallScore")
    tier: Tier = Tier.BACKGROUND
    components: ComponentsDocument = Field(default_factory=ComponentsDocument)
    trend_direction: TrendDirection = Field(TrendDirection.UNKNOWN, alias="trendDirection")
    trend_magnitude: Optional[int] = Field(None, alias="trendMagnitude")
    data_points: List[DataPointDocument] = Field([], alias="dataPoints")
    summary: StrictStr = ""


class AlertDocument(_Document):
    level: AlertLevel
    title: StrictStr = ""
    description: StrictStr = ""
    condition: Optional[StrictStr] = None
    source: Optional[StrictStr] = None


class SourceErrorDocument(_Document):
    source: StrictStr
    error: StrictStr = ""
    timestamp: StrictStr = ""


class SourceSummaryDocument(_Document):
    source: StrictStr
    label: Optional[StrictStr] = None
    status: SourceStatus = SourceStatus.NOT_QUERIED
    highlights: List[StrictStr] = []


class AnalysisDocument(_Document):
    analysis_id: StrictStr = Field(..., alias="analysisId")
    region: RegionDocument
    region_label: StrictStr = Field("", alias="regionLabel")
    ranked_findings: List[FindingDocument] = Field([], alias="rankedFindings")
    alerts: List[AlertDocument] = []
    summary: StrictStr = ""
    data_sources_queried: List[StrictStr] = Field([], alias="dataSourcesQueried")
    data_source_errors: List[SourceErrorDocument] = Field([], alias="dataSourceErrors")
    data_source_summaries: List[SourceSummaryDocument] = Field([], alias="dataSourceSummaries")
    analyzed_at: StrictStr = Field("", alias="analyzedAt")

    def to_wire(self) -> Dict[str, Any]:
        """camelCase dict accepted by TrendAnalysisResult.from_dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
