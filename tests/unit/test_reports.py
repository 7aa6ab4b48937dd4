"""
Unit Tests for the PDF Trend Report
"""
import pytest

from surveillance.core.reports import TrendReportGenerator
from surveillance.core.types import (
    AlertLevel,
    ClinicalCorrelation,
    DataSourceError,
    DataSourceSummary,
    GeoLevel,
    ResolvedRegion,
    ScoreComponents,
    SourceStatus,
    Tier,
    TrendAlert,
    TrendAnalysisResult,
    TrendDirection,
)
from surveillance.utils import ReportGenerationError


@pytest.fixture
def analysis(make_point, travis_region) -> TrendAnalysisResult:
    flu = ClinicalCorrelation(
        condition="Influenza <A>",
        syndromes=[],
        overall_score=65,
        tier=Tier.HIGH,
        components=ScoreComponents(11, 20, 20, 10, 4),
        trend_direction=TrendDirection.RISING,
        trend_magnitude=33,
        summary="Influenza is trending upward (~33% increase) in the region. Clinical relevance: high.",
        data_points=[
            make_point(value=60.0, period="2026-01-03"),
            make_point(value=80.0, period="2026-01-10", trend=TrendDirection.RISING, magnitude=33),
        ],
    )
    absent = ClinicalCorrelation(
        condition="Bacterial meningitis",
        syndromes=[],
        overall_score=22,
        tier=Tier.LOW,
        components=ScoreComponents(0, 18, 0, 4, 0),
        trend_direction=TrendDirection.UNKNOWN,
        summary="No regional surveillance signal for Bacterial meningitis; activity is not currently elevated in the region.",
    )
    return TrendAnalysisResult(
        analysis_id="5f0c6a1e-8d7b-4c1a-9a55-0f3e2b7c9d10",
        region=travis_region,
        region_label=travis_region.label,
        ranked_findings=[flu, absent],
        alerts=[TrendAlert(AlertLevel.WARNING, "Rapid increase in Influenza", "Influenza has increased ~33%.",
                           condition="Influenza", source="cdc_respiratory")],
        summary="Regional surveillance shows notable activity for Influenza.",
        data_sources_queried=["CDC Respiratory"],
        data_source_errors=[DataSourceError("cdc_wastewater", "CDC Wastewater API error: 503", "2026-01-15T12:00:00Z")],
        data_source_summaries=[
            DataSourceSummary("cdc_respiratory", "CDC Respiratory Hospital Data", SourceStatus.DATA,
                              ["Influenza 80.0% test positivity (rising ~33%)"]),
            DataSourceSummary("cdc_wastewater", "NWSS Wastewater Surveillance", SourceStatus.ERROR),
        ],
        analyzed_at="2026-01-15T12:00:00+00:00",
    )


class TestTrendReportGenerator:

    def test_generates_pdf(self, analysis):
        pdf = TrendReportGenerator().generate(analysis)
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_empty_analysis(self):
        region = ResolvedRegion(state="Vermont", state_abbrev="VT", hhs_region=1, geo_level=GeoLevel.STATE)
        empty = TrendAnalysisResult(
            analysis_id="a", region=region, region_label=region.label, ranked_findings=[], alerts=[],
            summary="", data_sources_queried=[], data_source_errors=[], data_source_summaries=[],
            analyzed_at="not a date",
        )
        assert TrendReportGenerator().generate(empty).startswith(b"%PDF")

    def test_round_tripped_document(self, analysis):
        restored = TrendAnalysisResult.from_dict(analysis.to_dict())
        assert TrendReportGenerator().generate(restored).startswith(b"%PDF")

    def test_build_failure_raises(self, analysis, monkeypatch):
        generator = TrendReportGenerator()

        def broken(_analysis):
            raise RuntimeError("layout failed")

        monkeypatch.setattr(generator, "_build_story", broken)
        with pytest.raises(ReportGenerationError) as info:
            generator.generate(analysis)
        assert info.value.details["reason"] == "layout failed"
