"""
Unit Tests for the Trend Analysis Service

Adapters run against the SodaStub; identity, plans and storage use the
static development collaborators.
"""
from datetime import datetime, timezone

import pytest

from surveillance.core.adapters import AdapterFetchResult, AdapterRegistry, default_adapters
from surveillance.core.cache import MemoryCache, NullCache
from surveillance.core.types import (
    AlertLevel,
    ClinicalCorrelation,
    DataSourceError,
    ScoreComponents,
    SourceStatus,
    Tier,
    TrendAlert,
    TrendDirection,
)
from surveillance.services import (
    DiskAnalysisStore,
    InMemoryAnalysisStore,
    StaticPlanService,
    StaticTokenVerifier,
    TrendAnalysisService,
    collaborators_from_dev_users,
)
from surveillance.services.analysis import build_data_source_summaries, build_summary, format_highlight
from surveillance.utils import (
    AnalysisAccessError,
    AnalysisNotFoundError,
    AuthenticationError,
    EntitlementError,
    LocationResolutionError,
)

PRO_TOKEN = "pro-token-0001"
FREE_TOKEN = "free-token-0001"
OTHER_TOKEN = "other-token-0001"


def fixed_clock():
    return datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryAnalysisStore()


@pytest.fixture
def service(http_client, store):
    identity = StaticTokenVerifier({PRO_TOKEN: "user-pro", FREE_TOKEN: "user-free", OTHER_TOKEN: "user-other"})
    plans = StaticPlanService({"user-pro": "pro", "user-free": "free", "user-other": "enterprise"})
    registry = AdapterRegistry(default_adapters(http_client, NullCache()))
    return TrendAnalysisService(registry, identity, plans, store, clock=fixed_clock)


def wastewater_rsv_rows():
    return [
        {"key_plot_id": "NWSS_tx_256_Treatment plant_raw wastewater", "date": "2026-01-10", "pathogen": "RSV", "pcr_conc_lin": "200"},
        {"key_plot_id": "NWSS_tx_256_Treatment plant_raw wastewater", "date": "2026-01-03", "pathogen": "RSV", "pcr_conc_lin": "150"},
    ]


class TestSummaries:

    def test_format_highlight(self, make_point):
        assert format_highlight(make_point(value=80.0, trend=TrendDirection.RISING, magnitude=33)) == (
            "Influenza 80.0% test positivity (rising ~33%)"
        )
        assert format_highlight(make_point(condition="RSV", value=1234.0, unit="wastewater_concentration")) == (
            "RSV wastewater level 1,234"
        )
        assert format_highlight(make_point(condition="Dengue", value=4.0, unit="case_count", period="2026-W02",
                                           trend=TrendDirection.STABLE)) == (
            "Dengue 4 case(s) in 2026-W02 (stable)"
        )

    def test_data_source_summaries(self, http_client, make_point):
        registry = AdapterRegistry(default_adapters(http_client))
        fetch = AdapterFetchResult(
            data_points=[
                make_point(value=60.0, period="2026-01-03"),
                make_point(value=80.0, period="2026-01-10"),
            ],
            errors=[DataSourceError("cdc_wastewater", "CDC Wastewater API error: 503", "2026-01-15T12:00:00Z")],
            queried_sources=["cdc_respiratory", "cdc_wastewater"],
        )

        summaries = build_data_source_summaries(registry, fetch)

        assert [s.source for s in summaries] == ["cdc_respiratory", "cdc_wastewater", "cdc_nndss"]
        assert [s.status for s in summaries] == [SourceStatus.DATA, SourceStatus.ERROR, SourceStatus.NOT_QUERIED]
        assert summaries[0].label == "CDC Respiratory Hospital Data"
        # only the newest observation per condition is highlighted
        assert summaries[0].highlights == ["Influenza 80.0% test positivity"]

    def test_build_summary(self):
        def corr(condition, tier, points):
            return ClinicalCorrelation(condition, [], 50, tier, ScoreComponents(), TrendDirection.STABLE, "",
                                       data_points=points)

        quiet = build_summary("Texas", [corr("Influenza", Tier.LOW, [])], [])
        assert quiet == (
            "No significant regional surveillance signals detected in Texas for the given clinical presentation."
        )

        alert = TrendAlert(AlertLevel.WARNING, "Rapid increase in RSV", "...")
        info = TrendAlert(AlertLevel.INFO, "Multiple co-circulating conditions", "...")
        busy = build_summary("Texas", [corr("RSV", Tier.HIGH, ["dp"])], [alert, info])
        assert busy == "Regional surveillance in Texas shows notable activity for RSV. 1 alert(s) warrant review."


@pytest.mark.asyncio
class TestAnalyze:

    async def test_end_to_end(self, service, store, soda):
        soda.respond("g653-rqe2", wastewater_rsv_rows())
        soda.respond("mpgq-jmmr", {"message": "rate limited"}, status=429)

        analysis, warnings = await service.analyze(
            PRO_TOKEN, "cough and wheezing", ["RSV", "Influenza"], zip_code="78701",
        )

        assert analysis.region.county == "Travis County"
        assert analysis.region_label == "Travis County, TX area — HHS Region 6"
        assert analysis.analyzed_at == "2026-01-15T12:00:00+00:00"

        rsv = next(f for f in analysis.ranked_findings if f.condition == "RSV")
        assert rsv.trend_direction == TrendDirection.RISING
        assert rsv.trend_magnitude == 33
        assert any(a.level == AlertLevel.WARNING and a.condition == "RSV" for a in analysis.alerts)

        assert analysis.data_sources_queried == ["NWSS Wastewater"]
        assert warnings == ["CDC Respiratory API error: 429"]
        assert [e.source for e in analysis.data_source_errors] == ["cdc_respiratory"]
        assert len(store) == 1

    async def test_free_plan_rejected_before_fetch(self, service, soda):
        with pytest.raises(EntitlementError):
            await service.analyze(FREE_TOKEN, "cough", ["Influenza"], state="TX")
        assert soda.calls == []

    async def test_unknown_token(self, service):
        with pytest.raises(AuthenticationError):
            await service.analyze("not-a-known-token", "cough", ["Influenza"], state="TX")

    async def test_unresolvable_location(self, service):
        with pytest.raises(LocationResolutionError):
            await service.analyze(PRO_TOKEN, "cough", ["Influenza"], state="ZZ")

    async def test_no_relevant_sources(self, service, soda):
        analysis, warnings = await service.analyze(PRO_TOKEN, "ankle sprain", ["Fracture"], state="TX")
        assert soda.calls == []
        assert analysis.data_sources_queried == []
        assert warnings == []
        assert [s.status for s in analysis.data_source_summaries] == [SourceStatus.NOT_QUERIED] * 3
        # the differential entry is still scored as an absence finding
        assert [f.condition for f in analysis.ranked_findings] == ["Fracture"]


@pytest.mark.asyncio
class TestReport:

    async def test_owner_gets_pdf(self, service, soda):
        soda.respond("g653-rqe2", wastewater_rsv_rows())
        analysis, _ = await service.analyze(PRO_TOKEN, "cough", ["RSV"], state="TX")

        filename, pdf = await service.report(PRO_TOKEN, analysis.analysis_id)

        assert filename == f"surveillance-report-{analysis.analysis_id}.pdf"
        assert pdf.startswith(b"%PDF")

    async def test_other_user_denied(self, service):
        analysis, _ = await service.analyze(PRO_TOKEN, "cough", ["RSV"], state="TX")
        with pytest.raises(AnalysisAccessError):
            await service.report(OTHER_TOKEN, analysis.analysis_id)

    async def test_unknown_analysis(self, service):
        with pytest.raises(AnalysisNotFoundError):
            await service.report(PRO_TOKEN, "5f0c6a1e-8d7b-4c1a-9a55-0f3e2b7c9d10")

    async def test_plan_without_pdf_export(self, service):
        with pytest.raises(EntitlementError):
            await service.report(FREE_TOKEN, "5f0c6a1e-8d7b-4c1a-9a55-0f3e2b7c9d10")


@pytest.mark.asyncio
class TestCollaborators:

    async def test_dev_users(self):
        identity, plans = collaborators_from_dev_users({"tok-123456789": ("u1", "enterprise")})
        assert await identity.verify("tok-123456789") == "u1"
        stats = await plans.get_usage_stats("u1")
        assert stats.plan == "enterprise"
        assert stats.export_formats == ["pdf", "csv"]
        assert (await plans.get_usage_stats("nobody")).plan == "free"

    async def test_disk_store_round_trip(self, tmp_path, service, soda):
        analysis, _ = await service.analyze(PRO_TOKEN, "cough", ["Influenza"], state="TX")
        disk = DiskAnalysisStore(str(tmp_path / "analyses"))
        try:
            await disk.save(analysis, "user-pro")
            stored = await disk.get(analysis.analysis_id)
            assert stored.owner_id == "user-pro"
            assert stored.analysis.to_dict() == analysis.to_dict()
            assert await disk.get("missing") is None
        finally:
            disk.close()


class ClosingCache(MemoryCache):
    def __init__(self):
        super().__init__()
        self.closes = 0

    def close(self):
        self.closes += 1


class ClosingStore(InMemoryAnalysisStore):
    def __init__(self):
        super().__init__()
        self.closes = 0

    def close(self):
        self.closes += 1


class TestClose:

    def test_closes_store_and_shared_cache_once(self, http_client):
        cache = ClosingCache()
        store = ClosingStore()
        identity, plans = collaborators_from_dev_users({})
        service = TrendAnalysisService(AdapterRegistry(default_adapters(http_client, cache)), identity, plans, store)

        service.close()

        assert store.closes == 1
        assert cache.closes == 1

    def test_in_memory_backends_close_quietly(self, service):
        service.close()
