"""
Integration Tests for the Surveillance API

Exercises the FastAPI app through httpx.ASGITransport with a service wired
to the SodaStub upstream.
"""
import logging
import uuid

import httpx
import pytest

from surveillance.core.adapters import AdapterRegistry, default_adapters
from surveillance.config import SurveillanceSettings
from surveillance.core.cache import DiskSurveillanceCache, MemoryCache
from surveillance.main import create_app
from surveillance.services import (
    DiskAnalysisStore,
    InMemoryAnalysisStore,
    TrendAnalysisService,
    collaborators_from_dev_users,
)

PRO_TOKEN = "pro-token-0001"
FREE_TOKEN = "free-token-0001"
OTHER_TOKEN = "enterprise-token-01"
NO_PDF_TOKEN = "basic-token-0001"


@pytest.fixture
async def async_client(soda):
    """Async client for an app whose service talks to the SodaStub."""
    upstream = soda.client()
    identity, plans = collaborators_from_dev_users({
        PRO_TOKEN: ("user-pro", "pro"),
        FREE_TOKEN: ("user-free", "free"),
        OTHER_TOKEN: ("user-ent", "enterprise"),
        NO_PDF_TOKEN: ("user-basic", "basic"),
    })
    service = TrendAnalysisService(
        registry=AdapterRegistry(default_adapters(upstream, MemoryCache())),
        identity=identity,
        plans=plans,
        store=InMemoryAnalysisStore(),
    )
    app = create_app(service=service)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    await upstream.aclose()


def analyze_body(**overrides):
    body = {
        "userIdToken": PRO_TOKEN,
        "chiefComplaint": "cough and wheezing for three days",
        "differential": ["RSV", "Influenza"],
        "location": {"zipCode": "78701"},
    }
    body.update(overrides)
    return body


def wastewater_rows():
    return [
        {"key_plot_id": "NWSS_tx_256_Treatment plant_raw wastewater", "date": "2026-01-10", "pathogen": "RSV", "pcr_conc_lin": "200"},
        {"key_plot_id": "NWSS_tx_256_Treatment plant_raw wastewater", "date": "2026-01-03", "pathogen": "RSV", "pcr_conc_lin": "150"},
    ]


@pytest.mark.asyncio
class TestHealthEndpoint:

    async def test_health(self, async_client):
        """Health reports status, version and registered sources."""
        response = await async_client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["sources"] == ["cdc_respiratory", "cdc_wastewater", "cdc_nndss"]
        assert data["uptime_seconds"] >= 0


@pytest.mark.asyncio
class TestAnalyzeEndpoint:

    async def test_end_to_end_with_failed_source(self, async_client, soda):
        """Rising wastewater RSV produces a warning; a 429 source becomes a warning message."""
        soda.respond("g653-rqe2", wastewater_rows())
        soda.respond("mpgq-jmmr", {"message": "Too many requests"}, status=429)

        response = await async_client.post("/v1/surveillance/analyze", json=analyze_body())
        assert response.status_code == 200

        data = response.json()
        assert data["ok"] is True
        analysis = data["analysis"]
        uuid.UUID(analysis["analysisId"])
        assert analysis["region"]["county"] == "Travis County"
        assert analysis["region"]["geoLevel"] == "county"
        assert len(analysis["rankedFindings"]) >= 1
        assert analysis["dataSourcesQueried"] == ["NWSS Wastewater"]
        assert data["warnings"] == ["CDC Respiratory API error: 429"]
        assert analysis["dataSourceErrors"][0]["source"] == "cdc_respiratory"

        rsv = next(f for f in analysis["rankedFindings"] if f["condition"] == "RSV")
        assert rsv["trendDirection"] == "rising"
        assert rsv["trendMagnitude"] == 33
        assert set(rsv["components"]) == {
            "symptomMatch", "differentialMatch", "epidemiologicSignal",
            "seasonalPlausibility", "geographicRelevance",
        }
        assert sum(rsv["components"].values()) == rsv["overallScore"]
        assert any(a["level"] == "warning" and a["condition"] == "RSV" for a in analysis["alerts"])

    async def test_no_warnings_key_when_all_sources_succeed(self, async_client, soda):
        soda.respond("g653-rqe2", wastewater_rows())
        response = await async_client.post("/v1/surveillance/analyze", json=analyze_body())
        assert response.status_code == 200
        assert "warnings" not in response.json()

    async def test_state_location(self, async_client):
        response = await async_client.post(
            "/v1/surveillance/analyze", json=analyze_body(location={"state": "tx"}),
        )
        assert response.status_code == 200
        region = response.json()["analysis"]["region"]
        assert region["stateAbbrev"] == "TX"
        assert region["geoLevel"] == "state"

    @pytest.mark.parametrize("overrides", [
        {"userIdToken": "short"},
        {"chiefComplaint": ""},
        {"chiefComplaint": "x" * 501},
        {"differential": []},
        {"differential": ["RSV", "  "]},
        {"differential": [f"dx{i}" for i in range(21)]},
        {"location": {"zipCode": "7870"}},
        {"location": {"zipCode": "78701", "state": "TX"}},
        {"location": {}},
    ])
    async def test_invalid_request(self, async_client, soda, overrides):
        response = await async_client.post("/v1/surveillance/analyze", json=analyze_body(**overrides))
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Invalid request"
        assert data["details"]
        assert soda.calls == []

    async def test_unresolvable_location(self, async_client):
        response = await async_client.post(
            "/v1/surveillance/analyze", json=analyze_body(location={"zipCode": "99999"}),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "LOCATION_UNRESOLVED"

    async def test_unknown_token(self, async_client):
        response = await async_client.post(
            "/v1/surveillance/analyze", json=analyze_body(userIdToken="unknown-token-123"),
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    async def test_free_plan(self, async_client, soda):
        response = await async_client.post(
            "/v1/surveillance/analyze", json=analyze_body(userIdToken=FREE_TOKEN),
        )
        assert response.status_code == 403
        data = response.json()
        assert data["code"] == "PLAN_REQUIRED"
        assert data["details"]["upgradeRequired"] is True
        assert soda.calls == []


@pytest.mark.asyncio
class TestReportEndpoint:

    async def _analysis_id(self, client) -> str:
        response = await client.post("/v1/surveillance/analyze", json=analyze_body())
        assert response.status_code == 200
        return response.json()["analysis"]["analysisId"]

    async def test_owner_downloads_pdf(self, async_client, soda):
        soda.respond("g653-rqe2", wastewater_rows())
        analysis_id = await self._analysis_id(async_client)

        response = await async_client.post(
            "/v1/surveillance/report", json={"userIdToken": PRO_TOKEN, "analysisId": analysis_id},
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == (
            f'attachment; filename="surveillance-report-{analysis_id}.pdf"'
        )
        assert response.content.startswith(b"%PDF")

    async def test_unknown_analysis(self, async_client):
        response = await async_client.post(
            "/v1/surveillance/report", json={"userIdToken": PRO_TOKEN, "analysisId": str(uuid.uuid4())},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Analysis not found"

    async def test_other_users_analysis(self, async_client):
        analysis_id = await self._analysis_id(async_client)
        response = await async_client.post(
            "/v1/surveillance/report", json={"userIdToken": OTHER_TOKEN, "analysisId": analysis_id},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_plan_without_pdf(self, async_client):
        analysis_id = await self._analysis_id(async_client)
        response = await async_client.post(
            "/v1/surveillance/report", json={"userIdToken": NO_PDF_TOKEN, "analysisId": analysis_id},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "PLAN_REQUIRED"

    async def test_invalid_analysis_id(self, async_client):
        response = await async_client.post(
            "/v1/surveillance/report", json={"userIdToken": PRO_TOKEN, "analysisId": "not-a-uuid"},
        )
        assert response.status_code == 400


@pytest.mark.asyncio
class TestContextEndpoint:

    async def test_context_for_stored_analysis(self, async_client, soda):
        soda.respond("g653-rqe2", wastewater_rows())
        analyze = await async_client.post("/v1/surveillance/analyze", json=analyze_body())
        analysis = analyze.json()["analysis"]

        response = await async_client.post(
            "/v1/surveillance/context", json={"analysis": analysis, "differential": ["RSV", "Influenza"]},
        )
        assert response.status_code == 200
        context = response.json()["context"]
        assert context.startswith("Regional Surveillance Summary (Travis County, TX area")
        assert len(context) <= 2000
        assert context.endswith("Data sources: CDC Respiratory, NWSS Wastewater")

    async def test_missing_analysis(self, async_client):
        response = await async_client.post("/v1/surveillance/context", json={})
        assert response.status_code == 200
        assert response.json() == {"context": ""}

    async def test_malformed_analysis(self, async_client):
        response = await async_client.post("/v1/surveillance/context", json={"analysis": {"foo": 1}})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"

    async def test_non_string_condition(self, async_client):
        analysis = {
            "analysisId": str(uuid.uuid4()),
            "region": {"state": "Texas", "stateAbbrev": "TX", "hhsRegion": 6, "geoLevel": "state"},
            "rankedFindings": [{"condition": 5, "tier": "low"}],
        }
        response = await async_client.post(
            "/v1/surveillance/context", json={"analysis": analysis, "differential": ["flu"]},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_REQUEST"
        assert data["details"]["analysis"][0]["loc"] == ["rankedFindings", 0, "condition"]

    async def test_non_finite_value(self, async_client):
        analysis = {
            "analysisId": str(uuid.uuid4()),
            "region": {"state": "Texas", "stateAbbrev": "TX", "hhsRegion": 6, "geoLevel": "state"},
            "rankedFindings": [{
                "condition": "Influenza",
                "tier": "low",
                "dataPoints": [{"source": "cdc_respiratory", "condition": "Influenza", "value": "NaN"}],
            }],
        }
        response = await async_client.post("/v1/surveillance/context", json={"analysis": analysis})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"


@pytest.mark.asyncio
class TestLifespan:

    async def test_shutdown_closes_disk_backends(self, tmp_path, monkeypatch):
        closed = []
        monkeypatch.setattr(DiskSurveillanceCache, "close", lambda self: closed.append("cache"))
        monkeypatch.setattr(DiskAnalysisStore, "close", lambda self: closed.append("store"))
        settings = SurveillanceSettings(
            cache_backend="disk",
            cache_dir=str(tmp_path / "cache"),
            store_dir=str(tmp_path / "analyses"),
            dev_users={},
            log_file=None,
        )
        app = create_app(settings=settings)
        root = logging.getLogger()
        previous_level = root.level
        try:
            async with app.router.lifespan_context(app):
                assert isinstance(app.state.service.store, DiskAnalysisStore)
                assert closed == []
        finally:
            for handler in list(root.handlers):
                if getattr(handler, "_surveillance_handler", False):
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(previous_level)

        assert sorted(closed) == ["cache", "store"]
