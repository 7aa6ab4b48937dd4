"""
Pytest Configuration and Fixtures

Shared fixtures for surveillance service tests. Upstream CDC endpoints are
simulated with httpx.MockTransport.
"""
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from surveillance.core.types import (  # noqa: E402
    GeoLevel,
    ResolvedRegion,
    SurveillanceDataPoint,
    Syndrome,
    TrendDirection,
)


class SodaStub:
    """
    Fake data.cdc.gov: canned responses per dataset id, every request recorded.

    Unknown datasets answer 200 with an empty array.
    """

    def __init__(self):
        self.responses: Dict[str, Tuple[int, Any]] = {}
        self.calls: List[httpx.Request] = []

    def respond(self, dataset: str, body: Any, status: int = 200) -> None:
        self.responses[dataset] = (status, body)

    def calls_for(self, dataset: str) -> List[httpx.Request]:
        return [r for r in self.calls if r.url.path.endswith(f"/{dataset}.json")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        dataset = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
        status, body = self.responses.get(dataset, (200, []))
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def soda() -> SodaStub:
    return SodaStub()


@pytest.fixture
async def http_client(soda):
    """AsyncClient wired to the SodaStub."""
    client = soda.client()
    yield client
    await client.aclose()


@pytest.fixture
def texas_region() -> ResolvedRegion:
    """State-level region for Texas."""
    return ResolvedRegion(state="Texas", state_abbrev="TX", hhs_region=6, geo_level=GeoLevel.STATE)


@pytest.fixture
def travis_region() -> ResolvedRegion:
    """County-level region resolved from ZIP 78701."""
    return ResolvedRegion(
        state="Texas",
        state_abbrev="TX",
        hhs_region=6,
        geo_level=GeoLevel.COUNTY,
        county="Travis County",
        zip_code="78701",
        fips_code="48453",
    )


@pytest.fixture
def make_point() -> Callable[..., SurveillanceDataPoint]:
    """Factory for data points with sensible defaults."""

    def _make(
        condition: str = "Influenza",
        value: float = 10.0,
        source: str = "cdc_respiratory",
        period: str = "2026-01-10",
        trend: Optional[TrendDirection] = None,
        magnitude: Optional[int] = None,
        geo_level: GeoLevel = GeoLevel.STATE,
        syndromes: Optional[List[Syndrome]] = None,
        unit: str = "percent_positive",
    ) -> SurveillanceDataPoint:
        return SurveillanceDataPoint(
            source=source,
            condition=condition,
            syndromes=syndromes or [Syndrome.RESPIRATORY_UPPER, Syndrome.RESPIRATORY_LOWER],
            region="TX",
            geo_level=geo_level,
            period_start=period,
            period_end=period,
            value=value,
            unit=unit,
            trend=trend,
            trend_magnitude=magnitude,
        )

    return _make
