"""
Data Source Adapter - Base Class

Every surveillance source implements this interface:
- coverage declared in a DataSourceConfig
- a cache-first async fetch over an injected httpx.AsyncClient
- provider-specific parsing into SurveillanceDataPoint
- trend computation shared by all sources (compute_trends)

Adapters never retry. Failures are logged and re-raised as AdapterError
subclasses; the registry folds them into the analysis result.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx

from surveillance.config import CDC_BASE_URL
from surveillance.core.cache import NullCache, SurveillanceCache
from surveillance.core.types import (
    GeoLevel,
    ResolvedRegion,
    SurveillanceDataPoint,
    Syndrome,
    TrendDirection,
)
from surveillance.utils import (
    AdapterError,
    AdapterHTTPError,
    AdapterNetworkError,
    AdapterResponseError,
    get_logger,
)

logger = get_logger(__name__)


@dataclass
class DataSourceConfig:
    """Static description of one surveillance source."""
    name: str                                   # e.g. "cdc_respiratory"
    label: str                                  # used in error messages, e.g. "CDC Respiratory"
    short_label: str                            # listed in dataSourcesQueried
    long_label: str                             # report and context headings
    dataset: str                                # SODA dataset id
    cache_ttl_seconds: float
    relevant_syndromes: List[Syndrome]
    supported_geo_levels: List[GeoLevel]
    rising_threshold_pct: float = 10.0
    base_url: str = CDC_BASE_URL
    timeout_seconds: float = 15.0

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.dataset}.json"


def compute_trends(
    points: List[SurveillanceDataPoint],
    rising_threshold_pct: float,
) -> List[SurveillanceDataPoint]:
    """
    Set trend and magnitude on the newest point of every condition.

    Points are grouped by condition and ordered by period descending; the
    newest is compared with the one before it. ``ratio > 1 + t`` is rising,
    ``ratio < 1 / (1 + t)`` is falling, anything between is stable. With a
    single period or a zero prior value the trend stays unset.
    """
    threshold = rising_threshold_pct / 100.0
    by_condition: Dict[str, List[SurveillanceDataPoint]] = {}
    for dp in points:
        by_condition.setdefault(dp.condition, []).append(dp)

    for series in by_condition.values():
        if len(series) < 2:
            continue
        series.sort(key=lambda dp: dp.period_start, reverse=True)
        newest, previous = series[0], series[1]
        if previous.value == 0:
            continue

        ratio = newest.value / previous.value
        if ratio > 1 + threshold:
            newest.trend = TrendDirection.RISING
        elif ratio < 1 / (1 + threshold):
            newest.trend = TrendDirection.FALLING
        else:
            newest.trend = TrendDirection.STABLE
        newest.trend_magnitude = round(abs(ratio - 1) * 100)

    return points


def parse_number(raw: Any) -> Optional[float]:
    """SODA returns numbers as strings; None for missing, non-numeric or non-finite values."""
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class DataSourceAdapter(ABC):
    """
    Abstract base class for surveillance data sources.

    Subclasses provide ``config`` and implement ``build_params`` and ``parse``.
    """

    config: DataSourceConfig

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: Optional[SurveillanceCache] = None,
        config: Optional[DataSourceConfig] = None,
    ):
        self.client = client
        self.cache = cache if cache is not None else NullCache()
        if config is not None:
            self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    def is_relevant(self, syndromes: Iterable[Syndrome]) -> bool:
        """True when any requested syndrome is covered by this source."""
        return any(s in self.config.relevant_syndromes for s in syndromes)

    def geo_level_for(self, region: ResolvedRegion) -> GeoLevel:
        """Level the data is reported at; unsupported levels fall back to the first supported one."""
        if region.geo_level in self.config.supported_geo_levels:
            return region.geo_level
        return self.config.supported_geo_levels[0]

    def cache_key(self, region: ResolvedRegion, syndromes: Sequence[Syndrome]) -> str:
        covered = sorted({s.value for s in syndromes if s in self.config.relevant_syndromes})
        return f"{self.config.name}:{region.state_abbrev}:{','.join(covered)}"

    async def fetch(
        self,
        region: ResolvedRegion,
        syndromes: Sequence[Syndrome],
    ) -> List[SurveillanceDataPoint]:
        """
        Fetch normalised, trend-annotated data points for a region.

        Irrelevant requests return [] without touching the cache or network.

        Raises:
            AdapterHTTPError: non-2xx upstream status (including 429)
            AdapterNetworkError: connection failure or timeout
            AdapterResponseError: body is not a JSON array
        """
        if not self.is_relevant(syndromes):
            return []

        key = self.cache_key(region, syndromes)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"{self.name}: cache hit for {key}")
            return cached

        try:
            rows = await self._get_json(self.build_params(region))
            data_points = compute_trends(self.parse(rows, region), self.config.rising_threshold_pct)
        except AdapterError as e:
            logger.warning(f"{self.name} fetch failed: {e.message}")
            raise

        await self.cache.set(key, data_points, self.config.cache_ttl_seconds)
        logger.info(f"{self.name}: {len(data_points)} data points for {region.state_abbrev}")
        return data_points

    async def _get_json(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            response = await self.client.get(
                self.config.url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.config.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise AdapterNetworkError(self.name, self.config.label, f"timeout ({type(e).__name__})") from e
        except httpx.HTTPError as e:
            raise AdapterNetworkError(self.name, self.config.label, str(e) or type(e).__name__) from e

        if not response.is_success:
            error = AdapterHTTPError(self.name, self.config.label, response.status_code)
            if error.is_rate_limited:
                logger.warning(f"{self.name}: rate limited by upstream")
            raise error

        try:
            payload = response.json()
        except ValueError as e:
            raise AdapterResponseError(self.name, self.config.label, "body is not valid JSON") from e

        if not isinstance(payload, list):
            raise AdapterResponseError(self.name, self.config.label, "expected a JSON array")
        return [row for row in payload if isinstance(row, dict)]

    @abstractmethod
    def build_params(self, region: ResolvedRegion) -> Dict[str, str]:
        """SODA query parameters for one region."""
        pass

    @abstractmethod
    def parse(self, rows: List[Dict[str, Any]], region: ResolvedRegion) -> List[SurveillanceDataPoint]:
        """Convert provider rows into data points (trends are computed afterwards)."""
        pass
