"""
CDC Respiratory Virus Adapter

Weekly percent-positive test results for influenza, COVID-19 and RSV per
jurisdiction (SODA dataset mpgq-jmmr).
"""
from typing import Any, Dict, List

from surveillance.config import DAY_SECONDS
from surveillance.core.types import GeoLevel, ResolvedRegion, SurveillanceDataPoint, Syndrome

from .base import DataSourceAdapter, DataSourceConfig, parse_number

RESPIRATORY_SYNDROMES = [Syndrome.RESPIRATORY_UPPER, Syndrome.RESPIRATORY_LOWER]

# (condition, SODA field)
RESPIRATORY_FIELDS = [
    ("Influenza", "percent_positive_influenza"),
    ("COVID-19", "percent_positive_covid"),
    ("RSV", "percent_positive_rsv"),
]

MAX_WEEKS = 20


class CdcRespiratoryAdapter(DataSourceAdapter):
    """State-level respiratory virus positivity."""

    config = DataSourceConfig(
        name="cdc_respiratory",
        label="CDC Respiratory",
        short_label="CDC Respiratory",
        long_label="CDC Respiratory Hospital Data",
        dataset="mpgq-jmmr",
        cache_ttl_seconds=7 * DAY_SECONDS,
        relevant_syndromes=list(RESPIRATORY_SYNDROMES),
        supported_geo_levels=[GeoLevel.STATE, GeoLevel.HHS_REGION, GeoLevel.NATIONAL],
        rising_threshold_pct=10.0,
    )

    def build_params(self, region: ResolvedRegion) -> Dict[str, str]:
        return {
            "$limit": "50",
            "$order": "week_ending_date DESC",
            "jurisdiction": region.state_abbrev,
        }

    def parse(self, rows: List[Dict[str, Any]], region: ResolvedRegion) -> List[SurveillanceDataPoint]:
        geo_level = self.geo_level_for(region)

        data_points = []
        for row in rows[:MAX_WEEKS]:
            week = str(row.get("week_ending_date") or "")[:10]
            if not week:
                continue
            for condition, field_name in RESPIRATORY_FIELDS:
                value = parse_number(row.get(field_name))
                if value is None:
                    continue
                data_points.append(SurveillanceDataPoint(
                    source=self.config.name,
                    condition=condition,
                    syndromes=list(RESPIRATORY_SYNDROMES),
                    region=region.state_abbrev,
                    geo_level=geo_level,
                    period_start=week,
                    period_end=week,
                    value=value,
                    unit="percent_positive",
                    metadata={"source_dataset": self.config.dataset},
                ))
        return data_points
