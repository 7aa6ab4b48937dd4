"""
CDC NNDSS Adapter

Weekly notifiable-disease case counts (NNDSS Table II, SODA dataset x9gk-5huc).

Fields used:
    label      disease name
    m2         current week case count
    m2_flag    "-" marks suppressed / no data
    year, week MMWR year and week
    location1 / states   reporting area ("US RESIDENTS" or a state name)
"""
from typing import Any, Dict, List, Optional

from surveillance.config import DAY_SECONDS
from surveillance.core.region import STATE_NAMES, normalize_state
from surveillance.core.types import GeoLevel, ResolvedRegion, SurveillanceDataPoint, Syndrome

from .base import DataSourceAdapter, DataSourceConfig, parse_number

CONDITION_SYNDROMES: Dict[str, List[Syndrome]] = {
    "west nile virus disease, neuroinvasive": [Syndrome.NEUROLOGICAL, Syndrome.VECTOR_BORNE],
    "west nile virus disease, nonneuroinvasive": [Syndrome.VECTOR_BORNE],
    "west nile virus": [Syndrome.NEUROLOGICAL, Syndrome.VECTOR_BORNE],
    "lyme disease": [Syndrome.VECTOR_BORNE],
    "dengue": [Syndrome.VECTOR_BORNE, Syndrome.HEMORRHAGIC],
    "malaria": [Syndrome.VECTOR_BORNE],
    "measles": [Syndrome.FEBRILE_RASH],
    "meningococcal disease": [Syndrome.NEUROLOGICAL],
    "pertussis": [Syndrome.RESPIRATORY_UPPER],
    "anthrax": [Syndrome.BIOTERRORISM_SENTINEL],
    "botulism": [Syndrome.BIOTERRORISM_SENTINEL],
    "tularemia": [Syndrome.BIOTERRORISM_SENTINEL],
    "plague": [Syndrome.BIOTERRORISM_SENTINEL],
}

DEFAULT_SYNDROMES = [Syndrome.NEUROLOGICAL]

MAX_ROWS = 50

# Reporting areas that are not a single state
_AGGREGATE_AREAS = {"us residents", "us territories", "non-us residents", "total"}


def mmwr_period(year: Any, week: Any) -> Optional[str]:
    """Render an MMWR year/week as ``YYYY-Www``."""
    try:
        return f"{int(year)}-W{int(week):02d}"
    except (TypeError, ValueError):
        return None


def reporting_state(row: Dict[str, Any]) -> Optional[str]:
    """Abbreviation of the state a row reports for, or None for aggregate rows."""
    for field_name in ("location1", "states"):
        raw = row.get(field_name)
        if not raw or str(raw).strip().lower() in _AGGREGATE_AREAS:
            continue
        abbrev = normalize_state(str(raw))
        if abbrev:
            return abbrev
    return None


class CdcNndssAdapter(DataSourceAdapter):
    """National (or state, when reported) notifiable disease counts."""

    config = DataSourceConfig(
        name="cdc_nndss",
        label="CDC NNDSS",
        short_label="CDC NNDSS",
        long_label="CDC NNDSS Notifiable Diseases",
        dataset="x9gk-5huc",
        cache_ttl_seconds=7 * DAY_SECONDS,
        relevant_syndromes=[
            Syndrome.NEUROLOGICAL,
            Syndrome.VECTOR_BORNE,
            Syndrome.BIOTERRORISM_SENTINEL,
            Syndrome.FEBRILE_RASH,
            Syndrome.HEMORRHAGIC,
        ],
        supported_geo_levels=[GeoLevel.STATE, GeoLevel.NATIONAL],
        rising_threshold_pct=10.0,
    )

    def build_params(self, region: ResolvedRegion) -> Dict[str, str]:
        return {
            "$limit": "100",
            "$order": "year DESC, week DESC",
        }

    def parse(self, rows: List[Dict[str, Any]], region: ResolvedRegion) -> List[SurveillanceDataPoint]:
        data_points = []
        for row in rows[:MAX_ROWS]:
            condition = str(row.get("label") or "").strip()
            if not condition:
                continue

            raw_count = row.get("m2")
            if row.get("m2_flag") == "-" and raw_count is None:
                continue
            value = parse_number(raw_count) if raw_count is not None else 0.0
            if value is None:
                continue

            period = mmwr_period(row.get("year"), row.get("week"))
            if period is None:
                continue

            state = reporting_state(row)
            if state is not None and state != region.state_abbrev:
                continue
            geo_level = GeoLevel.STATE if state is not None else GeoLevel.NATIONAL

            data_points.append(SurveillanceDataPoint(
                source=self.config.name,
                condition=condition,
                syndromes=list(CONDITION_SYNDROMES.get(condition.lower(), DEFAULT_SYNDROMES)),
                region=region.state_abbrev if state else "US",
                geo_level=geo_level,
                period_start=period,
                period_end=period,
                value=value,
                unit="case_count",
                metadata={
                    "source_dataset": self.config.dataset,
                    "reporting_area": STATE_NAMES.get(state, "US RESIDENTS") if state else "US RESIDENTS",
                },
            ))

        # A condition reported for the target state uses only its state rows
        state_conditions = {dp.condition for dp in data_points if dp.geo_level == GeoLevel.STATE}
        return [
            dp for dp in data_points
            if dp.geo_level == GeoLevel.STATE or dp.condition not in state_conditions
        ]
