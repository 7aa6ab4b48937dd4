"""
CDC NWSS Wastewater Adapter

Pathogen concentrations from the National Wastewater Surveillance System
(SODA dataset g653-rqe2). Rows are per sampling site; they are filtered to
the requested state and collapsed to one median value per pathogen and date.
"""
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from surveillance.config import DAY_SECONDS
from surveillance.core.region import normalize_state
from surveillance.core.types import GeoLevel, ResolvedRegion, SurveillanceDataPoint, Syndrome

from .base import DataSourceAdapter, DataSourceConfig, parse_number

_RESPIRATORY = [Syndrome.RESPIRATORY_UPPER, Syndrome.RESPIRATORY_LOWER]

PATHOGEN_SYNDROMES: Dict[str, List[Syndrome]] = {
    "SARS-CoV-2": _RESPIRATORY,
    "Influenza A": _RESPIRATORY,
    "RSV": _RESPIRATORY,
    "Norovirus": [Syndrome.GASTROINTESTINAL],
    "Mpox": [Syndrome.FEBRILE_RASH],
}

# Upstream spellings → canonical pathogen name
PATHOGEN_ALIASES = {
    "sars-cov-2": "SARS-CoV-2",
    "sars_cov_2": "SARS-CoV-2",
    "covid": "SARS-CoV-2",
    "covid-19": "SARS-CoV-2",
    "influenza a": "Influenza A",
    "influenza_a": "Influenza A",
    "flua": "Influenza A",
    "flu a": "Influenza A",
    "rsv": "RSV",
    "norovirus": "Norovirus",
    "noro": "Norovirus",
    "mpox": "Mpox",
    "monkeypox": "Mpox",
}

DEFAULT_PATHOGEN = "SARS-CoV-2"
DEFAULT_SYNDROMES = [Syndrome.RESPIRATORY_LOWER]


def canonical_pathogen(raw: Optional[str]) -> str:
    if not raw or not str(raw).strip():
        return DEFAULT_PATHOGEN
    cleaned = str(raw).strip()
    return PATHOGEN_ALIASES.get(cleaned.lower(), cleaned)


def site_state(row: Dict[str, Any]) -> Optional[str]:
    """
    State of a sampling site, from the ``state`` field or the site id.

    Site ids embed a lower-case state token, e.g. ``NWSS_tx_256_...`` or
    ``CDC_VERILY_tx_...``.
    """
    explicit = normalize_state(row.get("state"))
    if explicit:
        return explicit
    key_plot_id = str(row.get("key_plot_id") or "")
    for token in key_plot_id.split("_")[:3]:
        if len(token) == 2 and token.isalpha() and token.islower():
            return normalize_state(token)
    return None


class CdcWastewaterAdapter(DataSourceAdapter):
    """State-level wastewater pathogen concentrations."""

    config = DataSourceConfig(
        name="cdc_wastewater",
        label="CDC Wastewater",
        short_label="NWSS Wastewater",
        long_label="NWSS Wastewater Surveillance",
        dataset="g653-rqe2",
        cache_ttl_seconds=3 * DAY_SECONDS,
        relevant_syndromes=[
            Syndrome.RESPIRATORY_UPPER,
            Syndrome.RESPIRATORY_LOWER,
            Syndrome.GASTROINTESTINAL,
        ],
        supported_geo_levels=[GeoLevel.STATE, GeoLevel.NATIONAL],
        rising_threshold_pct=15.0,
    )

    def build_params(self, region: ResolvedRegion) -> Dict[str, str]:
        return {
            "$limit": "200",
            "$order": "date DESC",
            "$where": f"lower(key_plot_id) like '%_{region.state_abbrev.lower()}_%'",
        }

    def parse(self, rows: List[Dict[str, Any]], region: ResolvedRegion) -> List[SurveillanceDataPoint]:
        samples: Dict[Tuple[str, str], List[float]] = {}
        for row in rows:
            state = site_state(row)
            if state is not None and state != region.state_abbrev:
                continue

            date = str(row.get("date") or row.get("week_end") or "")[:10]
            if not date:
                continue

            value = None
            for field_name in ("pcr_conc_lin", "concentration", "percentile"):
                value = parse_number(row.get(field_name))
                if value is not None:
                    break
            if value is None:
                continue

            pathogen = canonical_pathogen(row.get("pathogen"))
            samples.setdefault((pathogen, date), []).append(value)

        geo_level = self.geo_level_for(region)
        data_points = []
        for (pathogen, date), values in sorted(samples.items(), key=lambda item: item[0][1], reverse=True):
            data_points.append(SurveillanceDataPoint(
                source=self.config.name,
                condition=pathogen,
                syndromes=list(PATHOGEN_SYNDROMES.get(pathogen, DEFAULT_SYNDROMES)),
                region=region.state_abbrev,
                geo_level=geo_level,
                period_start=date,
                period_end=date,
                value=float(np.median(values)),
                unit="wastewater_concentration",
                metadata={"source_dataset": self.config.dataset, "site_count": len(values)},
            ))
        return data_points
