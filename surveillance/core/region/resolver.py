"""
Region Resolver

Resolves a caller location (5-digit ZIP code or 2-letter state code) to a
ResolvedRegion. HHS regions come from a fixed table; ZIP codes are looked up
in a ZipDirectory backed by a bundled JSON dataset.

Usage:
    resolver = RegionResolver()
    region = resolver.resolve(zip_code="78701")   # county level
    region = resolver.resolve(state="tx")         # state level
    resolver.resolve(state="XX")                  # None
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Union

from surveillance.core.types import GeoLevel, ResolvedRegion
from surveillance.utils import get_logger

logger = get_logger(__name__)

BUNDLED_ZIP_DIRECTORY = Path(__file__).resolve().parent / "zip_directory.json"

# State abbreviation → HHS Region (50 states + DC + territories)
STATE_TO_HHS_REGION: Dict[str, int] = {
    "CT": 1, "ME": 1, "MA": 1, "NH": 1, "RI": 1, "VT": 1,
    "NJ": 2, "NY": 2, "PR": 2, "VI": 2,
    "DE": 3, "DC": 3, "MD": 3, "PA": 3, "VA": 3, "WV": 3,
    "AL": 4, "FL": 4, "GA": 4, "KY": 4, "MS": 4, "NC": 4, "SC": 4, "TN": 4,
    "IL": 5, "IN": 5, "MI": 5, "MN": 5, "OH": 5, "WI": 5,
    "AR": 6, "LA": 6, "NM": 6, "OK": 6, "TX": 6,
    "IA": 7, "KS": 7, "MO": 7, "NE": 7,
    "CO": 8, "MT": 8, "ND": 8, "SD": 8, "UT": 8, "WY": 8,
    "AZ": 9, "CA": 9, "HI": 9, "NV": 9, "AS": 9, "GU": 9, "MP": 9,
    "AK": 10, "ID": 10, "OR": 10, "WA": 10,
}

STATE_NAMES: Dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware", "DC": "District of Columbia",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois",
    "IN": "Indiana", "IA": "Iowa", "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana",
    "ME": "Maine", "MD": "Maryland", "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota",
    "MS": "Mississippi", "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma", "OR": "Oregon",
    "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina", "SD": "South Dakota",
    "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont", "VA": "Virginia",
    "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
    "PR": "Puerto Rico", "VI": "Virgin Islands", "AS": "American Samoa", "GU": "Guam",
    "MP": "Northern Mariana Islands",
}

# Full state name (lower case) → abbreviation, for directories that store names
_NAME_TO_ABBREV = {name.lower(): abbrev for abbrev, name in STATE_NAMES.items()}


def normalize_state(value: Optional[str]) -> Optional[str]:
    """Return the upper-case abbreviation for an abbreviation or full state name."""
    if not value:
        return None
    cleaned = value.strip()
    upper = cleaned.upper()
    if upper in STATE_TO_HHS_REGION:
        return upper
    return _NAME_TO_ABBREV.get(cleaned.lower())


class ZipDirectory:
    """
    ZIP code → {state, county, fips} lookup.

    The bundled dataset covers a sample of metropolitan ZIP codes; point
    ``path`` at a complete export for production coverage.
    """

    def __init__(
        self,
        entries: Optional[Dict[str, Dict[str, str]]] = None,
        path: Optional[Union[str, Path]] = None,
    ):
        if entries is not None:
            self._entries = {str(k): dict(v) for k, v in entries.items()}
        else:
            self._entries = self._load(Path(path) if path else BUNDLED_ZIP_DIRECTORY)

    @staticmethod
    def _load(path: Path) -> Dict[str, Dict[str, str]]:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
        entries = raw.get("zips", raw) if isinstance(raw, dict) else {}
        logger.debug(f"ZipDirectory loaded {len(entries)} entries from {path}")
        return {str(k): dict(v) for k, v in entries.items() if isinstance(v, dict)}

    def lookup(self, zip_code: str) -> Optional[Dict[str, str]]:
        return self._entries.get(zip_code.strip())

    def __len__(self) -> int:
        return len(self._entries)


class RegionResolver:
    """Pure lookup from a caller location to a ResolvedRegion."""

    def __init__(self, zip_directory: Optional[ZipDirectory] = None):
        self.zip_directory = zip_directory if zip_directory is not None else ZipDirectory()

    def resolve_from_zip(self, zip_code: str) -> Optional[ResolvedRegion]:
        """Resolve a ZIP code to a county-level region, or None."""
        try:
            entry = self.zip_directory.lookup(zip_code)
        except Exception as e:
            logger.warning(f"ZIP directory lookup failed: {e}")
            return None

        if not entry:
            return None

        state_abbrev = normalize_state(entry.get("state"))
        if state_abbrev is None:
            return None

        return ResolvedRegion(
            state=STATE_NAMES.get(state_abbrev, state_abbrev),
            state_abbrev=state_abbrev,
            hhs_region=STATE_TO_HHS_REGION[state_abbrev],
            geo_level=GeoLevel.COUNTY,
            county=entry.get("county") or None,
            zip_code=zip_code.strip(),
            fips_code=entry.get("fips") or None,
        )

    def resolve_from_state(self, state: str) -> Optional[ResolvedRegion]:
        """Resolve a state abbreviation (any case) to a state-level region, or None."""
        state_abbrev = normalize_state(state)
        if state_abbrev is None:
            return None

        return ResolvedRegion(
            state=STATE_NAMES.get(state_abbrev, state_abbrev),
            state_abbrev=state_abbrev,
            hhs_region=STATE_TO_HHS_REGION[state_abbrev],
            geo_level=GeoLevel.STATE,
        )

    def resolve(
        self,
        zip_code: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Optional[ResolvedRegion]:
        """
        Resolve from either ZIP code or state, preferring the ZIP.

        Returns None when neither resolves; callers treat that as a client
        error ("cannot analyze this location").
        """
        if zip_code:
            from_zip = self.resolve_from_zip(zip_code)
            if from_zip is not None:
                return from_zip

        if state:
            return self.resolve_from_state(state)

        return None
