"""
Region Resolution - ZIP/state → ResolvedRegion with HHS region lookup.
"""
from .resolver import (
    RegionResolver,
    ZipDirectory,
    STATE_TO_HHS_REGION,
    STATE_NAMES,
    normalize_state,
)

__all__ = [
    "RegionResolver",
    "ZipDirectory",
    "STATE_TO_HHS_REGION",
    "STATE_NAMES",
    "normalize_state",
]
