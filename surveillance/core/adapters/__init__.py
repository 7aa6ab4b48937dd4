"""
Surveillance Data Source Adapters - CDC respiratory, wastewater and NNDSS.
"""
from .base import DataSourceAdapter, DataSourceConfig, compute_trends, parse_number
from .respiratory import CdcRespiratoryAdapter
from .wastewater import CdcWastewaterAdapter
from .nndss import CdcNndssAdapter
from .registry import AdapterRegistry, AdapterFetchResult, default_adapters

__all__ = [
    "DataSourceAdapter",
    "DataSourceConfig",
    "compute_trends",
    "parse_number",
    "CdcRespiratoryAdapter",
    "CdcWastewaterAdapter",
    "CdcNndssAdapter",
    "AdapterRegistry",
    "AdapterFetchResult",
    "default_adapters",
]
