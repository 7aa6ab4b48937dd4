"""
Surveillance Service — Configuration
====================================
Centralised settings for CDC endpoints, timeouts, caching and the development
collaborators. Loads overrides from the project-level .env file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

# ── Paths ───────────────────────────────────────────────────────────────
PACKAGE_DIR = Path(__file__).resolve().parent                  # surveillance/
PROJECT_ROOT = PACKAGE_DIR.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

# ── Source defaults ─────────────────────────────────────────────────────
CDC_BASE_URL = "https://data.cdc.gov/resource"
DAY_SECONDS = 24 * 60 * 60


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def parse_dev_users(raw: str) -> Dict[str, Tuple[str, str]]:
    """
    Parse ``token:uid:plan`` triples separated by commas.

    Returns:
        Mapping of token -> (uid, plan). Malformed entries are ignored.
    """
    users: Dict[str, Tuple[str, str]] = {}
    for entry in raw.split(","):
        parts = [p.strip() for p in entry.split(":")]
        if len(parts) != 3 or not all(parts):
            continue
        token, uid, plan = parts
        users[token] = (uid, plan.lower())
    return users


@dataclass
class SurveillanceSettings:
    """Runtime configuration for the surveillance service."""
    cdc_base_url: str = field(default_factory=lambda: os.getenv("CDC_BASE_URL", CDC_BASE_URL))

    # Timeouts: per adapter must stay below the whole fan-out bound
    adapter_timeout_seconds: float = field(
        default_factory=lambda: _env_float("SURVEILLANCE_ADAPTER_TIMEOUT", 15.0)
    )
    fetch_all_timeout_seconds: float = field(
        default_factory=lambda: _env_float("SURVEILLANCE_FETCH_TIMEOUT", 25.0)
    )

    # Adapter cache: "memory", "disk" or "none"
    cache_backend: str = field(default_factory=lambda: os.getenv("SURVEILLANCE_CACHE_BACKEND", "memory"))
    cache_dir: str = field(
        default_factory=lambda: os.getenv("SURVEILLANCE_CACHE_DIR", str(PROJECT_ROOT / ".surveillance_cache"))
    )

    # Optional ZIP directory override (JSON: {"78701": {"state": "TX", "county": "...", "fips": "..."}})
    zip_directory_path: Optional[str] = field(default_factory=lambda: os.getenv("SURVEILLANCE_ZIP_DIRECTORY") or None)

    # Analysis persistence; unset keeps analyses in memory
    store_dir: Optional[str] = field(default_factory=lambda: os.getenv("SURVEILLANCE_STORE_DIR") or None)

    # Development identity/plan collaborators
    dev_users: Dict[str, Tuple[str, str]] = field(
        default_factory=lambda: parse_dev_users(os.getenv("SURVEILLANCE_DEV_USERS", ""))
    )

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE") or None)

    def __post_init__(self):
        self.cache_backend = self.cache_backend.lower()
        if self.adapter_timeout_seconds > self.fetch_all_timeout_seconds:
            self.adapter_timeout_seconds = self.fetch_all_timeout_seconds
