"""
External collaborators of the analysis service.

Identity verification, subscription plans and analysis persistence live in
other systems; the service depends only on these small async interfaces.
The shipped implementations are configured from SURVEILLANCE_DEV_USERS and
SURVEILLANCE_STORE_DIR for development and tests.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from diskcache import Cache

from surveillance.core.types import TrendAnalysisResult
from surveillance.utils import AuthenticationError, get_logger

logger = get_logger(__name__)

PLAN_EXPORT_FORMATS: Dict[str, List[str]] = {
    "free": [],
    "pro": ["pdf"],
    "enterprise": ["pdf", "csv"],
}


@dataclass
class UsageStats:
    plan: str
    export_formats: List[str] = field(default_factory=list)


@dataclass
class StoredAnalysis:
    owner_id: str
    analysis: TrendAnalysisResult


# ---- Interfaces ----

class IdentityVerifier:
    async def verify(self, token: str) -> str:
        """Return the caller's user id or raise AuthenticationError."""
        raise NotImplementedError


class PlanService:
    async def get_usage_stats(self, uid: str) -> UsageStats:
        raise NotImplementedError


class AnalysisStore:
    async def save(self, analysis: TrendAnalysisResult, owner_id: str) -> None:
        raise NotImplementedError

    async def get(self, analysis_id: str) -> Optional[StoredAnalysis]:
        raise NotImplementedError

    def close(self) -> None:
        return None


# ---- Implementations ----

class StaticTokenVerifier(IdentityVerifier):
    """Token → uid table, for development and tests."""

    def __init__(self, users: Dict[str, str]):
        self._users = dict(users)

    async def verify(self, token: str) -> str:
        uid = self._users.get(token)
        if uid is None:
            raise AuthenticationError()
        return uid


class StaticPlanService(PlanService):
    """uid → plan table; unknown users are on the free plan."""

    def __init__(self, plans: Dict[str, str]):
        self._plans = {uid: plan.lower() for uid, plan in plans.items()}

    async def get_usage_stats(self, uid: str) -> UsageStats:
        plan = self._plans.get(uid, "free")
        return UsageStats(plan=plan, export_formats=list(PLAN_EXPORT_FORMATS.get(plan, [])))


def collaborators_from_dev_users(
    dev_users: Dict[str, Tuple[str, str]],
) -> Tuple[StaticTokenVerifier, StaticPlanService]:
    """Build the static verifier and plan service from ``token -> (uid, plan)``."""
    tokens = {token: uid for token, (uid, _) in dev_users.items()}
    plans = {uid: plan for uid, plan in dev_users.values()}
    return StaticTokenVerifier(tokens), StaticPlanService(plans)


class InMemoryAnalysisStore(AnalysisStore):
    def __init__(self):
        self._items: Dict[str, Tuple[str, Dict[str, Any]]] = {}

    async def save(self, analysis: TrendAnalysisResult, owner_id: str) -> None:
        self._items[analysis.analysis_id] = (owner_id, analysis.to_dict())

    async def get(self, analysis_id: str) -> Optional[StoredAnalysis]:
        item = self._items.get(analysis_id)
        if item is None:
            return None
        owner_id, document = item
        return StoredAnalysis(owner_id=owner_id, analysis=TrendAnalysisResult.from_dict(document))

    def __len__(self) -> int:
        return len(self._items)


class DiskAnalysisStore(AnalysisStore):
    """Analyses persisted as documents in a diskcache directory."""

    def __init__(self, directory: str):
        self.directory = directory
        self._cache = Cache(directory)
        logger.info(f"DiskAnalysisStore initialized at {directory}")

    async def save(self, analysis: TrendAnalysisResult, owner_id: str) -> None:
        document = {"ownerId": owner_id, "analysis": analysis.to_dict()}
        await asyncio.to_thread(self._cache.set, analysis.analysis_id, document)

    async def get(self, analysis_id: str) -> Optional[StoredAnalysis]:
        document = await asyncio.to_thread(self._cache.get, analysis_id)
        if document is None:
            return None
        return StoredAnalysis(
            owner_id=document["ownerId"],
            analysis=TrendAnalysisResult.from_dict(document["analysis"]),
        )

    def close(self) -> None:
        self._cache.close()
