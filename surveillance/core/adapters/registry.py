"""
Adapter Registry

Fans a request out to every relevant data source concurrently and folds the
outcomes into one AdapterFetchResult. A failing or slow source contributes a
DataSourceError; the others still contribute data. fetch_all never raises.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import httpx

from surveillance.core.cache import SurveillanceCache
from surveillance.core.types import DataSourceError, ResolvedRegion, SurveillanceDataPoint, Syndrome
from surveillance.utils import get_logger

from .base import DataSourceAdapter
from .nndss import CdcNndssAdapter
from .respiratory import CdcRespiratoryAdapter
from .wastewater import CdcWastewaterAdapter

logger = get_logger(__name__)


@dataclass
class AdapterFetchResult:
    data_points: List[SurveillanceDataPoint] = field(default_factory=list)
    errors: List[DataSourceError] = field(default_factory=list)
    queried_sources: List[str] = field(default_factory=list)   # names of relevant adapters


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_message(exc: BaseException) -> str:
    return getattr(exc, "message", None) or str(exc) or type(exc).__name__


class AdapterRegistry:
    """
    Holds the registered adapters and runs them in parallel.

    Each adapter runs as its own task bounded by ``adapter_timeout``; the
    whole fan-out is bounded by ``overall_timeout`` after which unfinished
    tasks are cancelled and reported as timeouts.
    """

    def __init__(
        self,
        adapters: Sequence[DataSourceAdapter],
        adapter_timeout: float = 15.0,
        overall_timeout: float = 25.0,
    ):
        self.adapters: List[DataSourceAdapter] = list(adapters)
        self.adapter_timeout = adapter_timeout
        self.overall_timeout = overall_timeout

    def get(self, name: str) -> Optional[DataSourceAdapter]:
        for adapter in self.adapters:
            if adapter.name == name:
                return adapter
        return None

    def relevant(self, syndromes: Sequence[Syndrome]) -> List[DataSourceAdapter]:
        return [a for a in self.adapters if a.is_relevant(syndromes)]

    async def _run(
        self,
        adapter: DataSourceAdapter,
        region: ResolvedRegion,
        syndromes: Sequence[Syndrome],
    ) -> List[SurveillanceDataPoint]:
        timeout = min(self.adapter_timeout, adapter.config.timeout_seconds)
        return await asyncio.wait_for(adapter.fetch(region, syndromes), timeout=timeout)

    async def fetch_all(
        self,
        region: ResolvedRegion,
        syndromes: Sequence[Syndrome],
    ) -> AdapterFetchResult:
        """Query every relevant adapter for a region, isolating failures."""
        relevant = self.relevant(syndromes)
        result = AdapterFetchResult(queried_sources=[a.name for a in relevant])
        if not relevant:
            return result

        tasks: Dict[asyncio.Task, DataSourceAdapter] = {
            asyncio.create_task(self._run(adapter, region, syndromes), name=f"fetch:{adapter.name}"): adapter
            for adapter in relevant
        }
        _, pending = await asyncio.wait(tasks.keys(), timeout=self.overall_timeout)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        # Preserve registration order in the merged output
        for task, adapter in tasks.items():
            if task in pending:
                logger.warning(f"{adapter.name}: cancelled after {self.overall_timeout}s overall timeout")
                result.errors.append(DataSourceError(
                    source=adapter.name,
                    error=f"{adapter.config.label} timed out",
                    timestamp=_now_iso(),
                ))
                continue

            exc = task.exception()
            if exc is None:
                result.data_points.extend(task.result())
            elif isinstance(exc, asyncio.TimeoutError):
                logger.warning(f"{adapter.name}: timed out after {self.adapter_timeout}s")
                result.errors.append(DataSourceError(
                    source=adapter.name,
                    error=f"{adapter.config.label} timed out",
                    timestamp=_now_iso(),
                ))
            else:
                logger.warning(f"{adapter.name}: {_error_message(exc)}")
                result.errors.append(DataSourceError(
                    source=adapter.name,
                    error=_error_message(exc),
                    timestamp=_now_iso(),
                ))

        logger.info(
            f"fetch_all: {len(result.data_points)} data points, "
            f"{len(result.errors)} errors from {len(relevant)} sources"
        )
        return result


def default_adapters(
    client: httpx.AsyncClient,
    cache: Optional[SurveillanceCache] = None,
    base_url: Optional[str] = None,
) -> List[DataSourceAdapter]:
    """The CDC respiratory, wastewater and NNDSS adapters sharing one client and cache."""
    adapters: List[DataSourceAdapter] = [
        CdcRespiratoryAdapter(client, cache),
        CdcWastewaterAdapter(client, cache),
        CdcNndssAdapter(client, cache),
    ]
    if base_url:
        for adapter in adapters:
            adapter.config = replace(adapter.config, base_url=base_url)
    return adapters
