"""
Trend Analysis Service

Orchestrates one surveillance analysis end to end:

    verify token → check plan → resolve region → map syndromes →
    fetch all sources → correlate → detect alerts → persist

and renders stored analyses as PDF reports for their owners.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from surveillance.core.adapters import AdapterFetchResult, AdapterRegistry
from surveillance.core.correlation import CorrelationContext, compute_correlations, detect_alerts
from surveillance.core.region import RegionResolver
from surveillance.core.reports import TrendReportGenerator
from surveillance.core.syndromes import map_to_syndromes
from surveillance.core.types import (
    AlertLevel,
    ClinicalCorrelation,
    DataSourceSummary,
    SourceStatus,
    SurveillanceDataPoint,
    Syndrome,
    Tier,
    TrendAlert,
    TrendAnalysisResult,
    TrendDirection,
)
from surveillance.utils import (
    AnalysisAccessError,
    AnalysisNotFoundError,
    EntitlementError,
    LocationResolutionError,
    get_logger,
)

from .collaborators import AnalysisStore, IdentityVerifier, PlanService

logger = get_logger(__name__)

MAX_HIGHLIGHTS = 5
SUMMARY_TOP_CONDITIONS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_highlight(dp: SurveillanceDataPoint) -> str:
    """One-line description of a data point, worded by its unit."""
    if dp.unit == "percent_positive":
        text = f"{dp.condition} {dp.value:.1f}% test positivity"
    elif dp.unit == "wastewater_concentration":
        text = f"{dp.condition} wastewater level {dp.value:,.0f}"
    elif dp.unit == "case_count":
        text = f"{dp.condition} {int(dp.value)} case(s) in {dp.period_end}"
    else:
        text = f"{dp.condition} {dp.value:g} {dp.unit}"

    if dp.trend == TrendDirection.RISING:
        text += f" (rising ~{dp.trend_magnitude}%)"
    elif dp.trend == TrendDirection.FALLING:
        text += f" (falling ~{dp.trend_magnitude}%)"
    elif dp.trend == TrendDirection.STABLE:
        text += " (stable)"
    return text


def build_data_source_summaries(
    registry: AdapterRegistry,
    fetch_result: AdapterFetchResult,
) -> List[DataSourceSummary]:
    """One summary per registered source, in registration order."""
    failed = {e.source for e in fetch_result.errors}
    summaries = []
    for adapter in registry.adapters:
        config = adapter.config
        if adapter.name not in fetch_result.queried_sources:
            status, highlights = SourceStatus.NOT_QUERIED, []
        elif adapter.name in failed:
            status, highlights = SourceStatus.ERROR, []
        else:
            points = [dp for dp in fetch_result.data_points if dp.source == adapter.name]
            newest: Dict[str, SurveillanceDataPoint] = {}
            for dp in points:
                current = newest.get(dp.condition)
                if current is None or dp.period_end > current.period_end:
                    newest[dp.condition] = dp
            highlights = [format_highlight(dp) for dp in newest.values()][:MAX_HIGHLIGHTS]
            status = SourceStatus.DATA if points else SourceStatus.NO_DATA
        summaries.append(DataSourceSummary(
            source=adapter.name,
            label=config.long_label,
            status=status,
            highlights=highlights,
        ))
    return summaries


def build_summary(
    region_label: str,
    findings: Sequence[ClinicalCorrelation],
    alerts: Sequence[TrendAlert],
) -> str:
    notable = [f for f in findings if f.data_points and f.tier.rank >= Tier.MODERATE.rank]
    actionable = [a for a in alerts if a.level in (AlertLevel.CRITICAL, AlertLevel.WARNING)]

    if notable:
        names = ", ".join(f.condition for f in notable[:SUMMARY_TOP_CONDITIONS])
        text = f"Regional surveillance in {region_label} shows notable activity for {names}."
    else:
        text = (
            f"No significant regional surveillance signals detected in {region_label} "
            f"for the given clinical presentation."
        )
    if actionable:
        text += f" {len(actionable)} alert(s) warrant review."
    return text


class TrendAnalysisService:
    """
    Surveillance analysis use cases.

    Collaborators are injected so the HTTP layer, tests and other callers
    can substitute identity, plan and storage backends.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        identity: IdentityVerifier,
        plans: PlanService,
        store: AnalysisStore,
        resolver: Optional[RegionResolver] = None,
        report_generator: Optional[TrendReportGenerator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry
        self.identity = identity
        self.plans = plans
        self.store = store
        self.resolver = resolver or RegionResolver()
        self.report_generator = report_generator or TrendReportGenerator()
        self.clock = clock

    def close(self) -> None:
        """Close the analysis store and every distinct adapter cache."""
        self.store.close()
        closed = []
        for adapter in self.registry.adapters:
            if not any(adapter.cache is cache for cache in closed):
                adapter.cache.close()
                closed.append(adapter.cache)

    def _short_labels(self, names: Sequence[str]) -> List[str]:
        labels = []
        for name in names:
            adapter = self.registry.get(name)
            labels.append(adapter.config.short_label if adapter else name)
        return labels

    async def analyze(
        self,
        user_id_token: str,
        chief_complaint: str,
        differential: Sequence[str],
        zip_code: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Tuple[TrendAnalysisResult, List[str]]:
        """
        Run a surveillance analysis and persist it for the caller.

        Returns:
            (analysis, warnings) where warnings are messages of failed sources

        Raises:
            AuthenticationError: token cannot be verified
            EntitlementError: caller is on the free plan
            LocationResolutionError: ZIP/state does not resolve
        """
        uid = await self.identity.verify(user_id_token)

        usage = await self.plans.get_usage_stats(uid)
        if usage.plan == "free":
            raise EntitlementError("Surveillance analysis requires a Pro or Enterprise plan")

        region = self.resolver.resolve(zip_code=zip_code, state=state)
        if region is None:
            raise LocationResolutionError()

        syndromes: List[Syndrome] = map_to_syndromes(chief_complaint, differential)
        fetch_result = await self.registry.fetch_all(region, syndromes)

        now = self.clock()
        context = CorrelationContext(chief_complaint=chief_complaint, reference_date=now.date())
        findings = compute_correlations(differential, fetch_result.data_points, context)
        alerts = detect_alerts(findings)

        failed = {e.source for e in fetch_result.errors}
        succeeded = [name for name in fetch_result.queried_sources if name not in failed]

        analysis = TrendAnalysisResult(
            analysis_id=str(uuid.uuid4()),
            region=region,
            region_label=region.label,
            ranked_findings=findings,
            alerts=alerts,
            summary=build_summary(region.label, findings, alerts),
            data_sources_queried=self._short_labels(succeeded),
            data_source_errors=list(fetch_result.errors),
            data_source_summaries=build_data_source_summaries(self.registry, fetch_result),
            analyzed_at=now.isoformat(),
        )
        await self.store.save(analysis, uid)

        logger.info(
            f"audit action=surveillance_analyze uid={uid} analysisId={analysis.analysis_id} "
            f"syndromes={len(syndromes)} findings={len(findings)} alerts={len(alerts)} "
            f"sourceErrors={len(fetch_result.errors)}"
        )
        return analysis, [e.error for e in fetch_result.errors]

    async def report(self, user_id_token: str, analysis_id: str) -> Tuple[str, bytes]:
        """
        Render a stored analysis as PDF for its owner.

        Returns:
            (filename, pdf bytes)

        Raises:
            AuthenticationError, EntitlementError, AnalysisNotFoundError,
            AnalysisAccessError, ReportGenerationError
        """
        uid = await self.identity.verify(user_id_token)

        usage = await self.plans.get_usage_stats(uid)
        if "pdf" not in usage.export_formats:
            raise EntitlementError("PDF export requires a Pro or Enterprise plan")

        stored = await self.store.get(analysis_id)
        if stored is None:
            raise AnalysisNotFoundError(analysis_id)
        if stored.owner_id != uid:
            logger.warning(f"audit action=surveillance_report_denied uid={uid} analysisId={analysis_id}")
            raise AnalysisAccessError()

        pdf = self.report_generator.generate(stored.analysis)
        logger.info(f"audit action=surveillance_report uid={uid} analysisId={analysis_id} bytes={len(pdf)}")
        return f"surveillance-report-{analysis_id}.pdf", pdf
