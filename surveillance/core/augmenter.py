"""
Prompt Augmenter

Renders a TrendAnalysisResult as a plain-text block for an LLM prompt, hard
capped at MAX_CONTEXT_CHARS. When the full block does not fit, lines are
admitted greedily by clinical priority:

    critical alerts > critical/high findings > warning alerts >
    moderate findings > absence findings > per-source detail

and a note records how many lines were left out.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from surveillance.core.types import (
    AlertLevel,
    ClinicalCorrelation,
    SourceStatus,
    Tier,
    TrendAlert,
    TrendAnalysisResult,
    TrendDirection,
)

MAX_CONTEXT_CHARS = 2000

NO_SIGNAL_LINE = "No significant regional surveillance signals detected for the given clinical presentation."

ACTIVE_HEADING = "Active Conditions:"
ABSENCE_HEADING = "Conditions Not Significantly Active in This Region:"
ALERTS_HEADING = "Alerts:"
SOURCES_HEADING = "Data Sources Reviewed:"

_ACTIVE_TIERS = (Tier.CRITICAL, Tier.HIGH, Tier.MODERATE)
_OMISSION_RESERVE = 60

# Section order in the rendered block
_SECTIONS = ("active", "absence", "alerts", "sources")
_HEADINGS = {
    "active": ACTIVE_HEADING,
    "absence": ABSENCE_HEADING,
    "alerts": ALERTS_HEADING,
    "sources": SOURCES_HEADING,
}


def format_trend(direction: TrendDirection, magnitude: Optional[int]) -> str:
    if direction == TrendDirection.RISING:
        return f"Rising (~{magnitude}% increase)" if magnitude else "Rising"
    if direction == TrendDirection.FALLING:
        return f"Falling (~{magnitude}% decrease)" if magnitude else "Falling"
    if direction == TrendDirection.STABLE:
        return "Stable activity"
    return "Unknown trend"


def format_finding(finding: ClinicalCorrelation) -> str:
    trend = format_trend(finding.trend_direction, finding.trend_magnitude)
    return f"{finding.condition}: {trend}, {finding.tier.value.upper()} relevance. {finding.summary}"


def format_absence(finding: ClinicalCorrelation) -> str:
    if finding.tier == Tier.BACKGROUND:
        return (
            f"{finding.condition}: Below background levels, no significant regional activity. "
            f"Consider reduced pre-test probability."
        )
    return (
        f"{finding.condition}: Low regional activity ({finding.trend_direction.value}). "
        f"No significant outbreak signals detected."
    )


def format_alert(alert: TrendAlert) -> str:
    return f"[{alert.level.value.upper()}] {alert.description}"


def _matches_differential(condition: str, differential: Sequence[str]) -> bool:
    lowered = condition.lower()
    for entry in differential:
        entry = entry.strip().lower()
        if entry and (entry in lowered or lowered in entry):
            return True
    return False


def _source_line(summary) -> str:
    if summary.status == SourceStatus.ERROR:
        return f"{summary.label}: Data unavailable (query error)"
    if summary.status == SourceStatus.NOT_QUERIED:
        return f"{summary.label}: Not queried (no relevant syndromes)"
    if summary.status == SourceStatus.DATA and summary.highlights:
        return f"{summary.label}: {'; '.join(summary.highlights)}"
    return f"{summary.label}: No significant activity"


def _render(
    header: str,
    chosen: Dict[str, List[str]],
    no_signal: bool,
    footer: str,
    omitted: int = 0,
) -> str:
    parts = [header, ""]
    for section in _SECTIONS:
        lines = chosen.get(section) or []
        if section == "sources" and no_signal:
            parts.extend([NO_SIGNAL_LINE, ""])
        if not lines:
            continue
        parts.append(_HEADINGS[section])
        parts.extend(f"- {line}" for line in lines)
        parts.append("")
    if omitted:
        parts.extend([f"({omitted} additional line(s) omitted for length.)", ""])
    parts.append(footer)
    return "\n".join(parts)


def build_surveillance_context(
    analysis: Optional[TrendAnalysisResult],
    differential: Optional[Sequence[str]] = None,
) -> str:
    """
    Build the surveillance context block for a prompt.

    Args:
        analysis: Result of a trend analysis; None yields "".
        differential: When given, low/background findings matching an entry
            are listed as "not significantly active".

    Returns:
        Text of at most MAX_CONTEXT_CHARS characters.
    """
    if analysis is None:
        return ""

    differential = list(differential or [])
    active = [f for f in analysis.ranked_findings if f.tier in _ACTIVE_TIERS]
    absent = [
        f for f in analysis.ranked_findings
        if f.tier not in _ACTIVE_TIERS and differential and _matches_differential(f.condition, differential)
    ]
    actionable = [a for a in analysis.alerts if a.level in (AlertLevel.CRITICAL, AlertLevel.WARNING)]

    header = f"Regional Surveillance Summary ({analysis.region_label}):"
    sources = ", ".join(analysis.data_sources_queried) or "none available"
    footer = f"Data sources: {sources}"
    no_signal = not active and not absent

    # (priority, section, line); lower priority value is admitted first
    items: List[Tuple[int, str, str]] = []
    for alert in actionable:
        items.append((0 if alert.level == AlertLevel.CRITICAL else 2, "alerts", format_alert(alert)))
    for finding in active:
        items.append((1 if finding.tier.rank >= Tier.HIGH.rank else 3, "active", format_finding(finding)))
    for finding in absent:
        items.append((4, "absence", format_absence(finding)))
    for summary in analysis.data_source_summaries:
        items.append((5, "sources", _source_line(summary)))

    full: Dict[str, List[str]] = {section: [] for section in _SECTIONS}
    for _, section, line in items:
        full[section].append(line)
    output = _render(header, full, no_signal, footer)
    if len(output) <= MAX_CONTEXT_CHARS:
        return output

    # Greedy admission by priority; sections keep their input line order
    budget = MAX_CONTEXT_CHARS - _OMISSION_RESERVE
    admitted = set()
    ordered = sorted(range(len(items)), key=lambda i: items[i][0])
    for index in ordered:
        trial = admitted | {index}
        chosen = {section: [] for section in _SECTIONS}
        for i, (_, section, line) in enumerate(items):
            if i in trial:
                chosen[section].append(line)
        if len(_render(header, chosen, no_signal, footer)) <= budget:
            admitted = trial

    chosen = {section: [] for section in _SECTIONS}
    for i, (_, section, line) in enumerate(items):
        if i in admitted:
            chosen[section].append(line)
    output = _render(header, chosen, no_signal, footer, omitted=len(items) - len(admitted))
    return output[:MAX_CONTEXT_CHARS]


# ---- MDM note attestation ----

_DATA_REVIEWED = re.compile(r"\n(DATA REVIEWED|Data Ordered/Reviewed|Data reviewed)[^\n]*", re.IGNORECASE)
_NEXT_SECTION = re.compile(
    r"\n(?:RISK|Risk Assessment|ASSESSMENT|DISPOSITION|CLINICAL DECISION|DECISION MAKING)",
    re.IGNORECASE,
)
_RISK_SECTION = re.compile(r"\n(RISK|Risk Assessment)", re.IGNORECASE)
_SOURCES_BLOCK = re.compile(r"Data Sources Reviewed:\n(.*?)(?:\n\n|Data sources:|\n$|$)", re.DOTALL)
_SOURCES_FOOTER = re.compile(r"Data sources:\s*(.+)", re.IGNORECASE)

DEFAULT_SOURCE_LABELS = "CDC Respiratory, NWSS Wastewater, CDC NNDSS"


def build_attestation_line(surveillance_context: str) -> str:
    """One-line "Regional Surveillance Data" entry summarising reviewed sources."""
    block = _SOURCES_BLOCK.search(surveillance_context or "")
    if block:
        lines = [
            re.sub(r"^-\s*", "", line).strip()
            for line in block.group(1).split("\n")
        ]
        lines = [line for line in lines if line]
        if lines:
            return f"- Regional Surveillance Data: {'; '.join(lines)}"

    footer = _SOURCES_FOOTER.search(surveillance_context or "")
    sources = footer.group(1).strip() if footer else DEFAULT_SOURCE_LABELS
    return f"- Regional Surveillance Data ({sources})"


def append_surveillance_to_mdm_text(mdm_text: str, surveillance_context: str) -> str:
    """
    Insert the surveillance attestation into an MDM note.

    Placed at the end of the "Data reviewed" section when one is followed by
    another section header, otherwise before the RISK section, otherwise
    appended.
    """
    insertion = build_attestation_line(surveillance_context)

    reviewed = _DATA_REVIEWED.search(mdm_text)
    if reviewed:
        after = reviewed.end()
        following = _NEXT_SECTION.search(mdm_text, after)
        if following:
            pos = following.start()
            return mdm_text[:pos] + "\n" + insertion + mdm_text[pos:]

    risk = _RISK_SECTION.search(mdm_text)
    if risk and risk.start() > 0:
        pos = risk.start()
        return mdm_text[:pos] + "\n" + insertion + "\n" + mdm_text[pos:]

    return mdm_text + "\n" + insertion
