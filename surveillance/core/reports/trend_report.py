"""
Surveillance Trend Report Generator

Renders a TrendAnalysisResult as a clinician-facing PDF:
- title and analysis metadata
- overall summary
- top findings table
- per-finding score breakdown
- alerts (own page, when any)
- data source status
- disclaimer footer with page number on every page
"""
from datetime import datetime
from io import BytesIO
from typing import List, Tuple
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor, white
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from surveillance.core.types import (
    AlertLevel,
    ClinicalCorrelation,
    SourceStatus,
    Tier,
    TrendAnalysisResult,
    TrendDirection,
)
from surveillance.utils import ReportGenerationError, get_logger

logger = get_logger(__name__)

TIER_COLORS = {
    Tier.CRITICAL: HexColor("#991B1B"),
    Tier.HIGH: HexColor("#EF4444"),
    Tier.MODERATE: HexColor("#F59E0B"),
    Tier.LOW: HexColor("#3B82F6"),
    Tier.BACKGROUND: HexColor("#9CA3AF"),
}

ALERT_COLORS = {
    AlertLevel.CRITICAL: HexColor("#FEE2E2"),
    AlertLevel.WARNING: HexColor("#FEF3C7"),
    AlertLevel.INFO: HexColor("#DBEAFE"),
}

STATUS_LABELS = {
    SourceStatus.DATA: "Data available",
    SourceStatus.NO_DATA: "No data",
    SourceStatus.ERROR: "Query error",
    SourceStatus.NOT_QUERIED: "Not queried",
}

COMPONENT_LABELS = [
    ("symptom_match", "Symptom match", 40),
    ("differential_match", "Differential match", 20),
    ("epidemiologic_signal", "Epidemiologic signal", 25),
    ("seasonal_plausibility", "Seasonal plausibility", 10),
    ("geographic_relevance", "Geographic relevance", 5),
]

TOP_FINDINGS = 10

DISCLAIMER = (
    "For clinical decision support only. Surveillance data reflects population-level "
    "activity and does not establish or exclude a diagnosis."
)

HEADER_BLUE = HexColor("#1E40AF")
GRID_GREY = HexColor("#D1D5DB")


def _trend_text(finding: ClinicalCorrelation) -> str:
    if finding.trend_direction == TrendDirection.RISING and finding.trend_magnitude:
        return f"Rising (+{finding.trend_magnitude}%)"
    if finding.trend_direction == TrendDirection.FALLING and finding.trend_magnitude:
        return f"Falling (-{finding.trend_magnitude}%)"
    return finding.trend_direction.value.capitalize()


def _top_component(finding: ClinicalCorrelation) -> str:
    label, value = max(
        ((label, getattr(finding.components, attr)) for attr, label, _ in COMPONENT_LABELS),
        key=lambda item: item[1],
    )
    return f"{label} ({value})"


class TrendReportGenerator:
    """Builds surveillance trend PDFs in memory."""

    def __init__(self):
        self._styles = getSampleStyleSheet()
        self._create_custom_styles()

    def _create_custom_styles(self):
        if "ReportTitle" not in self._styles:
            self._styles.add(ParagraphStyle(
                name="ReportTitle",
                parent=self._styles["Title"],
                fontSize=22,
                spaceAfter=18,
                textColor=HEADER_BLUE,
                alignment=TA_CENTER,
                fontName="Helvetica-Bold",
            ))
        if "SectionHeader" not in self._styles:
            self._styles.add(ParagraphStyle(
                name="SectionHeader",
                parent=self._styles["Heading2"],
                fontSize=15,
                spaceBefore=18,
                spaceAfter=10,
                textColor=HexColor("#1F2937"),
                fontName="Helvetica-Bold",
            ))
        if "SubHeader" not in self._styles:
            self._styles.add(ParagraphStyle(
                name="SubHeader",
                parent=self._styles["Heading3"],
                fontSize=12,
                spaceBefore=10,
                spaceAfter=6,
                textColor=HexColor("#374151"),
                fontName="Helvetica-Bold",
            ))
        if "Body" not in self._styles:
            self._styles.add(ParagraphStyle(
                name="Body",
                parent=self._styles["Normal"],
                fontSize=10,
                spaceAfter=6,
                leading=14,
                alignment=TA_JUSTIFY,
            ))
        if "Meta" not in self._styles:
            self._styles.add(ParagraphStyle(
                name="Meta",
                parent=self._styles["Normal"],
                fontSize=9,
                textColor=HexColor("#6B7280"),
                spaceAfter=3,
            ))
        if "Cell" not in self._styles:
            self._styles.add(ParagraphStyle(
                name="Cell",
                parent=self._styles["Normal"],
                fontSize=9,
                leading=11,
            ))

    def generate(self, analysis: TrendAnalysisResult) -> bytes:
        """
        Render the analysis as PDF bytes.

        Raises:
            ReportGenerationError: if reportlab fails to build the document
        """
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.9 * inch,
            title="Regional Surveillance Trend Report",
        )
        sources_line = ", ".join(analysis.data_sources_queried) or "none available"

        def draw_footer(canvas, document):
            canvas.saveState()
            canvas.setFont("Helvetica", 7)
            canvas.setFillColor(HexColor("#6B7280"))
            canvas.drawString(document.leftMargin, 0.55 * inch, DISCLAIMER)
            canvas.drawString(document.leftMargin, 0.4 * inch, f"Data sources: {sources_line}")
            canvas.drawRightString(
                document.pagesize[0] - document.rightMargin,
                0.4 * inch,
                f"Page {document.page}",
            )
            canvas.restoreState()

        try:
            doc.build(self._build_story(analysis), onFirstPage=draw_footer, onLaterPages=draw_footer)
        except Exception as e:
            logger.error(f"PDF build failed for analysis {analysis.analysis_id}: {e}")
            raise ReportGenerationError("Failed to generate surveillance report", {"reason": str(e)}) from e

        pdf = buffer.getvalue()
        logger.info(f"Generated surveillance report for {analysis.analysis_id} ({len(pdf)} bytes)")
        return pdf

    def _build_story(self, analysis: TrendAnalysisResult) -> List:
        story: List = []
        styles = self._styles

        story.append(Paragraph("Regional Surveillance Trend Report", styles["ReportTitle"]))
        story.append(Paragraph(f"Analysis ID: <b>{escape(analysis.analysis_id)}</b>", styles["Meta"]))
        story.append(Paragraph(f"Analyzed: {escape(self._format_date(analysis.analyzed_at))}", styles["Meta"]))
        story.append(Paragraph(f"Region: {escape(analysis.region_label)}", styles["Meta"]))
        story.append(Spacer(1, 14))

        story.append(Paragraph("Summary", styles["SectionHeader"]))
        story.append(Paragraph(escape(analysis.summary or "No summary available."), styles["Body"]))

        findings = analysis.ranked_findings
        story.append(Paragraph("Top Findings", styles["SectionHeader"]))
        if findings:
            story.append(self._findings_table(findings[:TOP_FINDINGS]))
        else:
            story.append(Paragraph("No conditions were scored for this presentation.", styles["Body"]))

        if findings:
            story.append(Paragraph("Detailed Findings", styles["SectionHeader"]))
            for finding in findings:
                story.append(KeepTogether(self._finding_detail(finding)))

        if analysis.alerts:
            story.append(PageBreak())
            story.append(Paragraph("Alerts", styles["SectionHeader"]))
            story.append(self._alerts_table(analysis))

        story.append(Paragraph("Data Sources", styles["SectionHeader"]))
        story.append(self._sources_table(analysis))
        if analysis.data_source_errors:
            story.append(Spacer(1, 6))
            for err in analysis.data_source_errors:
                story.append(Paragraph(
                    f"{escape(err.source)}: {escape(err.error)}",
                    styles["Meta"],
                ))
        return story

    @staticmethod
    def _format_date(iso: str) -> str:
        try:
            return datetime.fromisoformat(iso.replace("Z", "+00:00")).strftime("%B %d, %Y %H:%M UTC")
        except (ValueError, AttributeError):
            return iso or "unknown"

    def _findings_table(self, findings: List[ClinicalCorrelation]) -> Table:
        cell = self._styles["Cell"]
        rows = [["Condition", "Score", "Tier", "Trend", "Top component"]]
        for f in findings:
            rows.append([
                Paragraph(escape(f.condition), cell),
                str(f.overall_score),
                f.tier.value.upper(),
                _trend_text(f),
                _top_component(f),
            ])

        table = Table(rows, colWidths=[2.0 * inch, 0.6 * inch, 0.9 * inch, 1.2 * inch, 2.0 * inch], repeatRows=1)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
            ("TEXTCOLOR", (0, 0), (-1, 0), white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID_GREY),
            ("TOPPADDING", (0, 0), (-1, -1), 5),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
        ]
        for row, f in enumerate(findings, start=1):
            style.append(("TEXTCOLOR", (2, row), (2, row), TIER_COLORS[f.tier]))
            style.append(("FONTNAME", (2, row), (2, row), "Helvetica-Bold"))
        table.setStyle(TableStyle(style))
        return table

    def _finding_detail(self, finding: ClinicalCorrelation) -> List:
        styles = self._styles
        elements = [
            Paragraph(
                f"<b>{escape(finding.condition)}</b>: {finding.overall_score}/100, "
                f"{finding.tier.value.upper()}",
                styles["SubHeader"],
            ),
            Paragraph(escape(finding.summary), styles["Body"]),
        ]
        rows: List[Tuple[str, str]] = [("Component", "Points")]
        for attr, label, maximum in COMPONENT_LABELS:
            rows.append((label, f"{getattr(finding.components, attr)} / {maximum}"))
        table = Table(rows, colWidths=[2.2 * inch, 1.0 * inch])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), HexColor("#E5E7EB")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("GRID", (0, 0), (-1, -1), 0.25, GRID_GREY),
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ]))
        elements.append(table)
        if finding.data_points:
            newest = max(finding.data_points, key=lambda dp: dp.period_end)
            elements.append(Paragraph(
                f"Latest observation: {newest.value:g} {escape(newest.unit)} "
                f"({escape(newest.period_end)}, {escape(newest.source)}, {newest.geo_level.value} level)",
                styles["Meta"],
            ))
        elements.append(Spacer(1, 8))
        return elements

    def _alerts_table(self, analysis: TrendAnalysisResult) -> Table:
        cell = self._styles["Cell"]
        rows = [["Level", "Alert", "Description"]]
        for alert in analysis.alerts:
            rows.append([
                alert.level.value.upper(),
                Paragraph(escape(alert.title), cell),
                Paragraph(escape(alert.description), cell),
            ])
        table = Table(rows, colWidths=[0.9 * inch, 2.0 * inch, 3.8 * inch], repeatRows=1)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
            ("TEXTCOLOR", (0, 0), (-1, 0), white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID_GREY),
        ]
        for row, alert in enumerate(analysis.alerts, start=1):
            style.append(("BACKGROUND", (0, row), (-1, row), ALERT_COLORS[alert.level]))
        table.setStyle(TableStyle(style))
        return table

    def _sources_table(self, analysis: TrendAnalysisResult) -> Table:
        cell = self._styles["Cell"]
        rows = [["Source", "Status", "Highlights"]]
        for summary in analysis.data_source_summaries:
            rows.append([
                Paragraph(escape(summary.label), cell),
                STATUS_LABELS[summary.status],
                Paragraph(escape("; ".join(summary.highlights) or "None"), cell),
            ])
        if len(rows) == 1:
            rows.append(["None", "", ""])
        table = Table(rows, colWidths=[2.0 * inch, 1.1 * inch, 3.6 * inch], repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
            ("TEXTCOLOR", (0, 0), (-1, 0), white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID_GREY),
        ]))
        return table
