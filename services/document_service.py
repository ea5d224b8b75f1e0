"""
PDF rendering for proposals and monthly reports (ReportLab).
"""

from __future__ import annotations

import io
from typing import Any, Iterable, List, Mapping
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

_BRAND_COLOR = colors.HexColor("#1e40af")


def _styles():
    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            "DocTitle",
            parent=styles["Title"],
            fontSize=20,
            alignment=TA_CENTER,
            textColor=_BRAND_COLOR,
            spaceAfter=12,
        )
    )
    styles.add(
        ParagraphStyle(
            "SectionHeading",
            parent=styles["Heading2"],
            fontSize=12,
            fontName="Helvetica-Bold",
            spaceBefore=14,
            spaceAfter=6,
            textColor=_BRAND_COLOR,
        )
    )
    styles.add(
        ParagraphStyle(
            "Body",
            parent=styles["Normal"],
            fontSize=10,
            leading=14,
            spaceAfter=8,
        )
    )
    styles.add(
        ParagraphStyle(
            "ListItem",
            parent=styles["Normal"],
            fontSize=10,
            leading=14,
            leftIndent=16,
            spaceAfter=3,
        )
    )
    return styles


def _text(value: Any) -> str:
    return escape(str(value)) if value is not None else ""


def _bullets(items: Iterable[Any], styles) -> List[Paragraph]:
    return [Paragraph(f"&bull; {_text(item)}", styles["ListItem"]) for item in items or ()]


def _section(story: list, title: str, styles) -> None:
    story.append(Paragraph(_text(title), styles["SectionHeading"]))


def _build(story: list, title: str) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        title=title,
        leftMargin=0.8 * inch,
        rightMargin=0.8 * inch,
        topMargin=0.8 * inch,
        bottomMargin=0.8 * inch,
    )
    doc.build(story)
    return buffer.getvalue()


def render_proposal_pdf(
    proposal_number: str,
    client_name: str,
    company: str,
    package: str,
    price: int,
    currency: str,
    content: Mapping[str, Any],
) -> bytes:
    """
    Render a proposal document.

    `content` is the LLM copy: executiveSummary, projectScope, deliverables,
    timeline, investment, nextSteps, terms. Missing sections are skipped.
    """

    styles = _styles()
    story: list = [
        Paragraph(f"Proposal {_text(proposal_number)}", styles["DocTitle"]),
        Paragraph(f"Prepared for {_text(client_name)}, {_text(company)}", styles["Body"]),
        Paragraph(f"Package: {_text(package.title())} &nbsp; Investment: {currency} {price:,}", styles["Body"]),
        Spacer(1, 0.2 * inch),
    ]

    if content.get("executiveSummary"):
        _section(story, "Executive Summary", styles)
        story.append(Paragraph(_text(content["executiveSummary"]), styles["Body"]))
    if content.get("projectScope"):
        _section(story, "Project Scope", styles)
        story.append(Paragraph(_text(content["projectScope"]), styles["Body"]))
    if content.get("deliverables"):
        _section(story, "Deliverables", styles)
        story.extend(_bullets(content["deliverables"], styles))

    phases = content.get("timeline") or []
    if isinstance(phases, list) and phases:
        _section(story, "Timeline", styles)
        rows = [["Phase", "Duration", "Description"]]
        for phase in phases:
            if isinstance(phase, Mapping):
                rows.append(
                    [
                        Paragraph(_text(phase.get("phase")), styles["Body"]),
                        Paragraph(_text(phase.get("duration")), styles["Body"]),
                        Paragraph(_text(phase.get("description")), styles["Body"]),
                    ]
                )
        table = Table(rows, colWidths=[1.6 * inch, 1.2 * inch, 3.8 * inch])
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), _BRAND_COLOR),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        story.append(table)

    if content.get("nextSteps"):
        _section(story, "Next Steps", styles)
        story.extend(_bullets(content["nextSteps"], styles))
    if content.get("terms"):
        _section(story, "Terms", styles)
        story.extend(_bullets(content["terms"], styles))

    return _build(story, f"Proposal {proposal_number}")


def render_report_pdf(company: str, period_label: str, data: Mapping[str, Any], insights: Mapping[str, Any]) -> bytes:
    styles = _styles()
    story: list = [
        Paragraph(f"Monthly Report: {_text(period_label)}", styles["DocTitle"]),
        Paragraph(_text(company), styles["Body"]),
        Spacer(1, 0.2 * inch),
    ]

    if insights.get("summary"):
        _section(story, "Summary", styles)
        story.append(Paragraph(_text(insights["summary"]), styles["Body"]))

    tickets = data.get("support_tickets") or {}
    _section(story, "At a Glance", styles)
    rows = [
        ["Open projects", str(len(data.get("projects") or []))],
        ["Invoices paid", str(len(data.get("invoices") or []))],
        ["Support tickets", f"{tickets.get('total', 0)} ({tickets.get('resolved', 0)} resolved)"],
        ["Activities", str(data.get("activity_count", 0))],
    ]
    table = Table(rows, colWidths=[2.5 * inch, 4.0 * inch])
    table.setStyle(TableStyle([("GRID", (0, 0), (-1, -1), 0.5, colors.grey)]))
    story.append(table)

    for key, title in (
        ("achievements", "Achievements"),
        ("recommendations", "Recommendations"),
        ("nextMonthFocus", "Next Month"),
    ):
        if insights.get(key):
            _section(story, title, styles)
            story.extend(_bullets(insights[key], styles))

    return _build(story, f"Monthly Report {period_label}")


__all__ = ["render_proposal_pdf", "render_report_pdf"]
