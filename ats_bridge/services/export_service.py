"""
Resume PDF export (ReportLab platypus, A4)
"""
import re
from io import BytesIO
from typing import List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    HRFlowable,
    ListFlowable,
    ListItem,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from ats_bridge.api.schemas.resume import ResumeDraft
from ats_bridge.utils.config import settings
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)

INK = colors.HexColor("#0F172A")
MUTED = colors.HexColor("#475569")
ACCENT = colors.HexColor("#4F46E5")
RULE = colors.HexColor("#E2E8F0")


def _esc(s) -> str:
    """Escape text for ReportLab Paragraph markup."""
    if s is None:
        return ""
    return str(s).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def export_filename(draft: ResumeDraft) -> str:
    """'Jane Doe' -> 'Jane_Doe_Final_CV.pdf'"""
    name = re.sub(r"\s+", "_", draft.personal_info.name.strip()) or "Resume"
    return f"{name}_Final_CV.pdf"


def _styles() -> dict:
    base = getSampleStyleSheet()
    return {
        "name": ParagraphStyle(
            "name", parent=base["Title"], fontName="Helvetica-Bold", fontSize=24,
            leading=28, textColor=INK, alignment=0, spaceAfter=2,
        ),
        "headline": ParagraphStyle(
            "headline", parent=base["BodyText"], fontName="Helvetica-Bold", fontSize=11,
            textColor=ACCENT, spaceAfter=4,
        ),
        "contact": ParagraphStyle(
            "contact", parent=base["BodyText"], fontName="Helvetica", fontSize=9,
            textColor=MUTED, leading=12,
        ),
        "section": ParagraphStyle(
            "section", parent=base["Heading2"], fontName="Helvetica-Bold", fontSize=11,
            textColor=INK, spaceBefore=12, spaceAfter=4,
        ),
        "body": ParagraphStyle(
            "body", parent=base["BodyText"], fontName="Helvetica", fontSize=9.5,
            textColor=MUTED, leading=13.5,
        ),
        "entry": ParagraphStyle(
            "entry", parent=base["BodyText"], fontName="Helvetica-Bold", fontSize=10.5,
            textColor=INK, leading=13,
        ),
        "date": ParagraphStyle(
            "date", parent=base["BodyText"], fontName="Helvetica", fontSize=9,
            textColor=MUTED, alignment=2,
        ),
        "company": ParagraphStyle(
            "company", parent=base["BodyText"], fontName="Helvetica-Bold", fontSize=9.5,
            textColor=ACCENT, spaceAfter=3,
        ),
    }


def _section(title: str, styles: dict) -> list:
    return [
        Paragraph(_esc(title.upper()), styles["section"]),
        HRFlowable(width="100%", thickness=0.5, color=RULE, spaceAfter=6),
    ]


def _entry_header(left: str, right: str, styles: dict, width: float) -> Table:
    table = Table(
        [[Paragraph(_esc(left), styles["entry"]), Paragraph(_esc(right), styles["date"])]],
        colWidths=[width * 0.72, width * 0.28],
    )
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
        ("TOPPADDING", (0, 0), (-1, -1), 0),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
    ]))
    return table


def _bullets(items: List[str], styles: dict) -> ListFlowable:
    return ListFlowable(
        [ListItem(Paragraph(_esc(item), styles["body"]), leftIndent=10) for item in items],
        bulletType="bullet",
        start="•",
        bulletFontSize=7,
        bulletColor=ACCENT,
        leftIndent=10,
    )


def build_resume_pdf(draft: ResumeDraft) -> bytes:
    """Render the draft as an A4 PDF and return the bytes."""
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=42,
        rightMargin=42,
        topMargin=40,
        bottomMargin=40,
        title=f"{draft.personal_info.name} - CV",
        author=draft.personal_info.name,
        creator=settings.APP_NAME,
    )
    styles = _styles()
    width = doc.width
    info = draft.personal_info

    story = [
        Paragraph(_esc(info.name), styles["name"]),
        Paragraph(_esc(info.role or "Professional Candidate"), styles["headline"]),
    ]

    contact = [info.email, info.phone, info.location, info.linkedin, *(info.links or [])]
    story.append(Paragraph("  |  ".join(_esc(c) for c in contact if c), styles["contact"]))
    story.append(Spacer(1, 6))

    if draft.summary.strip():
        story += _section("Profile", styles)
        story.append(Paragraph(_esc(draft.summary), styles["body"]))

    if draft.experience:
        story += _section("Experience", styles)
        for entry in draft.experience:
            story.append(_entry_header(entry.role, entry.date or "", styles, width))
            story.append(Paragraph(_esc(entry.company), styles["company"]))
            if entry.bullets:
                story.append(_bullets(entry.bullets, styles))
            story.append(Spacer(1, 6))

    if draft.education:
        story += _section("Education", styles)
        for edu in draft.education:
            story.append(_entry_header(edu.institution, edu.date or "", styles, width))
            story.append(Paragraph(_esc(edu.degree), styles["body"]))
            if edu.description:
                story.append(Paragraph(_esc(edu.description), styles["body"]))
            story.append(Spacer(1, 4))

    if draft.skills:
        story += _section("Skills", styles)
        for category in draft.skills:
            story.append(Paragraph(
                f"<b>{_esc(category.category)}:</b> {_esc(', '.join(category.items))}",
                styles["body"],
            ))

    if draft.certifications:
        story += _section("Certifications", styles)
        story.append(_bullets(draft.certifications, styles))

    doc.build(story)
    pdf_bytes = buf.getvalue()
    logger.info(f"Exported resume PDF for {info.name} ({len(pdf_bytes)} bytes)")
    return pdf_bytes
