from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

CLAUSES = [
    ("Confidential Information",
     "All technical, commercial and business information about the Project that the Disclosing Party "
     "shares with the Receiving Party, in any form, is confidential."),
    ("Obligations",
     "The Receiving Party shall use the Confidential Information solely to evaluate and bid on the Project, "
     "shall not disclose it to any third party, and shall protect it with at least reasonable care."),
    ("Exclusions",
     "These obligations do not apply to information that is public through no fault of the Receiving Party, "
     "was lawfully known to it beforehand, or must be disclosed by law."),
    ("Term",
     "These obligations survive for the validity period stated by the platform or, if none is stated, "
     "for two years after the date of the last signature."),
    ("Governing Law",
     "This agreement is governed by the laws of the Kingdom of Saudi Arabia."),
]


ARABIC_TITLE = "اتفاقية عدم الإفصاح"
DOCUMENT_FONT = "NdaDocument"


def document_font():
    """
    Register the TTF font named by NDA_PDF_FONT_PATH and return its name.

    The built-in Helvetica has no Arabic glyphs, so Arabic names and the
    Arabic title need a font such as Noto Naskh Arabic or DejaVu Sans.
    Returns None when no font is configured.
    """
    path = getattr(settings, "NDA_PDF_FONT_PATH", "")
    if not path:
        return None
    if DOCUMENT_FONT not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(DOCUMENT_FONT, path))
        pdfmetrics.registerFontFamily(
            DOCUMENT_FONT, normal=DOCUMENT_FONT, bold=DOCUMENT_FONT, italic=DOCUMENT_FONT, boldItalic=DOCUMENT_FONT
        )
    return DOCUMENT_FONT


def agreement_file_name(agreement) -> str:
    return f"nda-{agreement.project_id}-{agreement.pk}.pdf"


def render_agreement_pdf(agreement) -> bytes:
    """Render the NDA between the project owner and the initiating company."""
    styles = getSampleStyleSheet()
    font = document_font()
    if font:
        for name in ("Title", "Heading3", "Heading4", "Normal", "Italic"):
            styles[name].fontName = font
    company = agreement.company_signature_info
    entrepreneur = agreement.entrepreneur_info
    story = []

    story.append(Paragraph("<b>Non-Disclosure Agreement</b>", styles["Title"]))
    if font:
        story.append(Paragraph(ARABIC_TITLE, styles["Title"]))
    story.append(Paragraph(f"Project: {escape(agreement.project.title)}", styles["Heading3"]))
    story.append(Paragraph(f"Date: {timezone.localdate().isoformat()}", styles["Normal"]))
    story.append(Spacer(1, 8 * mm))

    parties = [
        ["", "Disclosing Party (Project Owner)", "Receiving Party (Company)"],
        ["Name", entrepreneur.get("full_name", ""), company.get("name", "")],
        ["Company", "", company.get("company_name", "")],
        ["Email", entrepreneur.get("email", ""), company.get("email", "")],
        ["Phone", entrepreneur.get("phone", ""), company.get("phone", "")],
        ["National ID", entrepreneur.get("national_id", ""), company.get("national_id", "")],
        ["Address", entrepreneur.get("address", ""), company.get("address", "")],
    ]
    table = Table(parties, colWidths=[30 * mm, 70 * mm, 70 * mm])
    table_style = [
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1a56db")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]
    if font:
        table_style.append(("FONTNAME", (0, 0), (-1, -1), font))
    table.setStyle(TableStyle(table_style))
    story.append(table)
    story.append(Spacer(1, 8 * mm))

    for index, (heading, body) in enumerate(CLAUSES, start=1):
        story.append(Paragraph(f"<b>{index}. {heading}</b>", styles["Heading4"]))
        story.append(Paragraph(body, styles["Normal"]))
        story.append(Spacer(1, 3 * mm))

    story.append(Spacer(1, 10 * mm))
    story.append(Paragraph("Signatures are collected electronically through Sadiq.", styles["Italic"]))

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title="Non-Disclosure Agreement")
    doc.build(story)
    return buffer.getvalue()
