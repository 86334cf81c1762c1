"""Tenancy agreement PDF generator.

Layout:
    Title page: title, RRA 2025 subtitle, template version, property box,
    key terms and the periodic tenancy notice.
    Sections: upper-cased section titles, clause titles (mandatory clauses
    tagged), substituted clause text. Prohibited clauses never appear.
    Signature page (optional), page footer and DRAFT watermark (optional).
"""

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from rra_agreements.models.agreement import AgreementFormData
from rra_agreements.models.template import AgreementTemplate, RenderedSection
from rra_agreements.services.substitution import render_template
from rra_agreements.utils.formatting import format_currency, format_date

RRA_NOTICE = (
    "This is a periodic tenancy. The tenant may end it by giving 2 months' notice. "
    "The landlord may only seek possession on specific legal grounds."
)
DECLARATION = (
    "By signing below, each party confirms they have read, understood, and agree "
    "to be bound by the terms set out in this agreement."
)
BLANK_LINE = "________________________"

PRIMARY = colors.Color(0.2, 0.4, 0.8)
GRAY = colors.Color(0.4, 0.4, 0.4)
LIGHT_GRAY = colors.Color(0.6, 0.6, 0.6)


class AgreementPDFGenerator:
    """Render an agreement template and draft to PDF"""

    font_name = "Helvetica"
    font_bold = "Helvetica-Bold"

    def __init__(self):
        self._init_styles()

    def _init_styles(self):
        """Initialize paragraph styles"""
        self.styles = {
            'title': ParagraphStyle('Title', fontName=self.font_bold,
                fontSize=18, alignment=TA_CENTER, spaceAfter=8, leading=22),
            'subtitle': ParagraphStyle('Subtitle', fontName=self.font_name,
                fontSize=12, alignment=TA_CENTER, spaceAfter=4, textColor=PRIMARY),
            'small': ParagraphStyle('Small', fontName=self.font_name,
                fontSize=9, alignment=TA_CENTER, textColor=LIGHT_GRAY),
            'section': ParagraphStyle('Section', fontName=self.font_bold,
                fontSize=14, spaceBefore=16, spaceAfter=8, textColor=PRIMARY),
            'clause_title': ParagraphStyle('ClauseTitle', fontName=self.font_bold,
                fontSize=10, spaceBefore=8, spaceAfter=4),
            'normal': ParagraphStyle('Normal', fontName=self.font_name,
                fontSize=10, leading=14, alignment=TA_JUSTIFY),
            'notice_title': ParagraphStyle('NoticeTitle', fontName=self.font_bold,
                fontSize=11, spaceBefore=12, spaceAfter=4),
        }

    def generate(
        self,
        template: AgreementTemplate,
        form_data,
        include_signature_pages: bool = True,
        include_watermark: bool = False,
    ) -> bytes:
        """Render the agreement and return the PDF bytes"""
        buffer = BytesIO()
        self._build(buffer, template, AgreementFormData.coerce(form_data),
                    include_signature_pages, include_watermark)
        return buffer.getvalue()

    def save(
        self,
        template: AgreementTemplate,
        form_data,
        output_path: str,
        include_signature_pages: bool = True,
        include_watermark: bool = False,
    ) -> str:
        """Render the agreement to a file. Returns the path written."""
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        self._build(output_path, template, AgreementFormData.coerce(form_data),
                    include_signature_pages, include_watermark)
        return output_path

    def _build(self, target, template, data, include_signature_pages, include_watermark):
        doc = SimpleDocTemplate(target, pagesize=A4,
            rightMargin=2*cm, leftMargin=2*cm, topMargin=1.8*cm, bottomMargin=2*cm,
            title="Assured Shorthold Tenancy Agreement")

        story = self._build_title_page(template, data)
        story.extend(self._build_sections(render_template(template, data)))
        if include_signature_pages:
            story.extend(self._build_signatures(data))

        generated_at = datetime.now().strftime("%d/%m/%Y %H:%M")

        def decorate(canvas, doc):
            canvas.saveState()
            if include_watermark:
                canvas.setFont(self.font_bold, 80)
                canvas.setFillColor(colors.Color(0.85, 0.85, 0.85, alpha=0.4))
                canvas.translate(A4[0] / 2, A4[1] / 2)
                canvas.rotate(45)
                canvas.drawCentredString(0, 0, "DRAFT")
                canvas.rotate(-45)
                canvas.translate(-A4[0] / 2, -A4[1] / 2)
            canvas.setFont(self.font_name, 8)
            canvas.setFillColor(LIGHT_GRAY)
            canvas.drawCentredString(A4[0] / 2, 1*cm, f"Page {doc.page}")
            if doc.page == 1:
                canvas.drawRightString(A4[0] - 2*cm, 1*cm, f"Generated: {generated_at}")
            canvas.restoreState()

        doc.build(story, onFirstPage=decorate, onLaterPages=decorate)

    def _build_title_page(self, template: AgreementTemplate, data: AgreementFormData) -> list:
        story = [
            Paragraph("ASSURED SHORTHOLD TENANCY AGREEMENT", self.styles['title']),
            Paragraph("Renters' Rights Act 2025 Compliant", self.styles['subtitle']),
            Paragraph(f"Template Version: {escape(template.version)}", self.styles['small']),
            Spacer(1, 20),
        ]

        property_box = Table(
            [["PROPERTY:"], [data.property_address or "[Property Address]"]],
            colWidths=[17*cm],
        )
        property_box.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), self.font_bold),
            ('FONTNAME', (0, 1), (-1, 1), self.font_name),
            ('FONTSIZE', (0, 0), (-1, -1), 11),
            ('TEXTCOLOR', (0, 0), (-1, 0), GRAY),
            ('BOX', (0, 0), (-1, -1), 1, PRIMARY),
            ('BACKGROUND', (0, 0), (-1, -1), colors.Color(0.95, 0.97, 1)),
            ('LEFTPADDING', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        story.extend([property_box, Spacer(1, 16)])

        story.append(self._build_table(self._summary_rows(data)))

        story.extend([
            Paragraph("IMPORTANT: RRA 2025 NOTICE", self.styles['notice_title']),
            Paragraph(escape(RRA_NOTICE), self.styles['normal']),
            PageBreak(),
        ])
        return story

    def _summary_rows(self, data: AgreementFormData) -> List[list]:
        return [
            ["Landlord:", data.landlord_name or "[Landlord Name]"],
            ["Tenant:", data.tenant_name or "[Tenant Name]"],
            ["Tenancy Start Date:",
             format_date(data.tenancy_start_date) if data.tenancy_start_date else "[Start Date]"],
            ["Monthly Rent:",
             format_currency(data.rent_amount) if data.rent_amount else "[Rent Amount]"],
            ["Deposit:",
             format_currency(data.deposit_amount) if data.deposit_amount else "[Deposit Amount]"],
        ]

    def _build_table(self, data: list) -> Table:
        """Build a label/value table"""
        table = Table(data, colWidths=[5*cm, 12*cm])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), self.font_name),
            ('FONTNAME', (0, 0), (0, -1), self.font_bold),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        return table

    def _build_sections(self, sections: List[RenderedSection]) -> list:
        story = []
        for section in sections:
            story.append(Paragraph(escape(section.title.upper()), self.styles['section']))
            for clause in section.clauses:
                title = f"<b>{escape(clause.title)}</b>"
                if clause.is_mandatory:
                    title += ' <font color="#3366cc" size="8">[MANDATORY]</font>'
                story.append(Paragraph(title, self.styles['clause_title']))
                story.extend(self._paragraphs(clause.content))
        return story

    def _paragraphs(self, text: str) -> list:
        """One Paragraph per non-blank line"""
        return [
            Paragraph(escape(line), self.styles['normal'])
            for line in text.split("\n")
            if line.strip()
        ]

    def _build_signatures(self, data: AgreementFormData) -> list:
        """Build signature page"""
        story = [
            PageBreak(),
            Paragraph("SIGNATURES", self.styles['section']),
            Paragraph(escape(DECLARATION), self.styles['normal']),
            Spacer(1, 20),
        ]
        for heading, name in (
            ("LANDLORD / AGENT:", data.landlord_name),
            ("TENANT:", data.tenant_name),
        ):
            story.append(Paragraph(heading, self.styles['notice_title']))
            story.append(self._build_table([
                ["Signature:", BLANK_LINE],
                ["Name:", name or BLANK_LINE],
                ["Date:", BLANK_LINE],
            ]))
            story.append(Spacer(1, 24))
        return story


def generate_pdf(
    template: AgreementTemplate,
    form_data,
    output_path: Optional[str] = None,
    include_signature_pages: bool = True,
    include_watermark: bool = False,
):
    """Render an agreement. Writes to output_path when given, else returns bytes."""
    generator = AgreementPDFGenerator()
    if output_path is None:
        return generator.generate(template, form_data, include_signature_pages, include_watermark)
    return generator.save(template, form_data, output_path, include_signature_pages, include_watermark)
