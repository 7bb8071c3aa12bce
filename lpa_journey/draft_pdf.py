"""
Draft LPA PDF ("read your LPA").

Section wording comes from Jinja2 templates rendered against the
document summary; ReportLab lays the result out. The footer carries the
generation time and a hash of the first-pass content, so the same
document and timestamp always produce the same bytes.
"""

import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Any, Optional, Tuple

from jinja2 import Environment, DictLoader, select_autoescape
from reportlab import rl_config
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer

from lpa_journey.answer_store import LpaDocument
from lpa_journey.summary import lpa_summary, attorney_names
from lpa_journey.utils import escape_text, short_hash, format_london_datetime, calculate_sha256

# Deterministic PDF output
rl_config.invariant = 1

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN_LEFT = 20 * mm
MARGIN_RIGHT = 20 * mm
MARGIN_TOP = 20 * mm
MARGIN_BOTTOM = 25 * mm

SECTION_TEMPLATES = {
    'donor': (
        "{{ donor.name }}{% if donor.date_of_birth %}, born {{ donor.date_of_birth }}{% endif %}"
        "{% if donor.address %}, of {{ donor.address }}{% endif %}."
        "{% if donor.other_names %} Also known as {{ donor.other_names }}.{% endif %}"
    ),
    'attorneys': (
        "{% if attorneys %}I appoint {{ names(attorneys) }} as my "
        "{{ 'attorney' if attorneys|length == 1 else 'attorneys' }}."
        "{% else %}No attorneys have been chosen yet.{% endif %}"
    ),
    'attorney': (
        "{{ row.name }}{% if row.date_of_birth %}, born {{ row.date_of_birth }}{% endif %}"
        "{% if row.address %}, {{ row.address }}{% else %}, address not yet given{% endif %}"
    ),
    'replacements': (
        "{% if replacement_attorneys %}If an attorney can no longer act, I appoint "
        "{{ names(replacement_attorneys) }} to replace them."
        "{% else %}No replacement attorneys.{% endif %}"
    ),
    'when': "{{ when_can_be_used or 'Not yet chosen' }}.",
    'restrictions': "{{ restrictions or 'No restrictions or conditions.' }}",
    'certificate_provider': (
        "{% if certificate_provider.name %}{{ certificate_provider.name }} will confirm I understand "
        "this LPA.{% else %}No certificate provider has been chosen yet.{% endif %}"
    ),
    'relationship': (
        "{% if certificate_provider.relationship %}Relationship to the donor: "
        "{{ certificate_provider.relationship }}{% if certificate_provider.relationship_length %}, "
        "known for {{ certificate_provider.relationship_length }}{% endif %}.{% endif %}"
    ),
    'lpa_type': "{% if type %}{{ type }} LPA.{% endif %}{% if who_for %} {{ who_for }}.{% endif %}",
    'step_in': "{% if replacements_step_in %}Replacement attorneys step in: {{ replacements_step_in }}{% endif %}",
    'people_to_notify': (
        "{% if people_to_notify %}When the LPA is registered, tell {{ names(people_to_notify) }}."
        "{% else %}No one is to be told when the LPA is registered.{% endif %}"
    ),
    'person': "{{ row.name }}{% if row.address %}, {{ row.address }}{% else %}, address not yet given{% endif %}",
}

jinja_env = Environment(
    loader=DictLoader(SECTION_TEMPLATES),
    autoescape=select_autoescape(['html', 'xml']),
    trim_blocks=True,
    lstrip_blocks=True
)
jinja_env.globals['names'] = attorney_names


@dataclass
class ContentBlock:
    """A block of content in the draft."""
    type: str  # 'heading', 'paragraph', 'bullet_item'
    content: str


@dataclass
class DraftSection:
    """A titled section of the draft."""
    title: str
    blocks: List[ContentBlock] = field(default_factory=list)


def _render(template_name: str, **context) -> str:
    return jinja_env.get_template(template_name).render(**context).strip()


def build_draft(document: LpaDocument) -> List[DraftSection]:
    """
    Render the document into draft sections.

    Args:
        document: The document to render

    Returns:
        Sections in reading order
    """
    summary = lpa_summary(document)

    donor = DraftSection('The donor', [ContentBlock('paragraph', _render('donor', **summary))])
    _add_paragraph(donor, 'lpa_type', summary)

    attorneys = DraftSection('Attorneys', [ContentBlock('paragraph', _render('attorneys', **summary))])
    for row in summary['attorneys']:
        attorneys.blocks.append(ContentBlock('bullet_item', _render('attorney', row=row)))

    replacements = DraftSection('Replacement attorneys',
                                [ContentBlock('paragraph', _render('replacements', **summary))])
    for row in summary['replacement_attorneys']:
        replacements.blocks.append(ContentBlock('bullet_item', _render('attorney', row=row)))
    _add_paragraph(replacements, 'step_in', summary)

    people = DraftSection('People to notify',
                          [ContentBlock('paragraph', _render('people_to_notify', **summary))])
    for row in summary['people_to_notify']:
        people.blocks.append(ContentBlock('bullet_item', _render('person', row=row)))

    provider = DraftSection('Certificate provider',
                            [ContentBlock('paragraph', _render('certificate_provider', **summary))])
    _add_paragraph(provider, 'relationship', summary)

    return [
        donor,
        attorneys,
        replacements,
        DraftSection('When your attorneys can use the LPA',
                     [ContentBlock('paragraph', _render('when', **summary))]),
        DraftSection('Restrictions and conditions',
                     [ContentBlock('paragraph', _render('restrictions', **summary))]),
        people,
        provider,
    ]


def _add_paragraph(section: DraftSection, template_name: str, summary: Dict[str, Any]):
    """Append a paragraph unless the template renders to nothing."""
    text = _render(template_name, **summary)
    if text:
        section.blocks.append(ContentBlock('paragraph', text))


def create_styles() -> Dict[str, ParagraphStyle]:
    """Create paragraph styles for the draft."""
    styles = getSampleStyleSheet()

    return {
        'title': ParagraphStyle(
            'DraftTitle',
            parent=styles['Heading1'],
            fontSize=18,
            leading=24,
            alignment=TA_CENTER,
            spaceAfter=12,
            fontName='Helvetica-Bold',
        ),
        'subtitle': ParagraphStyle(
            'DraftSubtitle',
            parent=styles['Normal'],
            fontSize=10,
            alignment=TA_CENTER,
            spaceAfter=24,
            textColor=colors.HexColor('#505a5f'),
            fontName='Helvetica',
        ),
        'section_heading': ParagraphStyle(
            'SectionHeading',
            parent=styles['Heading2'],
            fontSize=13,
            leading=18,
            spaceBefore=18,
            spaceAfter=8,
            fontName='Helvetica-Bold',
        ),
        'normal': ParagraphStyle(
            'DraftNormal',
            parent=styles['Normal'],
            fontSize=11,
            leading=16,
            alignment=TA_LEFT,
            spaceAfter=8,
            fontName='Helvetica',
        ),
        'bullet_item': ParagraphStyle(
            'BulletItem',
            parent=styles['Normal'],
            fontSize=11,
            leading=16,
            leftIndent=20,
            firstLineIndent=-10,
            spaceAfter=4,
            fontName='Helvetica',
        ),
    }


def _story(title: str, subtitle: str, sections: List[DraftSection],
           styles: Dict[str, ParagraphStyle]) -> List[Any]:
    story = [
        Paragraph(escape_text(title), styles['title']),
        Paragraph(escape_text(subtitle), styles['subtitle']),
    ]
    for section in sections:
        story.append(Paragraph(escape_text(section.title), styles['section_heading']))
        for block in section.blocks:
            if block.type == 'bullet_item':
                story.append(Paragraph(f'&bull; {escape_text(block.content)}', styles['bullet_item']))
            else:
                story.append(Paragraph(escape_text(block.content), styles['normal']))
        story.append(Spacer(1, 6))
    return story


def _build(story: List[Any], footer, timestamp: datetime) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN_LEFT,
        rightMargin=MARGIN_RIGHT,
        topMargin=MARGIN_TOP,
        bottomMargin=MARGIN_BOTTOM,
        title='Draft Lasting Power of Attorney',
        author='LPA Journey',
        creator='LPA Journey',
        creationDate=timestamp,
        modDate=timestamp,
    )
    doc.build(story, onFirstPage=footer, onLaterPages=footer)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes


def _simple_footer(canvas, doc):
    """Footer without hash (first pass)."""
    canvas.saveState()
    canvas.setFont('Helvetica', 8)
    canvas.setFillColor(colors.grey)
    canvas.drawRightString(PAGE_WIDTH - MARGIN_RIGHT, 12 * mm, f'Page {doc.page}')
    canvas.restoreState()


def _full_footer(timestamp: datetime, content_hash: str):
    def footer(canvas, doc):
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        canvas.setFillColor(colors.HexColor('#666666'))
        canvas.drawString(
            MARGIN_LEFT, 12 * mm,
            f'Draft generated: {format_london_datetime(timestamp)} | Hash: {short_hash(content_hash, 16)}'
        )
        canvas.drawRightString(PAGE_WIDTH - MARGIN_RIGHT, 12 * mm, f'Page {doc.page}')
        canvas.restoreState()
    return footer


def generate_draft_pdf(document: LpaDocument,
                       generation_timestamp: Optional[datetime] = None) -> Tuple[bytes, str]:
    """
    Generate the draft LPA PDF.

    Args:
        document: The document to render
        generation_timestamp: Fixed timestamp for reproducible output

    Returns:
        Tuple of (PDF bytes, SHA256 hash of those bytes)
    """
    if generation_timestamp is None:
        generation_timestamp = datetime.utcnow()

    summary = lpa_summary(document)
    title = 'Draft Lasting Power of Attorney'
    subtitle = summary['type'] or 'Type not yet chosen'
    sections = build_draft(document)
    styles = create_styles()

    first_pass = _build(_story(title, subtitle, sections, styles), _simple_footer, generation_timestamp)
    content_hash = calculate_sha256(first_pass)

    pdf_bytes = _build(_story(title, subtitle, sections, styles),
                       _full_footer(generation_timestamp, content_hash), generation_timestamp)

    return pdf_bytes, calculate_sha256(pdf_bytes)
