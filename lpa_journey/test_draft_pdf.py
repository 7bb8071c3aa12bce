"""
Draft PDF Tests

The draft is built from the document through Jinja2 fragments and
ReportLab. With a fixed timestamp the output must be byte-identical.
"""

import unittest
from datetime import datetime

from lpa_journey.answer_store import LpaDocument
from lpa_journey.draft_pdf import build_draft, create_styles, generate_draft_pdf
from lpa_journey.fixtures import seed_document
from lpa_journey.utils import calculate_sha256, escape_text, format_date, format_london_datetime

FIXED_TIMESTAMP = datetime(2024, 1, 15, 10, 30, 0)


def seeded(lpa_id='lpa-1', **flags):
    document = LpaDocument(lpa_id, 'session-1')
    return seed_document(document, **flags)


class TestBuildDraft(unittest.TestCase):
    def test_empty_document(self):
        sections = build_draft(LpaDocument('lpa-1', 'session-1'))

        titles = [s.title for s in sections]
        self.assertEqual(titles[0], 'The donor')
        self.assertIn('Certificate provider', titles)
        self.assertEqual(sections[1].blocks[0].content, 'No attorneys have been chosen yet.')

    def test_attorneys_listed(self):
        document = seeded(with_donor=True, with_attorneys=True)
        attorneys = build_draft(document)[1]

        self.assertEqual(attorneys.blocks[0].content,
                         'I appoint John Smith and Joan Smith as my attorneys.')
        bullets = [b.content for b in attorneys.blocks if b.type == 'bullet_item']
        self.assertEqual(len(bullets), 2)
        self.assertTrue(bullets[0].startswith('John Smith, born 2 January 2000'))

    def test_donor_paragraph(self):
        donor = build_draft(seeded(with_donor=True))[0]
        self.assertTrue(donor.blocks[0].content.startswith('Jose Smith, born 2 January 2000, of 1 RICHMOND PLACE'))

    def test_certificate_provider(self):
        provider = build_draft(seeded(with_certificate_provider=True))[-1]
        self.assertEqual(provider.blocks[0].content,
                         'Charlie Smith will confirm I understand this LPA.')
        self.assertEqual(provider.blocks[1].content,
                         'Relationship to the donor: Friend, known for 2 years or more.')

    def test_people_to_notify(self):
        people = build_draft(seeded(with_people_to_notify=True))[-2]

        self.assertEqual(people.title, 'People to notify')
        self.assertEqual(people.blocks[0].content,
                         'When the LPA is registered, tell Joanna Smith and Jordan Smith.')
        bullets = [b.content for b in people.blocks if b.type == 'bullet_item']
        self.assertEqual(bullets[0], 'Joanna Smith, 4 RICHMOND PLACE, B14 7ED')

    def test_replacements_step_in(self):
        replacements = build_draft(seeded(with_replacement_attorneys=True))[2]
        self.assertEqual(replacements.blocks[-1].content,
                         'Replacement attorneys step in: When none of the attorneys can act')

    def test_styles_created(self):
        styles = create_styles()
        for name in ('title', 'subtitle', 'section_heading', 'normal', 'bullet_item'):
            self.assertIn(name, styles)


class TestDeterminism(unittest.TestCase):
    def test_same_document_same_timestamp_same_pdf(self):
        pdf1, hash1 = generate_draft_pdf(seeded(with_donor=True, with_attorneys=True), FIXED_TIMESTAMP)
        pdf2, hash2 = generate_draft_pdf(seeded(with_donor=True, with_attorneys=True), FIXED_TIMESTAMP)

        self.assertEqual(pdf1, pdf2)
        self.assertEqual(hash1, hash2)

    def test_hash_matches_bytes(self):
        pdf_bytes, pdf_hash = generate_draft_pdf(seeded(with_donor=True), FIXED_TIMESTAMP)

        self.assertTrue(pdf_bytes.startswith(b'%PDF'))
        self.assertEqual(pdf_hash, calculate_sha256(pdf_bytes))
        self.assertEqual(len(pdf_hash), 64)

    def test_different_answers_different_pdf(self):
        _, hash1 = generate_draft_pdf(seeded(with_attorneys=True), FIXED_TIMESTAMP)
        _, hash2 = generate_draft_pdf(seeded(with_attorneys=True, with_replacement_attorneys=True),
                                      FIXED_TIMESTAMP)
        self.assertNotEqual(hash1, hash2)


class TestFormatting(unittest.TestCase):
    def test_format_date(self):
        self.assertEqual(format_date('2000-01-02'), '2 January 2000')
        self.assertEqual(format_date(None), '')

    def test_escape_text(self):
        self.assertEqual(escape_text('A & B <c>'), 'A &amp; B &lt;c&gt;')

    def test_london_time_in_summer(self):
        self.assertEqual(format_london_datetime(datetime(2024, 7, 1, 9, 0)),
                         '01 July 2024 at 10:00 AM BST')


if __name__ == '__main__':
    unittest.main()
