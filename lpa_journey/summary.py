"""
Read-only views of the document for renderers.

Summary pages and the draft LPA read the document through these
functions only; nothing here writes to it.
"""

from typing import Dict, List, Any

from lpa_journey.answer_store import LpaDocument
from lpa_journey.collection_manager import ATTORNEYS, REPLACEMENT_ATTORNEYS, PEOPLE_TO_NOTIFY
from lpa_journey.records import (
    Attorney, Donor, CertificateProvider, PersonToNotify, attorneys_from_records,
    people_to_notify_from_records
)
from lpa_journey.utils import format_date, pluralise

COLLECTION_NOUNS = {
    ATTORNEYS: ('attorney', 'attorneys'),
    REPLACEMENT_ATTORNEYS: ('replacement attorney', 'replacement attorneys'),
    PEOPLE_TO_NOTIFY: ('person to notify', 'people to notify'),
}

WHEN_LABELS = {
    'when-registered': 'As soon as it is registered',
    'when-capacity-lost': 'Only if the donor does not have mental capacity',
}

TYPE_LABELS = {
    'pfa': 'Property and financial affairs',
    'hw': 'Health and welfare',
}

WHO_FOR_LABELS = {
    'me': 'The donor is making this LPA for themselves',
    'someone-else': 'This LPA is being made on behalf of someone else',
}

STEP_IN_LABELS = {
    'one-can-no-longer-act': 'As soon as one of the attorneys can no longer act',
    'all-can-no-longer-act': 'When none of the attorneys can act',
}

RELATIONSHIP_LABELS = {
    'friend': 'Friend',
    'neighbour': 'Neighbour',
    'colleague': 'Colleague',
    'health-professional': 'Health professional',
    'legal-professional': 'Legal professional',
}

RELATIONSHIP_LENGTH_LABELS = {
    'gte-2-years': '2 years or more',
}


def attorney_summary(attorney: Attorney) -> Dict[str, Any]:
    """One row of an attorney summary list."""
    return {
        'id': attorney.id,
        'name': attorney.full_name,
        'email': attorney.email,
        'date_of_birth': format_date(attorney.date_of_birth),
        'address': attorney.address.to_summary_line(),
        'complete': attorney.is_complete(),
    }


def person_to_notify_summary(person: PersonToNotify) -> Dict[str, Any]:
    return {
        'id': person.id,
        'name': person.full_name,
        'email': person.email,
        'address': person.address.to_summary_line(),
        'complete': person.is_complete(),
    }


def _summary_rows(document: LpaDocument, collection: str) -> List[Dict[str, Any]]:
    records = document.get_collection(collection)
    if collection == PEOPLE_TO_NOTIFY:
        return [person_to_notify_summary(p) for p in people_to_notify_from_records(records)]
    return [attorney_summary(a) for a in attorneys_from_records(records)]


def collection_summary(document: LpaDocument, collection: str) -> Dict[str, Any]:
    """
    Build the summary page content for a collection of people.

    Args:
        document: The document to read
        collection: Collection name

    Returns:
        Heading text and one row per record in insertion order
    """
    rows = _summary_rows(document, collection)
    singular, plural = COLLECTION_NOUNS.get(collection, ('record', 'records'))
    return {
        'heading': f'You have added {pluralise(len(rows), singular, plural)}',
        'count': len(rows),
        'rows': rows,
    }


def _step_in_label(document: LpaDocument) -> str:
    answer = document.get('how_replacements_step_in')
    if answer == 'some-other-way':
        return document.get('how_replacements_step_in_details') or ''
    return STEP_IN_LABELS.get(answer, '')


def _relationship_label(provider: CertificateProvider) -> str:
    if provider.relationship == 'other':
        return provider.relationship_description
    return RELATIONSHIP_LABELS.get(provider.relationship, '')


def lpa_summary(document: LpaDocument) -> Dict[str, Any]:
    """Everything the draft LPA and check page show."""
    donor = Donor.from_dict(document.get('you'))
    provider = CertificateProvider.from_dict(document.get('certificate_provider'))

    return {
        'lpa_id': document.id,
        'who_for': WHO_FOR_LABELS.get(document.get('who_for'), ''),
        'type': TYPE_LABELS.get(document.get('type'), ''),
        'donor': {
            'name': donor.full_name,
            'other_names': donor.other_names,
            'date_of_birth': format_date(donor.date_of_birth),
            'address': donor.address.to_single_line(),
        },
        'contact': document.get('contact') or [],
        'attorneys': _summary_rows(document, ATTORNEYS),
        'replacement_attorneys': _summary_rows(document, REPLACEMENT_ATTORNEYS),
        'replacements_step_in': _step_in_label(document),
        'when_can_be_used': WHEN_LABELS.get(document.get('when_can_be_used'), ''),
        'restrictions': document.get('restrictions') or '',
        'certificate_provider': {
            'name': provider.full_name,
            'email': provider.email,
            'mobile': provider.mobile,
            'relationship': _relationship_label(provider),
            'relationship_length': RELATIONSHIP_LENGTH_LABELS.get(provider.relationship_length, ''),
        },
        'people_to_notify': _summary_rows(document, PEOPLE_TO_NOTIFY),
    }


def attorney_names(rows: List[Dict[str, Any]]) -> str:
    names = [r['name'] for r in rows]
    if len(names) <= 1:
        return ''.join(names)
    return ', '.join(names[:-1]) + ' and ' + names[-1]
