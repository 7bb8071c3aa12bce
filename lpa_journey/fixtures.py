"""
Development fixtures for the testing-start route.

Builds a document part-way through the journey so a page can be
exercised without clicking through everything before it.
"""

from typing import Dict, Any

from lpa_journey.answer_store import LpaDocument
from lpa_journey.collection_manager import (
    CollectionManager, ATTORNEYS, REPLACEMENT_ATTORNEYS, PEOPLE_TO_NOTIFY
)


def _richmond_place(number: int) -> Dict[str, str]:
    return {
        'line1': f'{number} RICHMOND PLACE',
        'line2': 'KINGS HEATH',
        'line3': 'WEST MIDLANDS',
        'town_or_city': 'BIRMINGHAM',
        'postcode': 'B14 7ED',
    }


def make_donor() -> Dict[str, Any]:
    return {
        'first_names': 'Jose',
        'last_name': 'Smith',
        'other_names': '',
        'date_of_birth': '2000-01-02',
        'address': _richmond_place(1),
    }


def make_attorney(first_names: str) -> Dict[str, Any]:
    return {
        'first_names': first_names,
        'last_name': 'Smith',
        'email': f'{first_names}@example.org',
        'date_of_birth': '2000-01-02',
        'address': _richmond_place(2),
    }


def make_person_to_notify(first_names: str) -> Dict[str, Any]:
    return {
        'first_names': first_names,
        'last_name': 'Smith',
        'email': f'{first_names}@example.org',
        'address': _richmond_place(4),
    }


def make_certificate_provider(first_names: str) -> Dict[str, Any]:
    return {
        'first_names': first_names,
        'last_name': 'Smith',
        'email': f'{first_names}@example.org',
        'mobile': '07535111111',
        'relationship': 'friend',
        'relationship_description': '',
        'relationship_length': 'gte-2-years',
    }


def seed_document(document: LpaDocument, with_donor: bool = False, with_attorneys: bool = False,
                  with_replacement_attorneys: bool = False,
                  with_certificate_provider: bool = False,
                  with_people_to_notify: bool = False) -> LpaDocument:
    """
    Fill a document with fixture answers.

    Args:
        document: The (usually fresh) document to fill
        with_donor: Add donor details and contact preference
        with_attorneys: Add John and Joan Smith as attorneys
        with_replacement_attorneys: Add Jane and Jorge Smith as replacements
        with_certificate_provider: Add Charlie Smith as certificate provider
        with_people_to_notify: Add Joanna and Jordan Smith as people to notify

    Returns:
        The same document
    """
    if with_donor:
        document.set('who_for', 'me')
        document.set('type', 'pfa')
        document.set('you', make_donor())
        document.set('contact', ['email'])

    if with_attorneys:
        attorneys = CollectionManager(document, ATTORNEYS)
        for name in ('John', 'Joan'):
            attorneys.add(make_attorney(name))

    if with_replacement_attorneys:
        document.set('want_replacement_attorneys', 'yes')
        replacements = CollectionManager(document, REPLACEMENT_ATTORNEYS)
        for name in ('Jane', 'Jorge'):
            replacements.add(make_attorney(name))
        document.set('how_replacements_step_in', 'all-can-no-longer-act')

    if with_certificate_provider:
        document.set('certificate_provider', make_certificate_provider('Charlie'))

    if with_people_to_notify:
        document.set('want_to_notify', 'yes')
        people = CollectionManager(document, PEOPLE_TO_NOTIFY)
        for name in ('Joanna', 'Jordan'):
            people.add(make_person_to_notify(name))

    return document
