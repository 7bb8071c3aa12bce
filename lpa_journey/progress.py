"""
Progress calculator for the task list.

Every status is derived from the document as it is now. Nothing is
cached, so a status can never go stale after a collection edit.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Any, Callable

from lpa_journey.answer_store import LpaDocument
from lpa_journey.collection_manager import ATTORNEYS, REPLACEMENT_ATTORNEYS, PEOPLE_TO_NOTIFY
from lpa_journey.errors import NotFound
from lpa_journey.records import (
    Donor, CertificateProvider, attorneys_from_records, people_to_notify_from_records
)


class TaskState(Enum):
    """Task list states."""
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class TaskStatus:
    """A section's state and its member count (1 for single-answer sections)."""
    state: TaskState
    count: int = 0

    @classmethod
    def not_started(cls) -> 'TaskStatus':
        return cls(TaskState.NOT_STARTED, 0)

    @classmethod
    def in_progress(cls, count: int = 1) -> 'TaskStatus':
        return cls(TaskState.IN_PROGRESS, count)

    @classmethod
    def completed(cls, count: int = 1) -> 'TaskStatus':
        return cls(TaskState.COMPLETED, count)

    def label(self, list_backed: bool = False) -> str:
        """Task list label, e.g. 'In progress (2)'."""
        if self.state == TaskState.NOT_STARTED:
            return 'Not started'
        text = 'In progress' if self.state == TaskState.IN_PROGRESS else 'Completed'
        if list_backed and self.count:
            return f'{text} ({self.count})'
        return text


@dataclass(frozen=True)
class Section:
    """A task list entry."""
    name: str
    title: str
    evaluate: Callable[[LpaDocument], TaskStatus]
    min_count: int = 0
    list_backed: bool = False
    path: str = ''


def _single_answer(field: str) -> Callable[[LpaDocument], TaskStatus]:
    def evaluate(document):
        if document.get(field) in (None, '', [], {}):
            return TaskStatus.not_started()
        return TaskStatus.completed(1)
    return evaluate


def _collection_status(records: List[Any], min_count: int) -> TaskStatus:
    count = len(records)
    if count == 0:
        return TaskStatus.not_started()
    if count >= min_count and all(r.is_complete() for r in records):
        return TaskStatus.completed(count)
    return TaskStatus.in_progress(count)


def _lpa_type(document):
    answered = [f for f in ('who_for', 'type') if document.get(f)]
    if not answered:
        return TaskStatus.not_started()
    if len(answered) == 2:
        return TaskStatus.completed(1)
    return TaskStatus.in_progress(1)


def _your_details(document):
    donor = Donor.from_dict(document.get('you'))
    contact = document.get('contact')
    if not document.get('you') and not contact:
        return TaskStatus.not_started()
    if donor.first_names and donor.last_name and donor.date_of_birth \
            and donor.address.is_complete() and contact:
        return TaskStatus.completed(1)
    return TaskStatus.in_progress(1)


def _choose_attorneys(document):
    return _collection_status(attorneys_from_records(document.get_collection(ATTORNEYS)), min_count=1)


def _choose_replacement_attorneys(document):
    want = document.get('want_replacement_attorneys')
    if want == 'no':
        return TaskStatus.completed(0)
    if want != 'yes':
        return TaskStatus.not_started()
    replacements = attorneys_from_records(document.get_collection(REPLACEMENT_ATTORNEYS))
    status = _collection_status(replacements, min_count=1)
    if len(replacements) >= 2 and not document.get('how_replacements_step_in'):
        return TaskStatus.in_progress(status.count)
    return status


def _restrictions(document):
    if document.has('restrictions'):
        return TaskStatus.completed(1)
    if document.get('restrictions_answer_later'):
        return TaskStatus.in_progress(1)
    return TaskStatus.not_started()


def _certificate_provider(document):
    if not document.get('certificate_provider'):
        return TaskStatus.not_started()
    if CertificateProvider.from_dict(document.get('certificate_provider')).is_complete():
        return TaskStatus.completed(1)
    return TaskStatus.in_progress(1)


def _people_to_notify(document):
    want = document.get('want_to_notify')
    if want == 'no':
        return TaskStatus.completed(0)
    if want != 'yes':
        return TaskStatus.not_started()
    return _collection_status(people_to_notify_from_records(document.get_collection(PEOPLE_TO_NOTIFY)),
                              min_count=1)


def _check_your_lpa(document):
    if document.get('checked') and document.get('happy_to_share'):
        return TaskStatus.completed(1)
    return TaskStatus.not_started()


def _pay_for_lpa(document):
    payment = document.get('payment') or {}
    if payment.get('reference'):
        return TaskStatus.completed(1)
    return TaskStatus.not_started()


SECTIONS = [
    Section('lpa_type', 'Choose your LPA type', _lpa_type, path='who-is-the-lpa-for'),
    Section('your_details', 'Provide your details', _your_details, path='your-details'),
    Section('choose_attorneys', 'Choose your attorneys', _choose_attorneys,
            min_count=1, list_backed=True, path='choose-attorneys'),
    Section('choose_replacement_attorneys', 'Choose your replacement attorneys',
            _choose_replacement_attorneys, list_backed=True, path='want-replacement-attorneys'),
    Section('when_can_the_lpa_be_used', 'Choose when your LPA can be used',
            _single_answer('when_can_be_used'), path='when-can-the-lpa-be-used'),
    Section('restrictions', 'Add restrictions to the LPA', _restrictions, path='restrictions'),
    Section('certificate_provider', 'Choose your certificate provider',
            _certificate_provider, path='certificate-provider-details'),
    Section('people_to_notify', 'People to notify', _people_to_notify,
            list_backed=True, path='do-you-want-to-notify-people'),
    Section('check_your_lpa', 'Check and send to your certificate provider',
            _check_your_lpa, path='check-your-lpa'),
    Section('pay_for_lpa', 'Pay for the LPA', _pay_for_lpa, path='about-payment'),
]

SECTIONS_BY_NAME = {s.name: s for s in SECTIONS}


def get_section(name: str) -> Section:
    try:
        return SECTIONS_BY_NAME[name]
    except KeyError:
        raise NotFound(f'Unknown section {name!r}') from None


def status_of(document: LpaDocument, section_name: str) -> TaskStatus:
    """Current status of one section."""
    return get_section(section_name).evaluate(document)


def task_list(document: LpaDocument) -> List[Dict[str, Any]]:
    """
    Build the task list for display.

    Returns:
        One entry per section in journey order
    """
    items = []
    for section in SECTIONS:
        status = section.evaluate(document)
        items.append({
            'section': section.name,
            'title': section.title,
            'path': section.path,
            'state': status.state.value,
            'count': status.count,
            'label': status.label(section.list_backed),
        })
    return items
