"""
Step graph for the LPA journey.

Each step owns its required fields, its validation, the mutation it
applies and a next-step resolver. Resolvers are pure functions of the
document and the journey context and return a Transition: either go on
to another step carrying the context, or finish a sub-flow, which goes
back to the from-hint page (or a default) and drops the context.

Address entry is a three-state sub-flow per address:

    <base>          lookup a postcode        -> <base>/select
    <base>/select   choose a candidate       -> <base>/confirm
    <base>/confirm  confirm or edit by hand  -> from-hint or default

Confirming with a first line different from the one shown loops back
to <base>/confirm once with the edited value before finishing.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Any, Optional, Callable, Tuple

from lpa_journey.address_lookup import (
    AddressLookupProvider, AddressLookupError, InvalidPostcodeError, candidate_label
)
from lpa_journey.answer_store import LpaDocument
from lpa_journey.collection_manager import (
    CollectionManager, ATTORNEYS, REPLACEMENT_ATTORNEYS, PEOPLE_TO_NOTIFY
)
from lpa_journey.errors import NotFound
from lpa_journey.records import Address, Donor, CertificateProvider
from lpa_journey.validation import (
    ValidationResult, validate_person_name, validate_date_of_birth, validate_email,
    validate_mobile, validate_postcode, validate_manual_address, validate_yes_no,
    validate_contact, validate_enum, validate_string, normalise_postcode,
    LPA_TYPES, WHEN_CAN_BE_USED, WHO_FOR, STEP_IN_OPTIONS, STEP_IN_OTHER, RELATIONSHIPS,
    RELATIONSHIP_LENGTHS, MAX_RESTRICTIONS_LENGTH, MAX_DETAILS_LENGTH, MAX_PEOPLE_TO_NOTIFY
)

TASK_LIST = 'task-list'
PAYMENT_CONFIRMATION = 'payment-confirmation'

WHO_IS_THE_LPA_FOR = 'who-is-the-lpa-for'
LPA_TYPE = 'lpa-type'
YOUR_DETAILS = 'your-details'
YOUR_ADDRESS = 'your-address'
HOW_TO_CONTACT = 'how-would-you-like-to-be-contacted'
WANT_REPLACEMENT_ATTORNEYS = 'want-replacement-attorneys'
HOW_REPLACEMENTS_STEP_IN = 'how-should-replacement-attorneys-step-in'
WHEN_CAN_THE_LPA_BE_USED = 'when-can-the-lpa-be-used'
RESTRICTIONS = 'restrictions'
CERTIFICATE_PROVIDER_DETAILS = 'certificate-provider-details'
HOW_DO_YOU_KNOW_CERTIFICATE_PROVIDER = 'how-do-you-know-your-certificate-provider'
HOW_LONG_KNOWN_CERTIFICATE_PROVIDER = 'how-long-have-you-known-certificate-provider'
DO_YOU_WANT_TO_NOTIFY = 'do-you-want-to-notify-people'
CHECK_YOUR_LPA = 'check-your-lpa'
ABOUT_PAYMENT = 'about-payment'

SELECT_SUFFIX = '/select'
CONFIRM_SUFFIX = '/confirm'


@dataclass(frozen=True)
class JourneyContext:
    """
    Immutable context carried between steps (in the URL or session).

    from_hint: page to return to once the current sub-flow completes
    record_id: collection record the sub-flow is editing
    add_another: the user asked to add a new record from a summary
    candidate_line1: first address line shown on the confirm step
    reconfirm: the confirm step must be shown again
    """
    from_hint: Optional[str] = None
    record_id: Optional[str] = None
    add_another: bool = False
    candidate_line1: Optional[str] = None
    reconfirm: bool = False

    def evolve(self, **changes) -> 'JourneyContext':
        return replace(self, **changes)

    def to_query(self) -> Dict[str, str]:
        """Query parameters that reproduce this context on the next page."""
        query = {}
        if self.from_hint:
            query['from'] = self.from_hint
        if self.record_id:
            query['id'] = self.record_id
        if self.add_another:
            query['addAnother'] = '1'
        if self.candidate_line1 is not None:
            query['candidate'] = self.candidate_line1
        return query

    @classmethod
    def from_query(cls, args: Dict[str, Any]) -> 'JourneyContext':
        return cls(
            from_hint=args.get('from') or None,
            record_id=args.get('id') or None,
            add_another=args.get('addAnother') == '1',
            candidate_line1=args.get('candidate')
        )


@dataclass(frozen=True)
class Transition:
    """Outcome of a next-step resolver."""
    step_id: str
    context: JourneyContext


def go(step_id: str, context: JourneyContext) -> Transition:
    return Transition(step_id, context.evolve(reconfirm=False))


def finish(context: JourneyContext, default: str) -> Transition:
    """Complete a sub-flow, consuming the from-hint."""
    return Transition(context.from_hint or default, JourneyContext())


@dataclass
class Submission:
    """A single step submission as seen by validation and mutation."""
    form: Dict[str, Any]
    context: JourneyContext
    lookup: Optional[AddressLookupProvider] = None
    data: Dict[str, Any] = field(default_factory=dict)


Validator = Callable[[LpaDocument, Submission, ValidationResult], None]
Mutation = Callable[[LpaDocument, Submission], JourneyContext]
Resolver = Callable[[LpaDocument, JourneyContext], Transition]
Precondition = Callable[[LpaDocument, JourneyContext], Optional[str]]
Loader = Callable[[LpaDocument, JourneyContext], Dict[str, Any]]


def _no_validation(document, submission, result):
    pass


def _no_mutation(document, submission):
    return submission.context


def _no_values(document, context):
    return {}


@dataclass
class Step:
    """One page of the journey."""
    id: str
    resolve_next: Resolver
    required: Tuple[str, ...] = ()
    validate: Validator = _no_validation
    apply: Mutation = _no_mutation
    precondition: Optional[Precondition] = None
    section: str = ''
    terminal: bool = False
    load: Loader = _no_values

    def current_values(self, document: LpaDocument, context: JourneyContext) -> Dict[str, Any]:
        """Form values to pre-fill when the step is shown."""
        return self.load(document, context)

    def check_entry(self, document: LpaDocument, context: JourneyContext) -> Optional[str]:
        """Return the step to redirect to when this one cannot be entered now."""
        if self.precondition is None:
            return None
        return self.precondition(document, context)


class StepGraph:
    """Registry of steps keyed by id."""

    def __init__(self, steps: Optional[List[Step]] = None):
        self._steps: Dict[str, Step] = {}
        for step in steps or []:
            self.add(step)

    def add(self, step: Step):
        if step.id in self._steps:
            raise ValueError(f'Duplicate step {step.id!r}')
        self._steps[step.id] = step

    def get(self, step_id: str) -> Step:
        try:
            return self._steps[step_id]
        except KeyError:
            raise NotFound(f'Unknown step {step_id!r}') from None


# Address sub-flow

def _lookup_candidates(submission: Submission, result: ValidationResult) -> List[Address]:
    """Run a postcode lookup; provider failures become lookup-postcode errors."""
    postcode = normalise_postcode(submission.form.get('lookup-postcode'))
    if submission.lookup is None:
        result.add_error('lookup-postcode', 'Address lookup is unavailable', 'lookup_unavailable')
        return []
    try:
        addresses = submission.lookup.lookup(postcode)
    except InvalidPostcodeError:
        result.add_error('lookup-postcode', 'Enter a real postcode', 'invalid_postcode')
        return []
    except AddressLookupError:
        result.add_error('lookup-postcode', 'We could not look up that postcode', 'lookup_failed')
        return []
    if not addresses:
        result.add_error('lookup-postcode', 'No addresses found for that postcode', 'no_addresses_found')
    return addresses


def _candidates_data(addresses: List[Address]) -> List[Dict[str, str]]:
    return [{'value': a.encode(), 'label': candidate_label(a)} for a in addresses]


def _text(form: Dict[str, Any], name: str) -> str:
    """A submitted text field, stripped; anything that is not a string reads as empty."""
    value = form.get(name)
    return value.strip() if isinstance(value, str) else ''


def _address_from_form(form: Dict[str, Any]) -> Address:
    return Address(
        line1=_text(form, 'address-line-1'),
        line2=_text(form, 'address-line-2'),
        line3=_text(form, 'address-line-3'),
        town_or_city=_text(form, 'address-town'),
        postcode=normalise_postcode(form.get('address-postcode'))
    )


def _person_to_form(record: Dict[str, Any]) -> Dict[str, str]:
    values = {
        'first-names': record.get('first_names', ''),
        'last-name': record.get('last_name', ''),
        'email': record.get('email', ''),
    }
    dob = record.get('date_of_birth') or ''
    if dob:
        year, month, day = dob.split('-')
        values.update({'date-of-birth-day': str(int(day)), 'date-of-birth-month': str(int(month)),
                       'date-of-birth-year': year})
    return values


def _address_to_form(address: Address) -> Dict[str, str]:
    return {
        'address-line-1': address.line1,
        'address-line-2': address.line2,
        'address-line-3': address.line3,
        'address-town': address.town_or_city,
        'address-postcode': address.postcode,
    }


def address_steps(base: str, read: Callable[[LpaDocument, JourneyContext], Address],
                  write: Callable[[LpaDocument, JourneyContext, Address], None],
                  default_next: str, precondition: Optional[Precondition] = None,
                  section: str = '') -> List[Step]:
    """
    Build the lookup, select and confirm steps for one address.

    Args:
        base: Id of the lookup step; select and confirm ids derive from it
        read: Returns the address currently held for the context's record
        write: Stores the address for the record the context points at
        default_next: Where to go when no from-hint is carried
        precondition: Entry check shared by all three steps
        section: Progress section the address belongs to

    Returns:
        The three steps
    """
    select_id = base + SELECT_SUFFIX
    confirm_id = base + CONFIRM_SUFFIX

    def validate_lookup(document, submission, result):
        if validate_postcode(submission.form.get('lookup-postcode'), 'lookup-postcode', result):
            addresses = _lookup_candidates(submission, result)
            submission.data['addresses'] = _candidates_data(addresses)

    def validate_select(document, submission, result):
        address = Address.decode(submission.form.get('select-address', ''))
        if address is None or not address.is_complete():
            result.add_error('select-address', 'Select an address from the list', 'required')
            # Show the list again
            if submission.form.get('lookup-postcode'):
                submission.data['addresses'] = _candidates_data(
                    _lookup_candidates(submission, ValidationResult()))
            return
        submission.data['address'] = address

    def apply_select(document, submission):
        address = submission.data['address']
        write(document, submission.context, address)
        return submission.context.evolve(candidate_line1=address.line1)

    def validate_confirm(document, submission, result):
        validate_manual_address(submission.form, result)

    def apply_confirm(document, submission):
        address = _address_from_form(submission.form)
        write(document, submission.context, address)
        shown = submission.context.candidate_line1
        if shown is not None and shown != address.line1:
            return submission.context.evolve(candidate_line1=address.line1, reconfirm=True)
        return submission.context.evolve(candidate_line1=None, reconfirm=False)

    def load_lookup(document, context):
        return {'lookup-postcode': read(document, context).postcode}

    def load_confirm(document, context):
        return _address_to_form(read(document, context))

    def after_confirm(document, context):
        if context.reconfirm:
            return go(confirm_id, context)
        return finish(context, default_next)

    return [
        Step(base, required=('lookup-postcode',), validate=validate_lookup,
             resolve_next=lambda d, c: go(select_id, c), precondition=precondition, section=section,
             load=load_lookup),
        Step(select_id, required=('select-address',), validate=validate_select, apply=apply_select,
             resolve_next=lambda d, c: go(confirm_id, c), precondition=precondition, section=section),
        Step(confirm_id, required=('address-line-1', 'address-town', 'address-postcode'),
             validate=validate_confirm, apply=apply_confirm, resolve_next=after_confirm,
             precondition=precondition, section=section, load=load_confirm),
    ]


# Actor names, for duplicate-name warnings

def _actor_names(document: LpaDocument, exclude_id: Optional[str] = None) -> List[Tuple[str, str, str]]:
    names = []
    donor = Donor.from_dict(document.get('you'))
    if donor.first_names:
        names.append(('donor', donor.first_names, donor.last_name))
    for collection in (ATTORNEYS, REPLACEMENT_ATTORNEYS, PEOPLE_TO_NOTIFY):
        for record in document.get_collection(collection):
            if record.get('id') != exclude_id:
                names.append((collection, record.get('first_names', ''), record.get('last_name', '')))
    provider = document.get('certificate_provider') or {}
    if provider.get('first_names'):
        names.append(('certificate_provider', provider['first_names'], provider.get('last_name', '')))
    return names


def _warn_on_name_clash(document, submission, result, exclude_id=None, own_role=None):
    first = _text(submission.form, 'first-names')
    last = _text(submission.form, 'last-name')
    for role, other_first, other_last in _actor_names(document, exclude_id):
        if role == own_role:
            continue
        if (first, last) == (other_first, other_last):
            result.add_warning('first-names', f'{first} {last} is already named in this LPA as {role}',
                               'name_matches_actor')
            return


# Collections of people

@dataclass(frozen=True)
class CollectionFlow:
    """Step ids and form fields for one collection of people."""
    collection: str
    choose: str
    address: str
    summary: str
    remove: str
    when_empty: str
    after_summary: str
    section: str
    add_field: str = 'add-attorney'
    remove_field: str = 'remove-attorney'
    with_date_of_birth: bool = True
    max_count: Optional[int] = None
    # Step to take instead of after_summary, when it returns one
    branch: Optional[Callable[[LpaDocument], Optional[str]]] = None


def _replacements_step_in_branch(document: LpaDocument) -> Optional[str]:
    if CollectionManager(document, REPLACEMENT_ATTORNEYS).count() >= 2:
        return HOW_REPLACEMENTS_STEP_IN
    return None


ATTORNEY_FLOW = CollectionFlow(
    collection=ATTORNEYS,
    choose='choose-attorneys',
    address='choose-attorneys-address',
    summary='choose-attorneys-summary',
    remove='remove-attorney',
    when_empty='choose-attorneys',
    after_summary=WANT_REPLACEMENT_ATTORNEYS,
    section='choose_attorneys',
)

REPLACEMENT_ATTORNEY_FLOW = CollectionFlow(
    collection=REPLACEMENT_ATTORNEYS,
    choose='choose-replacement-attorneys',
    address='choose-replacement-attorneys-address',
    summary='choose-replacement-attorneys-summary',
    remove='remove-replacement-attorney',
    when_empty=WANT_REPLACEMENT_ATTORNEYS,
    after_summary=WHEN_CAN_THE_LPA_BE_USED,
    section='choose_replacement_attorneys',
    branch=_replacements_step_in_branch,
)

PEOPLE_TO_NOTIFY_FLOW = CollectionFlow(
    collection=PEOPLE_TO_NOTIFY,
    choose='choose-people-to-notify',
    address='choose-people-to-notify-address',
    summary='choose-people-to-notify-summary',
    remove='remove-person-to-notify',
    when_empty=DO_YOU_WANT_TO_NOTIFY,
    after_summary=TASK_LIST,
    section='people_to_notify',
    add_field='add-person-to-notify',
    remove_field='remove-person-to-notify',
    with_date_of_birth=False,
    max_count=MAX_PEOPLE_TO_NOTIFY,
)

COLLECTION_FLOWS = (ATTORNEY_FLOW, REPLACEMENT_ATTORNEY_FLOW, PEOPLE_TO_NOTIFY_FLOW)


def collection_steps(flow: CollectionFlow) -> List[Step]:
    """Build details, address, summary and removal steps for a collection of people."""

    def manager(document):
        return CollectionManager(document, flow.collection)

    def is_full(document):
        return flow.max_count is not None and manager(document).count() >= flow.max_count

    def choose_precondition(document, context):
        if context.record_id and not manager(document).exists(context.record_id):
            return flow.choose if manager(document).count() == 0 else flow.summary
        if not context.record_id and not context.add_another and manager(document).count() > 0:
            return flow.summary
        if not context.record_id and is_full(document):
            return flow.summary
        return None

    def validate_details(document, submission, result):
        validate_person_name(submission.form, result)
        if flow.with_date_of_birth:
            dob = validate_date_of_birth(submission.form, 'date-of-birth', result)
            if dob is not None:
                submission.data['date_of_birth'] = dob.isoformat()
        validate_email(submission.form.get('email'), 'email', result, required=False)
        _warn_on_name_clash(document, submission, result, exclude_id=submission.context.record_id)

    def apply_details(document, submission):
        form = submission.form
        fields = {
            'first_names': _text(form, 'first-names'),
            'last_name': _text(form, 'last-name'),
            'email': _text(form, 'email'),
        }
        if flow.with_date_of_birth:
            fields['date_of_birth'] = submission.data['date_of_birth']
        context = submission.context
        if context.record_id:
            manager(document).amend(context.record_id, fields)
            return context.evolve(add_another=False)
        fields['address'] = Address().to_dict()
        id = manager(document).add(fields)
        return context.evolve(record_id=id, add_another=False)

    def after_details(document, context):
        if context.from_hint:
            return finish(context, flow.summary)
        return go(flow.address, context)

    def address_precondition(document, context):
        if not manager(document).exists(context.record_id):
            return flow.choose
        return None

    def read_address(document, context):
        if not manager(document).exists(context.record_id):
            return Address()
        return Address.from_dict(manager(document).get(context.record_id).get('address'))

    def write_address(document, context, address):
        manager(document).amend(context.record_id, {'address': address.to_dict()})

    def load_details(document, context):
        if not manager(document).exists(context.record_id):
            return {}
        return _person_to_form(manager(document).get(context.record_id))

    def summary_precondition(document, context):
        if manager(document).count() == 0:
            return flow.when_empty
        return None

    def validate_summary(document, submission, result):
        answer = submission.form.get(flow.add_field)
        if validate_yes_no(answer, flow.add_field, result) and answer == 'yes' and is_full(document):
            result.add_error(flow.add_field, f'You can add up to {flow.max_count}', 'max_reached')

    def after_summary(document, context):
        # Resolver sees the answer through the context set by apply
        if context.add_another:
            return go(flow.choose, JourneyContext(add_another=True))
        branch = flow.branch(document) if flow.branch else None
        return finish(context, branch or flow.after_summary)

    def apply_summary(document, submission):
        return submission.context.evolve(add_another=submission.form.get(flow.add_field) == 'yes')

    def remove_precondition(document, context):
        if not manager(document).exists(context.record_id):
            return flow.summary
        return None

    def validate_remove(document, submission, result):
        validate_yes_no(submission.form.get(flow.remove_field), flow.remove_field, result)

    def apply_remove(document, submission):
        if submission.form.get(flow.remove_field) == 'yes':
            manager(document).remove(submission.context.record_id)
        return JourneyContext()

    def after_remove(document, context):
        if manager(document).count() == 0:
            return go(flow.when_empty, JourneyContext())
        return go(flow.summary, JourneyContext())

    return [
        Step(flow.choose, required=('first-names', 'last-name'), validate=validate_details,
             apply=apply_details, resolve_next=after_details, precondition=choose_precondition,
             section=flow.section, load=load_details),
        *address_steps(flow.address, read_address, write_address, flow.summary,
                       precondition=address_precondition, section=flow.section),
        Step(flow.summary, required=(flow.add_field,), validate=validate_summary,
             apply=apply_summary, resolve_next=after_summary, precondition=summary_precondition,
             section=flow.section),
        Step(flow.remove, required=(flow.remove_field,), validate=validate_remove,
             apply=apply_remove, resolve_next=after_remove, precondition=remove_precondition,
             section=flow.section),
    ]


# Donor

def _validate_who_for(document, submission, result):
    validate_enum(submission.form.get('who-for'), 'who-for', WHO_FOR, result)


def _apply_who_for(document, submission):
    document.set('who_for', _text(submission.form, 'who-for'))
    return submission.context


def _after_who_for(document, context):
    if context.from_hint:
        return finish(context, TASK_LIST)
    return go(LPA_TYPE, context)


def _validate_lpa_type(document, submission, result):
    validate_enum(submission.form.get('lpa-type'), 'lpa-type', LPA_TYPES, result)


def _apply_lpa_type(document, submission):
    document.set('type', _text(submission.form, 'lpa-type'))
    return submission.context


def _validate_your_details(document, submission, result):
    validate_person_name(submission.form, result)
    validate_string(submission.form.get('other-names'), 'other-names', result, required=False)
    dob_result = ValidationResult()
    dob = validate_date_of_birth(submission.form, 'date-of-birth', dob_result)
    for error in dob_result.errors:
        result.add_error(error.field, error.message, error.code)
    if dob_result.warnings:
        # A donor must be an adult; this is not a warning that can be waived
        result.add_error('date-of-birth', 'You must be 18 or over to make an LPA', 'under_18')
    if dob is not None:
        submission.data['date_of_birth'] = dob.isoformat()


def _apply_your_details(document, submission):
    form = submission.form
    you = document.get('you') or {}
    you.update({
        'first_names': _text(form, 'first-names'),
        'last_name': _text(form, 'last-name'),
        'other_names': _text(form, 'other-names'),
        'date_of_birth': submission.data['date_of_birth'],
    })
    document.set('you', you)
    return submission.context


def _after_your_details(document, context):
    if context.from_hint:
        return finish(context, TASK_LIST)
    return go(YOUR_ADDRESS, context)


def _require_donor(document, context):
    if not (document.get('you') or {}).get('first_names'):
        return YOUR_DETAILS
    return None


def _read_donor_address(document, context):
    return Address.from_dict((document.get('you') or {}).get('address'))


def _load_your_details(document, context):
    you = document.get('you') or {}
    values = _person_to_form(you)
    values['other-names'] = you.get('other_names', '')
    return values


def _write_donor_address(document, context, address):
    you = document.get('you') or {}
    you['address'] = address.to_dict()
    document.set('you', you)


def _validate_contact(document, submission, result):
    validate_contact(submission.form.get('contact'), 'contact', result)


def _apply_contact(document, submission):
    contact = submission.form['contact']
    if isinstance(contact, str):
        contact = [contact]
    document.set('contact', list(contact))
    return submission.context


# Replacement attorneys, when, restrictions

def _validate_want_replacements(document, submission, result):
    validate_yes_no(submission.form.get('want'), 'want', result)


def _apply_want_replacements(document, submission):
    want = _text(submission.form, 'want')
    document.set('want_replacement_attorneys', want)
    if want == 'no':
        document.replace_collection(REPLACEMENT_ATTORNEYS, [])
        document.delete('how_replacements_step_in')
        document.delete('how_replacements_step_in_details')
    return submission.context


def _after_want_replacements(document, context):
    if document.get('want_replacement_attorneys') == 'yes':
        return go(REPLACEMENT_ATTORNEY_FLOW.choose, JourneyContext())
    return finish(context, WHEN_CAN_THE_LPA_BE_USED)


def _require_two_replacements(document, context):
    if _replacements_step_in_branch(document) is None:
        return REPLACEMENT_ATTORNEY_FLOW.summary
    return None


def _validate_step_in(document, submission, result):
    answer = submission.form.get('when-to-step-in')
    if validate_enum(answer, 'when-to-step-in', STEP_IN_OPTIONS, result) and answer == STEP_IN_OTHER:
        validate_string(submission.form.get('other-details'), 'other-details', result,
                        max_length=MAX_DETAILS_LENGTH)


def _apply_step_in(document, submission):
    answer = _text(submission.form, 'when-to-step-in')
    document.set('how_replacements_step_in', answer)
    if answer == STEP_IN_OTHER:
        document.set('how_replacements_step_in_details', _text(submission.form, 'other-details'))
    else:
        document.delete('how_replacements_step_in_details')
    return submission.context


def _load_step_in(document, context):
    return {
        'when-to-step-in': document.get('how_replacements_step_in') or '',
        'other-details': document.get('how_replacements_step_in_details') or '',
    }


def _validate_when(document, submission, result):
    validate_enum(submission.form.get('when'), 'when', WHEN_CAN_BE_USED, result)


def _apply_when(document, submission):
    document.set('when_can_be_used', _text(submission.form, 'when'))
    return submission.context


def _validate_restrictions(document, submission, result):
    if submission.form.get('answer-later') == '1':
        return
    validate_string(submission.form.get('restrictions'), 'restrictions', result, required=False,
                    max_length=MAX_RESTRICTIONS_LENGTH, allow_html=False)


def _apply_restrictions(document, submission):
    if submission.form.get('answer-later') == '1':
        document.set('restrictions_answer_later', True)
    else:
        document.set('restrictions', _text(submission.form, 'restrictions'))
        document.delete('restrictions_answer_later')
    return submission.context


# Certificate provider

def _validate_certificate_provider(document, submission, result):
    validate_person_name(submission.form, result)
    validate_email(submission.form.get('email'), 'email', result, required=False)
    validate_mobile(submission.form.get('mobile'), 'mobile', result)
    _warn_on_name_clash(document, submission, result, own_role='certificate_provider')


def _apply_certificate_provider(document, submission):
    form = submission.form
    provider = document.get('certificate_provider') or {}
    provider.update({
        'first_names': _text(form, 'first-names'),
        'last_name': _text(form, 'last-name'),
        'email': _text(form, 'email'),
        'mobile': _text(form, 'mobile'),
    })
    document.set('certificate_provider', provider)
    return submission.context


def _after_certificate_provider(document, context):
    if context.from_hint:
        return finish(context, TASK_LIST)
    return go(HOW_DO_YOU_KNOW_CERTIFICATE_PROVIDER, context)


def _require_certificate_provider(document, context):
    if not CertificateProvider.from_dict(document.get('certificate_provider')).first_names:
        return CERTIFICATE_PROVIDER_DETAILS
    return None


def _validate_relationship(document, submission, result):
    answer = submission.form.get('relationship')
    if validate_enum(answer, 'relationship', RELATIONSHIPS, result) and answer == 'other':
        validate_string(submission.form.get('description'), 'description', result,
                        max_length=MAX_DETAILS_LENGTH)


def _apply_relationship(document, submission):
    provider = document.get('certificate_provider') or {}
    relationship = _text(submission.form, 'relationship')
    provider['relationship'] = relationship
    provider['relationship_description'] = (
        _text(submission.form, 'description') if relationship == 'other' else '')
    if CertificateProvider.from_dict(provider).is_professional:
        # Professionals do not need to have known the donor for any time
        provider['relationship_length'] = ''
    document.set('certificate_provider', provider)
    return submission.context


def _after_relationship(document, context):
    if CertificateProvider.from_dict(document.get('certificate_provider')).is_professional:
        return finish(context, TASK_LIST)
    return go(HOW_LONG_KNOWN_CERTIFICATE_PROVIDER, context)


def _load_relationship(document, context):
    provider = CertificateProvider.from_dict(document.get('certificate_provider'))
    return {'relationship': provider.relationship, 'description': provider.relationship_description}


def _require_personal_relationship(document, context):
    provider = CertificateProvider.from_dict(document.get('certificate_provider'))
    if not provider.first_names:
        return CERTIFICATE_PROVIDER_DETAILS
    if not provider.relationship or provider.is_professional:
        return HOW_DO_YOU_KNOW_CERTIFICATE_PROVIDER
    return None


def _validate_relationship_length(document, submission, result):
    answer = submission.form.get('how-long')
    if validate_enum(answer, 'how-long', RELATIONSHIP_LENGTHS, result) and answer == 'lt-2-years':
        result.add_error('how-long', 'Your certificate provider must have known you for at least 2 years',
                         'known_too_briefly')


def _apply_relationship_length(document, submission):
    provider = document.get('certificate_provider') or {}
    provider['relationship_length'] = _text(submission.form, 'how-long')
    document.set('certificate_provider', provider)
    return submission.context


# People to notify

def _validate_want_to_notify(document, submission, result):
    validate_yes_no(submission.form.get('want-to-notify'), 'want-to-notify', result)


def _apply_want_to_notify(document, submission):
    want = _text(submission.form, 'want-to-notify')
    document.set('want_to_notify', want)
    if want == 'no':
        document.replace_collection(PEOPLE_TO_NOTIFY, [])
    return submission.context


def _after_want_to_notify(document, context):
    if document.get('want_to_notify') == 'yes':
        return go(PEOPLE_TO_NOTIFY_FLOW.choose, JourneyContext())
    return finish(context, TASK_LIST)


# Check and pay

def _require_attorney(document, context):
    if CollectionManager(document, ATTORNEYS).count() == 0:
        return TASK_LIST
    return None


def _validate_check(document, submission, result):
    if submission.form.get('checked') != '1':
        result.add_error('checked', 'Confirm you have checked your LPA', 'required')
    if submission.form.get('happy-to-share') != '1':
        result.add_error('happy-to-share', 'Confirm you are happy to share your LPA', 'required')


def _apply_check(document, submission):
    document.set('checked', True)
    document.set('happy_to_share', True)
    return submission.context


def _require_checked(document, context):
    if not document.get('checked'):
        return CHECK_YOUR_LPA
    return None


def _fixed(step_id):
    return lambda document, context: finish(context, step_id)


def build_lpa_journey() -> StepGraph:
    """The complete donor journey."""
    graph = StepGraph([
        Step(TASK_LIST, resolve_next=_fixed(TASK_LIST), terminal=True),
        Step(WHO_IS_THE_LPA_FOR, required=('who-for',), validate=_validate_who_for,
             apply=_apply_who_for, resolve_next=_after_who_for, section='lpa_type'),
        Step(LPA_TYPE, required=('lpa-type',), validate=_validate_lpa_type, apply=_apply_lpa_type,
             resolve_next=_fixed(TASK_LIST), section='lpa_type'),
        Step(YOUR_DETAILS, required=('first-names', 'last-name'), validate=_validate_your_details,
             apply=_apply_your_details, resolve_next=_after_your_details, section='your_details',
             load=_load_your_details),
        *address_steps(YOUR_ADDRESS, _read_donor_address, _write_donor_address, HOW_TO_CONTACT,
                       precondition=_require_donor, section='your_details'),
        Step(HOW_TO_CONTACT, required=('contact',), validate=_validate_contact, apply=_apply_contact,
             resolve_next=_fixed(TASK_LIST), section='your_details'),
        *collection_steps(ATTORNEY_FLOW),
        Step(WANT_REPLACEMENT_ATTORNEYS, required=('want',), validate=_validate_want_replacements,
             apply=_apply_want_replacements, resolve_next=_after_want_replacements,
             section='choose_replacement_attorneys'),
        *collection_steps(REPLACEMENT_ATTORNEY_FLOW),
        Step(HOW_REPLACEMENTS_STEP_IN, required=('when-to-step-in',), validate=_validate_step_in,
             apply=_apply_step_in, resolve_next=_fixed(WHEN_CAN_THE_LPA_BE_USED),
             precondition=_require_two_replacements, section='choose_replacement_attorneys',
             load=_load_step_in),
        Step(WHEN_CAN_THE_LPA_BE_USED, required=('when',), validate=_validate_when,
             apply=_apply_when, resolve_next=_fixed(RESTRICTIONS), section='when_can_the_lpa_be_used'),
        Step(RESTRICTIONS, validate=_validate_restrictions, apply=_apply_restrictions,
             resolve_next=_fixed(CERTIFICATE_PROVIDER_DETAILS), section='restrictions'),
        Step(CERTIFICATE_PROVIDER_DETAILS, required=('first-names', 'last-name', 'mobile'),
             validate=_validate_certificate_provider, apply=_apply_certificate_provider,
             resolve_next=_after_certificate_provider, section='certificate_provider'),
        Step(HOW_DO_YOU_KNOW_CERTIFICATE_PROVIDER, required=('relationship',),
             validate=_validate_relationship, apply=_apply_relationship,
             resolve_next=_after_relationship, precondition=_require_certificate_provider,
             section='certificate_provider', load=_load_relationship),
        Step(HOW_LONG_KNOWN_CERTIFICATE_PROVIDER, required=('how-long',),
             validate=_validate_relationship_length, apply=_apply_relationship_length,
             resolve_next=_fixed(TASK_LIST), precondition=_require_personal_relationship,
             section='certificate_provider'),
        Step(DO_YOU_WANT_TO_NOTIFY, required=('want-to-notify',), validate=_validate_want_to_notify,
             apply=_apply_want_to_notify, resolve_next=_after_want_to_notify,
             section='people_to_notify'),
        *collection_steps(PEOPLE_TO_NOTIFY_FLOW),
        Step(CHECK_YOUR_LPA, required=('checked', 'happy-to-share'), validate=_validate_check,
             apply=_apply_check, resolve_next=_fixed(ABOUT_PAYMENT), precondition=_require_attorney,
             section='check_your_lpa'),
        Step(ABOUT_PAYMENT, resolve_next=_fixed(PAYMENT_CONFIRMATION), precondition=_require_checked,
             section='pay_for_lpa'),
    ])
    return graph
