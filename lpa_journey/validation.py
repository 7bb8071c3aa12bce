"""
Field validation for journey step submissions.

Validation Rules Documentation:
===============================

1. NAMES
   - first-names, last-name: required, max 53 / 61 chars, no HTML

2. DATE OF BIRTH
   - Submitted as date-of-birth-day / -month / -year parts
   - Must be a real calendar date in the past
   - Under 18 raises a warning the user must acknowledge

3. EMAIL
   - Optional for attorneys, validated if provided

4. ADDRESS
   - lookup: postcode required
   - select: a candidate must be chosen
   - manual: line 1, town or city and postcode required

5. CHOICES
   - yes/no questions accept exactly 'yes' or 'no'
   - contact accepts any non-empty subset of email, phone, text message, post
   - lpa-type accepts pfa or hw; when-can-the-lpa-be-used accepts
     when-registered or when-capacity-lost
   - who-for accepts me or someone-else
   - when-to-step-in accepts one-can-no-longer-act, all-can-no-longer-act
     or some-other-way; some-other-way needs other-details
   - relationship accepts friend, neighbour, colleague, health-professional,
     legal-professional or other; other needs a description
   - how-long accepts gte-2-years; lt-2-years is refused (a certificate
     provider must have known the donor for at least 2 years)

6. RESTRICTIONS
   - Free text, max 10000 chars

7. PEOPLE TO NOTIFY
   - first-names, last-name as for attorneys; email optional
   - at most 5 people

Cross-Field Rules:
==================
- An attorney may not share a name with the donor or another actor
  (warning, acknowledged with ignore-name-warning)
"""

import re
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass
class ValidationError:
    """Represents a single validation error with precise field path."""
    field: str
    message: str
    code: str
    section: str = ''


@dataclass
class ValidationResult:
    """Container for validation results."""
    errors: List[ValidationError] = field(default_factory=list)
    is_valid: bool = True
    warnings: List[ValidationError] = field(default_factory=list)  # Must be acknowledged

    def add_error(self, field: str, message: str, code: str = 'invalid', section: str = ''):
        """Add a validation error. Only the first error per field is kept."""
        if self.has_error(field):
            return
        self.errors.append(ValidationError(field, message, code, section))
        self.is_valid = False

    def add_warning(self, field: str, message: str, code: str = 'warning', section: str = ''):
        """Add a warning that blocks until acknowledged."""
        self.warnings.append(ValidationError(field, message, code, section))

    def has_error(self, field: str) -> bool:
        return any(e.field == field for e in self.errors)

    def failing_fields(self) -> List[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            'ok': self.is_valid,
            'errors': [
                {'field': e.field, 'message': e.message, 'code': e.code, 'section': e.section}
                for e in self.errors
            ],
            'warnings': [
                {'field': w.field, 'message': w.message, 'code': w.code, 'section': w.section}
                for w in self.warnings
            ]
        }


# Constants for validation
MAX_FIRST_NAMES_LENGTH = 53
MAX_LAST_NAME_LENGTH = 61
MAX_ADDRESS_LINE_LENGTH = 50
MAX_RESTRICTIONS_LENGTH = 10000
ADULT_AGE = 18
MAX_PEOPLE_TO_NOTIFY = 5
MAX_DETAILS_LENGTH = 1000

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
UK_POSTCODE_PATTERN = re.compile(r'^[A-Z]{1,2}[0-9][A-Z0-9]? ?[0-9][A-Z]{2}$')
MOBILE_PATTERN = re.compile(r'^(\+44|0)7[0-9 ]{9,11}$')
HTML_TAG_PATTERN = re.compile(r'<[^>]+>')

# Enums - strictly enforced
YES_NO = ['yes', 'no']
CONTACT_METHODS = ['email', 'phone', 'text message', 'post']
LPA_TYPES = ['pfa', 'hw']
WHEN_CAN_BE_USED = ['when-registered', 'when-capacity-lost']
WHO_FOR = ['me', 'someone-else']
STEP_IN_ONE = 'one-can-no-longer-act'
STEP_IN_ALL = 'all-can-no-longer-act'
STEP_IN_OTHER = 'some-other-way'
STEP_IN_OPTIONS = [STEP_IN_ONE, STEP_IN_ALL, STEP_IN_OTHER]
PROFESSIONAL_RELATIONSHIPS = ['health-professional', 'legal-professional']
RELATIONSHIPS = ['friend', 'neighbour', 'colleague', *PROFESSIONAL_RELATIONSHIPS, 'other']
RELATIONSHIP_LENGTHS = ['gte-2-years', 'lt-2-years']


def validate_string(value: Any, field_name: str, result: ValidationResult,
                    required: bool = True, max_length: int = 100,
                    allow_html: bool = False, section: str = '') -> bool:
    """Validate a string field."""
    if value is None or str(value).strip() == '':
        if required:
            result.add_error(field_name, 'This field is required', 'required', section)
        return False

    if not isinstance(value, str):
        result.add_error(field_name, 'Enter text', 'invalid', section)
        return False

    str_value = value.strip()

    if len(str_value) > max_length:
        result.add_error(field_name, f'Maximum {max_length} characters allowed', 'max_length', section)
        return False

    if not allow_html and HTML_TAG_PATTERN.search(str_value):
        result.add_error(field_name, 'HTML tags are not allowed', 'invalid_chars', section)
        return False

    return True


def validate_email(value: Any, field_name: str, result: ValidationResult,
                   required: bool = True, section: str = '') -> bool:
    """Validate an email address."""
    if value is None or str(value).strip() == '':
        if required:
            result.add_error(field_name, 'This field is required', 'required', section)
        return False

    if not isinstance(value, str):
        result.add_error(field_name, 'Enter an email address in the correct format', 'invalid', section)
        return False

    str_value = value.strip()

    if len(str_value) > 254:
        result.add_error(field_name, 'Email address is too long', 'max_length', section)
        return False

    if not EMAIL_PATTERN.match(str_value):
        result.add_error(field_name, 'Enter an email address in the correct format', 'format', section)
        return False

    return True


def validate_mobile(value: Any, field_name: str, result: ValidationResult,
                    required: bool = True, section: str = '') -> bool:
    """Validate a UK mobile number."""
    if value is None or str(value).strip() == '':
        if required:
            result.add_error(field_name, 'This field is required', 'required', section)
        return False

    if not isinstance(value, str):
        result.add_error(field_name, 'Enter a UK mobile number', 'invalid', section)
        return False

    if not MOBILE_PATTERN.match(value.strip()):
        result.add_error(field_name, 'Enter a UK mobile number', 'format', section)
        return False

    return True


def normalise_postcode(value: Any) -> str:
    """Upper case with a single space before the inward code, e.g. 'B14 7ED'."""
    compact = ''.join(str(value or '').upper().split())
    if len(compact) > 3:
        return f'{compact[:-3]} {compact[-3:]}'
    return compact


def validate_postcode(value: Any, field_name: str, result: ValidationResult,
                      required: bool = True, section: str = '') -> bool:
    """Validate a UK postcode (case and spacing are normalised first)."""
    postcode = normalise_postcode(value)
    if not postcode:
        if required:
            result.add_error(field_name, 'Enter a postcode', 'required', section)
        return False

    if not UK_POSTCODE_PATTERN.match(postcode):
        result.add_error(field_name, 'Enter a real postcode', 'format', section)
        return False

    return True


def parse_date_parts(day: Any, month: Any, year: Any) -> Optional[date]:
    """Build a date from form parts; None if they do not form a real date."""
    try:
        return date(int(str(year).strip()), int(str(month).strip()), int(str(day).strip()))
    except (TypeError, ValueError):
        return None


def validate_date_of_birth(form: Dict[str, Any], prefix: str, result: ValidationResult,
                           section: str = '', today: Optional[date] = None) -> Optional[date]:
    """
    Validate a date of birth submitted as day, month and year parts.

    Args:
        form: Submitted form values
        prefix: Field prefix, e.g. 'date-of-birth'
        result: Result to record errors and warnings in
        section: Section name for grouping
        today: Reference date (defaults to today)

    Returns:
        The parsed date, or None if invalid
    """
    day = form.get(f'{prefix}-day')
    month = form.get(f'{prefix}-month')
    year = form.get(f'{prefix}-year')

    if not any(str(v or '').strip() for v in (day, month, year)):
        result.add_error(prefix, 'Enter date of birth', 'required', section)
        return None

    parsed = parse_date_parts(day, month, year)
    if parsed is None:
        result.add_error(prefix, 'Date of birth must be a real date', 'format', section)
        return None

    today = today or datetime.utcnow().date()
    if parsed > today:
        result.add_error(prefix, 'Date of birth must be in the past', 'future', section)
        return None

    if age_on(parsed, today) < ADULT_AGE:
        result.add_warning(prefix, 'This person is under 18', 'dob_under_18', section)

    return parsed


def age_on(dob: date, reference: date) -> int:
    years = reference.year - dob.year
    if (reference.month, reference.day) < (dob.month, dob.day):
        years -= 1
    return years


def validate_enum(value: Any, field_name: str, allowed: List[str],
                  result: ValidationResult, required: bool = True, section: str = '') -> bool:
    """Validate an enum field with strict matching."""
    if value is None or str(value).strip() == '':
        if required:
            result.add_error(field_name, 'Select an option', 'required', section)
        return False

    if not isinstance(value, str):
        result.add_error(field_name, f'Must be one of: {", ".join(allowed)}', 'invalid', section)
        return False

    if value.strip() not in allowed:
        result.add_error(field_name, f'Must be one of: {", ".join(allowed)}', 'enum', section)
        return False

    return True


def validate_yes_no(value: Any, field_name: str, result: ValidationResult, section: str = '') -> bool:
    return validate_enum(value, field_name, YES_NO, result, section=section)


def validate_contact(values: Any, field_name: str, result: ValidationResult, section: str = '') -> bool:
    """Validate a non-empty subset of the allowed contact methods."""
    if isinstance(values, str):
        values = [values]
    if not values:
        result.add_error(field_name, 'Select how you would like to be contacted', 'required', section)
        return False

    if not isinstance(values, (list, tuple)):
        result.add_error(field_name, 'Select how you would like to be contacted', 'invalid', section)
        return False

    for value in values:
        if value not in CONTACT_METHODS:
            result.add_error(field_name, 'Select how you would like to be contacted', 'enum', section)
            return False

    return True


def validate_manual_address(form: Dict[str, Any], result: ValidationResult, section: str = '') -> bool:
    """Validate a manually entered (or confirmed) address."""
    ok = validate_string(form.get('address-line-1'), 'address-line-1', result,
                         max_length=MAX_ADDRESS_LINE_LENGTH, section=section)
    for name in ('address-line-2', 'address-line-3'):
        if form.get(name):
            ok = validate_string(form.get(name), name, result,
                                 max_length=MAX_ADDRESS_LINE_LENGTH, section=section) and ok
    ok = validate_string(form.get('address-town'), 'address-town', result,
                         max_length=MAX_ADDRESS_LINE_LENGTH, section=section) and ok
    ok = validate_postcode(form.get('address-postcode'), 'address-postcode', result,
                           section=section) and ok
    return ok


def validate_person_name(form: Dict[str, Any], result: ValidationResult, section: str = '') -> bool:
    ok = validate_string(form.get('first-names'), 'first-names', result,
                         max_length=MAX_FIRST_NAMES_LENGTH, section=section)
    ok = validate_string(form.get('last-name'), 'last-name', result,
                         max_length=MAX_LAST_NAME_LENGTH, section=section) and ok
    return ok


def warnings_acknowledged(result: ValidationResult, form: Dict[str, Any]) -> bool:
    """
    True when every warning was shown before and is acknowledged.

    A warning is acknowledged by resubmitting with 'ignore-<code>' set to
    the warning's code, e.g. ignore-dob-warning=dob_under_18.
    """
    for warning in result.warnings:
        key = 'ignore-dob-warning' if warning.code == 'dob_under_18' else 'ignore-name-warning'
        if form.get(key) != warning.code:
            return False
    return True
