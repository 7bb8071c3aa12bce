"""
Unit tests for validation module.
"""

from datetime import date

import pytest
from lpa_journey.validation import (
    ValidationResult, validate_string, validate_email, validate_mobile,
    validate_postcode, normalise_postcode, validate_date_of_birth, age_on,
    validate_enum, validate_yes_no, validate_contact, validate_manual_address,
    validate_person_name, warnings_acknowledged, MAX_RESTRICTIONS_LENGTH
)


class TestValidationResult:
    def test_initially_valid(self):
        result = ValidationResult()
        assert result.is_valid is True
        assert len(result.errors) == 0

    def test_add_error(self):
        result = ValidationResult()
        result.add_error('field', 'message', 'code')
        assert result.is_valid is False
        assert len(result.errors) == 1
        assert result.errors[0].field == 'field'
        assert result.errors[0].message == 'message'
        assert result.errors[0].code == 'code'

    def test_one_error_per_field(self):
        result = ValidationResult()
        result.add_error('field', 'first', 'required')
        result.add_error('field', 'second', 'format')
        assert [e.message for e in result.errors] == ['first']

    def test_warnings_do_not_invalidate(self):
        result = ValidationResult()
        result.add_warning('date-of-birth', 'under 18', 'dob_under_18')
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_to_dict(self):
        result = ValidationResult()
        result.add_error('field', 'message', 'code')
        d = result.to_dict()
        assert d['ok'] is False
        assert len(d['errors']) == 1


class TestStringValidation:
    def test_required(self):
        result = ValidationResult()
        assert validate_string('  ', 'field', result) is False
        assert result.errors[0].code == 'required'

    def test_optional_blank(self):
        result = ValidationResult()
        assert validate_string('', 'field', result, required=False) is False
        assert result.is_valid is True

    def test_max_length(self):
        result = ValidationResult()
        assert validate_string('x' * (MAX_RESTRICTIONS_LENGTH + 1), 'restrictions', result,
                               max_length=MAX_RESTRICTIONS_LENGTH) is False
        assert result.errors[0].code == 'max_length'

    def test_html_tags_rejected(self):
        result = ValidationResult()
        assert validate_string('<b>John</b>', 'field', result) is False
        assert result.errors[0].code == 'invalid_chars'

    def test_non_string_rejected(self):
        result = ValidationResult()
        assert validate_string(123, 'first-names', result) is False
        assert result.errors[0].code == 'invalid'


class TestEmailValidation:
    def test_valid_email(self):
        result = ValidationResult()
        assert validate_email('test@example.com', 'field', result) is True

    def test_invalid_email(self):
        result = ValidationResult()
        assert validate_email('not-an-email', 'field', result) is False

    def test_missing_at(self):
        result = ValidationResult()
        assert validate_email('testexample.com', 'field', result) is False

    def test_optional_email(self):
        result = ValidationResult()
        validate_email('', 'email', result, required=False)
        assert result.is_valid is True


class TestMobileValidation:
    def test_uk_mobile(self):
        result = ValidationResult()
        assert validate_mobile('07535111111', 'mobile', result) is True

    def test_international_prefix(self):
        result = ValidationResult()
        assert validate_mobile('+447535111111', 'mobile', result) is True

    def test_landline_rejected(self):
        result = ValidationResult()
        assert validate_mobile('01214960000', 'mobile', result) is False


class TestPostcodeValidation:
    def test_valid_postcode(self):
        result = ValidationResult()
        assert validate_postcode('B14 7ED', 'postcode', result) is True

    def test_lower_case_without_space(self):
        result = ValidationResult()
        assert validate_postcode('b147ed', 'postcode', result) is True

    def test_invalid_postcode(self):
        result = ValidationResult()
        assert validate_postcode('4000', 'postcode', result) is False
        assert result.errors[0].code == 'format'

    def test_normalise(self):
        assert normalise_postcode(' b14   7ed ') == 'B14 7ED'
        assert normalise_postcode('sw1a1aa') == 'SW1A 1AA'
        assert normalise_postcode(None) == ''


class TestDateOfBirthValidation:
    TODAY = date(2024, 6, 1)

    def form(self, day, month, year):
        return {'dob-day': day, 'dob-month': month, 'dob-year': year}

    def test_valid_date(self):
        result = ValidationResult()
        parsed = validate_date_of_birth(self.form('2', '1', '2000'), 'dob', result, today=self.TODAY)
        assert parsed == date(2000, 1, 2)
        assert result.is_valid is True
        assert result.warnings == []

    def test_missing(self):
        result = ValidationResult()
        assert validate_date_of_birth({}, 'dob', result, today=self.TODAY) is None
        assert result.errors[0].code == 'required'

    def test_not_a_real_date(self):
        result = ValidationResult()
        assert validate_date_of_birth(self.form('31', '2', '2000'), 'dob', result, today=self.TODAY) is None
        assert result.errors[0].code == 'format'

    def test_future_date(self):
        result = ValidationResult()
        validate_date_of_birth(self.form('1', '1', '2030'), 'dob', result, today=self.TODAY)
        assert result.errors[0].code == 'future'

    def test_under_18_is_a_warning(self):
        result = ValidationResult()
        parsed = validate_date_of_birth(self.form('2', '6', '2006'), 'dob', result, today=self.TODAY)
        assert parsed == date(2006, 6, 2)
        assert result.is_valid is True
        assert result.warnings[0].code == 'dob_under_18'

    def test_age_on_birthday(self):
        assert age_on(date(2006, 6, 1), self.TODAY) == 18
        assert age_on(date(2006, 6, 2), self.TODAY) == 17


class TestChoiceValidation:
    def test_enum(self):
        result = ValidationResult()
        assert validate_enum('pfa', 'lpa-type', ['pfa', 'hw'], result) is True
        assert validate_enum('both', 'lpa-type', ['pfa', 'hw'], result) is False
        assert result.errors[0].code == 'enum'

    def test_yes_no(self):
        result = ValidationResult()
        assert validate_yes_no('yes', 'want', result) is True
        assert validate_yes_no('maybe', 'want', result) is False

    def test_contact_subset(self):
        result = ValidationResult()
        assert validate_contact(['email', 'text message'], 'contact', result) is True
        assert validate_contact('post', 'contact', result) is True

    def test_contact_empty(self):
        result = ValidationResult()
        assert validate_contact([], 'contact', result) is False
        assert result.errors[0].code == 'required'

    def test_non_string_choice_rejected(self):
        result = ValidationResult()
        assert validate_yes_no(True, 'want', result) is False
        assert validate_contact(5, 'contact', result) is False
        assert [e.code for e in result.errors] == ['invalid', 'invalid']


class TestAddressValidation:
    def test_valid_address(self):
        result = ValidationResult()
        form = {
            'address-line-1': '2 RICHMOND PLACE',
            'address-town': 'BIRMINGHAM',
            'address-postcode': 'B14 7ED'
        }
        assert validate_manual_address(form, result) is True

    def test_missing_line_1(self):
        result = ValidationResult()
        form = {'address-town': 'BIRMINGHAM', 'address-postcode': 'B14 7ED'}
        assert validate_manual_address(form, result) is False
        assert result.failing_fields() == ['address-line-1']

    def test_invalid_postcode(self):
        result = ValidationResult()
        form = {
            'address-line-1': '2 RICHMOND PLACE',
            'address-town': 'BIRMINGHAM',
            'address-postcode': '4000'
        }
        assert validate_manual_address(form, result) is False

    def test_long_optional_line(self):
        result = ValidationResult()
        form = {
            'address-line-1': '2 RICHMOND PLACE',
            'address-line-2': 'x' * 51,
            'address-town': 'BIRMINGHAM',
            'address-postcode': 'B14 7ED'
        }
        assert validate_manual_address(form, result) is False
        assert result.failing_fields() == ['address-line-2']


class TestPersonName:
    def test_both_names_required(self):
        result = ValidationResult()
        assert validate_person_name({'first-names': 'John'}, result) is False
        assert result.failing_fields() == ['last-name']


class TestWarningsAcknowledged:
    def test_no_warnings(self):
        assert warnings_acknowledged(ValidationResult(), {}) is True

    def test_matching_acknowledgement(self):
        result = ValidationResult()
        result.add_warning('date-of-birth', 'under 18', 'dob_under_18')
        assert warnings_acknowledged(result, {}) is False
        assert warnings_acknowledged(result, {'ignore-dob-warning': 'dob_under_18'}) is True

    def test_each_warning_needs_its_own_acknowledgement(self):
        result = ValidationResult()
        result.add_warning('date-of-birth', 'under 18', 'dob_under_18')
        result.add_warning('first-names', 'same name', 'name_matches_actor')
        assert warnings_acknowledged(result, {'ignore-dob-warning': 'dob_under_18'}) is False


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
