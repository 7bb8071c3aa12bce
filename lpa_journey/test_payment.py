"""
Payment Session Gate Tests

Tests for the single-use payment token:
- Issue and cookie attributes
- Consume exactly once
- Rejection of absent, malformed, forged, expired and abandoned tokens
- Payment answer written only after a good token
"""

import unittest
from datetime import datetime, timedelta

from lpa_journey import create_app, db
from lpa_journey.answer_store import LpaDocument
from lpa_journey.audit_logger import get_audit_trail_for_document, verify_audit_integrity
from lpa_journey.errors import TokenInvalid
from lpa_journey.models import PaymentSession
from lpa_journey.payment import PaymentSessionGate, PAY_COOKIE_NAME, confirm_payment


class PaymentTestCase(unittest.TestCase):
    """Base class providing an app context and a gate."""

    def setUp(self):
        self.app = create_app({
            'TESTING': True,
            'SECRET_KEY': 'test-secret-key',
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'WTF_CSRF_ENABLED': False,
            'RATELIMIT_ENABLED': False,
        })
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.gate = PaymentSessionGate('test-secret-key', max_age=90 * 60, secure=True)

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()


class TestIssue(PaymentTestCase):
    def test_token_set_cookie_attributes(self):
        token = self.gate.issue(lpa_id='lpa-1')

        kwargs = token.cookie_kwargs()
        self.assertEqual(kwargs['key'], PAY_COOKIE_NAME)
        self.assertEqual(kwargs['max_age'], 5400)
        self.assertTrue(kwargs['secure'])
        self.assertTrue(kwargs['httponly'])
        self.assertEqual(kwargs['samesite'], 'Lax')
        self.assertEqual(kwargs['path'], '/')

    def test_issue_records_session(self):
        token = self.gate.issue(lpa_id='lpa-1', payment_id='pay-123')

        payment_session = PaymentSession.query.filter_by(payment_id='pay-123').one()
        self.assertEqual(payment_session.lpa_id, 'lpa-1')
        self.assertTrue(payment_session.is_usable())
        self.assertEqual(token.payment_id, 'pay-123')

    def test_tokens_are_distinct(self):
        first = self.gate.issue()
        second = self.gate.issue()
        self.assertNotEqual(first.value, second.value)


class TestValidateAndConsume(PaymentTestCase):
    def test_consumed_exactly_once(self):
        """Issue, return from the provider, confirm twice."""
        token = self.gate.issue(lpa_id='lpa-1')

        self.assertTrue(self.gate.validate_and_consume(token.value))
        self.assertFalse(self.gate.validate_and_consume(token.value))

    def test_absent_token(self):
        self.assertFalse(self.gate.validate_and_consume(None))
        self.assertFalse(self.gate.validate_and_consume(''))

    def test_malformed_token(self):
        self.assertFalse(self.gate.validate_and_consume('not-a-token'))

    def test_forged_token(self):
        forger = PaymentSessionGate('another-secret')
        token = forger.issue()
        self.assertFalse(self.gate.validate_and_consume(token.value))

    def test_expired_session(self):
        token = self.gate.issue()
        payment_session = PaymentSession.query.one()
        payment_session.expires_at = datetime.utcnow() - timedelta(minutes=1)
        db.session.commit()

        with self.assertRaises(TokenInvalid):
            self.gate.consume(token.value)

    def test_token_for_another_lpa(self):
        token = self.gate.issue(lpa_id='lpa-1')

        with self.assertRaises(TokenInvalid):
            self.gate.consume(token.value, lpa_id='lpa-2')
        self.assertFalse(self.gate.validate_and_consume(token.value, lpa_id='lpa-2'))

        # Still usable by the LPA it was issued for
        self.assertTrue(self.gate.validate_and_consume(token.value, lpa_id='lpa-1'))

    def test_abandoned_token(self):
        token = self.gate.issue()
        self.assertTrue(self.gate.abandon(token.value))
        self.assertFalse(self.gate.validate_and_consume(token.value))

    def test_abandon_unknown_token(self):
        self.assertFalse(self.gate.abandon('not-a-token'))

    def test_rejection_is_audited(self):
        self.gate.validate_and_consume('not-a-token')

        valid, invalid, _ = verify_audit_integrity()
        self.assertEqual(invalid, 0)
        self.assertGreaterEqual(valid, 1)


class TestConfirmPayment(PaymentTestCase):
    def test_good_token_marks_paid(self):
        document = LpaDocument('lpa-1', 'session-1')
        token = self.gate.issue(lpa_id='lpa-1', payment_id='pay-123')

        self.assertTrue(confirm_payment(document, self.gate, token.value))

        payment = document.get('payment')
        self.assertEqual(payment['reference'], 'pay-123')
        actions = [e['action'] for e in get_audit_trail_for_document('lpa-1')]
        self.assertCountEqual(actions, ['payment_token_issued', 'payment_confirmed'])

    def test_bad_token_leaves_document_unpaid(self):
        document = LpaDocument('lpa-1', 'session-1')

        self.assertFalse(confirm_payment(document, self.gate, 'not-a-token'))

        self.assertIsNone(document.get('payment'))
        self.assertEqual(document.touched_fields, set())

    def test_token_from_another_document_rejected(self):
        token = self.gate.issue(lpa_id='lpa-1', payment_id='pay-123')
        other = LpaDocument('lpa-2', 'session-2')

        self.assertFalse(confirm_payment(other, self.gate, token.value))

        self.assertIsNone(other.get('payment'))
        payment_session = PaymentSession.query.filter_by(payment_id='pay-123').one()
        self.assertIsNone(payment_session.consumed_at)

    def test_reused_token_does_not_confirm_again(self):
        document = LpaDocument('lpa-1', 'session-1')
        token = self.gate.issue(lpa_id='lpa-1')
        confirm_payment(document, self.gate, token.value)

        other = LpaDocument('lpa-1', 'session-1')
        self.assertFalse(confirm_payment(other, self.gate, token.value))
        self.assertIsNone(other.get('payment'))


if __name__ == '__main__':
    unittest.main()
