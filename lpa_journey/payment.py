"""
Payment session gate.

A signed, short-lived token is set as the 'pay' cookie before the user
is sent to the payment provider and is checked and consumed when they
come back to the confirmation page. The signature (itsdangerous) stops
forged or stale cookies; the PaymentSession row makes each token
single-use.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

from flask import current_app
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from lpa_journey import db
from lpa_journey.answer_store import LpaDocument
from lpa_journey.audit_logger import (
    log_payment_token_issued, log_payment_token_rejected, log_payment_confirmed
)
from lpa_journey.errors import TokenInvalid
from lpa_journey.models import PaymentSession

PAY_COOKIE_NAME = 'pay'
# A payment can be resumed up to 90 minutes after creation
PAYMENT_SESSION_MAX_AGE = 90 * 60
TOKEN_SALT = 'lpa-payment-session'


@dataclass(frozen=True)
class TokenSet:
    """Everything needed to set the payment cookie."""
    cookie_name: str
    value: str
    payment_id: str
    max_age: int
    secure: bool
    http_only: bool = True
    same_site: str = 'Lax'
    path: str = '/'

    def cookie_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for Flask's response.set_cookie."""
        return {
            'key': self.cookie_name,
            'value': self.value,
            'max_age': self.max_age,
            'secure': self.secure,
            'httponly': self.http_only,
            'samesite': self.same_site,
            'path': self.path,
        }


class PaymentSessionGate:
    """Issues and consumes payment tokens."""

    def __init__(self, secret_key: str, max_age: int = PAYMENT_SESSION_MAX_AGE,
                 secure: bool = True):
        self.max_age = max_age
        self.secure = secure
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)

    def issue(self, lpa_id: Optional[str] = None, payment_id: Optional[str] = None) -> TokenSet:
        """
        Create a payment session and its signed cookie value.

        Args:
            lpa_id: Document the payment is for
            payment_id: Provider payment id, generated when not given

        Returns:
            The TokenSet to set on the response before redirecting
        """
        nonce = secrets.token_urlsafe(32)
        payment_id = payment_id or secrets.token_hex(8)

        payment_session = PaymentSession(
            nonce=nonce,
            payment_id=payment_id,
            lpa_id=lpa_id,
            expires_at=datetime.utcnow() + timedelta(seconds=self.max_age)
        )
        db.session.add(payment_session)
        db.session.commit()

        log_payment_token_issued(lpa_id=lpa_id, payment_id=payment_id)

        return TokenSet(
            cookie_name=PAY_COOKIE_NAME,
            value=self._serializer.dumps({'n': nonce, 'p': payment_id}),
            payment_id=payment_id,
            max_age=self.max_age,
            secure=self.secure
        )

    def consume(self, token: Optional[str], lpa_id: Optional[str] = None) -> PaymentSession:
        """
        Check a token and mark it used.

        Args:
            token: Signed cookie value
            lpa_id: Document being confirmed; the token must have been issued for it

        Raises:
            TokenInvalid: absent, malformed, expired, abandoned, already used
                or issued for another LPA
        """
        payment_session = self._lookup(token)
        if lpa_id is not None and payment_session.lpa_id != lpa_id:
            raise TokenInvalid('Payment token is for another LPA')

        # Conditional update so two concurrent confirmations cannot both win
        updated = PaymentSession.query.filter_by(
            id=payment_session.id, consumed_at=None, abandoned_at=None
        ).update({'consumed_at': datetime.utcnow()})
        db.session.commit()

        if updated != 1:
            raise TokenInvalid('Payment token has already been used')

        return payment_session

    def validate_and_consume(self, token: Optional[str], lpa_id: Optional[str] = None) -> bool:
        """True exactly once per issued token; False (and logged) otherwise."""
        try:
            self.consume(token, lpa_id=lpa_id)
        except TokenInvalid as e:
            current_app.logger.warning(f'Payment token rejected: {e.message}')
            log_payment_token_rejected(reason=e.message)
            return False
        return True

    def abandon(self, token: Optional[str]) -> bool:
        """Retire a token without consuming it, e.g. when payment is cancelled."""
        try:
            payment_session = self._lookup(token)
        except TokenInvalid:
            return False
        payment_session.abandon()
        db.session.commit()
        return True

    def _lookup(self, token: Optional[str]) -> PaymentSession:
        if not token:
            raise TokenInvalid('Payment token is missing')

        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            raise TokenInvalid('Payment token has expired') from None
        except BadSignature:
            raise TokenInvalid('Payment token is malformed') from None

        if not isinstance(data, dict) or not data.get('n'):
            raise TokenInvalid('Payment token is malformed')

        payment_session = PaymentSession.query.filter_by(nonce=data['n']).first()
        if payment_session is None:
            raise TokenInvalid('Payment token is unknown')
        if payment_session.consumed_at is not None:
            raise TokenInvalid('Payment token has already been used')
        if not payment_session.is_usable():
            raise TokenInvalid('Payment token is no longer valid')

        return payment_session


def confirm_payment(document: LpaDocument, gate: PaymentSessionGate, token: Optional[str]) -> bool:
    """
    Mark the LPA paid, but only if the payment token is good.

    The 'payment' answer is written after the token has been consumed;
    a bad token leaves the document as it was.
    """
    try:
        payment_session = gate.consume(token, lpa_id=document.id)
    except TokenInvalid as e:
        current_app.logger.warning(f'Payment not confirmed: {e.message}')
        log_payment_token_rejected(lpa_id=document.id, reason=e.message)
        return False

    document.set('payment', {
        'reference': payment_session.payment_id,
        'payment_id': payment_session.payment_id,
        'confirmed_at': datetime.utcnow().isoformat(),
    })
    log_payment_confirmed(lpa_id=document.id, payment_id=payment_session.payment_id)
    return True
