"""
Identity collaborator.

Sign-in is owned by the external identity provider. The journey only
consumes whether the request is authenticated and the identity claims
recorded in the Flask session once the provider has redirected back.
"""

from dataclasses import dataclass
from functools import wraps
from typing import Optional, Dict, Any

from flask import session

from lpa_journey.errors import Unauthenticated

SESSION_KEY = 'identity'


@dataclass(frozen=True)
class IdentityClaims:
    """Claims for the signed-in user."""
    subject: str
    email: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'sub': self.subject, 'email': self.email}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['IdentityClaims']:
        if not data or not data.get('sub'):
            return None
        return cls(subject=data['sub'], email=data.get('email', ''))


def current_identity() -> Optional[IdentityClaims]:
    return IdentityClaims.from_dict(session.get(SESSION_KEY))


def sign_in(claims: IdentityClaims):
    """Record claims handed over by the identity provider."""
    session[SESSION_KEY] = claims.to_dict()
    session.permanent = True


def sign_out():
    session.pop(SESSION_KEY, None)


def require_identity(identity: Optional[IdentityClaims]) -> IdentityClaims:
    if identity is None:
        raise Unauthenticated('Sign in to continue')
    return identity


def login_required(f):
    """Decorator raising Unauthenticated when nobody is signed in."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        require_identity(current_identity())
        return f(*args, **kwargs)
    return decorated_function
