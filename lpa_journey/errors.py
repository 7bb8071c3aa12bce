"""
Journey error taxonomy.

Validation failures are not exceptions: they are collected in a
ValidationResult and returned to the same step. The exceptions below
are faults that propagate past the navigator.
"""


class JourneyError(Exception):
    """Base class for journey faults."""
    code = 'journey_error'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'ok': False, 'error': self.message, 'code': self.code}


class NotFound(JourneyError):
    """Reference to an unknown step, field or record id."""
    code = 'not_found'


class Unauthenticated(JourneyError):
    """Step entry attempted without an authenticated identity."""
    code = 'unauthenticated'


class TokenInvalid(JourneyError):
    """
    Payment token absent, malformed, expired or already consumed.

    Recoverable: the journey carries on without marking payment complete.
    """
    code = 'token_invalid'
