"""
Database models for the LPA journey service.

Enhanced with:
- Versioned documents for optimistic merge
- Single-use payment sessions
- Audit trail integration
"""

import json
import hashlib
from datetime import datetime
from lpa_journey import db


class LpaRecord(db.Model):
    """
    Persisted in-progress LPA document, one per session.
    """
    __tablename__ = 'lpa_documents'

    id = db.Column(db.String(36), primary_key=True)
    session_id = db.Column(db.String(64), unique=True, nullable=False, index=True)

    # Scalar answers and named sub-collections
    answers_json = db.Column(db.Text, nullable=False, default='{}')
    collections_json = db.Column(db.Text, nullable=False, default='{}')
    issued_ids_json = db.Column(db.Text, nullable=False, default='[]')

    # Bumped on every save
    version = db.Column(db.Integer, default=1, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<LpaRecord {self.id} v{self.version}>'

    def get_answers(self):
        return json.loads(self.answers_json or '{}')

    def set_answers(self, answers):
        """Serialize answers with stable ordering."""
        self.answers_json = json.dumps(answers, sort_keys=True)

    def get_collections(self):
        return json.loads(self.collections_json or '{}')

    def set_collections(self, collections):
        self.collections_json = json.dumps(collections, sort_keys=True)

    def get_issued_ids(self):
        return json.loads(self.issued_ids_json or '[]')

    def set_issued_ids(self, issued_ids):
        self.issued_ids_json = json.dumps(sorted(issued_ids))


class PaymentSession(db.Model):
    """
    Server-side record of an issued payment token.

    A token is valid only while its row exists, has not expired and
    has not been consumed.
    """
    __tablename__ = 'payment_sessions'

    id = db.Column(db.Integer, primary_key=True)

    nonce = db.Column(db.String(64), unique=True, nullable=False)
    payment_id = db.Column(db.String(64), nullable=False)
    lpa_id = db.Column(db.String(36), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    consumed_at = db.Column(db.DateTime, nullable=True)
    abandoned_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f'<PaymentSession {self.id} - {self.payment_id}>'

    def is_expired(self):
        return datetime.utcnow() > self.expires_at

    def is_usable(self):
        return self.consumed_at is None and self.abandoned_at is None and not self.is_expired()

    def abandon(self):
        self.abandoned_at = datetime.utcnow()


class AuditLog(db.Model):
    """
    Immutable audit trail for journey mutations and payment events.

    This table is append-only. Records are never modified or deleted.
    """
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    actor_type = db.Column(db.String(20), nullable=False)  # 'user', 'system'
    actor_id = db.Column(db.String(100), nullable=True)

    action = db.Column(db.String(50), nullable=False)
    action_category = db.Column(db.String(20), nullable=False)

    lpa_id = db.Column(db.String(36), nullable=True, index=True)
    resource_type = db.Column(db.String(50), nullable=False)  # 'step', 'attorney', 'payment'
    resource_id = db.Column(db.String(100), nullable=True)

    details_json = db.Column(db.Text, nullable=True)

    success = db.Column(db.Boolean, nullable=False)
    error_message = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)

    integrity_hash = db.Column(db.String(64), nullable=False)

    def __repr__(self):
        return f'<AuditLog {self.id} - {self.action} by {self.actor_type}>'

    def to_dict(self):
        """Convert audit log to dictionary."""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'actor_type': self.actor_type,
            'actor_id': self.actor_id,
            'action': self.action,
            'action_category': self.action_category,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'lpa_id': self.lpa_id,
            'details': json.loads(self.details_json) if self.details_json else None,
            'success': self.success,
            'error_message': self.error_message
        }

    def compute_integrity_hash(self):
        """Compute hash of this record's content for tamper detection."""
        content = f"{self.timestamp}{self.actor_type}{self.actor_id}{self.action}{self.resource_type}{self.resource_id}{self.details_json}"
        return hashlib.sha256(content.encode()).hexdigest()

    def verify_integrity(self):
        """Verify this record has not been tampered with."""
        return self.integrity_hash == self.compute_integrity_hash()
