"""
Audit logging module for immutable audit trail.

Step submissions, record removals and every payment token event are
logged with integrity verification. This module is append-only -
records are never modified or deleted.
"""

import json
from datetime import datetime
from typing import Dict, Any, Optional
from flask import request, current_app

from lpa_journey import db
from lpa_journey.models import AuditLog


class AuditAction:
    """Constants for audit actions."""
    # Document actions
    DOCUMENT_CREATED = 'document_created'
    STEP_SUBMITTED = 'step_submitted'
    STEP_REJECTED = 'step_rejected'
    RECORD_REMOVED = 'record_removed'
    DRAFT_GENERATED = 'draft_generated'

    # Payment actions
    PAYMENT_TOKEN_ISSUED = 'payment_token_issued'
    PAYMENT_TOKEN_REJECTED = 'payment_token_rejected'
    PAYMENT_CONFIRMED = 'payment_confirmed'

    # Session actions
    SIGNED_IN = 'signed_in'
    SIGNED_OUT = 'signed_out'


class AuditCategory:
    """Constants for audit action categories."""
    CREATE = 'create'
    READ = 'read'
    UPDATE = 'update'
    DELETE = 'delete'
    GENERATE = 'generate'
    AUTH = 'auth'
    PAYMENT = 'payment'


def log_action(
    action: str,
    action_category: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    lpa_id: Optional[str] = None,
    actor_type: str = 'system',
    actor_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
    error_message: Optional[str] = None
) -> Optional[AuditLog]:
    """
    Log an action to the audit trail.

    Args:
        action: The action performed (use AuditAction constants)
        action_category: Category of action (use AuditCategory constants)
        resource_type: Type of resource affected
        resource_id: Identifier of the resource
        lpa_id: Associated document id if applicable
        actor_type: Type of actor ('user', 'system')
        actor_id: Identifier of the actor (identity subject, IP, etc.)
        details: Additional structured details
        success: Whether the action succeeded
        error_message: Error message if action failed

    Returns:
        The created AuditLog record, or None if it could not be written
    """
    try:
        ip_address = None
        user_agent = None

        try:
            if request:
                ip_address = request.remote_addr
                user_agent = request.headers.get('User-Agent')

                if actor_type == 'user' and not actor_id:
                    actor_id = ip_address
        except RuntimeError:
            # Outside request context
            pass

        audit_log = AuditLog(
            timestamp=datetime.utcnow(),
            action=action,
            action_category=action_category,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id else None,
            lpa_id=lpa_id,
            actor_type=actor_type,
            actor_id=actor_id,
            details_json=json.dumps(details, sort_keys=True) if details else None,
            success=success,
            error_message=error_message,
            ip_address=ip_address,
            user_agent=user_agent
        )

        audit_log.integrity_hash = audit_log.compute_integrity_hash()

        db.session.add(audit_log)
        db.session.commit()

        return audit_log

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f'Failed to create audit log: {str(e)}')
        # Don't re-raise - audit logging should not break the journey
        return None


def log_document_created(lpa_id: str, actor_id: Optional[str] = None) -> Optional[AuditLog]:
    """Log creation of a new in-progress document."""
    return log_action(
        action=AuditAction.DOCUMENT_CREATED,
        action_category=AuditCategory.CREATE,
        resource_type='document',
        resource_id=lpa_id,
        lpa_id=lpa_id,
        actor_type='user',
        actor_id=actor_id
    )


def log_step_submission(lpa_id: str, step_id: str, accepted: bool,
                        failing_fields: Optional[list] = None,
                        actor_id: Optional[str] = None) -> Optional[AuditLog]:
    """Log a step submission and whether it was applied."""
    return log_action(
        action=AuditAction.STEP_SUBMITTED if accepted else AuditAction.STEP_REJECTED,
        action_category=AuditCategory.UPDATE,
        resource_type='step',
        resource_id=step_id,
        lpa_id=lpa_id,
        actor_type='user',
        actor_id=actor_id,
        details={'failing_fields': failing_fields} if failing_fields else None,
        success=accepted
    )


def log_record_removed(lpa_id: str, collection: str, record_id: str,
                       actor_id: Optional[str] = None) -> Optional[AuditLog]:
    """Log removal of a collection record."""
    return log_action(
        action=AuditAction.RECORD_REMOVED,
        action_category=AuditCategory.DELETE,
        resource_type=collection,
        resource_id=record_id,
        lpa_id=lpa_id,
        actor_type='user',
        actor_id=actor_id
    )


def log_draft_generated(lpa_id: str, pdf_hash: str) -> Optional[AuditLog]:
    """Log generation of a draft LPA PDF."""
    return log_action(
        action=AuditAction.DRAFT_GENERATED,
        action_category=AuditCategory.GENERATE,
        resource_type='pdf',
        resource_id=pdf_hash[:16],
        lpa_id=lpa_id,
        details={'pdf_hash': pdf_hash}
    )


def log_payment_token_issued(lpa_id: Optional[str], payment_id: str) -> Optional[AuditLog]:
    """Log issue of a payment token. The token value itself is never logged."""
    return log_action(
        action=AuditAction.PAYMENT_TOKEN_ISSUED,
        action_category=AuditCategory.PAYMENT,
        resource_type='payment',
        resource_id=payment_id,
        lpa_id=lpa_id
    )


def log_payment_token_rejected(reason: str, lpa_id: Optional[str] = None) -> Optional[AuditLog]:
    """Log a missing, malformed, expired or reused payment token."""
    return log_action(
        action=AuditAction.PAYMENT_TOKEN_REJECTED,
        action_category=AuditCategory.PAYMENT,
        resource_type='payment',
        lpa_id=lpa_id,
        success=False,
        error_message=reason
    )


def log_payment_confirmed(lpa_id: str, payment_id: str) -> Optional[AuditLog]:
    """Log a confirmed payment."""
    return log_action(
        action=AuditAction.PAYMENT_CONFIRMED,
        action_category=AuditCategory.PAYMENT,
        resource_type='payment',
        resource_id=payment_id,
        lpa_id=lpa_id
    )


def log_sign_in(subject: str) -> Optional[AuditLog]:
    """Log a sign-in handed over by the identity provider."""
    return log_action(
        action=AuditAction.SIGNED_IN,
        action_category=AuditCategory.AUTH,
        resource_type='session',
        actor_type='user',
        actor_id=subject
    )


def log_sign_out(subject: str) -> Optional[AuditLog]:
    """Log a sign-out."""
    return log_action(
        action=AuditAction.SIGNED_OUT,
        action_category=AuditCategory.AUTH,
        resource_type='session',
        actor_type='user',
        actor_id=subject
    )


def verify_audit_integrity() -> tuple:
    """
    Verify integrity of all audit log records.

    Returns:
        Tuple of (valid_count, invalid_count, invalid_ids)
    """
    logs = AuditLog.query.all()
    valid_count = 0
    invalid_count = 0
    invalid_ids = []

    for log in logs:
        if log.verify_integrity():
            valid_count += 1
        else:
            invalid_count += 1
            invalid_ids.append(log.id)

    return valid_count, invalid_count, invalid_ids


def get_audit_trail_for_document(lpa_id: str) -> list:
    """
    Get complete audit trail for a document.

    Args:
        lpa_id: The document id

    Returns:
        List of audit log dictionaries
    """
    logs = AuditLog.query.filter_by(lpa_id=lpa_id) \
                         .order_by(AuditLog.timestamp.asc()) \
                         .all()
    return [log.to_dict() for log in logs]
