"""
Flask routes for the LPA journey.

Every journey page is served by one pair of handlers that defer to the
JourneyNavigator: GET shows a step (or redirects when it cannot be
entered), POST submits it. Responses are JSON; page rendering belongs
to the front end. Payment, the draft PDF, sign-in and the development
testing-start route have their own handlers.
"""

import io
import secrets
from dataclasses import dataclass
from typing import Dict, Any, Optional
from urllib.parse import urlencode

from flask import (
    Blueprint, request, jsonify, session, redirect, send_file, current_app
)

from lpa_journey.address_lookup import AddressLookupProvider
from lpa_journey.answer_store import LpaDocument, DocumentRepository
from lpa_journey.audit_logger import (
    log_document_created, log_step_submission, log_record_removed,
    log_draft_generated, log_sign_in, log_sign_out
)
from lpa_journey.draft_pdf import generate_draft_pdf
from lpa_journey.errors import NotFound, Unauthenticated, TokenInvalid
from lpa_journey.fixtures import seed_document
from lpa_journey.identity import (
    IdentityClaims, current_identity, sign_in, sign_out, login_required
)
from lpa_journey.navigator import JourneyNavigator, NavigationResult, NavigationStatus
from lpa_journey.payment import PaymentSessionGate, PAY_COOKIE_NAME, confirm_payment
from lpa_journey.progress import task_list
from lpa_journey.security import limiter, AbuseDetector, RATE_LIMITS, get_client_ip
from lpa_journey.steps import (
    JourneyContext, COLLECTION_FLOWS,
    TASK_LIST, CHECK_YOUR_LPA, ABOUT_PAYMENT, PAYMENT_CONFIRMATION
)
from lpa_journey.summary import collection_summary, lpa_summary


journey_bp = Blueprint('journey', __name__)
auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

abuse_detector = AbuseDetector()

SESSION_ID_KEY = 'session_id'
EXTENSION_KEY = 'lpa_journey'

# Form fields that may carry several values (checkbox groups)
LIST_FIELDS = ('contact',)

SUMMARY_COLLECTIONS = {flow.summary: flow.collection for flow in COLLECTION_FLOWS}

REMOVAL_FLOWS = {flow.remove: flow for flow in COLLECTION_FLOWS}


@dataclass
class JourneyServices:
    """Per-app collaborators used by the routes."""
    navigator: JourneyNavigator
    gate: PaymentSessionGate
    repository: DocumentRepository


def init_journey(app, lookup: Optional[AddressLookupProvider] = None):
    """Attach the navigator, payment gate and repository to the app."""
    app.extensions[EXTENSION_KEY] = JourneyServices(
        navigator=JourneyNavigator(lookup=lookup),
        gate=PaymentSessionGate(
            secret_key=app.config['SECRET_KEY'],
            max_age=app.config['PAYMENT_COOKIE_MAX_AGE'],
            secure=app.config['PAYMENT_COOKIE_SECURE']
        ),
        repository=DocumentRepository()
    )


def _services() -> JourneyServices:
    return current_app.extensions[EXTENSION_KEY]


def _session_id() -> str:
    if SESSION_ID_KEY not in session:
        session[SESSION_ID_KEY] = secrets.token_urlsafe(24)
    return session[SESSION_ID_KEY]


def _document() -> LpaDocument:
    """Load the session's document, creating it on first use."""
    repository = _services().repository
    session_id = _session_id()
    document = repository.load(session_id)
    if document is None:
        document = repository.create(session_id)
        identity = current_identity()
        log_document_created(document.id, actor_id=identity.subject if identity else None)
    return document


def _context() -> JourneyContext:
    return JourneyContext.from_query(request.args)


def _form_data() -> Dict[str, Any]:
    """Submitted fields; checkbox groups keep every value."""
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload

    form = {}
    for key, values in request.form.lists():
        form[key] = values if key in LIST_FIELDS else values[0]
    return form


def step_url(step_id: str, context: Optional[JourneyContext] = None) -> str:
    """Path of a step with the context carried as query parameters."""
    query = context.to_query() if context else {}
    url = '/' + step_id
    if query:
        url += '?' + urlencode(query)
    return url


def _go(result: NavigationResult):
    return redirect(step_url(result.next_step, result.context), code=303)


def _step_view(document: LpaDocument, step_id: str) -> Dict[str, Any]:
    """Read-only content shown alongside a step."""
    if step_id in SUMMARY_COLLECTIONS:
        return {'summary': collection_summary(document, SUMMARY_COLLECTIONS[step_id])}
    if step_id == CHECK_YOUR_LPA:
        return {'lpa': lpa_summary(document)}
    if step_id == TASK_LIST:
        return {'lpa_id': document.id, 'sections': task_list(document)}
    return {}


# Before request handler for abuse detection
@journey_bp.before_request
def check_abuse():
    """Check for potential abuse before processing request."""
    ip_address = get_client_ip()

    if abuse_detector.is_blocked(ip_address):
        return jsonify({
            'ok': False,
            'error': 'Access temporarily restricted due to excessive requests'
        }), 429

    abuse_detector.record_request(ip_address)


def _show(step_id: str):
    document = _document()
    result = _services().navigator.enter(document, step_id, _context(), current_identity())
    if result.status == NavigationStatus.REDIRECT:
        return _go(result)

    response = result.to_dict()
    response.update(_step_view(document, step_id))
    return jsonify(response), 200


# Payment

@journey_bp.route('/about-payment', methods=['GET', 'POST'])
@limiter.limit(RATE_LIMITS['payment'], methods=['POST'])
@login_required
def about_payment():
    """
    Start payment.

    Issues a payment token, sets it as the 'pay' cookie and sends the
    user to the payment provider, which returns them to the
    payment-confirmation page.
    """
    if request.method == 'GET':
        return _show(ABOUT_PAYMENT)

    services = _services()
    document = _document()
    result = services.navigator.submit(document, ABOUT_PAYMENT, _form_data(), _context(),
                                       current_identity())
    if result.status == NavigationStatus.REDIRECT:
        return _go(result)

    token = services.gate.issue(lpa_id=document.id)
    current_app.logger.info(f'Payment {token.payment_id} started for LPA {document.id}')

    next_url = current_app.config.get('PAYMENT_URL') or step_url(PAYMENT_CONFIRMATION)
    response = redirect(next_url, code=303)
    response.set_cookie(**token.cookie_kwargs())
    return response


@journey_bp.route('/payment-confirmation')
@limiter.limit(RATE_LIMITS['payment'])
@login_required
def payment_confirmation():
    """Return from the payment provider; the pay cookie is spent either way."""
    services = _services()
    document = _document()

    if confirm_payment(document, services.gate, request.cookies.get(PAY_COOKIE_NAME)):
        services.repository.save(document)
        target = TASK_LIST
    else:
        target = ABOUT_PAYMENT

    response = redirect(step_url(target), code=303)
    response.delete_cookie(PAY_COOKIE_NAME, path='/')
    return response


@journey_bp.route('/payment-cancelled')
@login_required
def payment_cancelled():
    """The user backed out at the payment provider."""
    _services().gate.abandon(request.cookies.get(PAY_COOKIE_NAME))
    response = redirect(step_url(ABOUT_PAYMENT), code=303)
    response.delete_cookie(PAY_COOKIE_NAME, path='/')
    return response


# Draft LPA

@journey_bp.route('/read-your-lpa.pdf')
@limiter.limit(RATE_LIMITS['draft'])
@login_required
def read_your_lpa():
    """Download a draft PDF of the LPA as it stands."""
    document = _document()
    pdf_bytes, pdf_hash = generate_draft_pdf(document)
    log_draft_generated(document.id, pdf_hash)

    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=False,
        download_name='draft-lpa.pdf'
    )


# Development fixtures

@journey_bp.route('/testing-start')
def testing_start():
    """
    Sign in as a fixture user with a fresh, partly filled document.

    Only available when ALLOW_TESTING_START is set. Query flags:
    withDonor, withAttorneys, withReplacementAttorneys,
    withCertificateProvider, withPeopleToNotify; 'redirect' picks the
    landing page.
    """
    if not current_app.config.get('ALLOW_TESTING_START'):
        raise NotFound('Not found')

    claims = IdentityClaims(subject='testing-start', email='simulate-delivered@example.org')
    sign_in(claims)
    session[SESSION_ID_KEY] = secrets.token_urlsafe(24)

    repository = _services().repository
    document = repository.create(session[SESSION_ID_KEY])
    seed_document(
        document,
        with_donor=request.args.get('withDonor') == '1',
        with_attorneys=request.args.get('withAttorneys') == '1',
        with_replacement_attorneys=request.args.get('withReplacementAttorneys') == '1',
        with_certificate_provider=request.args.get('withCertificateProvider') == '1',
        with_people_to_notify=request.args.get('withPeopleToNotify') == '1'
    )
    repository.save(document)
    log_document_created(document.id, actor_id=claims.subject)

    target = request.args.get('redirect', '')
    if not target.startswith('/') or target.startswith('//'):
        target = step_url(TASK_LIST)
    return redirect(target, code=303)


# Journey steps

@journey_bp.route('/<path:step_id>', methods=['GET'])
@login_required
def show_step(step_id: str):
    """Show a step, or redirect when it cannot be entered now."""
    return _show(step_id)


@journey_bp.route('/<path:step_id>', methods=['POST'])
@limiter.limit(RATE_LIMITS['submit'])
@login_required
def submit_step(step_id: str):
    """
    Submit a step.

    Returns:
        303 to the next step when applied or when the step cannot be
        entered; 422 with field errors when validation fails
    """
    services = _services()
    document = _document()
    identity = current_identity()
    context = _context()
    form = _form_data()

    result = services.navigator.submit(document, step_id, form, context, identity)

    if result.status == NavigationStatus.VALIDATION_FAILED:
        log_step_submission(document.id, step_id, accepted=False,
                            failing_fields=result.errors.failing_fields(),
                            actor_id=identity.subject)
        return jsonify(result.to_dict()), 422

    if result.status == NavigationStatus.REDIRECT:
        return _go(result)

    services.repository.save(document)
    log_step_submission(document.id, step_id, accepted=True, actor_id=identity.subject)

    removal = REMOVAL_FLOWS.get(step_id)
    if removal and form.get(removal.remove_field) == 'yes':
        log_record_removed(document.id, removal.collection, context.record_id,
                           actor_id=identity.subject)

    return _go(result)


# Sign in

@auth_bp.route('/login')
def login():
    """Where unauthenticated requests are sent."""
    return jsonify({
        'ok': False,
        'code': Unauthenticated.code,
        'error': 'Sign in to continue'
    }), 401


@auth_bp.route('/callback', methods=['POST'])
@limiter.limit("5 per minute")
def callback():
    """
    Accept claims from the development identity stub.

    A production identity provider integration calls sign_in itself
    once it has validated its tokens; this stub is only enabled
    alongside ALLOW_TESTING_START.
    """
    if not current_app.config.get('ALLOW_TESTING_START'):
        raise NotFound('Not found')

    claims = IdentityClaims.from_dict(_form_data())
    if claims is None:
        return jsonify({'ok': False, 'error': 'Missing subject claim'}), 400

    sign_in(claims)
    session[SESSION_ID_KEY] = secrets.token_urlsafe(24)
    log_sign_in(claims.subject)
    return redirect(step_url(TASK_LIST), code=303)


@auth_bp.route('/logout')
def logout():
    identity = current_identity()
    if identity:
        log_sign_out(identity.subject)
    sign_out()
    session.pop(SESSION_ID_KEY, None)
    return redirect('/auth/login', code=303)


# Error handlers

@journey_bp.app_errorhandler(NotFound)
def not_found(error):
    """Handle unknown steps and record ids."""
    return jsonify(error.to_dict()), 404


@journey_bp.app_errorhandler(Unauthenticated)
def unauthenticated(error):
    """Send the user to sign in."""
    return redirect('/auth/login', code=303)


@journey_bp.app_errorhandler(TokenInvalid)
def token_invalid(error):
    current_app.logger.warning(f'Payment token rejected: {error.message}')
    return jsonify(error.to_dict()), 400


@journey_bp.app_errorhandler(429)
def rate_limit_handler(error):
    """Handle rate limit errors."""
    return jsonify({
        'ok': False,
        'error': 'Rate limit exceeded. Please try again later.'
    }), 429
