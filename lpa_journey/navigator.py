"""
Journey navigator.

Resolves whether a step can be entered, validates submissions against
the step's rules, applies the step's mutation and resolves the next
step. A submission is all-or-nothing: the mutation runs against a
snapshot of the document which is adopted only once validation,
mutation and next-step resolution have all succeeded.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from lpa_journey.address_lookup import AddressLookupProvider
from lpa_journey.answer_store import LpaDocument
from lpa_journey.errors import NotFound
from lpa_journey.identity import IdentityClaims, require_identity
from lpa_journey.security import sanitize_payload
from lpa_journey.steps import (
    StepGraph, Step, JourneyContext, Submission, build_lpa_journey
)
from lpa_journey.validation import ValidationResult, warnings_acknowledged


# Submission data the renderer may see; the rest is internal to the step
RENDERED_DATA = ('addresses', 'values')


class NavigationStatus:
    """Constants for navigation outcomes."""
    SHOW = 'show'
    NEXT = 'next'
    REDIRECT = 'redirect'
    VALIDATION_FAILED = 'validation_failed'


@dataclass
class NavigationResult:
    """
    Outcome of entering or submitting a step.

    SHOW: render step_id. NEXT: the submission was applied, go to
    next_step. REDIRECT: the step cannot be entered now, go to
    next_step. VALIDATION_FAILED: re-render step_id with errors.
    """
    status: str
    step_id: str
    context: JourneyContext
    next_step: Optional[str] = None
    errors: ValidationResult = field(default_factory=ValidationResult)
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.status != NavigationStatus.VALIDATION_FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        result = {
            'ok': self.is_valid,
            'status': self.status,
            'step': self.step_id,
            'next_step': self.next_step,
            'context': self.context.to_query(),
        }
        if not self.is_valid:
            result.update(self.errors.to_dict())
            result['ok'] = False
        if self.data:
            result['data'] = {k: v for k, v in self.data.items() if k in RENDERED_DATA}
        return result


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return str(value).strip() == ''


class JourneyNavigator:
    """Drives one document through the step graph."""

    def __init__(self, graph: Optional[StepGraph] = None,
                 lookup: Optional[AddressLookupProvider] = None):
        self.graph = graph or build_lpa_journey()
        self.lookup = lookup

    def enter(self, document: LpaDocument, step_id: str,
              context: Optional[JourneyContext] = None,
              identity: Optional[IdentityClaims] = None) -> NavigationResult:
        """
        Check a step can be shown for the document as it is now.

        Entry is re-checked on every visit so direct links are safe.

        Raises:
            Unauthenticated: no signed-in identity
            NotFound: unknown step id
        """
        require_identity(identity)
        context = context or JourneyContext()
        step = self.graph.get(step_id)

        redirect = step.check_entry(document, context)
        if redirect is not None:
            return NavigationResult(NavigationStatus.REDIRECT, step_id, JourneyContext(), next_step=redirect)

        return NavigationResult(NavigationStatus.SHOW, step_id, context,
                                data={'values': step.current_values(document, context)})

    def submit(self, document: LpaDocument, step_id: str, form: Dict[str, Any],
               context: Optional[JourneyContext] = None,
               identity: Optional[IdentityClaims] = None) -> NavigationResult:
        """
        Validate and apply a step submission.

        Args:
            document: The session's document; changed only on success
            step_id: The step being submitted
            form: Submitted values keyed by form field name
            context: From-hint and record context carried with the request
            identity: The signed-in user

        Returns:
            NavigationResult; VALIDATION_FAILED leaves the document untouched

        Raises:
            Unauthenticated: no signed-in identity
            NotFound: unknown step, or a record id that vanished
        """
        require_identity(identity)
        context = context or JourneyContext()
        step = self.graph.get(step_id)
        if step.terminal:
            raise NotFound(f'Step {step_id!r} does not accept submissions')

        redirect = step.check_entry(document, context)
        if redirect is not None:
            return NavigationResult(NavigationStatus.REDIRECT, step_id, JourneyContext(), next_step=redirect)

        form = sanitize_payload(dict(form))
        submission = Submission(form=form, context=context, lookup=self.lookup)
        result = self._validate(step, document, submission)

        if not result.is_valid or not warnings_acknowledged(result, form):
            return NavigationResult(NavigationStatus.VALIDATION_FAILED, step_id, context,
                                    errors=result, data=submission.data)

        working = document.snapshot()
        new_context = step.apply(working, submission)
        transition = step.resolve_next(working, new_context)
        document.adopt(working)

        return NavigationResult(NavigationStatus.NEXT, step_id, transition.context,
                                next_step=transition.step_id, errors=result, data=submission.data)

    def _validate(self, step: Step, document: LpaDocument, submission: Submission) -> ValidationResult:
        result = ValidationResult()
        for name in step.required:
            if _is_blank(submission.form.get(name)):
                result.add_error(name, 'This field is required', 'required', step.section)
        step.validate(document, submission, result)
        return result
