"""
Onboarding Service - client onboarding workflow across the four forms.

This service provides:
- Client creation and form selection
- Step reads with cursor resolution and cross-form prefill
- Single-answer step writes (resolve, validate, apply, advance)
- Form status transitions and cross-form routing
- Review reads and whole-step review saves
- The forms workspace view

The engine in the onboarding package is pure; this service owns loading
and persisting client records around it.
"""

from typing import Optional, Dict, Any, List, Iterable
from uuid import uuid4

from config.settings import OnboardingSettings, get_settings
from onboarding.completion import (
    GateResult,
    evaluate_gate,
    form_status_after_review,
    incomplete_steps,
    is_signature_step,
    step_gate,
)
from onboarding.cursor import Cursor, resolve_cursor
from onboarding.exceptions import (
    FormNotSelectedError,
    InactiveQuestionError,
    NotFoundError,
    OnboardingError,
    StepNotRequiredError,
    ValidationError,
)
from onboarding.forms import (
    FORM_SEQUENCE,
    FormDefinition,
    FormType,
    OnboardingStatus,
    form_by_slug,
    get_form,
    sort_by_priority,
)
from onboarding.prefill import build_context
from onboarding.routing import next_onboarding_route, next_route_after_completion, resume_route
from onboarding.step_engine import StepContext, StepDefinition
from onboarding.steps import get_step_definition
from services.logging_config import OnboardingWriteLogger, get_logger, log_performance
from services.onboarding_repository import (
    ClientRecord,
    FormProgress,
    InMemoryOnboardingRepository,
    OnboardingRepository,
)

logger = get_logger(__name__)


class OnboardingService:
    """
    Onboarding workflow service.

    Every public method loads the client record, runs the engine against
    it and persists the result. Concurrent writes to the same client are
    last-write-wins.
    """

    def __init__(
        self,
        repository: Optional[OnboardingRepository] = None,
        settings: Optional[OnboardingSettings] = None,
    ):
        """
        Initialize the onboarding service.

        Args:
            repository: Record storage; defaults to an in-memory store
            settings: Application settings; defaults to get_settings()
        """
        self._repository = repository or InMemoryOnboardingRepository()
        self._settings = settings or get_settings()

    @property
    def repository(self) -> OnboardingRepository:
        return self._repository

    # =========================================================================
    # CLIENTS AND FORM SELECTION
    # =========================================================================

    def create_client(
        self,
        name: str,
        advisor_name: str = "",
        client_id: Optional[str] = None,
        selected_forms: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """
        Create a client record.

        Args:
            name: Client display name, used as the customer names fallback
            advisor_name: Advisor name, used to prefill financial professional signatures
            client_id: Optional explicit id; a random id is generated otherwise
            selected_forms: Optional initial form codes

        Returns:
            Client dictionary
        """
        client_id = client_id or uuid4().hex
        if self._repository.get(client_id) is not None:
            raise ValidationError({"clientId": "A client with this id already exists."})

        record = ClientRecord(client_id=client_id, name=name, advisor_name=advisor_name)
        for form_type in self._parse_form_codes(selected_forms):
            self._add_form(record, form_type)
        self._repository.save(record)

        logger.info(
            "Client created",
            extra={'extra_data': {
                'client_id': client_id,
                'selected_forms': [form_type.value for form_type in record.selected_forms],
            }}
        )
        return self._client_dict(record)

    def get_client(self, client_id: str) -> Dict[str, Any]:
        return self._client_dict(self._load(client_id))

    def select_forms(self, client_id: str, form_codes: Iterable[str]) -> Dict[str, Any]:
        """
        Add forms to a client's selection.

        Already selected forms are left untouched, so their progress is kept.

        Returns:
            Dictionary with addedFormCodes, nextOnboardingRoute and workspace
        """
        record = self._load(client_id)
        requested = self._parse_form_codes(form_codes)
        if not requested:
            raise ValidationError({"formCodes": "Select at least one form."})

        added = [form_type for form_type in requested if form_type not in record.selected_forms]
        for form_type in added:
            self._add_form(record, form_type)
        if added:
            self._repository.save(record)
            logger.info(
                "Forms selected",
                extra={'extra_data': {
                    'client_id': client_id,
                    'added': [form_type.value for form_type in added],
                }}
            )

        workspace = self._workspace_dict(record)
        return {
            "addedFormCodes": [form_type.value for form_type in added],
            "nextOnboardingRoute": workspace["nextOnboardingRoute"],
            "workspace": workspace,
        }

    @log_performance("onboarding.workspace", expected=(OnboardingError,))
    def workspace(self, client_id: str) -> Dict[str, Any]:
        """Every catalog form with selection, status and resume route."""
        return self._workspace_dict(self._load(client_id))

    # =========================================================================
    # STEP READ AND WRITE
    # =========================================================================

    def get_step(self, client_id: str, form_slug: str, step_number: int) -> Dict[str, Any]:
        """
        Read one step: prepared fields, active questions and resolved cursor.

        Creates the form's progress record on first read.
        """
        record, form, definition, context = self._open_step(client_id, form_slug, step_number)
        progress = record.forms[form.form_type]
        state = progress.step(step_number)

        fields = definition.prepare(state.fields, context)
        visible = definition.resolve(fields, context)
        cursor = resolve_cursor(visible, state.question_id, state.question_index)
        gate = step_gate(form.form_type, step_number, fields, context, progress.status)
        return self._step_payload(record, definition, fields, visible, cursor, context, gate)

    def submit_answer(
        self,
        client_id: str,
        form_slug: str,
        step_number: int,
        question_id: str,
        answer: Any,
    ) -> Dict[str, Any]:
        """
        Validate and apply one answer, then advance the cursor and update form status.

        Args:
            client_id: Client identifier
            form_slug: Form route slug, e.g. investor-profile
            step_number: 1-based step number
            question_id: Addressed question id
            answer: Raw answer for that question

        Returns:
            Step payload after the write

        Raises:
            ValidationError: The question is unknown or the answer is invalid
            InactiveQuestionError: The question is hidden by the current answers
        """
        record, form, definition, context = self._open_step(client_id, form_slug, step_number)
        progress = record.forms[form.form_type]
        state = progress.step(step_number)
        write_log = OnboardingWriteLogger(client_id, form.form_type.value, step_number)
        write_log.start_write(question_id)

        fields = definition.prepare(state.fields, context)
        try:
            outcome = definition.submit(fields, question_id, answer, context, state.question_index)
        except InactiveQuestionError:
            write_log.log_inactive(question_id, definition.resolve(fields, context))
            raise
        except ValidationError as e:
            write_log.log_rejected(question_id, e.field_errors)
            raise

        state.fields = outcome.fields
        state.question_id = outcome.cursor.question_id
        state.question_index = outcome.cursor.index
        write_log.log_applied(question_id, outcome.cursor.question_id)

        context = self._context(record)
        form_errors = incomplete_steps(form.form_type, context)
        previous_status = progress.status
        gate = evaluate_gate(
            form.form_type, step_number, outcome.fields, context, previous_status, form_errors
        )
        progress.status = gate.status
        progress.touch()
        write_log.log_status(previous_status.value, gate.status.value)
        self._repository.save(record)

        payload = self._step_payload(
            record, definition, outcome.fields, outcome.visible_question_ids, outcome.cursor, context, gate
        )
        if step_number == form.gating_step:
            write_log.log_route(payload["step"]["nextRouteAfterCompletion"])
        return payload

    # =========================================================================
    # REVIEW
    # =========================================================================

    def get_review(self, client_id: str, form_slug: str, step_number: int) -> Dict[str, Any]:
        payload = self.get_step(client_id, form_slug, step_number)
        return self._with_review_meta(payload, form_slug, step_number)

    def save_review(
        self,
        client_id: str,
        form_slug: str,
        step_number: int,
        fields: Any,
    ) -> Dict[str, Any]:
        """
        Replace one step's fields wholesale from the review screen.

        The posted fields must leave the step complete; the cursor is kept
        and re-clamped on the next read.

        Raises:
            ValidationError: The posted step has completion errors
        """
        record, form, definition, context = self._open_step(client_id, form_slug, step_number)
        progress = record.forms[form.form_type]
        state = progress.step(step_number)
        write_log = OnboardingWriteLogger(client_id, form.form_type.value, step_number)
        write_log.start_write("review")

        candidate_context = self._context(record, override=(form.form_type, step_number, fields))
        prepared = definition.prepare(fields, candidate_context)
        errors = definition.completion_errors(prepared, candidate_context)
        if errors:
            write_log.log_rejected("review", errors)
            raise ValidationError(errors)

        state.fields = prepared
        context = self._context(record)
        previous_status = progress.status
        progress.status = form_status_after_review(previous_status, incomplete_steps(form.form_type, context))
        progress.touch()
        write_log.log_status(previous_status.value, progress.status.value)
        self._repository.save(record)

        visible = definition.resolve(prepared, context)
        cursor = resolve_cursor(visible, state.question_id, state.question_index)
        gate = step_gate(form.form_type, step_number, prepared, context, progress.status)
        payload = self._step_payload(record, definition, prepared, visible, cursor, context, gate)
        return self._with_review_meta(payload, form_slug, step_number)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _load(self, client_id: str) -> ClientRecord:
        record = self._repository.get(client_id)
        if record is None:
            raise NotFoundError("Client not found.")
        return record

    def _context(self, record: ClientRecord, override=None) -> StepContext:
        documents = record.documents()
        if override is not None:
            form_type, step_number, fields = override
            documents[(form_type, step_number)] = fields
        return build_context(record.client_id, record.name, record.advisor_name, documents)

    def _open_step(self, client_id: str, form_slug: str, step_number: int):
        """Load the record and resolve form, step definition and context for a step request."""
        record = self._load(client_id)
        form = form_by_slug(form_slug)
        if form is None:
            raise NotFoundError(f"Unknown form {form_slug}.")
        if form.form_type not in record.selected_forms:
            raise FormNotSelectedError(form.title)

        definition = get_step_definition(form.form_type, step_number)
        context = self._context(record)
        if not definition.required_for(context):
            raise StepNotRequiredError()

        if form.form_type not in record.forms:
            record.forms[form.form_type] = FormProgress.create(form.form_type)
            self._repository.save(record)
        return record, form, definition, context

    def _parse_form_codes(self, form_codes: Iterable[str]) -> List[FormType]:
        codes = list(dict.fromkeys(str(code) for code in form_codes))
        known = {form_type.value for form_type in FORM_SEQUENCE}
        missing = [code for code in codes if code not in known]
        if missing:
            raise ValidationError(
                {"formCodes": f"Unavailable form code(s): {', '.join(missing)}."},
                message="Some selected forms are inactive or missing.",
            )
        return sort_by_priority(codes)

    def _add_form(self, record: ClientRecord, form_type: FormType) -> None:
        record.selected_forms = sort_by_priority([*record.selected_forms, form_type])
        record.forms.setdefault(form_type, FormProgress.create(form_type))

    def _pending_steps(self, record: ClientRecord, context: StepContext) -> Dict[FormType, Any]:
        """Incomplete steps of every selected form; None for forms without a record."""
        return {
            form_type: incomplete_steps(form_type, context) if form_type in record.forms else None
            for form_type in record.selected_forms
        }

    def _completion_route(self, record: ClientRecord, form_type: FormType, context: StepContext) -> str:
        return next_route_after_completion(
            record.client_id,
            form_type,
            record.selected_forms,
            self._pending_steps(record, context),
            self._settings.dashboard_route,
        )

    def _step_payload(
        self,
        record: ClientRecord,
        definition: StepDefinition,
        fields: Dict[str, Any],
        visible: List[str],
        cursor: Cursor,
        context: StepContext,
        gate: GateResult,
    ) -> Dict[str, Any]:
        info = definition.info
        step: Dict[str, Any] = {
            "key": info.key,
            "label": info.label,
            "currentQuestionId": cursor.question_id,
            "currentQuestionIndex": cursor.index,
            "visibleQuestionIds": visible,
            "fields": fields,
            "isComplete": gate.is_complete,
        }
        if definition.derived_key:
            step[definition.derived_key] = definition.derive_view(fields, context)
        if definition.extras is not None:
            step.update(definition.extras(context))
        if is_signature_step(definition.form_type, definition.number):
            step["requiresJointOwnerSignature"] = gate.requires_joint_owner_signature

        form = get_form(definition.form_type)
        if definition.number == form.gating_step:
            step["nextRouteAfterCompletion"] = (
                self._completion_route(record, form.form_type, context)
                if gate.status == OnboardingStatus.COMPLETED
                else None
            )
        return {"status": gate.status.value, "step": step}

    def _with_review_meta(self, payload: Dict[str, Any], form_slug: str, step_number: int) -> Dict[str, Any]:
        form: FormDefinition = form_by_slug(form_slug)
        return {**payload, "review": {"stepNumber": step_number, "totalSteps": form.total_steps}}

    def _client_dict(self, record: ClientRecord) -> Dict[str, Any]:
        return {
            "clientId": record.client_id,
            "name": record.name,
            "advisorName": record.advisor_name,
            "selectedForms": [form_type.value for form_type in record.selected_forms],
            "createdAt": record.created_at.isoformat(),
        }

    def _workspace_dict(self, record: ClientRecord) -> Dict[str, Any]:
        context = self._context(record)
        statuses = {form_type: record.status_of(form_type) for form_type in record.selected_forms}
        pending = {
            form_type: errors or {}
            for form_type, errors in self._pending_steps(record, context).items()
        }

        forms = []
        for form_type in FORM_SEQUENCE:
            form = get_form(form_type)
            selected = form_type in record.selected_forms
            progress = record.forms.get(form_type)
            updated_at = progress.updated_at if selected and progress else None
            forms.append({
                "code": form_type.value,
                "title": form.title,
                "selected": selected,
                "onboardingStatus": record.status_of(form_type).value if selected else None,
                "resumeRoute": resume_route(record.client_id, form_type, pending[form_type]) if selected else None,
                "totalSteps": form.total_steps,
                "updatedAt": updated_at.isoformat() if updated_at else None,
            })

        return {
            "clientId": record.client_id,
            "forms": forms,
            "nextOnboardingRoute": next_onboarding_route(
                record.client_id, record.selected_forms, statuses, pending
            ),
        }


# Singleton instance
_onboarding_service: Optional[OnboardingService] = None


def get_onboarding_service() -> OnboardingService:
    """Get the singleton onboarding service instance."""
    global _onboarding_service
    if _onboarding_service is None:
        _onboarding_service = OnboardingService()
    return _onboarding_service
