"""Step Engine.

Core engine for one wizard step: resolves the active questions for a
fields document, validates a single answer, applies it immutably, and
advances the cursor. Each step is described by a StepDefinition whose
questions form a static, exhaustively keyed handler table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from validation.field_rules import FieldErrors, ValidationResult

from .cursor import Cursor, advance
from .exceptions import InactiveQuestionError, ValidationError
from .field_schema import Schema, assign_path, default_fields, get_path, merge_path, normalize_fields
from .forms import FormType, StepInfo, get_form

logger = logging.getLogger(__name__)

UNSUPPORTED_QUESTION_MESSAGE = "Unsupported onboarding question."


@dataclass
class StepContext:
    """Cross-form facts a step needs while resolving, validating and prefilling."""
    client_id: str = ""
    client_name: str = ""
    advisor_name: str = ""
    requires_step4: bool = False
    default_holder_kind: str = "person"

    # Raw stored fields of every step of every form, keyed by (form, step)
    documents: Dict[Tuple[FormType, int], Any] = field(default_factory=dict)

    @property
    def requires_joint_owner_signature(self) -> bool:
        return self.requires_step4

    def has_document(self, form_type: FormType, step_number: int) -> bool:
        return self.documents.get((form_type, step_number)) is not None

    def normalized(self, form_type: FormType, step_number: int) -> Dict[str, Any]:
        """Stored fields of another step, normalized against its schema."""
        from .steps import get_step_definition

        definition = get_step_definition(form_type, step_number)
        return definition.normalize(self.documents.get((form_type, step_number)))


AnswerValidator = Callable[[Any, Dict[str, Any], StepContext], ValidationResult]


@dataclass
class Question:
    """A single addressable question of a step."""
    id: str
    path: str
    validate: AnswerValidator

    # Merge questions write the keys of the validated value under path
    merge_keys: Tuple[str, ...] = ()

    @property
    def merge(self) -> bool:
        return bool(self.merge_keys)

    def current_answer(self, fields: Dict[str, Any]) -> Any:
        """The stored value this question would have posted."""
        stored = get_path(fields, self.path)
        if not self.merge:
            return stored
        parent = stored if isinstance(stored, dict) else {}
        return {key: parent.get(key) for key in self.merge_keys}


@dataclass
class StepOutcome:
    """Result of a successful write."""
    fields: Dict[str, Any]
    visible_question_ids: List[str]
    cursor: Cursor


@dataclass
class StepDefinition:
    """Declarative description of one form step."""
    form_type: FormType
    number: int
    schema: Schema
    questions: List[Question]
    visible: Callable[[Dict[str, Any], StepContext], List[str]]

    # Without a dedicated rule set, completion re-runs every visible question
    completion: Optional[Callable[[Dict[str, Any], StepContext], FieldErrors]] = None
    upgrade: Optional[Callable[[Any], Any]] = None
    prefill: Optional[Callable[[Dict[str, Any], StepContext], Dict[str, Any]]] = None
    derived_key: Optional[str] = None
    derive: Optional[Callable[[Dict[str, Any], StepContext], Dict[str, Any]]] = None
    is_required: Optional[Callable[[StepContext], bool]] = None
    extras: Optional[Callable[[StepContext], Dict[str, Any]]] = None

    def __post_init__(self):
        self._questions_by_id = {question.id: question for question in self.questions}

    @property
    def info(self) -> StepInfo:
        return get_form(self.form_type).step(self.number)

    @property
    def question_ids(self) -> List[str]:
        return [question.id for question in self.questions]

    def question(self, question_id: str) -> Optional[Question]:
        return self._questions_by_id.get(question_id)

    def default_fields(self) -> Dict[str, Any]:
        return default_fields(self.schema)

    def normalize(self, raw: Any) -> Dict[str, Any]:
        if self.upgrade is not None:
            raw = self.upgrade(raw)
        return normalize_fields(self.schema, raw)

    def prepare(self, raw: Any, context: StepContext) -> Dict[str, Any]:
        """Normalize stored fields and apply cross-form prefill."""
        fields = self.normalize(raw)
        if self.prefill is not None:
            fields = self.prefill(fields, context)
        return fields

    def required_for(self, context: StepContext) -> bool:
        return self.is_required is None or self.is_required(context)

    # =========================================================================
    # ENGINE OPERATIONS
    # =========================================================================

    def resolve(self, fields: Dict[str, Any], context: StepContext) -> List[str]:
        """Ordered, duplicate-free list of the currently active question ids."""
        seen = set()
        visible = []
        for question_id in self.visible(fields, context):
            if question_id not in seen and question_id in self._questions_by_id:
                seen.add(question_id)
                visible.append(question_id)
        return visible

    def validate(
        self,
        question_id: str,
        answer: Any,
        fields: Dict[str, Any],
        context: StepContext,
    ) -> ValidationResult:
        question = self.question(question_id)
        if question is None:
            return ValidationResult.failed({"questionId": UNSUPPORTED_QUESTION_MESSAGE})
        return question.validate(answer, fields, context)

    def apply(self, fields: Dict[str, Any], question_id: str, value: Any) -> Dict[str, Any]:
        """Write a validated value into a new fields document."""
        question = self.question(question_id)
        if question is None:
            raise KeyError(question_id)
        if question.merge:
            return merge_path(fields, question.path, value)
        return assign_path(fields, question.path, value)

    def completion_errors(self, fields: Dict[str, Any], context: StepContext) -> FieldErrors:
        """Errors that keep this step from being complete; empty when complete."""
        if self.completion is not None:
            return self.completion(fields, context)

        errors: FieldErrors = {}
        for question_id in self.resolve(fields, context):
            question = self._questions_by_id[question_id]
            result = question.validate(question.current_answer(fields), fields, context)
            if not result.is_valid:
                errors.update(result.field_errors)
        return errors

    def derive_view(self, fields: Dict[str, Any], context: StepContext) -> Optional[Dict[str, Any]]:
        if self.derive is None:
            return None
        return self.derive(fields, context)

    def submit(
        self,
        fields: Dict[str, Any],
        question_id: str,
        answer: Any,
        context: StepContext,
        stored_index: Any = 0,
    ) -> StepOutcome:
        """Run the resolve, validate, apply and advance cycle for one answer.

        Raises:
            ValidationError: the question is unknown or the answer is invalid.
            InactiveQuestionError: the question is hidden by the current answers.
        """
        if self.question(question_id) is None:
            raise ValidationError({"questionId": UNSUPPORTED_QUESTION_MESSAGE})

        visible_before = self.resolve(fields, context)
        if question_id not in visible_before:
            logger.info("Rejected write to inactive question %s", question_id)
            raise InactiveQuestionError(question_id)

        result = self.validate(question_id, answer, fields, context)
        if not result.is_valid:
            raise ValidationError(result.field_errors)

        next_fields = self.apply(fields, question_id, result.value)
        visible_after = self.resolve(next_fields, context)
        cursor = advance(visible_after, question_id, True, stored_index)
        return StepOutcome(fields=next_fields, visible_question_ids=visible_after, cursor=cursor)
