"""
Onboarding Repository - storage for client onboarding records.

Records are stored as deep copies so callers never share state with the
store. Writes are last-write-wins; there is no version check between a
read and the following write.
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List

from onboarding.forms import FormType, OnboardingStatus, get_form


@dataclass
class StepState:
    """Stored raw fields and cursor of one step."""
    fields: Optional[Dict[str, Any]] = None
    question_id: Optional[str] = None
    question_index: int = 0


@dataclass
class FormProgress:
    """Onboarding progress of one form for one client."""
    form_type: FormType
    status: OnboardingStatus = OnboardingStatus.NOT_STARTED
    steps: Dict[int, StepState] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @classmethod
    def create(cls, form_type: FormType) -> "FormProgress":
        form = get_form(form_type)
        return cls(
            form_type=form.form_type,
            steps={info.number: StepState() for info in form.steps},
        )

    def step(self, number: int) -> StepState:
        return self.steps.setdefault(number, StepState())

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()


@dataclass
class ClientRecord:
    """A client with the forms selected for onboarding."""
    client_id: str
    name: str = ""
    advisor_name: str = ""
    selected_forms: List[FormType] = field(default_factory=list)
    forms: Dict[FormType, FormProgress] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)

    def documents(self) -> Dict[tuple, Any]:
        """Raw stored fields keyed by (form, step), for building a StepContext."""
        return {
            (form_type, number): state.fields
            for form_type, progress in self.forms.items()
            for number, state in progress.steps.items()
            if state.fields is not None
        }

    def status_of(self, form_type: FormType) -> OnboardingStatus:
        progress = self.forms.get(form_type)
        return progress.status if progress else OnboardingStatus.NOT_STARTED


class OnboardingRepository(ABC):
    """Abstract base class for onboarding record storage."""

    @abstractmethod
    def get(self, client_id: str) -> Optional[ClientRecord]:
        """Return a copy of the record, or None."""
        pass

    @abstractmethod
    def save(self, record: ClientRecord) -> None:
        """Replace the stored record."""
        pass


class InMemoryOnboardingRepository(OnboardingRepository):
    """
    In-memory onboarding storage.

    Useful for testing and single-process deployments.
    """

    def __init__(self):
        self._records: Dict[str, ClientRecord] = {}
        self._lock = threading.Lock()

    def get(self, client_id: str) -> Optional[ClientRecord]:
        with self._lock:
            record = self._records.get(client_id)
            return copy.deepcopy(record) if record else None

    def save(self, record: ClientRecord) -> None:
        with self._lock:
            self._records[record.client_id] = copy.deepcopy(record)

    def clear(self) -> None:
        """Clear all records (for testing)."""
        with self._lock:
            self._records.clear()
