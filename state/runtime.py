"""Runtime state owned by the wizard navigator and step dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import MutableMapping, Optional

from models.services import DecisionPreviewResponse
from models.wizard_config import FormData


@dataclass
class WizardRuntimeState:
    """Single mutable value threaded through navigation and dispatch.

    Only ``form_data``, ``current_step_index``, ``captured_lead_id`` and
    ``user_opted_for_partial_payment`` survive into a progress snapshot.
    """

    form_data: FormData = field(default_factory=dict)
    current_step_index: int = 0
    touched_fields: set[str] = field(default_factory=set)
    field_errors: dict[str, str] = field(default_factory=dict)
    captured_lead_id: Optional[int] = None
    user_opted_for_partial_payment: bool = False
    submitted_application_id: Optional[int] = None
    email_sent_step_ids: set[str] = field(default_factory=set)
    is_submitted: bool = False
    decision_preview: Optional[DecisionPreviewResponse] = None
    entered_step_id: Optional[str] = None
    focus_target: Optional[str] = None
    is_submitting: bool = False
    is_processing_payment: bool = False
    is_processing_lead: bool = False
    is_sending_email: bool = False
    is_loading_preview: bool = False

    @property
    def is_busy(self) -> bool:
        return (
            self.is_submitting
            or self.is_processing_payment
            or self.is_processing_lead
            or self.is_sending_email
            or self.is_loading_preview
        )

    def has_form_data(self) -> bool:
        return any(value != "" and value is not False for value in self.form_data.values())

    def reset(self) -> None:
        """Return to a blank application while keeping the object identity."""

        fresh = WizardRuntimeState()
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(fresh, name))


def get_runtime_state(session_state: MutableMapping[str, object], key: str) -> WizardRuntimeState:
    """Return the runtime state stored under ``key``, creating it on first use."""

    state = session_state.get(key)
    if isinstance(state, WizardRuntimeState):
        return state
    state = WizardRuntimeState()
    session_state[key] = state
    return state


__all__ = ["WizardRuntimeState", "get_runtime_state"]
