"""Registry mapping step types to their handlers and display metadata."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from models.wizard_config import StepType
from wizard.steps.base import StepHandler
from wizard.steps.checkout_step import CheckoutStepHandler
from wizard.steps.confirmation_step import ConfirmationStepHandler
from wizard.steps.decision_preview_step import DecisionPreviewStepHandler
from wizard.steps.email_step import SendEmailStepHandler
from wizard.steps.fields_step import FieldsStepHandler
from wizard.steps.lead_step import LeadCaptureStepHandler
from wizard.steps.submission_step import SubmissionStepHandler


@dataclass(frozen=True)
class StepTypeSpec:
    """Handler plus the labels the navigation bar shows for a step type."""

    step_type: StepType
    handler: StepHandler
    action_label: str | None
    busy_label: str | None = None
    allow_previous: bool = True


STEP_TYPES: Final[tuple[StepTypeSpec, ...]] = (
    StepTypeSpec(StepType.FIELDS, FieldsStepHandler(), "Next"),
    StepTypeSpec(StepType.LEAD_CAPTURE, LeadCaptureStepHandler(), "Continue", "Saving…"),
    StepTypeSpec(StepType.SUBMISSION, SubmissionStepHandler(), "Submit Application", "Submitting…"),
    StepTypeSpec(StepType.STRIPE_CHECKOUT, CheckoutStepHandler(), "Proceed to Payment", "Redirecting…"),
    StepTypeSpec(StepType.SEND_EMAIL, SendEmailStepHandler(), "Continue", "Sending…"),
    StepTypeSpec(StepType.DECISION_PREVIEW, DecisionPreviewStepHandler(), "Proceed", "Loading preview…"),
    StepTypeSpec(StepType.CONFIRMATION, ConfirmationStepHandler(), None, allow_previous=False),
)

_BY_TYPE: Final[Mapping[StepType, StepTypeSpec]] = {spec.step_type: spec for spec in STEP_TYPES}


def get_spec(step_type: StepType | str) -> StepTypeSpec:
    try:
        return _BY_TYPE[StepType(step_type)]
    except ValueError as exc:
        raise KeyError(step_type) from exc


def get_handler(step_type: StepType | str) -> StepHandler:
    return get_spec(step_type).handler


def handlers() -> dict[StepType, StepHandler]:
    return {spec.step_type: spec.handler for spec in STEP_TYPES}


__all__ = ["STEP_TYPES", "StepTypeSpec", "get_handler", "get_spec", "handlers"]
