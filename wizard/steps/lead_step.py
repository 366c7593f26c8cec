"""Lead capture step and the payload filters shared with submission."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from core.errors import ConfigurationError, RetryableServiceError, ServiceError
from integrations.backend import is_file_reference
from models.services import LeadRequest
from models.wizard_config import FieldDefinition, FieldType, FormValue, LeadConfig, StepType
from wizard.steps.base import StepContext, StepHandler, StepOutcome, StepStatus

logger = logging.getLogger(__name__)

LEAD_EXCLUDED_FIELD_TYPES = frozenset(
    {FieldType.FILE_UPLOAD, FieldType.SIGNATURE, FieldType.READONLY_TEXT, FieldType.HTML_CONTENT, "file"}
)
LEAD_EXCLUDED_NAME_FRAGMENTS = ("file", "upload", "signature", "attachment", "document", "image")
AUTO_LEAD_EXCLUDED_FIELD_TYPES = frozenset(
    {FieldType.READONLY_TEXT, FieldType.HTML_CONTENT, FieldType.SIGNATURE, FieldType.FILE_UPLOAD}
)


def build_lead_payload(
    config: LeadConfig,
    fields: Sequence[FieldDefinition],
    form_data: Mapping[str, FormValue],
) -> dict[str, FormValue]:
    """Collect the configured payload fields, skipping anything file-like."""

    by_name = {field.name: field for field in fields}
    payload: dict[str, FormValue] = {}
    for name in config.payload_fields:
        field = by_name.get(name)
        if field is not None and field.type in LEAD_EXCLUDED_FIELD_TYPES:
            continue
        lowered = name.lower()
        if any(fragment in lowered for fragment in LEAD_EXCLUDED_NAME_FRAGMENTS):
            continue
        value = form_data.get(name)
        if value is None or value == "" or is_file_reference(value):
            continue
        payload[name] = value
    return payload


def build_auto_lead_request(
    fields: Sequence[FieldDefinition],
    form_data: Mapping[str, FormValue],
) -> LeadRequest | None:
    """Lead built at submission time from the first email field, if filled."""

    email_field = next((field for field in fields if field.type == FieldType.EMAIL), None)
    if email_field is None:
        return None
    email = form_data.get(email_field.name)
    if not email or not isinstance(email, str):
        return None
    payload: dict[str, FormValue] = {"email": email}
    for field in fields:
        if field.type in AUTO_LEAD_EXCLUDED_FIELD_TYPES:
            continue
        value = form_data.get(field.name)
        if value is not None and value != "":
            payload[field.name] = value
    return LeadRequest(lead_payload=payload, email=email, status="new")


class LeadCaptureStepHandler(StepHandler):
    step_type = StepType.LEAD_CAPTURE
    pending_flag = "is_processing_lead"

    def act(self, ctx: StepContext) -> StepOutcome:
        config = ctx.step.lead_config if ctx.step else None
        if config is None or not config.email_field:
            return StepOutcome.stayed(
                ConfigurationError("Lead capture is not properly configured. Please contact support.")
            )
        email = ctx.form_data.get(config.email_field)
        if not email or not isinstance(email, str):
            return StepOutcome.blocked(
                RetryableServiceError("Please provide an email address to continue.", title="Email Required")
            )

        name = ctx.form_data.get(config.name_field) if config.name_field else None
        request = LeadRequest(
            lead_payload=build_lead_payload(config, ctx.application.form_fields, ctx.form_data),
            email=email,
            status=config.status or "new",
            name=name if isinstance(name, str) and name else None,
        )
        try:
            lead_id = ctx.services.leads.create_lead(request)
        except ServiceError as exc:
            logger.warning("Lead capture failed: %s", exc)
            return StepOutcome.stayed(RetryableServiceError("Failed to save your information. Please try again."))

        ctx.notifier.notify("Information Saved", "Your information has been recorded. Proceeding to the next step.")
        return StepOutcome(StepStatus.ADVANCED, lead_id=lead_id)


__all__ = [
    "LeadCaptureStepHandler",
    "build_auto_lead_request",
    "build_lead_payload",
]
