"""Application submission step."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from core.errors import FatalSubmissionError, FieldValidationError, ServiceError
from core.pricing import calculate_price_breakdown
from models.application import ApplicationItem
from models.services import ApplicationPayload
from models.wizard_config import FieldDefinition, FormValue, StepType
from wizard.steps.base import StepContext, StepHandler, StepOutcome, StepStatus
from wizard.steps.lead_step import build_auto_lead_request

logger = logging.getLogger(__name__)

BOOKING_NOT_PROVIDED = "N/A"


def build_booking_info(
    fields: Sequence[FieldDefinition],
    form_data: Mapping[str, FormValue],
    application_type: str,
) -> dict[str, FormValue]:
    """Every non-static field's value; unset optional fields become ``N/A``."""

    info: dict[str, FormValue] = {}
    for field in fields:
        if field.is_static:
            continue
        value = form_data.get(field.name)
        if (value is None or value == "") and not field.required:
            info[field.name] = BOOKING_NOT_PROVIDED
        else:
            info[field.name] = "" if value is None else value
    info["application_type"] = application_type
    return info


def build_application_payload(
    application: ApplicationItem,
    form_data: Mapping[str, FormValue],
    *,
    lead_id: int | None,
    user_opted_for_partial_payment: bool,
) -> ApplicationPayload:
    breakdown = calculate_price_breakdown(
        application.pricing,
        form_data,
        application.form_fields,
        user_opted_for_partial_payment,
    )
    return ApplicationPayload(
        items_id=application.id,
        booking_info=build_booking_info(application.form_fields, form_data, application.application_type),
        application_type=application.application_type,
        status=application.status,
        price=breakdown.total or 0,
        quantity=1,
        leads_id=lead_id,
    )


class SubmissionStepHandler(StepHandler):
    step_type = StepType.SUBMISSION
    pending_flag = "is_submitting"

    def is_action_enabled(self, ctx: StepContext) -> bool:
        # A submitted application is never created again; past the last step there is nowhere to go.
        if ctx.state.is_submitted and (ctx.step is None or ctx.navigator.is_last):
            return False
        return super().is_action_enabled(ctx)

    def act(self, ctx: StepContext) -> StepOutcome:
        if ctx.state.is_submitted:
            logger.info("Application %s already submitted; moving on", ctx.state.submitted_application_id)
            return StepOutcome(StepStatus.ADVANCED)

        errors = ctx.navigator.validate(ctx.navigator.submission_fields())
        if errors:
            return StepOutcome.blocked(FieldValidationError(errors))

        lead_id = ctx.state.captured_lead_id
        if not lead_id:
            lead_id = self._auto_capture_lead(ctx)

        payload = build_application_payload(
            ctx.application,
            ctx.form_data,
            lead_id=lead_id,
            user_opted_for_partial_payment=ctx.state.user_opted_for_partial_payment,
        )
        try:
            application_id = ctx.services.applications.create_application(payload)
        except ServiceError as exc:
            logger.warning("Application submission failed: %s", exc)
            # The auto-captured lead id is kept so a retry reuses it.
            return StepOutcome(
                StepStatus.STAYED,
                error=FatalSubmissionError(
                    "There was an error submitting your application. Please try again."
                ),
                lead_id=lead_id,
            )

        if lead_id and ctx.application.campaign_assignment_enabled:
            self._assign_campaigns(ctx, lead_id)

        return StepOutcome(StepStatus.ADVANCED, lead_id=lead_id, application_id=application_id, submitted=True)

    @staticmethod
    def _auto_capture_lead(ctx: StepContext) -> int | None:
        request = build_auto_lead_request(ctx.application.form_fields, ctx.form_data)
        if request is None:
            return None
        try:
            return ctx.services.leads.create_lead(request)
        except ServiceError as exc:
            logger.warning("Failed to auto-capture lead; continuing with submission: %s", exc)
            return None

    @staticmethod
    def _assign_campaigns(ctx: StepContext, lead_id: int) -> None:
        for campaign_id in ctx.application.selected_campaign_ids:
            try:
                ctx.services.campaigns.assign(campaign_id, lead_id)
            except ServiceError as exc:
                logger.warning("Failed to assign lead %s to campaign %s: %s", lead_id, campaign_id, exc)
            else:
                logger.info("Lead %s assigned to campaign %s", lead_id, campaign_id)


__all__ = [
    "BOOKING_NOT_PROVIDED",
    "SubmissionStepHandler",
    "build_application_payload",
    "build_booking_info",
]
