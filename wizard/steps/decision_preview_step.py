"""Decision preview step."""

from __future__ import annotations

import logging

from core.errors import DegradedServiceError, ServiceError
from models.services import DecisionPreviewResponse
from models.wizard_config import DecisionPreviewConfig, StepType
from wizard.steps.base import StepContext, StepHandler, StepOutcome, StepStatus

logger = logging.getLogger(__name__)


def estimated_preview() -> DecisionPreviewResponse:
    """Local estimate shown when the decision service is unreachable."""

    return DecisionPreviewResponse(
        approval_likelihood=78,
        risk_band="Medium",
        matched_nbfc_scheme="MSME Business Loan - Tier 2",
        strengths=[
            "Strong business vintage of 5+ years",
            "Healthy cash flow patterns",
            "Good credit history with no defaults",
        ],
        risks=[
            "High debt-to-income ratio (45%)",
            "Limited collateral coverage",
        ],
        estimated=True,
    )


class DecisionPreviewStepHandler(StepHandler):
    step_type = StepType.DECISION_PREVIEW
    pending_flag = "is_loading_preview"

    def enter(self, ctx: StepContext) -> StepOutcome | None:
        if ctx.state.decision_preview is not None:
            return None
        config = (ctx.step.decision_preview_config if ctx.step else None) or DecisionPreviewConfig()
        try:
            preview = ctx.services.decisions.get_preview(
                ctx.form_data,
                application_id=ctx.application.id,
                endpoint=config.api_endpoint or "/decision-preview",
            )
        except ServiceError as exc:
            logger.warning("Decision preview unavailable; showing estimate: %s", exc)
            ctx.state.decision_preview = estimated_preview()
            return StepOutcome.stayed(
                DegradedServiceError(
                    "Could not load decision preview. Showing estimated results.",
                    title="Preview Error",
                )
            )
        ctx.state.decision_preview = preview
        return StepOutcome.stayed()

    def act(self, ctx: StepContext) -> StepOutcome:
        return StepOutcome(StepStatus.ADVANCED)


__all__ = ["DecisionPreviewStepHandler", "estimated_preview"]
