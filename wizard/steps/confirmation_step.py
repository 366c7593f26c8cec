from __future__ import annotations

from models.wizard_config import StepType
from wizard.placeholders import replace_placeholders
from wizard.steps.base import StepContext, StepHandler, StepOutcome


class ConfirmationStepHandler(StepHandler):
    """Terminal step; the only way out is starting over."""

    step_type = StepType.CONFIRMATION

    def act(self, ctx: StepContext) -> StepOutcome:
        ctx.navigator.start_over()
        return StepOutcome.stayed()

    @staticmethod
    def action_button(ctx: StepContext) -> tuple[str, str] | None:
        """Return the configured ``(text, url)`` follow-up button, if any."""

        config = ctx.step.confirmation_config if ctx.step else None
        if config is None or not config.action_button_text or not config.action_button_url:
            return None
        url = replace_placeholders(config.action_button_url, ctx.form_data, ctx.placeholder_fallback)
        return config.action_button_text, url


__all__ = ["ConfirmationStepHandler"]
