from __future__ import annotations

from core.errors import FieldValidationError
from models.wizard_config import StepType
from wizard.steps.base import StepContext, StepHandler, StepOutcome, StepStatus


class FieldsStepHandler(StepHandler):
    step_type = StepType.FIELDS

    def act(self, ctx: StepContext) -> StepOutcome:
        errors = ctx.navigator.validate(ctx.navigator.fields_for(ctx.step))
        if errors:
            return StepOutcome.blocked(FieldValidationError(errors))
        return StepOutcome(StepStatus.ADVANCED)


__all__ = ["FieldsStepHandler"]
