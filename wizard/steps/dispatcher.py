"""Run step entry actions and user actions, then apply their outcomes."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Mapping, Optional

from core.errors import FieldValidationError, RetryableServiceError, WizardError
from models.wizard_config import StepType
from utils.logging_context import log_context
from wizard.step_registry import handlers as registered_handlers
from wizard.steps.base import StepContext, StepHandler, StepOutcome, StepStatus

logger = logging.getLogger(__name__)


class StepDispatcher:
    """Boundary between step handlers and the navigator.

    Pending flags are always reset, ids returned by a handler are recorded
    even when the user has moved on, and the index only advances when the
    step that started the call is still current.
    """

    def __init__(self, handlers: Mapping[StepType, StepHandler] | None = None) -> None:
        self._handlers = dict(handlers) if handlers is not None else registered_handlers()

    def handler_for(self, step_type: StepType | str) -> StepHandler:
        return self._handlers[StepType(step_type)]

    def _bind(self, ctx: StepContext) -> tuple[StepContext, StepHandler]:
        if not ctx.navigator.is_wizard_mode:
            return replace(ctx, step=None), self.handler_for(StepType.SUBMISSION)
        step = ctx.navigator.current_step
        if step is None:
            raise LookupError("wizard has no visible steps")
        return replace(ctx, step=step), self.handler_for(step.type)

    def is_action_enabled(self, ctx: StepContext) -> bool:
        bound, handler = self._bind(ctx)
        return handler.is_action_enabled(bound)

    def enter(self, ctx: StepContext) -> Optional[StepOutcome]:
        """Run the current step's entry action once per entry."""

        if not ctx.navigator.is_wizard_mode:
            return None
        bound, handler = self._bind(ctx)
        entry_key = f"{ctx.state.current_step_index}:{bound.step.id}"
        if ctx.state.entered_step_id == entry_key:
            return None
        ctx.state.entered_step_id = entry_key
        return self._run(bound, handler, handler.enter)

    def act(self, ctx: StepContext) -> StepOutcome:
        """Run the current step's primary action (Next, Submit, Pay, Proceed)."""

        if ctx.state.is_busy:
            logger.info("Ignoring action while a request is pending")
            return StepOutcome.stayed()
        bound, handler = self._bind(ctx)
        if not handler.is_action_enabled(bound):
            return StepOutcome(StepStatus.DISABLED)
        outcome = self._run(bound, handler, handler.act)
        return outcome if outcome is not None else StepOutcome.stayed()

    def _run(
        self,
        ctx: StepContext,
        handler: StepHandler,
        call: Callable[[StepContext], Optional[StepOutcome]],
    ) -> Optional[StepOutcome]:
        state = ctx.state
        start_index = state.current_step_index
        start_step_id = ctx.step.id if ctx.step else None
        flag = handler.pending_flag
        if flag:
            setattr(state, flag, True)
        try:
            with log_context(wizard_step=start_step_id or "form"):
                outcome = call(ctx)
        except WizardError as exc:
            logger.warning("Step '%s' failed: %s", start_step_id, exc)
            outcome = StepOutcome.stayed(exc)
        except Exception:
            logger.exception("Unexpected failure in step '%s'", start_step_id)
            outcome = StepOutcome.stayed(
                RetryableServiceError("Something went wrong. Please try again.")
            )
        finally:
            if flag:
                setattr(state, flag, False)
        if outcome is None:
            return None
        return self._apply(ctx, outcome, start_index=start_index, start_step_id=start_step_id)

    def _apply(
        self,
        ctx: StepContext,
        outcome: StepOutcome,
        *,
        start_index: int,
        start_step_id: str | None,
    ) -> StepOutcome:
        navigator = ctx.navigator
        state = ctx.state

        if outcome.lead_id:
            state.captured_lead_id = outcome.lead_id
        if outcome.submitted:
            if outcome.application_id is not None:
                state.submitted_application_id = outcome.application_id
            navigator.mark_submitted()
        elif outcome.lead_id:
            navigator.save_progress()

        # Field errors were already reported by the navigator.
        if outcome.error is not None and not isinstance(outcome.error, FieldValidationError):
            variant = "default" if outcome.status == StepStatus.COMPLETED else "destructive"
            ctx.notifier.notify(outcome.error.title, outcome.error.message, variant)

        if outcome.status == StepStatus.COMPLETED:
            navigator.mark_submitted()
            return outcome
        if outcome.status != StepStatus.ADVANCED:
            return outcome

        if not navigator.is_wizard_mode:
            return self._complete(ctx, outcome)
        current = navigator.current_step
        if state.current_step_index != start_index or current is None or current.id != start_step_id:
            logger.info("Step '%s' is no longer current; not advancing", start_step_id)
            return replace(outcome, status=StepStatus.STAYED)
        if navigator.advance():
            return outcome
        if outcome.submitted:
            return self._complete(ctx, outcome)
        return replace(outcome, status=StepStatus.STAYED)

    @staticmethod
    def _complete(ctx: StepContext, outcome: StepOutcome) -> StepOutcome:
        ctx.notifier.notify(
            "Application Submitted!",
            "Thank you for your application. We will review it and get back to you soon.",
        )
        return replace(outcome, status=StepStatus.COMPLETED)


__all__ = ["StepDispatcher"]
