from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Literal, Mapping, Sequence

from models.application import ApplicationItem
from models.wizard_config import FieldDefinition, FormValue, StepDefinition, StepType
from state.autosave import ProgressStore, apply_snapshot, build_snapshot
from state.payment_stash import PaymentStash, PaymentStashRecord
from state.runtime import WizardRuntimeState
from wizard.notifications import Notifier
from wizard.validation import revalidate_fields, validate_field, validate_fields
from wizard.visibility import all_visible_fields, visible_fields, visible_steps

logger = logging.getLogger(__name__)

# Focus target meaning "first interactive control of the current step".
FOCUS_FIRST_CONTROL = "*"

RESUME_PARAM = "resume"
_RESUME_TOKEN = re.compile(r"[A-Za-z0-9_-]{16,64}")


@dataclass(frozen=True)
class PaymentReturn:
    """Marker carried by the URL after the payment provider redirects back."""

    status: Literal["success", "cancel"]
    step: int


def _first_param(query_params: Mapping[str, object], key: str) -> str | None:
    if hasattr(query_params, "get_all"):
        values = list(query_params.get_all(key))  # type: ignore[attr-defined]
        return str(values[0]) if values else None
    raw = query_params.get(key)
    if isinstance(raw, (list, tuple)):
        return str(raw[0]) if raw else None
    return None if raw is None else str(raw)


def parse_payment_return(query_params: Mapping[str, object]) -> PaymentReturn | None:
    """Read ``payment``/``step`` from ``query_params``.

    ``success`` needs a numeric step; ``cancel`` defaults to step 0.
    """

    status = _first_param(query_params, "payment")
    step_raw = _first_param(query_params, "step")
    try:
        step = int(step_raw) if step_raw not in (None, "") else None
    except ValueError:
        step = None
    if status == "success" and step is not None:
        return PaymentReturn("success", step)
    if status == "cancel":
        return PaymentReturn("cancel", step or 0)
    return None


def new_resume_token() -> str:
    return uuid.uuid4().hex


def parse_resume_token(query_params: Mapping[str, object]) -> str | None:
    """Return the well-formed ``resume`` token from the URL, if any."""

    raw = _first_param(query_params, RESUME_PARAM)
    if raw and _RESUME_TOKEN.fullmatch(raw):
        return raw
    return None


class WizardNavigator:
    """Own the step index of one application's wizard.

    Every transition goes through a named method so the clamp rule, the
    autosave policy and focus requests are applied in one place.
    """

    def __init__(
        self,
        *,
        application: ApplicationItem,
        state: WizardRuntimeState,
        progress_store: ProgressStore,
        payment_stash: PaymentStash,
        notifier: Notifier,
    ) -> None:
        self._application = application
        self._state = state
        self._progress_store = progress_store
        self._payment_stash = payment_stash
        self._notifier = notifier

    @property
    def application(self) -> ApplicationItem:
        return self._application

    @property
    def state(self) -> WizardRuntimeState:
        return self._state

    @property
    def resume_token(self) -> str:
        return self._progress_store.resume_token

    @property
    def is_wizard_mode(self) -> bool:
        return self._application.is_wizard_mode

    @property
    def steps(self) -> list[StepDefinition]:
        """Visible steps, recomputed from the latest form data."""

        if not self.is_wizard_mode:
            return []
        return visible_steps(self._application.wizard, self._state.form_data)

    def clamp(self) -> bool:
        """Pull the index back into range; return ``True`` when it moved."""

        steps = self.steps
        last_index = max(len(steps) - 1, 0)
        index = self._state.current_step_index
        clamped = min(max(index, 0), last_index)
        if clamped != index:
            logger.info("Clamping step index %s to %s after visibility change", index, clamped)
            self._state.current_step_index = clamped
            return True
        return False

    @property
    def current_step(self) -> StepDefinition | None:
        self.clamp()
        steps = self.steps
        if not steps:
            return None
        return steps[self._state.current_step_index]

    @property
    def is_first(self) -> bool:
        return self._state.current_step_index <= 0

    @property
    def is_last(self) -> bool:
        return self._state.current_step_index >= len(self.steps) - 1

    def fields_for(self, step: StepDefinition | None) -> list[FieldDefinition]:
        if step is None:
            return all_visible_fields(self._application.wizard, self._application.form_fields, self._state.form_data)
        return visible_fields(step, self._application.form_fields, self._state.form_data)

    def current_fields(self) -> list[FieldDefinition]:
        return self.fields_for(self.current_step if self.is_wizard_mode else None)

    def submission_fields(self) -> list[FieldDefinition]:
        """Fields validated before the application is created."""

        return all_visible_fields(self._application.wizard, self._application.form_fields, self._state.form_data)

    # -- persistence -----------------------------------------------------

    def save_progress(self) -> bool:
        if self._state.is_submitted:
            return False
        return self._progress_store.save(self._application.slug, build_snapshot(self._state))

    def clear_progress(self) -> None:
        self._progress_store.clear(self._application.slug)

    def resume(self, query_params: Mapping[str, object]) -> PaymentReturn | None:
        """Restore state for a fresh session.

        A payment-return marker takes precedence over saved progress.
        """

        marker = parse_payment_return(query_params)
        if marker is not None:
            self.apply_payment_return(marker)
            return marker
        snapshot = self._progress_store.load(self._application.slug)
        if snapshot is not None:
            apply_snapshot(self._state, snapshot)
            logger.info("Resumed saved progress at step %s", snapshot.step_index)
        self.clamp()
        return None

    def stash_for_payment(self) -> None:
        """Remember the session before leaving for the payment provider."""

        self._payment_stash.save(
            PaymentStashRecord(
                form_data=dict(self._state.form_data),
                application_id=self._application.id,
                application_slug=self._application.slug,
                step_index=self._state.current_step_index,
                submitted_application_id=self._state.submitted_application_id,
                captured_lead_id=self._state.captured_lead_id,
                user_opted_for_partial_payment=self._state.user_opted_for_partial_payment,
            )
        )

    def apply_payment_return(self, marker: PaymentReturn) -> None:
        record = self._payment_stash.take(self._application.slug)
        if record is not None:
            self._state.form_data = dict(record.form_data)
            self._state.submitted_application_id = record.submitted_application_id
            self._state.captured_lead_id = record.captured_lead_id
            self._state.user_opted_for_partial_payment = record.user_opted_for_partial_payment
        else:
            logger.warning("Payment return without a stashed session for '%s'", self._application.slug)

        if marker.status == "success":
            target = marker.step + 1 if marker.step < len(self.steps) - 1 else marker.step
            self._go_to(target)
            self._notifier.notify(
                "Payment Successful",
                "Your payment has been processed. Please continue with your application.",
            )
        else:
            self._go_to(marker.step)
            self._notifier.notify("Payment Cancelled", "You can retry the payment when ready.", "destructive")

    # -- transitions -----------------------------------------------------

    def request_focus(self, target: str = FOCUS_FIRST_CONTROL) -> None:
        self._state.focus_target = target

    def _go_to(self, index: int) -> None:
        self._state.current_step_index = index
        self.clamp()
        self.request_focus()
        self.save_progress()

    def validate(self, fields: Sequence[FieldDefinition]) -> dict[str, str]:
        """Validate ``fields`` as a group, mark them touched and focus the first error."""

        errors = validate_fields(fields, self._state.form_data)
        names = {field.name for field in fields}
        self._state.touched_fields.update(names)
        kept = {name: message for name, message in self._state.field_errors.items() if name not in names}
        kept.update(errors)
        self._state.field_errors = kept
        if errors:
            self.request_focus(next(iter(errors)))
            self._notifier.notify(
                "Validation Error",
                "Please fix the highlighted fields before continuing.",
                "destructive",
            )
        return errors

    def next(self) -> bool:
        """Advance from a ``fields`` step once its visible fields validate."""

        step = self.current_step
        if step is None or step.type != StepType.FIELDS:
            return False
        if self.validate(self.fields_for(step)):
            return False
        return self.advance()

    def advance(self) -> bool:
        """Move one step forward without validation; used by step handlers."""

        if self.is_last:
            return False
        self._go_to(self._state.current_step_index + 1)
        return True

    def previous(self) -> bool:
        step = self.current_step
        if step is not None and step.type == StepType.CONFIRMATION:
            return False
        if self.is_first:
            return False
        self._go_to(self._state.current_step_index - 1)
        return True

    def start_over(self) -> None:
        self._state.reset()
        self.clear_progress()
        self._payment_stash.clear(self._application.slug)
        self.request_focus()
        self._notifier.notify("Form Cleared", "You can now start a new application.")

    def mark_submitted(self) -> None:
        """Record a durable submission and drop saved progress."""

        self._state.is_submitted = True
        self.clear_progress()

    # -- field events ----------------------------------------------------

    def change_field(self, name: str, value: FormValue | None) -> None:
        self._state.form_data[name] = "" if value is None else value
        self._state.field_errors = revalidate_fields(
            self.submission_fields(),
            self._state.form_data,
            touched=self._state.touched_fields,
            previous_errors=self._state.field_errors,
        )
        self.clamp()
        self.save_progress()

    def blur_field(self, name: str) -> None:
        field = self._application.field_by_name(name)
        if field is None:
            return
        self._state.touched_fields.add(name)
        error = validate_field(field, self._state.form_data)
        if error:
            self._state.field_errors[name] = error
        else:
            self._state.field_errors.pop(name, None)

    def set_partial_payment_opt_in(self, opted_in: bool) -> None:
        self._state.user_opted_for_partial_payment = opted_in
        self.save_progress()


__all__ = [
    "FOCUS_FIRST_CONTROL",
    "RESUME_PARAM",
    "PaymentReturn",
    "WizardNavigator",
    "new_resume_token",
    "parse_payment_return",
    "parse_resume_token",
]
