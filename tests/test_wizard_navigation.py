"""Navigator transitions, autosave and resume."""

from __future__ import annotations

from typing import Callable

import pytest

from constants.keys import StorageKeys
from models.wizard_config import FieldType, StepType
from state.autosave import ProgressSnapshot, ProgressStore, serialize_snapshot
from state.payment_stash import PaymentStash, PaymentStashRecord
from support import RESUME_TOKEN, WizardHarness, make_application, make_field, make_step, when
from wizard.navigation.router import FOCUS_FIRST_CONTROL, PaymentReturn, parse_payment_return


def _membership():
    steps = [
        make_step("about"),
        make_step("partner", conditions=(when("has_partner", "equals", "true"),)),
        make_step("pay", StepType.STRIPE_CHECKOUT),
        make_step("done", StepType.CONFIRMATION),
    ]
    fields = [
        make_field("full_name", label="Full Name", required=True, step_id="about"),
        make_field("email", label="Email", type=FieldType.EMAIL, step_id="about"),
        make_field("has_partner", type=FieldType.CHECKBOX, step_id="about"),
        make_field("partner_name", label="Partner Name", required=True, step_id="partner"),
    ]
    return make_application(fields, steps)


@pytest.fixture
def wizard(harness: Callable[..., WizardHarness]) -> WizardHarness:
    return harness(_membership())


def test_next_blocks_on_invalid_fields_and_focuses_first_error(wizard: WizardHarness) -> None:
    assert not wizard.navigator.next()

    assert wizard.state.current_step_index == 0
    assert wizard.state.field_errors == {"full_name": "Full Name is required"}
    assert wizard.state.focus_target == "full_name"
    assert {"full_name", "email", "has_partner"} <= wizard.state.touched_fields
    assert wizard.notifier.notes[-1].variant == "destructive"


def test_next_skips_hidden_step(wizard: WizardHarness) -> None:
    wizard.navigator.change_field("full_name", "Ada")

    assert wizard.navigator.next()

    assert wizard.step_id == "pay"
    assert wizard.state.focus_target == FOCUS_FIRST_CONTROL


def test_next_enters_conditional_step(wizard: WizardHarness) -> None:
    wizard.navigator.change_field("full_name", "Ada")
    wizard.navigator.change_field("has_partner", True)

    wizard.navigator.next()

    assert wizard.step_id == "partner"


def test_next_only_handles_fields_steps(wizard: WizardHarness) -> None:
    wizard.state.current_step_index = 1

    assert wizard.step_id == "pay"
    assert not wizard.navigator.next()
    assert wizard.step_id == "pay"


def test_hiding_current_step_clamps_index(wizard: WizardHarness) -> None:
    wizard.navigator.change_field("has_partner", True)
    wizard.state.current_step_index = 3

    wizard.navigator.change_field("has_partner", False)

    assert wizard.state.current_step_index == 2
    assert wizard.step_id == "done"


def test_index_stays_in_range_through_visibility_changes(wizard: WizardHarness) -> None:
    navigator = wizard.navigator
    actions: list[Callable[[], object]] = [
        lambda: navigator.change_field("full_name", "Ada"),
        lambda: navigator.change_field("has_partner", True),
        navigator.next,
        navigator.advance,
        navigator.advance,
        navigator.advance,
        lambda: navigator.change_field("has_partner", False),
        navigator.previous,
        lambda: navigator.change_field("has_partner", True),
        lambda: navigator.blur_field("partner_name"),
        navigator.start_over,
        navigator.previous,
    ]

    for action in actions:
        action()
        assert 0 <= wizard.state.current_step_index < len(navigator.steps)
        assert navigator.current_step is not None

    assert wizard.step_id == "about"


def test_previous_moves_back_but_not_from_first_or_confirmation(wizard: WizardHarness) -> None:
    assert not wizard.navigator.previous()

    wizard.state.current_step_index = 1
    assert wizard.navigator.previous()
    assert wizard.state.current_step_index == 0

    wizard.state.current_step_index = 2
    assert wizard.step_id == "done"
    assert not wizard.navigator.previous()
    assert wizard.step_id == "done"


def test_change_field_stores_none_as_empty_and_revalidates_touched(wizard: WizardHarness) -> None:
    wizard.navigator.blur_field("full_name")
    assert wizard.state.field_errors == {"full_name": "Full Name is required"}

    wizard.navigator.change_field("full_name", "Ada")
    assert wizard.state.field_errors == {}

    wizard.navigator.change_field("full_name", None)
    assert wizard.state.form_data["full_name"] == ""
    assert wizard.state.field_errors == {"full_name": "Full Name is required"}


def test_change_field_leaves_untouched_fields_silent(wizard: WizardHarness) -> None:
    wizard.navigator.change_field("email", "ada@example.org")

    assert wizard.state.field_errors == {}


def test_blur_of_unknown_field_is_ignored(wizard: WizardHarness) -> None:
    wizard.navigator.blur_field("nope")

    assert wizard.state.touched_fields == set()


def test_field_changes_autosave(wizard: WizardHarness) -> None:
    wizard.navigator.change_field("full_name", "Ada")

    snapshot = wizard.progress.load(wizard.application.slug)

    assert snapshot is not None
    assert snapshot.form_data == {"full_name": "Ada"}
    assert snapshot.step_index == 0


def test_reload_restores_saved_progress(harness: Callable[..., WizardHarness]) -> None:
    storage: dict[str, str] = {}
    first = harness(_membership(), storage=storage)
    first.navigator.change_field("full_name", "Ada")
    first.navigator.change_field("email", "ada@example.org")
    first.navigator.change_field("has_partner", True)
    first.navigator.next()

    reloaded = harness(_membership(), storage=storage)
    marker = reloaded.navigator.resume({})

    assert marker is None
    assert reloaded.state.form_data == first.state.form_data
    assert reloaded.state.current_step_index == first.state.current_step_index == 1
    assert reloaded.step_id == "partner"


def test_resume_clamps_out_of_range_saved_index(harness: Callable[..., WizardHarness]) -> None:
    storage = {
        StorageKeys.progress("club-membership", RESUME_TOKEN): serialize_snapshot(
            ProgressSnapshot(form_data={"full_name": "Ada"}, step_index=7, saved_at=1)
        )
    }
    wizard = harness(_membership(), storage=storage)

    wizard.navigator.resume({})

    assert wizard.state.current_step_index == 2


@pytest.mark.parametrize(
    ("params", "expected"),
    [
        ({"payment": "success", "step": "1"}, PaymentReturn("success", 1)),
        ({"payment": "success"}, None),
        ({"payment": "success", "step": "x"}, None),
        ({"payment": "cancel"}, PaymentReturn("cancel", 0)),
        ({"payment": "cancel", "step": "2"}, PaymentReturn("cancel", 2)),
        ({"payment": ["cancel"], "step": ["1"]}, PaymentReturn("cancel", 1)),
        ({}, None),
    ],
)
def test_parse_payment_return(params: dict[str, object], expected: PaymentReturn | None) -> None:
    assert parse_payment_return(params) == expected


def _stash_membership(storage: dict[str, str], step_index: int) -> None:
    PaymentStash(storage, RESUME_TOKEN).save(
        PaymentStashRecord(
            form_data={"full_name": "Ada", "has_partner": True, "partner_name": "Sam"},
            application_id=42,
            application_slug="club-membership",
            step_index=step_index,
            submitted_application_id=900,
            captured_lead_id=12,
        )
    )


def test_payment_success_returns_to_next_step(harness: Callable[..., WizardHarness]) -> None:
    storage: dict[str, str] = {}
    _stash_membership(storage, step_index=2)
    ProgressStore(storage, RESUME_TOKEN).save(
        "club-membership", ProgressSnapshot(form_data={"full_name": "Stale"}, step_index=0, saved_at=1)
    )
    wizard = harness(_membership(), storage=storage)

    marker = wizard.navigator.resume({"payment": "success", "step": "2"})

    assert marker == PaymentReturn("success", 2)
    assert wizard.state.current_step_index == 3
    assert wizard.step_id == "done"
    assert wizard.state.form_data["full_name"] == "Ada"
    assert wizard.state.submitted_application_id == 900
    assert wizard.state.captured_lead_id == 12
    assert wizard.stash.load("club-membership") is None
    assert wizard.notifier.titles == ["Payment Successful"]


def test_payment_success_on_last_step_stays(harness: Callable[..., WizardHarness]) -> None:
    storage: dict[str, str] = {}
    _stash_membership(storage, step_index=3)
    wizard = harness(_membership(), storage=storage)

    wizard.navigator.resume({"payment": "success", "step": "3"})

    assert wizard.state.current_step_index == 3


def test_payment_cancel_restores_form_and_step(harness: Callable[..., WizardHarness]) -> None:
    storage: dict[str, str] = {}
    _stash_membership(storage, step_index=2)
    wizard = harness(_membership(), storage=storage)

    marker = wizard.navigator.resume({"payment": "cancel", "step": "2"})

    assert marker == PaymentReturn("cancel", 2)
    assert wizard.step_id == "pay"
    assert wizard.state.form_data["partner_name"] == "Sam"
    assert wizard.stash.load("club-membership") is None
    assert wizard.notifier.notes[-1].variant == "destructive"


def test_payment_return_without_stash_still_navigates(harness: Callable[..., WizardHarness]) -> None:
    wizard = harness(_membership())
    wizard.state.form_data = {"full_name": "Ada"}

    wizard.navigator.resume({"payment": "success", "step": "0"})

    assert wizard.state.current_step_index == 1
    assert wizard.state.form_data == {"full_name": "Ada"}


def test_start_over_clears_everything(harness: Callable[..., WizardHarness]) -> None:
    storage: dict[str, str] = {}
    _stash_membership(storage, step_index=2)
    wizard = harness(_membership(), storage=storage)
    wizard.navigator.change_field("full_name", "Ada")
    wizard.state.captured_lead_id = 12
    wizard.state.user_opted_for_partial_payment = True
    wizard.state.current_step_index = 2
    state_object = wizard.state

    wizard.navigator.start_over()

    assert wizard.state is state_object
    assert wizard.state.form_data == {}
    assert wizard.state.current_step_index == 0
    assert wizard.state.captured_lead_id is None
    assert wizard.state.user_opted_for_partial_payment is False
    assert storage == {}
    assert wizard.notifier.titles[-1] == "Form Cleared"


def test_mark_submitted_stops_autosave(wizard: WizardHarness) -> None:
    wizard.navigator.change_field("full_name", "Ada")

    wizard.navigator.mark_submitted()
    wizard.navigator.change_field("email", "ada@example.org")

    assert wizard.progress.load(wizard.application.slug) is None


def test_partial_payment_opt_in_is_saved(wizard: WizardHarness) -> None:
    wizard.navigator.change_field("full_name", "Ada")

    wizard.navigator.set_partial_payment_opt_in(True)

    assert wizard.progress.load(wizard.application.slug).user_opted_for_partial_payment is True


def test_single_form_mode_has_no_steps(harness: Callable[..., WizardHarness]) -> None:
    fields = [make_field("full_name", required=True), make_field("notes", conditions=(when("full_name", "not_empty"),))]
    wizard = harness(make_application(fields))

    assert not wizard.navigator.is_wizard_mode
    assert wizard.navigator.steps == []
    assert wizard.navigator.current_step is None
    assert [field.name for field in wizard.navigator.current_fields()] == ["full_name"]
