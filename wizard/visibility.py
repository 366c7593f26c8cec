"""Derive the visible steps and fields from the configuration and form data.

Nothing here is cached: conditions may reference any field, so callers
recompute after every form-data change.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from models.wizard_config import FieldDefinition, StepDefinition, WizardConfiguration
from wizard.conditions import evaluate_conditions


def is_step_visible(step: StepDefinition, form_data: Mapping[str, object]) -> bool:
    return evaluate_conditions(step.conditions, step.condition_logic, form_data)


def is_field_visible(field: FieldDefinition, form_data: Mapping[str, object]) -> bool:
    return evaluate_conditions(field.conditions, field.condition_logic, form_data)


def visible_steps(config: WizardConfiguration, form_data: Mapping[str, object]) -> list[StepDefinition]:
    """Return the steps whose conditions hold, in ``sequence`` order."""

    return [step for step in config.steps if is_step_visible(step, form_data)]


def visible_fields(
    step: StepDefinition,
    fields: Sequence[FieldDefinition],
    form_data: Mapping[str, object],
) -> list[FieldDefinition]:
    """Return the fields owned by ``step`` whose own conditions hold."""

    return [field for field in fields if field.step_id == step.id and is_field_visible(field, form_data)]


def all_visible_fields(
    config: WizardConfiguration,
    fields: Sequence[FieldDefinition],
    form_data: Mapping[str, object],
) -> list[FieldDefinition]:
    """Return every field the applicant can currently see.

    Without wizard mode this is the flat single-form list. In wizard mode a
    field must also belong to a visible step; fields without a step are kept.
    """

    if not config.is_wizard_mode:
        return [field for field in fields if is_field_visible(field, form_data)]
    step_ids = {step.id for step in visible_steps(config, form_data)}
    return [
        field
        for field in fields
        if (field.step_id is None or field.step_id in step_ids) and is_field_visible(field, form_data)
    ]


__all__ = [
    "all_visible_fields",
    "is_field_visible",
    "is_step_visible",
    "visible_fields",
    "visible_steps",
]
