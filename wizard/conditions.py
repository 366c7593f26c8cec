"""Evaluate visibility conditions against the current form data."""

from __future__ import annotations

from typing import Iterable, Mapping

from models.wizard_config import Condition, ConditionLogic, ConditionOperator


def stringify_value(value: object) -> str:
    """Return the comparison string for a stored form value.

    Booleans become ``"true"``/``"false"``; missing and empty values become
    ``""`` so comparisons never raise on type mismatches.
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def evaluate_condition(condition: Condition, form_data: Mapping[str, object]) -> bool:
    if not condition.field_name:
        return True

    actual = stringify_value(form_data.get(condition.field_name))
    expected = condition.value or ""
    operator = condition.operator
    if operator == ConditionOperator.EQUALS:
        return actual == expected
    if operator == ConditionOperator.NOT_EQUALS:
        return actual != expected
    if operator == ConditionOperator.CONTAINS:
        return expected.lower() in actual.lower()
    if operator == ConditionOperator.NOT_EMPTY:
        return actual.strip() != ""
    if operator == ConditionOperator.IS_EMPTY:
        return actual.strip() == ""
    # Unknown operators from newer form builders do not hide anything.
    return True


def evaluate_conditions(
    conditions: Iterable[Condition] | None,
    logic: ConditionLogic | str = ConditionLogic.ALL,
    form_data: Mapping[str, object] | None = None,
) -> bool:
    """Return ``True`` when ``conditions`` hold for ``form_data``.

    An empty or missing list places no restriction. ``logic="any"`` requires
    at least one satisfied condition; anything else requires all of them.
    """

    items = list(conditions or ())
    if not items:
        return True
    data = form_data or {}
    if logic == ConditionLogic.ANY:
        return any(evaluate_condition(condition, data) for condition in items)
    return all(evaluate_condition(condition, data) for condition in items)


__all__ = ["evaluate_condition", "evaluate_conditions", "stringify_value"]
