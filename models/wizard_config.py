"""Pydantic models for the declarative application wizard configuration.

The configuration is produced by the external form builder and is treated as
immutable input: fields, steps, visibility conditions and the per-step-type
settings. Keys arrive in camelCase (``stepId``, ``conditionLogic``); the
models accept both camelCase and snake_case.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

FormValue = str | bool
FormData = dict[str, FormValue]

DEFAULT_PLACEHOLDER_FALLBACK = "N/A"


class FieldType(StrEnum):
    """Input types supported by the form builder."""

    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    NUMBER = "number"
    DATE = "date"
    URL = "url"
    READONLY_TEXT = "readonly_text"
    HTML_CONTENT = "html_content"
    TERMS_AGREEMENT = "terms_agreement"
    SIGNATURE = "signature"
    FILE_UPLOAD = "file_upload"
    RADIO = "radio"


STATIC_FIELD_TYPES: frozenset[FieldType] = frozenset({FieldType.READONLY_TEXT, FieldType.HTML_CONTENT})


class StepType(StrEnum):
    """Step types understood by the dispatcher."""

    FIELDS = "fields"
    STRIPE_CHECKOUT = "stripe_checkout"
    LEAD_CAPTURE = "lead_capture"
    SUBMISSION = "submission"
    SEND_EMAIL = "send_email"
    CONFIRMATION = "confirmation"
    DECISION_PREVIEW = "decision_preview"


class ConditionOperator(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_EMPTY = "not_empty"
    IS_EMPTY = "is_empty"


class ConditionLogic(StrEnum):
    ALL = "all"
    ANY = "any"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class Condition(_ConfigModel):
    """Predicate over a single field value.

    ``operator`` keeps unknown operator names as plain strings so that a newer
    form builder does not break older wizards; the evaluator treats them as
    satisfied.
    """

    id: Optional[str] = None
    field_name: str = ""
    operator: ConditionOperator | str = ConditionOperator.EQUALS
    value: str = ""

    @field_validator("field_name", "value", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class FieldValidation(_ConfigModel):
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None


class FileConfig(_ConfigModel):
    accepted_types: Optional[str] = None
    max_size: Optional[float] = None  # megabytes


class FieldDefinition(_ConfigModel):
    """Single form field; values are keyed by ``name`` in the form data."""

    id: str
    name: str
    label: str = ""
    type: FieldType = FieldType.TEXT
    required: bool = False
    step_id: Optional[str] = None
    placeholder: Optional[str] = None
    content: Optional[str] = None
    checkbox_label: Optional[str] = None
    options: tuple[str, ...] = ()
    validation: Optional[FieldValidation] = None
    conditions: tuple[Condition, ...] = ()
    condition_logic: ConditionLogic = ConditionLogic.ALL
    file_config: Optional[FileConfig] = None

    @field_validator("conditions", "options", mode="before")
    @classmethod
    def _none_to_tuple(cls, value: object) -> object:
        return () if value is None else value

    @field_validator("condition_logic", mode="before")
    @classmethod
    def _default_logic(cls, value: object) -> object:
        return ConditionLogic.ALL if value in (None, "") else value

    @property
    def is_static(self) -> bool:
        return self.type in STATIC_FIELD_TYPES


class StripeConfig(_ConfigModel):
    product_id: Optional[str] = None
    price_id: Optional[str] = None
    product_name: Optional[str] = None
    product_description: Optional[str] = None
    price_amount: float = 0.0
    currency: str = "usd"
    mode: str = "payment"
    success_message: Optional[str] = None

    @field_validator("price_amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: object) -> object:
        return 0.0 if value in (None, "") else value


class LeadConfig(_ConfigModel):
    email_field: Optional[str] = None
    name_field: Optional[str] = None
    payload_fields: tuple[str, ...] = ()
    status: str = "new"

    @field_validator("payload_fields", mode="before")
    @classmethod
    def _none_to_tuple(cls, value: object) -> object:
        return () if value is None else value


class EmailConfig(_ConfigModel):
    from_: str = Field("", alias="from")
    to: str = ""
    subject: str = ""
    html_body: str = ""
    message_stream: str = "broadcast"


class ConfirmationConfig(_ConfigModel):
    action_button_text: Optional[str] = None
    action_button_url: Optional[str] = None


class DecisionPreviewConfig(_ConfigModel):
    api_endpoint: str = "/decision-preview"


class StepDefinition(_ConfigModel):
    """One wizard step; the ``type`` selects the dispatcher handler."""

    id: str
    title: str = ""
    description: Optional[str] = None
    type: StepType = StepType.FIELDS
    sequence: int = 0
    conditions: tuple[Condition, ...] = ()
    condition_logic: ConditionLogic = ConditionLogic.ALL
    show_price_summary: bool = False
    stripe_config: Optional[StripeConfig] = None
    lead_config: Optional[LeadConfig] = None
    email_config: Optional[EmailConfig] = None
    confirmation_config: Optional[ConfirmationConfig] = None
    decision_preview_config: Optional[DecisionPreviewConfig] = None

    @field_validator("conditions", mode="before")
    @classmethod
    def _none_to_tuple(cls, value: object) -> object:
        return () if value is None else value

    @field_validator("condition_logic", mode="before")
    @classmethod
    def _default_logic(cls, value: object) -> object:
        return ConditionLogic.ALL if value in (None, "") else value


class WizardConfiguration(_ConfigModel):
    """Ordered step list plus global wizard settings.

    Steps are stored sorted by ``sequence``; ties keep declaration order.
    """

    enabled: bool = False
    steps: tuple[StepDefinition, ...] = ()
    placeholder_fallback: Optional[str] = None

    @field_validator("steps", mode="before")
    @classmethod
    def _none_to_tuple(cls, value: object) -> object:
        return () if value is None else value

    @field_validator("steps", mode="after")
    @classmethod
    def _sort_by_sequence(cls, value: tuple[StepDefinition, ...]) -> tuple[StepDefinition, ...]:
        return tuple(sorted(value, key=lambda step: step.sequence))

    @field_validator("placeholder_fallback", mode="before")
    @classmethod
    def _default_fallback(cls, value: object) -> object:
        return value or None

    @property
    def is_wizard_mode(self) -> bool:
        return self.enabled and bool(self.steps)


__all__ = [
    "Condition",
    "ConditionLogic",
    "ConditionOperator",
    "ConfirmationConfig",
    "DEFAULT_PLACEHOLDER_FALLBACK",
    "DecisionPreviewConfig",
    "EmailConfig",
    "FieldDefinition",
    "FieldType",
    "FieldValidation",
    "FileConfig",
    "FormData",
    "FormValue",
    "LeadConfig",
    "STATIC_FIELD_TYPES",
    "StepDefinition",
    "StepType",
    "StripeConfig",
    "WizardConfiguration",
]
