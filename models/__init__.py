"""Pydantic models for wizard configuration, pricing and service payloads."""

from .application import ApplicationItem
from .pricing import PriceBreakdown, PricingConfig
from .wizard_config import (
    Condition,
    FieldDefinition,
    FieldType,
    FormData,
    StepDefinition,
    StepType,
    WizardConfiguration,
)

__all__ = [
    "ApplicationItem",
    "Condition",
    "FieldDefinition",
    "FieldType",
    "FormData",
    "PriceBreakdown",
    "PricingConfig",
    "StepDefinition",
    "StepType",
    "WizardConfiguration",
]
