"""Pricing configuration and breakdown models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PriceItemType = Literal["fixed", "field_price", "field_quantity"]
PartialPaymentType = Literal["fixed", "percentage", "user_selected"]


class _PricingModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PriceItem(_PricingModel):
    """Single add-on line configured in the pricing builder."""

    id: str
    label: str = ""
    type: PriceItemType = "fixed"
    field_id: Optional[str] = None
    fixed_price: Optional[float] = None
    price_mapping: dict[str, float] = Field(default_factory=dict)
    quantity_field_id: Optional[str] = None
    is_multiplied: bool = False

    @field_validator("price_mapping", mode="before")
    @classmethod
    def _none_to_dict(cls, value: object) -> object:
        return {} if value is None else value


class PartialPayment(_PricingModel):
    enabled: bool = False
    type: PartialPaymentType = "percentage"
    value: float = 0.0
    user_selected_type: Optional[Literal["fixed", "percentage"]] = None


class PricingConfig(_PricingModel):
    enabled: bool = False
    base_price: float = 0.0
    items: list[PriceItem] = Field(default_factory=list)
    partial_payment: Optional[PartialPayment] = None


class BreakdownItem(_PricingModel):
    id: str
    label: str
    unit_price: float
    quantity: float
    subtotal: float


class AppliedPartialPayment(PartialPayment):
    user_opted_in: Optional[bool] = None


class PriceBreakdown(_PricingModel):
    """Computed totals; ``amount_due`` is what the checkout step charges."""

    base_price: float = 0.0
    items: list[BreakdownItem] = Field(default_factory=list)
    total: float = 0.0
    amount_due: float = 0.0
    balance_remaining: float = 0.0
    partial_payment: Optional[AppliedPartialPayment] = None

    @property
    def is_partial(self) -> bool:
        return bool(self.partial_payment and self.partial_payment.enabled and self.balance_remaining > 0)


__all__ = [
    "AppliedPartialPayment",
    "BreakdownItem",
    "PartialPayment",
    "PriceBreakdown",
    "PriceItem",
    "PricingConfig",
]
