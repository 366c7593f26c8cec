"""Pure price calculation for application pricing configurations."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Sequence

from models.pricing import AppliedPartialPayment, BreakdownItem, PriceBreakdown, PriceItem, PricingConfig
from models.wizard_config import FieldDefinition, FieldType


def _to_number(value: object, default: float = 0.0) -> float:
    """Coerce a form value to a number, returning ``default`` when unusable or zero."""

    if isinstance(value, bool):
        number = 1.0 if value else 0.0
    elif isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return default
        try:
            number = float(cleaned)
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number) or number == 0:
        return default
    return number


def round_currency(amount: float) -> float:
    """Round ``amount`` to cents using half-up rounding."""

    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def migrate_pricing_config(raw: Mapping[str, Any] | PricingConfig | None) -> PricingConfig:
    """Return a :class:`PricingConfig`, upgrading the single-field legacy shape."""

    if raw is None:
        return PricingConfig()
    if isinstance(raw, PricingConfig):
        return raw
    if isinstance(raw.get("items"), list):
        return PricingConfig.model_validate(raw)

    items: list[PriceItem] = []
    price_field_id = raw.get("priceFieldId")
    if price_field_id:
        items.append(
            PriceItem(
                id="legacy-price",
                label="Variable Price",
                type="field_price",
                field_id=price_field_id,
                price_mapping=raw.get("priceMapping") or {},
                quantity_field_id=raw.get("quantityFieldId"),
                is_multiplied=bool(raw.get("quantityMultiplier")),
            )
        )
    return PricingConfig(
        enabled=bool(raw.get("enabled", False)),
        base_price=float(raw.get("basePrice") or 0),
        items=items,
    )


def _find_field(fields: Sequence[FieldDefinition], field_id: str | None) -> FieldDefinition | None:
    if not field_id:
        return None
    return next((field for field in fields if field.id == field_id), None)


def _apply_partial_payment(
    config: PricingConfig,
    breakdown: PriceBreakdown,
    user_opted_in: bool,
) -> None:
    partial = config.partial_payment
    if partial is None or not partial.enabled or breakdown.total <= 0:
        breakdown.amount_due = breakdown.total
        breakdown.balance_remaining = 0.0
        return

    applies = user_opted_in if partial.type == "user_selected" else True
    if not applies:
        breakdown.partial_payment = AppliedPartialPayment(**partial.model_dump(), user_opted_in=False)
        breakdown.amount_due = breakdown.total
        breakdown.balance_remaining = 0.0
        return

    effective_type = (partial.user_selected_type or "percentage") if partial.type == "user_selected" else partial.type
    breakdown.partial_payment = AppliedPartialPayment(
        **partial.model_dump(),
        user_opted_in=user_opted_in if partial.type == "user_selected" else None,
    )
    if effective_type == "fixed":
        breakdown.amount_due = min(partial.value, breakdown.total)
    else:
        breakdown.amount_due = round_currency(breakdown.total * partial.value / 100)
    breakdown.balance_remaining = round_currency(breakdown.total - breakdown.amount_due)


def calculate_price_breakdown(
    config: PricingConfig | Mapping[str, Any] | None,
    form_data: Mapping[str, object],
    fields: Sequence[FieldDefinition],
    user_opted_for_partial_payment: bool = False,
) -> PriceBreakdown:
    """Compute totals, the amount due now and the remaining balance."""

    pricing = migrate_pricing_config(config)
    base_price = pricing.base_price or 0.0
    breakdown = PriceBreakdown(base_price=base_price, total=base_price, amount_due=base_price)
    if not pricing.enabled or not pricing.items:
        return breakdown

    for item in pricing.items:
        unit_price = 0.0
        quantity = 1.0
        field = _find_field(fields, item.field_id)
        if item.type == "fixed":
            unit_price = item.fixed_price or 0.0
        elif item.type == "field_price" and field is not None:
            value = form_data.get(field.name)
            if field.type == FieldType.SELECT and item.price_mapping:
                unit_price = item.price_mapping.get(str(value), 0.0) if value is not None else 0.0
            elif field.type == FieldType.NUMBER:
                unit_price = _to_number(value)
        elif item.type == "field_quantity" and field is not None:
            quantity = _to_number(form_data.get(field.name))
            unit_price = item.fixed_price or 0.0

        if item.is_multiplied and item.quantity_field_id:
            quantity_field = _find_field(fields, item.quantity_field_id)
            if quantity_field is not None:
                quantity = _to_number(form_data.get(quantity_field.name), default=1.0)

        subtotal = unit_price * quantity
        if unit_price > 0 or quantity > 0:
            breakdown.items.append(
                BreakdownItem(
                    id=item.id,
                    label=item.label,
                    unit_price=unit_price,
                    quantity=quantity,
                    subtotal=subtotal,
                )
            )
        breakdown.total += subtotal

    _apply_partial_payment(pricing, breakdown, user_opted_for_partial_payment)
    return breakdown


__all__ = ["calculate_price_breakdown", "migrate_pricing_config", "round_currency"]
