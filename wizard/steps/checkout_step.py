"""Hosted checkout step."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from core.errors import DegradedServiceError, RetryableServiceError, ServiceError
from core.pricing import calculate_price_breakdown
from models.pricing import PriceBreakdown
from models.services import CheckoutLineItem, CheckoutSessionRequest
from models.wizard_config import StepType, StripeConfig
from wizard.navigation.router import RESUME_PARAM
from wizard.steps.base import StepContext, StepHandler, StepOutcome, StepStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChargePlan:
    """What the checkout step would charge right now."""

    breakdown: PriceBreakdown
    uses_dynamic_pricing: bool
    charge_amount: float
    total_amount: float

    @property
    def is_partial(self) -> bool:
        partial = self.breakdown.partial_payment
        return bool(self.uses_dynamic_pricing and partial and partial.enabled and self.breakdown.balance_remaining > 0)


def _format_percentage(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def plan_charge(ctx: StepContext) -> ChargePlan:
    stripe = _stripe_config(ctx)
    breakdown = calculate_price_breakdown(
        ctx.application.pricing,
        ctx.form_data,
        ctx.application.form_fields,
        ctx.state.user_opted_for_partial_payment,
    )
    dynamic = ctx.application.pricing.enabled and breakdown.total > 0
    return ChargePlan(
        breakdown=breakdown,
        uses_dynamic_pricing=dynamic,
        charge_amount=breakdown.amount_due if dynamic else stripe.price_amount,
        total_amount=breakdown.total if dynamic else stripe.price_amount,
    )


def _stripe_config(ctx: StepContext) -> StripeConfig:
    if ctx.step is not None and ctx.step.stripe_config is not None:
        return ctx.step.stripe_config
    return StripeConfig()


def build_line_items(ctx: StepContext, plan: ChargePlan) -> list[CheckoutLineItem]:
    stripe = _stripe_config(ctx)
    currency = stripe.currency or "usd"
    product_name = stripe.product_name or ctx.application.title
    breakdown = plan.breakdown

    if not plan.uses_dynamic_pricing:
        return [
            CheckoutLineItem.build(
                currency=currency,
                name=product_name,
                amount=plan.charge_amount,
                description=stripe.product_description or ctx.application.title,
            )
        ]

    if plan.is_partial:
        partial = breakdown.partial_payment
        effective_type = partial.user_selected_type if partial.type == "user_selected" else partial.type
        label = f"Deposit ({_format_percentage(partial.value)}%)" if effective_type == "percentage" else "Deposit"
        description = (
            f"{label} - Total: ${plan.total_amount:.2f}, Balance Due: ${breakdown.balance_remaining:.2f}"
        )
        return [
            CheckoutLineItem.build(currency=currency, name=product_name, amount=plan.charge_amount, description=description)
        ]

    items: list[CheckoutLineItem] = []
    if breakdown.base_price > 0:
        items.append(
            CheckoutLineItem.build(
                currency=currency,
                name=product_name,
                amount=breakdown.base_price,
                description="Base Application Fee",
            )
        )
    for item in breakdown.items:
        if item.subtotal <= 0:
            continue
        description = f"${item.unit_price:.2f} × {item.quantity:g}" if item.quantity > 1 else None
        items.append(
            CheckoutLineItem.build(
                currency=currency,
                name=item.label,
                amount=item.unit_price,
                quantity=item.quantity,
                description=description,
            )
        )
    return items


def build_return_urls(ctx: StepContext) -> tuple[str, str]:
    base = f"{ctx.settings.app_base_url}/"
    index = ctx.state.current_step_index

    def _url(status: str) -> str:
        params = {
            "application": ctx.application.slug,
            "payment": status,
            "step": index,
            RESUME_PARAM: ctx.navigator.resume_token,
        }
        return f"{base}?{urlencode(params)}"

    return _url("success"), _url("cancel")


class CheckoutStepHandler(StepHandler):
    step_type = StepType.STRIPE_CHECKOUT
    pending_flag = "is_processing_payment"

    def is_action_enabled(self, ctx: StepContext) -> bool:
        return super().is_action_enabled(ctx) and plan_charge(ctx).charge_amount > 0

    def act(self, ctx: StepContext) -> StepOutcome:
        plan = plan_charge(ctx)
        if plan.charge_amount <= 0:
            logger.info("Checkout skipped; nothing is due")
            return StepOutcome(StepStatus.DISABLED)

        stripe = _stripe_config(ctx)
        success_url, cancel_url = build_return_urls(ctx)
        request = CheckoutSessionRequest(
            line_items=build_line_items(ctx, plan),
            success_url=success_url,
            cancel_url=cancel_url,
            mode="subscription" if stripe.mode == "subscription" else "payment",
            bookings_id=ctx.state.submitted_application_id,
        )
        ctx.navigator.stash_for_payment()
        try:
            url = ctx.services.payments.create_checkout_session(request)
        except ServiceError as exc:
            logger.warning("Checkout session creation failed: %s", exc)
            if ctx.state.submitted_application_id:
                return StepOutcome(
                    StepStatus.COMPLETED,
                    error=DegradedServiceError(
                        "Your application has been submitted successfully! However, we could not connect to "
                        "the payment system. Please contact the club directly to complete your payment.",
                        title="Payment System Unavailable",
                    ),
                )
            return StepOutcome.stayed(
                RetryableServiceError(
                    "Failed to initialize payment. Please try again or contact the club for assistance.",
                    title="Payment Error",
                )
            )
        return StepOutcome(StepStatus.REDIRECT, redirect_url=url)


__all__ = [
    "ChargePlan",
    "CheckoutStepHandler",
    "build_line_items",
    "build_return_urls",
    "plan_charge",
]
