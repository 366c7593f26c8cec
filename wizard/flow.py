"""Streamlit rendering of one application's wizard (or single-page form)."""

from __future__ import annotations

import html
import json
import logging
from typing import MutableMapping

import streamlit as st
import streamlit.components.v1 as components

from config import Settings
from constants.keys import UIKeys
from core.pricing import calculate_price_breakdown
from integrations.services import WizardServices
from models.application import ApplicationItem
from models.pricing import PriceBreakdown
from models.services import DecisionPreviewResponse
from models.wizard_config import StepDefinition, StepType
from state.autosave import FileStorage, ProgressStore
from state.payment_stash import PaymentStash
from state.runtime import get_runtime_state
from utils.logging_context import set_application, set_wizard_step
from wizard.field_widgets import render_fields, reset_widget_state
from wizard.navigation.keys import WizardSessionKeys
from wizard.navigation.router import RESUME_PARAM, WizardNavigator, new_resume_token, parse_resume_token
from wizard.navigation.ui import (
    build_navigation_buttons,
    inject_navigation_style,
    maybe_scroll_to_focus,
    render_navigation,
    render_progress,
    render_validation_warnings,
)
from wizard.notifications import SessionNotifier
from wizard.placeholders import replace_placeholders
from wizard.steps.base import StepContext, StepOutcome, StepStatus
from wizard.steps.checkout_step import plan_charge
from wizard.steps.confirmation_step import ConfirmationStepHandler
from wizard.steps.dispatcher import StepDispatcher

logger = logging.getLogger(__name__)

_RISK_BAND_ICONS = {"Low": "🟢", "Medium": "🟡", "High": "🔴"}


def bind_resume_token(
    session_state: MutableMapping[str, object],
    query_params: MutableMapping[str, object],
    key: str,
) -> str:
    """Return this browser's resume token, minting one on the first visit.

    The token is mirrored into the URL so a reload or a payment return finds
    the same saved progress, and nobody else's.
    """

    token = session_state.get(key)
    if not isinstance(token, str):
        token = parse_resume_token(query_params) or new_resume_token()
        session_state[key] = token
    if parse_resume_token(query_params) != token:
        query_params[RESUME_PARAM] = token
    return token


def build_context(
    application: ApplicationItem,
    services: WizardServices,
    settings: Settings,
    session_state: MutableMapping[str, object],
    query_params: MutableMapping[str, object],
) -> StepContext:
    """Bind the engine for ``application`` to the current session."""

    keys = WizardSessionKeys(application.slug)
    token = bind_resume_token(session_state, query_params, keys.resume_token)
    storage = FileStorage(settings.progress_dir)
    notifier = SessionNotifier(session_state, keys.notifications)
    navigator = WizardNavigator(
        application=application,
        state=get_runtime_state(session_state, keys.runtime_state),
        progress_store=ProgressStore(storage, token),
        payment_stash=PaymentStash(storage, token),
        notifier=notifier,
    )
    return StepContext(
        application=application,
        navigator=navigator,
        services=services,
        notifier=notifier,
        settings=settings,
    )


def resume_once(
    ctx: StepContext,
    session_state: MutableMapping[str, object],
    query_params: MutableMapping[str, object],
) -> None:
    """Restore saved progress or a payment return on the first run of a session."""

    keys = WizardSessionKeys(ctx.application.slug)
    if session_state.get(keys.resumed):
        return
    session_state[keys.resumed] = True
    marker = ctx.navigator.resume(query_params)
    if marker is not None:
        logger.info("Handled payment return '%s' for step %s", marker.status, marker.step)
        for name in ("payment", "step"):
            if name in query_params:
                del query_params[name]


# -- callbacks -------------------------------------------------------------


def _remember(ctx: StepContext, outcome: StepOutcome | None) -> None:
    keys = WizardSessionKeys(ctx.application.slug)
    if outcome is None:
        return
    st.session_state[keys.last_outcome] = outcome
    if outcome.status == StepStatus.REDIRECT and outcome.redirect_url:
        st.session_state[keys.redirect_url] = outcome.redirect_url


def _on_action(ctx: StepContext, dispatcher: StepDispatcher) -> None:
    _remember(ctx, dispatcher.act(ctx))


def _on_previous(ctx: StepContext) -> None:
    ctx.navigator.previous()


def _on_start_over(ctx: StepContext) -> None:
    keys = WizardSessionKeys(ctx.application.slug)
    ctx.navigator.start_over()
    reset_widget_state()
    st.session_state.pop(keys.last_outcome, None)
    st.session_state.pop(keys.redirect_url, None)


def _on_partial_payment_change(ctx: StepContext) -> None:
    ctx.navigator.set_partial_payment_opt_in(bool(st.session_state.get(UIKeys.PARTIAL_PAYMENT_OPT_IN)))


# -- panels ----------------------------------------------------------------


def _render_notifications(ctx: StepContext) -> None:
    if isinstance(ctx.notifier, SessionNotifier):
        ctx.notifier.render()


def render_price_summary(breakdown: PriceBreakdown) -> None:
    with st.container(border=True):
        st.markdown("**Price Summary**")
        if breakdown.base_price > 0:
            st.markdown(f"Base Application Fee: ${breakdown.base_price:.2f}")
        for item in breakdown.items:
            if item.subtotal <= 0:
                continue
            quantity = f" × {item.quantity:g}" if item.quantity > 1 else ""
            st.markdown(f"{html.escape(item.label)}{quantity}: ${item.subtotal:.2f}")
        st.markdown(f"**Total: ${breakdown.total:.2f}**")
        if breakdown.is_partial:
            st.markdown(f"Due today: ${breakdown.amount_due:.2f}")
            st.caption(f"Balance remaining: ${breakdown.balance_remaining:.2f}")


def _render_checkout(ctx: StepContext) -> None:
    pricing = ctx.application.pricing
    partial = pricing.partial_payment
    if pricing.enabled and partial is not None and partial.enabled and partial.type == "user_selected":
        if UIKeys.PARTIAL_PAYMENT_OPT_IN not in st.session_state:
            st.session_state[UIKeys.PARTIAL_PAYMENT_OPT_IN] = ctx.state.user_opted_for_partial_payment
        st.checkbox(
            "Pay a deposit now and the balance later",
            key=UIKeys.PARTIAL_PAYMENT_OPT_IN,
            on_change=_on_partial_payment_change,
            args=(ctx,),
        )
    plan = plan_charge(ctx)
    if plan.uses_dynamic_pricing:
        render_price_summary(plan.breakdown)
    elif plan.charge_amount > 0:
        st.markdown(f"**Amount due: ${plan.charge_amount:.2f}**")
    if plan.charge_amount <= 0:
        st.info("No payment is required.")


def render_decision_preview(preview: DecisionPreviewResponse) -> None:
    with st.container(border=True):
        if preview.estimated:
            st.caption("Estimated results")
        likelihood_col, band_col = st.columns(2)
        likelihood_col.metric("Approval likelihood", f"{preview.approval_likelihood:g}%")
        band_col.metric("Risk band", f"{_RISK_BAND_ICONS.get(preview.risk_band, '')} {preview.risk_band}")
        if preview.matched_nbfc_scheme:
            st.markdown(f"**Matched scheme:** {preview.matched_nbfc_scheme}")
        strengths_col, risks_col = st.columns(2)
        with strengths_col:
            st.markdown("**Strengths**")
            for line in preview.strengths:
                st.markdown(f"- {line}")
        with risks_col:
            st.markdown("**Risks**")
            for line in preview.risks:
                st.markdown(f"- {line}")


def _render_confirmation(ctx: StepContext) -> None:
    st.success("Your application has been received.")
    button = ConfirmationStepHandler.action_button(ctx)
    if button is not None:
        text, url = button
        st.link_button(text, url)
    st.button(
        "Start New Application",
        key=UIKeys.START_OVER_CONFIRM,
        on_click=_on_start_over,
        args=(ctx,),
    )


def _render_redirect(url: str) -> None:
    st.info("Redirecting to the secure payment page…")
    st.link_button("Continue to payment", url, type="primary")
    components.html(
        f"<script>(window.parent || window).location.href = {json.dumps(url)};</script>",
        height=0,
    )


def _render_submitted(ctx: StepContext) -> None:
    st.success("Thank you for your application. We will review it and get back to you soon.")
    st.button("Start New Application", key=UIKeys.START_OVER_CONFIRM, on_click=_on_start_over, args=(ctx,))


def _render_start_over(ctx: StepContext) -> None:
    if not ctx.state.has_form_data() or ctx.state.is_busy:
        return
    with st.popover("Start over"):
        st.markdown("This clears every answer and saved progress.")
        st.button(
            "Clear form",
            key=UIKeys.START_OVER_CONFIRM,
            type="primary",
            on_click=_on_start_over,
            args=(ctx,),
        )


def _render_step_body(ctx: StepContext, step: StepDefinition) -> None:
    fallback = ctx.placeholder_fallback
    if step.type == StepType.CONFIRMATION:
        _render_confirmation(ctx)
        return
    render_fields(ctx.navigator, ctx.navigator.fields_for(step), fallback)
    if step.type == StepType.STRIPE_CHECKOUT:
        _render_checkout(ctx)
    elif step.show_price_summary and ctx.application.pricing.enabled:
        render_price_summary(
            calculate_price_breakdown(
                ctx.application.pricing,
                ctx.form_data,
                ctx.application.form_fields,
                ctx.state.user_opted_for_partial_payment,
            )
        )
    if step.type == StepType.DECISION_PREVIEW and ctx.state.decision_preview is not None:
        render_decision_preview(ctx.state.decision_preview)


# -- entry points ----------------------------------------------------------


def _run_steps(ctx: StepContext, dispatcher: StepDispatcher) -> None:
    navigator = ctx.navigator
    step = navigator.current_step
    if step is None:
        st.warning("This application has no steps to show.")
        return
    set_wizard_step(step.id)

    start_index = ctx.state.current_step_index
    with st.spinner("Working…"):
        entry = dispatcher.enter(ctx)
    if entry is not None:
        _remember(ctx, entry)
    if ctx.state.current_step_index != start_index:
        st.rerun()
    _render_notifications(ctx)
    if ctx.state.is_submitted and step.type == StepType.SUBMISSION and navigator.is_last:
        _render_submitted(ctx)
        return

    render_progress(ctx.state.current_step_index, navigator.steps)
    if step.title:
        st.subheader(step.title)
    if step.description:
        st.markdown(replace_placeholders(step.description, ctx.form_data, ctx.placeholder_fallback))

    last = st.session_state.get(WizardSessionKeys(ctx.application.slug).last_outcome)
    if isinstance(last, StepOutcome) and last.status == StepStatus.COMPLETED and step.type == StepType.STRIPE_CHECKOUT:
        st.info("Your application was submitted. We will contact you to complete payment.")

    _render_step_body(ctx, step)

    buttons = build_navigation_buttons(
        step,
        is_first=navigator.is_first,
        is_busy=ctx.state.is_busy,
        action_enabled=dispatcher.is_action_enabled(ctx),
    )
    render_navigation(
        buttons,
        on_previous=lambda: _on_previous(ctx),
        on_action=lambda: _on_action(ctx, dispatcher),
    )
    labels = {field.name: field.label for field in navigator.fields_for(step)}
    render_validation_warnings(ctx.state.field_errors, labels)
    if step.type != StepType.CONFIRMATION:
        _render_start_over(ctx)


def _run_single_page(ctx: StepContext, dispatcher: StepDispatcher) -> None:
    set_wizard_step("form")
    _render_notifications(ctx)
    if ctx.state.is_submitted:
        _render_submitted(ctx)
        return
    navigator = ctx.navigator
    render_fields(navigator, navigator.current_fields(), ctx.placeholder_fallback)
    if ctx.application.pricing.enabled:
        render_price_summary(
            calculate_price_breakdown(
                ctx.application.pricing,
                ctx.form_data,
                ctx.application.form_fields,
                ctx.state.user_opted_for_partial_payment,
            )
        )
    busy = ctx.state.is_busy
    st.button(
        "Submitting…" if busy else "Submit Application",
        key=UIKeys.APPLICATION_SUBMIT,
        type="primary",
        disabled=busy,
        on_click=lambda: _on_action(ctx, dispatcher),
    )
    labels = {field.name: field.label for field in navigator.current_fields()}
    render_validation_warnings(ctx.state.field_errors, labels)


def run_wizard(
    application: ApplicationItem,
    services: WizardServices,
    settings: Settings,
    *,
    dispatcher: StepDispatcher | None = None,
) -> None:
    """Render the form for ``application`` and process the user's last action."""

    set_application(application.slug)
    ctx = build_context(application, services, settings, st.session_state, st.query_params)
    resume_once(ctx, st.session_state, st.query_params)
    dispatcher = dispatcher or StepDispatcher()
    keys = WizardSessionKeys(application.slug)

    inject_navigation_style()
    if application.title:
        st.title(application.title)

    redirect_url = st.session_state.pop(keys.redirect_url, None)
    if isinstance(redirect_url, str) and redirect_url:
        _render_redirect(redirect_url)
        return

    if ctx.navigator.is_wizard_mode:
        _run_steps(ctx, dispatcher)
    else:
        _run_single_page(ctx, dispatcher)

    maybe_scroll_to_focus(ctx.state.focus_target)
    ctx.state.focus_target = None


__all__ = [
    "build_context",
    "render_decision_preview",
    "render_price_summary",
    "resume_once",
    "run_wizard",
]
