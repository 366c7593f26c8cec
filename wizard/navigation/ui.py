from __future__ import annotations

import html
import json
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

import streamlit as st
import streamlit.components.v1 as components

from constants.keys import StateKeys, UIKeys
from models.wizard_config import StepDefinition
from wizard.navigation.router import FOCUS_FIRST_CONTROL
from wizard.step_registry import get_spec


_NAVIGATION_STYLE = """
<style>
.aw-nav-anchor + div[data-testid="stHorizontalBlock"] {
    max-width: 560px;
    margin: 1.5rem auto 0.5rem;
    gap: 0.75rem;
}
.aw-nav-anchor + div[data-testid="stHorizontalBlock"] button {
    min-height: 2.75rem;
    border-radius: 10px;
}
.aw-step-header {
    display: flex;
    justify-content: space-between;
    font-size: 0.875rem;
    opacity: 0.75;
}
.aw-step-errors {
    max-width: 560px;
    margin: 0.5rem auto 0;
    padding: 0.5rem 0.75rem;
    border-left: 3px solid #dc2626;
    background: #fef2f2;
    font-size: 0.9rem;
}
@media (max-width: 640px) {
    .aw-nav-anchor + div[data-testid="stHorizontalBlock"] { flex-direction: column-reverse; }
}
</style>
"""


_FOCUSABLE: tuple[str, ...] = ("input", "textarea", "[role='combobox']")


@dataclass(frozen=True)
class NavigationButtons:
    """Labels and enablement for the bar under the current step."""

    show_previous: bool
    previous_enabled: bool
    action_label: str | None
    action_enabled: bool


def inject_navigation_style() -> None:
    st.markdown(_NAVIGATION_STYLE, unsafe_allow_html=True)


def build_navigation_buttons(
    step: StepDefinition,
    *,
    is_first: bool,
    is_busy: bool,
    action_enabled: bool,
) -> NavigationButtons:
    spec = get_spec(step.type)
    label = spec.busy_label if is_busy and spec.busy_label else spec.action_label
    return NavigationButtons(
        show_previous=spec.allow_previous and not is_first,
        previous_enabled=not is_busy,
        action_label=label,
        action_enabled=action_enabled and not is_busy,
    )


def render_progress(current_index: int, steps: Sequence[StepDefinition]) -> None:
    """Show "Step N of M" with a progress bar."""

    total = len(steps)
    if total == 0:
        return
    position = min(current_index, total - 1) + 1
    title = html.escape(steps[position - 1].title or "")
    st.markdown(
        f'<div class="aw-step-header"><span>Step {position} of {total}</span><span>{title}</span></div>',
        unsafe_allow_html=True,
    )
    st.progress(position / total)


def render_navigation(
    buttons: NavigationButtons,
    *,
    on_previous: Callable[[], None],
    on_action: Callable[[], None],
) -> None:
    if not buttons.show_previous and buttons.action_label is None:
        return
    st.markdown('<div class="aw-nav-anchor"></div>', unsafe_allow_html=True)
    previous_col, action_col = st.columns(2)
    with previous_col:
        if buttons.show_previous:
            st.button(
                "◀ Previous",
                key=UIKeys.NAV_PREVIOUS,
                disabled=not buttons.previous_enabled,
                on_click=on_previous,
                width="stretch",
            )
    with action_col:
        if buttons.action_label is not None:
            st.button(
                buttons.action_label,
                key=UIKeys.NAV_NEXT,
                type="primary",
                disabled=not buttons.action_enabled,
                on_click=on_action,
                width="stretch",
            )


def render_validation_warnings(field_errors: Mapping[str, str], labels: Mapping[str, str]) -> None:
    """Summarise the current step's errors below the navigation bar."""

    if not field_errors:
        return
    lines = [
        f"{html.escape(labels.get(name, name))}: {html.escape(message)}"
        for name, message in field_errors.items()
        if name in labels
    ]
    if not lines:
        return
    st.markdown(
        f'<div class="aw-step-errors">{"<br />".join(lines)}</div>',
        unsafe_allow_html=True,
    )


def focus_selector(target: str) -> str:
    """CSS selector for a focus request."""

    if target == FOCUS_FIRST_CONTROL:
        scope, controls = "section.main", (*_FOCUSABLE, "button")
    else:
        key = json.dumps(f"st-key-{UIKeys.FIELD_PREFIX}{target}".replace(".", "-"))
        scope, controls = f"[class*={key}]", _FOCUSABLE
    return ", ".join(f"{scope} {control}:not([disabled])" for control in controls)


def maybe_scroll_to_focus(focus_target: str | None) -> None:
    """Scroll the requested control into view and focus it once."""

    if not focus_target:
        return
    nonce = int(st.session_state.get(StateKeys.FOCUS_SCRIPT_NONCE, 0)) + 1
    st.session_state[StateKeys.FOCUS_SCRIPT_NONCE] = nonce
    selector = json.dumps(focus_selector(focus_target))
    components.html(
        f"""
        <script>
        // nonce {nonce}
        (function() {{
            const root = window.parent || window;
            const focusTarget = () => {{
                const target = root.document.querySelector({selector});
                if (!target) {{
                    root.scrollTo({{ top: 0, behavior: 'smooth' }});
                    return;
                }}
                target.scrollIntoView({{ behavior: 'smooth', block: 'center' }});
                setTimeout(() => target.focus({{ preventScroll: true }}), 180);
            }};
            if ('requestAnimationFrame' in root) {{
                root.requestAnimationFrame(focusTarget);
            }} else {{
                focusTarget();
            }}
        }})();
        </script>
        """,
        height=0,
    )


__all__ = [
    "NavigationButtons",
    "build_navigation_buttons",
    "focus_selector",
    "inject_navigation_style",
    "maybe_scroll_to_focus",
    "render_navigation",
    "render_progress",
    "render_validation_warnings",
]
