"""Streamlit widgets bound to wizard form fields."""

from __future__ import annotations

import base64
import logging
from datetime import date
from typing import Any, Callable

import streamlit as st

from constants.keys import UIKeys
from models.wizard_config import FieldDefinition, FieldType, FormValue
from wizard.navigation.router import WizardNavigator
from wizard.placeholders import replace_placeholders
from wizard.validation import check_upload

logger = logging.getLogger(__name__)

_TEXT_WIDGET_TYPES = frozenset({FieldType.TEXT, FieldType.EMAIL, FieldType.PHONE, FieldType.URL, FieldType.SIGNATURE})


def widget_key(field: FieldDefinition) -> str:
    return f"{UIKeys.FIELD_PREFIX}{field.name}"


def _label(field: FieldDefinition) -> str:
    return f"{field.label} *" if field.required else field.label


def _ensure_widget_state(key: str, value: Any) -> None:
    """Seed the widget from form data without clobbering pending input."""

    if key not in st.session_state:
        st.session_state[key] = value


def _normalize_value(field: FieldDefinition, raw: Any) -> FormValue:
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, date):
        return raw.isoformat()
    if isinstance(raw, float) and field.type == FieldType.NUMBER:
        return str(int(raw)) if raw.is_integer() else str(raw)
    return str(raw)


def _build_on_change(navigator: WizardNavigator, field: FieldDefinition, key: str) -> Callable[[], None]:
    """Commit the widget value, then treat the commit as leaving the field."""

    def _callback() -> None:
        navigator.change_field(field.name, _normalize_value(field, st.session_state.get(key)))
        navigator.blur_field(field.name)

    return _callback


def encode_upload(filename: str, content_type: str, payload: bytes) -> str:
    """Store an upload as a data URI so it travels with the form data."""

    mime = content_type or "application/octet-stream"
    encoded = base64.b64encode(payload).decode("ascii")
    logger.debug("Encoded upload '%s' (%s bytes)", filename, len(payload))
    return f"data:{mime};base64,{encoded}"


def _parse_date(value: FormValue | None) -> date | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _parse_number(value: FormValue | None) -> float | None:
    if isinstance(value, bool) or value in (None, ""):
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except ValueError:
        return None


def _render_upload(navigator: WizardNavigator, field: FieldDefinition, key: str) -> None:
    config = field.file_config
    accepted = None
    if config and config.accepted_types:
        accepted = [entry.strip() for entry in config.accepted_types.split(",") if entry.strip()]
    uploaded = st.file_uploader(_label(field), type=accepted, key=key)
    current = navigator.state.form_data.get(field.name)
    if uploaded is None:
        if current:
            st.caption("A file is already attached.")
        return
    marker = f"{key}.last_upload"
    fingerprint = f"{uploaded.name}:{uploaded.size}"
    if st.session_state.get(marker) == fingerprint:
        return
    st.session_state[marker] = fingerprint
    error = check_upload(field, filename=uploaded.name, content_type=uploaded.type or "", size=uploaded.size)
    if error:
        navigator.state.field_errors[field.name] = error
        navigator.state.touched_fields.add(field.name)
        return
    navigator.change_field(field.name, encode_upload(uploaded.name, uploaded.type or "", uploaded.getvalue()))
    navigator.blur_field(field.name)


def render_field(navigator: WizardNavigator, field: FieldDefinition, fallback: str) -> None:
    """Render one field and its inline error."""

    state = navigator.state
    key = widget_key(field)
    value = state.form_data.get(field.name)
    on_change = _build_on_change(navigator, field, key)

    if field.type == FieldType.HTML_CONTENT:
        st.markdown(replace_placeholders(field.content, state.form_data, fallback), unsafe_allow_html=True)
        return
    if field.type == FieldType.READONLY_TEXT:
        if field.label:
            st.markdown(f"**{field.label}**")
        st.markdown(replace_placeholders(field.content, state.form_data, fallback))
        return

    if field.type in _TEXT_WIDGET_TYPES:
        _ensure_widget_state(key, value if isinstance(value, str) else "")
        st.text_input(_label(field), key=key, placeholder=field.placeholder or None, on_change=on_change)
    elif field.type == FieldType.TEXTAREA:
        _ensure_widget_state(key, value if isinstance(value, str) else "")
        st.text_area(_label(field), key=key, placeholder=field.placeholder or None, on_change=on_change)
    elif field.type == FieldType.NUMBER:
        _ensure_widget_state(key, _parse_number(value))
        st.number_input(_label(field), key=key, on_change=on_change)
    elif field.type == FieldType.DATE:
        _ensure_widget_state(key, _parse_date(value))
        st.date_input(_label(field), key=key, on_change=on_change)
    elif field.type == FieldType.SELECT:
        options = list(field.options)
        _ensure_widget_state(key, value if value in options else None)
        st.selectbox(
            _label(field),
            options,
            key=key,
            placeholder=field.placeholder or "Select an option",
            on_change=on_change,
        )
    elif field.type == FieldType.RADIO:
        options = list(field.options)
        _ensure_widget_state(key, value if value in options else None)
        st.radio(_label(field), options, key=key, on_change=on_change)
    elif field.type == FieldType.CHECKBOX:
        _ensure_widget_state(key, value is True)
        st.checkbox(field.checkbox_label or _label(field), key=key, on_change=on_change)
    elif field.type == FieldType.TERMS_AGREEMENT:
        if field.content:
            with st.container(border=True, height=200):
                st.markdown(replace_placeholders(field.content, state.form_data, fallback))
        _ensure_widget_state(key, value is True)
        st.checkbox(field.checkbox_label or "I agree to the terms", key=key, on_change=on_change)
    elif field.type == FieldType.FILE_UPLOAD:
        _render_upload(navigator, field, key)
    else:
        logger.warning("Unsupported field type '%s' for '%s'", field.type, field.name)
        return

    error = state.field_errors.get(field.name)
    if error and field.name in state.touched_fields:
        st.error(error, icon="⚠️")


def render_fields(navigator: WizardNavigator, fields: list[FieldDefinition], fallback: str) -> None:
    for field in fields:
        render_field(navigator, field, fallback)


def reset_widget_state() -> None:
    """Drop every bound widget value so a cleared form renders empty."""

    for key in [key for key in st.session_state.keys() if str(key).startswith(UIKeys.FIELD_PREFIX)]:
        del st.session_state[key]


__all__ = ["encode_upload", "render_field", "render_fields", "reset_widget_state", "widget_key"]
