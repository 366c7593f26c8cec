"""``{{token}}`` substitution shared by emails, static content and terms."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Mapping

from models.wizard_config import DEFAULT_PLACEHOLDER_FALLBACK

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def _twelve_hour(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    return f"{hour}:{moment.minute:02d} {'AM' if moment.hour < 12 else 'PM'}"


def system_placeholders(moment: datetime) -> dict[str, str]:
    """Reserved tokens resolved from ``moment`` rather than form data."""

    date_text = f"{moment.strftime('%B')} {moment.day}, {moment.year}"
    time_text = _twelve_hour(moment)
    return {
        "current_date": date_text,
        "current_time": time_text,
        "current_day": moment.strftime("%A"),
        "current_datetime": f"{date_text} {time_text}",
    }


def _render_value(value: object, fallback: str) -> str:
    if value is None or value == "":
        return fallback
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def replace_placeholders(
    template: str | None,
    form_data: Mapping[str, object],
    fallback: str = DEFAULT_PLACEHOLDER_FALLBACK,
    *,
    now: datetime | None = None,
) -> str:
    """Resolve every ``{{token}}`` in ``template``.

    Reserved tokens win over form fields; unknown or empty fields resolve to
    ``fallback``, so no token survives literally.
    """

    if not template:
        return ""
    system = system_placeholders(now or datetime.now())

    def _substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in system:
            return system[key]
        return _render_value(form_data.get(key), fallback)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


__all__ = ["PLACEHOLDER_PATTERN", "replace_placeholders", "system_placeholders"]
