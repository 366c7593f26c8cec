"""Context fields attached to every log record.

Each record carries ``application`` (slug), ``wizard_step`` (step id) and
``service`` (the remote service being called). Unset fields render as ``-``.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator

_LOG_FORMAT = (
    "%(asctime)s %(levelname)s [app=%(application)s step=%(wizard_step)s "
    "svc=%(service)s] %(name)s: %(message)s"
)
_UNSET = "-"

_CONTEXT: dict[str, contextvars.ContextVar[str]] = {
    name: contextvars.ContextVar(name, default=_UNSET) for name in ("application", "wizard_step", "service")
}
_base_factory = logging.getLogRecordFactory()
_factory_installed = False


def _normalise(value: str | None) -> str:
    return (value or "").strip() or _UNSET


def _stamp(record: logging.LogRecord) -> logging.LogRecord:
    for name, var in _CONTEXT.items():
        setattr(record, name, var.get())
    return record


class _ContextFilter(logging.Filter):
    # Records created before the factory was installed still need the fields.
    def filter(self, record: logging.LogRecord) -> bool:
        _stamp(record)
        return True


def configure_logging(*, level: int = logging.INFO) -> None:
    """Set up root logging with the context-aware format. Safe to call repeatedly."""

    global _factory_installed
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=_LOG_FORMAT)
    for handler in root.handlers:
        if handler.formatter is None:
            handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    if not any(isinstance(existing, _ContextFilter) for existing in root.filters):
        root.addFilter(_ContextFilter())
    if not _factory_installed:
        logging.setLogRecordFactory(lambda *args, **kwargs: _stamp(_base_factory(*args, **kwargs)))
        _factory_installed = True


def set_application(slug: str | None) -> None:
    _CONTEXT["application"].set(_normalise(slug))


def set_wizard_step(step_id: str | None) -> None:
    _CONTEXT["wizard_step"].set(_normalise(step_id))


@contextmanager
def log_context(**fields: str | None) -> Iterator[None]:
    """Bind ``application``, ``wizard_step`` and/or ``service`` for the block.

    ``None`` leaves a field untouched; outer values are restored on exit.
    """

    unknown = set(fields) - set(_CONTEXT)
    if unknown:
        raise TypeError(f"Unknown logging context fields: {', '.join(sorted(unknown))}")
    tokens = [
        (_CONTEXT[name], _CONTEXT[name].set(_normalise(value))) for name, value in fields.items() if value is not None
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


__all__ = ["configure_logging", "log_context", "set_application", "set_wizard_step"]
