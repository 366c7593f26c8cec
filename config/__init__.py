"""Runtime configuration for the application wizard.

Values are read from Streamlit secrets first and from environment variables
second. A ``.env`` file in the working directory is loaded on import so local
runs behave like deployments.
"""

from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import streamlit as st
from dotenv import load_dotenv

from models.wizard_config import DEFAULT_PLACEHOLDER_FALLBACK

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.elegant.ux.wimsup.com"
DEFAULT_PAYMENT_API_BASE_URL = "https://api.elegant.stripe.wimsup.com"
DEFAULT_EMAIL_API_BASE_URL = "https://api.elegant.postmark.wimsup.com"
DEFAULT_APP_BASE_URL = "http://localhost:8501"
DEFAULT_PROGRESS_DIR = "~/.application_wizard/progress"
DEFAULT_REQUEST_TIMEOUT = 15.0


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration values.

    Attributes:
        api_base_url: Backend for leads, applications, campaigns and decisions.
        payment_api_base_url: Checkout session service.
        email_api_base_url: Transactional email service.
        api_domain: Tenant domain sent as ``X-Elegant-Domain``.
        api_auth_secret: Shared secret sent as ``X-Elegant-Auth``.
        app_base_url: Public URL of this app, used for payment return links.
        progress_dir: Directory holding saved progress and payment stashes.
        request_timeout: Per-request timeout in seconds.
        placeholder_fallback: Text for unresolved ``{{token}}`` placeholders.
        log_level: Root logging level name.
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    payment_api_base_url: str = DEFAULT_PAYMENT_API_BASE_URL
    email_api_base_url: str = DEFAULT_EMAIL_API_BASE_URL
    api_domain: str = ""
    api_auth_secret: str = ""
    app_base_url: str = DEFAULT_APP_BASE_URL
    progress_dir: Path = Path(DEFAULT_PROGRESS_DIR).expanduser()
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    placeholder_fallback: str = DEFAULT_PLACEHOLDER_FALLBACK
    log_level: str = "INFO"

    @property
    def log_level_number(self) -> int:
        return logging.getLevelNamesMapping()[self.log_level]


def _normalise_timeout(value: object | None, *, default: float = DEFAULT_REQUEST_TIMEOUT) -> float:
    """Return a positive timeout value in seconds."""

    if value is None:
        return default
    candidate = value
    if isinstance(candidate, str):
        stripped = candidate.strip()
        if not stripped:
            return default
        try:
            candidate = float(stripped)
        except ValueError:
            warnings.warn(
                "Unsupported REQUEST_TIMEOUT '%s'; falling back to %.1f seconds." % (candidate, default),
                RuntimeWarning,
            )
            return default
    if isinstance(candidate, (int, float)) and not isinstance(candidate, bool):
        timeout = float(candidate)
        if timeout > 0:
            return timeout
    warnings.warn(
        "REQUEST_TIMEOUT must be a positive number; falling back to %.1f seconds." % default,
        RuntimeWarning,
    )
    return default


def _coerce_secret_value(value: object) -> str:
    """Return ``value`` as a trimmed string without raising on unexpected types."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="ignore").strip()
    return str(value).strip()


def _read_secrets() -> Mapping[str, object]:
    try:
        return dict(st.secrets)
    except (FileNotFoundError, KeyError):
        return {}


def _strip_slash(url: str) -> str:
    return url.rstrip("/")


def load_settings(secrets: Mapping[str, object] | None = None) -> Settings:
    """Load settings from Streamlit secrets or environment variables."""

    resolved_secrets = _read_secrets() if secrets is None else secrets

    def _get(key: str, default: str = "") -> str:
        value = _coerce_secret_value(resolved_secrets.get(key))
        if value:
            return value
        return _coerce_secret_value(os.getenv(key)) or default

    log_level = _get("LOG_LEVEL", "INFO").upper()
    if log_level not in logging.getLevelNamesMapping():
        warnings.warn("Unsupported LOG_LEVEL '%s'; falling back to INFO." % log_level, RuntimeWarning)
        log_level = "INFO"

    return Settings(
        api_base_url=_strip_slash(_get("API_BASE_URL", DEFAULT_API_BASE_URL)),
        payment_api_base_url=_strip_slash(_get("PAYMENT_API_BASE_URL", DEFAULT_PAYMENT_API_BASE_URL)),
        email_api_base_url=_strip_slash(_get("EMAIL_API_BASE_URL", DEFAULT_EMAIL_API_BASE_URL)),
        api_domain=_get("API_DOMAIN"),
        api_auth_secret=_get("API_AUTH_SECRET"),
        app_base_url=_strip_slash(_get("APP_BASE_URL", DEFAULT_APP_BASE_URL)),
        progress_dir=Path(_get("PROGRESS_DIR", DEFAULT_PROGRESS_DIR)).expanduser(),
        request_timeout=_normalise_timeout(_get("REQUEST_TIMEOUT") or None),
        placeholder_fallback=_get("PLACEHOLDER_FALLBACK", DEFAULT_PLACEHOLDER_FALLBACK),
        log_level=log_level,
    )


__all__ = ["Settings", "load_settings"]
