# app.py: application wizard entrypoint
from __future__ import annotations

import logging
from pathlib import Path
import sys

import streamlit as st

APP_ROOT = Path(__file__).resolve().parent
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from config import Settings, load_settings  # noqa: E402
from constants.keys import StateKeys  # noqa: E402
from core.errors import ServiceError  # noqa: E402
from integrations import ApiClient, WizardServices, build_services  # noqa: E402
from models.application import ApplicationItem  # noqa: E402
from utils.logging_context import configure_logging, log_context  # noqa: E402
from utils.telemetry import setup_tracing  # noqa: E402
from wizard.flow import run_wizard  # noqa: E402

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@st.cache_resource
def _bootstrap() -> tuple[Settings, WizardServices]:
    """Configure logging, tracing and the service clients once per process."""

    settings = load_settings()
    configure_logging(level=settings.log_level_number)
    setup_tracing()
    services = build_services(ApiClient(settings))
    logger.info("Application wizard %s started", APP_VERSION)
    return settings, services


def _application_slug() -> str | None:
    slug = st.query_params.get("application")
    return slug.strip() if isinstance(slug, str) and slug.strip() else None


def _load_application(services: WizardServices, slug: str) -> ApplicationItem | None:
    cached = st.session_state.get(StateKeys.APPLICATION)
    if isinstance(cached, ApplicationItem) and cached.slug == slug:
        return cached
    try:
        with log_context(application=slug):
            item = services.applications.get_item_details(slug)
    except ServiceError as exc:
        logger.warning("Could not load application '%s': %s", slug, exc)
        return None
    st.session_state[StateKeys.APPLICATION] = item
    return item


def main() -> None:
    st.set_page_config(page_title="Application", page_icon="📝", layout="centered")
    settings, services = _bootstrap()

    slug = _application_slug()
    if slug is None:
        st.info("Open this page with an `application` link to start.")
        return

    application = _load_application(services, slug)
    if application is None:
        st.error("This application could not be loaded. Please try again later.")
        return

    run_wizard(application, services, settings)


main()
