"""External service integrations for the application wizard."""

from .backend import build_services
from .client import ApiClient
from .services import WizardServices

__all__ = ["ApiClient", "WizardServices", "build_services"]
