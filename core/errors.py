"""Exception taxonomy for the application wizard."""

from __future__ import annotations

from typing import Mapping


class WizardError(Exception):
    """Base exception for wizard failures."""

    title = "Error"

    def __init__(self, message: str, *, title: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if title is not None:
            self.title = title


class FieldValidationError(WizardError):
    """Raised locally when visible fields fail validation; never reaches the backend."""

    title = "Validation Error"

    def __init__(self, errors: Mapping[str, str]) -> None:
        super().__init__("Please fix the highlighted fields before continuing.")
        self.errors = dict(errors)

    @property
    def first_field(self) -> str | None:
        return next(iter(self.errors), None)


class ConfigurationError(WizardError):
    """Raised when a step is missing configuration it needs."""

    title = "Configuration Error"


class ServiceError(WizardError):
    """Raised by the HTTP layer for transport failures and non-2xx responses."""

    def __init__(self, service: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.service} failed ({self.status_code}): {self.message}"
        return f"{self.service} failed: {self.message}"


class RetryableServiceError(WizardError):
    """The step stays put and the user may retry the same action."""


class DegradedServiceError(WizardError):
    """A secondary side effect failed; forward progress continues."""


class FatalSubmissionError(WizardError):
    """Creating the application record failed; nothing is assumed committed."""

    title = "Submission Failed"


__all__ = [
    "ConfigurationError",
    "DegradedServiceError",
    "FatalSubmissionError",
    "FieldValidationError",
    "RetryableServiceError",
    "ServiceError",
    "WizardError",
]
