"""Service interfaces consumed by the step handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from models.application import ApplicationItem
from models.services import (
    ApplicationPayload,
    CheckoutSessionRequest,
    DecisionPreviewResponse,
    EmailMessage,
    LeadRequest,
)


class LeadService(Protocol):
    def create_lead(self, request: LeadRequest) -> int:
        """Create a lead record and return its id."""


class ApplicationService(Protocol):
    def get_item_details(self, slug: str) -> ApplicationItem:
        """Load the application definition published under ``slug``."""

    def create_application(self, payload: ApplicationPayload) -> int | None:
        """Create the application record and return its id when provided."""


class PaymentSessionService(Protocol):
    def create_checkout_session(self, request: CheckoutSessionRequest) -> str:
        """Return the hosted checkout URL for ``request``."""


class EmailService(Protocol):
    def send(self, message: EmailMessage) -> None:
        """Deliver one message to one recipient."""


class DecisionPreviewService(Protocol):
    def get_preview(
        self,
        form_data: Mapping[str, Any],
        *,
        application_id: int | None,
        endpoint: str,
    ) -> DecisionPreviewResponse:
        """Return the backend's decision preview for ``form_data``."""


class CampaignService(Protocol):
    def assign(self, campaign_id: int, lead_id: int) -> None:
        """Attach ``lead_id`` to the campaign item ``campaign_id``."""


@dataclass(frozen=True)
class WizardServices:
    """Bundle of the external collaborators the dispatcher talks to."""

    leads: LeadService
    applications: ApplicationService
    payments: PaymentSessionService
    email: EmailService
    decisions: DecisionPreviewService
    campaigns: CampaignService


__all__ = [
    "ApplicationService",
    "CampaignService",
    "DecisionPreviewService",
    "EmailService",
    "LeadService",
    "PaymentSessionService",
    "WizardServices",
]
