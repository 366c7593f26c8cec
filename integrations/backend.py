"""HTTP implementations of the wizard's backend services."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from core.errors import ServiceError
from integrations.client import ApiClient
from integrations.services import WizardServices
from models.application import ApplicationItem
from models.services import (
    ApplicationPayload,
    CheckoutSessionRequest,
    DecisionPreviewResponse,
    EmailMessage,
    LeadRequest,
)

logger = logging.getLogger(__name__)

_PREVIEW_EXCLUDED_KEY_FRAGMENTS = ("signature", "file", "upload", "attachment", "document")


def is_file_reference(value: object) -> bool:
    """Return ``True`` for inline uploads and links into the document vault."""

    return isinstance(value, str) and (value.startswith("data:") or "/vault/" in value)


def sanitize_preview_form_data(form_data: Mapping[str, Any]) -> dict[str, Any]:
    """Drop uploads, signatures and document-like keys before scoring."""

    sanitized: dict[str, Any] = {}
    for key, value in form_data.items():
        if is_file_reference(value):
            continue
        lowered = key.lower()
        if any(fragment in lowered for fragment in _PREVIEW_EXCLUDED_KEY_FRAGMENTS):
            continue
        sanitized[key] = value
    return sanitized


def _extract_id(data: Any, service: str) -> int | None:
    if isinstance(data, Mapping):
        raw = data.get("id")
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise ServiceError(service, f"unexpected id {raw!r}") from exc
    return None


class HttpLeadService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def create_lead(self, request: LeadRequest) -> int:
        data = self._client.post("/leads", request.model_dump(exclude_none=True), service="leads")
        lead_id = _extract_id(data, "leads")
        if lead_id is None:
            raise ServiceError("leads", "lead response did not include an id")
        return lead_id


class HttpApplicationService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def get_item_details(self, slug: str) -> ApplicationItem:
        data = self._client.get(f"/items_details/{slug}", service="items")
        if not data:
            raise ServiceError("items", f"no application published under '{slug}'", status_code=404)
        try:
            return ApplicationItem.from_payload(data)
        except (ValidationError, ValueError, KeyError) as exc:
            raise ServiceError("items", f"unusable application definition: {exc}") from exc

    def create_application(self, payload: ApplicationPayload) -> int | None:
        data = self._client.post("/application", payload.model_dump(exclude_none=True), service="applications")
        return _extract_id(data, "applications")


class HttpCampaignService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def assign(self, campaign_id: int, lead_id: int) -> None:
        self._client.post("/campaigns", {"items_id": campaign_id, "leads_id": lead_id}, service="campaigns")


class HttpDecisionPreviewService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def get_preview(
        self,
        form_data: Mapping[str, Any],
        *,
        application_id: int | None,
        endpoint: str,
    ) -> DecisionPreviewResponse:
        payload = {"formData": sanitize_preview_form_data(form_data), "applicationId": application_id}
        path = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        data = self._client.post(path, payload, service="decision_preview", retry=True)
        try:
            return DecisionPreviewResponse.model_validate(data or {})
        except ValidationError as exc:
            raise ServiceError("decision_preview", f"malformed preview: {exc.error_count()} errors") from exc


class HttpPaymentSessionService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def create_checkout_session(self, request: CheckoutSessionRequest) -> str:
        data = self._client.post(
            "/sessions",
            request.model_dump(exclude_none=True),
            service="payments",
            base_url=self._client.settings.payment_api_base_url,
            tenant=False,
        )
        payment = data.get("_payment") or data if isinstance(data, Mapping) else None
        url = payment.get("url") if isinstance(payment, Mapping) else None
        if not url:
            raise ServiceError("payments", "invalid payment response")
        return str(url)


class HttpEmailService:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    def send(self, message: EmailMessage) -> None:
        self._client.post(
            "/send_simple_email",
            message.model_dump(by_alias=True),
            service="email",
            base_url=self._client.settings.email_api_base_url,
            tenant=False,
        )
        logger.debug("Email accepted for delivery")


def build_services(client: ApiClient) -> WizardServices:
    """Wire every HTTP service onto one shared client."""

    return WizardServices(
        leads=HttpLeadService(client),
        applications=HttpApplicationService(client),
        payments=HttpPaymentSessionService(client),
        email=HttpEmailService(client),
        decisions=HttpDecisionPreviewService(client),
        campaigns=HttpCampaignService(client),
    )


__all__ = [
    "HttpApplicationService",
    "HttpCampaignService",
    "HttpDecisionPreviewService",
    "HttpEmailService",
    "HttpLeadService",
    "HttpPaymentSessionService",
    "build_services",
    "is_file_reference",
    "sanitize_preview_form_data",
]
