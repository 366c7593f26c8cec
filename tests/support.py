"""Builders and service fakes shared by the test-suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from core.errors import ServiceError
from integrations.services import WizardServices
from models.application import ApplicationItem
from models.services import (
    ApplicationPayload,
    CheckoutSessionRequest,
    DecisionPreviewResponse,
    EmailMessage,
    LeadRequest,
)
from models.wizard_config import (
    Condition,
    FieldDefinition,
    StepDefinition,
    StepType,
    WizardConfiguration,
)
from state.autosave import ProgressStore
from state.payment_stash import PaymentStash
from state.runtime import WizardRuntimeState
from wizard.navigation.router import WizardNavigator
from wizard.notifications import Notification, NotificationVariant
from wizard.steps.base import StepContext
from wizard.steps.dispatcher import StepDispatcher

# Resume token of the simulated browser.
RESUME_TOKEN = "3f2c9a7e51b04d6c8e1a2b3c4d5e6f70"


# -- builders --------------------------------------------------------------


def make_field(name: str, **overrides: Any) -> FieldDefinition:
    values: dict[str, Any] = {"id": f"fld-{name}", "name": name, "label": name.replace("_", " ").title()}
    values.update(overrides)
    return FieldDefinition(**values)


def make_step(step_id: str, step_type: StepType = StepType.FIELDS, **overrides: Any) -> StepDefinition:
    values: dict[str, Any] = {"id": step_id, "title": step_id.title(), "type": step_type}
    values.update(overrides)
    return StepDefinition(**values)


def when(field_name: str, operator: str = "equals", value: str = "") -> Condition:
    return Condition(field_name=field_name, operator=operator, value=value)


def make_application(
    fields: list[FieldDefinition],
    steps: list[StepDefinition] | None = None,
    **overrides: Any,
) -> ApplicationItem:
    numbered = [step.model_copy(update={"sequence": index}) for index, step in enumerate(steps or [])]
    values: dict[str, Any] = {
        "id": 42,
        "slug": "club-membership",
        "title": "Club Membership",
        "form_fields": tuple(fields),
        "wizard": WizardConfiguration(enabled=bool(numbered), steps=tuple(numbered)),
    }
    values.update(overrides)
    return ApplicationItem(**values)


# -- fakes -----------------------------------------------------------------


class ListNotifier:
    def __init__(self) -> None:
        self.notes: list[Notification] = []

    def notify(self, title: str, description: str, variant: NotificationVariant = "default") -> None:
        self.notes.append(Notification(title, description, variant))

    @property
    def titles(self) -> list[str]:
        return [note.title for note in self.notes]


class FakeLeadService:
    def __init__(self, lead_id: int = 501) -> None:
        self.lead_id = lead_id
        self.error: Exception | None = None
        self.calls: list[LeadRequest] = []

    def create_lead(self, request: LeadRequest) -> int:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.lead_id


class FakeApplicationService:
    def __init__(self, application_id: int | None = 9001) -> None:
        self.application_id = application_id
        self.error: Exception | None = None
        self.calls: list[ApplicationPayload] = []
        self.on_create: Callable[[], None] | None = None

    def get_item_details(self, slug: str) -> ApplicationItem:
        raise ServiceError("items", f"not stubbed: {slug}")

    def create_application(self, payload: ApplicationPayload) -> int | None:
        self.calls.append(payload)
        if self.on_create is not None:
            self.on_create()
        if self.error is not None:
            raise self.error
        return self.application_id


class FakePaymentService:
    def __init__(self, url: str = "https://checkout.example/session/cs_test") -> None:
        self.url = url
        self.error: Exception | None = None
        self.calls: list[CheckoutSessionRequest] = []

    def create_checkout_session(self, request: CheckoutSessionRequest) -> str:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.url


class FakeEmailService:
    def __init__(self) -> None:
        self.failing_recipients: set[str] = set()
        self.crashing_recipients: set[str] = set()
        self.sent: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        if message.to in self.failing_recipients:
            raise ServiceError("email", "mailbox unavailable", status_code=502)
        if message.to in self.crashing_recipients:
            raise ValueError("template engine exploded")
        self.sent.append(message)


class FakeDecisionService:
    def __init__(self) -> None:
        self.response = DecisionPreviewResponse(
            approval_likelihood=64,
            risk_band="Low",
            matched_nbfc_scheme="Working Capital Plus",
            strengths=["Consistent revenue"],
            risks=[],
        )
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []

    def get_preview(
        self,
        form_data: Mapping[str, Any],
        *,
        application_id: int | None,
        endpoint: str,
    ) -> DecisionPreviewResponse:
        self.calls.append({"form_data": dict(form_data), "application_id": application_id, "endpoint": endpoint})
        if self.error is not None:
            raise self.error
        return self.response


class FakeCampaignService:
    def __init__(self) -> None:
        self.failing_campaigns: set[int] = set()
        self.assigned: list[tuple[int, int]] = []

    def assign(self, campaign_id: int, lead_id: int) -> None:
        if campaign_id in self.failing_campaigns:
            raise ServiceError("campaigns", "campaign closed", status_code=409)
        self.assigned.append((campaign_id, lead_id))


@dataclass
class FakeServices:
    leads: FakeLeadService = field(default_factory=FakeLeadService)
    applications: FakeApplicationService = field(default_factory=FakeApplicationService)
    payments: FakePaymentService = field(default_factory=FakePaymentService)
    email: FakeEmailService = field(default_factory=FakeEmailService)
    decisions: FakeDecisionService = field(default_factory=FakeDecisionService)
    campaigns: FakeCampaignService = field(default_factory=FakeCampaignService)

    def bundle(self) -> WizardServices:
        return WizardServices(
            leads=self.leads,
            applications=self.applications,
            payments=self.payments,
            email=self.email,
            decisions=self.decisions,
            campaigns=self.campaigns,
        )


@dataclass
class WizardHarness:
    application: ApplicationItem
    state: WizardRuntimeState
    storage: dict[str, str]
    notifier: ListNotifier
    fakes: FakeServices
    navigator: WizardNavigator
    ctx: StepContext
    dispatcher: StepDispatcher

    @property
    def progress(self) -> ProgressStore:
        return ProgressStore(self.storage, RESUME_TOKEN)

    @property
    def stash(self) -> PaymentStash:
        return PaymentStash(self.storage, RESUME_TOKEN)

    @property
    def step_id(self) -> str | None:
        step = self.navigator.current_step
        return step.id if step else None

