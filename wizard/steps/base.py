"""Shared types for step handlers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Optional

from config import Settings
from core.errors import WizardError
from integrations.services import WizardServices
from models.application import ApplicationItem
from models.wizard_config import FormData, StepDefinition, StepType
from state.runtime import WizardRuntimeState
from wizard.navigation.router import WizardNavigator
from wizard.notifications import Notifier


class StepStatus(StrEnum):
    ADVANCED = "advanced"
    STAYED = "stayed"
    BLOCKED = "blocked"
    DISABLED = "disabled"
    REDIRECT = "redirect"
    COMPLETED = "completed"


@dataclass(frozen=True)
class StepOutcome:
    """Result of an entry action or user action on a step.

    ``lead_id``, ``application_id`` and ``submitted`` are side effects the
    dispatcher records even when the step is no longer current.
    """

    status: StepStatus
    error: Optional[WizardError] = None
    redirect_url: Optional[str] = None
    lead_id: Optional[int] = None
    application_id: Optional[int] = None
    submitted: bool = False

    @classmethod
    def stayed(cls, error: WizardError | None = None) -> "StepOutcome":
        return cls(StepStatus.STAYED, error=error)

    @classmethod
    def blocked(cls, error: WizardError) -> "StepOutcome":
        return cls(StepStatus.BLOCKED, error=error)

    @property
    def wants_advance(self) -> bool:
        return self.status == StepStatus.ADVANCED


@dataclass
class StepContext:
    """Everything a handler may read or call for one dispatch."""

    application: ApplicationItem
    navigator: WizardNavigator
    services: WizardServices
    notifier: Notifier
    settings: Settings
    step: Optional[StepDefinition] = None

    @property
    def state(self) -> WizardRuntimeState:
        return self.navigator.state

    @property
    def form_data(self) -> FormData:
        return self.navigator.state.form_data

    @property
    def placeholder_fallback(self) -> str:
        return self.application.wizard.placeholder_fallback or self.settings.placeholder_fallback


class StepHandler:
    """Behaviour of one step type.

    ``enter`` runs at most once per step-entry event; ``act`` runs for the
    step's primary user action. Handlers never move the step index
    themselves.
    """

    step_type: ClassVar[StepType]
    pending_flag: ClassVar[Optional[str]] = None

    def enter(self, ctx: StepContext) -> Optional[StepOutcome]:
        return None

    def act(self, ctx: StepContext) -> StepOutcome:
        return StepOutcome.stayed()

    def is_action_enabled(self, ctx: StepContext) -> bool:
        return not ctx.state.is_busy


__all__ = ["StepContext", "StepHandler", "StepOutcome", "StepStatus"]
